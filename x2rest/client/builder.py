"""
Builder module for creating configured clients.

Ties the stored connection profile to an X2Client.
"""

import logging

from ..core.config_store import load_client_config
from ..core.models import ClientConfig
from .x2_client import X2Client

logger = logging.getLogger(__name__)


def build_client(
    profile: str = "default",
    config: ClientConfig | None = None,
    purify: bool | None = None,
) -> X2Client:
    """
    Build a client from a stored profile or an explicit config.

    Args:
        profile: Profile to load when ``config`` is not given
        config: Connection settings to use as is
        purify: Override the profile's sanitize flag

    Returns:
        Configured X2Client ready to use

    Raises:
        ConfigError: If the profile is missing or invalid

    Example:
        >>> with build_client() as client:
        ...     fields = client.get_fields("Contacts")
    """
    if config is None:
        config = load_client_config(profile)
        logger.debug(f"Loaded profile '{profile}' for {config.base_url}")

    if purify is not None and purify != config.purify:
        config = ClientConfig(
            base_url=config.base_url,
            api_user=config.api_user,
            api_key=config.api_key,
            purify=purify,
            timeout_seconds=config.timeout_seconds,
        )

    return X2Client(config)
