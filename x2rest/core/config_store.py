"""Configuration and persistence for connection settings."""

import json
import logging
import os
from pathlib import Path

from .models import ClientConfig, ConfigError

logger = logging.getLogger(__name__)

API_KEY_ENV = "X2REST_API_KEY"


def get_base_dir() -> Path:
    """
    Get the base directory for storing configuration.

    The directory is determined by:
    1. Environment variable X2REST_HOME if set
    2. Otherwise, ~/.x2rest

    The directory is created if it does not exist.

    Returns:
        Path to the base directory
    """
    env_home = os.environ.get("X2REST_HOME")
    if env_home:
        base_dir = Path(env_home)
    else:
        base_dir = Path.home() / ".x2rest"

    base_dir.mkdir(parents=True, exist_ok=True)
    return base_dir


def config_path(profile: str = "default") -> Path:
    """Get the path of a profile's configuration file."""
    return get_base_dir() / f"{profile}_config.json"


def save_client_config(config: ClientConfig, profile: str = "default") -> Path:
    """
    Save a ClientConfig to disk.

    Args:
        config: Connection settings to save
        profile: Profile name, used as the file prefix

    Returns:
        Path to the saved file
    """
    path = config_path(profile)

    try:
        with open(path, "w") as f:
            json.dump(config.to_dict(), f, indent=2)
        logger.debug(f"Saved config to {path}")
        return path
    except OSError as e:
        raise ConfigError(f"Failed to save config to {path}: {e}")


def load_client_config(profile: str = "default") -> ClientConfig:
    """
    Load a ClientConfig from disk.

    The API key from the X2REST_API_KEY environment variable, when set,
    takes precedence over the stored one.

    Args:
        profile: Profile name

    Returns:
        The loaded ClientConfig

    Raises:
        ConfigError: If the file does not exist or is invalid
    """
    path = config_path(profile)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, "r") as f:
            data = json.load(f)
        logger.debug(f"Loaded config from {path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to load config from {path}: {e}")

    env_key = os.environ.get(API_KEY_ENV)
    if env_key:
        data["api_key"] = env_key

    try:
        return ClientConfig.from_dict(data)
    except KeyError as e:
        raise ConfigError(f"Missing setting {e} in {path}")
