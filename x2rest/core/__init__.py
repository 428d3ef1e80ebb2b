"""Core components for the X2 REST client."""

from .models import (
    ClientConfig,
    FieldDescriptor,
    VerificationResult,
    ContactWriteResult,
    EmailDuplicates,
    X2Error,
    TransportError,
    DecodeError,
    InvalidArgument,
    IncompleteWriteError,
    ConfigError,
)
from .config_store import (
    get_base_dir,
    config_path,
    save_client_config,
    load_client_config,
)
from .sanitizer import Sanitizer

__all__ = [
    "ClientConfig",
    "FieldDescriptor",
    "VerificationResult",
    "ContactWriteResult",
    "EmailDuplicates",
    "X2Error",
    "TransportError",
    "DecodeError",
    "InvalidArgument",
    "IncompleteWriteError",
    "ConfigError",
    "get_base_dir",
    "config_path",
    "save_client_config",
    "load_client_config",
    "Sanitizer",
]
