"""REST client for X2 CRM with schema-aware field verification."""

from .client import X2Client, build_client
from .core import (
    ClientConfig,
    X2Error,
    TransportError,
    DecodeError,
    InvalidArgument,
    IncompleteWriteError,
    ConfigError,
)

__all__ = [
    "X2Client",
    "build_client",
    "ClientConfig",
    "X2Error",
    "TransportError",
    "DecodeError",
    "InvalidArgument",
    "IncompleteWriteError",
    "ConfigError",
]
