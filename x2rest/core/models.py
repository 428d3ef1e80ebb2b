"""Core data models for the X2 REST client."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ClientConfig:
    """Connection settings for one CRM instance."""
    base_url: str
    api_user: str
    api_key: str
    purify: bool = True
    timeout_seconds: float = 10.0

    def to_dict(self) -> dict[str, Any]:
        """Convert ClientConfig to a dictionary."""
        return {
            "base_url": self.base_url,
            "api_user": self.api_user,
            "api_key": self.api_key,
            "purify": self.purify,
            "timeout_seconds": self.timeout_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientConfig":
        """Create ClientConfig from a dictionary."""
        return cls(
            base_url=data["base_url"],
            api_user=data["api_user"],
            api_key=data["api_key"],
            purify=data.get("purify", True),
            timeout_seconds=data.get("timeout_seconds", 10.0),
        )


@dataclass
class FieldDescriptor:
    """
    One field of an entity's live schema.

    The remote API returns more attributes than the client needs; the
    full record is kept in ``raw`` so lookups by any attribute still work.
    """
    field_name: str
    type: str
    required: bool = False
    link_type: str | None = None
    attribute_label: str | None = None
    dropdown_options: set[str] | None = None
    dropdown_info: dict[str, Any] | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldDescriptor":
        """Create FieldDescriptor from a schema record."""
        link_type = data.get("linkType")
        return cls(
            field_name=data["fieldName"],
            type=data.get("type") or "",
            required=not is_empty(data.get("required")),
            link_type=str(link_type) if link_type not in (None, "") else None,
            attribute_label=data.get("attributeLabel"),
            raw=dict(data),
        )

    def attach_dropdown(self, dropdown: dict[str, Any]) -> None:
        """Attach a dropdown catalog entry and index its option values."""
        self.dropdown_info = dropdown
        options = dropdown.get("options") or {}
        if isinstance(options, dict):
            self.dropdown_options = {str(key) for key in options}
        else:
            self.dropdown_options = {str(option) for option in options}

    def accepts_option(self, value: Any) -> bool:
        """Check a submitted value against the attached dropdown options."""
        if not self.dropdown_options or value is None:
            return False
        return str(value) in self.dropdown_options


@dataclass
class VerificationResult:
    """Outcome of checking submitted fields against an entity schema."""
    verified_fields: dict[str, Any] = field(default_factory=dict)
    ignored_fields: dict[str, str] = field(default_factory=dict)
    field_names: dict[str, FieldDescriptor] = field(default_factory=dict)
    missing_required: dict[str, str] | None = None


@dataclass
class ContactWriteResult:
    """
    Result of a contact create or update.

    Exactly one of ``contact`` and ``missing_required`` is set: a create
    that lacks required fields is never sent to the server.
    """
    contact: dict[str, Any] | None = None
    ignored_fields: dict[str, str] = field(default_factory=dict)
    missing_required: dict[str, str] | None = None


@dataclass
class EmailDuplicates:
    """Contacts matching a set of emails, split into the one to keep and the rest."""
    contact_to_update: dict[str, Any] | None
    other_contacts: dict[str, dict[Any, dict[str, Any]]] = field(default_factory=dict)


def is_empty(value: Any) -> bool:
    """Return True for values the server treats as unset (None, "", 0, "0", False, empty)."""
    if isinstance(value, str):
        return value in ("", "0")
    return not value


class X2Error(Exception):
    """Base class for client errors."""
    pass


class TransportError(X2Error):
    """Raised when a request fails at the network or HTTP level."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(X2Error):
    """Raised when the server returns a body that is not valid JSON."""
    pass


class InvalidArgument(X2Error, ValueError):
    """Raised when a caller passes an argument of the wrong shape."""
    pass


class IncompleteWriteError(X2Error):
    """Raised when a write response carries no record ID."""
    pass


class ConfigError(X2Error):
    """Raised when there is an error loading or saving configuration."""
    pass
