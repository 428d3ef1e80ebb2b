"""Tests for core data models."""

import pytest
from x2rest.core.models import (
    ClientConfig,
    FieldDescriptor,
    VerificationResult,
    ContactWriteResult,
    X2Error,
    TransportError,
    DecodeError,
    InvalidArgument,
    IncompleteWriteError,
    ConfigError,
    is_empty,
)


def test_client_config_defaults():
    """Test ClientConfig default values."""
    config = ClientConfig(
        base_url="https://crm.test.com/index.php/api2",
        api_user="admin",
        api_key="secret",
    )

    assert config.purify is True
    assert config.timeout_seconds == 10.0


def test_client_config_serialization():
    """Test ClientConfig to_dict and from_dict."""
    original = ClientConfig(
        base_url="https://crm.test.com/index.php/api2",
        api_user="admin",
        api_key="secret",
        purify=False,
        timeout_seconds=30.0,
    )

    restored = ClientConfig.from_dict(original.to_dict())

    assert restored == original


def test_client_config_from_dict_defaults():
    """Test from_dict fills in optional settings."""
    config = ClientConfig.from_dict({
        "base_url": "https://crm.test.com",
        "api_user": "admin",
        "api_key": "secret",
    })

    assert config.purify is True
    assert config.timeout_seconds == 10.0


def test_field_descriptor_from_dict():
    """Test FieldDescriptor parses a schema record."""
    descriptor = FieldDescriptor.from_dict({
        "fieldName": "leadSource",
        "attributeLabel": "Lead Source",
        "type": "dropdown",
        "required": "1",
        "linkType": 103,
    })

    assert descriptor.field_name == "leadSource"
    assert descriptor.type == "dropdown"
    assert descriptor.required is True
    assert descriptor.link_type == "103"
    assert descriptor.attribute_label == "Lead Source"
    assert descriptor.dropdown_options is None
    assert descriptor.raw["fieldName"] == "leadSource"


@pytest.mark.parametrize("required", ["0", 0, None, False, ""])
def test_field_descriptor_not_required(required):
    """Test server-style falsy values mean not required."""
    descriptor = FieldDescriptor.from_dict({"fieldName": "x", "type": "varchar", "required": required})
    assert descriptor.required is False


def test_field_descriptor_attach_dropdown_dict_options():
    """Test dropdown options given as a value-to-label mapping."""
    descriptor = FieldDescriptor.from_dict({"fieldName": "leadSource", "type": "dropdown"})
    descriptor.attach_dropdown({"id": 103, "options": {"Google": "Google", "Walk In": "Walk In"}})

    assert descriptor.dropdown_options == {"Google", "Walk In"}
    assert descriptor.dropdown_info["id"] == 103
    assert descriptor.accepts_option("Google")
    assert not descriptor.accepts_option("Bing")
    assert not descriptor.accepts_option(None)


def test_field_descriptor_attach_dropdown_list_options():
    """Test dropdown options given as a plain list."""
    descriptor = FieldDescriptor.from_dict({"fieldName": "rating", "type": "dropdown"})
    descriptor.attach_dropdown({"id": 5, "options": [1, 2, 3]})

    assert descriptor.accepts_option(2)
    assert descriptor.accepts_option("3")
    assert not descriptor.accepts_option(4)


def test_field_descriptor_without_options_rejects():
    """Test a dropdown with no attached options accepts nothing."""
    descriptor = FieldDescriptor.from_dict({"fieldName": "leadSource", "type": "dropdown"})
    assert not descriptor.accepts_option("Google")


def test_verification_result_defaults():
    """Test VerificationResult starts empty."""
    result = VerificationResult()

    assert result.verified_fields == {}
    assert result.ignored_fields == {}
    assert result.field_names == {}
    assert result.missing_required is None


def test_contact_write_result_defaults():
    """Test ContactWriteResult defaults."""
    result = ContactWriteResult(contact={"id": 1})

    assert result.ignored_fields == {}
    assert result.missing_required is None


@pytest.mark.parametrize("value", [None, "", "0", 0, False, [], {}])
def test_is_empty_true(value):
    """Test values treated as unset."""
    assert is_empty(value)


@pytest.mark.parametrize("value", ["1", 1, "a", " ", True, [0]])
def test_is_empty_false(value):
    """Test values treated as set."""
    assert not is_empty(value)


def test_error_hierarchy():
    """Test all client errors share a base class."""
    for error_cls in (TransportError, DecodeError, InvalidArgument, IncompleteWriteError, ConfigError):
        assert issubclass(error_cls, X2Error)

    assert issubclass(InvalidArgument, ValueError)


def test_transport_error_status_code():
    """Test TransportError stores status code."""
    error = TransportError("Request failed", status_code=404)
    assert str(error) == "Request failed"
    assert error.status_code == 404

    assert TransportError("Network error").status_code is None
