"""
Schema and field-verification helpers.

Everything here works on already-fetched data; the client fetches
schemas and dropdown catalogs and hands them in.
"""

import logging
from typing import Any, Callable, Iterable

from .models import (
    DecodeError,
    EmailDuplicates,
    FieldDescriptor,
    InvalidArgument,
    VerificationResult,
)

logger = logging.getLogger(__name__)

INVALID_FIELDNAME = "Not a valid fieldname."
INVALID_DROPDOWN = "Not a valid dropdown value."

# Attribute names accepted by find_field(match_on=...)
MATCH_ATTRIBUTES = {
    "fieldName": "fieldName",
    "label": "attributeLabel",
    "attributeLabel": "attributeLabel",
}


def build_schema(
    fields: Iterable[dict[str, Any]],
    dropdowns: dict[str, dict[str, Any]] | None = None,
) -> dict[str, FieldDescriptor]:
    """
    Build a schema map keyed by field name.

    Args:
        fields: Field records as returned by ``{entity}/fields``
        dropdowns: Optional dropdown catalog keyed by dropdown ID; dropdown
            fields whose linkType matches an entry get its options attached

    Returns:
        Dict of field name to FieldDescriptor

    Raises:
        DecodeError: If a record is not a field object with a fieldName
    """
    schema = {}
    for record in fields:
        if not isinstance(record, dict) or "fieldName" not in record:
            raise DecodeError(f"Unexpected field record: {record!r}")
        descriptor = FieldDescriptor.from_dict(record)
        if (
            dropdowns is not None
            and descriptor.type == "dropdown"
            and descriptor.link_type in dropdowns
        ):
            descriptor.attach_dropdown(dropdowns[descriptor.link_type])
        schema[descriptor.field_name] = descriptor
    return schema


def filter_email_fields(schema: dict[str, FieldDescriptor]) -> dict[str, FieldDescriptor]:
    """Keep fields whose name contains "email" or whose type is "email"."""
    return {
        name: descriptor
        for name, descriptor in schema.items()
        if "email" in descriptor.field_name or descriptor.type == "email"
    }


def filter_required_fields(schema: dict[str, FieldDescriptor]) -> dict[str, FieldDescriptor]:
    """Keep fields marked as required."""
    return {name: descriptor for name, descriptor in schema.items() if descriptor.required}


def find_field(
    schema: dict[str, FieldDescriptor],
    name: str,
    match_on: str = "fieldName",
) -> FieldDescriptor | None:
    """
    Find the first field whose ``match_on`` attribute equals ``name``.

    Args:
        schema: Schema map to scan
        name: Value to look for
        match_on: "fieldName" or "label" (the field's attributeLabel)

    Returns:
        The matching FieldDescriptor, or None
    """
    if match_on not in MATCH_ATTRIBUTES:
        raise InvalidArgument(f"Cannot match fields on '{match_on}'")

    key = MATCH_ATTRIBUTES[match_on]
    for descriptor in schema.values():
        if descriptor.raw.get(key) == name:
            return descriptor
    return None


def verify_given_field(
    result: VerificationResult,
    field_name: str,
    value: Any,
    schema: dict[str, FieldDescriptor],
    verify_dropdowns: bool = False,
    sanitize: Callable[[Any], Any] | None = None,
) -> None:
    """
    Check one field against the schema and record it in ``result``.

    Unknown names and rejected dropdown values go to ``ignored_fields``;
    everything else is sanitized into ``verified_fields``. A name seen
    twice keeps the last value.
    """
    descriptor = schema.get(field_name)
    if descriptor is None:
        result.ignored_fields[field_name] = INVALID_FIELDNAME
        return

    if (
        verify_dropdowns
        and descriptor.type == "dropdown"
        and not descriptor.accepts_option(value)
    ):
        result.ignored_fields[field_name] = INVALID_DROPDOWN
        return

    if sanitize is not None:
        value = sanitize(value)
    result.verified_fields[field_name] = value


def missing_required_fields(
    required: dict[str, FieldDescriptor],
    fields: dict[str, Any],
) -> dict[str, str] | None:
    """Map each required field absent from ``fields`` to a message, or None if all are set."""
    missing = {}
    for field_name in required:
        if fields.get(field_name) is None:
            missing[field_name] = f"Missing needed required field: {field_name}."
    return missing or None


def index_by_id(items: Iterable[dict[str, Any]]) -> dict[Any, dict[str, Any]]:
    """Key records by their "id"; a repeated ID keeps the last record."""
    return {item["id"]: item for item in items}


def flatten_entity_list(groups: Any, id_keys: bool = True) -> dict[Any, Any] | list[Any] | None:
    """
    Collapse a collection of record groups into one collection.

    Groups may be lists or dicts (as produced by separate queries). With
    ``id_keys`` the result is keyed by record ID, otherwise it is a list.
    Returns None when ``groups`` is not a list or dict.
    """
    if not isinstance(groups, (list, tuple, dict)):
        return None

    flat: dict[Any, Any] = {}
    flat_list: list[Any] = []
    for items in _values(groups):
        for item in _values(items):
            if id_keys:
                flat[item["id"]] = item
            else:
                flat_list.append(item)

    return flat if id_keys else flat_list


def dedup_buckets(buckets: dict[str, dict[Any, dict[str, Any]]]) -> None:
    """Remove, in place, every record already seen in an earlier bucket."""
    seen = set()
    for bucket in buckets.values():
        for key, record in list(bucket.items()):
            if record["id"] in seen:
                del bucket[key]
            seen.add(record["id"])


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Trim tags, collapse leading "#" to exactly one, and drop repeats."""
    normalized = []
    for tag in tags:
        hashed = "#" + tag.strip().lstrip("#")
        if hashed not in normalized:
            normalized.append(hashed)
    return normalized


def select_email_duplicates(
    buckets: dict[str, dict[Any, dict[str, Any]]],
    email_fields: Iterable[str],
) -> EmailDuplicates:
    """
    Pick the contact to update from per-field duplicate buckets.

    Fields are checked in the given priority order. The first field with
    any match supplies the contact to update (the one with the highest
    ID); every other match is reported under its field name.
    """
    contact_to_update = None
    other_contacts = {}

    for field_name in email_fields:
        bucket = buckets.get(field_name)
        if not bucket:
            continue

        others = dict(bucket)
        if contact_to_update is None:
            top_key = max(others, key=_numeric_id)
            contact_to_update = others.pop(top_key)
            logger.debug(f"Selected contact {contact_to_update.get('id')} from '{field_name}'")

        if others:
            other_contacts[field_name] = others

    return EmailDuplicates(contact_to_update=contact_to_update, other_contacts=other_contacts)


def _values(collection: Any) -> Iterable[Any]:
    if isinstance(collection, dict):
        return collection.values()
    return collection


def _numeric_id(key: Any) -> float:
    try:
        return float(key)
    except (TypeError, ValueError):
        return float("-inf")
