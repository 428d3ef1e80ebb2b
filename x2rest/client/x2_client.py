"""
X2 CRM Client Implementation

Provides a client for the CRM's REST API: entity reads and writes,
schema lookups, field verification and duplicate detection.
"""

import logging
import time
from collections.abc import Sequence
from typing import Any

import httpx

from ..core.fields import (
    build_schema,
    dedup_buckets,
    filter_email_fields,
    filter_required_fields,
    find_field,
    flatten_entity_list,
    index_by_id,
    missing_required_fields,
    normalize_tags,
    select_email_duplicates,
    verify_given_field,
)
from ..core.models import (
    ClientConfig,
    ContactWriteResult,
    DecodeError,
    EmailDuplicates,
    FieldDescriptor,
    IncompleteWriteError,
    InvalidArgument,
    TransportError,
    VerificationResult,
    is_empty,
)
from ..core.sanitizer import Sanitizer

logger = logging.getLogger(__name__)

CONTACTS = "Contacts"

# Duplicate lookups should never legitimately reach this many rows
LOOKUP_LIMIT = 500


def build_query(query: dict[str, Any]) -> list[tuple[str, str]]:
    """
    Encode a flat query mapping as a list of key/value pairs.

    List values are expanded into indexed keys (``email[0]``, ``email[1]``)
    so the server reads them as an array.
    """
    pairs = []
    for key, value in query.items():
        if isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                pairs.append((f"{key}[{index}]", str(item)))
        else:
            pairs.append((key, str(value)))
    return pairs


def _visibility_set(visibility: Any) -> bool:
    # The string "0" is a real visibility value; other falsy values mean "no filter"
    return visibility == "0" or bool(visibility)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _expect_records(data: Any, path: str) -> list[dict[str, Any]]:
    # List endpoints must answer with an array of objects
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise DecodeError(f"Expected a list of records from {path}, got {type(data).__name__}")
    return data


class X2Client:
    """
    Client for one CRM instance.

    Every public method maps to a single remote operation, except the
    duplicate helpers and ``reset_all_dupe_check`` which issue several
    requests in sequence with no rollback.
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: httpx.Client | None = None,
    ):
        """
        Initialize the client.

        Args:
            config: Base URL, credentials and sanitize flag
            http_client: Optional httpx client (created if None)
        """
        self.config = config
        self.sanitizer = Sanitizer(enabled=config.purify)

        # Track if we own the HTTP client (for cleanup)
        self._owns_client = http_client is None

        if http_client is None:
            self.http_client = httpx.Client(timeout=config.timeout_seconds)
        else:
            self.http_client = http_client

    def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client and self.http_client:
            self.http_client.close()

    def __enter__(self):
        """Context manager support."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager cleanup."""
        self.close()
        return False

    @property
    def purify(self) -> bool:
        """Whether field values are sanitized before being written."""
        return self.sanitizer.enabled

    def _build_url(self, path: str) -> str:
        """
        Build full URL from base URL and path.

        Args:
            path: API path (e.g., "Contacts/12.json")

        Returns:
            Full URL
        """
        base_url = self.config.base_url.rstrip("/")
        path = path.lstrip("/")
        return f"{base_url}/{path}"

    def _request(
        self,
        method: str,
        path: str,
        params: list[tuple[str, str]] | None = None,
        json_body: Any = None,
    ) -> Any:
        """
        Make an authenticated HTTP request.

        Args:
            method: HTTP method (GET, POST, PUT)
            path: API path
            params: Encoded query parameters
            json_body: JSON request body

        Returns:
            Decoded JSON response ({} for an empty body)

        Raises:
            TransportError: On network failure or non-2xx response
            DecodeError: If the body is not valid JSON
        """
        url = self._build_url(path)
        logger.debug(f"{method} {url}")

        try:
            response = self.http_client.request(
                method=method,
                url=url,
                headers={"Content-Type": "application/json"},
                params=params,
                json=json_body,
                auth=(self.config.api_user, self.config.api_key),
            )
        except httpx.RequestError as e:
            raise TransportError(f"Request failed: {str(e)}")

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"API request failed: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON from {method} {path}: {e}")

    # ===== SCHEMA METHODS =====

    def get_fields(
        self,
        entity: str,
        with_dropdown_options: bool = False,
    ) -> dict[str, FieldDescriptor]:
        """
        Fetch the live field schema of an entity type.

        Args:
            entity: Entity type (e.g., "Contacts", "Accounts")
            with_dropdown_options: Also fetch the dropdown catalog and
                attach each dropdown field's options

        Returns:
            Dict of field name to FieldDescriptor
        """
        path = f"{entity}/fields"
        records = _expect_records(self._request("GET", path), path)

        dropdowns = None
        if with_dropdown_options:
            dropdowns = {str(key): value for key, value in self.get_all_dropdowns().items()}

        return build_schema(records, dropdowns)

    def get_email_fields(self, entity: str) -> dict[str, FieldDescriptor]:
        """Fields that can hold an email address."""
        return filter_email_fields(self.get_fields(entity))

    def get_required_fields(self, entity: str) -> dict[str, FieldDescriptor]:
        """Fields the server requires on create."""
        return filter_required_fields(self.get_fields(entity))

    def get_field_by_name(
        self,
        entity: str,
        name: str,
        match_on: str = "fieldName",
    ) -> FieldDescriptor | None:
        """
        Look up a single field.

        Args:
            entity: Entity type
            name: Field name or label to find
            match_on: "fieldName" or "label"

        Returns:
            The FieldDescriptor, or None if no field matches
        """
        return find_field(self.get_fields(entity), name, match_on)

    def get_all_dropdowns(self, by_id: bool = True) -> dict[Any, dict[str, Any]] | list[dict[str, Any]]:
        """Fetch the dropdown catalog, keyed by dropdown ID unless ``by_id`` is False."""
        dropdowns = _expect_records(self._request("GET", "dropdowns"), "dropdowns")
        if by_id:
            return index_by_id(dropdowns)
        return dropdowns

    def get_dropdown(self, dropdown_id: Any) -> dict[str, Any]:
        """Fetch a single dropdown."""
        return self._request("GET", f"dropdowns/{dropdown_id}.json")

    # ===== VERIFICATION METHODS =====

    def validate_required_fields(self, entity: str, fields: dict[str, Any]) -> dict[str, str] | None:
        """
        Check that ``fields`` sets every required field of the entity.

        Returns:
            Field name to message for each missing field, or None
        """
        return missing_required_fields(self.get_required_fields(entity), fields)

    def verify_attributes(
        self,
        entity: str,
        submitted_fields: dict[str, Any],
        mapper: dict[str, str] | None = None,
        verify_dropdowns: bool = True,
    ) -> VerificationResult:
        """
        Check submitted fields against the entity's schema.

        Args:
            entity: Entity type
            submitted_fields: Caller's field names and values
            mapper: Optional rename of submitted names to schema field names
            verify_dropdowns: Reject dropdown values not in the option set

        Returns:
            VerificationResult with verified, ignored and missing fields.
            Missing required fields are computed from the verified set only.
        """
        schema = self.get_fields(entity, verify_dropdowns)
        result = VerificationResult(field_names=schema)

        for key, value in submitted_fields.items():
            field_name = mapper[key] if mapper and key in mapper else key
            verify_given_field(
                result,
                field_name,
                value,
                schema,
                verify_dropdowns,
                self.sanitizer.sanitize,
            )

        if entity == CONTACTS and is_empty(result.verified_fields.get("visibility")):
            result.verified_fields["visibility"] = 1

        result.missing_required = missing_required_fields(
            filter_required_fields(schema),
            result.verified_fields,
        )

        if result.ignored_fields:
            logger.debug(f"Ignored {entity} fields: {sorted(result.ignored_fields)}")

        return result

    def verify_given_field(
        self,
        entity: str,
        result: VerificationResult,
        field_name: str,
        value: Any,
        schema: dict[str, FieldDescriptor] | None = None,
        verify_dropdowns: bool = False,
    ) -> None:
        """
        Verify one field into ``result``, fetching the schema if not given.

        Dropdown checks need a schema fetched with dropdown options.
        """
        if not schema:
            schema = self.get_fields(entity, verify_dropdowns)
        verify_given_field(result, field_name, value, schema, verify_dropdowns, self.sanitizer.sanitize)

    # ===== CONTACTS METHODS =====

    def create_contact(
        self,
        submitted_fields: dict[str, Any],
        mapper: dict[str, str] | None = None,
        verify_dropdowns: bool = True,
        update_id: Any = None,
    ) -> ContactWriteResult:
        """
        Create a contact, or update one when ``update_id`` is given.

        Only verified fields are sent. A create missing required fields
        is not sent; the result carries ``missing_required`` instead.

        Returns:
            ContactWriteResult

        Raises:
            IncompleteWriteError: If the server response has no ID
        """
        info = self.verify_attributes(CONTACTS, submitted_fields, mapper, verify_dropdowns)
        fields = info.verified_fields

        if update_id:
            if "dupeCheck" not in fields:
                fields["dupeCheck"] = 0
            if is_empty(fields.get("visibility")):
                fields["visibility"] = 1

            logger.info(f"Updating contact {update_id}")
            contact = self._request("PUT", f"{CONTACTS}/{update_id}.json", json_body=fields)
        else:
            if is_empty(fields.get("visibility")):
                fields["visibility"] = 1

            if info.missing_required:
                logger.warning(
                    f"Not creating contact, missing required fields: {sorted(info.missing_required)}"
                )
                return ContactWriteResult(missing_required=info.missing_required)

            logger.info("Creating contact")
            contact = self._request("POST", CONTACTS, json_body=fields)

        if not isinstance(contact, dict) or "id" not in contact:
            raise IncompleteWriteError("No contact ID returned. The write likely failed server-side.")

        return ContactWriteResult(contact=contact, ignored_fields=info.ignored_fields)

    def update_contact(
        self,
        contact_id: Any,
        submitted_fields: dict[str, Any],
        mapper: dict[str, str] | None = None,
        verify_dropdowns: bool = True,
    ) -> ContactWriteResult:
        """Update an existing contact. See create_contact."""
        return self.create_contact(submitted_fields, mapper, verify_dropdowns, update_id=contact_id)

    # ===== ENTITY METHODS =====

    def get_entity(self, entity: str, entity_id: Any) -> dict[str, Any]:
        """Fetch a single record."""
        return self._request("GET", f"{entity}/{entity_id}.json")

    def get_entity_actions(
        self,
        entity: str,
        entity_id: Any,
        sort_by_id: bool = True,
    ) -> dict[Any, dict[str, Any]] | list[dict[str, Any]]:
        """Fetch a record's actions, keyed by action ID unless ``sort_by_id`` is False."""
        path = f"{entity}/{entity_id}/Actions"
        actions = _expect_records(self._request("GET", path), path)
        if sort_by_id:
            return index_by_id(actions)
        return actions

    def create_action(
        self,
        entity: str,
        entity_id: Any,
        description: str,
        action_type: str = "note",
    ) -> dict[str, Any]:
        """
        Attach an action (a note by default) to a record.

        Args:
            entity: Entity type of the record
            entity_id: Record ID
            description: Action text
            action_type: Action type, e.g. "note"

        Returns:
            Created action dict
        """
        action_data = {
            "actionDescription": description,
            "associationId": entity_id,
            "associationType": entity,
            "type": action_type,
            "visibility": "1",
            "createDate": int(time.time()),
        }

        logger.info(f"Creating {action_type} action on {entity}/{entity_id}")
        return self._request("POST", f"{entity}/{entity_id}/Actions", json_body=action_data)

    def get_entity_tags(self, entity: str, entity_id: Any) -> Any:
        """Fetch a record's tags."""
        return self._request("GET", f"{entity}/{entity_id}/tags")

    def create_tags(self, entity: str, entity_id: Any, tags: list[str]) -> Any:
        """Add tags to a record; each tag is normalized to a single leading "#"."""
        return self._request("POST", f"{entity}/{entity_id}/tags", json_body=normalize_tags(tags))

    def reset_dupe_check(self, entity: str, entity_id: Any) -> dict[str, Any]:
        """Clear the server's duplicate-check flag on a record."""
        return self._request("PUT", f"{entity}/{entity_id}.json", json_body={"dupeCheck": 0})

    def reset_all_dupe_check(self, entity: str, records: list[dict[str, Any]]) -> None:
        """
        Clear the duplicate-check flag on every record in ``records``.

        All records are checked for an ID before any request is made. The
        resets themselves are not atomic: a failure part way leaves the
        earlier records reset and skips the rest.

        Raises:
            InvalidArgument: If ``records`` is not a list or an item has no ID
        """
        if not _is_sequence(records):
            raise InvalidArgument("records should be a list")

        for record in records:
            if not isinstance(record, dict) or "id" not in record:
                raise InvalidArgument("records items should contain an ID.")

        for record in records:
            self.reset_dupe_check(entity, record["id"])

    # ===== DUPLICATE LOOKUP METHODS =====

    def get_entity_by_field(
        self,
        entity: str,
        search_values: Any,
        field_name: str = "email",
        visibility: Any = 1,
    ) -> list[dict[str, Any]] | None:
        """
        Find records whose ``field_name`` matches any of ``search_values``.

        Args:
            entity: Entity type
            search_values: Value or list of values (empty ones are dropped)
            field_name: Field to search on
            visibility: Visibility filter; None, "" or 0 disables it

        Returns:
            List of matching records, or None when there is nothing to
            search for or the result hit the lookup limit
        """
        if not _is_sequence(search_values):
            search_values = [search_values]
        values = [value for value in search_values if not is_empty(value)]

        if not values:
            return None

        query: dict[str, Any] = {"_limit": LOOKUP_LIMIT, field_name: values}
        if _visibility_set(visibility):
            query["visibility"] = visibility

        records = _expect_records(self._request("GET", entity, params=build_query(query)), entity)

        if len(records) == LOOKUP_LIMIT:
            logger.warning(
                f"Lookup on {entity}.{field_name} returned {LOOKUP_LIMIT} rows, treating as failed"
            )
            return None
        return records

    def get_contacts_by_emails(
        self,
        emails: list[str],
        flatten: bool = True,
        dedup: bool = True,
        visibility: Any = 1,
    ) -> dict[Any, Any]:
        """
        Find contacts matching any of ``emails`` in any email field.

        Args:
            emails: Email addresses to search for
            flatten: Return one ID-keyed dict instead of per-field buckets
            dedup: Keep each contact only in the first field it matched
            visibility: Visibility filter passed to each lookup

        Returns:
            ID-keyed contacts, or field name to ID-keyed contacts

        Raises:
            InvalidArgument: If ``emails`` is not a list
        """
        if not _is_sequence(emails):
            raise InvalidArgument("emails should be a list")

        contacts: dict[str, dict[Any, dict[str, Any]]] = {}
        for field_name in self.get_email_fields(CONTACTS):
            found = self.get_entity_by_field(CONTACTS, emails, field_name, visibility)
            if found:
                contacts[field_name] = flatten_entity_list([found])

        if dedup:
            dedup_buckets(contacts)

        if flatten:
            return flatten_entity_list(contacts)
        return contacts

    def get_contacts_by_name(
        self,
        names: list[str],
        visibility: Any = 1,
    ) -> list[dict[str, Any]] | None:
        """
        Find contacts by full name ("First Last").

        Raises:
            InvalidArgument: If ``names`` is not a list
        """
        if not _is_sequence(names):
            raise InvalidArgument("names should be a list")
        return self.get_entity_by_field(CONTACTS, names, "name", visibility)

    def get_email_duplicates(
        self,
        emails: list[str],
        email_fields: Sequence[str] = ("email",),
    ) -> EmailDuplicates | None:
        """
        Find the contact to update for a set of emails, plus any other matches.

        Args:
            emails: Email addresses to search for
            email_fields: Email field names in priority order

        Returns:
            EmailDuplicates, or None if ``emails`` is empty or nothing matched
        """
        if not emails:
            return None

        duplicates = self.get_contacts_by_emails(emails, flatten=False)
        if not duplicates:
            return None

        return select_email_duplicates(duplicates, email_fields)

    flatten_entity_list = staticmethod(flatten_entity_list)
