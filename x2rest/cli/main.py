"""Main CLI entry point for the X2 REST client."""

import argparse
import json
import logging
import sys
from dataclasses import asdict, is_dataclass

from x2rest.core import (
    ClientConfig,
    ConfigError,
    X2Error,
    TransportError,
    save_client_config,
)
from x2rest.client import build_client

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )
    # Suppress httpx INFO logs for cleaner output
    logging.getLogger("httpx").setLevel(logging.WARNING)


def parse_pairs(pairs: list[str] | None) -> dict[str, str]:
    """Turn ["key=value", ...] into a dict, rejecting items without "="."""
    result = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Expected key=value, got '{pair}'")
        key, value = pair.split("=", 1)
        result[key.strip()] = value
    return result


def _json_default(value):
    if isinstance(value, set):
        return sorted(value)
    if is_dataclass(value):
        return asdict(value)
    return str(value)


def print_json(data) -> None:
    """Print data as indented JSON."""
    if is_dataclass(data):
        data = asdict(data)
    print(json.dumps(data, indent=2, default=_json_default))


def cmd_configure(args):
    """Handle the configure command."""
    config = ClientConfig(
        base_url=args.base_url,
        api_user=args.user,
        api_key=args.api_key,
        purify=not args.no_purify,
        timeout_seconds=args.timeout,
    )
    path = save_client_config(config, args.profile)
    print(f"Configuration saved to: {path}")


def cmd_fields(args):
    """Handle the fields command."""
    with build_client(args.profile) as client:
        if args.required:
            fields = client.get_required_fields(args.entity)
        elif args.email:
            fields = client.get_email_fields(args.entity)
        else:
            fields = client.get_fields(args.entity, args.dropdowns)

    print(f"{args.entity} fields ({len(fields)}):")
    print()
    for name, descriptor in fields.items():
        flags = " required" if descriptor.required else ""
        print(f"  {name:24s} {descriptor.type:10s}{flags}")
        if descriptor.dropdown_options:
            print(f"    options: {', '.join(sorted(descriptor.dropdown_options))}")


def cmd_verify(args):
    """Handle the verify command."""
    submitted = parse_pairs(args.fields)
    mapper = parse_pairs(args.map)

    with build_client(args.profile) as client:
        result = client.verify_attributes(
            args.entity, submitted, mapper, verify_dropdowns=not args.no_dropdowns
        )

    print_json({
        "verifiedFields": result.verified_fields,
        "ignoredFields": result.ignored_fields,
        "missingRequired": result.missing_required,
    })


def cmd_create_contact(args):
    """Handle the create-contact command."""
    submitted = parse_pairs(args.fields)
    mapper = parse_pairs(args.map)

    with build_client(args.profile) as client:
        result = client.create_contact(
            submitted,
            mapper,
            verify_dropdowns=not args.no_dropdowns,
            update_id=args.update_id,
        )

    if result.missing_required:
        print("Contact not created, missing required fields:", file=sys.stderr)
        for message in result.missing_required.values():
            print(f"  - {message}", file=sys.stderr)
        sys.exit(1)

    print_json(result)


def cmd_get(args):
    """Handle the get command."""
    with build_client(args.profile) as client:
        print_json(client.get_entity(args.entity, args.id))


def cmd_find_duplicates(args):
    """Handle the find-duplicates command."""
    email_fields = [name.strip() for name in args.fields.split(",") if name.strip()]

    with build_client(args.profile) as client:
        duplicates = client.get_email_duplicates(args.emails, email_fields)

    if duplicates is None:
        print("No duplicates found.")
        return

    print_json(duplicates)


def cmd_tag(args):
    """Handle the tag command."""
    with build_client(args.profile) as client:
        print_json(client.create_tags(args.entity, args.id, args.tags))


def cmd_note(args):
    """Handle the note command."""
    with build_client(args.profile) as client:
        print_json(client.create_action(args.entity, args.id, args.text, args.type))


def cmd_reset_dupecheck(args):
    """Handle the reset-dupecheck command."""
    with build_client(args.profile) as client:
        client.reset_all_dupe_check(args.entity, [{"id": entity_id} for entity_id in args.ids])
    print(f"Reset duplicate check on {len(args.ids)} {args.entity} record(s)")


def main(argv: list[str] | None = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="x2rest",
        description="X2 CRM REST client CLI",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--profile", default="default", help="Connection profile name")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Configure command
    configure_parser = subparsers.add_parser("configure", help="Save connection settings")
    configure_parser.add_argument("--base-url", required=True, help="API base URL")
    configure_parser.add_argument("--user", required=True, help="API user name")
    configure_parser.add_argument("--api-key", required=True, help="API key")
    configure_parser.add_argument("--no-purify", action="store_true", help="Do not sanitize field values")
    configure_parser.add_argument("--timeout", type=float, default=10.0, help="Request timeout in seconds")
    configure_parser.set_defaults(func=cmd_configure)

    # Fields command
    fields_parser = subparsers.add_parser("fields", help="Show an entity's field schema")
    fields_parser.add_argument("--entity", default="Contacts", help="Entity type (e.g., 'Contacts')")
    fields_parser.add_argument("--dropdowns", action="store_true", help="Include dropdown options")
    group = fields_parser.add_mutually_exclusive_group()
    group.add_argument("--required", action="store_true", help="Only required fields")
    group.add_argument("--email", action="store_true", help="Only email fields")
    fields_parser.set_defaults(func=cmd_fields)

    # Verify command
    verify_parser = subparsers.add_parser("verify", help="Check field values against the schema")
    verify_parser.add_argument("--entity", default="Contacts", help="Entity type (e.g., 'Contacts')")
    verify_parser.add_argument("--map", nargs="*", help="Field renames as 'key=fieldName'")
    verify_parser.add_argument("--no-dropdowns", action="store_true", help="Skip dropdown value checks")
    verify_parser.add_argument("fields", nargs="+", help="Field values as 'key=value'")
    verify_parser.set_defaults(func=cmd_verify)

    # Create-contact command
    create_parser = subparsers.add_parser("create-contact", help="Create or update a contact")
    create_parser.add_argument("--update-id", help="Update this contact instead of creating one")
    create_parser.add_argument("--map", nargs="*", help="Field renames as 'key=fieldName'")
    create_parser.add_argument("--no-dropdowns", action="store_true", help="Skip dropdown value checks")
    create_parser.add_argument("fields", nargs="+", help="Field values as 'key=value'")
    create_parser.set_defaults(func=cmd_create_contact)

    # Get command
    get_parser = subparsers.add_parser("get", help="Fetch a single record")
    get_parser.add_argument("--entity", default="Contacts", help="Entity type (e.g., 'Contacts')")
    get_parser.add_argument("--id", required=True, help="Record ID")
    get_parser.set_defaults(func=cmd_get)

    # Find-duplicates command
    dupes_parser = subparsers.add_parser("find-duplicates", help="Find contacts sharing an email")
    dupes_parser.add_argument("--fields", default="email", help="Email fields in priority order, comma separated")
    dupes_parser.add_argument("emails", nargs="+", help="Email addresses")
    dupes_parser.set_defaults(func=cmd_find_duplicates)

    # Tag command
    tag_parser = subparsers.add_parser("tag", help="Add tags to a record")
    tag_parser.add_argument("--entity", default="Contacts", help="Entity type (e.g., 'Contacts')")
    tag_parser.add_argument("--id", required=True, help="Record ID")
    tag_parser.add_argument("tags", nargs="+", help="Tags, with or without '#'")
    tag_parser.set_defaults(func=cmd_tag)

    # Note command
    note_parser = subparsers.add_parser("note", help="Attach an action to a record")
    note_parser.add_argument("--entity", default="Contacts", help="Entity type (e.g., 'Contacts')")
    note_parser.add_argument("--id", required=True, help="Record ID")
    note_parser.add_argument("--type", default="note", help="Action type")
    note_parser.add_argument("text", help="Action description")
    note_parser.set_defaults(func=cmd_note)

    # Reset-dupecheck command
    reset_parser = subparsers.add_parser("reset-dupecheck", help="Clear the duplicate-check flag")
    reset_parser.add_argument("--entity", default="Contacts", help="Entity type (e.g., 'Contacts')")
    reset_parser.add_argument("ids", nargs="+", help="Record IDs")
    reset_parser.set_defaults(func=cmd_reset_dupecheck)

    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        print("Run 'x2rest configure' first.", file=sys.stderr)
        sys.exit(1)
    except TransportError as e:
        print(f"API error: {e}", file=sys.stderr)
        if e.status_code:
            print(f"HTTP Status: {e.status_code}", file=sys.stderr)
        sys.exit(1)
    except (X2Error, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
