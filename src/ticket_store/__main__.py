#!/usr/bin/env python3
"""
Ticket Store CLI Entry Point

Operator commands for inspecting and maintaining ticket-backed records.
Run with: python -m ticket_store <command> [args]
"""

import argparse
import json
import sys

from .core import StoreError, get_utc_timestamp

HELP_TEXT = """
Ticket Store - records kept in issue tracker tickets

Collection Commands:
  records <type> <user_id> <username>          List a user's records
  records-delete <type> <user_id> <username> <record_id>
                                               Delete one record
  types                                        List record types

Registry Commands:
  registry-get <type> <key>                    Show one registry entry
  registry-list <type>                         Show all registry entries
  registry-delete <type> <key>                 Remove a registry entry

Maintenance Commands:
  backup [--label L ...] [--output DIR] [--no-comments]
                                               Export open tickets to JSON

Configuration:
  TICKET_STORE_TOKEN, TICKET_STORE_REPO_OWNER, TICKET_STORE_REPO_NAME
  (legacy: WIKI_BOT_TOKEN, WIKI_REPO_OWNER, WIKI_REPO_NAME)

Examples:
  ticket-store records skill-builds 42 alice
  ticket-store registry-get profile-pictures 42
  ticket-store backup --label skill-builds --output backups/
"""


def output_json(data: dict, indent: int = 2) -> None:
    print(json.dumps(data, indent=indent, ensure_ascii=False))


def error_document(message: str, error_type: str = "error", **details) -> dict:
    """Build the JSON document printed for a failed command."""
    return {
        "error": error_type,
        "message": message,
        **details,
        "query_timestamp": get_utc_timestamp(),
    }


def cmd_help(args: argparse.Namespace) -> dict:
    print(HELP_TEXT)
    return {}


def build_parser() -> argparse.ArgumentParser:
    """Assemble the top-level parser; each command module adds its own subcommands."""
    from .commands import backup, records, registry

    parser = argparse.ArgumentParser(
        prog="ticket-store",
        description="Ticket Store - records kept in issue tracker tickets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    subparsers.add_parser("help", help="Show help message").set_defaults(func=cmd_help)

    for module in (records, registry, backup):
        module.register_parsers(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Run one command and print its JSON result.

    Returns the process exit code: 0 on success, 1 when the result carries an
    "error" key or the command raised, 130 on Ctrl-C.
    """
    args = build_parser().parse_args(argv)

    if not args.command:
        cmd_help(args)
        return 0

    try:
        result = args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except StoreError as e:
        result = {**e.to_dict(), "query_timestamp": get_utc_timestamp()}
    except Exception as e:
        result = error_document(str(e), "command_error", command=args.command)

    if not result:
        return 0
    output_json(result)
    return 1 if "error" in result else 0


if __name__ == "__main__":
    sys.exit(main())
