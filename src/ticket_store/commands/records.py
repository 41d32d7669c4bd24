"""
Ticket Store Collection Commands

Inspect and prune per-user record collections (skill builds, loadouts,
spirit collections) and list the record type catalogue.
"""

import argparse
import asyncio

from ..core import StoreError, create_ticket_client, get_utc_timestamp
from ..models import catalogue
from ..services import CollectionStore

# =============================================================================
# Records Command
# =============================================================================


def cmd_records(args: argparse.Namespace) -> dict:
    """
    List a user's records of one collection type.

    Reads never fail on a missing or corrupt ticket; they return no records.
    """
    query_ts = get_utc_timestamp()

    async def fetch() -> list:
        client = await create_ticket_client()
        try:
            return await CollectionStore(client).get(args.record_type, args.user_id, args.username)
        finally:
            await client.aclose()

    try:
        records = asyncio.run(fetch())
    except StoreError as e:
        return {**e.to_dict(), "query_timestamp": query_ts}

    return {
        "query_timestamp": query_ts,
        "record_type": args.record_type,
        "user_id": args.user_id,
        "username": args.username,
        "count": len(records),
        "records": records,
    }


def cmd_records_delete(args: argparse.Namespace) -> dict:
    """Delete one record from a user's collection."""
    query_ts = get_utc_timestamp()

    async def remove() -> list:
        client = await create_ticket_client()
        try:
            store = CollectionStore(client)
            return await store.delete(
                args.record_type, args.user_id, args.username, args.record_id
            )
        finally:
            await client.aclose()

    try:
        remaining = asyncio.run(remove())
    except StoreError as e:
        return {**e.to_dict(), "query_timestamp": query_ts}

    return {
        "query_timestamp": query_ts,
        "record_type": args.record_type,
        "deleted": args.record_id,
        "remaining": len(remaining),
        "records": remaining,
    }


def cmd_types(args: argparse.Namespace) -> dict:
    """List every known record type."""
    return {"query_timestamp": get_utc_timestamp(), "types": catalogue()}


# =============================================================================
# Parser Registration
# =============================================================================


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register collection command parsers."""

    records_parser = subparsers.add_parser("records", help="List a user's records")
    records_parser.add_argument("record_type", help="Collection type (e.g. skill-builds)")
    records_parser.add_argument("user_id", help="Numeric user id")
    records_parser.add_argument("username", help="Username (used for legacy ticket lookup)")
    records_parser.set_defaults(func=cmd_records)

    delete_parser = subparsers.add_parser("records-delete", help="Delete one record")
    delete_parser.add_argument("record_type", help="Collection type (e.g. skill-builds)")
    delete_parser.add_argument("user_id", help="Numeric user id")
    delete_parser.add_argument("username", help="Username shown in the ticket title")
    delete_parser.add_argument("record_id", help="Id of the record to delete")
    delete_parser.set_defaults(func=cmd_records_delete)

    types_parser = subparsers.add_parser("types", help="List record types")
    types_parser.set_defaults(func=cmd_types)
