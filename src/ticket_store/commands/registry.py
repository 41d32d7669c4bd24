"""
Ticket Store Registry Commands

Read and remove keyed registry entries (profile pictures, rate limits).
"""

import argparse
import asyncio
from typing import Any, Optional

from ..core import StoreError, create_ticket_client, get_utc_timestamp
from ..services import RegistryStore


def cmd_registry_get(args: argparse.Namespace) -> dict:
    """Show the record stored under one registry key."""
    query_ts = get_utc_timestamp()

    async def fetch() -> Optional[dict[str, Any]]:
        client = await create_ticket_client()
        try:
            return await RegistryStore(client).get_one(args.record_type, args.key)
        finally:
            await client.aclose()

    try:
        record = asyncio.run(fetch())
    except StoreError as e:
        return {**e.to_dict(), "query_timestamp": query_ts}

    if record is None:
        return {
            "error": "not_found",
            "message": f"No {args.record_type} entry for key {args.key!r}",
            "query_timestamp": query_ts,
        }

    return {
        "query_timestamp": query_ts,
        "record_type": args.record_type,
        "key": args.key,
        "record": record,
    }


def cmd_registry_list(args: argparse.Namespace) -> dict:
    """Show every readable entry of a registry."""
    query_ts = get_utc_timestamp()

    async def fetch() -> dict[str, dict[str, Any]]:
        client = await create_ticket_client()
        try:
            return await RegistryStore(client).get_all(args.record_type)
        finally:
            await client.aclose()

    try:
        records = asyncio.run(fetch())
    except StoreError as e:
        return {**e.to_dict(), "query_timestamp": query_ts}

    return {
        "query_timestamp": query_ts,
        "record_type": args.record_type,
        "count": len(records),
        "records": records,
    }


def cmd_registry_delete(args: argparse.Namespace) -> dict:
    """Remove a registry key and its comment."""
    query_ts = get_utc_timestamp()

    async def remove() -> None:
        client = await create_ticket_client()
        try:
            await RegistryStore(client).delete(args.record_type, args.key)
        finally:
            await client.aclose()

    try:
        asyncio.run(remove())
    except StoreError as e:
        return {**e.to_dict(), "query_timestamp": query_ts}

    return {"query_timestamp": query_ts, "record_type": args.record_type, "deleted": args.key}


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register registry command parsers."""

    get_parser = subparsers.add_parser("registry-get", help="Show one registry entry")
    get_parser.add_argument("record_type", help="Registry type (e.g. profile-pictures)")
    get_parser.add_argument("key", help="Registry key")
    get_parser.set_defaults(func=cmd_registry_get)

    list_parser = subparsers.add_parser("registry-list", help="Show all registry entries")
    list_parser.add_argument("record_type", help="Registry type (e.g. profile-pictures)")
    list_parser.set_defaults(func=cmd_registry_list)

    delete_parser = subparsers.add_parser("registry-delete", help="Remove a registry entry")
    delete_parser.add_argument("record_type", help="Registry type (e.g. profile-pictures)")
    delete_parser.add_argument("key", help="Registry key")
    delete_parser.set_defaults(func=cmd_registry_delete)
