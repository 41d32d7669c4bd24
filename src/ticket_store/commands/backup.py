"""
Ticket Store Backup Command

Exports open tickets and their comments to a dated JSON file.
"""

import argparse
import asyncio
from pathlib import Path
from typing import Any

from ..core import StoreError, create_ticket_client, get_settings, get_utc_timestamp
from ..services import export_tickets, write_backup


def cmd_backup(args: argparse.Namespace) -> dict:
    """Snapshot open tickets (optionally filtered by label) to disk."""
    query_ts = get_utc_timestamp()
    output_dir = Path(args.output) if args.output else get_settings().backup_dir

    async def export() -> dict[str, Any]:
        client = await create_ticket_client()
        try:
            return await export_tickets(
                client, labels=args.labels, include_comments=not args.no_comments
            )
        finally:
            await client.aclose()

    try:
        snapshot = asyncio.run(export())
    except StoreError as e:
        return {**e.to_dict(), "query_timestamp": query_ts}

    path = write_backup(snapshot, output_dir)

    result: dict[str, Any] = {
        "query_timestamp": query_ts,
        "path": str(path),
        "ticket_count": snapshot["ticket_count"],
        "comment_count": snapshot["comment_count"],
    }
    failed = [t["number"] for t in snapshot["tickets"] if "comments_error" in t]
    if failed:
        result["warnings"] = [f"Comments unavailable for tickets: {failed}"]
    return result


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register backup command parser."""

    backup_parser = subparsers.add_parser("backup", help="Export open tickets to JSON")
    backup_parser.add_argument(
        "--label",
        dest="labels",
        action="append",
        metavar="LABEL",
        help="Only export tickets carrying this label (repeatable)",
    )
    backup_parser.add_argument(
        "--output", "-o", help="Output directory (default: TICKET_STORE_BACKUP_DIR)"
    )
    backup_parser.add_argument(
        "--no-comments", action="store_true", help="Skip exporting ticket comments"
    )
    backup_parser.set_defaults(func=cmd_backup)
