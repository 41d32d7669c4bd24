"""
Ticket backup export.

Snapshots every open ticket (optionally filtered by labels) together with its
comments, so collection tickets and registry comments can be restored by hand.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..core.client import AsyncTicketClient
from ..core.errors import TransportError
from ..core.logging import get_logger

logger = get_logger(__name__)

BACKUP_FORMAT_VERSION = "1.0.0"


async def export_tickets(
    client: AsyncTicketClient,
    labels: Optional[list[str]] = None,
    include_comments: bool = True,
) -> dict[str, Any]:
    """
    Build a backup snapshot of open tickets.

    A ticket whose comments cannot be listed is exported with an empty comment
    list and a "comments_error" field instead of failing the whole backup.

    Raises:
        TransportError: If the ticket listing itself fails
    """
    tickets = await client.list_by_labels(labels or [])
    logger.info("Exporting tickets", extra={"ticket_count": len(tickets), "labels": labels or []})

    exported: list[dict[str, Any]] = []
    comment_count = 0

    for ticket in tickets:
        entry = ticket.to_dict()
        if include_comments:
            try:
                comments = await client.list_comments(ticket.number)
                entry["comments"] = [comment.to_dict() for comment in comments]
                comment_count += len(comments)
            except TransportError as e:
                logger.warning(
                    "Failed to list comments, exporting ticket without them",
                    extra={"ticket": ticket.number, "error": e.message},
                )
                entry["comments"] = []
                entry["comments_error"] = e.message
        exported.append(entry)

    return {
        "version": BACKUP_FORMAT_VERSION,
        "exported_at": datetime.now(timezone.utc).isoformat(),
        "repository": f"{client.owner}/{client.repo}",
        "ticket_count": len(exported),
        "comment_count": comment_count,
        "tickets": exported,
    }


def backup_filename(moment: Optional[datetime] = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return f"tickets-backup-{moment.strftime('%Y-%m-%d')}.json"


def write_backup(
    snapshot: dict[str, Any], directory: Path, moment: Optional[datetime] = None
) -> Path:
    """
    Write a snapshot to ``directory/tickets-backup-YYYY-MM-DD.json``.

    The directory is created if needed; an existing backup for the same day
    is overwritten.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / backup_filename(moment)
    path.write_text(json.dumps(snapshot, indent=2, ensure_ascii=False), encoding="utf-8")

    logger.info("Wrote backup", extra={"path": str(path), "ticket_count": snapshot.get("ticket_count")})
    return path
