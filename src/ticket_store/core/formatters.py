"""
Ticket Store Formatting Utilities

Timestamp parsing and formatting shared by the stores and the CLI.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


def get_utc_now() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        Current datetime with UTC timezone
    """
    return datetime.now(timezone.utc)


def format_datetime(dt: datetime) -> str:
    """
    Format datetime for CLI output.

    Returns:
        ISO format string like "2026-01-15T12:30:00Z"
    """
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def get_utc_timestamp() -> str:
    """Get current UTC timestamp string for CLI responses."""
    return format_datetime(get_utc_now())


def format_record_timestamp(dt: datetime) -> str:
    """
    Format a record timestamp with millisecond precision.

    Returns:
        ISO format string like "2026-01-15T12:30:00.123Z"
    """
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp as stored on records.

    Naive values are taken as UTC. Returns None for anything unparseable.
    """
    if not isinstance(value, str) or not value:
        return None

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
