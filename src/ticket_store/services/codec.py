"""
Record Codec

Serializes records to and from ticket/comment bodies, and the registry index
map to and from a registry ticket body.

Decoding is deliberately lenient: stored bodies are hand-maintained and may be
corrupt, so collection and index decoders never raise. A corrupt collection
body decodes to [] and a corrupt index body decodes to {}.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from ..core.constants import INDEX_ENTRY_PATTERN
from ..core.errors import DecodeError
from ..core.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Collection Bodies
# =============================================================================


def encode_collection(records: list[dict[str, Any]]) -> str:
    return json.dumps(records, indent=2, ensure_ascii=False)


def decode_collection(body: Optional[str]) -> list[dict[str, Any]]:
    """
    Parse a collection ticket body.

    Returns [] for an empty body, invalid JSON, or a non-array document.
    Array members that are not JSON objects are dropped.
    """
    if not body or not body.strip():
        return []

    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        logger.warning("Collection body is not valid JSON, treating as empty", extra={"error": str(e)})
        return []

    if not isinstance(parsed, list):
        logger.warning(
            "Collection body is not a JSON array, treating as empty",
            extra={"found": type(parsed).__name__},
        )
        return []

    records = [item for item in parsed if isinstance(item, dict)]
    if len(records) != len(parsed):
        logger.warning(
            "Dropped non-object entries from collection body",
            extra={"dropped": len(parsed) - len(records)},
        )
    return records


# =============================================================================
# Single Records (index comments)
# =============================================================================


def encode_record(record: dict[str, Any]) -> str:
    return json.dumps(record, indent=2, ensure_ascii=False)


def decode_record(body: Optional[str]) -> dict[str, Any]:
    """
    Parse an index comment body.

    Raises:
        DecodeError: If the body is empty, invalid JSON, or not a JSON object
    """
    if not body or not body.strip():
        raise DecodeError("Record body is empty")

    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Record body is not valid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise DecodeError(f"Record body is a JSON {type(parsed).__name__}, expected object")
    return parsed


# =============================================================================
# Registry Index Map
# =============================================================================


def encode_index_map(index: dict[str, int], header: str) -> str:
    """
    Render an index map below a header.

    >>> encode_index_map({"9": 202}, "# header")
    '# header\\n[9]=202'
    """
    lines = [header.rstrip("\n")] if header else []
    lines.extend(f"[{key}]={value}" for key, value in index.items())
    return "\n".join(lines)


def decode_index_map(body: Optional[str]) -> dict[str, int]:
    """
    Scan a registry body for [key]=commentId entries.

    Lines that do not match are ignored, as are entries whose value is not a
    numeric comment id. A missing or malformed body yields {}.
    """
    index: dict[str, int] = {}
    if not body:
        return index

    for match in INDEX_ENTRY_PATTERN.finditer(body):
        key, value = match.group(1), match.group(2)
        if not value.isdecimal():
            logger.debug("Skipping index entry with non-numeric id", extra={"key": key})
            continue
        index[key] = int(value)

    return index


def index_header(body: Optional[str], default: str) -> str:
    """
    Return the non-index part of a registry body.

    Rewrites keep whatever header the registry ticket already carries; a body
    with no header lines falls back to ``default``.
    """
    if not body:
        return default

    header_lines = [
        line for line in body.splitlines() if not INDEX_ENTRY_PATTERN.search(line)
    ]
    while header_lines and not header_lines[-1].strip():
        header_lines.pop()

    if not header_lines:
        return default
    return "\n".join(header_lines)
