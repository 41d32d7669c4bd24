"""
Keyed Registry Store

One registry ticket per record type, one comment per key:

    Title:  fixed per type, e.g. "[Profile Pictures Registry]"
    Labels: {record_type}, data-version:v1, automated
    Body:   header text followed by one "[key]=commentId" line per entry

Each comment body is the JSON record for its key, so per-key reads and
overwrites never touch the shared ticket body. Only inserting or removing a
key rewrites the index.

A save interrupted between creating the comment and rewriting the index
leaves an orphaned comment; an index entry whose comment is gone is skipped
by reads. Neither case is cleaned up automatically.
"""

from __future__ import annotations

from typing import Any, Optional

from ..core.client import AsyncTicketClient, Ticket
from ..core.constants import AUTOMATED_LABEL, DATA_VERSION_LABEL, INDEX_KEY_PATTERN
from ..core.errors import DecodeError, ResourceNotFoundError, TransportError, ValidationError
from ..core.logging import get_logger
from ..models.record_types import RegistryType, get_registry_type
from .codec import decode_index_map, decode_record, encode_index_map, encode_record, index_header
from .locks import KeyedLocks

logger = get_logger(__name__)


def normalize_key(key: Any) -> str:
    """
    Normalize a registry key to its string form.

    Raises:
        ValidationError: If the key contains anything but word characters
    """
    normalized = str(key)
    if not INDEX_KEY_PATTERN.fullmatch(normalized):
        raise ValidationError(
            f"Invalid registry key {normalized!r}: only letters, digits and underscores allowed"
        )
    return normalized


class RegistryStore:
    """
    Shared per-type registry of individually addressable records.

    Usage:
        store = RegistryStore(client)
        await store.save("profile-pictures", 42, {"url": "https://..."})
        picture = await store.get_one("profile-pictures", 42)
    """

    def __init__(self, client: AsyncTicketClient) -> None:
        self.client = client
        self._locks = KeyedLocks()

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_one(self, record_type: str, key: Any) -> Optional[dict[str, Any]]:
        """
        Fetch the record stored under a key.

        Returns None when the registry, the key or its comment is missing, and
        also when the comment body is corrupt or the platform is unreachable.
        """
        config = get_registry_type(record_type)
        normalized = normalize_key(key)

        try:
            ticket = await self._find_registry(config)
            if ticket is None:
                return None

            comment_id = decode_index_map(ticket.body).get(normalized)
            if comment_id is None:
                return None

            comment = await self.client.get_comment(comment_id)
            return decode_record(comment.body)
        except (TransportError, DecodeError) as e:
            logger.warning(
                "Failed to read registry entry",
                extra={"record_type": config.label, "key": normalized, "error": e.message},
            )
            return None

    async def fetch_one(self, record_type: str, key: Any) -> Optional[dict[str, Any]]:
        """
        Fetch the record stored under a key, failing loudly on transport errors.

        For read-modify-write callers that must not mistake an unreachable
        platform for an absent entry. Only a missing registry, key or comment
        and a corrupt comment body read as None.

        Raises:
            ValidationError: If the key is malformed
            TransportError: If the registry or comment cannot be read
        """
        config = get_registry_type(record_type)
        normalized = normalize_key(key)

        ticket = await self._find_registry(config)
        if ticket is None:
            return None

        comment_id = decode_index_map(ticket.body).get(normalized)
        if comment_id is None:
            return None

        try:
            comment = await self.client.get_comment(comment_id)
            return decode_record(comment.body)
        except (ResourceNotFoundError, DecodeError) as e:
            logger.warning(
                "Registry entry unreadable, treating as absent",
                extra={"record_type": config.label, "key": normalized, "error": e.message},
            )
            return None

    async def get_all(self, record_type: str) -> dict[str, dict[str, Any]]:
        """
        Fetch every record in a registry, keyed by registry key.

        Entries whose comment cannot be fetched or decoded are skipped.
        """
        config = get_registry_type(record_type)

        try:
            ticket = await self._find_registry(config)
        except TransportError as e:
            logger.warning(
                "Failed to locate registry, returning empty",
                extra={"record_type": config.label, "error": e.message},
            )
            return {}
        if ticket is None:
            return {}

        records: dict[str, dict[str, Any]] = {}
        for key, comment_id in decode_index_map(ticket.body).items():
            try:
                comment = await self.client.get_comment(comment_id)
                records[key] = decode_record(comment.body)
            except (TransportError, DecodeError) as e:
                logger.warning(
                    "Skipping unreadable registry entry",
                    extra={
                        "record_type": config.label,
                        "key": key,
                        "comment_id": comment_id,
                        "error": e.message,
                    },
                )

        return records

    # =========================================================================
    # Writes
    # =========================================================================

    async def save(
        self,
        record_type: str,
        key: Any,
        record: dict[str, Any],
        *,
        counter_field: Optional[str] = None,
    ) -> None:
        """
        Store a record under a key, creating the registry ticket if needed.

        Args:
            record_type: Registry record type
            key: Registry key (normalized with str())
            record: JSON object to store
            counter_field: When set, overwriting a key stores the previous
                record's value of this field plus one; a new entry without
                the field starts at 1

        Raises:
            ValidationError: If the key or record is malformed
            TransportError: If a ticket or comment write fails
        """
        config = get_registry_type(record_type)
        normalized = normalize_key(key)
        if not isinstance(record, dict):
            raise ValidationError("Record must be a JSON object")

        async with self._locks.hold(config.label):
            ticket = await self._ensure_registry(config)
            index = decode_index_map(ticket.body)
            comment_id = index.get(normalized)
            document = dict(record)

            if comment_id is not None:
                if counter_field:
                    count = await self._next_count(config, normalized, comment_id, counter_field)
                    if count is not None:
                        document[counter_field] = count
                try:
                    await self.client.update_comment(comment_id, encode_record(document))
                    logger.debug(
                        "Overwrote registry entry",
                        extra={"record_type": config.label, "key": normalized},
                    )
                    return
                except ResourceNotFoundError:
                    logger.warning(
                        "Indexed comment is gone, re-creating entry",
                        extra={"record_type": config.label, "key": normalized},
                    )

            if counter_field and counter_field not in document:
                document[counter_field] = 1
            comment = await self.client.create_comment(ticket.number, encode_record(document))
            index[normalized] = comment.id
            await self._write_index(config, ticket, index)

        logger.info(
            "Added registry entry",
            extra={"record_type": config.label, "key": normalized, "comment_id": comment.id},
        )

    async def delete(self, record_type: str, key: Any) -> None:
        """
        Remove a key and its comment. Missing registries and keys are a no-op.

        Raises:
            ValidationError: If the key is malformed
            TransportError: If the comment delete or index rewrite fails
        """
        config = get_registry_type(record_type)
        normalized = normalize_key(key)

        async with self._locks.hold(config.label):
            ticket = await self._find_registry(config)
            if ticket is None:
                return

            index = decode_index_map(ticket.body)
            comment_id = index.pop(normalized, None)
            if comment_id is None:
                return

            try:
                await self.client.delete_comment(comment_id)
            except ResourceNotFoundError:
                logger.debug(
                    "Registry comment already deleted",
                    extra={"record_type": config.label, "comment_id": comment_id},
                )

            await self._write_index(config, ticket, index)

        logger.info("Deleted registry entry", extra={"record_type": config.label, "key": normalized})

    # =========================================================================
    # Registry Ticket
    # =========================================================================

    async def _find_registry(self, config: RegistryType) -> Optional[Ticket]:
        tickets = await self.client.list_by_labels([config.label, DATA_VERSION_LABEL])
        for ticket in tickets:
            if ticket.title == config.title:
                return ticket
        return None

    async def _ensure_registry(self, config: RegistryType) -> Ticket:
        ticket = await self._find_registry(config)
        if ticket is not None:
            return ticket

        logger.info("Creating registry ticket", extra={"record_type": config.label})
        return await self.client.create_ticket(
            config.title,
            config.header,
            [config.label, DATA_VERSION_LABEL, AUTOMATED_LABEL],
        )

    async def _write_index(
        self, config: RegistryType, ticket: Ticket, index: dict[str, int]
    ) -> None:
        body = encode_index_map(index, index_header(ticket.body, config.header))
        await self.client.update_ticket(ticket.number, body=body)
        ticket.body = body

    async def _next_count(
        self,
        config: RegistryType,
        key: str,
        comment_id: int,
        counter_field: str,
    ) -> Optional[int]:
        try:
            prior = decode_record((await self.client.get_comment(comment_id)).body)
        except (TransportError, DecodeError) as e:
            logger.warning(
                "Could not read previous entry, keeping supplied counter",
                extra={"record_type": config.label, "key": key, "error": e.message},
            )
            return None

        previous = prior.get(counter_field, 0)
        if not isinstance(previous, int) or isinstance(previous, bool):
            previous = 0
        return previous + 1
