"""
Collection Store

One ticket per (record type, user) holding a JSON array of that user's
records. Used for skill builds, battle loadouts and spirit collections.

Ticket layout:
    Title:  {title_prefix} {username}
    Labels: {record_type}, user-id:{user_id}, automated
    Body:   JSON array of records

Lookup:
    1. user-id:{user_id} label (authoritative)
    2. exact legacy title, only among tickets that carry no user-id label

Legacy tickets found by title receive the user-id label on their next write,
never on read. New tickets are locked right after creation so only the
service identity can comment on them.
"""

from __future__ import annotations

import inspect
import secrets
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional, Union

from ..core.client import AsyncTicketClient, Ticket
from ..core.constants import (
    AUTOMATED_LABEL,
    RECORD_ID_SUFFIX_ALPHABET,
    RECORD_ID_SUFFIX_LENGTH,
    USER_ID_LABEL_PREFIX,
    user_id_label,
)
from ..core.errors import (
    CapacityExceededError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from ..core.formatters import format_record_timestamp, get_utc_now, parse_datetime
from ..core.logging import get_logger
from ..models.record_types import CollectionType, get_collection_type
from .codec import decode_collection, encode_collection
from .locks import KeyedLocks

logger = get_logger(__name__)

Record = dict[str, Any]


# =============================================================================
# Change Notifications
# =============================================================================


@dataclass
class RecordChange:
    """Describes a successful collection write, delivered to listeners."""

    action: str  # "added", "updated", "deleted"
    record_type: str
    user_id: str
    username: str
    record_id: str
    records: list[Record] = field(default_factory=list)


Listener = Callable[[RecordChange], Union[Awaitable[None], None]]


# =============================================================================
# Record Identity
# =============================================================================


def generate_record_id(record_type: str, moment: datetime) -> str:
    """Build a record id of the form {record_type}-{epochMillis}-{suffix}."""
    suffix = "".join(
        secrets.choice(RECORD_ID_SUFFIX_ALPHABET) for _ in range(RECORD_ID_SUFFIX_LENGTH)
    )
    return f"{record_type}-{int(moment.timestamp() * 1000)}-{suffix}"


# =============================================================================
# Store
# =============================================================================


class CollectionStore:
    """
    Per-user record collections persisted as ticket bodies.

    Usage:
        async with AsyncTicketClient(token, owner, repo) as client:
            store = CollectionStore(client)
            builds = await store.add("skill-builds", 42, "alice", {"name": "Fire Build"})
    """

    def __init__(
        self,
        client: AsyncTicketClient,
        listeners: Optional[Sequence[Listener]] = None,
        clock: Callable[[], datetime] = get_utc_now,
    ) -> None:
        """
        Args:
            client: Ticket client bound to the storage repository
            listeners: Called after every successful add/update/delete
            clock: Source of "now" for ids and timestamps
        """
        self.client = client
        self.listeners: list[Listener] = list(listeners or [])
        self._clock = clock
        self._locks = KeyedLocks()

    # =========================================================================
    # Public Operations
    # =========================================================================

    async def get(self, record_type: str, user_id: int | str, username: str) -> list[Record]:
        """
        Return a user's records, or [] when there is no data.

        A missing ticket, a corrupt body and an unreachable platform all read
        as an empty collection.
        """
        config = get_collection_type(record_type)
        user_key = _validate_owner(user_id, username)

        try:
            _, records = await self._load(config, user_key, username)
        except TransportError as e:
            logger.warning(
                "Failed to load collection, returning empty",
                extra={"record_type": record_type, "user_id": user_key, "error": e.message},
            )
            return []
        return records

    async def add(
        self, record_type: str, user_id: int | str, username: str, record: Record
    ) -> list[Record]:
        """
        Append a record, assigning its id and timestamps.

        Returns:
            The full updated collection

        Raises:
            ValidationError: If the record is not an object or its id is taken
            CapacityExceededError: If the collection is already full
            TransportError: If reading or writing the ticket fails
        """
        config = get_collection_type(record_type)
        user_key = _validate_owner(user_id, username)
        if not isinstance(record, dict):
            raise ValidationError("Record must be a JSON object")

        async with self._locks.hold((config.label, user_key)):
            ticket, records = await self._load(config, user_key, username)

            if len(records) >= config.max_items:
                raise CapacityExceededError(config.label, config.max_items)

            now = self._clock()
            existing_ids = {item.get("id") for item in records}
            new_record = dict(record)

            if new_record.get("id"):
                if new_record["id"] in existing_ids:
                    raise ValidationError(f"Record with id {new_record['id']!r} already exists")
            else:
                new_id = generate_record_id(config.label, now)
                while new_id in existing_ids:
                    new_id = generate_record_id(config.label, now)
                new_record["id"] = new_id

            stamp = format_record_timestamp(now)
            new_record["createdAt"] = stamp
            new_record["updatedAt"] = stamp

            records.append(new_record)
            await self._persist(config, user_key, username, records, ticket)

        logger.info(
            "Added record",
            extra={"record_type": config.label, "user_id": user_key, "record_id": new_record["id"]},
        )
        await self._notify(
            RecordChange("added", config.label, user_key, username, new_record["id"], records)
        )
        return records

    async def update(
        self,
        record_type: str,
        user_id: int | str,
        username: str,
        record_id: str,
        patch: Record,
    ) -> list[Record]:
        """
        Merge a patch over an existing record.

        ``id`` and ``createdAt`` are preserved; ``updatedAt`` strictly advances.

        Raises:
            ValidationError: If the patch is not an object
            NotFoundError: If no record has the given id
            TransportError: If reading or writing the ticket fails
        """
        config = get_collection_type(record_type)
        user_key = _validate_owner(user_id, username)
        if not isinstance(patch, dict):
            raise ValidationError("Patch must be a JSON object")

        async with self._locks.hold((config.label, user_key)):
            ticket, records = await self._load(config, user_key, username)

            index = next(
                (i for i, item in enumerate(records) if item.get("id") == record_id), None
            )
            if index is None:
                raise NotFoundError(f"Record with id {record_id!r} not found")

            existing = records[index]
            now = self._clock()
            merged = {**existing, **patch}
            merged["id"] = existing["id"]
            merged["createdAt"] = existing.get("createdAt") or format_record_timestamp(now)
            merged["updatedAt"] = self._advance(existing.get("updatedAt"), now)
            records[index] = merged

            await self._persist(config, user_key, username, records, ticket)

        logger.info(
            "Updated record",
            extra={"record_type": config.label, "user_id": user_key, "record_id": record_id},
        )
        await self._notify(
            RecordChange("updated", config.label, user_key, username, record_id, records)
        )
        return records

    async def delete(
        self, record_type: str, user_id: int | str, username: str, record_id: str
    ) -> list[Record]:
        """
        Remove a record.

        Returns:
            The remaining records

        Raises:
            NotFoundError: If no record has the given id (including a second delete)
            TransportError: If reading or writing the ticket fails
        """
        config = get_collection_type(record_type)
        user_key = _validate_owner(user_id, username)

        async with self._locks.hold((config.label, user_key)):
            ticket, records = await self._load(config, user_key, username)

            remaining = [item for item in records if item.get("id") != record_id]
            if len(remaining) == len(records):
                raise NotFoundError(f"Record with id {record_id!r} not found")

            await self._persist(config, user_key, username, remaining, ticket)

        logger.info(
            "Deleted record",
            extra={"record_type": config.label, "user_id": user_key, "record_id": record_id},
        )
        await self._notify(
            RecordChange("deleted", config.label, user_key, username, record_id, remaining)
        )
        return remaining

    async def save(
        self, record_type: str, user_id: int | str, username: str, records: list[Record]
    ) -> None:
        """
        Replace a user's whole collection.

        Raises:
            ValidationError: If records is not a list of objects
            CapacityExceededError: If records exceeds the type's limit
            TransportError: If the ticket write fails
        """
        config = get_collection_type(record_type)
        user_key = _validate_owner(user_id, username)
        _validate_records(config, records)

        async with self._locks.hold((config.label, user_key)):
            ticket = await self._find_ticket(config, user_key, username)
            await self._persist(config, user_key, username, records, ticket)

    # =========================================================================
    # Ticket Resolution
    # =========================================================================

    async def _find_ticket(
        self, config: CollectionType, user_key: str, username: str
    ) -> Optional[Ticket]:
        """Locate the collection ticket by owner label, then by legacy title."""
        label = user_id_label(user_key)
        tickets = await self.client.list_by_labels([config.label, label])
        for ticket in tickets:
            if ticket.has_label(label):
                return ticket

        title = config.ticket_title(username)
        for ticket in await self.client.list_by_labels([config.label]):
            if ticket.title == title and not ticket.has_label_prefix(USER_ID_LABEL_PREFIX):
                logger.debug(
                    "Found legacy collection ticket by title",
                    extra={"record_type": config.label, "ticket": ticket.number},
                )
                return ticket

        return None

    async def _load(
        self, config: CollectionType, user_key: str, username: str
    ) -> tuple[Optional[Ticket], list[Record]]:
        ticket = await self._find_ticket(config, user_key, username)
        if ticket is None:
            return None, []
        return ticket, decode_collection(ticket.body)

    async def _persist(
        self,
        config: CollectionType,
        user_key: str,
        username: str,
        records: list[Record],
        ticket: Optional[Ticket],
    ) -> None:
        _validate_records(config, records)

        body = encode_collection(records)
        title = config.ticket_title(username)
        label = user_id_label(user_key)

        if ticket is not None:
            await self.client.update_ticket(ticket.number, title=title, body=body)

            if not ticket.has_label(label):
                try:
                    await self.client.add_label(ticket.number, label)
                    logger.info(
                        "Migrated legacy collection ticket",
                        extra={"record_type": config.label, "ticket": ticket.number},
                    )
                except TransportError as e:
                    logger.warning(
                        "Failed to add owner label to legacy ticket",
                        extra={"ticket": ticket.number, "error": e.message},
                    )
            return

        created = await self.client.create_ticket(
            title, body, [config.label, label, AUTOMATED_LABEL]
        )
        try:
            await self.client.lock_ticket(created.number)
        except TransportError as e:
            logger.warning(
                "Failed to lock collection ticket",
                extra={"ticket": created.number, "error": e.message},
            )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _advance(self, previous: Any, now: datetime) -> str:
        """Return a timestamp strictly later than ``previous``."""
        previous_dt = parse_datetime(previous)
        if previous_dt is not None:
            floor = previous_dt + timedelta(milliseconds=1)
            if now < floor:
                now = floor
        return format_record_timestamp(now)

    async def _notify(self, change: RecordChange) -> None:
        for listener in self.listeners:
            try:
                result = listener(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning(
                    "Record change listener failed",
                    extra={"action": change.action, "record_type": change.record_type},
                    exc_info=True,
                )


def _validate_owner(user_id: int | str, username: str) -> str:
    user_key = str(user_id).strip() if user_id is not None else ""
    if not user_key:
        raise ValidationError("Missing required field: user_id")
    if not isinstance(username, str) or not username.strip():
        raise ValidationError("Missing required field: username")
    return user_key


def _validate_records(config: CollectionType, records: Any) -> None:
    if not isinstance(records, list):
        raise ValidationError(f"{config.items_name.capitalize()} must be an array")
    if not all(isinstance(item, dict) for item in records):
        raise ValidationError(f"Every entry in {config.items_name} must be a JSON object")
    if len(records) > config.max_items:
        raise CapacityExceededError(config.label, config.max_items)
