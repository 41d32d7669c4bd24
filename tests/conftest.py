"""
Ticket Store Test Suite - Shared Fixtures

Provides an in-memory ticket client for store tests and resets module-level
singletons (settings, logging) around every test.
"""

from __future__ import annotations

import asyncio
import copy
import os
from typing import Any, Optional

import pytest

from ticket_store.core.client import Comment, Ticket
from ticket_store.core.errors import ResourceNotFoundError, TransportError

ENV_VARS = (
    "TICKET_STORE_TOKEN",
    "TICKET_STORE_REPO_OWNER",
    "TICKET_STORE_REPO_NAME",
    "TICKET_STORE_API_URL",
    "TICKET_STORE_TIMEOUT",
    "TICKET_STORE_LOG_LEVEL",
    "TICKET_STORE_DEBUG",
    "TICKET_STORE_LOG_JSON",
    "TICKET_STORE_NO_RETRY",
    "TICKET_STORE_BACKUP_DIR",
    "WIKI_BOT_TOKEN",
    "WIKI_REPO_OWNER",
    "WIKI_REPO_NAME",
)


# =============================================================================
# In-Memory Ticket Client
# =============================================================================


class FakeTicketClient:
    """
    In-memory stand-in for AsyncTicketClient.

    Tickets and comments live in dicts. Every call is recorded in ``calls``
    as (method, *args). Assign an exception to ``failures[method]`` to make
    that method raise it on every call.
    """

    def __init__(self, owner: str = "acme", repo: str = "records") -> None:
        self.owner = owner
        self.repo = repo
        self.tickets: dict[int, Ticket] = {}
        self.comments: dict[int, Comment] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.failures: dict[str, Exception] = {}
        self.closed = False
        self._next_ticket = 1
        self._next_comment = 1001

    # -------------------------------------------------------------------------
    # Test helpers
    # -------------------------------------------------------------------------

    def seed_ticket(
        self, title: str, body: Optional[str], labels: list[str], state: str = "open"
    ) -> Ticket:
        ticket = Ticket(
            number=self._next_ticket, title=title, body=body, labels=list(labels), state=state
        )
        self.tickets[ticket.number] = ticket
        self._next_ticket += 1
        return ticket

    def seed_comment(self, ticket_number: int, body: Optional[str]) -> Comment:
        comment = Comment(id=self._next_comment, body=body, ticket_number=ticket_number)
        self.comments[comment.id] = comment
        self._next_comment += 1
        return comment

    def method_calls(self, method: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == method]

    def writes(self) -> list[tuple[Any, ...]]:
        return [
            call
            for call in self.calls
            if call[0] not in ("list_by_labels", "get_comment", "list_comments")
        ]

    async def _enter(self, method: str, *args: Any) -> None:
        # Yield so concurrent store calls can interleave
        await asyncio.sleep(0)
        self.calls.append((method, *args))
        if method in self.failures:
            raise self.failures[method]

    def _ticket(self, number: int) -> Ticket:
        if number not in self.tickets:
            raise ResourceNotFoundError(f"ticket {number}: not found", status_code=404)
        return self.tickets[number]

    def _comment(self, comment_id: int) -> Comment:
        if comment_id not in self.comments:
            raise ResourceNotFoundError(f"comment {comment_id}: not found", status_code=404)
        return self.comments[comment_id]

    # -------------------------------------------------------------------------
    # AsyncTicketClient surface
    # -------------------------------------------------------------------------

    async def aclose(self) -> None:
        self.closed = True

    async def list_by_labels(self, labels: list[str], state: str = "open") -> list[Ticket]:
        await self._enter("list_by_labels", list(labels))
        return [
            copy.deepcopy(ticket)
            for ticket in self.tickets.values()
            if ticket.state == state and all(label in ticket.labels for label in labels)
        ]

    async def create_ticket(self, title: str, body: str, labels: list[str]) -> Ticket:
        await self._enter("create_ticket", title, body, list(labels))
        return copy.deepcopy(self.seed_ticket(title, body, labels))

    async def update_ticket(
        self,
        number: int,
        *,
        title: Optional[str] = None,
        body: Optional[str] = None,
        state: Optional[str] = None,
    ) -> Ticket:
        await self._enter("update_ticket", number, title, body)
        ticket = self._ticket(number)
        if title is not None:
            ticket.title = title
        if body is not None:
            ticket.body = body
        if state is not None:
            ticket.state = state
        return copy.deepcopy(ticket)

    async def add_label(self, number: int, label: str) -> None:
        await self._enter("add_label", number, label)
        ticket = self._ticket(number)
        if label not in ticket.labels:
            ticket.labels.append(label)

    async def lock_ticket(self, number: int, reason: str = "off-topic") -> None:
        await self._enter("lock_ticket", number)
        self._ticket(number).locked = True

    async def create_comment(self, ticket_number: int, body: str) -> Comment:
        await self._enter("create_comment", ticket_number, body)
        self._ticket(ticket_number)
        return copy.deepcopy(self.seed_comment(ticket_number, body))

    async def update_comment(self, comment_id: int, body: str) -> Comment:
        await self._enter("update_comment", comment_id, body)
        comment = self._comment(comment_id)
        comment.body = body
        return copy.deepcopy(comment)

    async def delete_comment(self, comment_id: int) -> None:
        await self._enter("delete_comment", comment_id)
        self._comment(comment_id)
        del self.comments[comment_id]

    async def get_comment(self, comment_id: int) -> Comment:
        await self._enter("get_comment", comment_id)
        return copy.deepcopy(self._comment(comment_id))

    async def list_comments(self, ticket_number: int) -> list[Comment]:
        await self._enter("list_comments", ticket_number)
        self._ticket(ticket_number)
        return [
            copy.deepcopy(comment)
            for comment in self.comments.values()
            if comment.ticket_number == ticket_number
        ]


@pytest.fixture
def fake_client() -> FakeTicketClient:
    """Fresh in-memory ticket client."""
    return FakeTicketClient()


@pytest.fixture
def transport_error() -> TransportError:
    return TransportError("Service unavailable", status_code=503)


# =============================================================================
# Singleton Reset
# =============================================================================


@pytest.fixture(autouse=True)
def reset_all_singletons(monkeypatch):
    """
    Reset module-level singletons and isolate tests from the caller's
    TICKET_STORE_* / WIKI_* environment.
    """
    from ticket_store.core.config import reset_settings
    from ticket_store.core.logging import reset_logging

    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    reset_settings()
    reset_logging()
    yield
    reset_settings()
    reset_logging()


@pytest.fixture
def configured_env(monkeypatch):
    """Environment with a token and repository configured."""
    monkeypatch.setenv("TICKET_STORE_TOKEN", "test-token")
    monkeypatch.setenv("TICKET_STORE_REPO_OWNER", "acme")
    monkeypatch.setenv("TICKET_STORE_REPO_NAME", "records")
    return os.environ
