"""
Ticket Store Async HTTP Client

Thin async adapter over the ticketing platform's REST API (GitHub Issues).
Uses httpx.AsyncClient for true async I/O and connection pooling.

The client holds no business logic: it lists, creates and mutates tickets and
ticket comments, and maps every failure to a TransportError. A 404 becomes the
distinguished ResourceNotFoundError. Retry is off unless the caller asks for it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from .constants import (
    API_ACCEPT_HEADER,
    API_VERSION,
    DEFAULT_API_URL,
    DEFAULT_TIMEOUT,
    LOCK_REASON,
    MAX_PAGES,
    PER_PAGE,
    USER_AGENT,
)
from .errors import ResourceNotFoundError, TransportError
from .logging import get_logger
from .retry import RetryableTicketError, classify_httpx_error, ticket_retrying

logger = get_logger(__name__)

_ISSUE_URL_NUMBER = re.compile(r"/issues/(\d+)$")


# =============================================================================
# Response Types
# =============================================================================


@dataclass
class Ticket:
    """An issue on the ticketing platform, used as a document container."""

    number: int
    title: str
    body: Optional[str]
    labels: list[str] = field(default_factory=list)
    state: str = "open"
    locked: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Ticket:
        """Build a ticket from an API payload. Labels may be strings or objects."""
        labels: list[str] = []
        for label in data.get("labels") or []:
            if isinstance(label, str):
                labels.append(label)
            elif isinstance(label, dict) and label.get("name"):
                labels.append(label["name"])
        return cls(
            number=int(data["number"]),
            title=data.get("title") or "",
            body=data.get("body"),
            labels=labels,
            state=data.get("state") or "open",
            locked=bool(data.get("locked", False)),
        )

    def has_label(self, name: str) -> bool:
        return name in self.labels

    def has_label_prefix(self, prefix: str) -> bool:
        return any(label.startswith(prefix) for label in self.labels)

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "title": self.title,
            "body": self.body,
            "labels": list(self.labels),
            "state": self.state,
            "locked": self.locked,
        }


@dataclass
class Comment:
    """A comment attached to a ticket, used as an individually addressable document."""

    id: int
    body: Optional[str]
    ticket_number: Optional[int] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Comment:
        ticket_number = None
        match = _ISSUE_URL_NUMBER.search(data.get("issue_url") or "")
        if match:
            ticket_number = int(match.group(1))
        return cls(id=int(data["id"]), body=data.get("body"), ticket_number=ticket_number)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "body": self.body, "ticket_number": self.ticket_number}


# =============================================================================
# Async Client
# =============================================================================


class AsyncTicketClient:
    """
    Async HTTP client for ticket and comment operations.

    Must be used as an async context manager so the connection pool is
    opened and closed deterministically.

    Usage:
        async with AsyncTicketClient(token, "owner", "repo") as client:
            tickets = await client.list_by_labels(["skill-builds"])
            comment = await client.get_comment(12345)
    """

    def __init__(
        self,
        token: Optional[str],
        owner: str,
        repo: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        enable_retry: bool = False,
    ) -> None:
        """
        Initialize the ticket client.

        Args:
            token: Bearer token of the automated service identity
            owner: Repository owner
            repo: Repository name
            api_url: REST API base URL
            timeout: Request timeout in seconds
            enable_retry: Retry transient failures (429/5xx/network) with backoff
        """
        self.token: Optional[str] = token
        self.owner: str = owner
        self.repo: str = repo
        self.api_url: str = api_url.rstrip("/")
        self.timeout: float = timeout
        self.enable_retry: bool = enable_retry
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> AsyncTicketClient:
        """Enter async context and create httpx client."""
        headers = {
            "Accept": API_ACCEPT_HEADER,
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            timeout=httpx.Timeout(self.timeout),
            headers=headers,
        )
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> None:
        """Exit async context and close httpx client."""
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _repo_path(self, suffix: str) -> str:
        return f"/repos/{self.owner}/{self.repo}{suffix}"

    # =========================================================================
    # Request Plumbing
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Issue a request, with retry when enabled.

        Raises:
            ResourceNotFoundError: On HTTP 404
            TransportError: On any other HTTP or network failure
        """
        if not self.enable_retry:
            return await self._request_once(method, path, params, json)

        async for attempt in ticket_retrying():
            with attempt:
                return await self._request_once(method, path, params, json)
        return None  # pragma: no cover - AsyncRetrying reraises

    async def _request_once(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        if not self._client:
            raise TransportError("Client not initialized. Use 'async with' context manager.")

        try:
            response = await self._client.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise ResourceNotFoundError(
                    f"{method} {path}: not found", status_code=404
                ) from e
            raise classify_httpx_error(e) from e
        except httpx.RequestError as e:
            raise RetryableTicketError(f"Network error: {e}") from e

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON response from {method} {path}: {e}",
                status_code=response.status_code,
            ) from e

    # =========================================================================
    # Tickets
    # =========================================================================

    async def list_by_labels(self, labels: list[str], state: str = "open") -> list[Ticket]:
        """
        List every ticket carrying all of the given labels.

        Paginates until a short page (or the page limit); pull requests, which
        the issues endpoint also returns, are dropped.
        """
        tickets: list[Ticket] = []

        for page in range(1, MAX_PAGES + 1):
            params: dict[str, Any] = {"state": state, "per_page": PER_PAGE, "page": page}
            if labels:
                params["labels"] = ",".join(labels)

            data = await self._request("GET", self._repo_path("/issues"), params=params)
            if not isinstance(data, list):
                raise TransportError(f"Expected list response, got {type(data).__name__}")

            tickets.extend(
                Ticket.from_api(item) for item in data if "pull_request" not in item
            )

            if len(data) < PER_PAGE:
                break
        else:
            logger.warning(
                "Ticket listing truncated at page limit",
                extra={"labels": labels, "max_pages": MAX_PAGES},
            )

        return tickets

    async def create_ticket(self, title: str, body: str, labels: list[str]) -> Ticket:
        data = await self._request(
            "POST",
            self._repo_path("/issues"),
            json={"title": title, "body": body, "labels": labels},
        )
        return Ticket.from_api(data)

    async def update_ticket(
        self,
        number: int,
        *,
        title: Optional[str] = None,
        body: Optional[str] = None,
        state: Optional[str] = None,
    ) -> Ticket:
        """Update the given fields of a ticket; omitted fields are left untouched."""
        payload: dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        if body is not None:
            payload["body"] = body
        if state is not None:
            payload["state"] = state

        data = await self._request("PATCH", self._repo_path(f"/issues/{number}"), json=payload)
        return Ticket.from_api(data)

    async def add_label(self, number: int, label: str) -> None:
        await self._request(
            "POST", self._repo_path(f"/issues/{number}/labels"), json={"labels": [label]}
        )

    async def lock_ticket(self, number: int, reason: str = LOCK_REASON) -> None:
        """Lock a ticket so only collaborators (the service identity) can comment."""
        await self._request(
            "PUT", self._repo_path(f"/issues/{number}/lock"), json={"lock_reason": reason}
        )

    # =========================================================================
    # Comments
    # =========================================================================

    async def create_comment(self, ticket_number: int, body: str) -> Comment:
        data = await self._request(
            "POST", self._repo_path(f"/issues/{ticket_number}/comments"), json={"body": body}
        )
        return Comment.from_api(data)

    async def update_comment(self, comment_id: int, body: str) -> Comment:
        data = await self._request(
            "PATCH", self._repo_path(f"/issues/comments/{comment_id}"), json={"body": body}
        )
        return Comment.from_api(data)

    async def delete_comment(self, comment_id: int) -> None:
        await self._request("DELETE", self._repo_path(f"/issues/comments/{comment_id}"))

    async def get_comment(self, comment_id: int) -> Comment:
        """
        Fetch a single comment.

        Raises:
            ResourceNotFoundError: If the comment does not exist
        """
        data = await self._request("GET", self._repo_path(f"/issues/comments/{comment_id}"))
        return Comment.from_api(data)

    async def list_comments(self, ticket_number: int) -> list[Comment]:
        comments: list[Comment] = []

        for page in range(1, MAX_PAGES + 1):
            data = await self._request(
                "GET",
                self._repo_path(f"/issues/{ticket_number}/comments"),
                params={"per_page": PER_PAGE, "page": page},
            )
            if not isinstance(data, list):
                raise TransportError(f"Expected list response, got {type(data).__name__}")

            comments.extend(Comment.from_api(item) for item in data)
            if len(data) < PER_PAGE:
                break

        return comments


# =============================================================================
# Convenience Functions
# =============================================================================


async def create_ticket_client(
    token: Optional[str] = None,
    owner: Optional[str] = None,
    repo: Optional[str] = None,
    enable_retry: Optional[bool] = None,
) -> AsyncTicketClient:
    """
    Create and enter a ticket client context from settings.

    Explicit arguments override configured values. Remember to call aclose().

    Raises:
        ValidationError: If token or repository coordinates are missing
    """
    from .config import get_settings

    settings = get_settings()
    token = token or settings.token
    owner = owner or settings.repo_owner
    repo = repo or settings.repo_name
    if not (token and owner and repo):
        settings.require_repository()

    client = AsyncTicketClient(
        token=token,
        owner=owner or "",
        repo=repo or "",
        api_url=settings.api_url,
        timeout=settings.timeout,
        enable_retry=(not settings.no_retry) if enable_retry is None else enable_retry,
    )
    await client.__aenter__()
    return client
