"""
Ticket Store Error Taxonomy

Every failure a store surfaces to its caller is a StoreError subclass:

    StoreError
    ├── NotFoundError            ticket, comment or record absent
    ├── CapacityExceededError    collection already at its limit
    ├── ValidationError          malformed input, raised before any network call
    ├── TransportError           the ticketing API call itself failed
    │   └── ResourceNotFoundError  HTTP 404 (also a NotFoundError)
    └── DecodeError              stored body could not be parsed

DecodeError never leaves a store: corrupt bodies decode to empty results.
"""

from __future__ import annotations

from typing import Any, Optional


class StoreError(Exception):
    """Base exception for ticket store failures."""

    error_type = "store_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to JSON-serializable dict."""
        return {"error": self.error_type, "message": self.message}


class NotFoundError(StoreError):
    """A ticket, comment, or record does not exist."""

    error_type = "not_found"


class CapacityExceededError(StoreError):
    """A collection already holds its maximum number of records."""

    error_type = "capacity_exceeded"

    def __init__(self, record_type: str, limit: int) -> None:
        self.record_type = record_type
        self.limit = limit
        super().__init__(
            f"Maximum {limit} {record_type} allowed. Please delete an old one first."
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["limit"] = self.limit
        result["record_type"] = self.record_type
        return result


class ValidationError(StoreError):
    """Caller input is malformed."""

    error_type = "validation_error"


class TransportError(StoreError):
    """The ticketing platform API call failed."""

    error_type = "transport_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.response = response or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.status_code:
            result["status_code"] = self.status_code
        return result


class ResourceNotFoundError(TransportError, NotFoundError):
    """The ticketing platform answered 404 for a ticket or comment."""

    error_type = "not_found"


class DecodeError(StoreError):
    """A stored body could not be parsed."""

    error_type = "decode_error"
