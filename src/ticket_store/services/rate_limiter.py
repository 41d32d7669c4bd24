"""
Fixed-window rate limiting on top of the registry store.

Each identifier (usually a hashed e-mail address) owns one entry in the
"rate-limits" registry:

    {"count": 3, "windowStart": 1718000000000}

windowStart is epoch milliseconds. Bursts straddling a window boundary can
reach twice the limit.
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..core.errors import ValidationError
from ..core.logging import get_logger
from .locks import KeyedLocks
from .registry_store import RegistryStore

logger = get_logger(__name__)

RATE_LIMIT_RECORD_TYPE = "rate-limits"


def hash_identifier(value: str) -> str:
    """
    Hash a caller identifier into a registry-safe key.

    >>> hash_identifier(" Alice@Example.com ") == hash_identifier("alice@example.com")
    True
    """
    return hashlib.sha256(value.strip().lower().encode("utf-8")).hexdigest()


@dataclass
class RateLimitDecision:
    """Outcome of a rate limit check."""

    allowed: bool
    count: int
    reset_at: Optional[datetime] = None
    retry_after_minutes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "count": self.count,
            "reset_at": self.reset_at.isoformat() if self.reset_at else None,
            "retry_after_minutes": self.retry_after_minutes,
        }


def _to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _from_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def _read_window(entry: Optional[dict[str, Any]]) -> Optional[tuple[int, int]]:
    """Return (count, windowStart) or None when the entry is absent or malformed."""
    if not entry:
        return None
    count = entry.get("count")
    window_start = entry.get("windowStart")
    for value in (count, window_start):
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return None
    return int(count), int(window_start)


class RateLimiter:
    """
    Counts attempts per identifier within a fixed time window.

    Usage:
        limiter = RateLimiter(RegistryStore(client))
        decision = await limiter.check_and_increment(hash_identifier(email), 5, 1)
        if not decision.allowed:
            ...
    """

    def __init__(self, registry: RegistryStore) -> None:
        self.registry = registry
        self._locks = KeyedLocks()

    async def check_and_increment(
        self,
        identifier_hash: str,
        max_count: int,
        window_hours: float,
        *,
        now: Optional[datetime] = None,
    ) -> RateLimitDecision:
        """
        Count one attempt against an identifier.

        A denied attempt is not written, so the stored count never exceeds
        max_count. An unreadable counter fails the check instead of starting a
        fresh window over the stored one.

        Raises:
            ValidationError: If the limits are not positive or the hash is not a valid key
            TransportError: If the counter cannot be read or written
        """
        if max_count < 1:
            raise ValidationError("max_count must be at least 1")
        if window_hours <= 0:
            raise ValidationError("window_hours must be positive")

        now = now or datetime.now(timezone.utc)
        window = timedelta(hours=window_hours)

        async with self._locks.hold(identifier_hash):
            entry = await self.registry.fetch_one(RATE_LIMIT_RECORD_TYPE, identifier_hash)
            current = _read_window(entry)

            if current is not None:
                count, window_start_ms = current
                window_start = _from_millis(window_start_ms)

                if now - window_start < window:
                    reset_at = window_start + window
                    if count >= max_count:
                        retry_after = math.ceil((reset_at - now).total_seconds() / 60)
                        logger.info(
                            "Rate limit exceeded",
                            extra={"identifier": identifier_hash[:12], "count": count},
                        )
                        return RateLimitDecision(
                            allowed=False,
                            count=count,
                            reset_at=reset_at,
                            retry_after_minutes=retry_after,
                        )

                    await self.registry.save(
                        RATE_LIMIT_RECORD_TYPE,
                        identifier_hash,
                        {"count": count + 1, "windowStart": window_start_ms},
                    )
                    return RateLimitDecision(allowed=True, count=count + 1, reset_at=reset_at)

            await self.registry.save(
                RATE_LIMIT_RECORD_TYPE,
                identifier_hash,
                {"count": 1, "windowStart": _to_millis(now)},
            )
            return RateLimitDecision(allowed=True, count=1, reset_at=now + window)
