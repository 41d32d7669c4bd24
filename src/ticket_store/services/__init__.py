"""
Ticket Store Services

Document stores layered on the ticket client:
- CollectionStore: one JSON-array ticket per (record type, user)
- RegistryStore: one comment per key under a shared registry ticket
- RateLimiter: fixed-window counters kept in the registry
- export_tickets / write_backup: JSON snapshots of open tickets
"""

from .backup import export_tickets, write_backup
from .collection_store import CollectionStore, RecordChange
from .locks import KeyedLocks
from .rate_limiter import RateLimitDecision, RateLimiter, hash_identifier
from .registry_store import RegistryStore

__all__ = [
    "CollectionStore",
    "RecordChange",
    "RegistryStore",
    "RateLimiter",
    "RateLimitDecision",
    "hash_identifier",
    "KeyedLocks",
    "export_tickets",
    "write_backup",
]
