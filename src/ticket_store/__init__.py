"""
Ticket Store - document storage on top of an issue tracker

Persists application records as tickets and ticket comments in a repository
the service owns.

Usage as library:
    from ticket_store import AsyncTicketClient, CollectionStore, RegistryStore

    async with AsyncTicketClient(token, "owner", "repo") as client:
        builds = await CollectionStore(client).get("skill-builds", 42, "alice")
        picture = await RegistryStore(client).get_one("profile-pictures", 42)

Usage as CLI:
    python -m ticket_store records skill-builds 42 alice
    python -m ticket_store registry-list profile-pictures
    python -m ticket_store backup --label skill-builds

Package structure:
    ticket_store/
    ├── core/           # Client, config, errors, logging, retry
    ├── models/         # Record type catalogue
    ├── services/       # Collection store, registry store, rate limiter, backup
    └── commands/       # CLI command implementations
"""

__version__ = "1.0.0"

from .core import (
    AsyncTicketClient,
    CapacityExceededError,
    DecodeError,
    NotFoundError,
    ResourceNotFoundError,
    StoreError,
    TransportError,
    ValidationError,
    create_ticket_client,
    get_settings,
)
from .services import (
    CollectionStore,
    RateLimitDecision,
    RateLimiter,
    RecordChange,
    RegistryStore,
    export_tickets,
    hash_identifier,
    write_backup,
)

__all__ = [
    "__version__",
    "AsyncTicketClient",
    "create_ticket_client",
    "get_settings",
    "CollectionStore",
    "RecordChange",
    "RegistryStore",
    "RateLimiter",
    "RateLimitDecision",
    "hash_identifier",
    "export_tickets",
    "write_backup",
    "StoreError",
    "NotFoundError",
    "CapacityExceededError",
    "ValidationError",
    "TransportError",
    "ResourceNotFoundError",
    "DecodeError",
]
