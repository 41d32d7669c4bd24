"""
Ticket Store Core Module

Shared infrastructure: the ticket client, configuration, errors, logging,
retry policy and formatting helpers.
"""

from .client import AsyncTicketClient, Comment, Ticket, create_ticket_client
from .config import TicketStoreSettings, get_settings, reset_settings
from .errors import (
    CapacityExceededError,
    DecodeError,
    NotFoundError,
    ResourceNotFoundError,
    StoreError,
    TransportError,
    ValidationError,
)
from .formatters import format_datetime, get_utc_now, get_utc_timestamp, parse_datetime
from .logging import get_logger, reset_logging
from .retry import RetryableTicketError, ticket_retrying

__all__ = [
    # Client
    "AsyncTicketClient",
    "Comment",
    "Ticket",
    "create_ticket_client",
    # Config
    "TicketStoreSettings",
    "get_settings",
    "reset_settings",
    # Errors
    "StoreError",
    "NotFoundError",
    "CapacityExceededError",
    "ValidationError",
    "TransportError",
    "ResourceNotFoundError",
    "DecodeError",
    "RetryableTicketError",
    # Formatters
    "format_datetime",
    "get_utc_now",
    "get_utc_timestamp",
    "parse_datetime",
    # Logging
    "get_logger",
    "reset_logging",
    # Retry
    "ticket_retrying",
]
