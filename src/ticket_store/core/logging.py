"""
Ticket Store Structured Logging

All ticket_store loggers hang off one namespace logger that owns the stderr
handler. Its level comes from settings:
- TICKET_STORE_LOG_LEVEL (explicit level name)
- TICKET_STORE_DEBUG (legacy, enables DEBUG)
- WARNING otherwise

TICKET_STORE_LOG_JSON switches the handler to one JSON object per line.
Fields passed through ``extra`` appear in both formats.

Usage:
    from ticket_store.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Saved records", extra={"record_type": "skill-builds"})
    logger.warning("Failed to lock ticket", extra={"ticket": 7})
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from .config import get_settings

LOGGER_NAMESPACE = "ticket_store"

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "message",
    }
)


class StoreFormatter(logging.Formatter):
    """
    Renders records as ``[TICKET-STORE LEVEL] [module] message (k=v ...)``,
    or as a JSON object when json_output is set.
    """

    def __init__(self, json_output: bool = False) -> None:
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        extras = _extra_fields(record)
        trace = _render_exception(record)

        if self.json_output:
            document: dict[str, Any] = {
                "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                    timespec="seconds"
                ),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
                **extras,
            }
            if trace:
                document["exception"] = trace
            return json.dumps(document, default=str)

        short_name = record.name.rsplit(".", 1)[-1]
        line = f"[TICKET-STORE {record.levelname}] [{short_name}] {record.getMessage()}"
        if extras:
            line += " (" + " ".join(f"{key}={value}" for key, value in extras.items()) + ")"
        if trace:
            line += "\n" + trace
        return line


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS
    }


def _render_exception(record: logging.LogRecord) -> Optional[str]:
    if not record.exc_info:
        return None
    return "".join(traceback.format_exception(*record.exc_info))


# Handler installed on the namespace logger; None until first get_logger()
_namespace_handler: Optional[logging.Handler] = None


def _configure_namespace() -> logging.Logger:
    """Install the stderr handler on the namespace logger once."""
    global _namespace_handler

    root = logging.getLogger(LOGGER_NAMESPACE)
    if _namespace_handler is None:
        settings = get_settings()
        _namespace_handler = logging.StreamHandler(sys.stderr)
        _namespace_handler.setFormatter(StoreFormatter(json_output=settings.log_json))
        root.addHandler(_namespace_handler)
        root.setLevel(settings.log_level_int)
        root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Return the logger for a module, configuring the namespace on first use.

    Names outside the ticket_store namespace are nested under it so every
    logger shares the same handler and level.
    """
    _configure_namespace()
    if name != LOGGER_NAMESPACE and not name.startswith(f"{LOGGER_NAMESPACE}."):
        name = f"{LOGGER_NAMESPACE}.{name}"
    return logging.getLogger(name)


def set_log_level(level: int) -> None:
    """Change the level of every ticket_store logger at once."""
    _configure_namespace().setLevel(level)


def reset_logging() -> None:
    """
    Detach the handler and let ticket_store records reach the root logger.

    Used by test fixtures so caplog sees records and settings changes made
    by one test do not leak into the next.
    """
    global _namespace_handler

    root = logging.getLogger(LOGGER_NAMESPACE)
    if _namespace_handler is not None:
        root.removeHandler(_namespace_handler)
        _namespace_handler = None
    root.setLevel(logging.NOTSET)
    root.propagate = True
