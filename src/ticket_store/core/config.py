"""
Ticket Store Configuration

Settings are read once from the environment (and a .env file in the working
directory, when present) and cached. Invalid values fail on first access.

Usage:
    from ticket_store.core.config import get_settings

    settings = get_settings()
    settings.require_repository()

Environment Variables:
    TICKET_STORE_TOKEN: Bearer token of the automated service identity
    TICKET_STORE_REPO_OWNER: Owner of the repository holding the tickets
    TICKET_STORE_REPO_NAME: Name of the repository holding the tickets
    TICKET_STORE_API_URL: REST API base URL (default: https://api.github.com)
    TICKET_STORE_TIMEOUT: Request timeout in seconds
    TICKET_STORE_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    TICKET_STORE_DEBUG: Legacy debug flag (enables DEBUG level if set)
    TICKET_STORE_LOG_JSON: Output logs as JSON
    TICKET_STORE_NO_RETRY: Disable HTTP retry logic in the CLI
    TICKET_STORE_BACKUP_DIR: Output directory for ticket backups

Legacy names (no TICKET_STORE_ prefix):
    WIKI_BOT_TOKEN, WIKI_REPO_OWNER, WIKI_REPO_NAME
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_API_URL, DEFAULT_TIMEOUT
from .errors import ValidationError


ENV_FILE = ".env"


class TicketStoreSettings(BaseSettings):
    """
    Ticket store configuration settings with validation.

    Environment variables are automatically loaded with the TICKET_STORE_ prefix.
    Repository credentials also accept the legacy WIKI_* names.
    """

    model_config = SettingsConfigDict(
        env_prefix="TICKET_STORE_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # =========================================================================
    # Repository & Credentials
    # =========================================================================

    token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("TICKET_STORE_TOKEN", "WIKI_BOT_TOKEN"),
        description="Bearer token of the automated service identity",
    )

    repo_owner: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("TICKET_STORE_REPO_OWNER", "WIKI_REPO_OWNER"),
        description="Owner of the repository holding the tickets",
    )

    repo_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("TICKET_STORE_REPO_NAME", "WIKI_REPO_NAME"),
        description="Name of the repository holding the tickets",
    )

    api_url: str = Field(
        default=DEFAULT_API_URL,
        description="Ticketing platform REST API base URL",
    )

    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        description="Request timeout in seconds",
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for ticket store components",
    )

    debug: bool = Field(
        default=False,
        description="Old-style switch: DEBUG unless log_level is set explicitly",
    )

    log_json: bool = Field(
        default=False,
        description="Emit one JSON object per log line",
    )

    # =========================================================================
    # Optional Behaviour
    # =========================================================================

    no_retry: bool = Field(
        default=False,
        description="Disable HTTP retry logic (tenacity) in the CLI",
    )

    backup_dir: Path = Field(
        default=Path("backups") / "tickets",
        description="Output directory for ticket backups",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("api_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def effective_log_level(self) -> str:
        """log_level, or DEBUG when only the old debug switch is on."""
        return "DEBUG" if self.debug and self.log_level == "WARNING" else self.log_level

    @property
    def log_level_int(self) -> int:
        return getattr(logging, self.effective_log_level)

    @property
    def repository_configured(self) -> bool:
        return bool(self.token and self.repo_owner and self.repo_name)

    def require_repository(self) -> None:
        """
        Ensure the token and repository coordinates are configured.

        Raises:
            ValidationError: Naming every missing setting
        """
        missing = [
            name
            for name, value in (
                ("TICKET_STORE_TOKEN", self.token),
                ("TICKET_STORE_REPO_OWNER", self.repo_owner),
                ("TICKET_STORE_REPO_NAME", self.repo_name),
            )
            if not value
        ]
        if missing:
            raise ValidationError(f"Missing configuration: {', '.join(missing)}")


# =============================================================================
# Singleton Accessor
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> TicketStoreSettings:
    """Settings loaded on first call and shared afterwards."""
    return TicketStoreSettings()


def reset_settings() -> None:
    """Forget the cached settings so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
