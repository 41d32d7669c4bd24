"""
Tests for centralized configuration module.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from unittest import mock

import pydantic
import pytest

from ticket_store.core.config import (
    TicketStoreSettings,
    get_settings,
    reset_settings,
)
from ticket_store.core.errors import ValidationError


class TestTicketStoreSettings:
    """Test TicketStoreSettings class."""

    def test_default_values(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = TicketStoreSettings(_env_file=None)

            assert settings.token is None
            assert settings.repo_owner is None
            assert settings.repo_name is None
            assert settings.api_url == "https://api.github.com"
            assert settings.timeout == 30.0
            assert settings.log_level == "WARNING"
            assert settings.debug is False
            assert settings.log_json is False
            assert settings.no_retry is False
            assert settings.backup_dir == Path("backups") / "tickets"
            assert settings.repository_configured is False

    def test_prefixed_env(self):
        env = {
            "TICKET_STORE_TOKEN": "tok",
            "TICKET_STORE_REPO_OWNER": "acme",
            "TICKET_STORE_REPO_NAME": "records",
            "TICKET_STORE_TIMEOUT": "5",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = TicketStoreSettings(_env_file=None)

            assert settings.token == "tok"
            assert settings.repo_owner == "acme"
            assert settings.repo_name == "records"
            assert settings.timeout == 5.0
            assert settings.repository_configured is True

    def test_legacy_env_names(self):
        env = {
            "WIKI_BOT_TOKEN": "legacy-token",
            "WIKI_REPO_OWNER": "wiki-owner",
            "WIKI_REPO_NAME": "wiki-repo",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = TicketStoreSettings(_env_file=None)

            assert settings.token == "legacy-token"
            assert settings.repo_owner == "wiki-owner"
            assert settings.repo_name == "wiki-repo"

    def test_prefixed_name_wins_over_legacy(self):
        env = {"TICKET_STORE_TOKEN": "new", "WIKI_BOT_TOKEN": "old"}
        with mock.patch.dict(os.environ, env, clear=True):
            assert TicketStoreSettings(_env_file=None).token == "new"

    def test_api_url_trailing_slash(self):
        with mock.patch.dict(
            os.environ, {"TICKET_STORE_API_URL": "https://ghe.example.com/api/v3/"}, clear=True
        ):
            settings = TicketStoreSettings(_env_file=None)
            assert settings.api_url == "https://ghe.example.com/api/v3"

    def test_log_level_case_insensitive(self):
        with mock.patch.dict(os.environ, {"TICKET_STORE_LOG_LEVEL": "info"}, clear=True):
            settings = TicketStoreSettings(_env_file=None)
            assert settings.log_level == "INFO"
            assert settings.log_level_int == logging.INFO

    def test_legacy_debug_flag(self):
        with mock.patch.dict(os.environ, {"TICKET_STORE_DEBUG": "1"}, clear=True):
            settings = TicketStoreSettings(_env_file=None)
            assert settings.effective_log_level == "DEBUG"

    def test_explicit_level_beats_debug_flag(self):
        env = {"TICKET_STORE_DEBUG": "1", "TICKET_STORE_LOG_LEVEL": "ERROR"}
        with mock.patch.dict(os.environ, env, clear=True):
            assert TicketStoreSettings(_env_file=None).effective_log_level == "ERROR"

    def test_invalid_timeout(self):
        with mock.patch.dict(os.environ, {"TICKET_STORE_TIMEOUT": "0"}, clear=True):
            with pytest.raises(pydantic.ValidationError):
                TicketStoreSettings(_env_file=None)


class TestRequireRepository:
    """Test repository configuration check."""

    def test_lists_every_missing_setting(self):
        with mock.patch.dict(os.environ, {"TICKET_STORE_TOKEN": "tok"}, clear=True):
            settings = TicketStoreSettings(_env_file=None)

            with pytest.raises(ValidationError) as exc_info:
                settings.require_repository()

        message = exc_info.value.message
        assert "TICKET_STORE_REPO_OWNER" in message
        assert "TICKET_STORE_REPO_NAME" in message
        assert "TICKET_STORE_TOKEN" not in message

    def test_passes_when_configured(self, configured_env):
        get_settings().require_repository()


class TestSingleton:
    """Test cached settings accessor."""

    def test_cached_until_reset(self, monkeypatch):
        first = get_settings()
        assert get_settings() is first

        monkeypatch.setenv("TICKET_STORE_LOG_JSON", "true")
        assert get_settings().log_json is False

        reset_settings()
        assert get_settings().log_json is True

    def test_reads_dotenv_in_working_directory(self, monkeypatch, tmp_path):
        (tmp_path / ".env").write_text(
            "TICKET_STORE_REPO_OWNER=acme\nWIKI_REPO_NAME=records\n", encoding="utf-8"
        )
        monkeypatch.chdir(tmp_path)

        settings = get_settings()

        assert settings.repo_owner == "acme"
        assert settings.repo_name == "records"
