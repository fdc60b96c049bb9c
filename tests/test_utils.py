"""Tests for utils — config lookup and lock file naming."""

from __future__ import annotations

from pathlib import Path

import pytest

from utils import DEFAULTS, get_config, get_lock_file


class TestGetConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PROCGUARD_LOG_LEVEL", raising=False)
        assert get_config("log_level") == DEFAULTS["log_level"]

    def test_env_wins(self, monkeypatch):
        monkeypatch.setenv("PROCGUARD_LOCK_DIR", "/var/run/workers")
        assert get_config("lock_dir") == "/var/run/workers"

    def test_blank_env_ignored(self, monkeypatch):
        monkeypatch.setenv("PROCGUARD_POLL_INTERVAL", "  ")
        assert get_config("poll_interval") == "1"

    def test_unknown_key_default(self):
        assert get_config("missing_key", "fallback") == "fallback"


class TestGetLockFile:
    def test_name_only(self, tmp_path):
        assert get_lock_file("mailer", lock_dir=tmp_path) == tmp_path / "mailer.lock"

    def test_process_id(self, tmp_path):
        assert get_lock_file("mailer", 3, tmp_path) == tmp_path / "mailer.3.lock"

    def test_unsafe_characters(self, tmp_path):
        assert get_lock_file("../etc/passwd", lock_dir=tmp_path) == tmp_path / "etc_passwd.lock"

    def test_config_dir(self, monkeypatch):
        monkeypatch.setenv("PROCGUARD_LOCK_DIR", "/srv/locks")
        assert get_lock_file("mailer") == Path("/srv/locks/mailer.lock")

    def test_empty_name(self):
        with pytest.raises(ValueError):
            get_lock_file("..")
