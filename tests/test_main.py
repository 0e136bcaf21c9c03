"""Tests for the top-level CLI application."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from keyring.backends import fail
from typer.testing import CliRunner

from todovault import __version__
from todovault.main import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_no_args_shows_help():
    result = runner.invoke(app, [])
    assert "tasks" in result.output


def test_tasks_help():
    result = runner.invoke(app, ["tasks", "--help"])

    assert result.exit_code == 0
    for command in ("add", "list", "complete", "reopen", "delete", "clear-completed"):
        assert command in result.stdout


class TestEndToEnd:
    """Full stack: config dirs, keychain, key store and database."""

    @pytest.fixture(autouse=True)
    def keychain(self, tmp_config, memory_keyring):
        with patch("keyring.get_keyring", return_value=memory_keyring):
            yield memory_keyring

    def test_add_complete_list(self, tmp_config, keychain):
        from todovault.adapters.sqlite.database import close_database

        assert runner.invoke(app, ["tasks", "add", "Buy milk"]).exit_code == 0
        close_database()
        assert runner.invoke(app, ["tasks", "complete", "1"]).exit_code == 0
        close_database()

        result = runner.invoke(app, ["tasks", "list", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == [
            {"id": 1, "title": "Buy milk", "description": "", "is_completed": True}
        ]
        assert tmp_config.db_path.exists()
        assert tmp_config.prefs_path.exists()
        assert ("todovault", "wrapping_key") in keychain.passwords

    def test_missing_keychain_is_refused(self, tmp_config):
        with patch("keyring.get_keyring", return_value=fail.Keyring()):
            result = runner.invoke(app, ["tasks", "list"])

        assert result.exit_code == 7
        assert not tmp_config.db_path.exists()
