"""Tests for ConfigService."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from todovault.models.config_models import AppConfig


def test_first_load_writes_defaults(tmp_config):
    config = tmp_config.load_config()

    assert config == AppConfig()
    assert tmp_config.config_path.exists()


def test_default_paths(tmp_config, tmp_path):
    assert tmp_config.data_dir == tmp_path / "data"
    assert tmp_config.db_path == tmp_path / "data" / "encrypted_todo.db"
    assert tmp_config.prefs_path == tmp_path / "data" / "secret_shared_prefs"


def test_custom_data_dir(tmp_config, tmp_path):
    tmp_config.config_path.parent.mkdir(parents=True)
    tmp_config.config_path.write_text(
        json.dumps({"storage": {"data_dir": str(tmp_path / "vault")}})
    )

    assert tmp_config.db_path == tmp_path / "vault" / "encrypted_todo.db"


def test_save_round_trip(tmp_config):
    tmp_config.config.watch.poll_interval = 0.25
    tmp_config.save_config()

    from todovault.services.config_service import ConfigService

    reloaded = ConfigService()
    reloaded.config_path = tmp_config.config_path
    assert reloaded.config.watch.poll_interval == 0.25


def test_invalid_file_raises(tmp_config):
    tmp_config.config_path.parent.mkdir(parents=True)
    tmp_config.config_path.write_text(
        json.dumps({"security": {"passphrase_length": 10}})
    )

    with pytest.raises(RuntimeError, match="Failed to load config"):
        tmp_config.load_config()


def test_filename_must_not_be_a_path():
    with pytest.raises(ValueError):
        AppConfig.model_validate({"storage": {"db_filename": "../escape.db"}})


def test_lock_path_sits_in_data_dir(tmp_config):
    assert tmp_config.lock_path.parent == tmp_config.data_dir
    assert tmp_config.lock_path.name == "vault.lock"


def test_get_config_service_is_cached(tmp_config):
    from todovault.services.config_service import get_config_service

    assert get_config_service() is get_config_service()
