"""Shared test fixtures and configuration.

Keeps tests away from the real keychain, log directory and data directory.
"""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

from todovault.models.crypto.keys import WrappingKey

# Low iteration count so tests that open real databases stay fast.
FAST_KDF_ITERATIONS = 1_000


class MemoryKeyring(KeyringBackend):
    """In-memory keyring backend standing in for the OS keychain."""

    priority = 1

    def __init__(self):
        super().__init__()
        self.passwords: dict[tuple[str, str], str] = {}

    def get_password(self, service, username):
        return self.passwords.get((service, username))

    def set_password(self, service, username, password):
        self.passwords[(service, username)] = password

    def delete_password(self, service, username):
        try:
            del self.passwords[(service, username)]
        except KeyError as e:
            raise PasswordDeleteError(username) from e


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_logger(tmp_path):
    """Send log output to a per-test directory."""
    import todovault.utils.logger as logger_mod

    logger_mod._logger = None
    logging.getLogger("todovault").handlers.clear()
    log_dir = tmp_path / "logs"
    with patch("todovault.utils.logger.user_log_dir", return_value=str(log_dir)):
        yield log_dir
    for handler in logging.getLogger("todovault").handlers:
        handler.close()
    logging.getLogger("todovault").handlers.clear()
    logger_mod._logger = None


@pytest.fixture(autouse=True)
def reset_database():
    """Close the process-wide store after each test."""
    from todovault.adapters.sqlite.database import close_database

    close_database()
    yield
    close_database()


@pytest.fixture()
def tmp_config(tmp_path):
    """Provide a real ConfigService backed by a temporary directory.

    Patches platform dirs so config/data files land in *tmp_path* only.
    Also clears the lru_cache so each test gets a fresh service instance.
    """
    from todovault.services.config_service import ConfigService, get_config_service

    config_dir = str(tmp_path / "config")
    data_dir = str(tmp_path / "data")
    get_config_service.cache_clear()
    with patch(
        "todovault.services.config_service.user_config_dir", return_value=config_dir
    ):
        with patch(
            "todovault.services.config_service.user_data_dir", return_value=data_dir
        ):
            yield ConfigService()
    get_config_service.cache_clear()


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------


@pytest.fixture()
def memory_keyring():
    return MemoryKeyring()


@pytest.fixture()
def wrapping_key():
    return WrappingKey.generate()


@pytest.fixture()
def passphrase():
    from todovault.models.crypto.passphrase import generate_passphrase, passphrase_to_bytes

    return passphrase_to_bytes(generate_passphrase(64))


@pytest.fixture()
def kdf_iterations():
    return FAST_KDF_ITERATIONS


@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "encrypted_todo.db"


@pytest.fixture()
def store(db_path, passphrase):
    """An open EncryptedTaskStore on a fresh database."""
    from todovault.adapters.sqlite.task_store import EncryptedTaskStore

    task_store = EncryptedTaskStore.open(
        db_path, passphrase, poll_interval=None, kdf_iterations=FAST_KDF_ITERATIONS
    )
    yield task_store
    task_store.close()
