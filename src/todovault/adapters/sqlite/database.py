"""Process-wide task store handle.

The first caller of ``get_database`` resolves the wrapping key and the
passphrase, then opens the store; every later caller gets the same handle.
Concurrent first calls block on one lock, so the database is never opened
twice.
"""

from __future__ import annotations

import asyncio
import atexit
import threading

from filelock import FileLock

from todovault.adapters.sqlite.task_store import EncryptedTaskStore
from todovault.services.config_service import ConfigService, get_config_service
from todovault.services.key_material_provider import KeyMaterialProvider
from todovault.services.secure_key_store import SecureKeyStore
from todovault.utils.logger import get_logger

_lock = threading.Lock()
_store: EncryptedTaskStore | None = None
_atexit_registered = False


def get_database_sync(
    config_service: ConfigService | None = None,
    key_provider: KeyMaterialProvider | None = None,
    key_store: SecureKeyStore | None = None,
) -> EncryptedTaskStore:
    """Return the open store, opening it on first use.

    Args:
        config_service: Source of paths and settings (default: cached service)
        key_provider: Wrapping key source (default: platform keyring)
        key_store: Passphrase store (default: preferences file from config)

    Raises:
        KeyProvisioningError: No secure platform key store
        KeyStoreCorruptedError: Passphrase store failed authentication
        StoreOpenError: Database could not be opened with the passphrase
    """
    global _store, _atexit_registered

    store = _store
    if store is not None and store.is_open:
        return store

    with _lock:
        if _store is not None and _store.is_open:
            return _store

        config_service = config_service or get_config_service()
        config = config_service.config
        key_provider = key_provider or KeyMaterialProvider(
            service_name=config.security.keyring_service
        )
        key_store = key_store or SecureKeyStore(
            config_service.prefs_path,
            passphrase_length=config.security.passphrase_length,
        )

        _store = open_vault(config_service, key_provider, key_store)

        if not _atexit_registered:
            atexit.register(close_database)
            _atexit_registered = True
        return _store


def open_vault(
    config_service: ConfigService,
    key_provider: KeyMaterialProvider,
    key_store: SecureKeyStore,
) -> EncryptedTaskStore:
    """Provision keys and open the store under the installation lock.

    The lock file spans processes, so two first runs never create two
    wrapping keys, two passphrases or two database files.
    """
    lock_path = config_service.lock_path
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with FileLock(lock_path):
        get_logger(__name__).debug("resolving database passphrase")
        passphrase = key_store.get_passphrase(key_provider.get_or_create_wrapping_key())
        return EncryptedTaskStore.open(
            config_service.db_path,
            passphrase,
            poll_interval=config_service.config.watch.poll_interval,
        )


async def get_database(
    config_service: ConfigService | None = None,
    key_provider: KeyMaterialProvider | None = None,
    key_store: SecureKeyStore | None = None,
) -> EncryptedTaskStore:
    """Async wrapper around ``get_database_sync`` (runs on a worker thread)."""
    return await asyncio.to_thread(
        get_database_sync, config_service, key_provider, key_store
    )


def close_database() -> None:
    """Close the process-wide store, if open."""
    global _store
    with _lock:
        store, _store = _store, None
    if store is not None:
        store.close()
