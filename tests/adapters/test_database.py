"""Tests for the process-wide database handle."""

from __future__ import annotations

import asyncio
import threading
import time
from unittest.mock import MagicMock, patch

import pytest
from keyring.backends import fail

from todovault.adapters.sqlite import database
from todovault.adapters.sqlite.database import (
    close_database,
    get_database,
    get_database_sync,
    open_vault,
)
from todovault.models import (
    KeyProvisioningError,
    KeyStoreCorruptedError,
    StoreOpenError,
    Task,
)
from todovault.models.crypto import WrappingKey
from todovault.services.key_material_provider import KeyMaterialProvider
from todovault.services.secure_key_store import SecureKeyStore


@pytest.fixture()
def key_provider(memory_keyring):
    return KeyMaterialProvider(backend=memory_keyring)


@pytest.fixture()
def key_store(tmp_config):
    return SecureKeyStore(tmp_config.prefs_path, passphrase_length=64)


def test_opens_store_in_configured_location(tmp_config, key_provider, key_store):
    store = get_database_sync(tmp_config, key_provider, key_store)

    assert store.is_open
    assert store.db_path == tmp_config.db_path
    assert tmp_config.prefs_path.exists()


def test_returns_same_handle(tmp_config, key_provider, key_store):
    first = get_database_sync(tmp_config, key_provider, key_store)
    second = get_database_sync(tmp_config, key_provider, key_store)
    assert first is second


def test_passphrase_resolved_once(tmp_config, key_provider, key_store):
    spy = MagicMock(wraps=key_store.get_passphrase)
    key_store.get_passphrase = spy

    get_database_sync(tmp_config, key_provider, key_store)
    get_database_sync(tmp_config, key_provider, key_store)

    spy.assert_called_once()


def test_concurrent_first_access_opens_once(tmp_config, key_provider, key_store):
    results = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        results.append(get_database_sync(tmp_config, key_provider, key_store))

    with patch.object(
        database.EncryptedTaskStore,
        "open",
        wraps=database.EncryptedTaskStore.open,
    ) as open_spy:
        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    assert len(results) == 8
    assert all(store is results[0] for store in results)
    open_spy.assert_called_once()


@pytest.mark.asyncio
async def test_async_access_shares_handle(tmp_config, key_provider, key_store):
    stores = await asyncio.gather(
        *(get_database(tmp_config, key_provider, key_store) for _ in range(4))
    )
    assert len({id(store) for store in stores}) == 1


def test_reopen_after_close_keeps_data_readable(tmp_config, key_provider, key_store):
    store = get_database_sync(tmp_config, key_provider, key_store)
    asyncio.run(store.insert([Task(title="Buy milk")]))
    close_database()
    assert not store.is_open

    reopened = get_database_sync(tmp_config, key_provider, key_store)
    assert reopened is not store
    assert [t.title for t in asyncio.run(reopened.get_all())] == ["Buy milk"]


def test_no_secure_backend(tmp_config, key_store):
    provider = KeyMaterialProvider(backend=fail.Keyring())
    with pytest.raises(KeyProvisioningError):
        get_database_sync(tmp_config, provider, key_store)
    assert database._store is None
    assert not tmp_config.db_path.exists()


def test_lost_wrapping_key_cannot_open_database(tmp_config, memory_keyring, key_store):
    get_database_sync(tmp_config, KeyMaterialProvider(backend=memory_keyring), key_store)
    close_database()

    # Same preferences file, fresh keychain: the old passphrase is unreadable.
    memory_keyring.passwords.clear()
    with pytest.raises(KeyStoreCorruptedError):
        get_database_sync(
            tmp_config, KeyMaterialProvider(backend=memory_keyring), key_store
        )


def test_wrong_passphrase_surfaces_store_open_error(tmp_config, key_provider):
    get_database_sync(
        tmp_config,
        key_provider,
        SecureKeyStore(tmp_config.prefs_path, passphrase_length=64),
    )
    close_database()
    tmp_config.prefs_path.unlink()

    with pytest.raises(StoreOpenError):
        get_database_sync(
            tmp_config,
            key_provider,
            SecureKeyStore(tmp_config.prefs_path, passphrase_length=64),
        )


def test_concurrent_first_runs_share_one_installation(tmp_config, memory_keyring):
    """Separate openers (as in two processes) provision a single key set."""
    barrier = threading.Barrier(2)
    stores: list = []
    errors: list[BaseException] = []
    real_generate = WrappingKey.generate

    def slow_generate():
        time.sleep(0.2)
        return real_generate()

    def worker():
        provider = KeyMaterialProvider(backend=memory_keyring)
        key_store = SecureKeyStore(tmp_config.prefs_path, passphrase_length=64)
        barrier.wait()
        try:
            stores.append(open_vault(tmp_config, provider, key_store))
        except BaseException as e:
            errors.append(e)

    with patch.object(WrappingKey, "generate", side_effect=slow_generate) as generate:
        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    try:
        assert errors == []
        assert len(stores) == 2
        generate.assert_called_once()
        assert len(memory_keyring.passwords) == 1

        asyncio.run(stores[0].insert([Task(title="Buy milk")]))
        assert [t.title for t in asyncio.run(stores[1].get_all())] == ["Buy milk"]
    finally:
        for store in stores:
            store.close()
