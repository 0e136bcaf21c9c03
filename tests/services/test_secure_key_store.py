"""Tests for SecureKeyStore."""

from __future__ import annotations

import json
import threading
import time
from unittest.mock import patch

import pytest

from todovault.models.crypto import ALPHABET, WrappingKey, generate_passphrase
from todovault.models.exceptions import KeyStoreCorruptedError
from todovault.services.secure_key_store import SecureKeyStore


@pytest.fixture()
def prefs_path(tmp_path):
    return tmp_path / "secret_shared_prefs"


def test_first_call_generates_and_persists(prefs_path, wrapping_key):
    passphrase = SecureKeyStore(prefs_path, passphrase_length=64).get_passphrase(
        wrapping_key
    )

    assert len(passphrase) == 64
    assert set(passphrase.decode("ascii")) <= set(ALPHABET)
    assert prefs_path.exists()


def test_default_length(prefs_path, wrapping_key):
    assert len(SecureKeyStore(prefs_path).get_passphrase(wrapping_key)) == 4096


def test_passphrase_is_stable(prefs_path, wrapping_key):
    first = SecureKeyStore(prefs_path, passphrase_length=64).get_passphrase(wrapping_key)
    second = SecureKeyStore(prefs_path, passphrase_length=128).get_passphrase(
        wrapping_key
    )
    assert first == second


def test_passphrase_not_stored_in_plaintext(prefs_path, wrapping_key):
    passphrase = SecureKeyStore(prefs_path, passphrase_length=64).get_passphrase(
        wrapping_key
    )
    assert passphrase not in prefs_path.read_bytes()


def test_different_wrapping_key_is_corruption(prefs_path, wrapping_key):
    store = SecureKeyStore(prefs_path, passphrase_length=64)
    store.get_passphrase(wrapping_key)
    before = prefs_path.read_bytes()

    with pytest.raises(KeyStoreCorruptedError):
        store.get_passphrase(WrappingKey.generate())
    # Never repaired by regenerating
    assert prefs_path.read_bytes() == before


def test_tampered_file_is_corruption(prefs_path, wrapping_key):
    store = SecureKeyStore(prefs_path, passphrase_length=64)
    store.get_passphrase(wrapping_key)

    document = json.loads(prefs_path.read_text())
    (entry,) = document["entries"].values()
    entry["ciphertext"] = entry["ciphertext"][::-1]
    prefs_path.write_text(json.dumps(document))

    with pytest.raises(KeyStoreCorruptedError):
        store.get_passphrase(wrapping_key)


def test_unreadable_file_is_corruption(prefs_path, wrapping_key):
    prefs_path.write_text("{}")
    with pytest.raises(KeyStoreCorruptedError):
        SecureKeyStore(prefs_path).get_passphrase(wrapping_key)


def test_concurrent_first_use_agrees_on_one_passphrase(prefs_path, wrapping_key):
    barrier = threading.Barrier(2)
    results: list[bytes] = []
    errors: list[BaseException] = []
    generated: list[str] = []

    def slow_generate(length):
        # Widen the window between "absent" and the first write
        time.sleep(0.2)
        value = generate_passphrase(length)
        generated.append(value)
        return value

    def worker():
        store = SecureKeyStore(prefs_path, passphrase_length=64)
        barrier.wait()
        try:
            results.append(store.get_passphrase(wrapping_key))
        except BaseException as e:
            errors.append(e)

    with patch(
        "todovault.services.secure_key_store.generate_passphrase",
        side_effect=slow_generate,
    ):
        threads = [threading.Thread(target=worker) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    assert errors == []
    assert len(results) == 2
    assert results[0] == results[1]
    assert len(generated) == 1
    assert SecureKeyStore(prefs_path).get_passphrase(wrapping_key) == results[0]
