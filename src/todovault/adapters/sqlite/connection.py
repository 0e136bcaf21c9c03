"""Opening sequence for the encrypted task database.

Opening runs in a fixed order: connect, verify the passphrase against the
stored keycheck, then bring the schema up to date. Nothing is written to an
existing file until the passphrase has been verified, and a failed open
never recreates or repairs the file.

A new database is built in a temporary file next to ``db_path`` and moved
into place only once schema, salt and keycheck are all committed, so
``db_path`` never holds a half-initialized vault.
"""

from __future__ import annotations

import base64
import binascii
import os
import sqlite3
import tempfile
from pathlib import Path

from todovault.adapters.sqlite import schema
from todovault.adapters.sqlite.migrations.m001_initial_schema import initial_migration
from todovault.adapters.sqlite.migrations.runner import MigrationRunner
from todovault.adapters.sqlite.row_cipher import RowCipher
from todovault.models.crypto.exceptions import KeyDerivationError
from todovault.models.crypto.keys import PBKDF2_ITERATIONS, DatabaseKey, generate_salt
from todovault.models.exceptions import StoreOpenError
from todovault.utils.logger import get_logger

_SIDECAR_SUFFIXES = ("-wal", "-shm", "-journal")


def open_vault_connection(
    db_path: str | Path,
    passphrase: bytes,
    kdf_iterations: int = PBKDF2_ITERATIONS,
) -> tuple[sqlite3.Connection, RowCipher]:
    """Open or create the encrypted database.

    Args:
        db_path: Path to the database file
        passphrase: Raw passphrase bytes from the key store
        kdf_iterations: PBKDF2 iterations for a newly created database

    Returns:
        Tuple of (configured connection, cipher holding the database key)

    Raises:
        StoreOpenError: Wrong passphrase, not a vault database, corrupt
            metadata, or an unsupported schema version
    """
    logger = get_logger(__name__)
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    created_file = not db_path.exists()
    is_new_database = created_file or db_path.stat().st_size == 0

    connection: sqlite3.Connection | None = None
    cipher: RowCipher | None = None
    try:
        if is_new_database:
            cipher = _create_vault(db_path, passphrase, kdf_iterations)

        connection = sqlite3.connect(
            str(db_path),
            check_same_thread=False,  # Used from worker threads under the store lock
            timeout=30.0,  # Wait up to 30s for locks
        )
        connection.row_factory = sqlite3.Row

        if cipher is None:
            cipher = _unlock_vault(connection, passphrase)
            _run_migrations(connection)

        connection.execute("PRAGMA journal_mode = WAL")
        connection.execute("PRAGMA foreign_keys = ON")
    except StoreOpenError as e:
        _abandon(connection, db_path if created_file else None)
        logger.error("failed to open %s: %s", db_path, e)
        raise
    except (sqlite3.DatabaseError, KeyDerivationError, ValueError, RuntimeError) as e:
        _abandon(connection, db_path if created_file else None)
        logger.error("failed to open %s: %s", db_path, e)
        raise StoreOpenError(f"Cannot open task database {db_path}: {e}") from e
    except BaseException:
        _abandon(connection, db_path if created_file else None)
        raise

    logger.info("opened task database %s (new=%s)", db_path, is_new_database)
    return connection, cipher


def _run_migrations(connection: sqlite3.Connection) -> None:
    """Run database migrations."""
    # List of all migrations in order
    migrations = [
        initial_migration,
    ]
    MigrationRunner(connection).run_migrations(migrations)


def _create_vault(db_path: Path, passphrase: bytes, kdf_iterations: int) -> RowCipher:
    """Build a complete vault in a temporary file, then rename it to ``db_path``."""
    fd, tmp_name = tempfile.mkstemp(
        dir=db_path.parent, prefix=f"{db_path.name}.", suffix=".init"
    )
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        connection = sqlite3.connect(tmp_name)
        try:
            cipher = _initialize_vault(connection, passphrase, kdf_iterations)
        finally:
            connection.close()
        os.replace(tmp_path, db_path)
    except BaseException:
        _remove_with_sidecars(tmp_path)
        raise
    return cipher


def _initialize_vault(
    connection: sqlite3.Connection, passphrase: bytes, kdf_iterations: int
) -> RowCipher:
    """Create the schema and record key-derivation parameters and keycheck."""
    salt = generate_salt()
    cipher = RowCipher(DatabaseKey.from_passphrase(passphrase, salt, kdf_iterations))

    _run_migrations(connection)
    with connection:
        connection.executemany(
            "INSERT INTO vault_meta (key, value) VALUES (?, ?)",
            [
                (schema.META_KDF_SALT, base64.b64encode(salt).decode("ascii")),
                (schema.META_KDF_ITERATIONS, str(kdf_iterations)),
                (schema.META_KEYCHECK, cipher.make_keycheck()),
            ],
        )
    return cipher


def _unlock_vault(connection: sqlite3.Connection, passphrase: bytes) -> RowCipher:
    """Derive the database key and verify it against the stored keycheck."""
    has_meta = connection.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'vault_meta'"
    ).fetchone()
    if not has_meta:
        raise StoreOpenError("Database is not an encrypted task vault")

    meta = {
        row["key"]: row["value"]
        for row in connection.execute("SELECT key, value FROM vault_meta")
    }
    try:
        salt = base64.b64decode(meta[schema.META_KDF_SALT], validate=True)
        iterations = int(meta[schema.META_KDF_ITERATIONS])
        keycheck = meta[schema.META_KEYCHECK]
    except (KeyError, binascii.Error, ValueError) as e:
        raise StoreOpenError(f"Vault metadata is missing or corrupt: {e}") from e

    cipher = RowCipher(DatabaseKey.from_passphrase(passphrase, salt, iterations))
    if not cipher.verify_keycheck(keycheck):
        raise StoreOpenError("Passphrase does not match this task database")
    return cipher


def _abandon(connection: sqlite3.Connection | None, created_path: Path | None) -> None:
    """Close a half-opened connection and remove a file this attempt created."""
    if connection is not None:
        connection.close()
    if created_path is not None:
        _remove_with_sidecars(created_path)


def _remove_with_sidecars(path: Path) -> None:
    path.unlink(missing_ok=True)
    for suffix in _SIDECAR_SUFFIXES:
        path.with_name(path.name + suffix).unlink(missing_ok=True)
