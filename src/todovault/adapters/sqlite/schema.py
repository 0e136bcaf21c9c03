"""Database schema definitions for the encrypted task vault.

Titles and descriptions are stored only as AES-256-GCM ciphertext (JSON
``EncryptedData``); ``vault_meta`` holds the key-derivation salt and the
keycheck token used to verify the passphrase on open.
"""

from __future__ import annotations

# Schema version tracking
SCHEMA_VERSION = 1

# Tasks table - AUTOINCREMENT keeps ids monotonic (never reused)
CREATE_TASKS_TABLE = """
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title_encrypted TEXT NOT NULL,
    description_encrypted TEXT NOT NULL,
    is_completed BOOLEAN NOT NULL DEFAULT 0,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
)
"""

# Vault metadata - key derivation parameters and keycheck
CREATE_VAULT_META_TABLE = """
CREATE TABLE IF NOT EXISTS vault_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""

CREATE_TASK_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_is_completed ON tasks(is_completed)",
]

ALL_TABLES = [
    CREATE_VAULT_META_TABLE,
    CREATE_TASKS_TABLE,
]

ALL_INDEXES = CREATE_TASK_INDEXES

# vault_meta keys
META_KDF_SALT = "kdf_salt"
META_KDF_ITERATIONS = "kdf_iterations"
META_KEYCHECK = "keycheck"
