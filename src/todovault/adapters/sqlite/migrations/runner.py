"""Forward-only migration framework for the task vault schema.

Migrations are applied in version order inside a transaction and recorded
in ``schema_version``. A database whose recorded version is newer than any
known migration is rejected rather than opened.
"""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod

from todovault.adapters.sqlite.utils import now_iso


class Migration(ABC):
    """Base class for database migrations."""

    @property
    @abstractmethod
    def version(self) -> int:
        """Migration version number (sequential)."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of the migration."""

    @abstractmethod
    def up(self, connection: sqlite3.Connection) -> None:
        """Execute forward migration.

        Args:
            connection: Database connection
        """


class MigrationRunner:
    """Manages and executes database migrations."""

    def __init__(self, connection: sqlite3.Connection):
        self.connection = connection
        self._ensure_version_table()

    def _ensure_version_table(self) -> None:
        """Create schema_version table if it doesn't exist."""
        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                description TEXT NOT NULL,
                applied_at DATETIME NOT NULL
            )
        """)
        self.connection.commit()

    def get_current_version(self) -> int:
        """Get current database schema version (0 if no migrations applied)."""
        cursor = self.connection.execute("SELECT MAX(version) FROM schema_version")
        result = cursor.fetchone()[0]
        return result if result is not None else 0

    def run_migration(self, migration: Migration) -> None:
        """Run a single migration in its own transaction.

        Raises:
            ValueError: If migration version is not greater than current version
            RuntimeError: If the migration fails (the transaction is rolled back)
        """
        current_version = self.get_current_version()
        if migration.version <= current_version:
            raise ValueError(
                f"Migration version {migration.version} is not greater than "
                f"current version {current_version}"
            )

        try:
            migration.up(self.connection)
            self.connection.execute(
                """
                INSERT INTO schema_version (version, description, applied_at)
                VALUES (?, ?, ?)
                """,
                (migration.version, migration.description, now_iso()),
            )
            self.connection.commit()
        except Exception as e:
            self.connection.rollback()
            raise RuntimeError(f"Migration {migration.version} failed: {str(e)}") from e

    def run_migrations(self, migrations: list[Migration]) -> int:
        """Run all pending migrations.

        Returns:
            Number of migrations applied

        Raises:
            ValueError: If the database was written by a newer schema
        """
        current_version = self.get_current_version()
        latest_known = max((m.version for m in migrations), default=0)
        if current_version > latest_known:
            raise ValueError(
                f"Database schema version {current_version} is newer than "
                f"supported version {latest_known}"
            )

        pending = sorted(
            (m for m in migrations if m.version > current_version),
            key=lambda m: m.version,
        )
        for migration in pending:
            self.run_migration(migration)

        return len(pending)
