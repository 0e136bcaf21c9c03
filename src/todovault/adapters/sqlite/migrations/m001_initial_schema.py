"""Initial database schema migration: vault_meta and tasks."""

import sqlite3

from todovault.adapters.sqlite import schema
from .runner import Migration


class InitialSchemaMigration(Migration):
    """Migration 001: Create initial database schema."""

    @property
    def version(self) -> int:
        return 1

    @property
    def description(self) -> str:
        return "Initial encrypted task schema"

    def up(self, connection: sqlite3.Connection) -> None:
        """Create all initial tables."""
        for create_statement in schema.ALL_TABLES:
            connection.execute(create_statement)

        for index_sql in schema.ALL_INDEXES:
            connection.execute(index_sql)


# Export singleton instance
initial_migration = InitialSchemaMigration()
