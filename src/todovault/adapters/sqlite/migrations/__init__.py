"""Database migration system for the encrypted task vault."""

from .runner import Migration, MigrationRunner

__all__ = [
    "Migration",
    "MigrationRunner",
]
