"""SQLite adapter module - encrypted local task storage."""

from todovault.adapters.sqlite.database import (
    close_database,
    get_database,
    get_database_sync,
)
from todovault.adapters.sqlite.task_repository import SqliteTaskRepository
from todovault.adapters.sqlite.task_store import EncryptedTaskStore, StoreState

__all__ = [
    "EncryptedTaskStore",
    "StoreState",
    "SqliteTaskRepository",
    "get_database",
    "get_database_sync",
    "close_database",
]
