"""Data models for TodoVault."""

from todovault.models.config_models import AppConfig
from todovault.models.exceptions import (
    KeyProvisioningError,
    KeyStoreCorruptedError,
    NotFoundError,
    StoreClosedError,
    StoreOpenError,
    TodoVaultError,
)
from todovault.models.task import Task

__all__ = [
    "AppConfig",
    "Task",
    "TodoVaultError",
    "KeyProvisioningError",
    "KeyStoreCorruptedError",
    "StoreOpenError",
    "StoreClosedError",
    "NotFoundError",
]
