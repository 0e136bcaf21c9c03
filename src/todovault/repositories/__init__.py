"""Repository interfaces for TodoVault."""

from todovault.repositories.repository import TaskRepository

__all__ = ["TaskRepository"]
