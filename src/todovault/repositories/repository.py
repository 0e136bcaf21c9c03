"""Repository abstraction layer for TodoVault.

Defines the task repository interface (the port) that the coordinator
depends on. Implementations map storage rows to ``Task`` and never leak
raw row representations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from todovault.models import Task


class TaskRepository(ABC):
    """Abstract base class for task persistence operations."""

    @abstractmethod
    def get_tasks(self) -> AsyncIterator[list[Task]]:
        """Stream all tasks.

        Returns:
            Async iterator emitting the full task list now and after every change
        """
        raise NotImplementedError(
            "TaskRepository.get_tasks() must be implemented by adapter"
        )

    @abstractmethod
    async def list_tasks(self) -> list[Task]:
        """Get a snapshot of all tasks, ordered by id."""
        raise NotImplementedError(
            "TaskRepository.list_tasks() must be implemented by adapter"
        )

    @abstractmethod
    async def add_task(self, task: Task) -> Task:
        """Store a new task.

        Returns:
            The stored task with its assigned id
        """
        raise NotImplementedError(
            "TaskRepository.add_task() must be implemented by adapter"
        )

    @abstractmethod
    async def complete_task(self, task: Task) -> None:
        """Persist an updated task (typically a changed completion flag).

        Raises:
            NotFoundError: If the task does not exist
        """
        raise NotImplementedError(
            "TaskRepository.complete_task() must be implemented by adapter"
        )

    @abstractmethod
    async def delete_task(self, task: Task) -> None:
        """Delete a task. Deleting a missing task is not an error."""
        raise NotImplementedError(
            "TaskRepository.delete_task() must be implemented by adapter"
        )

    @abstractmethod
    async def delete_all_tasks(self) -> None:
        """Delete every task."""
        raise NotImplementedError(
            "TaskRepository.delete_all_tasks() must be implemented by adapter"
        )
