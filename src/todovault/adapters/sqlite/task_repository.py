"""SQLite implementation of TaskRepository."""

from __future__ import annotations

from collections.abc import AsyncIterator

from todovault.adapters.sqlite.task_store import EncryptedTaskStore
from todovault.models import Task
from todovault.repositories import TaskRepository
from todovault.utils.logger import get_logger


class SqliteTaskRepository(TaskRepository):
    """Task repository backed by the encrypted task store."""

    def __init__(self, store: EncryptedTaskStore):
        self.store = store

    def get_tasks(self) -> AsyncIterator[list[Task]]:
        return self.store.query_all()

    async def list_tasks(self) -> list[Task]:
        return await self.store.get_all()

    async def add_task(self, task: Task) -> Task:
        (stored,) = await self.store.insert([task])
        get_logger(__name__).debug("task added: id=%s", stored.id)
        return stored

    async def complete_task(self, task: Task) -> None:
        await self.store.update(task)

    async def delete_task(self, task: Task) -> None:
        get_logger(__name__).debug("deleting task: id=%s", task.id)
        await self.store.delete(task)

    async def delete_all_tasks(self) -> None:
        await self.store.delete_all()
