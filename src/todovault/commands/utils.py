"""Shared helpers for task commands."""

from __future__ import annotations

from todovault.adapters.sqlite import SqliteTaskRepository, get_database
from todovault.models import Task
from todovault.services.task_coordinator import TaskCoordinator
from todovault.utils.exit_codes import ERROR_NOT_FOUND

from .decorators import AppError


async def load_coordinator() -> TaskCoordinator:
    """Open the vault and return a coordinator with the current task list loaded."""
    store = await get_database()
    coordinator = TaskCoordinator(SqliteTaskRepository(store))
    await coordinator.load_tasks()
    return coordinator


def find_task(coordinator: TaskCoordinator, task_id: int) -> Task | None:
    """Look up a task in the coordinator's current snapshot."""
    return next((task for task in coordinator.tasks if task.id == task_id), None)


def require_task(coordinator: TaskCoordinator, task_id: int) -> Task:
    """Like ``find_task`` but fails with a not-found exit code."""
    task = find_task(coordinator, task_id)
    if task is None:
        raise AppError(f"Task not found: {task_id}", exit_code=ERROR_NOT_FOUND)
    return task
