"""Task coordinator - owns the observable task collection.

The collection is always derived from the store: every mutation is
followed by a re-query instead of patching the local copy, so observers
never see state the store does not have.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable

from todovault.models import NotFoundError, Task
from todovault.repositories import TaskRepository
from todovault.utils.logger import get_logger

TasksListener = Callable[[tuple[Task, ...]], None]


class TaskCoordinator:
    """Coordinates task mutations and publishes the resulting task list.

    Each public coroutine is one unit from the caller's point of view
    (mutation, then reload). Calls to different methods may interleave;
    the store serializes the underlying writes.
    """

    def __init__(self, task_repository: TaskRepository):
        """Initialize the coordinator.

        Args:
            task_repository: TaskRepository implementation for data access
        """
        self.repository = task_repository
        self._tasks: tuple[Task, ...] = ()
        self._listeners: list[TasksListener] = []
        self._watch_task: asyncio.Task | None = None

    @property
    def tasks(self) -> tuple[Task, ...]:
        """Current task list (read-only)."""
        return self._tasks

    def subscribe(self, listener: TasksListener) -> Callable[[], None]:
        """Register a listener; it is called now and on every change.

        Returns:
            A function that unregisters the listener
        """
        self._listeners.append(listener)
        listener(self._tasks)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, tasks: list[Task]) -> None:
        snapshot = tuple(tasks)
        if snapshot == self._tasks:
            return
        self._tasks = snapshot
        for listener in list(self._listeners):
            listener(snapshot)

    async def load_tasks(self) -> tuple[Task, ...]:
        """Re-query the repository and publish the result."""
        self._publish(await self.repository.list_tasks())
        return self._tasks

    async def start(self) -> None:
        """Follow the repository stream so outside changes are published too."""
        if self._watch_task is not None and not self._watch_task.done():
            return
        self._watch_task = asyncio.create_task(self._collect())

    async def stop(self) -> None:
        """Stop following the repository stream."""
        task, self._watch_task = self._watch_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _collect(self) -> None:
        async with contextlib.aclosing(self.repository.get_tasks()) as stream:
            async for tasks in stream:
                self._publish(tasks)

    async def add_task(self, title: str, description: str = "") -> Task:
        """Create a new task and reload.

        Returns:
            The stored task with its assigned id
        """
        stored = await self.repository.add_task(
            Task(title=title, description=description)
        )
        await self.load_tasks()
        return stored

    async def complete_task(self, task: Task, completed: bool = True) -> None:
        """Set the completion flag of a task and reload.

        A task that no longer exists is logged and otherwise ignored.
        """
        logger = get_logger(__name__)
        updated = task.model_copy(update={"is_completed": completed})
        logger.debug("updating task %s, is_completed=%s", task.id, completed)
        try:
            await self.repository.complete_task(updated)
        except NotFoundError:
            logger.warning("task %s no longer exists; nothing to update", task.id)
        await self.load_tasks()

    async def delete_task(self, task: Task) -> None:
        """Delete a task and reload."""
        await self.repository.delete_task(task)
        await self.load_tasks()

    async def clear_completed_tasks(self) -> int:
        """Delete every completed task in the current snapshot and reload.

        Returns:
            Number of tasks deleted
        """
        completed = [task for task in self._tasks if task.is_completed]
        if not completed:
            get_logger(__name__).debug("no completed tasks to clear")
        for task in completed:
            await self.repository.delete_task(task)
        await self.load_tasks()
        return len(completed)
