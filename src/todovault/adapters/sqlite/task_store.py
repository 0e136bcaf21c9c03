"""Encrypted task store.

``EncryptedTaskStore`` owns the open connection to the task database and
exposes CRUD plus a reactive ``query_all`` stream. Blocking database work
runs on the default thread pool through ``asyncio.to_thread``; a store-wide
lock and sqlite transactions serialize writes.

The stream is fed two ways: every commit made through this store notifies
subscribers directly, and commits made by other connections are picked up
by polling ``PRAGMA data_version``.
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from todovault.adapters.sqlite.connection import open_vault_connection
from todovault.adapters.sqlite.row_cipher import RowCipher
from todovault.adapters.sqlite.utils import now_iso, row_to_dict
from todovault.models.crypto.keys import PBKDF2_ITERATIONS
from todovault.models.exceptions import NotFoundError, StoreClosedError
from todovault.models.task import Task
from todovault.utils.logger import get_logger

_CHANGED = object()
_CLOSED = object()


class StoreState(str, Enum):
    """Lifecycle of a store handle."""

    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"


@dataclass(eq=False)
class _Subscription:
    """One ``query_all`` subscriber and the loop it lives on."""

    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue
    data_version: int


class EncryptedTaskStore:
    """CRUD and reactive queries over the encrypted task table."""

    def __init__(self, db_path: str | Path, poll_interval: float | None = 1.0):
        """Create a closed store handle.

        Args:
            db_path: Path to the database file
            poll_interval: Seconds between checks for writes made by other
                connections; None disables them
        """
        self.db_path = Path(db_path)
        self.poll_interval = poll_interval
        self._state = StoreState.CLOSED
        self._connection: sqlite3.Connection | None = None
        self._cipher: RowCipher | None = None
        self._lock = threading.RLock()
        self._subscriptions: set[_Subscription] = set()
        self._subscriptions_lock = threading.Lock()

    @classmethod
    def open(
        cls,
        db_path: str | Path,
        passphrase: bytes,
        poll_interval: float | None = 1.0,
        kdf_iterations: int = PBKDF2_ITERATIONS,
    ) -> EncryptedTaskStore:
        """Open (or create) the database at ``db_path`` with ``passphrase``.

        This call blocks; async callers go through ``get_database``.

        Raises:
            StoreOpenError: Wrong passphrase or unusable file. The store is
                left closed.
        """
        store = cls(db_path, poll_interval=poll_interval)
        store._open(passphrase, kdf_iterations)
        return store

    def _open(self, passphrase: bytes, kdf_iterations: int) -> None:
        with self._lock:
            if self._state is not StoreState.CLOSED:
                raise RuntimeError(f"Store is already {self._state.value}")
            self._state = StoreState.OPENING
            try:
                self._connection, self._cipher = open_vault_connection(
                    self.db_path, passphrase, kdf_iterations
                )
            except BaseException:
                self._state = StoreState.CLOSED
                raise
            self._state = StoreState.OPEN

    @property
    def state(self) -> StoreState:
        """Current lifecycle state."""
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is StoreState.OPEN

    def close(self) -> None:
        """Close the connection and end every active ``query_all`` stream."""
        with self._lock:
            if self._connection is None:
                return
            try:
                self._connection.close()
            finally:
                self._connection = None
                self._cipher = None
                self._state = StoreState.CLOSED
        get_logger(__name__).info("closed task database %s", self.db_path)
        self._broadcast(_CLOSED)

    # ------------------------------------------------------------------
    # Public async API
    # ------------------------------------------------------------------

    async def insert(self, tasks: Iterable[Task]) -> list[Task]:
        """Insert or replace tasks by id; tasks with id 0 get a new id.

        Returns:
            The stored tasks with their assigned ids
        """
        return await asyncio.to_thread(self._insert_sync, list(tasks))

    async def update(self, task: Task) -> None:
        """Replace the row with ``task.id``.

        Raises:
            NotFoundError: If no row has that id
        """
        await asyncio.to_thread(self._update_sync, task)

    async def delete(self, task: Task) -> None:
        """Delete the row with ``task.id``; a missing row is not an error."""
        await asyncio.to_thread(self._delete_sync, task)

    async def delete_all(self) -> None:
        """Delete every task."""
        await asyncio.to_thread(self._delete_all_sync)

    async def get_all(self) -> list[Task]:
        """One-shot snapshot of all tasks, ordered by id."""
        return await asyncio.to_thread(self._select_all)

    async def query_all(self) -> AsyncIterator[list[Task]]:
        """Stream the full task list, ordered by id.

        Emits a snapshot immediately, then again after every change. The
        stream only ends when the store is closed.
        """
        loop = asyncio.get_running_loop()
        subscription, snapshot = await asyncio.to_thread(
            self._subscribe, loop, asyncio.Queue()
        )
        try:
            yield snapshot
            while True:
                signal = await self._next_signal(subscription)
                if signal is _CLOSED:
                    return
                snapshot = await asyncio.to_thread(self._select_if_open)
                if snapshot is None:
                    return
                yield snapshot
        finally:
            self._unsubscribe(subscription)

    # ------------------------------------------------------------------
    # Blocking implementation (runs on worker threads)
    # ------------------------------------------------------------------

    def _require_open(self) -> tuple[sqlite3.Connection, RowCipher]:
        connection, cipher = self._connection, self._cipher
        if self._state is not StoreState.OPEN or connection is None or cipher is None:
            raise StoreClosedError(f"Task store {self.db_path} is not open")
        return connection, cipher

    def _insert_sync(self, tasks: list[Task]) -> list[Task]:
        stored: list[Task] = []
        with self._lock:
            connection, cipher = self._require_open()
            now = now_iso()
            with connection:
                for task in tasks:
                    title_enc, description_enc = cipher.prepare_task_for_storage(
                        task.title, task.description
                    )
                    task_id = task.id or None
                    cursor = connection.execute(
                        """INSERT OR REPLACE INTO tasks (
                            id, title_encrypted, description_encrypted,
                            is_completed, created_at, updated_at
                        ) VALUES (
                            ?, ?, ?, ?,
                            COALESCE((SELECT created_at FROM tasks WHERE id = ?), ?),
                            ?
                        )""",
                        (
                            task_id,
                            title_enc,
                            description_enc,
                            task.is_completed,
                            task_id,
                            now,
                            now,
                        ),
                    )
                    stored.append(task.model_copy(update={"id": cursor.lastrowid}))

        if stored:
            self._broadcast(_CHANGED)
        return stored

    def _update_sync(self, task: Task) -> None:
        with self._lock:
            connection, cipher = self._require_open()
            title_enc, description_enc = cipher.prepare_task_for_storage(
                task.title, task.description
            )
            with connection:
                cursor = connection.execute(
                    """UPDATE tasks
                       SET title_encrypted = ?, description_encrypted = ?,
                           is_completed = ?, updated_at = ?
                       WHERE id = ?""",
                    (title_enc, description_enc, task.is_completed, now_iso(), task.id),
                )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Task not found: {task.id}")

        self._broadcast(_CHANGED)

    def _delete_sync(self, task: Task) -> None:
        with self._lock:
            connection, _ = self._require_open()
            with connection:
                cursor = connection.execute("DELETE FROM tasks WHERE id = ?", (task.id,))

        if cursor.rowcount:
            self._broadcast(_CHANGED)

    def _delete_all_sync(self) -> None:
        with self._lock:
            connection, _ = self._require_open()
            with connection:
                connection.execute("DELETE FROM tasks")

        self._broadcast(_CHANGED)

    def _select_all(self) -> list[Task]:
        with self._lock:
            connection, cipher = self._require_open()
            rows = connection.execute("SELECT * FROM tasks ORDER BY id ASC").fetchall()
            return [self._row_to_task(cipher, row) for row in rows]

    def _select_if_open(self) -> list[Task] | None:
        with self._lock:
            if not self.is_open:
                return None
            return self._select_all()

    @staticmethod
    def _row_to_task(cipher: RowCipher, row: sqlite3.Row) -> Task:
        data = row_to_dict(row)
        title, description = cipher.extract_task_content(
            data["title_encrypted"], data["description_encrypted"]
        )
        return Task(
            id=data["id"],
            title=title,
            description=description,
            is_completed=bool(data["is_completed"]),
        )

    def _data_version(self) -> int:
        connection, _ = self._require_open()
        return connection.execute("PRAGMA data_version").fetchone()[0]

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def _subscribe(
        self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue
    ) -> tuple[_Subscription, list[Task]]:
        # Registering and taking the first snapshot under one lock means no
        # commit can fall between them.
        with self._lock:
            subscription = _Subscription(
                loop=loop, queue=queue, data_version=self._data_version()
            )
            snapshot = self._select_all()
            with self._subscriptions_lock:
                self._subscriptions.add(subscription)
        return subscription, snapshot

    def _unsubscribe(self, subscription: _Subscription) -> None:
        with self._subscriptions_lock:
            self._subscriptions.discard(subscription)

    def _broadcast(self, signal: object) -> None:
        with self._subscriptions_lock:
            subscriptions = list(self._subscriptions)

        for subscription in subscriptions:
            try:
                subscription.loop.call_soon_threadsafe(
                    subscription.queue.put_nowait, signal
                )
            except RuntimeError:
                # Loop already closed: the subscriber is gone.
                get_logger(__name__).debug("dropping subscriber on a closed loop")
                self._unsubscribe(subscription)

    def _external_change(self, subscription: _Subscription) -> bool:
        """Check whether another connection committed since the last check."""
        with self._lock:
            if not self.is_open:
                return False
            version = self._data_version()
        if version == subscription.data_version:
            return False
        subscription.data_version = version
        return True

    async def _next_signal(self, subscription: _Subscription) -> object:
        queue = subscription.queue
        while True:
            if self.poll_interval is None:
                signal = await queue.get()
            else:
                try:
                    signal = await asyncio.wait_for(queue.get(), self.poll_interval)
                except TimeoutError:
                    if await asyncio.to_thread(self._external_change, subscription):
                        return _CHANGED
                    continue

            # Coalesce a burst of notifications into a single emission
            while not queue.empty():
                if queue.get_nowait() is _CLOSED:
                    signal = _CLOSED
            return signal
