"""TaskBoard — optimistic task mutations with full reload on failure."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from keepsake.errors import BackendError
from keepsake.notices import NoticeBoard

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable

    from keepsake.backend.base import MemoryBackend
    from keepsake.models import Task
    from keepsake.session import Session

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=UTC)


class BoardState(StrEnum):
    IDLE = "idle"
    MUTATING = "mutating"


def order_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Incomplete tasks first, each group newest created_at first."""
    newest_first = sorted(tasks, key=lambda t: t.created_at or _OLDEST, reverse=True)
    return sorted(newest_first, key=lambda t: t.completed)


class TaskBoard:
    """In-memory task list for one couple, kept in step with the backend.

    Toggle and delete are applied locally before the remote call.  If the
    call fails the whole list is reloaded from the backend and a notice is
    posted; the local change is never undone piecemeal.  Create waits for
    the backend because the id is server-assigned.

    Args:
        backend: Storage backend.
        session: Identity whose couple owns the tasks.
        notices: Where failures are reported (a new board if omitted).
    """

    def __init__(
        self,
        backend: MemoryBackend,
        session: Session,
        notices: NoticeBoard | None = None,
    ) -> None:
        self._backend = backend
        self._session = session
        self.notices = notices if notices is not None else NoticeBoard()
        self._tasks: list[Task] = []
        self._in_flight: set[str] = set()
        self._creating = 0
        self._stale = False
        self.draft = ""

    # -- Views -----------------------------------------------------------------

    @property
    def tasks(self) -> list[Task]:
        """Tasks in list order (newest additions first)."""
        return list(self._tasks)

    @property
    def ordered(self) -> list[Task]:
        return order_tasks(self._tasks)

    @property
    def progress(self) -> tuple[int, int]:
        """(completed, total)."""
        return sum(t.completed for t in self._tasks), len(self._tasks)

    @property
    def state(self) -> BoardState:
        if self._in_flight or self._creating:
            return BoardState.MUTATING
        return BoardState.IDLE

    def is_mutating(self, task_id: str) -> bool:
        return task_id in self._in_flight

    # -- Operations ------------------------------------------------------------

    async def load(self) -> bool:
        """Replace the list with the backend's. On failure keep the old list."""
        try:
            tasks = await self._backend.list_tasks(self._session.couple_id)
        except BackendError as exc:
            logger.exception("Failed to load tasks for couple %s", self._session.couple_id)
            self.notices.post("Couldn't load tasks", exc)
            return False
        self._tasks = list(tasks)
        return True

    async def create(self, text: str | None = None) -> Task | None:
        """Create a task from *text* (or the current draft).

        Blank text is rejected without a remote call.  The draft is cleared
        only after the new task is in the list.
        """
        text = (self.draft if text is None else text).strip()
        if not text:
            return None

        self._creating += 1
        try:
            task = await self._backend.create_task(self._session.couple_id, text)
        except BackendError as exc:
            logger.warning("Task create failed: %s", exc)
            self.notices.post("Couldn't add task", exc)
            return None
        finally:
            self._creating -= 1

        self._tasks.insert(0, task)
        self.draft = ""
        logger.info("Added task %s", task.id)
        return task

    async def toggle(self, task_id: str) -> bool:
        """Flip a task's completed flag. Returns True if the backend agreed."""
        index = self._index(task_id)
        if index is None or task_id in self._in_flight:
            return False
        task = self._tasks[index]
        completed = not task.completed
        self._tasks[index] = task.model_copy(update={"completed": completed})
        return await self._commit(
            task_id, self._backend.update_task(task_id, completed), "Couldn't update task"
        )

    async def delete(self, task_id: str) -> bool:
        """Remove a task. Returns True if the backend agreed."""
        index = self._index(task_id)
        if index is None or task_id in self._in_flight:
            return False
        del self._tasks[index]
        return await self._commit(
            task_id, self._backend.delete_task(task_id), "Couldn't delete task"
        )

    # -- Internal --------------------------------------------------------------

    def _index(self, task_id: str) -> int | None:
        for i, task in enumerate(self._tasks):
            if task.id == task_id:
                return i
        logger.debug("Task %s not in list", task_id)
        return None

    async def _commit(self, task_id: str, call: Awaitable[None], title: str) -> bool:
        """Await a remote mutation; reload the list if it fails.

        A reload taken while other rows are still in flight misses their
        pending changes, so one more reload runs when the last of them settles.
        """
        self._in_flight.add(task_id)
        try:
            await call
        except BackendError as exc:
            logger.warning("Task %s mutation failed, reloading: %s", task_id, exc)
            self.notices.post(title, exc)
            self._in_flight.discard(task_id)
            if self._in_flight:
                self._stale = True
            await self.load()
            self._stale = bool(self._in_flight)
            return False
        finally:
            self._in_flight.discard(task_id)

        if self._stale and not self._in_flight:
            self._stale = False
            logger.info("Resyncing tasks after an earlier rollback")
            await self.load()
        return True
