"""SqliteBackend — aiosqlite tables plus a local ImageStore."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import aiosqlite

from keepsake.backend.images import ImageStore
from keepsake.config import settings
from keepsake.errors import BackendError, NotFoundError
from keepsake.models import Couple, Task, TimelineEvent, UserProfile
from keepsake.stats.engine import compute_stats
from keepsake.timeline.views import month_bounds

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from datetime import date
    from pathlib import Path

    from keepsake.models import EventDraft, EventPatch, MemoryStats

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS timeline_events (
        id TEXT PRIMARY KEY,
        couple_id TEXT NOT NULL,
        author_id TEXT NOT NULL,
        image_path TEXT,
        description TEXT,
        location TEXT,
        latitude REAL,
        longitude REAL,
        category TEXT,
        keywords TEXT,
        rating REAL,
        event_date TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        couple_id TEXT NOT NULL,
        text TEXT NOT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS couples (
        id TEXT PRIMARY KEY,
        invite_code TEXT NOT NULL UNIQUE,
        first_met_date TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        nickname TEXT,
        profile_image_url TEXT,
        couple_id TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_events_couple_date ON timeline_events (couple_id, event_date)",
)

_EVENT_COLUMNS = (
    "id", "couple_id", "author_id", "image_path", "description", "location",
    "latitude", "longitude", "category", "keywords", "rating", "event_date", "created_at",
)

_EVENT_ORDER = "ORDER BY event_date DESC, created_at DESC"


def _utc_iso(moment: datetime) -> str:
    """Fixed-width UTC ISO string so text ordering matches time ordering."""
    return moment.astimezone(UTC).isoformat(timespec="microseconds")


def _now() -> str:
    return _utc_iso(datetime.now(UTC))


def _new_id() -> str:
    return uuid.uuid4().hex


def _event_from_row(row: aiosqlite.Row) -> TimelineEvent:
    data = dict(row)
    data["keywords"] = json.loads(data["keywords"]) if data["keywords"] else None
    return TimelineEvent.model_validate(data)


def _event_values(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert model fields into column values."""
    values = dict(fields)
    if "keywords" in values:
        values["keywords"] = json.dumps(values["keywords"]) if values["keywords"] else None
    if values.get("event_date") is not None:
        values["event_date"] = _utc_iso(values["event_date"])
    return values


class SqliteBackend:
    """Local :class:`~keepsake.backend.base.MemoryBackend` implementation.

    Pass explicit *db_path* and *images* for test isolation
    (e.g. ``tmp_path / "test.db"``).
    """

    def __init__(self, db_path: Path | None = None, images: ImageStore | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._images = images or ImageStore()
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    @contextlib.asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection, creating tables once. Maps driver errors."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            db = await aiosqlite.connect(str(self._db_path))
        except (OSError, aiosqlite.Error) as exc:
            msg = f"Could not open database {self._db_path}: {exc}"
            raise BackendError(msg) from exc
        db.row_factory = aiosqlite.Row
        try:
            if not self._initialised:
                for statement in _SCHEMA:
                    await db.execute(statement)
                await db.commit()
                self._initialised = True
            yield db
        except aiosqlite.Error as exc:
            logger.exception("Database operation failed")
            raise BackendError(str(exc)) from exc
        finally:
            await db.close()

    async def _fetch_events(self, where: str, params: tuple) -> list[TimelineEvent]:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT * FROM timeline_events WHERE {where} {_EVENT_ORDER}",  # noqa: S608
                params,
            )
            rows = await cursor.fetchall()
        return [_event_from_row(row) for row in rows]

    # -- Events ----------------------------------------------------------------

    async def list_events(self, couple_id: str) -> list[TimelineEvent]:
        return await self._fetch_events("couple_id = ?", (couple_id,))

    async def list_events_in_month(
        self, couple_id: str, year: int, month: int
    ) -> list[TimelineEvent]:
        start, end = month_bounds(year, month)
        return await self._fetch_events(
            "couple_id = ? AND event_date >= ? AND event_date <= ?",
            (couple_id, _utc_iso(start), _utc_iso(end)),
        )

    async def get_event(self, event_id: str) -> TimelineEvent:
        events = await self._fetch_events("id = ?", (event_id,))
        if not events:
            msg = f"Event not found: {event_id}"
            raise NotFoundError(msg)
        return events[0]

    async def create_event(self, draft: EventDraft) -> TimelineEvent:
        values = _event_values(draft.model_dump())
        values["id"] = _new_id()
        values["created_at"] = _now()
        async with self._connect() as db:
            await db.execute(
                f"INSERT INTO timeline_events ({', '.join(_EVENT_COLUMNS)}) "  # noqa: S608
                f"VALUES ({', '.join('?' for _ in _EVENT_COLUMNS)})",
                tuple(values.get(col) for col in _EVENT_COLUMNS),
            )
            await db.commit()
        logger.info("Created event %s for couple %s", values["id"], draft.couple_id)
        return await self.get_event(values["id"])

    async def update_event(self, event_id: str, patch: EventPatch) -> None:
        values = _event_values({k: getattr(patch, k) for k in patch.model_fields_set})
        if not values:
            return
        assignments = ", ".join(f"{col} = ?" for col in values)
        async with self._connect() as db:
            cursor = await db.execute(
                f"UPDATE timeline_events SET {assignments} WHERE id = ?",  # noqa: S608
                (*values.values(), event_id),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if not updated:
            msg = f"Event not found: {event_id}"
            raise NotFoundError(msg)
        logger.info("Updated event %s (%s)", event_id, ", ".join(values))

    async def delete_event(self, event_id: str) -> None:
        async with self._connect() as db:
            await db.execute("DELETE FROM timeline_events WHERE id = ?", (event_id,))
            await db.commit()
        logger.info("Deleted event %s", event_id)

    # -- Images ----------------------------------------------------------------

    async def upload_image(self, couple_id: str, local_path: Path) -> str:
        try:
            return await asyncio.to_thread(self._images.store, couple_id, local_path)
        except (OSError, ValueError) as exc:
            msg = f"Image upload failed: {exc}"
            raise BackendError(msg) from exc

    async def delete_image(self, storage_path: str) -> None:
        try:
            await asyncio.to_thread(self._images.delete, storage_path)
        except (OSError, ValueError) as exc:
            msg = f"Image delete failed: {exc}"
            raise BackendError(msg) from exc

    def get_public_url(self, storage_path: str) -> str:
        return self._images.public_url(storage_path)

    # -- Tasks -----------------------------------------------------------------

    async def list_tasks(self, couple_id: str) -> list[Task]:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM tasks WHERE couple_id = ? ORDER BY created_at DESC",
                (couple_id,),
            )
            rows = await cursor.fetchall()
        return [Task.model_validate(dict(row)) for row in rows]

    async def create_task(self, couple_id: str, text: str) -> Task:
        task = Task(id=_new_id(), couple_id=couple_id, text=text, created_at=datetime.now(UTC))
        async with self._connect() as db:
            await db.execute(
                "INSERT INTO tasks (id, couple_id, text, completed, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (task.id, couple_id, text, 0, _utc_iso(task.created_at)),
            )
            await db.commit()
        logger.info("Created task %s for couple %s", task.id, couple_id)
        return task

    async def update_task(self, task_id: str, completed: bool) -> None:
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE tasks SET completed = ? WHERE id = ?", (int(completed), task_id)
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if not updated:
            msg = f"Task not found: {task_id}"
            raise NotFoundError(msg)

    async def delete_task(self, task_id: str) -> None:
        async with self._connect() as db:
            await db.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            await db.commit()

    # -- Couple / profile ------------------------------------------------------

    async def get_stats(self, couple_id: str) -> MemoryStats:
        return compute_stats(await self.list_events(couple_id))

    async def add_couple(self, couple: Couple) -> Couple:
        """Insert a couple row (used when seeding a local database)."""
        async with self._connect() as db:
            await db.execute(
                "INSERT INTO couples (id, invite_code, first_met_date) VALUES (?, ?, ?)",
                (
                    couple.id,
                    couple.invite_code,
                    couple.first_met_date.isoformat() if couple.first_met_date else None,
                ),
            )
            await db.commit()
        return couple

    async def get_couple(self, couple_id: str) -> Couple:
        async with self._connect() as db:
            cursor = await db.execute("SELECT * FROM couples WHERE id = ?", (couple_id,))
            row = await cursor.fetchone()
        if row is None:
            msg = f"Couple not found: {couple_id}"
            raise NotFoundError(msg)
        return Couple.model_validate(dict(row))

    async def update_first_met_date(self, couple_id: str, first_met: date) -> Couple:
        async with self._connect() as db:
            cursor = await db.execute(
                "UPDATE couples SET first_met_date = ? WHERE id = ?",
                (first_met.isoformat(), couple_id),
            )
            await db.commit()
            updated = cursor.rowcount > 0
        if not updated:
            msg = f"Couple not found: {couple_id}"
            raise NotFoundError(msg)
        logger.info("Set first met date for couple %s", couple_id)
        return await self.get_couple(couple_id)

    async def add_user(self, profile: UserProfile) -> UserProfile:
        """Insert a user row (used when seeding a local database)."""
        async with self._connect() as db:
            await db.execute(
                "INSERT INTO users (id, nickname, profile_image_url, couple_id) "
                "VALUES (?, ?, ?, ?)",
                (profile.id, profile.nickname, profile.profile_image_url, profile.couple_id),
            )
            await db.commit()
        return profile

    async def get_user(self, user_id: str) -> UserProfile:
        async with self._connect() as db:
            cursor = await db.execute("SELECT * FROM users WHERE id = ?", (user_id,))
            row = await cursor.fetchone()
        if row is None:
            msg = f"User not found: {user_id}"
            raise NotFoundError(msg)
        return UserProfile.model_validate(dict(row))

    async def get_partner(self, couple_id: str, user_id: str) -> UserProfile | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM users WHERE couple_id = ? AND id != ? LIMIT 1",
                (couple_id, user_id),
            )
            row = await cursor.fetchone()
        return UserProfile.model_validate(dict(row)) if row else None
