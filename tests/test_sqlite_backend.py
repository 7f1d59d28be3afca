"""Tests for SqliteBackend — aiosqlite CRUD and local images."""

from datetime import UTC, date, datetime
from pathlib import Path

import pytest

from keepsake.backend import SqliteBackend, create_backend
from keepsake.backend.base import MemoryBackend
from keepsake.errors import BackendError, NotFoundError
from keepsake.models import Couple, EventDraft, EventPatch, UserProfile


def _draft(day: int = 10, month: int = 1, **kwargs) -> EventDraft:
    defaults = {
        "couple_id": "c1",
        "author_id": "u1",
        "event_date": datetime(2024, month, day, 12, tzinfo=UTC),
    }
    defaults.update(kwargs)
    return EventDraft(**defaults)


def test_satisfies_protocol(backend: SqliteBackend) -> None:
    assert isinstance(backend, MemoryBackend)


def test_create_backend_by_name(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr("keepsake.config.settings.image_dir", tmp_path / "img")
    assert isinstance(create_backend("sqlite"), SqliteBackend)
    with pytest.raises(ValueError, match="Unknown backend"):
        create_backend("mongo")


# -- Events --------------------------------------------------------------------


async def test_create_and_get_event(backend: SqliteBackend) -> None:
    created = await backend.create_event(
        _draft(description="Picnic", keywords=["피크닉", "힐링되는"], rating=4.5,
               latitude=37.5, longitude=127.0)
    )

    fetched = await backend.get_event(created.id)
    assert fetched == created
    assert fetched.keywords == ["피크닉", "힐링되는"]
    assert fetched.rating == 4.5
    assert fetched.event_date == datetime(2024, 1, 10, 12, tzinfo=UTC)
    assert fetched.created_at.tzinfo is not None


async def test_get_event_not_found(backend: SqliteBackend) -> None:
    with pytest.raises(NotFoundError):
        await backend.get_event("nope")


async def test_list_events_scoped_to_couple_and_ordered(backend: SqliteBackend) -> None:
    await backend.create_event(_draft(3))
    await backend.create_event(_draft(9))
    await backend.create_event(_draft(5, couple_id="other"))

    events = await backend.list_events("c1")
    assert [e.event_date.day for e in events] == [9, 3]


async def test_list_events_in_month_inclusive_bounds(backend: SqliteBackend) -> None:
    await backend.create_event(_draft(event_date=datetime(2024, 1, 31, 23, 59, 59, tzinfo=UTC)))
    await backend.create_event(_draft(event_date=datetime(2024, 2, 1, 0, 0, tzinfo=UTC)))
    await backend.create_event(_draft(event_date=datetime(2024, 1, 1, 0, 0, tzinfo=UTC)))

    january = await backend.list_events_in_month("c1", 2024, 1)
    february = await backend.list_events_in_month("c1", 2024, 2)

    assert len(january) == 2
    assert len(february) == 1


async def test_update_event_writes_set_fields_only(backend: SqliteBackend) -> None:
    event = await backend.create_event(_draft(description="a", location="Cafe"))

    await backend.update_event(event.id, EventPatch(description="b", rating=3.0))

    updated = await backend.get_event(event.id)
    assert updated.description == "b"
    assert updated.rating == 3.0
    assert updated.location == "Cafe"


async def test_update_event_missing_raises(backend: SqliteBackend) -> None:
    with pytest.raises(NotFoundError):
        await backend.update_event("nope", EventPatch(description="x"))


async def test_empty_patch_is_a_no_op(backend: SqliteBackend) -> None:
    await backend.update_event("nope", EventPatch())


async def test_delete_event_is_idempotent(backend: SqliteBackend) -> None:
    event = await backend.create_event(_draft())
    await backend.delete_event(event.id)
    await backend.delete_event(event.id)
    assert await backend.list_events("c1") == []


# -- Images --------------------------------------------------------------------


async def test_upload_and_delete_image(backend: SqliteBackend, images, photo: Path) -> None:
    path = await backend.upload_image("c1", photo)
    assert path.startswith("c1/")
    assert images.exists(path)
    assert backend.get_public_url(path) == f"https://img.example.com/{path}"

    await backend.delete_image(path)
    assert not images.exists(path)


async def test_upload_missing_file_raises_backend_error(
    backend: SqliteBackend, tmp_path: Path
) -> None:
    with pytest.raises(BackendError, match="upload failed"):
        await backend.upload_image("c1", tmp_path / "missing.jpg")


async def test_delete_image_traversal_rejected(backend: SqliteBackend) -> None:
    with pytest.raises(BackendError):
        await backend.delete_image("../../etc/passwd")


# -- Tasks ---------------------------------------------------------------------


async def test_task_crud(backend: SqliteBackend) -> None:
    first = await backend.create_task("c1", "book tickets")
    second = await backend.create_task("c1", "buy gift")
    await backend.create_task("other", "not ours")

    await backend.update_task(first.id, True)
    tasks = await backend.list_tasks("c1")

    assert [t.id for t in tasks] == [second.id, first.id]
    assert tasks[1].completed is True

    await backend.delete_task(second.id)
    assert [t.id for t in await backend.list_tasks("c1")] == [first.id]


async def test_update_missing_task_raises(backend: SqliteBackend) -> None:
    with pytest.raises(NotFoundError):
        await backend.update_task("nope", True)


# -- Couple / profile / stats --------------------------------------------------


async def test_couple_first_met_date(backend: SqliteBackend) -> None:
    await backend.add_couple(Couple(id="c1", invite_code="ABC"))
    assert (await backend.get_couple("c1")).first_met_date is None

    couple = await backend.update_first_met_date("c1", date(2021, 3, 1))
    assert couple.first_met_date == date(2021, 3, 1)


async def test_get_couple_not_found(backend: SqliteBackend) -> None:
    with pytest.raises(NotFoundError):
        await backend.get_couple("nope")


async def test_partner_lookup(backend: SqliteBackend) -> None:
    await backend.add_user(UserProfile(id="u1", nickname="A", couple_id="c1"))
    assert await backend.get_partner("c1", "u1") is None

    await backend.add_user(UserProfile(id="u2", nickname="B", couple_id="c1"))
    partner = await backend.get_partner("c1", "u1")
    assert partner.id == "u2"


async def test_stats(backend: SqliteBackend) -> None:
    await backend.create_event(_draft(1, location="Cafe A", category="cafe"))
    await backend.create_event(_draft(2, location="Cafe A", category="cafe"))
    await backend.create_event(_draft(3, location="Park", category="park"))

    stats = await backend.get_stats("c1")

    assert stats.total == 3
    assert stats.latest_memory_date == datetime(2024, 1, 3, 12, tzinfo=UTC)
    assert stats.top_locations[0].value == "Cafe A"
    assert stats.top_categories[0].count == 2


async def test_unwritable_database_raises_backend_error(tmp_path: Path, images) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x")
    backend = SqliteBackend(db_path=blocker / "sub" / "test.db", images=images)
    with pytest.raises(BackendError):
        await backend.list_events("c1")
