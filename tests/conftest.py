"""Shared test fixtures."""

from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from keepsake.backend.images import ImageStore
from keepsake.backend.sqlite import SqliteBackend
from keepsake.models import TimelineEvent
from keepsake.session import Session


@pytest.fixture(autouse=True)
def _utc_display(monkeypatch: pytest.MonkeyPatch) -> None:
    """Bucket days and months in UTC regardless of the local environment."""
    monkeypatch.setattr("keepsake.config.settings.display_timezone", "UTC")


@pytest.fixture
def session() -> Session:
    return Session(user_id="u1", couple_id="c1")


@pytest.fixture
def make_event():
    """Factory for TimelineEvent with sensible defaults.

    ``event_date`` and ``created_at`` accept ISO strings.
    """
    counter = itertools.count(1)

    def _make(event_date: str = "2024-01-10T12:00:00Z", **kwargs) -> TimelineEvent:
        n = next(counter)
        defaults = {
            "id": f"e{n}",
            "couple_id": "c1",
            "author_id": "u1",
            "created_at": "2024-01-01T00:00:00Z",
        }
        defaults.update(kwargs)
        return TimelineEvent(event_date=event_date, **defaults)

    return _make


@pytest.fixture
def images(tmp_path: Path) -> ImageStore:
    return ImageStore(root=tmp_path / "images", public_base_url="https://img.example.com")


@pytest.fixture
def backend(tmp_path: Path, images: ImageStore) -> SqliteBackend:
    """A SqliteBackend backed by a temp database and image directory."""
    return SqliteBackend(db_path=tmp_path / "test.db", images=images)


@pytest.fixture
def photo(tmp_path: Path) -> Path:
    """A small fake JPEG on disk."""
    path = tmp_path / "upload" / "IMG_0001.JPG"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\xff\xd8\xff\xe0fake-jpeg")
    return path
