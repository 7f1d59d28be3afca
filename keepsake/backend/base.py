"""MemoryBackend protocol — the CRUD + object-storage contract the engine uses."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import date
    from pathlib import Path

    from keepsake.models import (
        Couple,
        EventDraft,
        EventPatch,
        MemoryStats,
        Task,
        TimelineEvent,
        UserProfile,
    )


@runtime_checkable
class MemoryBackend(Protocol):
    """Protocol that all storage backends must satisfy.

    Remote failures raise :class:`~keepsake.errors.BackendError`; a missing
    row raises :class:`~keepsake.errors.NotFoundError`.
    """

    # -- Events ----------------------------------------------------------------

    async def list_events(self, couple_id: str) -> list[TimelineEvent]:
        """All events of a couple, newest event_date first."""
        ...

    async def list_events_in_month(
        self, couple_id: str, year: int, month: int
    ) -> list[TimelineEvent]:
        """Events whose event_date falls inside the given month."""
        ...

    async def get_event(self, event_id: str) -> TimelineEvent:
        ...

    async def create_event(self, draft: EventDraft) -> TimelineEvent:
        """Insert an event. The backend assigns id and created_at."""
        ...

    async def update_event(self, event_id: str, patch: EventPatch) -> None:
        ...

    async def delete_event(self, event_id: str) -> None:
        """Delete the record only. The caller removes the stored image."""
        ...

    # -- Images ----------------------------------------------------------------

    async def upload_image(self, couple_id: str, local_path: Path) -> str:
        """Store a local image file. Returns its storage path."""
        ...

    async def delete_image(self, storage_path: str) -> None:
        ...

    def get_public_url(self, storage_path: str) -> str:
        ...

    # -- Tasks -----------------------------------------------------------------

    async def list_tasks(self, couple_id: str) -> list[Task]:
        ...

    async def create_task(self, couple_id: str, text: str) -> Task:
        ...

    async def update_task(self, task_id: str, completed: bool) -> None:
        ...

    async def delete_task(self, task_id: str) -> None:
        ...

    # -- Couple / profile ------------------------------------------------------

    async def get_stats(self, couple_id: str) -> MemoryStats:
        ...

    async def get_couple(self, couple_id: str) -> Couple:
        ...

    async def update_first_met_date(self, couple_id: str, first_met: date) -> Couple:
        ...

    async def get_user(self, user_id: str) -> UserProfile:
        ...

    async def get_partner(self, couple_id: str, user_id: str) -> UserProfile | None:
        """The other member of the couple, or None if not joined yet."""
        ...
