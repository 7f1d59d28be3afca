"""Journal — event ingestion, edits, deletes and view loading for one couple.

Remote failures are turned into notices and the previous view is kept.
Two cases still raise to the caller:

- ``create_memory`` re-raises after posting a notice, so the form stays open.
- ``delete_event`` raises :class:`OrphanedImageError` when the record is gone
  but its stored image could not be removed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from keepsake.errors import BackendError, InvalidMemoryError, OrphanedImageError
from keepsake.models import EventDraft, EventPatch
from keepsake.notices import NoticeBoard
from keepsake.places.naver import place_fields
from keepsake.search.index import DebouncedSearch
from keepsake.timeline.views import CalendarMonth, gallery_sections, sort_timeline

if TYPE_CHECKING:
    from datetime import date, datetime
    from pathlib import Path

    from keepsake.backend.base import MemoryBackend
    from keepsake.models import (
        Couple,
        MemoryStats,
        PlaceCandidate,
        Task,
        TimelineEvent,
        UserProfile,
    )
    from keepsake.search.index import ResultsCallback
    from keepsake.session import Session
    from keepsake.timeline.views import GallerySection

logger = logging.getLogger(__name__)


@dataclass
class Dashboard:
    """Home-screen data. A leg that failed is None and listed in ``errors``."""

    events: list[TimelineEvent] | None = None
    couple: Couple | None = None
    stats: MemoryStats | None = None
    tasks: list[Task] | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.errors


class Journal:
    """Event operations and derived views for the session's couple.

    Args:
        backend: Storage backend.
        session: Signed-in identity (author and couple).
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
        self.timeline: list[TimelineEvent] = []
        self.calendar: CalendarMonth | None = None

    # -- Loading views ---------------------------------------------------------

    async def load_timeline(self) -> list[TimelineEvent]:
        """Fetch and sort all events. On failure the previous list is returned."""
        try:
            events = await self._backend.list_events(self._session.couple_id)
        except BackendError as exc:
            logger.exception("Failed to load events")
            self.notices.post("Couldn't load memories", exc)
            return self.timeline
        self.timeline = sort_timeline(events)
        return self.timeline

    async def load_gallery(self, columns: int | None = None) -> list[GallerySection]:
        return gallery_sections(await self.load_timeline(), columns)

    async def load_month(
        self, year: int, month: int, selected_day: str | None = None
    ) -> CalendarMonth | None:
        """Fetch one month for the calendar. On failure the previous month stays."""
        if selected_day is None and self.calendar is not None:
            selected_day = self.calendar.selected_day
        try:
            events = await self._backend.list_events_in_month(
                self._session.couple_id, year, month
            )
        except BackendError as exc:
            logger.exception("Failed to load %d-%02d", year, month)
            self.notices.post("Couldn't load calendar", exc)
            return self.calendar
        self.calendar = CalendarMonth(year, month, events, selected_day=selected_day)
        return self.calendar

    async def load_stats(self) -> MemoryStats | None:
        try:
            return await self._backend.get_stats(self._session.couple_id)
        except BackendError as exc:
            logger.exception("Failed to load stats")
            self.notices.post("Couldn't load stats", exc)
            return None

    async def open_search(self, on_results: ResultsCallback | None = None) -> DebouncedSearch:
        """Load events and return a debounced search over them."""
        return DebouncedSearch(await self.load_timeline(), on_results=on_results)

    async def load_dashboard(self) -> Dashboard:
        """Fetch events, couple, stats and tasks concurrently.

        Each leg succeeds or fails on its own; failures are logged and
        recorded in ``Dashboard.errors`` while the other legs are kept.
        """
        couple_id = self._session.couple_id
        legs = {
            "events": self._backend.list_events(couple_id),
            "couple": self._backend.get_couple(couple_id),
            "stats": self._backend.get_stats(couple_id),
            "tasks": self._backend.list_tasks(couple_id),
        }
        results = await asyncio.gather(*legs.values(), return_exceptions=True)

        dashboard = Dashboard()
        for name, result in zip(legs, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Dashboard leg %r failed: %s", name, result, exc_info=result)
                dashboard.errors[name] = str(result)
                continue
            if name == "events":
                result = sort_timeline(result)
                self.timeline = result
            setattr(dashboard, name, result)

        if dashboard.errors:
            self.notices.post(
                "Some data couldn't be loaded",
                BackendError(", ".join(sorted(dashboard.errors))),
            )
        return dashboard

    async def load_members(self) -> tuple[UserProfile | None, UserProfile | None]:
        """(signed-in user, partner) for display. Missing profiles are None."""
        me, partner = await asyncio.gather(
            self._backend.get_user(self._session.user_id),
            self._backend.get_partner(self._session.couple_id, self._session.user_id),
            return_exceptions=True,
        )
        if isinstance(me, BaseException):
            logger.warning("Could not load profile %s: %s", self._session.user_id, me)
            me = None
        if isinstance(partner, BaseException):
            logger.warning("Could not load partner: %s", partner)
            partner = None
        return me, partner

    # -- Mutations -------------------------------------------------------------

    async def create_memory(
        self,
        image: Path | None,
        *,
        event_date: datetime,
        description: str | None = None,
        location: str | None = None,
        place: PlaceCandidate | None = None,
        category: str | None = None,
        keywords: list[str] | None = None,
        rating: float | None = None,
    ) -> TimelineEvent:
        """Upload *image* and insert the event record.

        Input is validated before any remote call.  Upload and insert are
        separate operations: if the insert fails, the uploaded image is
        removed on a best-effort basis.  A selected *place* supplies the
        location label and coordinates, replacing any free-text *location*.
        """
        if image is None:
            msg = "Please select an image for your memory."
            raise InvalidMemoryError(msg)

        fields: dict[str, Any] = {
            "couple_id": self._session.couple_id,
            "author_id": self._session.user_id,
            "event_date": event_date,
            "description": description,
            "location": location,
            "category": category,
            "keywords": keywords,
            "rating": rating,
        }
        if place is not None:
            fields.update(place_fields(place))
        try:
            draft = EventDraft(**fields)
        except ValidationError as exc:
            raise InvalidMemoryError(str(exc)) from exc

        try:
            image_path = await self._backend.upload_image(self._session.couple_id, image)
        except BackendError as exc:
            self.notices.post("Couldn't upload photo", exc)
            raise

        try:
            event = await self._backend.create_event(
                draft.model_copy(update={"image_path": image_path})
            )
        except BackendError as exc:
            self.notices.post("Couldn't save memory", exc)
            await self._discard_upload(image_path)
            raise

        self.timeline = sort_timeline([event, *self.timeline])
        logger.info("Created memory %s", event.id)
        return event

    async def edit_event(self, event_id: str, **changes: Any) -> bool:
        """Apply a partial update. Returns False if the backend refused it."""
        try:
            patch = EventPatch(**changes)
        except ValidationError as exc:
            raise InvalidMemoryError(str(exc)) from exc

        try:
            await self._backend.update_event(event_id, patch)
        except BackendError as exc:
            logger.exception("Failed to update event %s", event_id)
            self.notices.post("Couldn't save changes", exc)
            return False

        updates = {k: getattr(patch, k) for k in patch.model_fields_set}
        self.timeline = sort_timeline(
            e.model_copy(update=updates) if e.id == event_id else e for e in self.timeline
        )
        return True

    async def delete_event(self, event: TimelineEvent) -> bool:
        """Delete the record, then its image.

        Returns False (with a notice) if the record delete fails.  Raises
        :class:`OrphanedImageError` if the record is gone but the image
        delete fails.
        """
        try:
            await self._backend.delete_event(event.id)
        except BackendError as exc:
            logger.exception("Failed to delete event %s", event.id)
            self.notices.post("Couldn't delete memory", exc)
            return False

        self.timeline = [e for e in self.timeline if e.id != event.id]

        if event.image_path:
            try:
                await self._backend.delete_image(event.image_path)
            except BackendError as exc:
                logger.exception("Event %s deleted but image remains", event.id)
                raise OrphanedImageError(event.id, event.image_path, str(exc)) from exc
        return True

    async def set_first_met_date(self, first_met: date) -> Couple | None:
        try:
            return await self._backend.update_first_met_date(self._session.couple_id, first_met)
        except BackendError as exc:
            logger.exception("Failed to set first met date")
            self.notices.post("Couldn't save date", exc)
            return None

    # -- Helpers ---------------------------------------------------------------

    def image_url(self, event: TimelineEvent) -> str | None:
        if not event.image_path:
            return None
        return self._backend.get_public_url(event.image_path)

    async def _discard_upload(self, image_path: str) -> None:
        try:
            await self._backend.delete_image(image_path)
        except BackendError:
            logger.exception("Orphaned upload %s could not be removed", image_path)
