"""Ordered and grouped views over a snapshot of timeline events.

Three independent derivations feed the timeline, calendar and gallery
screens.  All of them are pure: they take an event list and return new
lists, never mutating the input.
"""

from __future__ import annotations

import calendar
import logging
import zoneinfo
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from typing import TYPE_CHECKING

from keepsake.config import settings

if TYPE_CHECKING:
    from collections.abc import Iterable

    from keepsake.models import TimelineEvent

logger = logging.getLogger(__name__)

# Missing created_at sorts as the oldest possible instant.
_OLDEST = datetime.min.replace(tzinfo=UTC)


def resolve_timezone(tz: str | tzinfo | None = None) -> tzinfo:
    """Return a tzinfo for *tz*, falling back to the configured display zone."""
    if isinstance(tz, tzinfo):
        return tz
    name = tz or settings.display_timezone
    if name.upper() == "UTC":
        return UTC
    return zoneinfo.ZoneInfo(name)


# -- Global ordering -----------------------------------------------------------


def timeline_key(event: TimelineEvent) -> tuple[datetime, datetime]:
    return (event.event_date, event.created_at or _OLDEST)


def sort_timeline(events: Iterable[TimelineEvent]) -> list[TimelineEvent]:
    """Newest event_date first; ties broken by newest created_at.

    ``sorted`` is stable with ``reverse=True`` too, so events with equal
    keys keep their input order on every call.
    """
    return sorted(events, key=timeline_key, reverse=True)


# -- Calendar ------------------------------------------------------------------


def month_bounds(
    year: int, month: int, tz: str | tzinfo | None = None
) -> tuple[datetime, datetime]:
    """First and last instant of a month (both inclusive) in *tz*."""
    zone = resolve_timezone(tz)
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=zone)
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=zone)
    return start, end


def day_key(moment: datetime, tz: str | tzinfo | None = None) -> str:
    """Truncate a timestamp to its ``YYYY-MM-DD`` calendar day in *tz*."""
    return moment.astimezone(resolve_timezone(tz)).date().isoformat()


def events_in_month(
    events: Iterable[TimelineEvent],
    year: int,
    month: int,
    tz: str | tzinfo | None = None,
) -> list[TimelineEvent]:
    start, end = month_bounds(year, month, tz)
    return [e for e in events if start <= e.event_date <= end]


@dataclass(frozen=True)
class DayMark:
    """Calendar cell state for one day."""

    has_events: bool = False
    selected: bool = False


class CalendarMonth:
    """Day marks and per-day event lists for one loaded month.

    Built from the month's events once; :meth:`select` only changes which
    day is highlighted and which events are listed, without refetching.
    """

    def __init__(
        self,
        year: int,
        month: int,
        events: Iterable[TimelineEvent],
        selected_day: str | None = None,
        tz: str | tzinfo | None = None,
    ) -> None:
        self.year = year
        self.month = month
        self._tz = resolve_timezone(tz)
        self._events = sort_timeline(events_in_month(events, year, month, self._tz))
        self._days = {day_key(e.event_date, self._tz) for e in self._events}
        self.selected_day = selected_day

    @property
    def events(self) -> list[TimelineEvent]:
        return list(self._events)

    @property
    def marks(self) -> dict[str, DayMark]:
        """Map of ``YYYY-MM-DD`` → mark, including the selected day."""
        marks = {day: DayMark(has_events=True) for day in sorted(self._days)}
        if self.selected_day:
            marks[self.selected_day] = DayMark(
                has_events=self.selected_day in self._days, selected=True
            )
        return marks

    def select(self, day: str) -> list[TimelineEvent]:
        """Highlight *day* and return its events."""
        self.selected_day = day
        return self.selected_events

    @property
    def selected_events(self) -> list[TimelineEvent]:
        if not self.selected_day:
            return []
        return [e for e in self._events if day_key(e.event_date, self._tz) == self.selected_day]


# -- Gallery -------------------------------------------------------------------


@dataclass
class GallerySection:
    """One month of image-bearing events laid out in fixed-width rows."""

    year: int
    month: int
    columns: int
    rows: list[list[TimelineEvent]] = field(default_factory=list)

    @property
    def key(self) -> str:
        """Bucket key, e.g. ``"2024-2"``."""
        return f"{self.year}-{self.month}"

    @property
    def short_label(self) -> str:
        """Section header label, e.g. ``"24.2"``."""
        return f"{self.year % 100:02d}.{self.month}"

    @property
    def events(self) -> list[TimelineEvent]:
        return [e for row in self.rows for e in row]

    @property
    def trailing_slots(self) -> int:
        """Empty cells at the end of the last row."""
        if not self.rows:
            return 0
        return self.columns - len(self.rows[-1])


def chunk_rows(events: list[TimelineEvent], columns: int) -> list[list[TimelineEvent]]:
    """Split *events* into rows of *columns*, keeping a short final row."""
    return [events[i : i + columns] for i in range(0, len(events), columns)]


def gallery_sections(
    events: Iterable[TimelineEvent],
    columns: int | None = None,
    tz: str | tzinfo | None = None,
) -> list[GallerySection]:
    """Group image-bearing events by month, newest month first."""
    if columns is None:
        columns = settings.gallery_columns
    if columns < 1:
        msg = f"columns must be positive, got {columns}"
        raise ValueError(msg)
    zone = resolve_timezone(tz)

    buckets: dict[tuple[int, int], list[TimelineEvent]] = {}
    for event in sort_timeline(e for e in events if e.has_image):
        local = event.event_date.astimezone(zone)
        buckets.setdefault((local.year, local.month), []).append(event)

    sections = [
        GallerySection(year=year, month=month, columns=columns, rows=chunk_rows(group, columns))
        for (year, month), group in buckets.items()
    ]
    logger.debug("Built %d gallery section(s) with %d column(s)", len(sections), columns)
    return sections
