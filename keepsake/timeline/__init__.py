"""Timeline, calendar and gallery views over event snapshots."""

from keepsake.timeline.views import (
    CalendarMonth,
    DayMark,
    GallerySection,
    chunk_rows,
    day_key,
    events_in_month,
    gallery_sections,
    month_bounds,
    sort_timeline,
)

__all__ = [
    "CalendarMonth",
    "DayMark",
    "GallerySection",
    "chunk_rows",
    "day_key",
    "events_in_month",
    "gallery_sections",
    "month_bounds",
    "sort_timeline",
]
