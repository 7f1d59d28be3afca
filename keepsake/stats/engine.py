"""StatsEngine — frequency-ranked aggregates over a couple's events."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from keepsake.config import settings
from keepsake.models import MemoryStats, RankedCount

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from keepsake.models import TimelineEvent


def rank(values: Iterable[str | None], top_k: int | None = None) -> list[RankedCount]:
    """Count non-empty values and rank them by count, highest first.

    Equal counts keep the order in which each value was first seen.
    Matching is exact and case-sensitive.  ``top_k=None`` returns all.
    """
    counts = Counter(v for v in values if v)
    # most_common() orders ties by first insertion
    return [RankedCount(value=v, count=c) for v, c in counts.most_common(top_k)]


def compute_stats(events: Sequence[TimelineEvent], top_k: int | None = None) -> MemoryStats:
    """Recompute total, latest date and top locations/categories."""
    if top_k is None:
        top_k = settings.stats_top_k
    if top_k < 1:
        msg = f"top_k must be positive, got {top_k}"
        raise ValueError(msg)
    return MemoryStats(
        total=len(events),
        latest_memory_date=max((e.event_date for e in events), default=None),
        top_locations=rank((e.location for e in events), top_k),
        top_categories=rank((e.category for e in events), top_k),
    )
