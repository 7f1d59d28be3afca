"""Substring search over events, with a debounced evaluator for live input."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from keepsake.categories import category_label
from keepsake.config import settings
from keepsake.timeline.views import sort_timeline

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from keepsake.models import TimelineEvent

    ResultsCallback = Callable[[str, list[TimelineEvent]], None]

logger = logging.getLogger(__name__)


def _searchable_fields(event: TimelineEvent) -> list[str]:
    fields = [
        event.description,
        event.location,
        event.category,
        category_label(event.category),
        *(event.keywords or []),
    ]
    return [f.lower() for f in fields if f]


def matches(event: TimelineEvent, needle: str) -> bool:
    """True if lowercase *needle* occurs in any searchable field."""
    return any(needle in value for value in _searchable_fields(event))


def match_events(query: str, events: Iterable[TimelineEvent]) -> list[TimelineEvent]:
    """Return events matching *query*, newest first.

    A blank query returns no results rather than every event.
    """
    if not query.strip():
        return []
    needle = query.lower()
    return sort_timeline(e for e in events if matches(e, needle))


class DebouncedSearch:
    """Evaluates the latest query once input has been quiet for *delay*.

    Each :meth:`update` cancels the pending evaluation and restarts the
    timer.  Results are published only for the newest query; a generation
    counter drops anything computed for an older one.

    Args:
        events: Snapshot to search.
        on_results: Called with ``(query, results)`` on every publish.
        delay: Quiet period in seconds (default from settings).
    """

    def __init__(
        self,
        events: Iterable[TimelineEvent] = (),
        on_results: ResultsCallback | None = None,
        delay: float | None = None,
    ) -> None:
        self._events = list(events)
        self._on_results = on_results
        self._delay = settings.search_debounce_seconds if delay is None else delay
        self._pending: asyncio.Task | None = None
        self._generation = 0
        self.query = ""
        self.results: list[TimelineEvent] = []
        self.evaluations = 0

    @property
    def searching(self) -> bool:
        """True while an evaluation is scheduled but not yet published."""
        return self._pending is not None and not self._pending.done()

    # -- Input -----------------------------------------------------------------

    def update(self, query: str) -> None:
        """Record a new query value and (re)start the debounce timer."""
        self.query = query
        self._generation += 1
        self._cancel_pending()

        if not query.strip():
            self._publish([], self._generation)
            return

        self._pending = asyncio.create_task(self._evaluate_later(query, self._generation))

    def set_events(self, events: Iterable[TimelineEvent]) -> None:
        """Replace the snapshot and re-run the current query."""
        self._events = list(events)
        self.update(self.query)

    async def wait(self) -> list[TimelineEvent]:
        """Wait for the pending evaluation (if any) and return current results."""
        if self._pending is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._pending
        return self.results

    def close(self) -> None:
        """Drop any pending evaluation."""
        self._generation += 1
        self._cancel_pending()

    # -- Internal --------------------------------------------------------------

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _evaluate_later(self, query: str, generation: int) -> None:
        await asyncio.sleep(self._delay)
        results = match_events(query, self._events)
        self.evaluations += 1
        logger.debug("Search %r matched %d event(s)", query, len(results))
        self._publish(results, generation)

    def _publish(self, results: list[TimelineEvent], generation: int) -> None:
        if generation != self._generation:
            logger.debug("Dropping stale search results (generation %d)", generation)
            return
        self.results = results
        if self._on_results is not None:
            self._on_results(self.query, results)
