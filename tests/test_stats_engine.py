"""Tests for StatsEngine ranking."""

from datetime import UTC, datetime

import pytest

from keepsake.models import RankedCount
from keepsake.stats.engine import compute_stats, rank


def test_top_location_by_count(make_event) -> None:
    events = [
        make_event(location="Cafe A"),
        make_event(location="Cafe A"),
        make_event(location="Cafe B"),
    ]
    stats = compute_stats(events, top_k=1)
    assert stats.top_locations == [RankedCount(value="Cafe A", count=2)]
    assert stats.total == 3


def test_ties_keep_first_seen_order() -> None:
    ranked = rank(["Park", "Cafe", "Cafe", "Park", "Museum"])
    assert ranked == [
        RankedCount(value="Park", count=2),
        RankedCount(value="Cafe", count=2),
        RankedCount(value="Museum", count=1),
    ]


def test_ties_respect_input_order_when_reversed() -> None:
    ranked = rank(["Cafe", "Park", "Park", "Cafe"])
    assert [r.value for r in ranked] == ["Cafe", "Park"]


def test_top_k_truncates() -> None:
    ranked = rank(["a", "b", "b", "c", "c", "c"], top_k=2)
    assert [(r.value, r.count) for r in ranked] == [("c", 3), ("b", 2)]


def test_top_k_none_returns_all() -> None:
    assert len(rank(["a", "b", "c"], top_k=None)) == 3


def test_empty_and_missing_values_excluded(make_event) -> None:
    events = [
        make_event(location=None, category=None),
        make_event(location="", category="cafe"),
        make_event(location="Home", category=None),
    ]
    stats = compute_stats(events)
    assert stats.top_locations == [RankedCount(value="Home", count=1)]
    assert stats.top_categories == [RankedCount(value="cafe", count=1)]


def test_location_matching_is_case_sensitive() -> None:
    ranked = rank(["cafe a", "Cafe A", "Cafe A"])
    assert ranked == [RankedCount(value="Cafe A", count=2), RankedCount(value="cafe a", count=1)]


def test_latest_memory_date(make_event) -> None:
    events = [make_event("2024-01-10T00:00:00Z"), make_event("2024-05-02T00:00:00Z")]
    stats = compute_stats(events)
    assert stats.latest_memory_date == datetime(2024, 5, 2, tzinfo=UTC)


def test_empty_event_set() -> None:
    stats = compute_stats([])
    assert stats.total == 0
    assert stats.latest_memory_date is None
    assert stats.top_locations == []
    assert stats.top_categories == []


def test_top_k_default_from_settings(make_event, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("keepsake.config.settings.stats_top_k", 2)
    events = [make_event(category=c) for c in ["cafe", "park", "movie", "home"]]
    assert len(compute_stats(events).top_categories) == 2


@pytest.mark.parametrize("top_k", [0, -1])
def test_non_positive_top_k_rejected(make_event, top_k: int) -> None:
    with pytest.raises(ValueError, match="top_k"):
        compute_stats([make_event(location="Cafe A")], top_k=top_k)
