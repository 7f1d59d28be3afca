"""Event search."""

from keepsake.search.index import DebouncedSearch, match_events, matches

__all__ = ["DebouncedSearch", "match_events", "matches"]
