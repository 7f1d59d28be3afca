"""Aggregate statistics over timeline events."""

from keepsake.stats.engine import compute_stats, rank

__all__ = ["compute_stats", "rank"]
