"""Storage backends for events, tasks, couples and images."""

from __future__ import annotations

from keepsake.backend.base import MemoryBackend
from keepsake.backend.images import ImageStore
from keepsake.backend.sqlite import SqliteBackend
from keepsake.backend.supabase import SupabaseBackend
from keepsake.config import settings

__all__ = [
    "ImageStore",
    "MemoryBackend",
    "SqliteBackend",
    "SupabaseBackend",
    "create_backend",
]


def create_backend(name: str | None = None) -> MemoryBackend:
    """Build the backend selected by *name* (default: ``settings.backend``)."""
    name = (name or settings.backend).lower()
    if name == "sqlite":
        return SqliteBackend()
    if name == "supabase":
        return SupabaseBackend()
    msg = f"Unknown backend: {name!r} (expected 'sqlite' or 'supabase')"
    raise ValueError(msg)
