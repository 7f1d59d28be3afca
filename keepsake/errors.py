"""Exception types raised across the memory engine."""

from __future__ import annotations


class KeepsakeError(Exception):
    """Base class for all Keepsake errors."""


class BackendError(KeepsakeError):
    """A remote fetch or mutation failed."""


class NotFoundError(BackendError):
    """The requested record does not exist."""


class InvalidMemoryError(KeepsakeError):
    """Input was rejected before any remote call was made."""


class OrphanedImageError(BackendError):
    """The event record was deleted but its stored image was not.

    The record is already gone when this is raised; the image at
    ``image_path`` is left behind in storage.
    """

    def __init__(self, event_id: str, image_path: str, reason: str = "") -> None:
        self.event_id = event_id
        self.image_path = image_path
        msg = f"Event {event_id} deleted but image {image_path!r} was not removed"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
