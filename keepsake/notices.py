"""NoticeBoard — user-visible, dismissible failure notices."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

logger = logging.getLogger(__name__)


@dataclass
class Notice:
    """A message shown to the user until dismissed.

    Attributes:
        id: Short unique key used to dismiss the notice.
        title: One-line summary (e.g. ``"Couldn't update task"``).
        detail: Underlying error text, if any.
        created_at: ISO 8601 timestamp.
    """

    title: str
    detail: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


class NoticeBoard:
    """Collects notices raised by background operations.

    Each screen owns one board; nothing is shared between boards.
    """

    def __init__(self) -> None:
        self._notices: list[Notice] = []

    def post(self, title: str, error: BaseException | None = None) -> Notice:
        """Add a notice. Returns it so callers can keep the id."""
        notice = Notice(title=title, detail=str(error) if error else "")
        self._notices.append(notice)
        logger.info("Notice posted: %s (%s)", title, notice.detail or "no detail")
        return notice

    def dismiss(self, notice_id: str) -> bool:
        """Remove a notice. Returns True if it existed."""
        before = len(self._notices)
        self._notices = [n for n in self._notices if n.id != notice_id]
        return len(self._notices) < before

    def clear(self) -> None:
        self._notices.clear()

    @property
    def pending(self) -> list[Notice]:
        """Undismissed notices, oldest first."""
        return list(self._notices)

    def __len__(self) -> int:
        return len(self._notices)
