"""Data models for memories, tasks, couples and derived stats."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator

if TYPE_CHECKING:
    from keepsake.geo.convert import Coordinates

MIN_RATING = 0.5
MAX_RATING = 5.0


def _as_aware(value: datetime) -> datetime:
    """Interpret naive timestamps from storage as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_as_aware)]


class _EventContent(BaseModel):
    """Editable content shared by events, drafts and patches."""

    image_path: str | None = None
    description: str | None = None
    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    category: str | None = None
    keywords: list[str] | None = None
    rating: float | None = None

    @field_validator("rating")
    @classmethod
    def _check_rating(cls, value: float | None) -> float | None:
        if value is None:
            return value
        if not MIN_RATING <= value <= MAX_RATING or (value * 2) % 1:
            msg = f"rating must be a multiple of 0.5 between 0.5 and 5, got {value}"
            raise ValueError(msg)
        return value

    @field_validator("keywords")
    @classmethod
    def _check_keywords(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return value
        if any(not k.strip() for k in value):
            msg = "keywords must be non-empty strings"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def _check_coordinates(self) -> _EventContent:
        if (self.latitude is None) != (self.longitude is None):
            msg = "latitude and longitude must be set together"
            raise ValueError(msg)
        return self

    @property
    def unique_keywords(self) -> list[str]:
        """Keywords with duplicates removed, first occurrence kept."""
        return list(dict.fromkeys(self.keywords or []))

    @property
    def has_image(self) -> bool:
        return bool(self.image_path)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class TimelineEvent(_EventContent):
    """One dated memory owned by a couple."""

    id: str
    couple_id: str
    author_id: str
    event_date: UtcDatetime
    created_at: UtcDatetime | None = None


class EventDraft(_EventContent):
    """Fields for inserting a new event. The server assigns id and created_at."""

    couple_id: str
    author_id: str
    event_date: UtcDatetime


class EventPatch(_EventContent):
    """A partial update. Only explicitly set fields are written."""

    event_date: UtcDatetime | None = None

    @model_validator(mode="after")
    def _check_event_date(self) -> EventPatch:
        if "event_date" in self.model_fields_set and self.event_date is None:
            msg = "event_date cannot be cleared"
            raise ValueError(msg)
        return self

    def changes(self) -> dict[str, Any]:
        """Return the set fields as JSON-ready values."""
        return self.model_dump(mode="json", exclude_unset=True)


class Task(BaseModel):
    """A shared checklist item."""

    id: str
    couple_id: str
    text: str
    completed: bool = False
    created_at: UtcDatetime | None = None


class Couple(BaseModel):
    """The pairing that owns a shared set of events and tasks."""

    id: str
    invite_code: str
    first_met_date: date | None = None


class UserProfile(BaseModel):
    """Display information for one member of a couple."""

    id: str
    nickname: str | None = None
    profile_image_url: str | None = None
    couple_id: str | None = None


class PlaceCandidate(BaseModel):
    """A place returned by the place-search provider.

    ``mapx``/``mapy`` are kept in the provider's native units; call
    :meth:`coordinates` to convert them.
    """

    title: str
    address: str = ""
    road_address: str = ""
    category: str = ""
    link: str = ""
    mapx: str = ""
    mapy: str = ""

    def coordinates(self) -> Coordinates:
        from keepsake.geo.convert import to_wgs84

        return to_wgs84(self.mapx, self.mapy)


class RankedCount(BaseModel):
    """A value and how many events carry it."""

    value: str
    count: int


class MemoryStats(BaseModel):
    """Aggregate figures for a couple's memories."""

    total: int = 0
    latest_memory_date: UtcDatetime | None = None
    top_locations: list[RankedCount] = Field(default_factory=list)
    top_categories: list[RankedCount] = Field(default_factory=list)
