"""Place categories offered when tagging a memory."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PlaceCategory:
    """A selectable place category.

    Attributes:
        id: Stable identifier stored on events (e.g. ``"cafe"``).
        label: Human-readable label shown in the UI.
        icon: Icon name used by the client.
        keywords: Suggested keywords offered for this category.
    """

    id: str
    label: str
    icon: str
    keywords: tuple[str, ...] = ()


PLACE_CATEGORIES: tuple[PlaceCategory, ...] = (
    PlaceCategory(
        "restaurant", "맛집", "restaurant",
        ("맛있는", "분위기 좋은", "친절한", "가성비 좋은", "웨이팅 있는"),
    ),
    PlaceCategory(
        "cafe", "카페", "cafe",
        ("감성적인", "디저트가 맛있는", "커피가 맛있는", "조용한", "뷰가 좋은"),
    ),
    PlaceCategory(
        "movie", "영화관", "film",
        ("재밌는", "감동적인", "스릴 넘치는", "팝콘이 맛있는", "사람이 많은"),
    ),
    PlaceCategory(
        "park", "공원", "leaf",
        ("산책하기 좋은", "힐링되는", "날씨가 좋은", "피크닉", "자전거 타기 좋은"),
    ),
    PlaceCategory(
        "travel", "여행", "airplane",
        ("행복한", "잊지 못할", "새로운", "힐링여행", "다시 가고 싶은"),
    ),
    PlaceCategory(
        "shopping", "쇼핑", "cart",
        ("득템한", "세일하는", "구경하기 좋은", "선물하기 좋은"),
    ),
    PlaceCategory(
        "home", "집데이트", "home",
        ("편안한", "오붓한", "맛있는 배달음식", "넷플릭스", "뒹굴뒹굴"),
    ),
)

_BY_ID = {c.id: c for c in PLACE_CATEGORIES}


def get_category(category_id: str | None) -> PlaceCategory | None:
    """Look up a category by id. Returns None for unknown or empty ids."""
    if not category_id:
        return None
    return _BY_ID.get(category_id)


def category_label(category_id: str | None) -> str | None:
    """Return the display label for *category_id*, or None if unknown."""
    category = get_category(category_id)
    return category.label if category else None
