"""Place search and selection."""

from keepsake.places.naver import NaverPlaceSearch, place_fields, strip_markup

__all__ = ["NaverPlaceSearch", "place_fields", "strip_markup"]
