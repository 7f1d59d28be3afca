"""Coordinate conversion for place-search results."""

from keepsake.geo.convert import FAILED, Coordinates, katech_to_wgs84, to_wgs84

__all__ = [
    "FAILED",
    "Coordinates",
    "katech_to_wgs84",
    "to_wgs84",
]
