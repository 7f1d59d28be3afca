"""KATECH (TM128) to WGS84 conversion for place-search coordinates.

The place-search provider returns ``mapx``/``mapy`` in the KATECH planar
system: a Transverse Mercator projection on the Bessel 1841 ellipsoid,
related to WGS84 by a seven-parameter Helmert shift.  Conversion runs in
three steps:

1. Inverse Transverse Mercator (Snyder series) → Bessel latitude/longitude.
2. Bessel geodetic → geocentric XYZ → position-vector Helmert shift.
3. Geocentric XYZ → WGS84 latitude/longitude (iterative).

Some result sources already return WGS84 degrees multiplied by 10^7; those
are detected by magnitude and only rescaled.
"""

from __future__ import annotations

import logging
import math
from typing import NamedTuple

logger = logging.getLogger(__name__)

# Inputs with |east| above this are WGS84 degrees scaled by 10^7.
PRESCALED_THRESHOLD = 10_000_000
PRESCALE_FACTOR = 10_000_000

# Bessel 1841
BESSEL_A = 6377397.155
BESSEL_INV_F = 299.1528128

# WGS84
WGS84_A = 6378137.0
WGS84_INV_F = 298.257223563

# KATECH projection
LAT_0 = math.radians(38.0)
LON_0 = math.radians(128.0)
K_0 = 0.9999
FALSE_EASTING = 400000.0
FALSE_NORTHING = 600000.0

# Bessel → WGS84 (position vector): metres, arc-seconds, ppm
TO_WGS84_SHIFT = (-115.80, 474.99, 674.11)
TO_WGS84_ROTATION = (1.16, -2.31, -1.63)
TO_WGS84_SCALE_PPM = 6.43

_ARCSEC = math.pi / (180.0 * 3600.0)


class Coordinates(NamedTuple):
    """A WGS84 position.

    ``converted`` is False when conversion failed; the position is then
    ``(0, 0)`` and must not be read as a real place.
    """

    latitude: float
    longitude: float
    converted: bool = True


FAILED = Coordinates(0.0, 0.0, converted=False)


def _eccentricity_sq(inv_f: float) -> float:
    f = 1.0 / inv_f
    return f * (2.0 - f)


def _meridian_arc(phi: float, a: float, e2: float) -> float:
    """Distance along the meridian from the equator to latitude *phi*."""
    e4 = e2 * e2
    e6 = e4 * e2
    return a * (
        (1 - e2 / 4 - 3 * e4 / 64 - 5 * e6 / 256) * phi
        - (3 * e2 / 8 + 3 * e4 / 32 + 45 * e6 / 1024) * math.sin(2 * phi)
        + (15 * e4 / 256 + 45 * e6 / 1024) * math.sin(4 * phi)
        - (35 * e6 / 3072) * math.sin(6 * phi)
    )


def inverse_tm(easting: float, northing: float) -> tuple[float, float]:
    """Project KATECH easting/northing to Bessel (lat, lon) in radians."""
    a = BESSEL_A
    e2 = _eccentricity_sq(BESSEL_INV_F)
    ep2 = e2 / (1 - e2)

    m = _meridian_arc(LAT_0, a, e2) + (northing - FALSE_NORTHING) / K_0
    mu = m / (a * (1 - e2 / 4 - 3 * e2**2 / 64 - 5 * e2**3 / 256))
    e1 = (1 - math.sqrt(1 - e2)) / (1 + math.sqrt(1 - e2))

    # Footpoint latitude
    phi1 = (
        mu
        + (3 * e1 / 2 - 27 * e1**3 / 32) * math.sin(2 * mu)
        + (21 * e1**2 / 16 - 55 * e1**4 / 32) * math.sin(4 * mu)
        + (151 * e1**3 / 96) * math.sin(6 * mu)
        + (1097 * e1**4 / 512) * math.sin(8 * mu)
    )

    sin1 = math.sin(phi1)
    cos1 = math.cos(phi1)
    tan1 = math.tan(phi1)
    c1 = ep2 * cos1**2
    t1 = tan1**2
    n1 = a / math.sqrt(1 - e2 * sin1**2)
    r1 = a * (1 - e2) / (1 - e2 * sin1**2) ** 1.5
    d = (easting - FALSE_EASTING) / (n1 * K_0)

    lat = phi1 - (n1 * tan1 / r1) * (
        d**2 / 2
        - (5 + 3 * t1 + 10 * c1 - 4 * c1**2 - 9 * ep2) * d**4 / 24
        + (61 + 90 * t1 + 298 * c1 + 45 * t1**2 - 252 * ep2 - 3 * c1**2) * d**6 / 720
    )
    lon = LON_0 + (
        d
        - (1 + 2 * t1 + c1) * d**3 / 6
        + (5 - 2 * c1 + 28 * t1 - 3 * c1**2 + 8 * ep2 + 24 * t1**2) * d**5 / 120
    ) / cos1
    return lat, lon


def _geodetic_to_geocentric(
    lat: float, lon: float, a: float, e2: float, h: float = 0.0
) -> tuple[float, float, float]:
    n = a / math.sqrt(1 - e2 * math.sin(lat) ** 2)
    x = (n + h) * math.cos(lat) * math.cos(lon)
    y = (n + h) * math.cos(lat) * math.sin(lon)
    z = (n * (1 - e2) + h) * math.sin(lat)
    return x, y, z


def _geocentric_to_geodetic(
    x: float, y: float, z: float, a: float, e2: float, iterations: int = 10
) -> tuple[float, float]:
    p = math.hypot(x, y)
    lon = math.atan2(y, x)
    lat = math.atan2(z, p * (1 - e2))
    for _ in range(iterations):
        n = a / math.sqrt(1 - e2 * math.sin(lat) ** 2)
        h = p / math.cos(lat) - n
        lat = math.atan2(z, p * (1 - e2 * n / (n + h)))
    return lat, lon


def _helmert(x: float, y: float, z: float) -> tuple[float, float, float]:
    """Apply the Bessel → WGS84 position-vector transform."""
    dx, dy, dz = TO_WGS84_SHIFT
    rx, ry, rz = (r * _ARCSEC for r in TO_WGS84_ROTATION)
    m = 1 + TO_WGS84_SCALE_PPM * 1e-6
    return (
        m * (x - rz * y + ry * z) + dx,
        m * (rz * x + y - rx * z) + dy,
        m * (-ry * x + rx * y + z) + dz,
    )


def katech_to_wgs84(easting: float, northing: float) -> tuple[float, float]:
    """Full projection path. Returns (latitude, longitude) in degrees."""
    lat_b, lon_b = inverse_tm(easting, northing)
    xyz = _geodetic_to_geocentric(lat_b, lon_b, BESSEL_A, _eccentricity_sq(BESSEL_INV_F))
    lat, lon = _geocentric_to_geodetic(*_helmert(*xyz), WGS84_A, _eccentricity_sq(WGS84_INV_F))
    return math.degrees(lat), math.degrees(lon)


def to_wgs84(east: float | str, north: float | str) -> Coordinates:
    """Convert a provider coordinate pair to WGS84.

    Never raises.  On any failure returns :data:`FAILED` (``(0, 0)`` with
    ``converted=False``) and logs the cause.
    """
    try:
        x = float(east)
        y = float(north)
        if abs(x) > PRESCALED_THRESHOLD:
            result = Coordinates(y / PRESCALE_FACTOR, x / PRESCALE_FACTOR)
        else:
            result = Coordinates(*katech_to_wgs84(x, y))
        if not (math.isfinite(result.latitude) and math.isfinite(result.longitude)):
            msg = f"non-finite result for ({east!r}, {north!r})"
            raise ValueError(msg)
        return result
    except (TypeError, ValueError, ArithmeticError):
        logger.exception("Failed to convert coordinates (%r, %r)", east, north)
        return FAILED
