"""
radius_utils.py — Great-circle distance and radius helpers.

Provides:
    - Haversine distance calculation between two (lat, lon) points
    - Point-in-radius checks
    - The rectangular pre-filter used to query the USGS catalog

All distances are in **kilometers**. Coordinates are in **decimal degrees**.

Mathematical Foundation — Haversine Formula
============================================
Given two points P₁(φ₁, λ₁) and P₂(φ₂, λ₂):

    a = sin²(Δφ / 2) + cos(φ₁) · cos(φ₂) · sin²(Δλ / 2)
    c = 2 · atan2(√a, √(1 − a))
    d = R · c

Where:
    φ  = latitude in radians
    λ  = longitude in radians
    R  = Earth's radius, 6,371 km
    d  = great-circle distance in km
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EARTH_RADIUS_KM: float = 6_371.0
KM_PER_DEGREE: float = 111.0  # rough conversion used for the catalog box


# ---------------------------------------------------------------------------
# Core data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coordinate:
    """A geographic point in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValueError(
                f"Latitude must be in [-90, 90], got {self.latitude}"
            )
        if not (-180.0 <= self.longitude <= 180.0):
            raise ValueError(
                f"Longitude must be in [-180, 180], got {self.longitude}"
            )

    @property
    def lat_rad(self) -> float:
        """Latitude in radians."""
        return math.radians(self.latitude)

    @property
    def lon_rad(self) -> float:
        """Longitude in radians."""
        return math.radians(self.longitude)


# ---------------------------------------------------------------------------
# Haversine implementation
# ---------------------------------------------------------------------------

def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in km between two raw (lat, lon) pairs.

    Accepts unvalidated floats so catalog records with out-of-range
    coordinates still produce a distance instead of an error.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lon / 2.0) ** 2
    )
    # Floating error can push `a` a hair above 1 for antipodal points
    a = min(1.0, max(0.0, a))

    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


def haversine(point1: Coordinate, point2: Coordinate) -> float:
    """
    Compute the great-circle distance between two points using the
    Haversine formula.

    Parameters
    ----------
    point1 : Coordinate
        Origin point (e.g. the searched location).
    point2 : Coordinate
        Target point (e.g. an epicentre).

    Returns
    -------
    float
        Distance in kilometers.

    Examples
    --------
    >>> round(haversine(Coordinate(0, 0), Coordinate(0, 1)), 1)
    111.2

    >>> haversine(Coordinate(0, 0), Coordinate(0, 0))
    0.0
    """
    return haversine_km(
        point1.latitude, point1.longitude,
        point2.latitude, point2.longitude,
    )


# ---------------------------------------------------------------------------
# Bounding box (catalog pre-filter)
# ---------------------------------------------------------------------------

def bounding_box(center: Coordinate, radius_km: float) -> Tuple[float, float, float, float]:
    """
    Rectangular search box around ``center`` for the catalog query.

    Uses a flat ``radius_km / 111`` degrees on both axes, the same
    approximation the search form has always sent upstream. Results are
    re-filtered with :func:`haversine` afterwards, so the box only needs
    to be roughly right.

    Returns (min_lat, max_lat, min_lon, max_lon) in degrees.
    """
    if radius_km <= 0:
        raise ValueError(f"Radius must be positive, got {radius_km}")

    delta = radius_km / KM_PER_DEGREE
    return (
        center.latitude - delta,
        center.latitude + delta,
        center.longitude - delta,
        center.longitude + delta,
    )


# ---------------------------------------------------------------------------
# Radius checks
# ---------------------------------------------------------------------------

def is_inside_radius(
    center: Coordinate,
    point: Coordinate,
    radius_km: float,
) -> Tuple[bool, float]:
    """
    Check whether ``point`` falls within ``radius_km`` of ``center``.

    Returns
    -------
    (inside, distance_km) : tuple[bool, float]

    Examples
    --------
    >>> istanbul = Coordinate(41.0082, 28.9784)
    >>> inside, dist = is_inside_radius(istanbul, Coordinate(40.7, 29.9), 100.0)
    >>> inside
    True
    """
    if radius_km <= 0:
        raise ValueError(f"Radius must be positive, got {radius_km}")

    dist = haversine(center, point)
    return (dist <= radius_km, dist)


# ---------------------------------------------------------------------------
# Utility: Human-readable distance
# ---------------------------------------------------------------------------

def format_distance(km: float) -> str:
    """
    Format a distance for display.

    >>> format_distance(0.45)
    '450 m'
    >>> format_distance(3.7266)
    '3.73 km'
    """
    if km < 1.0:
        return f"{int(round(km * 1000))} m"
    return f"{km:.2f} km"
