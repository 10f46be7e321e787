"""
Purpose: Great-circle distance between two geographic points.
What it does:
- Haversine distance in kilometers between (lat, lng) pairs
- Coordinate validation helpers used by the planner and the API layer

Rule: Pure math only. No I/O, no store access, no None handling.
Callers must skip points that are not geocoded instead of calling in here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

LatLng = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class Coordinates:
    """
    A geocoded point in decimal degrees.
    """
    lat: float
    lng: float

    def as_tuple(self) -> LatLng:
        return (self.lat, self.lng)


def is_valid_coordinate(lat, lng) -> bool:
    """
    True when both values are real finite numbers inside the lat/lng ranges.
    bools are rejected even though they are ints in Python.
    """
    for value in (lat, lng):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if not math.isfinite(value):
            return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def haversine_km(origin: LatLng, destination: LatLng) -> float:
    """
    Great-circle distance in kilometers.

    Symmetric, 0 for coincident points, pi * R for antipodal points.
    The haversine term is clamped into [0, 1] so float noise near the
    antipode can never push sqrt/asin out of their domain (no NaN).
    """
    lat1, lng1 = origin
    lat2, lng2 = destination

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lng2 - lng1)

    h = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    h = min(1.0, max(0.0, h))

    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def distance_between(origin: Coordinates, destination: Coordinates) -> float:
    return haversine_km(origin.as_tuple(), destination.as_tuple())
