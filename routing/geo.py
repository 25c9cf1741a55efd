"""
Purpose: Great-circle distance math for the matching engine.
What it does:
- Defines GeoPoint (lat/lng in degrees, range-checked)
- distance_km: Haversine distance between two points

Rule: No matching rules here. Pure functions only.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

EARTH_RADIUS_KM = 6371.0

LatLng = Tuple[float, float]


@dataclass(frozen=True)
class GeoPoint:
    """
    A WGS84 coordinate. Latitude in [-90, 90], longitude in [-180, 180].
    """
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"longitude out of range: {self.lng}")

    @classmethod
    def from_lnglat(cls, coordinates) -> GeoPoint:
        """
        Build from a GeoJSON style [lng, lat] pair.
        """
        lng, lat = coordinates[0], coordinates[1]
        return cls(lat=float(lat), lng=float(lng))

    def as_tuple(self) -> LatLng:
        return (self.lat, self.lng)


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """
    Haversine distance between two points in kilometers.
    """
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    # rounding can push h just past 1 for near-antipodal pairs
    h = min(1.0, max(0.0, h))
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c
