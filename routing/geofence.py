#Purpose: Rectangular geofencing for driver area preferences.
#Drivers describe where they like (or refuse) to work as lat/lng boxes.
#Typical responsibilities:
#inclusive containment test for a single box
#first-match lookup over an ordered list of named areas
#Output: the matching area (or None). Scoring decides what a hit is worth.

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, TypeVar

from routing.geo import GeoPoint


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned lat/lng rectangle. Edges are inclusive.
    """
    southwest: GeoPoint
    northeast: GeoPoint

    def contains(self, point: GeoPoint) -> bool:
        return (
            self.southwest.lat <= point.lat <= self.northeast.lat
            and self.southwest.lng <= point.lng <= self.northeast.lng
        )

    @classmethod
    def from_corners(cls, sw_lat: float, sw_lng: float, ne_lat: float, ne_lng: float) -> BoundingBox:
        return cls(southwest=GeoPoint(sw_lat, sw_lng), northeast=GeoPoint(ne_lat, ne_lng))


# anything carrying a `bounds: BoundingBox` attribute (preferred / avoid areas)
AreaT = TypeVar("AreaT")


def first_containing(areas: Sequence[AreaT], point: GeoPoint) -> Optional[AreaT]:
    """
    Returns the first area (in list order) whose bounds contain the point.
    List order matters: earlier areas win when boxes overlap.
    """
    for area in areas:
        if area.bounds.contains(point):
            return area
    return None
