"""
Purpose: Business rules and distance math for finding candidate drivers.
What it does:
Accepts a pickup point and a pool of drivers, filters out ineligible drivers,
measures each remaining driver's great-circle distance to the pickup and
keeps those inside the search radius, nearest first.

Distance ordering is only a default; the final ranking belongs to
dispatch.ranking.
"""

from dataclasses import replace
from typing import Iterable, List

from routing.geo import GeoPoint, distance_km

from .models import DRIVER_ROLE, CandidateDriver


def filter_eligible_drivers(
    drivers: Iterable[CandidateDriver],
    require_location_tracking: bool = False,
) -> List[CandidateDriver]:
    """
    Returns only drivers who are active, available and (optionally)
    sharing their live location.
    """
    eligible = []

    for driver in drivers:
        if driver.role != DRIVER_ROLE:
            continue

        if not driver.is_active or not driver.is_available:
            continue

        if require_location_tracking and not driver.is_location_tracking:
            continue

        eligible.append(driver)

    return eligible


def find_nearby_drivers(
    pickup: GeoPoint,
    drivers: Iterable[CandidateDriver],
    radius_km: float = 10.0,
    require_location_tracking: bool = False,
) -> List[CandidateDriver]:
    """
    Eligible drivers within `radius_km` of the pickup, with
    `distance_to_pickup` attached, sorted ascending by that distance.
    Drivers without a known location cannot be measured and are dropped.
    """
    nearby: List[CandidateDriver] = []

    for driver in filter_eligible_drivers(drivers, require_location_tracking):
        if driver.current_location is None:
            continue

        distance = distance_km(driver.current_location, pickup)
        if distance > radius_km:
            continue

        nearby.append(replace(driver, distance_to_pickup=distance))

    # stable: equal distances keep repository order
    nearby.sort(key=lambda d: d.distance_to_pickup)
    return nearby


class CandidateLocator:
    """
    Read-only query: nearby, eligible drivers for a pickup point.
    """
    def __init__(self, driver_repository):
        self.driver_repository = driver_repository

    def find_nearby(
        self,
        pickup: GeoPoint,
        radius_km: float = 10.0,
        require_location_tracking: bool = False,
    ) -> List[CandidateDriver]:
        drivers = self.driver_repository.find_drivers(
            role=DRIVER_ROLE,
            is_active=True,
            is_available=True,
            is_location_tracking=True if require_location_tracking else None,
        )
        return find_nearby_drivers(pickup, drivers, radius_km, require_location_tracking)
