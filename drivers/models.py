"""
Purpose: Core data models for the drivers domain.
What it does:
Defines the driver snapshot the matching engine scores, without relying on
ORM constraints. Snapshots are recomputed per matching call and never
persisted by the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from routing.geo import GeoPoint

DRIVER_ROLE = "driver"


@dataclass(frozen=True)
class VehicleInfo:
    make: Optional[str] = None
    model: Optional[str] = None
    plate: Optional[str] = None
    capacity: int = 4


@dataclass(frozen=True)
class CandidateDriver:
    """
    A purely stateless representation of a driver at a specific point in time.
    `distance_to_pickup` is only set once a locator has measured it.
    """
    id: str
    name: str
    current_location: Optional[GeoPoint]
    rating: Optional[float] = None
    completed_trips: int = 0
    vehicle_info: VehicleInfo = field(default_factory=VehicleInfo)

    role: str = DRIVER_ROLE
    is_active: bool = True
    is_available: bool = True
    is_location_tracking: bool = True

    distance_to_pickup: Optional[float] = None

    @classmethod
    def new(
        cls,
        driver_id: str,
        lat: Optional[float],
        lng: Optional[float],
        *,
        name: str = "",
        rating: Optional[float] = None,
        completed_trips: int = 0,
        is_active: bool = True,
        is_available: bool = True,
        is_location_tracking: bool = True,
        role: str = DRIVER_ROLE,
        vehicle_info: Optional[VehicleInfo] = None,
    ) -> CandidateDriver:
        location = GeoPoint(lat, lng) if lat is not None and lng is not None else None

        return cls(
            id=driver_id,
            name=name or driver_id,
            current_location=location,
            rating=rating,
            completed_trips=completed_trips,
            vehicle_info=vehicle_info or VehicleInfo(),
            role=role,
            is_active=is_active,
            is_available=is_available,
            is_location_tracking=is_location_tracking,
        )

    def summary(self) -> Dict[str, Any]:
        """
        Operator-facing view of the driver, as attached to match results.
        """
        return {
            "id": self.id,
            "name": self.name,
            "rating": self.rating,
            "completed_trips": self.completed_trips,
            "vehicle_info": {
                "make": self.vehicle_info.make,
                "model": self.vehicle_info.model,
                "plate": self.vehicle_info.plate,
                "capacity": self.vehicle_info.capacity,
            },
            "current_location": (
                {"lat": self.current_location.lat, "lng": self.current_location.lng}
                if self.current_location
                else None
            ),
        }
