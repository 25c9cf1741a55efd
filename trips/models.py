"""
Purpose: Domain models for the Trips capability.
What it does:
- Defines core data structures:
- Trip (pickup point/time, trip type, special requirements, rider, fare)
- RiderRef (rider id + rating, enough for matching)

Defines enums/constants:
- TripStatus = unassigned | pending | accepted | in_progress | completed | cancelled
- TRIP_TYPES accepted by driver trip-type preferences

Rule: No matching logic. Models only.
The assignment fields (driver_id, status, assigned_at, match_score,
reassignment_count) are written only by dispatch.dispatcher.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from routing.geo import GeoPoint


class TripStatus(str, Enum):
    UNASSIGNED = "unassigned"
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TRIP_TYPES = (
    "scheduled",
    "on-demand",
    "recurring",
    "group",
    "long-distance",
    "medical",
    "airport",
    "school",
)

DEFAULT_TRIP_TYPE = "scheduled"


@dataclass(frozen=True)
class RiderRef:
    """
    The slice of a rider the matcher needs: identity for allow/block
    lists and rating for auto-accept rules.
    """
    id: str
    rating: Optional[float] = None


@dataclass(frozen=True)
class Trip:
    """
    A trip request as seen by the matching engine.
    Frozen: the coordinator produces updated copies via dataclasses.replace.
    """

    id: str
    pickup_location: GeoPoint
    pickup_time: datetime
    dropoff_location: Optional[GeoPoint] = None

    trip_type: str = DEFAULT_TRIP_TYPE
    requires_wheelchair: bool = False
    has_pets: bool = False
    waypoints: List[GeoPoint] = field(default_factory=list)
    requires_certification: Optional[str] = None
    preferred_language: Optional[str] = None
    rider: Optional[RiderRef] = None
    fare: float = 0.0

    # --- assignment state ---
    driver_id: Optional[str] = None
    status: TripStatus = TripStatus.UNASSIGNED
    assigned_at: Optional[datetime] = None
    match_score: Optional[float] = None
    reassignment_count: int = 0

    @property
    def stop_count(self) -> int:
        return len(self.waypoints)
