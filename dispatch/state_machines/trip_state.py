from dataclasses import replace
from datetime import datetime

from trips.models import Trip, TripStatus

# statuses a trip may be (re)assigned from
ASSIGNABLE_FROM = (TripStatus.UNASSIGNED,)
REASSIGNABLE_FROM = (TripStatus.UNASSIGNED, TripStatus.PENDING, TripStatus.ACCEPTED)


class TripStateException(Exception):
    """Raised when an invalid trip transition is attempted."""
    pass


def assignment_status(auto_accept: bool) -> TripStatus:
    """
    Auto-accepting drivers skip the confirmation step.
    """
    return TripStatus.ACCEPTED if auto_accept else TripStatus.PENDING


def ensure_assignable(trip: Trip, reassignment: bool = False) -> None:
    allowed = REASSIGNABLE_FROM if reassignment else ASSIGNABLE_FROM
    if trip.status not in allowed:
        action = "reassign" if reassignment else "assign"
        raise TripStateException(f"Cannot {action} trip {trip.id} from status {trip.status.value}")


def transition_trip_to_assigned(
    trip: Trip,
    driver_id: str,
    auto_accept: bool,
    match_score: float,
    now: datetime,
    reassignment: bool = False,
) -> Trip:
    """
    Called once a driver has been selected for the trip.
    unassigned -> pending | accepted (and, for reassignment, also from
    pending / accepted). Returns a new Trip; the input is untouched.
    """
    ensure_assignable(trip, reassignment)

    return replace(
        trip,
        driver_id=driver_id,
        status=assignment_status(auto_accept),
        assigned_at=now,
        match_score=match_score,
        reassignment_count=trip.reassignment_count + 1 if reassignment else trip.reassignment_count,
    )
