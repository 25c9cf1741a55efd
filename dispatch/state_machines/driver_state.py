from dataclasses import replace
from datetime import datetime
from typing import Optional

from drivers.preferences import DriverPreferenceProfile, PreferenceStatistics


class DriverStateException(Exception):
    """Raised when a driver response cannot be recorded."""
    pass


def handle_trip_response(
    statistics: PreferenceStatistics,
    accepted: bool,
    response_time: float,
    now: Optional[datetime] = None,
) -> PreferenceStatistics:
    """
    Folds one accept/decline into the running statistics.
    The first response sets the average response time directly; later
    ones update the running mean.
    """
    if response_time < 0:
        raise DriverStateException(f"response_time must be >= 0, got {response_time}")

    accepted_count = statistics.total_trips_accepted + (1 if accepted else 0)
    rejected_count = statistics.total_trips_rejected + (0 if accepted else 1)
    total = accepted_count + rejected_count

    if statistics.average_response_time == 0:
        average = float(response_time)
    else:
        average = (statistics.average_response_time * (total - 1) + response_time) / total

    return replace(
        statistics,
        total_trips_accepted=accepted_count,
        total_trips_rejected=rejected_count,
        acceptance_rate=(accepted_count / total) * 100,
        average_response_time=average,
        last_updated=now or datetime.now(),
    )


def record_trip_response(
    profile: DriverPreferenceProfile,
    accepted: bool,
    response_time: float = 0.0,
    now: Optional[datetime] = None,
) -> DriverPreferenceProfile:
    """
    Called when a driver accepts or declines an offered trip.
    Because the profile is a frozen dataclass, we return a new instance via replace.
    """
    return replace(profile, statistics=handle_trip_response(profile.statistics, accepted, response_time, now))
