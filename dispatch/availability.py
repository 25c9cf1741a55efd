"""
Driver readiness report: is this driver matchable right now, and how do
their preferences look at this moment? Read-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from drivers.models import DRIVER_ROLE, CandidateDriver
from drivers.preferences import Shift

from .dispatcher import MatchingError

# acceptance rate reported for drivers who never set preferences
DEFAULT_ACCEPTANCE_RATE = 100.0


class DriverNotFound(MatchingError):
    kind = "driver_not_found"

    def __init__(self, driver_id: str):
        super().__init__(f"Driver {driver_id} not found")
        self.driver_id = driver_id


@dataclass(frozen=True)
class PreferenceSummary:
    has_preferences: bool
    in_preferred_shift: bool
    current_shift: Optional[Shift]
    acceptance_rate: float
    auto_accept_enabled: bool


@dataclass(frozen=True)
class DriverAvailability:
    driver: CandidateDriver
    preferences: PreferenceSummary

    @property
    def is_matchable(self) -> bool:
        d = self.driver
        return d.is_active and d.is_available and d.is_location_tracking and d.current_location is not None


def driver_availability(
    driver_id: str,
    driver_repository,
    preference_repository,
    now: Optional[datetime] = None,
) -> DriverAvailability:
    driver = driver_repository.get(driver_id)
    if driver is None or driver.role != DRIVER_ROLE:
        raise DriverNotFound(driver_id)

    now = now or datetime.now()
    profile = preference_repository.get(driver_id)

    current_shift = profile.current_shift(now) if profile is not None else None

    return DriverAvailability(
        driver=driver,
        preferences=PreferenceSummary(
            has_preferences=profile is not None,
            in_preferred_shift=current_shift is not None,
            current_shift=current_shift,
            acceptance_rate=profile.statistics.acceptance_rate if profile is not None else DEFAULT_ACCEPTANCE_RATE,
            auto_accept_enabled=profile.auto_accept.enabled if profile is not None else False,
        ),
    )
