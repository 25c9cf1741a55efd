"""
Purpose: Per-driver matching preferences and the predicates the scorer reads.
What it does:
- DriverPreferenceProfile: availability windows, preferred/avoid areas,
  trip-type preferences, rider allow/block lists, certifications,
  languages, matching weights, auto-accept rules, response statistics.
- PreferenceSource: the contract the scorer consumes, with two
  implementations: ExplicitProfile (a stored profile) and DefaultProfile
  (neutral fallback for drivers without a profile).

Rule: Predicates are read-only. Statistics are only changed by
dispatch.state_machines.driver_state.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol

from routing.geo import GeoPoint
from routing.geofence import BoundingBox, first_containing
from trips.models import DEFAULT_TRIP_TYPE, Trip

logger = logging.getLogger(__name__)

# indexed by datetime.weekday()
DAYS_OF_WEEK = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

CERTIFICATION_TYPES = (
    "medical_transport",
    "wheelchair_accessible",
    "child_safety",
    "defensive_driving",
    "first_aid",
    "cpr",
    "hazmat",
    "commercial_license",
)

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# how far the weight sum may drift from 1 before profile editors get a warning
WEIGHT_SUM_TOLERANCE = 0.25


# --- Weights ---

@dataclass(frozen=True)
class MatchingWeights:
    """
    Multipliers applied to the 0-100 sub-scores. Not normalized: the
    final clamp in the scorer keeps totals inside 0-100.
    """
    distance: float = 0.25
    availability: float = 0.20
    preferences: float = 0.20
    rating: float = 0.15
    efficiency: float = 0.20

    def total(self) -> float:
        return self.distance + self.availability + self.preferences + self.rating + self.efficiency

    def validate(self) -> None:
        for name in ("distance", "availability", "preferences", "rating", "efficiency"):
            if getattr(self, name) < 0:
                raise ValueError(f"matching weight '{name}' must be >= 0")

        if abs(self.total() - 1.0) > WEIGHT_SUM_TOLERANCE:
            logger.warning(
                "Matching weights sum to %.2f; scores will rely on the 0-100 clamp", self.total()
            )


# --- Availability ---

@dataclass(frozen=True)
class Shift:
    day_of_week: str
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    priority: int = 3

    def covers(self, day_of_week: str, time_str: str) -> bool:
        # zero-padded HH:MM compares correctly as strings
        return self.day_of_week == day_of_week and self.start_time <= time_str <= self.end_time


@dataclass(frozen=True)
class AvailabilityPreferences:
    preferred_shifts: List[Shift] = field(default_factory=list)
    max_hours_per_day: float = 10
    max_hours_per_week: float = 40
    min_break_between_trips: int = 15  # minutes

    # True means "any time"; an empty shift list on its own means "never"
    unrestricted: bool = False


# --- Geography ---

@dataclass(frozen=True)
class PreferredArea:
    bounds: BoundingBox
    name: Optional[str] = None
    priority: int = 3


@dataclass(frozen=True)
class AvoidArea:
    bounds: BoundingBox
    name: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class GeographicPreferences:
    preferred_areas: List[PreferredArea] = field(default_factory=list)
    avoid_areas: List[AvoidArea] = field(default_factory=list)


@dataclass(frozen=True)
class AreaCheck:
    in_area: bool
    priority: int = 0
    area_name: Optional[str] = None
    reason: Optional[str] = None


# --- Trips ---

@dataclass(frozen=True)
class TripTypePreference:
    type: str
    priority: int = 3


@dataclass(frozen=True)
class AvoidedTripType:
    type: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class TripPreferences:
    preferred_trip_types: List[TripTypePreference] = field(default_factory=list)
    avoid_trip_types: List[AvoidedTripType] = field(default_factory=list)
    accept_wheelchair: bool = False
    accept_pets: bool = False
    # stored for profile editors only; max_stops_per_trip is the one stop gate
    accept_multi_stop: bool = True
    max_stops_per_trip: int = 5
    max_passengers: int = 4


# --- Riders ---

@dataclass(frozen=True)
class PreferredRider:
    rider_id: str
    reason: Optional[str] = None
    priority: int = 5


@dataclass(frozen=True)
class BlockedRider:
    rider_id: str
    reason: str = ""


@dataclass(frozen=True)
class RiderPreferences:
    preferred_riders: List[PreferredRider] = field(default_factory=list)
    avoid_riders: List[BlockedRider] = field(default_factory=list)


# --- Skills / languages ---

@dataclass(frozen=True)
class Certification:
    type: str
    number: Optional[str] = None
    verified: bool = False


@dataclass(frozen=True)
class Skills:
    certifications: List[Certification] = field(default_factory=list)


@dataclass(frozen=True)
class LanguagePreferences:
    primary: str = "en"
    additional: List[str] = field(default_factory=list)
    prefer_matching_language: bool = False


# --- Auto-accept ---

@dataclass(frozen=True)
class AutoAcceptConditions:
    max_distance_to_pickup: float = 5.0  # km
    min_trip_fare: float = 0.0
    only_preferred_areas: bool = False
    only_preferred_trip_types: bool = False
    only_during_preferred_shifts: bool = False
    min_rider_rating: float = 3.0


@dataclass(frozen=True)
class AutoAcceptRules:
    enabled: bool = False
    conditions: AutoAcceptConditions = field(default_factory=AutoAcceptConditions)


# --- Statistics ---

@dataclass(frozen=True)
class PreferenceStatistics:
    total_trips_accepted: int = 0
    total_trips_rejected: int = 0
    acceptance_rate: float = 100.0
    average_response_time: float = 0.0  # seconds
    last_updated: Optional[datetime] = None


@dataclass(frozen=True)
class DriverPreferenceProfile:
    """
    One per driver. Created with defaults on onboarding, edited by the
    driver or an administrator, never deleted while the account exists.
    """
    driver_id: str
    is_active: bool = True

    matching_weights: MatchingWeights = field(default_factory=MatchingWeights)
    availability: AvailabilityPreferences = field(default_factory=AvailabilityPreferences)
    geographic: GeographicPreferences = field(default_factory=GeographicPreferences)
    trip_preferences: TripPreferences = field(default_factory=TripPreferences)
    rider_preferences: RiderPreferences = field(default_factory=RiderPreferences)
    skills: Skills = field(default_factory=Skills)
    languages: LanguagePreferences = field(default_factory=LanguagePreferences)
    auto_accept: AutoAcceptRules = field(default_factory=AutoAcceptRules)
    statistics: PreferenceStatistics = field(default_factory=PreferenceStatistics)

    def validate(self) -> None:
        """
        Basic sanity checks for profile editors.
        """
        self.matching_weights.validate()

        for shift in self.availability.preferred_shifts:
            if shift.day_of_week not in DAYS_OF_WEEK:
                raise ValueError(f"unknown day_of_week '{shift.day_of_week}'")
            if not _HHMM.match(shift.start_time) or not _HHMM.match(shift.end_time):
                raise ValueError(f"shift times must be HH:MM, got {shift.start_time}-{shift.end_time}")
            _check_priority(shift.priority, "shift")

        for area in self.geographic.preferred_areas:
            _check_priority(area.priority, "preferred area")

        for preference in self.trip_preferences.preferred_trip_types:
            _check_priority(preference.priority, "trip type")

        if self.trip_preferences.max_stops_per_trip < 0:
            raise ValueError("max_stops_per_trip must be >= 0")

        for certification in self.skills.certifications:
            if certification.type not in CERTIFICATION_TYPES:
                raise ValueError(f"unknown certification type '{certification.type}'")

    # --- predicates used by dispatch.scoring ---

    def current_shift(self, when: datetime) -> Optional[Shift]:
        day_of_week = DAYS_OF_WEEK[when.weekday()]
        time_str = when.strftime("%H:%M")
        for shift in self.availability.preferred_shifts:
            if shift.covers(day_of_week, time_str):
                return shift
        return None

    def is_available_at(self, when: datetime) -> bool:
        if not self.is_active:
            return False
        if self.availability.unrestricted:
            return True
        return self.current_shift(when) is not None

    def is_in_preferred_area(self, point: GeoPoint) -> AreaCheck:
        areas = self.geographic.preferred_areas
        if not areas:
            # no preferences means all areas are fine
            return AreaCheck(in_area=True, priority=3)

        area = first_containing(areas, point)
        if area is None:
            return AreaCheck(in_area=False, priority=0)
        return AreaCheck(in_area=True, priority=area.priority, area_name=area.name)

    def is_in_avoid_area(self, point: GeoPoint) -> AreaCheck:
        area = first_containing(self.geographic.avoid_areas, point)
        if area is None:
            return AreaCheck(in_area=False)
        return AreaCheck(in_area=True, area_name=area.name, reason=area.reason)

    def preferred_trip_type(self, trip_type: str) -> Optional[TripTypePreference]:
        return next((t for t in self.trip_preferences.preferred_trip_types if t.type == trip_type), None)

    def avoided_trip_type(self, trip_type: str) -> Optional[AvoidedTripType]:
        return next((t for t in self.trip_preferences.avoid_trip_types if t.type == trip_type), None)

    def prefers_rider(self, rider_id: str) -> bool:
        return any(r.rider_id == rider_id for r in self.rider_preferences.preferred_riders)

    def avoids_rider(self, rider_id: str) -> bool:
        return any(r.rider_id == rider_id for r in self.rider_preferences.avoid_riders)

    def has_verified_certification(self, certification_type: str) -> bool:
        return any(
            c.type == certification_type and c.verified for c in self.skills.certifications
        )

    def speaks(self, language: str) -> bool:
        return self.languages.primary == language or language in self.languages.additional

    def should_auto_accept(self, trip: Trip, distance_to_pickup: Optional[float], fare: float) -> bool:
        """
        Whether the driver lets the system commit this trip without asking.
        Every enabled condition must hold.
        """
        if not self.auto_accept.enabled:
            return False

        conditions = self.auto_accept.conditions

        if distance_to_pickup is None or distance_to_pickup > conditions.max_distance_to_pickup:
            return False

        if fare < conditions.min_trip_fare:
            return False

        if conditions.only_preferred_areas and not self.is_in_preferred_area(trip.pickup_location).in_area:
            return False

        if conditions.only_preferred_trip_types and self.preferred_trip_type(trip.trip_type or DEFAULT_TRIP_TYPE) is None:
            return False

        if conditions.only_during_preferred_shifts and not self.is_available_at(trip.pickup_time):
            return False

        if trip.rider and trip.rider.rating is not None and trip.rider.rating < conditions.min_rider_rating:
            return False

        return True


def _check_priority(priority: int, what: str) -> None:
    if not 1 <= priority <= 5:
        raise ValueError(f"{what} priority must be between 1 and 5, got {priority}")


def default_matching_profile(driver_id: str) -> DriverPreferenceProfile:
    """
    The neutral profile used for drivers without a stored (active) one.
    """
    return DriverPreferenceProfile(
        driver_id=driver_id,
        matching_weights=MatchingWeights(
            distance=0.4,
            availability=0.2,
            preferences=0.2,
            rating=0.1,
            efficiency=0.1,
        ),
        availability=AvailabilityPreferences(unrestricted=True),
        trip_preferences=TripPreferences(
            accept_wheelchair=True,
            accept_pets=True,
            accept_multi_stop=True,
            max_stops_per_trip=10,
        ),
        languages=LanguagePreferences(primary="en", prefer_matching_language=False),
    )


# --- Preference sources ---

class PreferenceSource(Protocol):
    """
    What the scorer needs from a driver's preferences.
    """
    profile: DriverPreferenceProfile

    @property
    def is_explicit(self) -> bool:
        ...

    def auto_accept_for(self, trip: Trip, distance_to_pickup: Optional[float]) -> bool:
        ...


class ExplicitProfile:
    """
    A stored, active driver profile.
    """
    def __init__(self, profile: DriverPreferenceProfile):
        self.profile = profile

    @property
    def is_explicit(self) -> bool:
        return True

    def auto_accept_for(self, trip: Trip, distance_to_pickup: Optional[float]) -> bool:
        return self.profile.should_auto_accept(trip, distance_to_pickup, trip.fare or 0.0)

    def __repr__(self) -> str:
        return f"ExplicitProfile(driver_id={self.profile.driver_id!r})"


class DefaultProfile:
    """
    Fallback for drivers with no profile. Never auto-accepts.
    """
    def __init__(self, driver_id: str = ""):
        self.profile = default_matching_profile(driver_id)

    @property
    def is_explicit(self) -> bool:
        return False

    def auto_accept_for(self, trip: Trip, distance_to_pickup: Optional[float]) -> bool:
        return False

    def __repr__(self) -> str:
        return f"DefaultProfile(driver_id={self.profile.driver_id!r})"


def preference_source(profile: Optional[DriverPreferenceProfile], driver_id: str = "") -> PreferenceSource:
    """
    Missing and inactive profiles both fall back to the default profile.
    """
    if profile is None or not profile.is_active:
        return DefaultProfile(driver_id)
    return ExplicitProfile(profile)
