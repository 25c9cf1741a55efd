"""
Purpose: Ranking model (the "who is best" layer).
Takes one candidate driver, their preferences and a trip, and produces a
0-100 compatibility score with a per-criterion breakdown.

Weighted criteria (each 0-100, multiplied by the profile's weight):
- distance      linear decay to 0 at 50 km
- availability  100 inside a preferred shift, else 0
- geographic    50 neutral, 60-100 in a preferred area, 0 in an avoid area
- trip type     50 neutral, 60-100 preferred, 0 avoided (shares the preferences weight)
- rating        rating / 5 * 100
- efficiency    50 neutral, or decay to 0 at 20 km from the current trip's dropoff

Flat adjustments: +10 preferred rider, +5 language match.

Vetoes force the total to 0 whatever else scored well:
wheelchair / pets / stop count not accepted, avoided rider, missing
verified certification.

Rule: Pure. No I/O, no randomness, no shared state between calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from drivers.models import CandidateDriver
from drivers.preferences import (
    AreaCheck,
    DriverPreferenceProfile,
    PreferenceSource,
    preference_source,
)
from routing.geo import distance_km
from trips.models import DEFAULT_TRIP_TYPE, Trip

DISTANCE_ZERO_KM = 50.0
CHAINING_ZERO_KM = 20.0
NEUTRAL_SCORE = 50.0
PRIORITY_STEP = 10.0
PREFERRED_RIDER_BONUS = 10.0
LANGUAGE_MATCH_BONUS = 5.0

MIN_TOTAL = 0.0
MAX_TOTAL = 100.0

VETO_WHEELCHAIR = "wheelchair_not_accepted"
VETO_PETS = "pets_not_accepted"
VETO_TOO_MANY_STOPS = "too_many_stops"
VETO_AVOIDED_RIDER = "avoided_rider"
VETO_CERTIFICATION = "certification_missing"


@dataclass(frozen=True)
class CriterionScore:
    score: float
    weight: float
    value: Any = None

    @property
    def contribution(self) -> float:
        return self.score * self.weight


@dataclass(frozen=True)
class ScoreBreakdown:
    """
    Kept for observability; decisions only use the total.
    """
    distance: CriterionScore
    availability: CriterionScore
    geographic: CriterionScore
    trip_type: CriterionScore
    rating: CriterionScore
    efficiency: CriterionScore
    preferred_area: Optional[AreaCheck] = None
    avoid_area: Optional[AreaCheck] = None
    rider_bonus: float = 0.0
    language_bonus: float = 0.0
    vetoes: Tuple[str, ...] = ()
    used_default_profile: bool = False

    @property
    def weighted_sum(self) -> float:
        return (
            self.distance.contribution
            + self.availability.contribution
            + self.geographic.contribution
            + self.trip_type.contribution
            + self.rating.contribution
            + self.efficiency.contribution
        )


@dataclass(frozen=True)
class ScoringContext:
    """
    Extra facts about the driver's situation. `current_trip` is the trip
    they are finishing, if any.
    """
    current_trip: Optional[Trip] = None


@dataclass(frozen=True)
class MatchResult:
    driver: CandidateDriver
    total_score: float
    breakdown: ScoreBreakdown
    distance_to_pickup: Optional[float]
    auto_accept: bool = False

    @property
    def driver_id(self) -> str:
        return self.driver.id

    @property
    def disqualified(self) -> bool:
        return bool(self.breakdown.vetoes)


ProfileLike = Union[DriverPreferenceProfile, PreferenceSource, None]


def _as_source(profile: ProfileLike, driver_id: str) -> PreferenceSource:
    if profile is None or isinstance(profile, DriverPreferenceProfile):
        return preference_source(profile, driver_id)
    return profile


def _linear_decay(distance: float, zero_at_km: float) -> float:
    return max(0.0, 100.0 - (distance / zero_at_km) * 100.0)


def _clamp(value: float) -> float:
    return max(MIN_TOTAL, min(MAX_TOTAL, value))


@dataclass
class MatchScorer:
    """
    Scores one (driver, preferences, trip) tuple. Stateless; one instance
    can be shared across threads.
    """
    distance_zero_km: float = DISTANCE_ZERO_KM
    chaining_zero_km: float = CHAINING_ZERO_KM

    def score(
        self,
        driver: CandidateDriver,
        profile: ProfileLike,
        trip: Trip,
        context: Optional[ScoringContext] = None,
    ) -> MatchResult:
        context = context or ScoringContext()
        source = _as_source(profile, driver.id)
        prefs = source.profile
        weights = prefs.matching_weights
        vetoes = []

        # 1. distance
        if driver.current_location is not None:
            pickup_distance = distance_km(driver.current_location, trip.pickup_location)
            distance = CriterionScore(
                score=_linear_decay(pickup_distance, self.distance_zero_km),
                weight=weights.distance,
                value=pickup_distance,
            )
        else:
            pickup_distance = None
            distance = CriterionScore(score=0.0, weight=0.0, value=None)

        # 2. availability
        is_available = prefs.is_available_at(trip.pickup_time)
        availability = CriterionScore(
            score=100.0 if is_available else 0.0,
            weight=weights.availability,
            value=is_available,
        )

        # 3. geographic preference
        preferred_area = prefs.is_in_preferred_area(trip.pickup_location)
        avoid_area = prefs.is_in_avoid_area(trip.pickup_location)
        geo_score = NEUTRAL_SCORE
        if preferred_area.in_area:
            geo_score = NEUTRAL_SCORE + preferred_area.priority * PRIORITY_STEP
        elif avoid_area.in_area:
            geo_score = 0.0
        geographic = CriterionScore(score=geo_score, weight=weights.preferences, value=preferred_area.area_name)

        # 4. trip type preference + physical requirements
        trip_type = trip.trip_type or DEFAULT_TRIP_TYPE
        type_score = NEUTRAL_SCORE
        preferred_type = prefs.preferred_trip_type(trip_type)
        if preferred_type is not None:
            type_score = NEUTRAL_SCORE + preferred_type.priority * PRIORITY_STEP
        elif prefs.avoided_trip_type(trip_type) is not None:
            type_score = 0.0

        trip_prefs = prefs.trip_preferences
        if trip.requires_wheelchair and not trip_prefs.accept_wheelchair:
            vetoes.append(VETO_WHEELCHAIR)
        if trip.has_pets and not trip_prefs.accept_pets:
            vetoes.append(VETO_PETS)
        if trip.stop_count > trip_prefs.max_stops_per_trip:
            vetoes.append(VETO_TOO_MANY_STOPS)
        if vetoes:
            type_score = 0.0
        trip_type_score = CriterionScore(score=type_score, weight=weights.preferences, value=trip_type)

        # 5. driver rating
        rating_value = driver.rating or 0.0
        rating = CriterionScore(score=(rating_value / 5.0) * 100.0, weight=weights.rating, value=rating_value)

        # 6. efficiency (route chaining)
        efficiency_score = NEUTRAL_SCORE
        chaining_distance = None
        current_trip = context.current_trip
        if current_trip is not None and current_trip.dropoff_location is not None:
            chaining_distance = distance_km(current_trip.dropoff_location, trip.pickup_location)
            efficiency_score = _linear_decay(chaining_distance, self.chaining_zero_km)
        efficiency = CriterionScore(score=efficiency_score, weight=weights.efficiency, value=chaining_distance)

        # 7. rider affinity
        rider_bonus = 0.0
        if trip.rider is not None:
            if prefs.avoids_rider(trip.rider.id):
                vetoes.append(VETO_AVOIDED_RIDER)
            elif prefs.prefers_rider(trip.rider.id):
                rider_bonus = PREFERRED_RIDER_BONUS

        # 8. certification gate
        if trip.requires_certification and not prefs.has_verified_certification(trip.requires_certification):
            vetoes.append(f"{VETO_CERTIFICATION}:{trip.requires_certification}")

        # 9. language match
        language_bonus = 0.0
        if (
            trip.preferred_language
            and prefs.languages.prefer_matching_language
            and prefs.speaks(trip.preferred_language)
        ):
            language_bonus = LANGUAGE_MATCH_BONUS

        breakdown = ScoreBreakdown(
            distance=distance,
            availability=availability,
            geographic=geographic,
            trip_type=trip_type_score,
            rating=rating,
            efficiency=efficiency,
            preferred_area=preferred_area,
            avoid_area=avoid_area,
            rider_bonus=rider_bonus,
            language_bonus=language_bonus,
            vetoes=tuple(vetoes),
            used_default_profile=not source.is_explicit,
        )

        if vetoes:
            total = MIN_TOTAL
        else:
            total = _clamp(breakdown.weighted_sum + rider_bonus + language_bonus)

        return MatchResult(
            driver=driver,
            total_score=total,
            breakdown=breakdown,
            distance_to_pickup=pickup_distance,
        )


def score_driver(
    driver: CandidateDriver,
    profile: ProfileLike,
    trip: Trip,
    context: Optional[ScoringContext] = None,
) -> MatchResult:
    """
    Module-level shortcut using the default scorer.
    """
    return _DEFAULT_SCORER.score(driver, profile, trip, context)


_DEFAULT_SCORER = MatchScorer()
