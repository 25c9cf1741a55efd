"""
Purpose: Match selection (candidate location + scoring + ranking).
What it does:
- finds nearby, location-tracking drivers for the trip's pickup
- removes excluded drivers (reassignment)
- bulk-loads preference profiles, falling back to the default profile
- scores every candidate, drops vetoed ones and those under min_score
- sorts by score, highest first, and keeps the top `limit`

Tie-break policy: the sort is stable, so equal scores keep the locator's
order, i.e. the nearer driver ranks first.

An empty pool is an outcome, not an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Mapping, Optional

from drivers.preferences import preference_source
from drivers.selection import CandidateLocator
from trips.models import Trip

from .policy import MatchOptions
from .scoring import MatchResult, MatchScorer, ScoringContext

logger = logging.getLogger(__name__)


class MatchStatus(str, Enum):
    MATCHED = "matched"
    NO_CANDIDATES_NEARBY = "no_candidates_nearby"
    NO_SUITABLE_DRIVER = "no_suitable_driver"


_MESSAGES = {
    MatchStatus.MATCHED: "Matching drivers found",
    MatchStatus.NO_CANDIDATES_NEARBY: "No available drivers found nearby",
    MatchStatus.NO_SUITABLE_DRIVER: "Drivers are nearby but none meets the minimum match score",
}


@dataclass(frozen=True)
class MatchOutcome:
    status: MatchStatus
    matches: List[MatchResult] = field(default_factory=list)
    total_considered: int = 0
    total_matches: int = 0

    @property
    def success(self) -> bool:
        return self.status is MatchStatus.MATCHED

    @property
    def message(self) -> str:
        return _MESSAGES[self.status]

    @property
    def top_score(self) -> float:
        return self.matches[0].total_score if self.matches else 0.0


class MatchSelector:
    """
    Orchestrates CandidateLocator + MatchScorer over one trip.
    """
    def __init__(self, driver_repository, preference_repository, scorer: Optional[MatchScorer] = None):
        self.locator = CandidateLocator(driver_repository)
        self.preference_repository = preference_repository
        self.scorer = scorer or MatchScorer()

    def find_best_matches(
        self,
        trip: Trip,
        options: Optional[MatchOptions] = None,
        current_trips: Optional[Mapping[str, Trip]] = None,
    ) -> MatchOutcome:
        options = options or MatchOptions()
        options.validate()
        current_trips = current_trips or {}

        nearby = self.locator.find_nearby(
            trip.pickup_location,
            radius_km=options.radius_km,
            require_location_tracking=True,
        )

        excluded = set(options.exclude_drivers)
        candidates = [driver for driver in nearby if driver.id not in excluded]

        if not candidates:
            logger.info("Trip %s: no candidates within %.1f km", trip.id, options.radius_km)
            return MatchOutcome(status=MatchStatus.NO_CANDIDATES_NEARBY)

        profiles = self.preference_repository.get_many([driver.id for driver in candidates])

        matches: List[MatchResult] = []
        for driver in candidates:
            source = preference_source(profiles.get(driver.id), driver.id)
            context = ScoringContext(current_trip=current_trips.get(driver.id))
            result = self.scorer.score(driver, source, trip, context)

            if result.disqualified:
                logger.debug("Trip %s: driver %s vetoed (%s)", trip.id, driver.id, ", ".join(result.breakdown.vetoes))
                continue

            if result.total_score < options.min_score:
                continue

            matches.append(
                replace(result, auto_accept=source.auto_accept_for(trip, result.distance_to_pickup))
            )

        matches = rank_candidates(matches)

        if not matches:
            logger.info(
                "Trip %s: %d candidates, none at or above score %.1f",
                trip.id, len(candidates), options.min_score,
            )
            return MatchOutcome(status=MatchStatus.NO_SUITABLE_DRIVER, total_considered=len(candidates))

        return MatchOutcome(
            status=MatchStatus.MATCHED,
            matches=matches[:options.limit],
            total_considered=len(candidates),
            total_matches=len(matches),
        )


def rank_candidates(results: List[MatchResult]) -> List[MatchResult]:
    """
    Highest score first; ties keep their incoming order.
    """
    return sorted(results, key=lambda m: m.total_score, reverse=True)
