"""
Purpose: Orchestrator / decision pipeline (the "glue").
What it does:
Takes a trip id, runs the match selector over the nearby driver pool and
commits the winning driver onto the trip record. Also re-runs matching
with exclusions when a driver declines, and walks a list of trips
sequentially for batch scheduling.

Every write happens under the trip's advisory lock and as a conditional
update, so two overlapping calls for one trip cannot both assign it.
Notifying the driver is the caller's job; this module only returns results.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Mapping, Optional, Sequence

from drivers.models import CandidateDriver
from trips.models import Trip
from trips.repository import TripWriteConflict

from .locks import TripLockManager
from .policy import MatchingPolicy, MatchOptions, default_matching_policy
from .ranking import MatchOutcome, MatchSelector
from .rate_limit import TokenBucket
from .scoring import MatchResult, ScoreBreakdown
from .state_machines.trip_state import (
    ASSIGNABLE_FROM,
    REASSIGNABLE_FROM,
    TripStateException,
    ensure_assignable,
    transition_trip_to_assigned,
)

logger = logging.getLogger(__name__)


class MatchingError(Exception):
    """Base class for matching / assignment failures."""
    kind = "matching_error"


class TripNotFound(MatchingError):
    kind = "trip_not_found"

    def __init__(self, trip_id: str):
        super().__init__(f"Trip {trip_id} not found")
        self.trip_id = trip_id


class NoDriverFound(MatchingError):
    """
    No candidate cleared the bar. `outcome.status` tells whether nobody
    was nearby or nobody scored high enough.
    """
    kind = "no_driver_found"

    def __init__(self, trip_id: str, outcome: MatchOutcome, message: str = "No suitable drivers found"):
        super().__init__(f"{message} for trip {trip_id}: {outcome.message}")
        self.trip_id = trip_id
        self.outcome = outcome


class AssignmentPersistFailure(MatchingError):
    kind = "assignment_persist_failure"


class AssignmentConflict(MatchingError):
    kind = "assignment_conflict"


class AssignmentTimeout(MatchingError):
    kind = "assignment_timeout"


class InvalidTripState(MatchingError):
    kind = "invalid_trip_state"


@dataclass(frozen=True)
class AssignmentResult:
    trip: Trip
    assigned_driver: CandidateDriver
    match_score: float
    auto_accepted: bool
    breakdown: ScoreBreakdown
    reassignment_count: Optional[int] = None
    alternative_matches: List[MatchResult] = field(default_factory=list)


@dataclass(frozen=True)
class BatchItemResult:
    trip_id: str
    success: bool
    assignment: Optional[AssignmentResult] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None


@dataclass(frozen=True)
class BatchSummary:
    total: int
    successful: int
    failed: int

    @property
    def success_rate(self) -> float:
        # percent; an empty batch reports 0
        if self.total == 0:
            return 0.0
        return (self.successful / self.total) * 100


@dataclass(frozen=True)
class BatchAssignmentResult:
    results: List[BatchItemResult]
    summary: BatchSummary


class _Deadline:
    def __init__(self, seconds: float, clock: Callable[[], float]):
        self._clock = clock
        self._expires_at = clock() + seconds
        self.seconds = seconds

    def check(self, trip_id: str) -> None:
        if self._clock() > self._expires_at:
            raise AssignmentTimeout(f"Assignment of trip {trip_id} exceeded {self.seconds:.1f}s deadline")


class AssignmentCoordinator:
    """
    Commits selected matches onto trips (assign / reassign / batch).
    """
    def __init__(
        self,
        trip_repository,
        driver_repository,
        preference_repository,
        *,
        policy: Optional[MatchingPolicy] = None,
        selector: Optional[MatchSelector] = None,
        lock_manager: Optional[TripLockManager] = None,
        rate_limiter: Optional[TokenBucket] = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.policy = policy or default_matching_policy()
        self.trip_repository = trip_repository
        self.selector = selector or MatchSelector(driver_repository, preference_repository)
        self.lock_manager = lock_manager or TripLockManager()
        self.rate_limiter = rate_limiter or TokenBucket(
            self.policy.batch_rate_per_second, self.policy.batch_burst
        )
        self._clock = clock
        self._now = now

    # --- Public API ---

    def find_best_matches(
        self,
        trip: Trip,
        options: Optional[MatchOptions] = None,
        current_trips: Optional[Mapping[str, Trip]] = None,
    ) -> MatchOutcome:
        return self.selector.find_best_matches(trip, options or self.policy.match_options(), current_trips)

    def assign_best(
        self,
        trip_id: str,
        options: Optional[MatchOptions] = None,
        current_trips: Optional[Mapping[str, Trip]] = None,
    ) -> AssignmentResult:
        """
        Assign an unassigned trip to its best-scoring driver.
        """
        deadline = _Deadline(self.policy.assignment_deadline_seconds, self._clock)
        options = (options or self.policy.match_options()).with_overrides(limit=1)

        with self.lock_manager.lock(trip_id):
            trip = self._load_trip(trip_id)
            self._ensure_state(trip, reassignment=False)

            outcome = self.selector.find_best_matches(trip, options, current_trips)
            if not outcome.matches:
                raise NoDriverFound(trip_id, outcome)

            best = outcome.matches[0]
            deadline.check(trip_id)
            updated = self._commit(trip, best, reassignment=False)

        logger.info(
            "Trip %s assigned to driver %s (score %.1f, %s)",
            trip_id, best.driver_id, best.total_score, updated.status.value,
        )
        return AssignmentResult(
            trip=updated,
            assigned_driver=best.driver,
            match_score=best.total_score,
            auto_accepted=best.auto_accept,
            breakdown=best.breakdown,
        )

    def reassign(
        self,
        trip_id: str,
        exclude_driver_ids: Sequence[str] = (),
        options: Optional[MatchOptions] = None,
        current_trips: Optional[Mapping[str, Trip]] = None,
    ) -> AssignmentResult:
        """
        Re-run matching after a decline or timeout, never picking an
        excluded driver. Detecting the decline is the caller's job.
        """
        deadline = _Deadline(self.policy.assignment_deadline_seconds, self._clock)
        alternatives = self.policy.reassign_alternatives
        options = (options or self.policy.match_options()).with_overrides(
            limit=1 + alternatives,
            exclude_drivers=exclude_driver_ids,
        )

        with self.lock_manager.lock(trip_id):
            trip = self._load_trip(trip_id)
            self._ensure_state(trip, reassignment=True)

            outcome = self.selector.find_best_matches(trip, options, current_trips)
            if not outcome.matches:
                raise NoDriverFound(trip_id, outcome, message="No alternative drivers found")

            best = outcome.matches[0]
            deadline.check(trip_id)
            updated = self._commit(trip, best, reassignment=True)

        logger.info(
            "Trip %s reassigned to driver %s (score %.1f, reassignment #%d, excluded %s)",
            trip_id, best.driver_id, best.total_score, updated.reassignment_count, list(exclude_driver_ids),
        )
        return AssignmentResult(
            trip=updated,
            assigned_driver=best.driver,
            match_score=best.total_score,
            auto_accepted=best.auto_accept,
            breakdown=best.breakdown,
            reassignment_count=updated.reassignment_count,
            alternative_matches=outcome.matches[1:1 + alternatives],
        )

    def batch_assign(
        self,
        trip_ids: Iterable[str],
        options: Optional[MatchOptions] = None,
    ) -> BatchAssignmentResult:
        """
        Assign trips one after another, paced by the rate limiter.
        A failed trip is recorded and the batch moves on.
        """
        results: List[BatchItemResult] = []

        for trip_id in trip_ids:
            self.rate_limiter.acquire()
            try:
                assignment = self.assign_best(trip_id, options)
            except MatchingError as exc:
                logger.warning("Batch: trip %s failed (%s): %s", trip_id, exc.kind, exc)
                results.append(BatchItemResult(trip_id=trip_id, success=False, error=str(exc), error_kind=exc.kind))
                continue

            results.append(BatchItemResult(trip_id=trip_id, success=True, assignment=assignment))

        successful = sum(1 for r in results if r.success)
        summary = BatchSummary(total=len(results), successful=successful, failed=len(results) - successful)
        logger.info(
            "Batch assignment finished: %d/%d trips assigned (%.1f%%)",
            summary.successful, summary.total, summary.success_rate,
        )
        return BatchAssignmentResult(results=results, summary=summary)

    # --- Internal helpers ---

    def _load_trip(self, trip_id: str) -> Trip:
        trip = self.trip_repository.get(trip_id)
        if trip is None:
            raise TripNotFound(trip_id)
        return trip

    def _ensure_state(self, trip: Trip, reassignment: bool) -> None:
        try:
            ensure_assignable(trip, reassignment)
        except TripStateException as exc:
            raise InvalidTripState(str(exc)) from exc

    def _commit(self, trip: Trip, match: MatchResult, reassignment: bool) -> Trip:
        target = transition_trip_to_assigned(
            trip,
            driver_id=match.driver_id,
            auto_accept=match.auto_accept,
            match_score=match.total_score,
            now=self._now(),
            reassignment=reassignment,
        )

        try:
            return self.trip_repository.set_assignment(
                trip.id,
                target.driver_id,
                target.status,
                target.assigned_at,
                target.match_score,
                target.reassignment_count if reassignment else None,
                expected_status=REASSIGNABLE_FROM if reassignment else ASSIGNABLE_FROM,
                expected_driver_id=trip.driver_id,
            )
        except TripWriteConflict as exc:
            raise AssignmentConflict(str(exc)) from exc
        except Exception as exc:
            logger.error("Persisting assignment for trip %s failed: %s", trip.id, exc)
            raise AssignmentPersistFailure(f"Could not save assignment for trip {trip.id}: {exc}") from exc
