#Expose the high-level pipeline pieces:
#Scoring (one driver vs one trip)
#Ranking / selection (who are the best candidates)
#Assignment coordinator (the "one call" entry point: assign / reassign / batch)

from .policy import MatchingPolicy, MatchOptions, default_matching_policy
from .scoring import MatchScorer, MatchResult, ScoreBreakdown, ScoringContext, score_driver
from .ranking import MatchSelector, MatchOutcome, MatchStatus, rank_candidates
from .dispatcher import (
    AssignmentCoordinator,
    AssignmentResult,
    BatchAssignmentResult,
    MatchingError,
    TripNotFound,
    NoDriverFound,
    AssignmentPersistFailure,
    AssignmentConflict,
    AssignmentTimeout,
    InvalidTripState,
)
from .availability import driver_availability, DriverNotFound

__all__ = [
    "MatchingPolicy",
    "MatchOptions",
    "default_matching_policy",
    "MatchScorer",
    "MatchResult",
    "ScoreBreakdown",
    "ScoringContext",
    "score_driver",
    "MatchSelector",
    "MatchOutcome",
    "MatchStatus",
    "rank_candidates",
    "AssignmentCoordinator", #the main entry point to commit a trip to a driver
    "AssignmentResult",
    "BatchAssignmentResult",
    "MatchingError",
    "TripNotFound",
    "NoDriverFound",
    "AssignmentPersistFailure",
    "AssignmentConflict",
    "AssignmentTimeout",
    "InvalidTripState",
    "driver_availability",
    "DriverNotFound",
]
