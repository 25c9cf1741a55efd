"""
Purpose: Central configuration for matching and assignment.
What it does:

Stores all tunable thresholds/caps:

DEFAULT_LIMIT = 10
DEFAULT_RADIUS_KM = 20
DEFAULT_MIN_SCORE = 40
BATCH_RATE_PER_SECOND = 10 (one trip every 100 ms)
ASSIGNMENT_DEADLINE_SECONDS = 30

Environment overrides (read from .env):
MATCH_DEFAULT_LIMIT, MATCH_RADIUS_KM, MATCH_MIN_SCORE,
MATCH_BATCH_RATE_PER_SECOND, MATCH_BATCH_BURST,
MATCH_ASSIGNMENT_DEADLINE_SECONDS, MATCH_REASSIGN_ALTERNATIVES

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class MatchOptions:
    """
    Per-call knobs for MatchSelector.find_best_matches.
    """
    limit: int = 10
    radius_km: float = 20.0
    min_score: float = 40.0
    exclude_drivers: Tuple[str, ...] = ()

    def validate(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")

        if self.radius_km <= 0:
            raise ValueError("radius_km must be > 0")

        if not 0 <= self.min_score <= 100:
            raise ValueError("min_score must be between 0 and 100")

    def with_overrides(
        self,
        *,
        limit: Optional[int] = None,
        exclude_drivers: Optional[Sequence[str]] = None,
    ) -> MatchOptions:
        options = self
        if limit is not None:
            options = replace(options, limit=limit)
        if exclude_drivers is not None:
            merged = tuple(dict.fromkeys(tuple(options.exclude_drivers) + tuple(exclude_drivers)))
            options = replace(options, exclude_drivers=merged)
        return options


@dataclass(frozen=True)
class MatchingPolicy:
    """
    Central configuration for driver matching and trip assignment.
    """

    # --- Selection defaults ---
    default_limit: int = 10
    default_radius_km: float = 20.0
    default_min_score: float = 40.0

    # --- Reassignment ---
    # How many runner-up candidates to show operators after a reassignment.
    reassign_alternatives: int = 2

    # --- Batch pacing (token bucket) ---
    # Sustained trips per second, and how many may go back-to-back.
    batch_rate_per_second: float = 10.0
    batch_burst: int = 1

    # --- Deadline ---
    # Upper bound for a single assign/reassign, covering the data fetches.
    assignment_deadline_seconds: float = 30.0

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        self.match_options().validate()

        if self.reassign_alternatives < 0:
            raise ValueError("reassign_alternatives must be >= 0")

        if self.batch_rate_per_second <= 0:
            raise ValueError("batch_rate_per_second must be > 0")

        if self.batch_burst < 1:
            raise ValueError("batch_burst must be >= 1")

        if self.assignment_deadline_seconds <= 0:
            raise ValueError("assignment_deadline_seconds must be > 0")

    def match_options(self, **overrides) -> MatchOptions:
        """
        MatchOptions seeded from this policy's defaults.
        """
        values = {
            "limit": self.default_limit,
            "radius_km": self.default_radius_km,
            "min_score": self.default_min_score,
            "exclude_drivers": (),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        values["exclude_drivers"] = tuple(values["exclude_drivers"])
        return MatchOptions(**values)

    @classmethod
    def from_env(cls) -> MatchingPolicy:
        """
        Policy with any MATCH_* environment overrides applied.
        """
        defaults = cls()
        p = cls(
            default_limit=int(os.getenv("MATCH_DEFAULT_LIMIT", defaults.default_limit)),
            default_radius_km=float(os.getenv("MATCH_RADIUS_KM", defaults.default_radius_km)),
            default_min_score=float(os.getenv("MATCH_MIN_SCORE", defaults.default_min_score)),
            reassign_alternatives=int(os.getenv("MATCH_REASSIGN_ALTERNATIVES", defaults.reassign_alternatives)),
            batch_rate_per_second=float(os.getenv("MATCH_BATCH_RATE_PER_SECOND", defaults.batch_rate_per_second)),
            batch_burst=int(os.getenv("MATCH_BATCH_BURST", defaults.batch_burst)),
            assignment_deadline_seconds=float(
                os.getenv("MATCH_ASSIGNMENT_DEADLINE_SECONDS", defaults.assignment_deadline_seconds)
            ),
        )
        p.validate()
        return p


def default_matching_policy() -> MatchingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = MatchingPolicy()
    p.validate()
    return p
