"""
Wiring between the HTTP layer and the matching engine.

Views never build repositories themselves: they ask `get_services()`,
which lazily creates in-memory stores and a coordinator using the
environment-driven policy. Deployments (and tests) call `configure()`
with their own repositories.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from dispatch.dispatcher import AssignmentCoordinator
from dispatch.policy import MatchingPolicy
from drivers.repository import InMemoryDriverRepository, InMemoryPreferenceRepository
from trips.repository import InMemoryTripRepository

logger = logging.getLogger(__name__)


@dataclass
class MatchingServices:
    trip_repository: object
    driver_repository: object
    preference_repository: object
    coordinator: AssignmentCoordinator


_services: Optional[MatchingServices] = None


def configure(
    trip_repository,
    driver_repository,
    preference_repository,
    policy: Optional[MatchingPolicy] = None,
    coordinator: Optional[AssignmentCoordinator] = None,
) -> MatchingServices:
    global _services

    policy = policy or MatchingPolicy.from_env()
    coordinator = coordinator or AssignmentCoordinator(
        trip_repository,
        driver_repository,
        preference_repository,
        policy=policy,
    )
    _services = MatchingServices(
        trip_repository=trip_repository,
        driver_repository=driver_repository,
        preference_repository=preference_repository,
        coordinator=coordinator,
    )
    return _services


def get_services() -> MatchingServices:
    if _services is None:
        logger.info("No matching repositories configured; starting with empty in-memory stores")
        return configure(
            InMemoryTripRepository(),
            InMemoryDriverRepository(),
            InMemoryPreferenceRepository(),
        )
    return _services


def reset() -> None:
    global _services
    _services = None
