from dataclasses import replace
from datetime import datetime

import pytest

from dispatch.dispatcher import (
    AssignmentConflict,
    AssignmentCoordinator,
    AssignmentPersistFailure,
    AssignmentTimeout,
    InvalidTripState,
    NoDriverFound,
    TripNotFound,
)
from dispatch.policy import MatchingPolicy, MatchOptions
from dispatch.ranking import MatchSelector, MatchStatus
from dispatch.rate_limit import TokenBucket
from drivers.preferences import AutoAcceptRules, AvailabilityPreferences, DriverPreferenceProfile
from drivers.repository import InMemoryDriverRepository, InMemoryPreferenceRepository
from routing.geo import GeoPoint
from trips.models import TripStatus
from trips.repository import InMemoryTripRepository

from conftest import north_of

ASSIGNED_AT = datetime(2026, 10, 19, 8, 45)
FAR_AWAY = GeoPoint(-20.1325, 28.6265)


class FailingTripRepository(InMemoryTripRepository):
    def set_assignment(self, *args, **kwargs):
        raise RuntimeError("database unavailable")


class RacingTripRepository(InMemoryTripRepository):
    """
    Another writer grabs the trip right before our conditional update.
    """
    def set_assignment(self, trip_id, *args, **kwargs):
        current = self._trips[trip_id]
        self._trips[trip_id] = replace(current, driver_id="someone-else", status=TripStatus.PENDING)
        return super().set_assignment(trip_id, *args, **kwargs)


class SlowSelector(MatchSelector):
    def __init__(self, clock, delay, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.clock = clock
        self.delay = delay

    def find_best_matches(self, *args, **kwargs):
        self.clock.advance(self.delay)
        return super().find_best_matches(*args, **kwargs)


@pytest.fixture
def drivers(make_driver):
    return [
        make_driver("near", km=1.0),
        make_driver("mid", km=4.0),
        make_driver("far", km=8.0),
        make_driver("farther", km=12.0),
    ]


@pytest.fixture
def build(drivers, fake_clock):
    def _build(trips, profiles=(), trip_repository_class=InMemoryTripRepository, policy=None, selector=None):
        trip_repository = trip_repository_class.from_trips(trips)
        driver_repository = InMemoryDriverRepository.from_drivers(drivers)
        preference_repository = InMemoryPreferenceRepository.from_profiles(profiles)
        coordinator = AssignmentCoordinator(
            trip_repository,
            driver_repository,
            preference_repository,
            policy=policy or MatchingPolicy(default_min_score=0),
            selector=selector,
            rate_limiter=TokenBucket(10, 1, clock=fake_clock, sleep=fake_clock.sleep),
            clock=fake_clock,
            now=lambda: ASSIGNED_AT,
        )
        return coordinator, trip_repository
    return _build


# --- assign_best ---

def test_assign_best_commits_top_driver_as_pending(build, make_trip):
    coordinator, trips = build([make_trip("t1")])

    result = coordinator.assign_best("t1")

    assert result.assigned_driver.id == "near"
    assert result.trip.status is TripStatus.PENDING
    assert not result.auto_accepted
    stored = trips.get("t1")
    assert stored.driver_id == "near"
    assert stored.status is TripStatus.PENDING
    assert stored.assigned_at == ASSIGNED_AT
    assert stored.match_score == pytest.approx(result.match_score)


def test_auto_accepting_driver_goes_straight_to_accepted(build, make_trip):
    eager = DriverPreferenceProfile(
        driver_id="near",
        availability=AvailabilityPreferences(unrestricted=True),
        auto_accept=AutoAcceptRules(enabled=True),
    )
    coordinator, trips = build([make_trip("t1")], profiles=[eager])

    result = coordinator.assign_best("t1")

    assert result.auto_accepted
    assert trips.get("t1").status is TripStatus.ACCEPTED


def test_assign_unknown_trip(build):
    coordinator, _ = build([])

    with pytest.raises(TripNotFound):
        coordinator.assign_best("missing")


def test_assign_with_nobody_nearby(build, make_trip):
    coordinator, trips = build([make_trip("t1", pickup_location=FAR_AWAY)])

    with pytest.raises(NoDriverFound) as excinfo:
        coordinator.assign_best("t1")

    assert excinfo.value.outcome.status is MatchStatus.NO_CANDIDATES_NEARBY
    assert trips.get("t1").status is TripStatus.UNASSIGNED


def test_assign_with_nobody_good_enough(build, make_trip, pickup):
    # 3 km south: nobody is close enough for a perfect score
    coordinator, _ = build([make_trip("t1", pickup_location=north_of(pickup, -3.0))])

    with pytest.raises(NoDriverFound) as excinfo:
        coordinator.assign_best("t1", MatchOptions(min_score=100.0, radius_km=2.0))

    assert excinfo.value.outcome.status is MatchStatus.NO_CANDIDATES_NEARBY

    with pytest.raises(NoDriverFound) as excinfo:
        coordinator.assign_best("t1", MatchOptions(min_score=100.0))

    assert excinfo.value.outcome.status is MatchStatus.NO_SUITABLE_DRIVER


def test_assign_only_from_unassigned(build, make_trip):
    coordinator, _ = build([make_trip("t1", status=TripStatus.PENDING, driver_id="mid")])

    with pytest.raises(InvalidTripState):
        coordinator.assign_best("t1")


def test_persist_failure_leaves_trip_unchanged(build, make_trip):
    coordinator, trips = build([make_trip("t1")], trip_repository_class=FailingTripRepository)

    with pytest.raises(AssignmentPersistFailure) as excinfo:
        coordinator.assign_best("t1")

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    stored = trips.get("t1")
    assert stored.status is TripStatus.UNASSIGNED
    assert stored.driver_id is None


def test_concurrent_writer_causes_conflict(build, make_trip):
    coordinator, trips = build([make_trip("t1")], trip_repository_class=RacingTripRepository)

    with pytest.raises(AssignmentConflict):
        coordinator.assign_best("t1")

    assert trips.get("t1").driver_id == "someone-else"


def test_slow_selection_times_out_before_writing(build, make_trip, drivers, fake_clock):
    selector = SlowSelector(
        fake_clock,
        31.0,
        InMemoryDriverRepository.from_drivers(drivers),
        InMemoryPreferenceRepository(),
    )
    coordinator, trips = build([make_trip("t1")], selector=selector)

    with pytest.raises(AssignmentTimeout):
        coordinator.assign_best("t1", MatchOptions(min_score=0))

    assert trips.get("t1").status is TripStatus.UNASSIGNED


# --- reassign ---

def test_reassign_skips_excluded_driver(build, make_trip):
    coordinator, trips = build([make_trip("t1")])
    first = coordinator.assign_best("t1")

    result = coordinator.reassign("t1", exclude_driver_ids=[first.assigned_driver.id])

    assert result.assigned_driver.id == "mid"
    assert result.reassignment_count == 1
    assert trips.get("t1").reassignment_count == 1
    assert trips.get("t1").driver_id == "mid"
    assert [m.driver_id for m in result.alternative_matches] == ["far", "farther"]
    assert all(m.driver_id != "near" for m in result.alternative_matches)


def test_reassign_counts_every_round(build, make_trip):
    coordinator, trips = build([make_trip("t1")])
    coordinator.assign_best("t1")

    coordinator.reassign("t1", exclude_driver_ids=["near"])
    result = coordinator.reassign("t1", exclude_driver_ids=["near", "mid"])

    assert result.assigned_driver.id == "far"
    assert result.reassignment_count == 2
    assert [m.driver_id for m in result.alternative_matches] == ["farther"]


def test_reassign_respects_exclusions_from_options_too(build, make_trip):
    coordinator, _ = build([make_trip("t1")])

    result = coordinator.reassign("t1", ["near"], MatchOptions(min_score=0, exclude_drivers=("mid",)))

    assert result.assigned_driver.id == "far"


def test_reassign_with_everyone_excluded(build, make_trip):
    coordinator, _ = build([make_trip("t1")])

    with pytest.raises(NoDriverFound):
        coordinator.reassign("t1", exclude_driver_ids=["near", "mid", "far", "farther"])


def test_reassign_refuses_finished_trips(build, make_trip):
    coordinator, _ = build([make_trip("t1", status=TripStatus.COMPLETED, driver_id="near")])

    with pytest.raises(InvalidTripState):
        coordinator.reassign("t1", exclude_driver_ids=["near"])


# --- batch_assign ---

def test_batch_isolates_failures(build, make_trip):
    trips = [make_trip(f"t{i}") for i in range(1, 6)]
    trips[2] = make_trip("t3", pickup_location=FAR_AWAY)
    coordinator, _ = build(trips)

    result = coordinator.batch_assign([t.id for t in trips])

    assert len(result.results) == 5
    assert [r.trip_id for r in result.results] == ["t1", "t2", "t3", "t4", "t5"]
    assert not result.results[2].success
    assert result.results[2].error_kind == "no_driver_found"
    assert all(result.results[i].success for i in (0, 1, 3, 4))
    assert (result.summary.total, result.summary.successful, result.summary.failed) == (5, 4, 1)
    assert result.summary.success_rate == pytest.approx(80.0)


def test_batch_records_unknown_trips(build, make_trip):
    coordinator, _ = build([make_trip("t1")])

    result = coordinator.batch_assign(["t1", "ghost"])

    assert result.results[1].error_kind == "trip_not_found"
    assert result.summary.successful == 1


def test_batch_is_paced_by_the_rate_limiter(build, make_trip, fake_clock):
    trips = [make_trip(f"t{i}") for i in range(4)]
    coordinator, _ = build(trips)

    coordinator.batch_assign([t.id for t in trips])

    assert len(fake_clock.sleeps) == 3
    assert all(s == pytest.approx(0.1) for s in fake_clock.sleeps)


def test_empty_batch(build):
    coordinator, _ = build([])

    result = coordinator.batch_assign([])

    assert result.results == []
    assert result.summary.success_rate == 0


def test_lock_map_is_empty_after_assignment_calls(build, make_trip):
    coordinator, _ = build([make_trip("t1"), make_trip("t2")])

    coordinator.assign_best("t1")
    coordinator.reassign("t1", exclude_driver_ids=["near"])
    coordinator.batch_assign(["t2"] + [f"ghost-{i}" for i in range(50)])

    assert coordinator.lock_manager.active_count() == 0


def test_assigned_at_defaults_to_naive_local_time(drivers, make_trip, fake_clock):
    coordinator = AssignmentCoordinator(
        InMemoryTripRepository.from_trips([make_trip("t1")]),
        InMemoryDriverRepository.from_drivers(drivers),
        InMemoryPreferenceRepository(),
        policy=MatchingPolicy(default_min_score=0),
        rate_limiter=TokenBucket(10, 1, clock=fake_clock, sleep=fake_clock.sleep),
        clock=fake_clock,
    )
    before = datetime.now()

    assigned_at = coordinator.assign_best("t1").trip.assigned_at

    assert assigned_at.tzinfo is None
    assert before <= assigned_at <= datetime.now()
