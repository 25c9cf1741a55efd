from datetime import datetime

import pytest

from dispatch.state_machines.driver_state import (
    DriverStateException,
    handle_trip_response,
    record_trip_response,
)
from dispatch.state_machines.trip_state import (
    TripStateException,
    assignment_status,
    ensure_assignable,
    transition_trip_to_assigned,
)
from drivers.preferences import DriverPreferenceProfile, PreferenceStatistics
from trips.models import TripStatus

NOW = datetime(2026, 10, 19, 9, 30)


def test_assignment_status_follows_auto_accept():
    assert assignment_status(True) is TripStatus.ACCEPTED
    assert assignment_status(False) is TripStatus.PENDING


def test_transition_returns_new_trip(make_trip):
    trip = make_trip()

    assigned = transition_trip_to_assigned(trip, "d1", auto_accept=False, match_score=72.5, now=NOW)

    assert trip.status is TripStatus.UNASSIGNED
    assert assigned.driver_id == "d1"
    assert assigned.status is TripStatus.PENDING
    assert assigned.assigned_at == NOW
    assert assigned.match_score == 72.5
    assert assigned.reassignment_count == 0


def test_reassignment_increments_counter(make_trip):
    trip = make_trip(status=TripStatus.ACCEPTED, driver_id="d1", reassignment_count=2)

    reassigned = transition_trip_to_assigned(trip, "d2", True, 60.0, NOW, reassignment=True)

    assert reassigned.reassignment_count == 3
    assert reassigned.status is TripStatus.ACCEPTED


@pytest.mark.parametrize("status", [TripStatus.PENDING, TripStatus.ACCEPTED, TripStatus.IN_PROGRESS])
def test_first_assignment_needs_unassigned_trip(make_trip, status):
    with pytest.raises(TripStateException):
        ensure_assignable(make_trip(status=status))


@pytest.mark.parametrize("status", [TripStatus.IN_PROGRESS, TripStatus.COMPLETED, TripStatus.CANCELLED])
def test_started_or_finished_trips_cannot_be_reassigned(make_trip, status):
    with pytest.raises(TripStateException):
        ensure_assignable(make_trip(status=status), reassignment=True)


def test_first_response_sets_average_directly():
    stats = handle_trip_response(PreferenceStatistics(), accepted=True, response_time=12.0, now=NOW)

    assert stats.total_trips_accepted == 1
    assert stats.total_trips_rejected == 0
    assert stats.acceptance_rate == 100.0
    assert stats.average_response_time == 12.0
    assert stats.last_updated == NOW


def test_running_average_and_acceptance_rate():
    stats = PreferenceStatistics()
    for accepted, seconds in [(True, 10.0), (False, 20.0), (True, 30.0), (False, 40.0)]:
        stats = handle_trip_response(stats, accepted, seconds, now=NOW)

    assert stats.total_trips_accepted == 2
    assert stats.total_trips_rejected == 2
    assert stats.acceptance_rate == pytest.approx(50.0)
    assert stats.average_response_time == pytest.approx(25.0)


def test_negative_response_time_rejected():
    with pytest.raises(DriverStateException):
        handle_trip_response(PreferenceStatistics(), True, -1.0)


def test_record_trip_response_keeps_the_rest_of_the_profile():
    profile = DriverPreferenceProfile(driver_id="d1")

    updated = record_trip_response(profile, accepted=False, response_time=5.0, now=NOW)

    assert updated.driver_id == "d1"
    assert updated.statistics.total_trips_rejected == 1
    assert updated.statistics.acceptance_rate == 0.0
    assert profile.statistics.total_trips_rejected == 0


def test_last_updated_defaults_to_naive_local_time():
    before = datetime.now()
    stats = handle_trip_response(PreferenceStatistics(), accepted=True, response_time=1.0)
    after = datetime.now()

    assert stats.last_updated.tzinfo is None
    assert before <= stats.last_updated <= after
