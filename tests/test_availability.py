from datetime import datetime

import pytest

from dispatch.availability import DEFAULT_ACCEPTANCE_RATE, DriverNotFound, driver_availability
from drivers.preferences import (
    AutoAcceptRules,
    AvailabilityPreferences,
    DriverPreferenceProfile,
    PreferenceStatistics,
    Shift,
)
from drivers.repository import InMemoryDriverRepository, InMemoryPreferenceRepository

from conftest import MONDAY_9AM


@pytest.fixture
def repositories(make_driver):
    drivers = InMemoryDriverRepository.from_drivers([
        make_driver("ready"),
        make_driver("hidden", is_location_tracking=False),
        make_driver("rider-1", role="rider"),
    ])
    profiles = InMemoryPreferenceRepository.from_profiles([
        DriverPreferenceProfile(
            driver_id="ready",
            availability=AvailabilityPreferences(
                preferred_shifts=[Shift(day_of_week="monday", start_time="08:00", end_time="12:00")]
            ),
            auto_accept=AutoAcceptRules(enabled=True),
            statistics=PreferenceStatistics(total_trips_accepted=3, total_trips_rejected=1, acceptance_rate=75.0),
        ),
    ])
    return drivers, profiles


def test_report_for_driver_with_preferences(repositories):
    report = driver_availability("ready", *repositories, now=MONDAY_9AM)

    assert report.is_matchable
    assert report.preferences.has_preferences
    assert report.preferences.in_preferred_shift
    assert report.preferences.current_shift.start_time == "08:00"
    assert report.preferences.acceptance_rate == 75.0
    assert report.preferences.auto_accept_enabled


def test_outside_shift(repositories):
    report = driver_availability("ready", *repositories, now=datetime(2026, 10, 19, 18, 0))

    assert not report.preferences.in_preferred_shift
    assert report.preferences.current_shift is None


def test_report_without_preferences(repositories):
    report = driver_availability("hidden", *repositories, now=MONDAY_9AM)

    assert not report.is_matchable
    assert not report.preferences.has_preferences
    assert report.preferences.acceptance_rate == DEFAULT_ACCEPTANCE_RATE
    assert not report.preferences.auto_accept_enabled


@pytest.mark.parametrize("driver_id", ["nobody", "rider-1"])
def test_unknown_or_non_driver_accounts(repositories, driver_id):
    with pytest.raises(DriverNotFound):
        driver_availability(driver_id, *repositories)
