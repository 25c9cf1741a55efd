import logging
from datetime import datetime

import pytest

from drivers.preferences import (
    AutoAcceptConditions,
    AutoAcceptRules,
    AvailabilityPreferences,
    AvoidArea,
    AvoidedTripType,
    Certification,
    DefaultProfile,
    DriverPreferenceProfile,
    ExplicitProfile,
    GeographicPreferences,
    LanguagePreferences,
    MatchingWeights,
    PreferredArea,
    Shift,
    Skills,
    TripPreferences,
    TripTypePreference,
    default_matching_profile,
    preference_source,
)
from routing.geofence import BoundingBox
from routing.geo import GeoPoint
from trips.models import RiderRef

from conftest import MONDAY_9AM

CENTRE_BOX = BoundingBox.from_corners(-17.9, 31.0, -17.7, 31.1)
FAR_BOX = BoundingBox.from_corners(-20.0, 28.0, -19.5, 28.5)


def _profile(**kwargs):
    return DriverPreferenceProfile(driver_id="d1", **kwargs)


# --- availability ---

def test_shift_covers_inclusive_bounds():
    shift = Shift(day_of_week="monday", start_time="08:00", end_time="12:00")

    assert shift.covers("monday", "08:00")
    assert shift.covers("monday", "12:00")
    assert not shift.covers("monday", "12:01")
    assert not shift.covers("tuesday", "09:00")


def test_available_only_inside_a_preferred_shift():
    profile = _profile(
        availability=AvailabilityPreferences(
            preferred_shifts=[Shift(day_of_week="monday", start_time="08:00", end_time="10:00")]
        )
    )

    assert profile.is_available_at(MONDAY_9AM)
    assert profile.current_shift(MONDAY_9AM).start_time == "08:00"
    assert not profile.is_available_at(datetime(2026, 10, 19, 11, 0))
    assert not profile.is_available_at(datetime(2026, 10, 20, 9, 0))


def test_no_shifts_means_never_available_unless_unrestricted():
    assert not _profile().is_available_at(MONDAY_9AM)
    assert _profile(availability=AvailabilityPreferences(unrestricted=True)).is_available_at(MONDAY_9AM)


def test_inactive_profile_is_never_available():
    profile = _profile(is_active=False, availability=AvailabilityPreferences(unrestricted=True))
    assert not profile.is_available_at(MONDAY_9AM)


# --- geography ---

def test_empty_preferred_areas_count_as_in_area(pickup):
    check = _profile().is_in_preferred_area(pickup)
    assert check.in_area
    assert check.priority == 3


def test_preferred_area_hit_and_miss(pickup):
    profile = _profile(
        geographic=GeographicPreferences(preferred_areas=[PreferredArea(bounds=CENTRE_BOX, name="CBD", priority=4)])
    )

    hit = profile.is_in_preferred_area(pickup)
    assert (hit.in_area, hit.priority, hit.area_name) == (True, 4, "CBD")

    miss = profile.is_in_preferred_area(GeoPoint(-19.8, 28.2))
    assert (miss.in_area, miss.priority) == (False, 0)


def test_avoid_area_reports_reason(pickup):
    profile = _profile(
        geographic=GeographicPreferences(avoid_areas=[AvoidArea(bounds=CENTRE_BOX, name="CBD", reason="traffic")])
    )

    check = profile.is_in_avoid_area(pickup)
    assert check.in_area
    assert check.reason == "traffic"
    assert not profile.is_in_avoid_area(GeoPoint(-19.8, 28.2)).in_area


# --- trip types / skills / languages ---

def test_trip_type_lookups():
    profile = _profile(
        trip_preferences=TripPreferences(
            preferred_trip_types=[TripTypePreference(type="airport", priority=5)],
            avoid_trip_types=[AvoidedTripType(type="school", reason="hours")],
        )
    )

    assert profile.preferred_trip_type("airport").priority == 5
    assert profile.preferred_trip_type("school") is None
    assert profile.avoided_trip_type("school").reason == "hours"


def test_only_verified_certifications_count():
    profile = _profile(
        skills=Skills(certifications=[
            Certification(type="first_aid", verified=True),
            Certification(type="cpr", verified=False),
        ])
    )

    assert profile.has_verified_certification("first_aid")
    assert not profile.has_verified_certification("cpr")
    assert not profile.has_verified_certification("hazmat")


def test_speaks_primary_and_additional_languages():
    profile = _profile(languages=LanguagePreferences(primary="en", additional=["sn"]))
    assert profile.speaks("en")
    assert profile.speaks("sn")
    assert not profile.speaks("fr")


# --- validation ---

def test_validate_rejects_negative_weight():
    with pytest.raises(ValueError):
        _profile(matching_weights=MatchingWeights(distance=-0.1)).validate()


def test_validate_warns_when_weights_drift(caplog):
    weights = MatchingWeights(distance=1.0, availability=1.0)
    with caplog.at_level(logging.WARNING, logger="drivers.preferences"):
        _profile(matching_weights=weights).validate()
    assert "sum to" in caplog.text


@pytest.mark.parametrize("shift", [
    Shift(day_of_week="funday", start_time="08:00", end_time="10:00"),
    Shift(day_of_week="monday", start_time="8:00", end_time="10:00"),
    Shift(day_of_week="monday", start_time="08:00", end_time="24:00"),
    Shift(day_of_week="monday", start_time="08:00", end_time="10:00", priority=6),
])
def test_validate_rejects_bad_shifts(shift):
    with pytest.raises(ValueError):
        _profile(availability=AvailabilityPreferences(preferred_shifts=[shift])).validate()


def test_validate_rejects_unknown_certification():
    with pytest.raises(ValueError):
        _profile(skills=Skills(certifications=[Certification(type="juggling")])).validate()


def test_default_profile_validates():
    default_matching_profile("d1").validate()


# --- auto-accept ---

def _auto_profile(**conditions):
    return _profile(auto_accept=AutoAcceptRules(enabled=True, conditions=AutoAcceptConditions(**conditions)))


def test_auto_accept_disabled_by_default(make_trip):
    assert not _profile().should_auto_accept(make_trip(), 1.0, 10.0)


def test_auto_accept_when_every_condition_holds(make_trip):
    assert _auto_profile().should_auto_accept(make_trip(), 1.0, 10.0)


def test_auto_accept_needs_known_distance_within_limit(make_trip):
    profile = _auto_profile(max_distance_to_pickup=5.0)
    assert profile.should_auto_accept(make_trip(), 5.0, 10.0)
    assert not profile.should_auto_accept(make_trip(), 5.1, 10.0)
    assert not profile.should_auto_accept(make_trip(), None, 10.0)


def test_auto_accept_minimum_fare(make_trip):
    profile = _auto_profile(min_trip_fare=15.0)
    assert not profile.should_auto_accept(make_trip(), 1.0, 10.0)
    assert profile.should_auto_accept(make_trip(), 1.0, 15.0)


def test_auto_accept_rider_rating(make_trip):
    profile = _auto_profile(min_rider_rating=4.0)
    assert not profile.should_auto_accept(make_trip(rider=RiderRef(id="r1", rating=3.5)), 1.0, 10.0)
    assert profile.should_auto_accept(make_trip(rider=RiderRef(id="r1", rating=4.5)), 1.0, 10.0)
    # unknown rating does not block
    assert profile.should_auto_accept(make_trip(rider=RiderRef(id="r1")), 1.0, 10.0)


def test_auto_accept_restricted_to_preferred_areas_and_types(make_trip):
    profile = DriverPreferenceProfile(
        driver_id="d1",
        geographic=GeographicPreferences(preferred_areas=[PreferredArea(bounds=FAR_BOX)]),
        auto_accept=AutoAcceptRules(
            enabled=True,
            conditions=AutoAcceptConditions(only_preferred_areas=True),
        ),
    )
    assert not profile.should_auto_accept(make_trip(), 1.0, 10.0)

    typed = _auto_profile(only_preferred_trip_types=True)
    assert not typed.should_auto_accept(make_trip(trip_type="airport"), 1.0, 10.0)


def test_auto_accept_only_during_shifts(make_trip):
    profile = _auto_profile(only_during_preferred_shifts=True)
    assert not profile.should_auto_accept(make_trip(), 1.0, 10.0)


# --- preference sources ---

def test_missing_or_inactive_profiles_fall_back_to_default():
    assert isinstance(preference_source(None, "d1"), DefaultProfile)
    assert isinstance(preference_source(_profile(is_active=False), "d1"), DefaultProfile)
    assert isinstance(preference_source(_profile(), "d1"), ExplicitProfile)


def test_default_source_never_auto_accepts(make_trip):
    source = DefaultProfile("d1")
    assert not source.is_explicit
    assert not source.auto_accept_for(make_trip(fare=100.0), 0.1)
    assert source.profile.availability.unrestricted


def test_explicit_source_uses_trip_fare(make_trip):
    source = ExplicitProfile(_auto_profile(min_trip_fare=20.0))
    assert source.is_explicit
    assert not source.auto_accept_for(make_trip(fare=10.0), 1.0)
    assert source.auto_accept_for(make_trip(fare=25.0), 1.0)
