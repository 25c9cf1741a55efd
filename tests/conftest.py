import os
from datetime import datetime

import django
import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dispatch_backend.settings")
django.setup()

from drivers.models import CandidateDriver  # noqa: E402
from routing.geo import GeoPoint  # noqa: E402
from trips.models import Trip  # noqa: E402

# one degree of latitude along a meridian on a 6371 km sphere
KM_PER_DEGREE = 111.19492664455873

CITY_CENTRE = GeoPoint(-17.824858, 31.053028)

# 2026-10-19 is a Monday
MONDAY_9AM = datetime(2026, 10, 19, 9, 0)


def north_of(origin: GeoPoint, km: float) -> GeoPoint:
    return GeoPoint(origin.lat + km / KM_PER_DEGREE, origin.lng)


class FakeClock:
    """
    Monotonic clock whose sleep just moves time forward.
    """
    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def pickup():
    return CITY_CENTRE


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_driver(pickup):
    """
    Builds a driver `km` north of the pickup (None = no known location).
    """
    def _make(driver_id, km=1.0, rating=5.0, **kwargs):
        if km is None:
            return CandidateDriver.new(driver_id, None, None, rating=rating, **kwargs)
        location = north_of(pickup, km)
        return CandidateDriver.new(driver_id, location.lat, location.lng, rating=rating, **kwargs)
    return _make


@pytest.fixture
def make_trip(pickup):
    def _make(trip_id="trip-1", **kwargs):
        kwargs.setdefault("pickup_location", pickup)
        kwargs.setdefault("pickup_time", MONDAY_9AM)
        return Trip(id=trip_id, **kwargs)
    return _make
