"""
Purpose: Storage contracts for driver snapshots and preference profiles.
What it does:
- DriverRepository / PreferenceRepository: what the matching engine reads
- In-memory implementations for tests, scripts and the HTTP surface

A missing preference profile is a normal result (None / absent key), not
an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol

from .models import DRIVER_ROLE, CandidateDriver
from .preferences import DriverPreferenceProfile


class DriverRepository(Protocol):
    def find_drivers(
        self,
        *,
        role: str = DRIVER_ROLE,
        is_active: bool = True,
        is_available: bool = True,
        is_location_tracking: Optional[bool] = None,
    ) -> List[CandidateDriver]:
        ...

    def get(self, driver_id: str) -> Optional[CandidateDriver]:
        ...


class PreferenceRepository(Protocol):
    def get(self, driver_id: str) -> Optional[DriverPreferenceProfile]:
        ...

    def get_many(self, driver_ids: Iterable[str]) -> Dict[str, DriverPreferenceProfile]:
        ...

    def save(self, profile: DriverPreferenceProfile) -> DriverPreferenceProfile:
        ...

    def delete(self, driver_id: str) -> bool:
        ...


@dataclass
class InMemoryDriverRepository:
    _drivers: Dict[str, CandidateDriver] = field(default_factory=dict)

    @classmethod
    def from_drivers(cls, drivers: Iterable[CandidateDriver]) -> InMemoryDriverRepository:
        return cls({driver.id: driver for driver in drivers})

    def add(self, driver: CandidateDriver) -> None:
        self._drivers[driver.id] = driver

    def get(self, driver_id: str) -> Optional[CandidateDriver]:
        return self._drivers.get(driver_id)

    def find_drivers(
        self,
        *,
        role: str = DRIVER_ROLE,
        is_active: bool = True,
        is_available: bool = True,
        is_location_tracking: Optional[bool] = None,
    ) -> List[CandidateDriver]:
        drivers = [
            d for d in self._drivers.values()
            if d.role == role and d.is_active == is_active and d.is_available == is_available
        ]
        if is_location_tracking is not None:
            drivers = [d for d in drivers if d.is_location_tracking == is_location_tracking]
        return drivers


@dataclass
class InMemoryPreferenceRepository:
    _profiles: Dict[str, DriverPreferenceProfile] = field(default_factory=dict)

    @classmethod
    def from_profiles(cls, profiles: Iterable[DriverPreferenceProfile]) -> InMemoryPreferenceRepository:
        repository = cls()
        for profile in profiles:
            repository.save(profile)
        return repository

    def get(self, driver_id: str) -> Optional[DriverPreferenceProfile]:
        return self._profiles.get(driver_id)

    def get_many(self, driver_ids: Iterable[str]) -> Dict[str, DriverPreferenceProfile]:
        return {
            driver_id: self._profiles[driver_id]
            for driver_id in driver_ids
            if driver_id in self._profiles
        }

    def save(self, profile: DriverPreferenceProfile) -> DriverPreferenceProfile:
        profile.validate()
        self._profiles[profile.driver_id] = profile
        return profile

    def delete(self, driver_id: str) -> bool:
        return self._profiles.pop(driver_id, None) is not None
