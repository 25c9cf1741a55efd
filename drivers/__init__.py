"""
Drivers domain package.

Public API:
- Snapshots: CandidateDriver, VehicleInfo
- Preferences: DriverPreferenceProfile and its sections, PreferenceSource,
  ExplicitProfile, DefaultProfile
- Candidate location: CandidateLocator, find_nearby_drivers
- Storage: DriverRepository, PreferenceRepository + in-memory versions
"""
from .models import CandidateDriver, VehicleInfo, DRIVER_ROLE
from .preferences import (
    DriverPreferenceProfile,
    PreferenceSource,
    ExplicitProfile,
    DefaultProfile,
    default_matching_profile,
    preference_source,
)
from .selection import CandidateLocator, filter_eligible_drivers, find_nearby_drivers
from .repository import (
    DriverRepository,
    PreferenceRepository,
    InMemoryDriverRepository,
    InMemoryPreferenceRepository,
)

__all__ = [
    "CandidateDriver",
    "VehicleInfo",
    "DRIVER_ROLE",
    "DriverPreferenceProfile",
    "PreferenceSource",
    "ExplicitProfile",
    "DefaultProfile",
    "default_matching_profile",
    "preference_source",
    "CandidateLocator",
    "filter_eligible_drivers",
    "find_nearby_drivers",
    "DriverRepository",
    "PreferenceRepository",
    "InMemoryDriverRepository",
    "InMemoryPreferenceRepository",
]
