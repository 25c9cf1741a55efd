"""
Trips domain package.

Public API:
- Domain models: Trip, RiderRef, TripStatus
- Storage: TripRepository, InMemoryTripRepository
"""
from .models import Trip, RiderRef, TripStatus, TRIP_TYPES, DEFAULT_TRIP_TYPE
from .repository import TripRepository, InMemoryTripRepository, TripWriteConflict

__all__ = ["Trip",
           "RiderRef",
             "TripStatus",
               "TRIP_TYPES",
               "DEFAULT_TRIP_TYPE",
               "TripRepository",
               "InMemoryTripRepository",
               "TripWriteConflict",
               ]
