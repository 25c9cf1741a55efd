"""
Purpose: Trip storage contract used by the assignment coordinator.
What it does:
- TripRepository: the narrow read/write interface the core depends on
- InMemoryTripRepository: dict-backed implementation for tests, scripts
  and the HTTP surface

Writes are conditional: set_assignment only applies when the stored trip
still has the expected status and driver (compare-and-set). A mismatch
raises TripWriteConflict so two concurrent assignments cannot both win.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Collection, Dict, Iterable, List, Optional, Protocol

from .models import Trip, TripStatus


class TripWriteConflict(Exception):
    """Raised when a conditional trip update finds unexpected state."""
    pass


class TripRepository(Protocol):
    def get(self, trip_id: str) -> Optional[Trip]:
        ...

    def set_assignment(
        self,
        trip_id: str,
        driver_id: str,
        status: TripStatus,
        assigned_at: datetime,
        match_score: float,
        reassignment_count: Optional[int] = None,
        *,
        expected_status: Collection[TripStatus],
        expected_driver_id: Optional[str],
    ) -> Trip:
        ...


@dataclass
class InMemoryTripRepository:
    """
    In-memory trip store. Safe to share across threads.
    """
    _trips: Dict[str, Trip] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def from_trips(cls, trips: Iterable[Trip]) -> InMemoryTripRepository:
        repository = cls()
        for trip in trips:
            repository.add(trip)
        return repository

    def add(self, trip: Trip) -> None:
        with self._lock:
            self._trips[trip.id] = trip

    def get(self, trip_id: str) -> Optional[Trip]:
        return self._trips.get(trip_id)

    def all(self) -> List[Trip]:
        return list(self._trips.values())

    def set_assignment(
        self,
        trip_id: str,
        driver_id: str,
        status: TripStatus,
        assigned_at: datetime,
        match_score: float,
        reassignment_count: Optional[int] = None,
        *,
        expected_status: Collection[TripStatus],
        expected_driver_id: Optional[str],
    ) -> Trip:
        with self._lock:
            current = self._trips.get(trip_id)
            if current is None:
                raise KeyError(trip_id)

            if current.status not in expected_status or current.driver_id != expected_driver_id:
                raise TripWriteConflict(
                    f"Trip {trip_id} changed underneath: status={current.status.value}, driver={current.driver_id}"
                )

            updated = replace(
                current,
                driver_id=driver_id,
                status=status,
                assigned_at=assigned_at,
                match_score=match_score,
                reassignment_count=(
                    current.reassignment_count if reassignment_count is None else reassignment_count
                ),
            )
            self._trips[trip_id] = updated
            return updated
