import csv
import os
import random
import time
from datetime import datetime
from typing import List

import pandas as pd

from dispatch.dispatcher import AssignmentCoordinator, MatchingError
from dispatch.policy import MatchingPolicy
from drivers.models import CandidateDriver, VehicleInfo
from drivers.preferences import (
    AutoAcceptRules,
    DriverPreferenceProfile,
    LanguagePreferences,
    TripPreferences,
    TripTypePreference,
)
from drivers.repository import InMemoryDriverRepository, InMemoryPreferenceRepository
from routing.geo import GeoPoint
from trips.models import TRIP_TYPES, RiderRef, Trip
from trips.repository import InMemoryTripRepository

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def load_trips(filepath="mock_trips.csv", limit=50) -> List[Trip]:
    df = pd.read_csv(os.path.join(BASE_DIR, filepath)).head(limit)

    trips = []
    for _, row in df.iterrows():
        trips.append(
            Trip(
                id=str(row["trip_id"]),
                pickup_location=GeoPoint(float(row["pickup_lat"]), float(row["pickup_lon"])),
                pickup_time=datetime.fromisoformat(str(row["pickup_time"])),
                dropoff_location=GeoPoint(float(row["dropoff_lat"]), float(row["dropoff_lon"])),
                trip_type=str(row["trip_type"]),
                requires_wheelchair=bool(row["requires_wheelchair"]),
                has_pets=bool(row["has_pets"]),
                preferred_language=str(row["preferred_language"]),
                rider=RiderRef(id=str(row["rider_id"]), rating=float(row["rider_rating"])),
                fare=float(row["fare"]),
            )
        )
    return trips


def load_drivers(filepath="mock_drivers.csv") -> List[CandidateDriver]:
    df = pd.read_csv(os.path.join(BASE_DIR, filepath))

    drivers = []
    for _, row in df.iterrows():
        drivers.append(
            CandidateDriver.new(
                str(row["driver_id"]),
                float(row["lat"]),
                float(row["lon"]),
                name=str(row["name"]),
                rating=float(row["rating"]),
                completed_trips=int(row["completed_trips"]),
                is_available=bool(row["is_available"]),
                is_location_tracking=bool(row["is_location_tracking"]),
                vehicle_info=VehicleInfo(capacity=int(row["vehicle_capacity"])),
            )
        )
    return drivers


def random_profile(driver_id: str) -> DriverPreferenceProfile:
    """
    A plausible stored profile. Drivers without one get the default profile.
    """
    preferred = random.sample(TRIP_TYPES, k=2)
    return DriverPreferenceProfile(
        driver_id=driver_id,
        trip_preferences=TripPreferences(
            preferred_trip_types=[TripTypePreference(type=t, priority=random.randint(1, 5)) for t in preferred],
            accept_wheelchair=random.random() < 0.3,
            accept_pets=random.random() < 0.5,
        ),
        languages=LanguagePreferences(
            primary="en",
            additional=random.sample(["sn", "nd", "fr"], k=random.randint(0, 2)),
            prefer_matching_language=True,
        ),
        auto_accept=AutoAcceptRules(enabled=random.random() < 0.4),
    )


def run_simulation():
    print("=== STARTING MATCHING SIMULATION ===")

    # 1. Load Data
    trips = load_trips("mock_trips.csv", limit=40)
    drivers = load_drivers("mock_drivers.csv")
    profiles = [random_profile(d.id) for d in drivers if random.random() < 0.6]
    print(f"Loaded {len(trips)} Trips, {len(drivers)} Drivers ({len(profiles)} with preferences).\n")

    # 2. Configure System
    policy = MatchingPolicy.from_env()
    trip_repository = InMemoryTripRepository.from_trips(trips)
    coordinator = AssignmentCoordinator(
        trip_repository,
        InMemoryDriverRepository.from_drivers(drivers),
        InMemoryPreferenceRepository.from_profiles(profiles),
        policy=policy,
    )

    # 3. Batch assignment
    print("Running batch assignment...")
    start_time = time.time()
    batch = coordinator.batch_assign([t.id for t in trips])
    print(f"Batch finished in {time.time() - start_time:.2f}s.\n")

    output_path = os.path.join(BASE_DIR, "matching_results.csv")
    reassigned = 0

    with open(output_path, "w", newline='') as file:
        writer = csv.writer(file)
        writer.writerow(["trip_id", "driver_id", "match_score", "status", "reassignments", "error"])

        for item in batch.results:
            if not item.success:
                writer.writerow([item.trip_id, "FAILED", "", "", 0, item.error_kind])
                print(f"[FAILED] Trip {item.trip_id} -> {item.error}")
                continue

            assignment = item.assignment
            print(
                f"[SUCCESS] Trip {item.trip_id} -> {assignment.assigned_driver.id} "
                f"(score {assignment.match_score:.1f}, {assignment.trip.status.value})"
            )

            # 4. Simulate a decline on pending offers, roughly one in five
            final = assignment
            if assignment.trip.status.value == "pending" and random.random() < 0.2:
                try:
                    final = coordinator.reassign(item.trip_id, exclude_driver_ids=[assignment.assigned_driver.id])
                    reassigned += 1
                    print(f"  [DECLINED] reassigned to {final.assigned_driver.id} (score {final.match_score:.1f})")
                except MatchingError as exc:
                    print(f"  [DECLINED] no alternative driver: {exc}")

            writer.writerow([
                item.trip_id,
                final.assigned_driver.id,
                round(final.match_score, 1),
                final.trip.status.value,
                final.trip.reassignment_count,
                "",
            ])

    summary = batch.summary
    print("\n=== SIMULATION COMPLETE ===")
    print(f"Trips Assigned: {summary.successful} / {summary.total} ({summary.success_rate:.1f}%)")
    print(f"Trips Reassigned after decline: {reassigned}")
    print(f"Results written to '{output_path}'.")


if __name__ == "__main__":
    run_simulation()
