import pandas as pd
import numpy as np
from datetime import datetime, timedelta

from trips.models import TRIP_TYPES

LANGUAGES = ["en", "sn", "nd", "fr"]


def generate_mock_trips(num_trips=200, num_riders=60, output_file="mock_trips.csv"):
    """
    Generates unassigned trip requests around the city centre.
    A fixed rider pool makes repeat riders (and so rider preferences)
    show up in the data.
    """
    # Center around Harare, Zimbabwe
    CENTER_LAT = -17.824858
    CENTER_LON = 31.053028

    riders = [
        {"id": f"r_{str(i + 1).zfill(4)}", "rating": np.round(np.random.uniform(2.5, 5.0), 1)}
        for i in range(num_riders)
    ]

    data = []
    start = datetime.now().replace(minute=0, second=0, microsecond=0)

    for trip_index in range(num_trips):
        rider = np.random.choice(riders)

        # Pickups within ~8km of the centre, dropoffs within ~10km of the pickup
        pickup_lat = CENTER_LAT + np.random.uniform(-0.07, 0.07)
        pickup_lon = CENTER_LON + np.random.uniform(-0.07, 0.07)
        dropoff_lat = pickup_lat + np.random.uniform(-0.09, 0.09)
        dropoff_lon = pickup_lon + np.random.uniform(-0.09, 0.09)

        data.append({
            "trip_id": f"t_{str(trip_index + 1).zfill(6)}",
            "pickup_time": (start + timedelta(minutes=int(np.random.randint(0, 12 * 60)))).isoformat(),
            "pickup_lat": np.round(pickup_lat, 6),
            "pickup_lon": np.round(pickup_lon, 6),
            "dropoff_lat": np.round(dropoff_lat, 6),
            "dropoff_lon": np.round(dropoff_lon, 6),
            "trip_type": np.random.choice(TRIP_TYPES),
            "requires_wheelchair": bool(np.random.random() < 0.05),
            "has_pets": bool(np.random.random() < 0.08),
            "preferred_language": np.random.choice(LANGUAGES, p=[0.7, 0.15, 0.1, 0.05]),
            "rider_id": rider["id"],
            "rider_rating": rider["rating"],
            "fare": np.round(np.random.uniform(3.0, 40.0), 2),
        })

    df = pd.DataFrame(data)
    df.to_csv(output_file, index=False)
    print(f"Generated {num_trips} trips and saved to '{output_file}'")

    print("\nTrip type mix:")
    for trip_type, count in df["trip_type"].value_counts().items():
        print(f"  {trip_type}: {count} trips")


if __name__ == "__main__":
    generate_mock_trips(num_trips=200, num_riders=60)
