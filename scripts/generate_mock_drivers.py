import csv
import random


def generate_mock_drivers(filename="mock_drivers.csv", count=100):
    # Base coordinate roughly mapping to the center of Harare, same as the trips CSV.
    base_lat = -17.824858
    base_lon = 31.053028

    with open(filename, mode='w', newline='') as file:
        writer = csv.writer(file)
        writer.writerow([
            "driver_id", "name", "lat", "lon", "rating", "completed_trips",
            "is_available", "is_location_tracking", "vehicle_capacity",
        ])

        for i in range(count):
            driver_id = f"DRV-{str(i+1).zfill(3)}"

            # Scatter drivers randomly around the city center (roughly +/- 10km)
            lat = base_lat + (random.random() - 0.5) * 0.18
            lon = base_lon + (random.random() - 0.5) * 0.18

            # 80% available, and 90% of those share their location
            is_available = random.random() < 0.8
            is_tracking = random.random() < 0.9

            writer.writerow([
                driver_id,
                f"Driver {i+1}",
                round(lat, 6),
                round(lon, 6),
                round(random.uniform(3.0, 5.0), 1),
                random.randint(0, 2000),
                is_available,
                is_tracking,
                random.choice([4, 4, 4, 6, 7]),
            ])

    print(f"Successfully generated {count} mock drivers into '{filename}'.")

if __name__ == "__main__":
    generate_mock_drivers()
