#Marks routing as a package.
#Re-exports the geo primitives so other modules import from routing
#without knowing internal file names.
#No business logic.

from .geo import GeoPoint, distance_km, EARTH_RADIUS_KM
from .geofence import BoundingBox, first_containing

__all__ = [
    "GeoPoint",
    "distance_km",
    "EARTH_RADIUS_KM",
    "BoundingBox",
    "first_containing",
]
