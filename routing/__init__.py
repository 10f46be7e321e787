#Marks routing as a package.
#Re-exports clean public APIs (haversine_km, Coordinates, GeocodingClient)
#so other modules import from routing without knowing internal file names.
#No business logic.

from .distance import Coordinates, haversine_km, distance_between, is_valid_coordinate
from .geocoding import GeocodingClient, GeocodeResult, GeocodingError

__all__ = [
    "Coordinates",
    "haversine_km",
    "distance_between",
    "is_valid_coordinate",
    "GeocodingClient",
    "GeocodeResult",
    "GeocodingError",
]
