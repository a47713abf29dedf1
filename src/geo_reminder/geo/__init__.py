from .distance import aerial_estimate, estimate_aerial_duration, great_circle_distance
from .geocoding import GeocodingClient, GeocodingError
from .gps_simulation import GPSSimulator, SimulatedLocationSource
from .osrm_client import NoRouteFoundError, OSRMClient, OSRMServiceError, OSRMTimeoutError

__all__ = [
    "aerial_estimate",
    "estimate_aerial_duration",
    "great_circle_distance",
    "GeocodingClient",
    "GeocodingError",
    "GPSSimulator",
    "SimulatedLocationSource",
    "NoRouteFoundError",
    "OSRMClient",
    "OSRMServiceError",
    "OSRMTimeoutError",
]
