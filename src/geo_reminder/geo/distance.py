"""Great-circle distance and the aerial travel-time model.

Aerial mode measures the straight line between the traveller and the
destination and assumes a constant cruise speed. No altitude or airport
transfer is modelled.
"""

from math import atan2, cos, radians, sin, sqrt

from geo_reminder.models import Coordinate, RouteEstimate

EARTH_RADIUS_M = 6_371_000  # Earth radius in meters

# ~800 km/h
AERIAL_CRUISE_SPEED_MPS = 222.0


def haversine_distance_m(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate the great-circle distance between two points in meters.

    Args:
        lat1: Latitude of first point in degrees
        lon1: Longitude of first point in degrees
        lat2: Latitude of second point in degrees
        lon2: Longitude of second point in degrees

    Returns:
        Distance between the two points in meters, never negative
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push a a hair outside [0, 1] for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_M * c


def great_circle_distance(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance in meters between two coordinates."""
    return haversine_distance_m(a.latitude, a.longitude, b.latitude, b.longitude)


def estimate_aerial_duration(
    distance_meters: float, speed_mps: float = AERIAL_CRUISE_SPEED_MPS
) -> float:
    """Seconds needed to cover ``distance_meters`` at cruise speed."""
    return distance_meters / speed_mps


def aerial_estimate(
    current: Coordinate,
    destination: Coordinate,
    speed_mps: float = AERIAL_CRUISE_SPEED_MPS,
) -> RouteEstimate:
    """Straight-line estimate used by aerial mode. Carries no geometry."""
    distance = great_circle_distance(current, destination)
    return RouteEstimate(
        distance_meters=distance,
        duration_seconds=estimate_aerial_duration(distance, speed_mps),
        geometry=None,
        source="aerial",
    )
