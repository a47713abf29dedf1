import logging

import httpx
import polyline
from pydantic import BaseModel

from geo_reminder.core.exceptions import (
    NetworkError,
    PermanentError,
    ServiceUnavailableError,
)
from geo_reminder.core.retry import RetryConfig, with_retry
from geo_reminder.models import Coordinate, RouteEstimate

logger = logging.getLogger(__name__)


class RouteResponse(BaseModel):
    distance_meters: float
    duration_seconds: float
    geometry: list[tuple[float, float]]
    osrm_code: str


class NoRouteFoundError(PermanentError):
    """OSRM answered but has no route between the points (non-retryable)."""

    pass


class OSRMServiceError(ServiceUnavailableError):
    """OSRM service error (5xx, unreadable body, network failure). Retryable."""

    pass


class OSRMTimeoutError(NetworkError):
    """OSRM request timeout. Retryable."""

    pass


def decode_polyline(encoded: str, precision: int = 5) -> list[tuple[float, float]]:
    """Decode polyline string to list of (lat, lon) tuples."""
    coords = polyline.decode(encoded, precision)
    return [(lat, lon) for lat, lon in coords]


class OSRMClient:
    """Routing provider backed by an OSRM ``/route`` endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        profile: str = "driving",
        retry_config: RetryConfig | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.profile = profile
        self.retry_config = retry_config or RetryConfig(max_attempts=1)

    def _route_url(self, origin: tuple[float, float], destination: tuple[float, float]) -> str:
        origin_lat, origin_lon = origin
        dest_lat, dest_lon = destination
        # OSRM expects lon,lat pairs
        return (
            f"{self.base_url}/route/v1/{self.profile}/"
            f"{origin_lon},{origin_lat};{dest_lon},{dest_lat}"
        )

    async def get_route(
        self, origin: tuple[float, float], destination: tuple[float, float]
    ) -> RouteResponse:
        """Get route between two (lat, lon) pairs using OSRM."""
        url = self._route_url(origin, destination)
        params = {"overview": "full", "geometries": "polyline"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise OSRMTimeoutError(f"Request timed out after {self.timeout}s") from e
        except httpx.TransportError as e:
            raise OSRMServiceError(f"Network error: {e}") from e

        if response.status_code >= 500:
            raise OSRMServiceError(f"OSRM server error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise OSRMServiceError(
                f"Unreadable OSRM response (status {response.status_code})"
            ) from e

        code = data.get("code")
        routes = data.get("routes") or []
        if code != "Ok" or not routes:
            raise NoRouteFoundError(
                f"No route found between coordinates (code={code})",
                details={"code": code, "message": data.get("message")},
            )

        route = routes[0]
        geometry = route.get("geometry")
        return RouteResponse(
            distance_meters=float(route["distance"]),
            duration_seconds=float(route["duration"]),
            geometry=decode_polyline(geometry) if geometry else [],
            osrm_code=code,
        )

    async def route(self, origin: Coordinate, destination: Coordinate) -> RouteEstimate:
        """Routing provider entry point: retried ``get_route`` as a RouteEstimate."""
        response = await with_retry(
            lambda: self.get_route(origin.as_tuple(), destination.as_tuple()),
            self.retry_config,
            operation_name="osrm route",
        )
        logger.debug(
            f"OSRM route: {response.distance_meters:.0f}m, "
            f"{response.duration_seconds:.0f}s, {len(response.geometry)} points"
        )
        return RouteEstimate(
            distance_meters=response.distance_meters,
            duration_seconds=response.duration_seconds,
            geometry=[Coordinate.from_tuple(point) for point in response.geometry] or None,
            source="provider",
        )
