"""Destination search and reverse geocoding.

Search goes to a Photon endpoint, which accepts a position bias so that
"main street" resolves near the traveller. Reverse geocoding goes to
Nominatim, which requires an identifying User-Agent.
"""

import logging

import requests

from geo_reminder.core.exceptions import ServiceUnavailableError
from geo_reminder.models import Coordinate, SearchResult

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3


class GeocodingError(ServiceUnavailableError):
    pass


def _display_name(properties: dict) -> str:
    parts = [properties.get(key) for key in ("city", "state", "country")]
    context = ", ".join(p for p in parts if p)
    name = properties.get("name") or ""
    if name and context:
        return f"{name}, {context}"
    return name or context


class GeocodingClient:
    def __init__(
        self,
        search_url: str,
        reverse_url: str,
        user_agent: str = "GeoReminderApp/1.0",
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ):
        self.search_url = search_url
        self.reverse_url = reverse_url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent})

    def search(
        self, query: str, near: Coordinate | None = None, limit: int = 5
    ) -> list[SearchResult]:
        """Find places matching ``query``, biased towards ``near`` if given."""
        query = query.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        params: dict[str, str | int | float] = {"q": query, "limit": limit}
        if near is not None:
            params["lat"] = near.latitude
            params["lon"] = near.longitude

        data = self._get_json(self.search_url, params)

        results = []
        for feature in data.get("features", []):
            lon, lat = feature["geometry"]["coordinates"][:2]
            properties = feature.get("properties", {})
            results.append(
                SearchResult(
                    display_name=_display_name(properties),
                    coordinate=Coordinate(latitude=lat, longitude=lon),
                    importance=0.8 if properties.get("osm_type") == "N" else 0.5,
                )
            )
        return results

    def reverse(self, coordinate: Coordinate) -> str | None:
        """Human-readable address of ``coordinate``, or None when unknown."""
        data = self._get_json(
            self.reverse_url,
            {"format": "json", "lat": coordinate.latitude, "lon": coordinate.longitude},
        )
        return data.get("display_name") or None

    def _get_json(self, url: str, params: dict) -> dict:
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise GeocodingError(f"Geocoding timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise GeocodingError(f"Network error: {e}") from e

        if response.status_code != 200:
            raise GeocodingError(f"Geocoding failed with status {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise GeocodingError("Unreadable geocoding response") from e
