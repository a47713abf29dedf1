"""Contracts of the collaborators a tracking session depends on.

Concrete implementations live in ``geo.osrm_client``, ``geo.gps_simulation``,
``presentation`` and ``storage``; tests substitute mocks.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from geo_reminder.models import Coordinate, RouteEstimate, SessionConfig

# Epoch milliseconds
Clock = Callable[[], float]

SampleCallback = Callable[[Coordinate, float | None], Awaitable[None]]


class SubscriptionHandle(Protocol):
    def cancel(self) -> None: ...


class LocationSource(Protocol):
    async def get_current_position(self) -> Coordinate:
        """Raises LocationUnavailable when no fix can be obtained."""
        ...

    def watch(self, on_sample: SampleCallback) -> SubscriptionHandle:
        """Deliver ``(coordinate, timestamp_ms)`` samples until cancelled."""
        ...


class RoutingProvider(Protocol):
    async def route(self, origin: Coordinate, destination: Coordinate) -> RouteEstimate:
        """Raises on network error, provider error or when no route exists."""
        ...


class AlarmPresenter(Protocol):
    async def start(
        self, sound_enabled: bool, vibration_enabled: bool, sound_uri: str | None = None
    ) -> None: ...

    async def stop(self) -> None: ...


class Notifier(Protocol):
    async def notify(self, title: str, body: str, use_alert_sound: bool) -> None: ...


class SettingsStore(Protocol):
    def load(self) -> SessionConfig | None: ...

    def save(self, config: SessionConfig) -> None: ...
