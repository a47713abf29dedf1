from unittest.mock import AsyncMock, Mock

import pytest

from geo_reminder.models import Coordinate, RouteEstimate, ThresholdConfig
from geo_reminder.settings import TrackingSettings
from geo_reminder.tracking import TrackingSession

# São Paulo, Praça da Sé
ORIGIN = Coordinate(latitude=-23.5505, longitude=-46.6333)
# Ibirapuera park, ~4.8 km away in a straight line
DESTINATION = Coordinate(latitude=-23.5874, longitude=-46.6576)


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, start_ms: float = 1_700_000_000_000.0):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += seconds * 1000


class FakeSubscription:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLocationSource:
    """Location source whose fixes are set by the test; watch() records the callback."""

    def __init__(self, position: Coordinate = ORIGIN):
        self.get_current_position = AsyncMock(return_value=position)
        self.subscriptions: list[FakeSubscription] = []
        self.callbacks: list = []

    def watch(self, on_sample) -> FakeSubscription:
        subscription = FakeSubscription()
        self.subscriptions.append(subscription)
        self.callbacks.append(on_sample)
        return subscription


def make_estimate(distance_m: float, duration_s: float, **kwargs) -> RouteEstimate:
    return RouteEstimate(distance_meters=distance_m, duration_seconds=duration_s, **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def thresholds() -> ThresholdConfig:
    """10 km / 30 min, the defaults a user starts with."""
    return ThresholdConfig(distance_threshold_meters=10_000, time_threshold_seconds=1_800)


@pytest.fixture
def tracking_settings() -> TrackingSettings:
    return TrackingSettings()


@pytest.fixture
def location_source() -> FakeLocationSource:
    return FakeLocationSource()


@pytest.fixture
def routing_provider() -> Mock:
    """Routing provider mock; set ``route.return_value`` or ``side_effect`` per test."""
    provider = Mock()
    provider.route = AsyncMock(return_value=make_estimate(15_000, 2_000))
    return provider


@pytest.fixture
def alarm_presenter() -> Mock:
    presenter = Mock()
    presenter.start = AsyncMock()
    presenter.stop = AsyncMock()
    return presenter


@pytest.fixture
def notifier() -> Mock:
    mock = Mock()
    mock.notify = AsyncMock()
    return mock


@pytest.fixture
def settings_store() -> Mock:
    store = Mock()
    store.load.return_value = None
    return store


@pytest.fixture
def session(
    location_source, routing_provider, alarm_presenter, notifier, settings_store, tracking_settings, clock
) -> TrackingSession:
    return TrackingSession(
        location_source=location_source,
        routing_provider=routing_provider,
        alarm_presenter=alarm_presenter,
        notifier=notifier,
        settings_store=settings_store,
        settings=tracking_settings,
        clock=clock,
        session_id="session-test",
    )
