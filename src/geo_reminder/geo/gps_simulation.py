"""Simulated GPS receiver travelling along a polyline.

Stands in for a device location service: ``SimulatedLocationSource`` moves
along a route at constant speed, adds Gaussian noise and occasionally
drops a fix, and pushes samples to a watcher from an asyncio task.
"""

import asyncio
import logging
import math
import random
import time

from geo_reminder.core.exceptions import LocationUnavailable
from geo_reminder.geo.distance import haversine_distance_m
from geo_reminder.interfaces import SampleCallback
from geo_reminder.models import Coordinate

logger = logging.getLogger(__name__)


class GPSSimulator:
    def __init__(
        self,
        noise_meters: float = 10.0,
        dropout_probability: float = 0.05,
        rng: random.Random | None = None,
    ):
        self.noise_meters = noise_meters
        self.dropout_probability = dropout_probability
        self._rng = rng or random.Random()

    def add_noise(self, lat: float, lon: float) -> tuple[float, float]:
        if self.noise_meters == 0:
            return lat, lon

        noise_lat = self._rng.gauss(0, self.noise_meters)
        noise_lon = self._rng.gauss(0, self.noise_meters)

        lat_offset = noise_lat / 111000
        lon_offset = noise_lon / (111000 * math.cos(math.radians(lat)))

        return lat + lat_offset, lon + lon_offset

    def should_dropout(self) -> bool:
        return self._rng.random() < self.dropout_probability

    @staticmethod
    def path_length(path: list[tuple[float, float]]) -> float:
        return sum(
            haversine_distance_m(*path[i], *path[i + 1]) for i in range(len(path) - 1)
        )

    def interpolate_position(
        self, path: list[tuple[float, float]], progress: float
    ) -> tuple[float, float]:
        """Point at ``progress`` (0..1) of the path length."""
        if progress <= 0.0:
            return path[0]
        if progress >= 1.0:
            return path[-1]

        distances = [
            haversine_distance_m(*path[i], *path[i + 1]) for i in range(len(path) - 1)
        ]
        target_distance = sum(distances) * progress
        accumulated = 0.0

        for i, segment_distance in enumerate(distances):
            if segment_distance > 0 and accumulated + segment_distance >= target_distance:
                segment_progress = (target_distance - accumulated) / segment_distance
                start, end = path[i], path[i + 1]
                return (
                    start[0] + (end[0] - start[0]) * segment_progress,
                    start[1] + (end[1] - start[1]) * segment_progress,
                )
            accumulated += segment_distance

        return path[-1]


class _WatchSubscription:
    def __init__(self, task: asyncio.Task[None]):
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        self._task.cancel()


class SimulatedLocationSource:
    """Location source replaying a trip along ``path`` at ``speed_mps``.

    Simulated time advances by ``sample_interval_seconds`` per sample
    while real time advances by ``sample_interval_seconds / time_scale``.
    """

    def __init__(
        self,
        path: list[Coordinate],
        speed_mps: float = 13.89,
        sample_interval_seconds: float = 5.0,
        time_scale: float = 1.0,
        simulator: GPSSimulator | None = None,
        start_time_ms: float | None = None,
    ):
        if len(path) < 2:
            raise ValueError("A simulated path needs at least two points")
        self._path = [c.as_tuple() for c in path]
        self._length = GPSSimulator.path_length(self._path)
        self._speed_mps = speed_mps
        self._interval = sample_interval_seconds
        self._time_scale = time_scale
        self._simulator = simulator or GPSSimulator()
        self._now_ms = start_time_ms if start_time_ms is not None else time.time() * 1000
        self._travelled = 0.0

    @property
    def now_ms(self) -> float:
        return self._now_ms

    def clock(self) -> float:
        """Simulated epoch milliseconds; pass as a session clock."""
        return self._now_ms

    @property
    def arrived(self) -> bool:
        return self._travelled >= self._length

    def _position(self) -> Coordinate:
        progress = self._travelled / self._length if self._length > 0 else 1.0
        lat, lon = self._simulator.interpolate_position(self._path, progress)
        lat, lon = self._simulator.add_noise(lat, lon)
        return Coordinate(latitude=max(-90.0, min(90.0, lat)), longitude=lon)

    def advance(self) -> None:
        self._travelled = min(self._length, self._travelled + self._speed_mps * self._interval)
        self._now_ms += self._interval * 1000

    async def get_current_position(self) -> Coordinate:
        if self._simulator.should_dropout():
            raise LocationUnavailable("Simulated GPS dropout")
        return self._position()

    def watch(self, on_sample: SampleCallback) -> _WatchSubscription:
        task = asyncio.create_task(self._run(on_sample), name="simulated-gps-watch")
        return _WatchSubscription(task)

    async def _run(self, on_sample: SampleCallback) -> None:
        while True:
            await asyncio.sleep(self._interval / self._time_scale)
            self.advance()
            if self._simulator.should_dropout():
                logger.debug("GPS dropout, no sample")
                continue
            try:
                await on_sample(self._position(), self._now_ms)
            except Exception:
                # One failed sample must not end the subscription
                logger.exception("Location sample handler failed")
