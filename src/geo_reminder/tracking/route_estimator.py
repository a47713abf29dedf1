"""Provider-or-local decision for the remaining route.

Provider calls are the costly, rate-limited resource. In road mode the
estimator calls the provider at most once per refresh interval and in
between scales the great-circle distance by the last observed
road/straight-line ratio, dividing by the last observed speed.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from geo_reminder.core.exceptions import GeoReminderError, RouteUnavailable
from geo_reminder.geo.distance import aerial_estimate, great_circle_distance
from geo_reminder.interfaces import RoutingProvider
from geo_reminder.models import Coordinate, CorrectionModel, RouteEstimate, TravelMode
from geo_reminder.settings import TrackingSettings

logger = logging.getLogger(__name__)


@dataclass
class EstimateContext:
    """Per-session estimation state.

    Owned by a single tracking session. ``correction_model`` and
    ``last_provider_call_at`` are updated in place after each successful
    provider call.
    """

    now: float
    prior_estimate: RouteEstimate | None = None
    correction_model: CorrectionModel = field(default_factory=CorrectionModel)
    last_provider_call_at: float | None = None


class RouteEstimator:
    def __init__(
        self,
        provider: RoutingProvider,
        settings: TrackingSettings | None = None,
    ):
        self._provider = provider
        self._settings = settings or TrackingSettings()

    @property
    def refresh_interval_ms(self) -> float:
        return self._settings.provider_refresh_interval_seconds * 1000

    def should_call_provider(self, context: EstimateContext) -> bool:
        """True unless a recent provider answer can be extrapolated."""
        if context.prior_estimate is None or context.last_provider_call_at is None:
            return True
        return context.now - context.last_provider_call_at >= self.refresh_interval_ms

    async def get_estimate(
        self,
        current: Coordinate,
        destination: Coordinate,
        mode: TravelMode,
        context: EstimateContext,
    ) -> RouteEstimate | None:
        """Estimate the remaining route, or None if the provider failed."""
        if mode == TravelMode.AERIAL:
            return aerial_estimate(current, destination, self._settings.aerial_speed_mps)

        if not self.should_call_provider(context):
            return self.local_estimate(current, destination, context)

        try:
            estimate = await self._call_provider(current, destination)
        except RouteUnavailable as e:
            logger.warning(f"Route unavailable: {e.message}")
            return None

        context.last_provider_call_at = context.now
        self.update_correction(context.correction_model, current, destination, estimate)
        return estimate

    def local_estimate(
        self,
        current: Coordinate,
        destination: Coordinate,
        context: EstimateContext,
    ) -> RouteEstimate:
        model = context.correction_model
        aerial = great_circle_distance(current, destination)
        road_distance = aerial * model.distance_ratio
        prior_geometry = context.prior_estimate.geometry if context.prior_estimate else None
        return RouteEstimate(
            distance_meters=road_distance,
            duration_seconds=road_distance / model.average_speed_mps,
            geometry=prior_geometry,
            source="local",
        )

    def update_correction(
        self,
        model: CorrectionModel,
        current: Coordinate,
        destination: Coordinate,
        estimate: RouteEstimate,
    ) -> None:
        aerial = great_circle_distance(current, destination)
        # Ratio blows up when origin and destination nearly coincide, and a
        # zero road distance (both ends snapped to one node) carries no ratio
        if aerial >= self._settings.min_correction_distance_m and estimate.distance_meters > 0:
            model.distance_ratio = estimate.distance_meters / aerial
        if estimate.duration_seconds > 0 and estimate.distance_meters > 0:
            model.average_speed_mps = estimate.distance_meters / estimate.duration_seconds
        logger.debug(
            f"Correction model: ratio={model.distance_ratio:.3f}, "
            f"speed={model.average_speed_mps:.2f} m/s"
        )

    async def _call_provider(
        self, current: Coordinate, destination: Coordinate
    ) -> RouteEstimate:
        timeout = self._settings.routing_timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                return await self._provider.route(current, destination)
        except TimeoutError as e:
            raise RouteUnavailable(f"Routing provider timed out after {timeout}s") from e
        except GeoReminderError as e:
            raise RouteUnavailable(
                f"Routing provider failed: {e.message}", details={"cause": type(e).__name__}
            ) from e
        except Exception as e:
            # Third-party providers may raise anything; a failed sample is not fatal
            logger.debug("Unexpected routing provider error", exc_info=True)
            raise RouteUnavailable(f"Routing provider error: {e}") from e
