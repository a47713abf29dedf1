"""Two-tier classification of a remaining-route estimate.

The configured thresholds are a heads-up (pre-alert notification). Final
approach is the hard arrival signal that starts the alarm, whichever
threshold fired.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from geo_reminder.models import RouteEstimate, ThresholdConfig
from geo_reminder.settings import TrackingSettings


class TriggerKind(str, Enum):
    NONE = "none"
    PRE_ALERT = "pre_alert"
    FINAL_APPROACH = "final_approach"


class TriggerReason(str, Enum):
    DISTANCE = "distance"
    TIME = "time"


class TriggerResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: TriggerKind
    reason: TriggerReason | None = None

    @property
    def triggered(self) -> bool:
        return self.kind != TriggerKind.NONE


NO_TRIGGER = TriggerResult(kind=TriggerKind.NONE)


class TriggerEvaluator:
    def __init__(self, settings: TrackingSettings | None = None):
        settings = settings or TrackingSettings()
        self._final_km = settings.final_approach_distance_m / 1000
        self._final_min = settings.final_approach_time_seconds / 60

    def classify(
        self,
        estimate: RouteEstimate,
        thresholds: ThresholdConfig,
        is_first_check: bool = False,
    ) -> TriggerResult:
        """Classify ``estimate`` against ``thresholds``.

        Thresholds are OR-ed; distance wins when both fire. With
        ``is_first_check`` (the range check made before tracking begins) a
        crossing is always reported as a pre-alert.
        """
        remaining_km = estimate.distance_meters / 1000
        remaining_min = estimate.duration_seconds / 60

        dist_trigger = remaining_km <= thresholds.distance_threshold_meters / 1000
        time_trigger = remaining_min <= thresholds.time_threshold_seconds / 60

        if not (dist_trigger or time_trigger):
            return NO_TRIGGER

        reason = TriggerReason.DISTANCE if dist_trigger else TriggerReason.TIME
        final = remaining_km < self._final_km or remaining_min < self._final_min
        if final and not is_first_check:
            return TriggerResult(kind=TriggerKind.FINAL_APPROACH, reason=reason)
        return TriggerResult(kind=TriggerKind.PRE_ALERT, reason=reason)
