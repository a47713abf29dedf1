from .alarm_arbiter import AlarmArbiter, AlarmState
from .route_estimator import EstimateContext, RouteEstimator
from .session import (
    SessionState,
    SessionStatus,
    StartOutcome,
    StartResult,
    TrackingSession,
    compute_progress,
)
from .trigger import TriggerEvaluator, TriggerKind, TriggerReason, TriggerResult

__all__ = [
    "AlarmArbiter",
    "AlarmState",
    "EstimateContext",
    "RouteEstimator",
    "SessionState",
    "SessionStatus",
    "StartOutcome",
    "StartResult",
    "TrackingSession",
    "compute_progress",
    "TriggerEvaluator",
    "TriggerKind",
    "TriggerReason",
    "TriggerResult",
]
