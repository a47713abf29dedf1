"""Core utilities shared by the tracking components."""

from .exceptions import (
    AlarmPresentationFailure,
    ConfigurationError,
    GeoReminderError,
    LocationUnavailable,
    NetworkError,
    PermanentError,
    RouteUnavailable,
    ServiceUnavailableError,
    StateError,
    TransientError,
    ValidationError,
)
from .retry import RetryConfig, with_retry, with_retry_sync

__all__ = [
    "GeoReminderError",
    "TransientError",
    "NetworkError",
    "ServiceUnavailableError",
    "LocationUnavailable",
    "RouteUnavailable",
    "PermanentError",
    "ValidationError",
    "StateError",
    "ConfigurationError",
    "AlarmPresentationFailure",
    "RetryConfig",
    "with_retry",
    "with_retry_sync",
]
