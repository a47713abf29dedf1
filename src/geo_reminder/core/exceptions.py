"""Exception hierarchy for proximity tracking."""

from typing import Any


class GeoReminderError(Exception):
    """Base exception for all geo reminder errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientError(GeoReminderError):
    """Errors that may succeed on retry."""

    pass


class NetworkError(TransientError):
    """Network-related transient errors (timeout, connection refused)."""

    pass


class ServiceUnavailableError(TransientError):
    """External service temporarily unavailable (5xx responses)."""

    pass


class LocationUnavailable(TransientError):
    """A position fix could not be obtained. The caller may retry."""

    pass


class RouteUnavailable(TransientError):
    """The routing provider failed or returned no route for this sample."""

    pass


class PermanentError(GeoReminderError):
    """Errors that will not succeed on retry."""

    pass


class ValidationError(PermanentError):
    """Invalid input, such as a missing destination or non-positive threshold."""

    pass


class StateError(PermanentError):
    """Invalid session state transition."""

    pass


class ConfigurationError(PermanentError):
    """Missing or invalid configuration."""

    pass


class AlarmPresentationFailure(GeoReminderError):
    """Sound or vibration device error. Logged, never raised to the caller."""

    pass
