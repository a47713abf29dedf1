"""Tracking session lifecycle and per-sample proximity evaluation."""

import asyncio
import logging
import time
from enum import Enum
from typing import Any
from uuid import uuid4

import pydantic
from pydantic import BaseModel

from geo_reminder.core.exceptions import (
    AlarmPresentationFailure,
    LocationUnavailable,
    StateError,
    ValidationError,
)
from geo_reminder.interfaces import (
    AlarmPresenter,
    Clock,
    LocationSource,
    Notifier,
    RoutingProvider,
    SettingsStore,
    SubscriptionHandle,
)
from geo_reminder.models import (
    Coordinate,
    Notify,
    RouteEstimate,
    SessionConfig,
    StartAlarm,
    StopAlarm,
    ThresholdConfig,
    TravelMode,
)
from geo_reminder.reminder_logging import log_session_context
from geo_reminder.settings import TrackingSettings
from geo_reminder.tracking.alarm_arbiter import AlarmArbiter, AlarmState
from geo_reminder.tracking.route_estimator import EstimateContext, RouteEstimator
from geo_reminder.tracking.trigger import (
    TriggerEvaluator,
    TriggerKind,
    TriggerReason,
    TriggerResult,
)

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Tracking session lifecycle states."""

    IDLE = "idle"
    STARTING = "starting"
    TRACKING = "tracking"
    ALARM_ACTIVE = "alarm_active"
    STOPPED = "stopped"


VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.IDLE: {SessionState.STARTING, SessionState.STOPPED},
    SessionState.STARTING: {SessionState.IDLE, SessionState.TRACKING, SessionState.STOPPED},
    SessionState.TRACKING: {SessionState.ALARM_ACTIVE, SessionState.STOPPED},
    SessionState.ALARM_ACTIVE: {SessionState.TRACKING, SessionState.STOPPED},
    SessionState.STOPPED: set(),
}

# Location samples are only evaluated in these states
_LIVE_STATES = {SessionState.TRACKING, SessionState.ALARM_ACTIVE}


class StartOutcome(str, Enum):
    STARTED = "started"
    CONFIRMATION_REQUIRED = "confirmation_required"
    CANCELLED = "cancelled"


class StartResult(BaseModel):
    outcome: StartOutcome
    message: str = ""
    estimate: RouteEstimate | None = None


class SessionStatus(BaseModel):
    """Snapshot of what a display would show."""

    session_id: str
    state: SessionState
    destination: Coordinate | None
    destination_name: str
    mode: TravelMode
    remaining_distance_meters: float | None
    remaining_duration_seconds: float | None
    progress: float
    status_message: str
    alarm_state: AlarmState
    snooze_until: float | None
    estimate_source: str | None


def _epoch_millis() -> float:
    return time.time() * 1000


def compute_progress(initial_distance: float | None, remaining_distance: float | None) -> float:
    """Fraction of the initial distance already covered, clamped to [0, 1]."""
    if initial_distance is None or remaining_distance is None:
        return 0.0
    if initial_distance == 0:
        return 1.0
    fraction = (initial_distance - remaining_distance) / initial_distance
    return min(1.0, max(0.0, fraction))


class TrackingSession:
    """One trip towards one destination.

    ``start`` fetches a first fix and estimate; if the traveller is already
    within range the caller has to ``confirm_start``. While tracking, each
    sample passed to ``on_location`` is estimated, classified and
    arbitrated. ``stop`` and ``acknowledge_alarm`` end the session for good;
    a new trip needs a new instance.

    Use as ``async with TrackingSession(...) as session`` to guarantee the
    location subscription and alarm are released.
    """

    def __init__(
        self,
        location_source: LocationSource,
        routing_provider: RoutingProvider,
        alarm_presenter: AlarmPresenter,
        notifier: Notifier,
        settings_store: SettingsStore | None = None,
        settings: TrackingSettings | None = None,
        clock: Clock | None = None,
        session_id: str | None = None,
    ):
        self._location_source = location_source
        self._alarm_presenter = alarm_presenter
        self._notifier = notifier
        self._settings_store = settings_store
        self._settings = settings or TrackingSettings()
        self._clock = clock or _epoch_millis
        self.session_id = session_id or str(uuid4())

        self._estimator = RouteEstimator(routing_provider, self._settings)
        self._evaluator = TriggerEvaluator(self._settings)
        self._arbiter = AlarmArbiter(self._settings.notification_interval_seconds)

        self._state = SessionState.IDLE
        self._lock = asyncio.Lock()
        # Bumped on stop so in-flight provider results can be discarded
        self._generation = 0
        self._subscription: SubscriptionHandle | None = None

        self._destination: Coordinate | None = None
        self._destination_name = ""
        self._thresholds: ThresholdConfig | None = None
        self._mode = TravelMode.ROAD
        self._sound_enabled = True
        self._vibration_enabled = True
        self._custom_sound_uri: str | None = None

        self._context = EstimateContext(now=0.0)
        self._initial_distance: float | None = None
        self._last_estimate: RouteEstimate | None = None
        self._last_notified_at: float | None = None
        self._pending_start: tuple[Coordinate, RouteEstimate | None] | None = None
        self._status_message = "Ready to start"

    async def __aenter__(self) -> "TrackingSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def initial_distance(self) -> float | None:
        return self._initial_distance

    @property
    def last_estimate(self) -> RouteEstimate | None:
        return self._last_estimate

    @property
    def has_triggered_alarm(self) -> bool:
        return self._arbiter.has_triggered_alarm

    @property
    def snooze_until(self) -> float | None:
        return self._arbiter.snooze_until

    @property
    def last_provider_call_at(self) -> float | None:
        return self._context.last_provider_call_at

    @property
    def progress(self) -> float:
        remaining = self._last_estimate.distance_meters if self._last_estimate else None
        return compute_progress(self._initial_distance, remaining)

    @property
    def status(self) -> SessionStatus:
        estimate = self._last_estimate
        return SessionStatus(
            session_id=self.session_id,
            state=self._state,
            destination=self._destination,
            destination_name=self._destination_name,
            mode=self._mode,
            remaining_distance_meters=estimate.distance_meters if estimate else None,
            remaining_duration_seconds=estimate.duration_seconds if estimate else None,
            progress=self.progress,
            status_message=self._status_message,
            alarm_state=self._arbiter.state,
            snooze_until=self._arbiter.snooze_until,
            estimate_source=estimate.source if estimate else None,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(
        self,
        destination: Coordinate | None,
        thresholds: ThresholdConfig | dict[str, float] | None,
        mode: TravelMode = TravelMode.ROAD,
        *,
        destination_name: str = "",
        sound_enabled: bool = True,
        vibration_enabled: bool = True,
        custom_sound_uri: str | None = None,
    ) -> StartResult:
        """Begin a trip, or ask for confirmation if already within range.

        Raises:
            ValidationError: no destination, or a threshold <= 0.
            StateError: the session has already been started.
            LocationUnavailable: no first fix; the session stays idle.
        """
        if self._state != SessionState.IDLE:
            raise StateError(f"Cannot start a session in state {self._state.value}")
        if destination is None:
            raise ValidationError("Please select a destination")
        thresholds = self._validate_thresholds(thresholds)

        self._destination = destination
        self._destination_name = destination_name
        self._thresholds = thresholds
        self._mode = TravelMode(mode)
        self._sound_enabled = sound_enabled
        self._vibration_enabled = vibration_enabled
        self._custom_sound_uri = custom_sound_uri
        self._context = EstimateContext(now=self._clock())
        self._initial_distance = None
        self._last_estimate = None
        self._last_notified_at = None
        self._arbiter.reset()

        with log_session_context(self.session_id):
            self._transition_to(SessionState.STARTING)
            generation = self._generation

            try:
                position = await self._location_source.get_current_position()
            except Exception as e:
                if self._state == SessionState.STARTING:
                    self._transition_to(SessionState.IDLE)
                logger.warning(f"Start aborted, no position fix: {e}")
                raise LocationUnavailable(
                    "Could not get current location. Ensure GPS is on."
                ) from e

            self._context.now = self._clock()
            estimate = await self._estimator.get_estimate(
                position, destination, self._mode, self._context
            )
            if generation != self._generation or self._state != SessionState.STARTING:
                logger.info("Session stopped while starting, discarding first estimate")
                return StartResult(outcome=StartOutcome.CANCELLED, estimate=estimate)

            if estimate is not None:
                trigger = self._evaluator.classify(estimate, thresholds, is_first_check=True)
                if trigger.triggered:
                    self._pending_start = (position, estimate)
                    message = self._within_range_message(estimate, thresholds, trigger)
                    logger.info(f"Already within range, confirmation required: {message}")
                    return StartResult(
                        outcome=StartOutcome.CONFIRMATION_REQUIRED,
                        message=message,
                        estimate=estimate,
                    )

            await self._begin_tracking(position, estimate)
            return StartResult(
                outcome=StartOutcome.STARTED, message=self._status_message, estimate=estimate
            )

    async def start_from_config(self, config: SessionConfig) -> StartResult:
        """Start with a persisted configuration."""
        return await self.start(
            config.destination,
            config.thresholds,
            config.mode,
            destination_name=config.destination_name,
            sound_enabled=config.sound_enabled,
            vibration_enabled=config.vibration_enabled,
            custom_sound_uri=config.custom_sound_uri,
        )

    async def confirm_start(self) -> StartResult:
        """Start tracking despite already being within range."""
        if self._state != SessionState.STARTING or self._pending_start is None:
            raise StateError("No start is awaiting confirmation")
        position, estimate = self._pending_start
        self._pending_start = None
        with log_session_context(self.session_id):
            await self._begin_tracking(position, estimate)
        return StartResult(
            outcome=StartOutcome.STARTED, message=self._status_message, estimate=estimate
        )

    def cancel_start(self) -> None:
        """Decline a start awaiting confirmation; the session returns to idle."""
        if self._state != SessionState.STARTING or self._pending_start is None:
            raise StateError("No start is awaiting confirmation")
        self._pending_start = None
        self._transition_to(SessionState.IDLE)
        self._status_message = "Ready to start"

    async def stop(self) -> None:
        """End the session, release the subscription and silence any alarm."""
        if self._state == SessionState.STOPPED:
            return
        with log_session_context(self.session_id):
            self._generation += 1
            self._cancel_subscription()
            alarm_was_started = self._arbiter.has_triggered_alarm
            self._arbiter.reset()
            self._pending_start = None
            self._transition_to(SessionState.STOPPED)
            self._status_message = "Tracking stopped"
            if alarm_was_started:
                await self._dispatch(StopAlarm())
            logger.info("Tracking stopped")

    async def acknowledge_alarm(self) -> None:
        """The traveller stopped the alarm: the trip is over."""
        if self._state != SessionState.ALARM_ACTIVE:
            raise StateError(f"No active alarm to acknowledge in state {self._state.value}")
        with log_session_context(self.session_id):
            command = self._arbiter.acknowledge()
            self._generation += 1
            self._cancel_subscription()
            self._arbiter.reset()
            self._transition_to(SessionState.STOPPED)
            self._status_message = "Arrived"
            await self._dispatch(command)
            self._destination = None
            self._destination_name = ""
            self._save_config()
            logger.info("Alarm acknowledged, trip finished")

    async def snooze(self, minutes: float, now: float | None = None) -> None:
        """Mute the alarm and suspend evaluation for ``minutes``."""
        if self._state != SessionState.ALARM_ACTIVE:
            raise StateError(f"No active alarm to snooze in state {self._state.value}")
        if minutes <= 0:
            raise ValidationError("Snooze duration must be positive")
        now = self._clock() if now is None else now
        with log_session_context(self.session_id):
            command = self._arbiter.snooze(minutes, now)
            self._transition_to(SessionState.TRACKING)
            self._status_message = f"Snoozed for {minutes:g} min"
            logger.info(f"Alarm snoozed until {self._arbiter.snooze_until:.0f}")
            await self._dispatch(command)

    # ------------------------------------------------------------------
    # Location samples
    # ------------------------------------------------------------------

    async def on_location(
        self, coordinate: Coordinate, timestamp_ms: float | None = None
    ) -> SessionStatus:
        """Evaluate one location sample.

        Samples are processed one at a time; overlapping calls wait for the
        previous one to finish. Samples outside tracking are ignored.
        """
        async with self._lock:
            if self._state in _LIVE_STATES:
                now = self._clock() if timestamp_ms is None else timestamp_ms
                with log_session_context(self.session_id):
                    await self._process_sample(coordinate, now)
        return self.status

    async def _process_sample(self, coordinate: Coordinate, now: float) -> None:
        if self._destination is None or self._thresholds is None:
            raise StateError("Tracking without a destination or thresholds")

        self._arbiter.refresh(now)
        if self._arbiter.is_snoozed(now):
            logger.debug("Sample skipped, snoozed")
            return

        generation = self._generation
        self._context.now = now
        self._context.prior_estimate = self._last_estimate
        estimate = await self._estimator.get_estimate(
            coordinate, self._destination, self._mode, self._context
        )
        if generation != self._generation or self._state not in _LIVE_STATES:
            logger.info("Session left tracking during estimation, result discarded")
            return
        if estimate is None:
            # Keep showing the last known remaining distance
            return

        self._last_estimate = estimate
        if self._initial_distance is None:
            self._initial_distance = estimate.distance_meters
        self._status_message = (
            f"{estimate.distance_km:.1f} km  •  {estimate.duration_minutes:.0f} min"
        )

        trigger = self._evaluator.classify(estimate, self._thresholds)
        if trigger.kind == TriggerKind.FINAL_APPROACH:
            await self._handle_final_approach()
        elif trigger.kind == TriggerKind.PRE_ALERT:
            await self._handle_pre_alert(estimate, trigger, now)

    async def _handle_final_approach(self) -> None:
        command = self._arbiter.on_final_approach(
            self._sound_enabled, self._vibration_enabled, self._custom_sound_uri
        )
        if command is None:
            return
        self._transition_to(SessionState.ALARM_ACTIVE)
        self._status_message = f"Arrived at {self._destination_name or 'destination'}"
        logger.info("Final approach, starting alarm")
        await self._dispatch(command)

    async def _handle_pre_alert(
        self, estimate: RouteEstimate, trigger: TriggerResult, now: float
    ) -> None:
        reason = trigger.reason or TriggerReason.DISTANCE
        command = self._arbiter.on_pre_alert(
            title=f"Arriving Soon! ({reason.value.title()})",
            body=(
                f"You are {estimate.distance_km:.1f}km and {estimate.duration_minutes:.0f}min "
                f"away from {self._destination_name or 'your destination'}"
            ),
            now=now,
            last_notified_at=self._last_notified_at,
            use_alert_sound=self._sound_enabled,
        )
        if command is None:
            return
        self._last_notified_at = now
        await self._dispatch(command)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _begin_tracking(self, position: Coordinate, estimate: RouteEstimate | None) -> None:
        self._transition_to(SessionState.TRACKING)
        self._status_message = "Tracking active..."
        if estimate is not None:
            self._initial_distance = estimate.distance_meters
            self._last_estimate = estimate
        self._save_config()
        logger.info(
            f"Tracking started towards {self._destination_name or 'destination'} "
            f"({self._mode.value}), initial distance {self._initial_distance}"
        )

        # A failed start estimate is retried by the first watched sample
        if estimate is not None:
            async with self._lock:
                await self._process_sample(position, self._clock())

        if self._state in _LIVE_STATES:
            self._subscription = self._location_source.watch(self.on_location)

    def _transition_to(self, new_state: SessionState) -> None:
        if new_state not in VALID_TRANSITIONS[self._state]:
            raise StateError(
                f"Invalid transition from {self._state.value} to {new_state.value}"
            )
        logger.debug(f"Session {self._state.value} -> {new_state.value}")
        self._state = new_state

    def _cancel_subscription(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    async def _dispatch(self, command: StartAlarm | StopAlarm | Notify) -> None:
        """Hand a command to the presentation layer. Failures are logged only."""
        timeout = self._settings.alarm_command_timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                if isinstance(command, StartAlarm):
                    await self._alarm_presenter.start(
                        command.sound_enabled, command.vibration_enabled, command.sound_uri
                    )
                elif isinstance(command, StopAlarm):
                    await self._alarm_presenter.stop()
                else:
                    await self._notifier.notify(
                        command.title, command.body, command.use_alert_sound
                    )
        except Exception as e:
            if isinstance(command, Notify):
                logger.warning(f"Notification failed: {e!r}")
                return
            failure = AlarmPresentationFailure(
                f"Alarm {command.kind} failed: {e!r}", details={"command": command.kind}
            )
            # The alarm stays logically active so it does not re-fire
            logger.error(failure.message)

    def _save_config(self) -> None:
        if self._settings_store is None or self._thresholds is None:
            return
        try:
            previous = self._settings_store.load() or SessionConfig()
            self._settings_store.save(
                previous.model_copy(
                    update={
                        "destination": self._destination,
                        "destination_name": self._destination_name,
                        "thresholds": self._thresholds,
                        "mode": self._mode,
                        "sound_enabled": self._sound_enabled,
                        "vibration_enabled": self._vibration_enabled,
                        "custom_sound_uri": self._custom_sound_uri,
                    }
                )
            )
        except Exception as e:
            logger.warning(f"Failed to save settings: {e}")

    @staticmethod
    def _validate_thresholds(
        thresholds: ThresholdConfig | dict[str, float] | None,
    ) -> ThresholdConfig:
        if thresholds is None:
            raise ValidationError("Thresholds are required")
        try:
            config = ThresholdConfig.model_validate(thresholds)
        except pydantic.ValidationError as e:
            raise ValidationError(
                "Thresholds must be positive", details={"errors": e.errors()}
            ) from e
        if config.distance_threshold_meters <= 0 or config.time_threshold_seconds <= 0:
            raise ValidationError("Thresholds must be positive")
        return config

    @staticmethod
    def _within_range_message(
        estimate: RouteEstimate, thresholds: ThresholdConfig, trigger: TriggerResult
    ) -> str:
        if trigger.reason == TriggerReason.DISTANCE:
            threshold_km = thresholds.distance_threshold_meters / 1000
            return (
                f"You are {estimate.distance_km:.2f}km away, "
                f"closer than your {threshold_km:g}km threshold."
            )
        threshold_min = thresholds.time_threshold_seconds / 60
        return (
            f"You are {estimate.duration_minutes:.0f} mins away, "
            f"less than your {threshold_min:g} min threshold."
        )
