"""Alarm and notification arbitration.

Decides whether a classification turns into a command for the
presentation layer. Never fails: it only returns commands, and their
execution is the session's concern.
"""

import logging
from enum import Enum

from geo_reminder.models import Notify, StartAlarm, StopAlarm

logger = logging.getLogger(__name__)


class AlarmState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    SNOOZED = "snoozed"


class AlarmArbiter:
    """Alarm state plus the one-shot trigger guard of a tracking session."""

    def __init__(self, notification_interval_seconds: float = 300.0):
        self._notification_interval_ms = notification_interval_seconds * 1000
        self._state = AlarmState.IDLE
        self._snooze_until: float | None = None
        self.has_triggered_alarm = False

    @property
    def state(self) -> AlarmState:
        return self._state

    @property
    def snooze_until(self) -> float | None:
        return self._snooze_until

    def is_snoozed(self, now: float) -> bool:
        return self._snooze_until is not None and now < self._snooze_until

    def refresh(self, now: float) -> None:
        """Leave an elapsed snooze window.

        The trigger guard stays set: only ``reset()`` (stop or acknowledge)
        allows another ``StartAlarm``.
        """
        if self._state == AlarmState.SNOOZED and not self.is_snoozed(now):
            logger.info("Snooze window elapsed, evaluation resumes")
            self._state = AlarmState.IDLE
            self._snooze_until = None

    def on_final_approach(
        self,
        sound_enabled: bool = True,
        vibration_enabled: bool = True,
        sound_uri: str | None = None,
    ) -> StartAlarm | None:
        if self._state != AlarmState.IDLE or self.has_triggered_alarm:
            return None
        self._state = AlarmState.ACTIVE
        self.has_triggered_alarm = True
        return StartAlarm(
            sound_enabled=sound_enabled,
            vibration_enabled=vibration_enabled,
            sound_uri=sound_uri,
        )

    def on_pre_alert(
        self,
        title: str,
        body: str,
        now: float,
        last_notified_at: float | None,
        use_alert_sound: bool = True,
    ) -> Notify | None:
        """Notify unless the previous notification is too recent."""
        if last_notified_at is not None and now - last_notified_at <= self._notification_interval_ms:
            return None
        return Notify(title=title, body=body, use_alert_sound=use_alert_sound)

    def acknowledge(self) -> StopAlarm:
        self._state = AlarmState.IDLE
        self._snooze_until = None
        return StopAlarm()

    def snooze(self, minutes: float, now: float) -> StopAlarm:
        self._state = AlarmState.SNOOZED
        self._snooze_until = now + minutes * 60_000
        return StopAlarm()

    def reset(self) -> None:
        self._state = AlarmState.IDLE
        self._snooze_until = None
        self.has_triggered_alarm = False
