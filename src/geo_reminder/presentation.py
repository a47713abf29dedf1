"""Console stand-ins for the alarm and notification presentation layer."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import TextIO

logger = logging.getLogger(__name__)

DEFAULT_CHIME = "\a"


def resolve_chime(sound_uri: str | None) -> str:
    """What one ring writes: the custom sound's name, or the terminal bell.

    A custom sound that is not a readable local file falls back to the bell.
    """
    if not sound_uri:
        return DEFAULT_CHIME
    path = Path(sound_uri.removeprefix("file://"))
    if not path.is_file():
        logger.warning(f"Custom sound {sound_uri} unavailable, using the default")
        return DEFAULT_CHIME
    return f"[{path.name}]"


class ConsoleAlarmPresenter:
    """Rings the terminal until stopped. ``start`` and ``stop`` are idempotent."""

    def __init__(self, ring_interval_seconds: float = 1.0, stream: TextIO | None = None):
        self._ring_interval = ring_interval_seconds
        self._stream = stream or sys.stdout
        self._active = False
        self._ringer: asyncio.Task[None] | None = None

    @property
    def is_active(self) -> bool:
        return self._active

    async def start(
        self, sound_enabled: bool, vibration_enabled: bool, sound_uri: str | None = None
    ) -> None:
        if self._active:
            return
        self._active = True
        logger.info(f"ALARM (sound={sound_enabled}, vibration={vibration_enabled})")
        self._stream.write("\n*** ALARM: you are arriving ***\n")
        self._stream.flush()
        if sound_enabled:
            chime = resolve_chime(sound_uri)
            self._ringer = asyncio.create_task(self._ring(chime), name="console-alarm")

    async def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._ringer is not None:
            self._ringer.cancel()
            self._ringer = None
        logger.info("Alarm stopped")

    async def _ring(self, chime: str) -> None:
        while True:
            self._stream.write(chime)
            self._stream.flush()
            await asyncio.sleep(self._ring_interval)


class LoggingNotifier:
    """Writes notifications to the log instead of a notification centre."""

    async def notify(self, title: str, body: str, use_alert_sound: bool) -> None:
        logger.info(f"NOTIFY {title}: {body}")
