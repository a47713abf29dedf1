import asyncio
import io
import logging

from geo_reminder.presentation import ConsoleAlarmPresenter, LoggingNotifier


async def test_alarm_rings_until_stopped():
    stream = io.StringIO()
    presenter = ConsoleAlarmPresenter(ring_interval_seconds=0.01, stream=stream)

    await presenter.start(sound_enabled=True, vibration_enabled=False)
    await asyncio.sleep(0.035)
    await presenter.stop()
    rings = stream.getvalue().count("\a")
    await asyncio.sleep(0.03)

    assert "ALARM" in stream.getvalue()
    assert rings >= 2
    assert stream.getvalue().count("\a") == rings
    assert not presenter.is_active


async def test_start_and_stop_are_idempotent():
    stream = io.StringIO()
    presenter = ConsoleAlarmPresenter(stream=stream)

    await presenter.start(sound_enabled=False, vibration_enabled=True)
    await presenter.start(sound_enabled=False, vibration_enabled=True)
    await presenter.stop()
    await presenter.stop()

    assert stream.getvalue().count("ALARM") == 1
    assert "\a" not in stream.getvalue()


async def test_notifier_logs(caplog):
    with caplog.at_level(logging.INFO, logger="geo_reminder.presentation"):
        await LoggingNotifier().notify("Arriving Soon! (Time)", "5 min left", use_alert_sound=True)

    assert "Arriving Soon! (Time): 5 min left" in caplog.text


async def test_custom_sound_rings_by_name(tmp_path):
    sound = tmp_path / "rooster.wav"
    sound.write_bytes(b"RIFF")
    stream = io.StringIO()
    presenter = ConsoleAlarmPresenter(ring_interval_seconds=0.01, stream=stream)

    await presenter.start(True, True, sound_uri=f"file://{sound}")
    await asyncio.sleep(0.015)
    await presenter.stop()

    assert "[rooster.wav]" in stream.getvalue()
    assert "\a" not in stream.getvalue()


async def test_missing_custom_sound_falls_back_to_bell(tmp_path, caplog):
    stream = io.StringIO()
    presenter = ConsoleAlarmPresenter(ring_interval_seconds=0.01, stream=stream)

    await presenter.start(True, True, sound_uri=str(tmp_path / "gone.wav"))
    await asyncio.sleep(0.015)
    await presenter.stop()

    assert "\a" in stream.getvalue()
    assert "unavailable, using the default" in caplog.text
