"""
Geo Reminder - command line entry point

Runs a tracking session against a simulated GPS trip so the whole
estimate / classify / alarm cycle can be watched from a terminal:

    geo-reminder --from -23.5505,-46.6333 --to -23.6205,-46.6995 \
        --distance-km 2 --time-min 5 --time-scale 60 --yes
"""

import argparse
import asyncio
import logging
import sys

from geo_reminder.core.exceptions import (
    ConfigurationError,
    GeoReminderError,
    LocationUnavailable,
)
from geo_reminder.core.retry import RetryConfig, with_retry
from geo_reminder.geo.geocoding import GeocodingClient
from geo_reminder.geo.gps_simulation import GPSSimulator, SimulatedLocationSource
from geo_reminder.geo.osrm_client import OSRMClient
from geo_reminder.models import Coordinate, ThresholdConfig, TravelMode
from geo_reminder.presentation import ConsoleAlarmPresenter, LoggingNotifier
from geo_reminder.reminder_logging import setup_logging
from geo_reminder.settings import Settings, get_settings
from geo_reminder.storage import JsonSettingsStore
from geo_reminder.tracking import SessionState, StartOutcome, TrackingSession

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geo-reminder",
        description="Get woken up before you arrive (simulated trip).",
    )
    parser.add_argument("--from", dest="origin", required=True, help="Start as 'lat,lon'")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--to", dest="destination", help="Destination as 'lat,lon'")
    target.add_argument("--search", help="Destination search query")
    parser.add_argument("--distance-km", type=float, help="Distance threshold (km)")
    parser.add_argument("--time-min", type=float, help="Time threshold (minutes)")
    parser.add_argument("--mode", choices=[m.value for m in TravelMode])
    parser.add_argument("--speed-kmh", type=float, default=50.0, help="Simulated speed")
    parser.add_argument("--interval", type=float, default=5.0, help="Seconds between fixes")
    parser.add_argument(
        "--time-scale", type=float, default=1.0, help="Simulated seconds per real second"
    )
    parser.add_argument("--noise", type=float, default=10.0, help="GPS noise (m)")
    parser.add_argument("--dropout", type=float, default=0.05, help="GPS dropout probability")
    parser.add_argument(
        "--snooze", type=float, default=0.0, help="Snooze the first alarm for N minutes"
    )
    parser.add_argument("--no-sound", action="store_true")
    parser.add_argument("--no-vibration", action="store_true")
    parser.add_argument("--sound", help="Custom alarm sound file (falls back to the bell)")
    parser.add_argument("--yes", action="store_true", help="Start even if already in range")
    parser.add_argument("--settings-path", help="Override the settings file location")
    return parser


def resolve_destination(
    args: argparse.Namespace,
    settings: Settings,
    store: JsonSettingsStore,
    origin: Coordinate,
) -> tuple[Coordinate, str] | None:
    if args.destination:
        return Coordinate.parse(args.destination), args.destination

    if args.search:
        geocoder = GeocodingClient(
            settings.geocoding.search_url,
            settings.geocoding.reverse_url,
            user_agent=settings.geocoding.user_agent,
            timeout=settings.geocoding.timeout,
        )
        results = geocoder.search(args.search, near=origin)
        if not results:
            return None
        store.record_search(results[0])
        return results[0].coordinate, results[0].display_name

    saved = store.load()
    if saved and saved.destination:
        return saved.destination, saved.destination_name
    return None


async def simulation_path(
    osrm: OSRMClient, origin: Coordinate, destination: Coordinate, mode: TravelMode
) -> list[Coordinate]:
    """Road geometry to drive along, or the straight line when unavailable."""
    if mode == TravelMode.ROAD:
        try:
            estimate = await osrm.route(origin, destination)
            if estimate.geometry and len(estimate.geometry) >= 2:
                return estimate.geometry
        except GeoReminderError as e:
            logger.warning(f"No road geometry for the simulation, driving straight: {e}")
    return [origin, destination]


async def run(args: argparse.Namespace, settings: Settings) -> int:
    store = JsonSettingsStore(args.settings_path or settings.storage.settings_path)
    saved = store.load()

    origin = Coordinate.parse(args.origin)
    resolved = resolve_destination(args, settings, store, origin)
    if resolved is None:
        print("No destination: use --to, --search or a saved destination", file=sys.stderr)
        return 2
    destination, destination_name = resolved

    mode = TravelMode(args.mode or (saved.mode if saved else TravelMode.ROAD))
    defaults = saved.thresholds if saved else ThresholdConfig.from_user_units(10.0, 30.0)
    thresholds = ThresholdConfig.from_user_units(
        args.distance_km if args.distance_km is not None else defaults.distance_threshold_meters / 1000,
        args.time_min if args.time_min is not None else defaults.time_threshold_seconds / 60,
    )

    osrm = OSRMClient(
        settings.osrm.base_url,
        timeout=settings.tracking.routing_timeout_seconds,
        profile=settings.osrm.profile,
        retry_config=RetryConfig.from_retries(
            settings.osrm.max_retries, settings.osrm.retry_base_delay
        ),
    )
    source = SimulatedLocationSource(
        await simulation_path(osrm, origin, destination, mode),
        speed_mps=args.speed_kmh / 3.6,
        sample_interval_seconds=args.interval,
        time_scale=args.time_scale,
        simulator=GPSSimulator(noise_meters=args.noise, dropout_probability=args.dropout),
    )

    async with TrackingSession(
        location_source=source,
        routing_provider=osrm,
        alarm_presenter=ConsoleAlarmPresenter(),
        notifier=LoggingNotifier(),
        settings_store=store,
        settings=settings.tracking,
        clock=source.clock,
    ) as session:
        result = await with_retry(
            lambda: session.start(
                destination,
                thresholds,
                mode,
                destination_name=destination_name,
                sound_enabled=not args.no_sound,
                vibration_enabled=not args.no_vibration,
                custom_sound_uri=args.sound or (saved.custom_sound_uri if saved else None),
            ),
            RetryConfig(max_attempts=5, base_delay=0.2, retryable_exceptions=(LocationUnavailable,)),
            operation_name="first position fix",
        )

        if result.outcome == StartOutcome.CONFIRMATION_REQUIRED:
            print(result.message)
            if not args.yes and input("Start anyway? [y/N] ").strip().lower() != "y":
                session.cancel_start()
                return 1
            result = await session.confirm_start()

        print(f"Tracking {destination_name}: {result.message}")
        snoozes_left = 1 if args.snooze > 0 else 0
        last_message = ""

        while session.state in (SessionState.TRACKING, SessionState.ALARM_ACTIVE):
            await asyncio.sleep(0.1)
            status = session.status
            line = f"{status.status_message}  ({status.progress:.0%} trip complete)"
            if line != last_message:
                print(line)
                last_message = line

            if session.state == SessionState.ALARM_ACTIVE:
                if snoozes_left:
                    snoozes_left -= 1
                    await session.snooze(args.snooze)
                else:
                    await asyncio.sleep(2.0)
                    await session.acknowledge_alarm()
            elif source.arrived:
                if session.has_triggered_alarm:
                    print("Reached the end of the simulated path after a snoozed alarm")
                else:
                    print("Reached the end of the simulated path without an alarm")
                break

    return 0


def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()
    try:
        settings = get_settings()
    except ConfigurationError as e:
        # Logging is configured from these settings, so report on stderr
        print(e.message, file=sys.stderr)
        sys.exit(2)

    setup_logging(
        level=settings.logging.level,
        json_output=settings.logging.format == "json",
        environment=settings.logging.environment,
    )

    try:
        exit_code = asyncio.run(run(args, settings))
    except GeoReminderError as e:
        logger.error(e.message)
        exit_code = 1
    except KeyboardInterrupt:
        exit_code = 130
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
