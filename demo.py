"""
Live Tracking Demonstration

This script runs a live tracking session in the console:
- Element-set retrieval from N2YO (bundled fallback sets without an API key)
- Position updates every second
- Past/future ground tracks refreshed every 30 seconds

Usage:
    python demo.py [--satellites 25544 20580] [--seconds 10] [--verbose] [--json-logs]

Arguments:
    --satellites: NORAD catalog ids to track (default: ISS)
    --seconds: How long to run before stopping
    --verbose: Enable debug logging
    --json-logs: Render structured log events as JSON
"""

import argparse
import asyncio
import logging

from config import POPULAR_SATELLITES, TrackerConfig
from logging_config import configure_logging, get_logger
from orbit_tracker.models import PositionFix, TrajectorySegment
from orbit_tracker.n2yo_client import N2YOClient
from orbit_tracker.tracking import LiveTrackingSession, TrackingObserver

logger = get_logger(__name__)


class ConsoleObserver(TrackingObserver):
    """Print what a map would draw."""

    def __init__(self, names):
        self.names = names

    def on_position(self, fix: PositionFix) -> None:
        point = fix.point
        logger.info(
            f"{self.names.get(fix.catalog_id, fix.catalog_id):<24} "
            f"lat={point.latitude_deg:9.4f} lon={point.longitude_deg:9.4f} "
            f"alt={point.altitude_km:8.2f}km v={fix.speed_kms:6.3f}km/s"
        )

    def on_trajectory(self, catalog_id: int, past: TrajectorySegment,
                      future: TrajectorySegment) -> None:
        logger.info(
            f"Trajectory {catalog_id}: {len(past)} past / {len(future)} future points, "
            f"{len(future.polylines())} future polyline(s)"
        )

    def on_failure(self, catalog_id, error) -> None:
        logger.error(f"Tracking stopped for {catalog_id}: {error}")

    def on_advisory(self, message: str) -> None:
        logger.warning(f"Advisory: {message}")


def main() -> None:
    """Main demonstration entry point."""
    parser = argparse.ArgumentParser(description="Live Satellite Tracking Demonstration")
    parser.add_argument(
        "--satellites", type=int, nargs="+", default=[25544], help="NORAD catalog ids to track"
    )
    parser.add_argument("--seconds", type=float, default=10.0, help="Run time in seconds")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--json-logs", action="store_true", help="Render log events as JSON")

    args = parser.parse_args()

    config = TrackerConfig.from_env()
    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level, logging.INFO)
    configure_logging(level=level, json_logs=args.json_logs)

    client = N2YOClient(config)
    if not client.is_configured():
        logger.warning("N2YO_API_KEY not set; bundled element sets will be used")

    names = {cid: POPULAR_SATELLITES.get(cid, str(cid)) for cid in args.satellites}
    session = LiveTrackingSession(client=client, observer=ConsoleObserver(names), config=config)
    for catalog_id in args.satellites:
        session.select(catalog_id)

    logger.info("Live Tracking Demonstration")
    logger.info("=" * 60)

    asyncio.run(session.run(duration=args.seconds))

    for row in session.snapshot():
        logger.info(f"Final state: {row}")

    logger.info("=" * 60)
    logger.info("Demonstration complete")


if __name__ == "__main__":
    main()
