"""
Periodic recent-window ingest.

Runs the "last N minutes" fetch on a fixed interval. A failed run is logged
and the next run still happens on schedule.
"""
import argparse
import sys
import time
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import schedule
from loguru import logger

from .backfill import backfill
from .config import DEFAULT_CHUNK_HOURS, IngestConfig
from .errors import ConfigError, WaterHeroIngestError
from .logging_config import setup_logging
from .models import TimeRange


def run_recent_window(config: IngestConfig, window: timedelta) -> Optional[int]:
    """Ingest [now - window, now). Returns the reading count, or None on failure."""
    now = datetime.now(timezone.utc)
    try:
        result = backfill(
            config,
            TimeRange(now - window, now),
            timedelta(hours=DEFAULT_CHUNK_HOURS),
        )
    except WaterHeroIngestError as e:
        logger.error(f"Scheduled ingest failed: {e}")
        return None

    logger.info(f"Scheduled ingest stored {result.total_readings} readings")
    return result.total_readings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="waterhero-scheduler",
        description="Periodically ingest the most recent WaterHero readings",
    )
    parser.add_argument('--every', type=int, default=60,
                        help='minutes between runs')
    parser.add_argument('--window', type=int, default=None,
                        help='minutes of history fetched per run (defaults to --every)')
    parser.add_argument('--log-level', default='INFO')
    parser.add_argument('--log-dir', default='logs')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("waterhero_scheduler", log_dir=args.log_dir, level=args.log_level)

    try:
        if args.every <= 0:
            raise ConfigError(f"--every must be positive, got {args.every}")
        window_minutes = args.window or args.every
        if window_minutes <= 0:
            raise ConfigError(f"--window must be positive, got {window_minutes}")
        config = IngestConfig.from_env()
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    window = timedelta(minutes=window_minutes)
    logger.info(f"Starting WaterHero scheduler: every {args.every} min, window {window}")

    schedule.every(args.every).minutes.do(run_recent_window, config, window)

    run_recent_window(config, window)

    try:
        while True:
            schedule.run_pending()
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Scheduler stopped")
    finally:
        schedule.clear()

    return 0


if __name__ == "__main__":
    sys.exit(main())
