#!/usr/bin/env python3
"""
Command line entry point: fetch WaterHero readings and forward them to QuestDB.

Without range flags the last hour is ingested. --days N or --start/--end
turn the run into a chunked backfill.

Credentials come from WATERHERO_DEVICE_ID, WATERHERO_EMAIL and
WATERHERO_SESSION; QUESTDB_ADDR defaults to localhost:9009.
"""

import argparse
import sys
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from loguru import logger

from .backfill import backfill
from .config import DEFAULT_CHUNK_DELAY, DEFAULT_CHUNK_HOURS, IngestConfig
from .errors import ConfigError, WaterHeroIngestError
from .logging_config import setup_logging
from .models import TimeRange

DATE_FORMAT = "%Y-%m-%d"


def _parse_date(value: str, flag: str) -> datetime:
    try:
        return datetime.strptime(value, DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        raise ConfigError(f"invalid {flag} date {value!r}, expected YYYY-MM-DD")


def resolve_time_range(
    days: int = 0,
    start: Optional[str] = None,
    end: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TimeRange:
    """
    Turn the range flags into a TimeRange.

    --start wins over --days, which wins over the last-hour default. An
    --end date is inclusive, so the range runs to midnight after it.
    """
    now = now or datetime.now(timezone.utc)

    if days < 0:
        raise ConfigError(f"--days must not be negative, got {days}")

    if start:
        range_start = _parse_date(start, "--start")
        if end:
            range_end = _parse_date(end, "--end") + timedelta(days=1)
        else:
            range_end = now
        return TimeRange(range_start, range_end)

    if end:
        raise ConfigError("--end requires --start")

    if days > 0:
        return TimeRange(now - timedelta(days=days), now)

    return TimeRange(now - timedelta(hours=1), now)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="waterhero-ingest",
        description="Fetch WaterHero meter readings and write them to QuestDB",
    )
    parser.add_argument('--days', type=int, default=0,
                        help='number of days to backfill (0 = just last hour)')
    parser.add_argument('--start', default=None,
                        help='start date for backfill (YYYY-MM-DD)')
    parser.add_argument('--end', default=None,
                        help='end date for backfill (YYYY-MM-DD), defaults to now')
    parser.add_argument('--chunk', type=int, default=DEFAULT_CHUNK_HOURS,
                        help='chunk size in hours for backfill requests')
    parser.add_argument('--delay', type=float, default=DEFAULT_CHUNK_DELAY,
                        help='pause in seconds between chunks')
    parser.add_argument('--log-level', default='INFO',
                        help='log level (DEBUG, INFO, WARNING, ...)')
    parser.add_argument('--log-dir', default=None,
                        help='directory for rotating log files (disabled if unset)')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("waterhero_ingest", log_dir=args.log_dir, level=args.log_level)

    try:
        if args.chunk <= 0:
            raise ConfigError(f"--chunk must be a positive number of hours, got {args.chunk}")

        config = IngestConfig.from_env()
        time_range = resolve_time_range(args.days, args.start, args.end)
        result = backfill(
            config,
            time_range,
            timedelta(hours=args.chunk),
            chunk_delay=args.delay,
        )
    except WaterHeroIngestError as e:
        logger.error(f"Ingest failed: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("interrupted", file=sys.stderr)
        return 130

    print(f"backfill complete: {result.total_readings} total readings")
    return 0


if __name__ == "__main__":
    sys.exit(main())
