"""
Chunked backfill of WaterHero readings into QuestDB.

A time range is cut into fixed-size chunks that are fetched, encoded and
written one after another, with a short pause between chunks to keep the
request rate against the API low. The first error aborts the whole run.
"""

import time
from datetime import timedelta
from typing import Callable, Iterator, Optional
from loguru import logger

from .config import DEFAULT_CHUNK_DELAY, IngestConfig
from .data_ingestion import WaterHeroClient
from .database import QuestDBWriter
from .errors import ConfigError, WaterHeroIngestError
from .models import BackfillResult, Chunk, TimeRange, ensure_utc

DISPLAY_FORMAT = "%Y-%m-%d %H:%M"


def iter_chunks(time_range: TimeRange, chunk_size: timedelta) -> Iterator[Chunk]:
    """Yield contiguous chunks of at most chunk_size covering [start, end)."""
    if chunk_size <= timedelta(0):
        raise ConfigError(f"chunk size must be positive, got {chunk_size}")

    end = ensure_utc(time_range.end)
    current = ensure_utc(time_range.start)
    index = 0

    while current < end:
        chunk_end = min(current + chunk_size, end)
        yield Chunk(start=current, end=chunk_end, index=index)
        current = chunk_end
        index += 1


class BackfillOrchestrator:
    """Drives fetch -> encode -> write for each chunk, strictly in sequence."""

    def __init__(
        self,
        client: WaterHeroClient,
        writer: QuestDBWriter,
        chunk_delay: float = DEFAULT_CHUNK_DELAY,
        sleep: Optional[Callable[[float], None]] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ):
        if chunk_delay < 0:
            raise ConfigError(f"chunk delay must not be negative, got {chunk_delay}")
        self.client = client
        self.writer = writer
        self.chunk_delay = chunk_delay
        self.sleep = sleep or time.sleep
        self.should_stop = should_stop

    def run(self, time_range: TimeRange, chunk_size: timedelta) -> BackfillResult:
        result = BackfillResult()
        range_end = ensure_utc(time_range.end)

        for chunk in iter_chunks(time_range, chunk_size):
            # Stop requests are honoured between chunks, never mid-chunk
            if self.should_stop is not None and self.should_stop():
                logger.warning(
                    f"Backfill stopped before chunk starting {chunk.start.isoformat()} "
                    f"({result.total_readings} readings so far)"
                )
                result.stopped = True
                break

            count = self._run_chunk(chunk)
            result.add_chunk(count)

            if chunk.end < range_end and self.chunk_delay > 0:
                self.sleep(self.chunk_delay)

        logger.info(f"backfill complete: {result.total_readings} total readings")
        return result

    def _run_chunk(self, chunk: Chunk) -> int:
        try:
            readings = self.client.fetch_readings(chunk.start, chunk.end)
            logger.info(
                f"chunk {chunk.index}: {chunk.start.strftime(DISPLAY_FORMAT)} to "
                f"{chunk.end.strftime(DISPLAY_FORMAT)} -> {len(readings)} readings"
            )
            return self.writer.write_readings(readings)
        except WaterHeroIngestError as e:
            e.chunk_start = chunk.start
            logger.error(f"Chunk {chunk.index} failed: {e}")
            raise


def backfill(
    config: IngestConfig,
    time_range: TimeRange,
    chunk_size: timedelta,
    chunk_delay: float = DEFAULT_CHUNK_DELAY,
    should_stop: Optional[Callable[[], bool]] = None,
) -> BackfillResult:
    """Run a backfill against the real API and QuestDB described by config."""
    client = WaterHeroClient(config)
    writer = QuestDBWriter(config.questdb_addr, timeout=config.sink_timeout)
    orchestrator = BackfillOrchestrator(
        client, writer, chunk_delay=chunk_delay, should_stop=should_stop
    )

    logger.info(
        f"range: {ensure_utc(time_range.start).strftime(DISPLAY_FORMAT)} to "
        f"{ensure_utc(time_range.end).strftime(DISPLAY_FORMAT)} (chunk size: {chunk_size})"
    )

    return orchestrator.run(time_range, chunk_size)
