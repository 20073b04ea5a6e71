from datetime import datetime, timezone
from typing import List

import pytest
from loguru import logger

from waterhero_ingest.config import IngestConfig
from waterhero_ingest.errors import TransportError
from waterhero_ingest.models import Reading


@pytest.fixture
def config():
    return IngestConfig(
        device_id="dev-42",
        email="meter@example.com",
        session_cookie="s%3Asecret",
        questdb_addr="localhost:9009",
    )


@pytest.fixture
def reading():
    return Reading(
        timestamp_ms="1700000000000",
        uptime_ms="999",
        device_tag="ABC123",
        total_gallons="1500",
        temperature_f="72",
    )


@pytest.fixture
def utc():
    def _utc(*args):
        return datetime(*args, tzinfo=timezone.utc)
    return _utc


class FakeClient:
    """Returns `per_chunk` readings per call, failing on call number `fail_on` (0-based)."""

    def __init__(self, per_chunk: int = 2, fail_on: int = None, error=None):
        self.per_chunk = per_chunk
        self.fail_on = fail_on
        self.error = error or TransportError("connection reset")
        self.calls = []

    def fetch_readings(self, start, end) -> List[Reading]:
        call_number = len(self.calls)
        self.calls.append((start, end))
        if call_number == self.fail_on:
            raise self.error
        return [
            Reading(
                timestamp_ms=str(int(start.timestamp() * 1000) + i),
                uptime_ms=str(i),
                device_tag="ABC123",
                total_gallons=str(1000 + i),
                temperature_f="70",
            )
            for i in range(self.per_chunk)
        ]


class FakeWriter:
    def __init__(self):
        self.batches = []

    def write_readings(self, readings) -> int:
        self.batches.append(list(readings))
        return len(readings)


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def fake_writer():
    return FakeWriter()


@pytest.fixture(autouse=True)
def reset_loguru():
    # CLI entry points re-point loguru at the (captured) stderr
    yield
    logger.remove()
