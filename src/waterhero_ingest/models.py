"""
Data model for readings, time ranges and backfill results.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from .data_quality import validate_record
from .errors import ConfigError, DecodeError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_millis(dt: datetime) -> int:
    return (ensure_utc(dt) - EPOCH) // timedelta(milliseconds=1)


def from_millis(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


@dataclass(frozen=True)
class TimeRange:
    """Half-open interval [start, end)."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if ensure_utc(self.start) > ensure_utc(self.end):
            raise ConfigError(
                f"range start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @property
    def duration(self) -> timedelta:
        return ensure_utc(self.end) - ensure_utc(self.start)


@dataclass(frozen=True)
class Chunk:
    """One contiguous slice of a TimeRange."""
    start: datetime
    end: datetime
    index: int = 0


@dataclass(frozen=True)
class Reading:
    """One meter sample. Numeric fields stay as the API's decimal strings."""
    timestamp_ms: str
    uptime_ms: str
    device_tag: str
    total_gallons: str
    temperature_f: str

    @classmethod
    def from_api(cls, record: Any, body: str = "") -> "Reading":
        try:
            return cls(**validate_record(record))
        except ValueError as e:
            raise DecodeError(str(e), body=body) from e


@dataclass(frozen=True)
class ReadingsResponse:
    """Parsed /get/readings envelope."""
    readings: List[Reading]
    success: bool = False
    code: int = 0


@dataclass(frozen=True)
class FetchRequest:
    device_id: str
    email: str
    from_ms: int
    to_ms: int

    def to_payload(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "email": self.email,
            "from": self.from_ms,
            "to": self.to_ms,
        }


@dataclass
class BackfillResult:
    """Running totals for a backfill run."""
    total_readings: int = 0
    chunks: int = 0
    stopped: bool = False
    chunk_counts: List[int] = field(default_factory=list)

    def add_chunk(self, count: int):
        self.total_readings += count
        self.chunks += 1
        self.chunk_counts.append(count)
