"""
InfluxDB line protocol rendering for water readings.

    water_readings,device_id=<tag> total_gallons=<g>i,temp_f=<t>i,uptime=<u>i <ns>

All fields are integers (the `i` suffix) and the timestamp is in nanoseconds.
"""

import re
from typing import Iterable

from ..errors import EncodeError
from ..models import Reading

MEASUREMENT = "water_readings"

_INTEGER_RE = re.compile(r"-?[0-9]+")
_UNSIGNED_RE = re.compile(r"[0-9]+")

NANOS_PER_MILLI = 1_000_000

# Line protocol integers are signed 64-bit
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def _escape_tag(value: str) -> str:
    return (
        value.replace("\\", "\\\\").replace(",", "\\,").replace(" ", "\\ ").replace("=", "\\=")
    )


def _to_int64(name: str, value: str) -> int:
    try:
        number = int(value)
    except ValueError as e:
        raise EncodeError(f"{name} is not a usable integer: {e}") from e
    if not INT64_MIN <= number <= INT64_MAX:
        raise EncodeError(f"{name} is outside the 64-bit integer range: {value!r}")
    return number


def _integer_field(name: str, value: str) -> int:
    if not _INTEGER_RE.fullmatch(value):
        raise EncodeError(f"{name} is not an integer: {value!r}")
    return _to_int64(name, value)


def _timestamp_nanos(value: str) -> int:
    if not _UNSIGNED_RE.fullmatch(value):
        raise EncodeError(f"timestamp is not a non-negative integer: {value!r}")
    nanos = _to_int64("timestamp", value) * NANOS_PER_MILLI
    if nanos > INT64_MAX:
        raise EncodeError(f"timestamp is too large for nanosecond precision: {value!r}")
    return nanos


def encode_reading(reading: Reading) -> str:
    if not reading.device_tag:
        raise EncodeError(f"empty device tag in reading at {reading.timestamp_ms}")
    try:
        reading.device_tag.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodeError(f"device tag is not valid UTF-8 text: {reading.device_tag!r}") from e

    gallons = _integer_field("total_gallons", reading.total_gallons)
    temp_f = _integer_field("temp_f", reading.temperature_f)
    uptime = _integer_field("uptime", reading.uptime_ms)
    nanos = _timestamp_nanos(reading.timestamp_ms)

    return (
        f"{MEASUREMENT},device_id={_escape_tag(reading.device_tag)} "
        f"total_gallons={gallons}i,temp_f={temp_f}i,uptime={uptime}i {nanos}\n"
    )


def encode_readings(readings: Iterable[Reading]) -> bytes:
    """Render readings as newline-terminated lines, in input order."""
    return "".join(encode_reading(r) for r in readings).encode("utf-8")
