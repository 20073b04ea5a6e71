"""
Field presence checks for raw reading records returned by the API.

Only presence is checked here. Whether the values are well-formed integers
is left to the line protocol encoder, which is the first stage that needs
them as numbers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class ReadingQualityConfig:
    """Configuration for raw reading validation."""

    # Short wire keys -> model attribute
    required_fields: Dict[str, str] = field(default_factory=lambda: {
        'p': 'timestamp_ms',
        'u': 'uptime_ms',
        'w': 'device_tag',
        'g': 'total_gallons',
        't': 'temperature_f',
    })


DEFAULT_READING_CONFIG = ReadingQualityConfig()


def missing_fields(record: Any, config: ReadingQualityConfig = DEFAULT_READING_CONFIG) -> List[str]:
    if not isinstance(record, dict):
        return list(config.required_fields)
    return [key for key in config.required_fields if record.get(key) is None]


def validate_record(record: Any, config: ReadingQualityConfig = DEFAULT_READING_CONFIG) -> Dict[str, str]:
    """
    Map a raw API record onto model attribute names.

    Raises:
        ValueError: if the record is not an object, a required key is absent
            or a value is not a JSON string
    """
    missing = missing_fields(record, config)
    if missing:
        raise ValueError(f"reading record missing fields {missing}: {record!r}")

    not_strings = [key for key in config.required_fields if not isinstance(record[key], str)]
    if not_strings:
        raise ValueError(f"reading record fields {not_strings} are not strings: {record!r}")

    return {attr: record[key] for key, attr in config.required_fields.items()}
