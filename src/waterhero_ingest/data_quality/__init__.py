from .reading_validator import (
    ReadingQualityConfig,
    DEFAULT_READING_CONFIG,
    missing_fields,
    validate_record,
)

__all__ = [
    'ReadingQualityConfig',
    'DEFAULT_READING_CONFIG',
    'missing_fields',
    'validate_record',
]
