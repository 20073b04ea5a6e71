"""
Exception hierarchy for the ingest pipeline.

Every stage raises a subclass of WaterHeroIngestError. The backfill
orchestrator stamps the failing chunk's start time onto the error before
re-raising, so the message tells an operator where to restart with --start.
"""

from datetime import datetime
from typing import Optional


class WaterHeroIngestError(Exception):
    """Base class for all ingest errors."""

    def __init__(self, message: str, chunk_start: Optional[datetime] = None):
        super().__init__(message)
        self.message = message
        self.chunk_start = chunk_start

    def __str__(self) -> str:
        if self.chunk_start is None:
            return self.message
        return f"chunk starting {self.chunk_start.isoformat()}: {self.message}"


class ConfigError(WaterHeroIngestError):
    """Invalid or missing range, chunk or environment settings."""


class TransportError(WaterHeroIngestError):
    """The API request could not be sent or its response could not be read."""


class DecodeError(WaterHeroIngestError):
    """The API response body is not the expected JSON shape."""

    def __init__(self, message: str, body: str = "", chunk_start: Optional[datetime] = None):
        super().__init__(f"{message}, body: {body}", chunk_start)
        self.body = body


class EncodeError(WaterHeroIngestError):
    """A reading cannot be rendered as a line protocol record."""


class SinkError(WaterHeroIngestError):
    """Base class for QuestDB I/O failures."""


class ConnectError(SinkError):
    """The TCP connection to QuestDB could not be established."""


class WriteError(SinkError):
    """The payload could not be fully written to QuestDB."""
