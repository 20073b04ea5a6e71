"""
Runtime configuration for the ingest pipeline.

The process environment is read exactly once, in IngestConfig.from_env, and
the resulting object is passed into the client, writer and orchestrator.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError

DEFAULT_API_URL = "https://mywaterhero.net/get/readings"
DEFAULT_ORIGIN = "https://mywaterhero.net"
DEFAULT_QUESTDB_ADDR = "localhost:9009"
DEFAULT_CHUNK_HOURS = 24
DEFAULT_CHUNK_DELAY = 0.5

REQUIRED_ENV_VARS = ("WATERHERO_DEVICE_ID", "WATERHERO_EMAIL", "WATERHERO_SESSION")


def _optional_float(environ: Mapping[str, str], name: str) -> Optional[float]:
    raw = environ.get(name, "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number of seconds, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class IngestConfig:
    """Credentials and endpoints for one run."""

    device_id: str
    email: str
    session_cookie: str
    questdb_addr: str = DEFAULT_QUESTDB_ADDR
    api_url: str = DEFAULT_API_URL
    origin: str = DEFAULT_ORIGIN

    # None keeps the library defaults (no timeout)
    request_timeout: Optional[float] = None
    sink_timeout: Optional[float] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "IngestConfig":
        environ = os.environ if environ is None else environ

        missing = [name for name in REQUIRED_ENV_VARS if not environ.get(name)]
        if missing:
            raise ConfigError(f"missing required env vars: {', '.join(missing)}")

        return cls(
            device_id=environ["WATERHERO_DEVICE_ID"],
            email=environ["WATERHERO_EMAIL"],
            session_cookie=environ["WATERHERO_SESSION"],
            questdb_addr=environ.get("QUESTDB_ADDR") or DEFAULT_QUESTDB_ADDR,
            api_url=environ.get("WATERHERO_API_URL") or DEFAULT_API_URL,
            request_timeout=_optional_float(environ, "WATERHERO_TIMEOUT"),
            sink_timeout=_optional_float(environ, "QUESTDB_TIMEOUT"),
        )

    def __repr__(self) -> str:
        # Never print the session cookie
        return (
            f"IngestConfig(device_id={self.device_id!r}, email={self.email!r}, "
            f"questdb_addr={self.questdb_addr!r}, api_url={self.api_url!r})"
        )
