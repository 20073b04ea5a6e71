import socket
from typing import Optional, Sequence, Tuple
from loguru import logger

from ..errors import ConfigError, ConnectError, WriteError
from ..models import Reading
from .line_protocol import encode_readings


def parse_sink_address(address: str) -> Tuple[str, int]:
    """Split host:port (IPv6 hosts in brackets) into a (host, port) pair."""
    host, sep, port = address.strip().rpartition(":")
    if not sep or not host or not port:
        raise ConfigError(f"invalid QuestDB address {address!r}, expected host:port")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port_number = int(port)
    except ValueError:
        raise ConfigError(f"invalid QuestDB port in {address!r}")

    if not 0 < port_number < 65536:
        raise ConfigError(f"QuestDB port out of range in {address!r}")

    return host, port_number


class QuestDBWriter:
    """Writes line protocol payloads to QuestDB's ILP TCP listener, one connection per write."""

    def __init__(self, address: str, timeout: Optional[float] = None):
        self.address = address
        self.host, self.port = parse_sink_address(address)
        self.timeout = timeout

    def write(self, payload: bytes):
        if not payload:
            return

        try:
            conn = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            raise ConnectError(f"connect to QuestDB at {self.address} failed: {e}") from e

        with conn:
            try:
                conn.sendall(payload)
            except OSError as e:
                raise WriteError(
                    f"write of {len(payload)} bytes to QuestDB at {self.address} failed: {e}"
                ) from e

        logger.debug(f"Wrote {len(payload)} bytes to QuestDB at {self.address}")

    def write_readings(self, readings: Sequence[Reading]) -> int:
        if not readings:
            return 0

        self.write(encode_readings(readings))
        return len(readings)
