from .line_protocol import MEASUREMENT, encode_reading, encode_readings
from .questdb_writer import QuestDBWriter, parse_sink_address

__all__ = [
    "MEASUREMENT",
    "encode_reading",
    "encode_readings",
    "QuestDBWriter",
    "parse_sink_address",
]
