"""Storage adapters implementing PointWriterPort."""

from loadmetrics.adapters.storage.in_memory import InMemoryPointStorage
from loadmetrics.adapters.storage.influx_http import InfluxHTTPWriter
from loadmetrics.adapters.storage.sqlite import SQLitePointStorage

__all__ = [
    "InMemoryPointStorage",
    "InfluxHTTPWriter",
    "SQLitePointStorage",
]
