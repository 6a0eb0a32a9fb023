"""InfluxDB line protocol encoding via influxdb_client points."""

import json
from collections.abc import Iterable, Mapping
from typing import Any

from influxdb_client import Point as InfluxPoint
from influxdb_client import WritePrecision

from loadmetrics.core.models import Point

TIME_FIELD = "time"


def _field_value(value: Any) -> Any:
    # Line protocol has no composite type: mappings and sequences travel as JSON strings.
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value)
    return value


def to_influx_point(measurement: str, point: Point) -> InfluxPoint:
    """Convert a point to an influxdb_client Point.

    The ``time`` field, if present, becomes the point's timestamp in epoch
    milliseconds. Tags and fields holding None are left out.
    """
    influx_point = InfluxPoint(measurement)
    for key, value in point.tags.items():
        if value is not None:
            influx_point = influx_point.tag(str(key), value)
    for key, value in point.fields.items():
        if key != TIME_FIELD and value is not None:
            influx_point = influx_point.field(str(key), _field_value(value))
    if point.time is not None:
        influx_point = influx_point.time(int(point.time), WritePrecision.MS)
    return influx_point


def encode_point(measurement: str, point: Point) -> str:
    """Encode a single point as one line of line protocol."""
    return to_influx_point(measurement, point).to_line_protocol()


def encode_points(measurement: str, points: Iterable[Point]) -> str:
    """Encode points to newline-delimited line protocol.

    Returns:
        One line per point, newline-terminated.
        Empty string if no points.
    """
    lines = [encode_point(measurement, point) for point in points]
    lines = [line for line in lines if line]

    if not lines:
        return ""

    return "\n".join(lines) + "\n"
