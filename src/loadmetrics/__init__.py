"""loadmetrics: declarative load-test metrics reporting.

Turns load-test reports into time-series points using configured
measurement definitions, and writes them to a storage backend.
"""

from loadmetrics.adapters.events import attach, init
from loadmetrics.adapters.storage import (
    InfluxHTTPWriter,
    InMemoryPointStorage,
    SQLitePointStorage,
)
from loadmetrics.config import ReporterConfig, load_config
from loadmetrics.core.errors import ConfigError, LoadMetricsError, MetricsWriteError
from loadmetrics.core.expressions import SimpleEvalEvaluator
from loadmetrics.core.models import (
    Granularity,
    MeasurementDefinition,
    Point,
    PropertySet,
)
from loadmetrics.runner import MeasurementSetRunner

__all__ = [
    "ConfigError",
    "Granularity",
    "InMemoryPointStorage",
    "InfluxHTTPWriter",
    "LoadMetricsError",
    "MeasurementDefinition",
    "MeasurementSetRunner",
    "MetricsWriteError",
    "Point",
    "PropertySet",
    "ReporterConfig",
    "SQLitePointStorage",
    "SimpleEvalEvaluator",
    "attach",
    "init",
    "load_config",
]
