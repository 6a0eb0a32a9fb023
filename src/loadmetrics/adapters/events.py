"""Host test-runner wiring.

Subscribes a MeasurementSetRunner to the runner's ``stats`` event so every
report is turned into points and written.

Example:
    ```python
    from loadmetrics.adapters.events import init

    runner = init(script_config, event_emitter)
    ```
"""

import logging
from collections.abc import Mapping
from typing import Any

from loadmetrics.adapters.storage import InfluxHTTPWriter, SQLitePointStorage
from loadmetrics.config import PLUGIN_NAME, ReporterConfig, load_config
from loadmetrics.core.errors import ConfigError
from loadmetrics.core.ports import EventEmitter, PointWriterPort
from loadmetrics.runner import MeasurementSetRunner

logger = logging.getLogger(__name__)

STATS_EVENT = "stats"
PLUGINS_CONFIG_NOT_FOUND = 'No "plugins" configuration found.'


def create_writer(config: ReporterConfig) -> PointWriterPort:
    """Build the storage writer for the configured backend.

    InfluxDB takes precedence when both backends are configured.
    """
    if config.influx is not None:
        return InfluxHTTPWriter(config.influx)
    if config.sqlite is not None:
        return SQLitePointStorage(config.sqlite.path)
    raise ConfigError("No storage backend configured.")


def attach(
    emitter: EventEmitter,
    runner: MeasurementSetRunner,
    event: str = STATS_EVENT,
) -> MeasurementSetRunner:
    """Register the runner's report handler on an emitter."""
    emitter.on(event, runner.handle_stats)
    logger.debug("Reporting %s events for test %s", event, runner.config.test_name)
    return runner


def init(
    script_config: Mapping[str, Any] | None,
    emitter: EventEmitter,
    environ: Mapping[str, str] | None = None,
    writer: PointWriterPort | None = None,
) -> MeasurementSetRunner:
    """Validate the runner script's plugin configuration and start reporting.

    Args:
        script_config: The full test script configuration; the reporter reads
            ``plugins.influxdb``.
        emitter: The host runner's event emitter.
        environ: Environment for credential fallback (default: os.environ).
        writer: Storage writer override (default: built from configuration).

    Raises:
        ConfigError: If the configuration is missing or invalid.
    """
    if not script_config or not script_config.get("plugins"):
        raise ConfigError(PLUGINS_CONFIG_NOT_FOUND)

    config = load_config(script_config["plugins"].get(PLUGIN_NAME), environ)
    runner = MeasurementSetRunner(config, writer or create_writer(config))
    return attach(emitter, runner)
