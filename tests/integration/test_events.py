"""Tests for host test-runner wiring."""

from collections.abc import Callable
from typing import Any

import pytest

from loadmetrics.adapters.events import attach, create_writer, init
from loadmetrics.adapters.storage import (
    InfluxHTTPWriter,
    InMemoryPointStorage,
    SQLitePointStorage,
)
from loadmetrics.config import load_config
from loadmetrics.core.errors import ConfigError
from loadmetrics.runner import MeasurementSetRunner

pytestmark = pytest.mark.tier(1)


class FakeEmitter:
    """Minimal event emitter recording subscriptions."""

    def __init__(self) -> None:
        self.handlers: dict[str, list[Callable[..., Any]]] = {}

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        self.handlers.setdefault(event, []).append(callback)

    def emit(self, event: str, *args: Any) -> None:
        for callback in self.handlers.get(event, []):
            callback(*args)


@pytest.fixture
def emitter() -> FakeEmitter:
    return FakeEmitter()


class TestInit:
    """Tests for init()."""

    def test_requires_plugins_section(self, emitter: FakeEmitter) -> None:
        with pytest.raises(ConfigError, match='No "plugins" configuration found'):
            init({"config": {}}, emitter)

    def test_requires_plugin_configuration(self, emitter: FakeEmitter) -> None:
        with pytest.raises(ConfigError, match="configuration for influxdb is required"):
            init({"plugins": {"other": {}}}, emitter)

    def test_invalid_configuration_subscribes_nothing(self, emitter: FakeEmitter) -> None:
        with pytest.raises(ConfigError):
            init({"plugins": {"influxdb": {"influx": {}}}}, emitter, environ={})
        assert emitter.handlers == {}

    def test_reports_stats_events(
        self,
        emitter: FakeEmitter,
        plugin_config: dict,
        point_storage: InMemoryPointStorage,
    ) -> None:
        runner = init({"plugins": {"influxdb": plugin_config}}, emitter, writer=point_storage)

        emitter.emit(
            "stats",
            {
                "latencies": [[1700000000000, "r1", 999000, 200]],
                "errors": {"ETIMEDOUT": 2, "ECONNREFUSED": 1},
            },
        )

        (latency,) = point_storage.read("latency")
        assert latency.fields == {"value": 0.999, "time": 1700000000000}
        assert latency.tags == {"response": 200, "testName": "custom-measurements"}
        (errors,) = point_storage.read("clientErrors")
        assert errors.fields["value"] == 3
        runner.close()


class TestAttach:
    """Tests for attach()."""

    def test_subscribes_to_stats(
        self, emitter: FakeEmitter, plugin_config: dict, point_storage: InMemoryPointStorage
    ) -> None:
        runner = MeasurementSetRunner(load_config(plugin_config, environ={}), point_storage)

        assert attach(emitter, runner) is runner
        assert emitter.handlers == {"stats": [runner.handle_stats]}


class TestCreateWriter:
    """Tests for create_writer()."""

    def test_influx_backend(self, plugin_config: dict) -> None:
        writer = create_writer(load_config(plugin_config, environ={}))
        assert isinstance(writer, InfluxHTTPWriter)

    def test_sqlite_backend(self, plugin_config: dict, points_db_path: str) -> None:
        del plugin_config["influx"]
        plugin_config["sqlite"] = {"path": points_db_path}
        writer = create_writer(load_config(plugin_config, environ={}))
        assert isinstance(writer, SQLitePointStorage)
