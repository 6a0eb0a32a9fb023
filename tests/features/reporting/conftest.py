"""BDD step definitions for reporting features."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from loadmetrics.adapters.storage.in_memory import InMemoryPointStorage
from loadmetrics.config import load_config
from loadmetrics.runner import MeasurementSetRunner


@dataclass
class ReportingScenarioContext:
    """Shared state between steps in a reporting scenario."""

    plugin_config: dict[str, Any] = field(default_factory=dict)
    measurements: dict[str, dict[str, Any]] = field(default_factory=dict)
    storage: InMemoryPointStorage = field(default_factory=InMemoryPointStorage)


@pytest.fixture
def ctx() -> ReportingScenarioContext:
    """Fresh scenario context for each test."""
    return ReportingScenarioContext()


def _write_report(ctx: ReportingScenarioContext, report: dict[str, Any]) -> None:
    plugin_config = dict(ctx.plugin_config, measurements=ctx.measurements)
    runner = MeasurementSetRunner(load_config(plugin_config, environ={}), ctx.storage)
    asyncio.run(runner.write_report(report))


def _values(text: str) -> list[float]:
    return [float(item) for item in text.split(",")]


# === Background Steps ===
@given(parsers.parse('a reporter for test "{test_name}" with static tag "{key}" set to "{value}"'))
def step_reporter(ctx: ReportingScenarioContext, test_name: str, key: str, value: str) -> None:
    ctx.plugin_config = {
        "testName": test_name,
        "excludeTestRunId": True,
        "tags": {key: value},
        "influx": {
            "host": "influx.local",
            "username": "a-user",
            "password": "p@ssw0rd",
            "database": "loadtests",
        },
    }


# === Measurement Steps ===
@given(
    parsers.parse(
        'a sample measurement "{name}" querying "{query}" mapped by "{mapper}"'
    )
)
def step_sample_measurement(
    ctx: ReportingScenarioContext, name: str, query: str, mapper: str
) -> None:
    ctx.measurements[name] = {
        "granularity": "sample",
        "fields": {"queries": {"value": query}, "mappers": {"value": mapper}},
    }


@given(
    parsers.parse(
        'a report measurement "{name}" querying "{query}" reduced by "{reducer}"'
    )
)
def step_reduced_report_measurement(
    ctx: ReportingScenarioContext, name: str, query: str, reducer: str
) -> None:
    ctx.measurements[name] = {
        "granularity": "report",
        "fields": {"queries": {"value": query}, "reducers": {"value": reducer}},
    }


@given(parsers.re(r'a report measurement "(?P<name>[^"]+)" querying "(?P<query>[^"]+)"$'))
def step_report_measurement(ctx: ReportingScenarioContext, name: str, query: str) -> None:
    ctx.measurements[name] = {
        "granularity": "report",
        "fields": {"queries": {"value": query}},
    }


@given(parsers.parse('the "{name}" measurement tags "{tag}" with default "{default}"'))
def step_tag_default(
    ctx: ReportingScenarioContext, name: str, tag: str, default: str
) -> None:
    ctx.measurements[name]["tags"] = {"defaults": {tag: default}}


# === Report Steps ===
@when(parsers.parse("a report with latencies {latencies} is written"))
def when_latencies(ctx: ReportingScenarioContext, latencies: str) -> None:
    rows = [[None, None, int(latency), 200] for latency in latencies.split(",")]
    _write_report(ctx, {"latencies": rows})


@when(parsers.parse("a report with errors {errors} is written"))
def when_errors(ctx: ReportingScenarioContext, errors: str) -> None:
    pairs = (item.strip().split("=") for item in errors.split(","))
    _write_report(ctx, {"latencies": [], "errors": {k: int(v) for k, v in pairs}})


@when(parsers.parse("a report with {matches:d} matches is written"))
def when_matches(ctx: ReportingScenarioContext, matches: int) -> None:
    _write_report(ctx, {"latencies": [], "_matches": matches})


# === Assertions ===
@then(
    parsers.re(r'(?P<count>\d+) points? (?:is|are) written to "(?P<name>[^"]+)"'),
    converters={"count": int},
)
def then_point_count(ctx: ReportingScenarioContext, count: int, name: str) -> None:
    assert len(ctx.storage.read(name)) == count


@then(parsers.parse('nothing is written to "{name}"'))
def then_nothing_written(ctx: ReportingScenarioContext, name: str) -> None:
    assert name not in ctx.storage.measurements


@then(parsers.parse('the "{name}" values are {values}'))
def then_values(ctx: ReportingScenarioContext, name: str, values: str) -> None:
    assert [p.fields["value"] for p in ctx.storage.read(name)] == _values(values)


@then(parsers.parse('every "{name}" point is tagged "{tag}" with "{value}"'))
def then_tagged(ctx: ReportingScenarioContext, name: str, tag: str, value: str) -> None:
    points = ctx.storage.read(name)
    assert points
    assert all(p.tags[tag] == value for p in points)
