"""Reporter configuration: validation, defaults and static tags.

The plugin configuration arrives as a mapping with the host runner's
camelCase keys::

    {
        "testName": "checkout",
        "influx": {"host": "influx.local", "database": "loadtests",
                   "username": "...", "password": "..."},
        "tags": {"env": "staging"},
        "measurementName": "latency",
        "errorMeasurementName": "clientErrors",
        "matches": True,
        "measurements": {...},
    }

``load_config`` turns it into an immutable ReporterConfig, or raises
ConfigError before any report is processed.
"""

import os
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from loadmetrics.core.errors import ConfigError
from loadmetrics.core.models import Granularity, MeasurementDefinition, PropertySet
from loadmetrics.core.query import compile_query

PLUGIN_NAME = "influxdb"

DEFAULT_MEASUREMENT_NAME = "latency"
DEFAULT_ERROR_MEASUREMENT_NAME = "clientErrors"

ENV_INFLUX_USERNAME = "INFLUX_USERNAME"
ENV_INFLUX_PASSWORD = "INFLUX_PASSWORD"

MATCHES_FIELD_NAME = "matches"
MATCHES_FIELD_QUERY = "$.report._matches"

PLUGIN_CONFIG_IS_REQUIRED = "The configuration for %s is required."
PARAM_IS_REQUIRED = "The configuration parameter %s is required."
PARAM_OR_ENV_IS_REQUIRED = (
    "The configuration parameter %s or environment variable %s is required."
)
HOST_MUST_BE_HOSTNAME = (
    "The %s property must be a host name only, protocol and port cannot be used."
)

_VALUE_QUERY_TARGET = re.compile(r"^\$\.(sample|report)\b")


@dataclass(frozen=True)
class InfluxConfig:
    """Connection settings for an InfluxDB 1.x server."""

    host: str
    database: str
    username: str
    password: str
    port: int = 8086
    protocol: str = "http"

    @property
    def url(self) -> str:
        return f"{self.protocol}://{self.host}:{self.port}"


@dataclass(frozen=True)
class SQLiteConfig:
    """Local SQLite point store settings."""

    path: str


@dataclass(frozen=True)
class ReporterConfig:
    """Validated configuration handed to the measurement runner.

    Attributes:
        test_name: Name of the load test, also a static tag.
        measurements: Measurement definitions in declaration order.
        static_tags: Tags merged into every emitted point.
        measurement_name: Output name of the default latency measurement.
        error_measurement_name: Output name of the error-count point.
        influx: InfluxDB connection, if that backend is configured.
        sqlite: SQLite point store, if that backend is configured.
    """

    test_name: str
    measurements: tuple[MeasurementDefinition, ...]
    static_tags: dict[str, Any] = field(default_factory=dict)
    measurement_name: str = DEFAULT_MEASUREMENT_NAME
    error_measurement_name: str = DEFAULT_ERROR_MEASUREMENT_NAME
    influx: InfluxConfig | None = None
    sqlite: SQLiteConfig | None = None


def default_measurements(
    measurement_name: str = DEFAULT_MEASUREMENT_NAME, matches: bool = False
) -> tuple[MeasurementDefinition, ...]:
    """The measurement set used when none is configured.

    One point per sample: latency in milliseconds, the sample timestamp and
    the response status code as a tag.
    """
    queries = {"value": "$.sample[${LATENCY}]", "time": "$.sample[${TIMESTAMP}]"}
    if matches:
        queries[MATCHES_FIELD_NAME] = MATCHES_FIELD_QUERY
    latency = MeasurementDefinition(
        name=measurement_name,
        granularity=Granularity.SAMPLE,
        fields=PropertySet(queries=queries, mappers={"value": "v => v / 1000000"}),
        tags=PropertySet(queries={"response": "$.sample[${STATUS_CODE}]"}),
    )
    return (latency,)


# --- Validation models ---

ExpressionMap = Annotated[dict[str, StrictStr], Field(min_length=1)]


class PropertySetModel(BaseModel):
    """One ``fields`` or ``tags`` block of a measurement definition."""

    model_config = ConfigDict(extra="forbid")

    queries: ExpressionMap | None = None
    defaults: Annotated[dict[str, Any], Field(min_length=1)] | None = None
    mappers: ExpressionMap | None = None
    reducers: ExpressionMap | None = None

    @field_validator("queries")
    @classmethod
    def validate_query_paths(cls, queries: dict[str, str] | None) -> dict[str, str] | None:
        """Every query must expand to a parseable JSONPath."""
        for name, path in (queries or {}).items():
            try:
                compile_query(path)
            except (JsonPathLexerError, JsonPathParserError) as exc:
                raise ValueError(f"{name} is not a valid JSONPath: {exc}") from exc
        return queries

    def to_property_set(self) -> PropertySet:
        return PropertySet(
            queries=dict(self.queries or {}),
            defaults=dict(self.defaults or {}),
            mappers=dict(self.mappers or {}),
            reducers=dict(self.reducers or {}),
        )


class FieldsModel(PropertySetModel):
    """Field block: a ``value`` query into the sample or the report is required."""

    queries: ExpressionMap

    @field_validator("queries")
    @classmethod
    def validate_value_query(cls, queries: dict[str, str]) -> dict[str, str]:
        value = queries.get("value")
        if value is None:
            raise ValueError("should have required property 'value'")
        if not _VALUE_QUERY_TARGET.match(value):
            raise ValueError(f'value should match pattern "{_VALUE_QUERY_TARGET.pattern}"')
        return queries


class TagsModel(PropertySetModel):
    """Tag block: needs at least a query or a default."""

    @model_validator(mode="after")
    def require_queries_or_defaults(self) -> "TagsModel":
        if self.queries is None and self.defaults is None:
            raise ValueError("tags should have either 'queries' or 'defaults'")
        return self


class MeasurementModel(BaseModel):
    granularity: Granularity
    fields: FieldsModel
    tags: TagsModel | None = None

    def to_definition(self, name: str) -> MeasurementDefinition:
        return MeasurementDefinition(
            name=name,
            granularity=self.granularity,
            fields=self.fields.to_property_set(),
            tags=self.tags.to_property_set() if self.tags is not None else None,
        )


NonEmptyStr = Annotated[str, Field(min_length=1)]


class InfluxModel(BaseModel):
    host: NonEmptyStr
    database: NonEmptyStr
    username: NonEmptyStr
    password: NonEmptyStr
    port: int = 8086
    protocol: Literal["http", "https"] = "http"

    @field_validator("host")
    @classmethod
    def validate_host_name(cls, host: str) -> str:
        if ":" in host or "/" in host:
            raise ValueError(HOST_MUST_BE_HOSTNAME % "influx.host")
        return host


class SQLiteModel(BaseModel):
    path: NonEmptyStr


class PluginConfigModel(BaseModel):
    """The reporter's section of the runner configuration (camelCase keys)."""

    test_name: NonEmptyStr = Field(alias="testName")
    influx: InfluxModel | None = None
    sqlite: SQLiteModel | None = None
    tags: dict[str, Any] | None = None
    exclude_test_run_id: bool = Field(default=False, alias="excludeTestRunId")
    measurement_name: str | None = Field(default=None, alias="measurementName")
    error_measurement_name: str | None = Field(default=None, alias="errorMeasurementName")
    matches: bool = False
    measurements: Annotated[dict[str, MeasurementModel], Field(min_length=1)] | None = None

    @model_validator(mode="after")
    def require_backend(self) -> "PluginConfigModel":
        if self.influx is None and self.sqlite is None:
            raise ValueError(PARAM_IS_REQUIRED % "influx")
        return self


def _format_errors(exc: ValidationError, prefix: str = "") -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in (prefix, *error["loc"]) if part != "")
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "Invalid configuration: " + "; ".join(messages)


def parse_measurement(name: str, raw: Any) -> MeasurementDefinition:
    """Validate one measurement definition.

    Raises:
        ConfigError: If the definition is malformed.
    """
    try:
        model = MeasurementModel.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(_format_errors(exc, f"measurements.{name}")) from exc
    return model.to_definition(name)


def _with_credentials(raw: Any, environ: Mapping[str, str]) -> Any:
    """Fill missing InfluxDB credentials from the environment."""
    if not isinstance(raw, Mapping):
        return raw
    raw = dict(raw)
    for key, env_name in (
        ("username", ENV_INFLUX_USERNAME),
        ("password", ENV_INFLUX_PASSWORD),
    ):
        if not raw.get(key):
            if not environ.get(env_name):
                raise ConfigError(PARAM_OR_ENV_IS_REQUIRED % (f"influx.{key}", env_name))
            raw[key] = environ[env_name]
    return raw


def load_config(
    plugin_config: Mapping[str, Any] | None,
    environ: Mapping[str, str] | None = None,
) -> ReporterConfig:
    """Validate the plugin configuration and build a ReporterConfig.

    Args:
        plugin_config: The reporter's section of the runner configuration.
        environ: Environment for credential fallback (default: os.environ).

    Raises:
        ConfigError: If any required setting is missing or malformed.
    """
    if not plugin_config:
        raise ConfigError(PLUGIN_CONFIG_IS_REQUIRED % PLUGIN_NAME)
    environ = os.environ if environ is None else environ

    raw = dict(plugin_config)
    if "influx" in raw:
        raw["influx"] = _with_credentials(raw["influx"], environ)
    try:
        model = PluginConfigModel.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(_format_errors(exc)) from exc

    static_tags = dict(model.tags or {})
    static_tags["testName"] = model.test_name
    if not static_tags.get("testRunId") and not model.exclude_test_run_id:
        static_tags["testRunId"] = str(uuid.uuid4())

    measurement_name = model.measurement_name or DEFAULT_MEASUREMENT_NAME
    if model.measurements is not None:
        measurements = tuple(
            definition.to_definition(name) for name, definition in model.measurements.items()
        )
    else:
        measurements = default_measurements(measurement_name, matches=model.matches)

    influx = sqlite = None
    if model.influx is not None:
        influx = InfluxConfig(**model.influx.model_dump())
    if model.sqlite is not None:
        sqlite = SQLiteConfig(path=model.sqlite.path)

    return ReporterConfig(
        test_name=model.test_name,
        measurements=measurements,
        static_tags=static_tags,
        measurement_name=measurement_name,
        error_measurement_name=model.error_measurement_name or DEFAULT_ERROR_MEASUREMENT_NAME,
        influx=influx,
        sqlite=sqlite,
    )
