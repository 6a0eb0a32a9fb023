"""Core domain models for measurement extraction."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Granularity(str, Enum):
    """How often a measurement's pipeline runs for one report."""

    SAMPLE = "sample"
    REPORT = "report"


@dataclass(frozen=True)
class PropertySet:
    """Declarative stage maps for a set of fields or tags.

    Attributes:
        queries: Property name to JSONPath template.
        defaults: Property name to literal or default expression.
        mappers: Property name to one-argument transform expression.
        reducers: Property name to two-argument fold expression.
    """

    queries: dict[str, str] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)
    mappers: dict[str, str] = field(default_factory=dict)
    reducers: dict[str, str] = field(default_factory=dict)

    @property
    def names(self) -> list[str]:
        """All property names mentioned by any stage, in first-seen order."""
        seen: dict[str, None] = {}
        for stage in (self.queries, self.defaults, self.mappers, self.reducers):
            for name in stage:
                seen.setdefault(name, None)
        return list(seen)


@dataclass(frozen=True)
class MeasurementDefinition:
    """A named measurement: granularity plus field and tag property sets."""

    name: str
    granularity: Granularity
    fields: PropertySet
    tags: PropertySet | None = None


@dataclass(frozen=True)
class Point:
    """One (fields, tags) pair ready for persistence.

    Attributes:
        fields: Measured values. Always contains ``value``.
        tags: Labels, static tags already merged in.
    """

    fields: dict[str, Any]
    tags: dict[str, Any] = field(default_factory=dict)

    @property
    def time(self) -> Any:
        """The point timestamp in epoch milliseconds, if a ``time`` field is set."""
        return self.fields.get("time")


# --- Stage values ---


@dataclass(frozen=True)
class Absent:
    """No value was extracted for a property."""

    @property
    def is_empty(self) -> bool:
        return True

    def resolve(self) -> Any:
        return None


ABSENT = Absent()


@dataclass(frozen=True)
class Scalar:
    """A single extracted value."""

    value: Any

    @property
    def is_empty(self) -> bool:
        return False

    def resolve(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Series:
    """All matches of a query, or the output of a map over them."""

    values: tuple[Any, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.values) == 0

    def resolve(self) -> Any:
        # Non-empty series never survive scalar extraction.
        return self.values[0] if self.values else None


Value = Absent | Scalar | Series

StageResult = dict[str, Value]

Context = Mapping[str, Any]
