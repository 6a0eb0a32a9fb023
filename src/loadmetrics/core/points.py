"""Point assembly, granularity dispatch and error aggregation."""

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from loadmetrics.core.expressions import now
from loadmetrics.core.models import (
    Context,
    Granularity,
    MeasurementDefinition,
    Point,
)
from loadmetrics.core.ports import ExpressionEvaluator
from loadmetrics.core.processor import process

logger = logging.getLogger(__name__)

PRIMARY_FIELD = "value"


def normalize_report(report: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of the report with legacy runner keys mapped over.

    Older runners report samples under ``_entries`` and the error map
    under ``_errors``.
    """
    normalized = dict(report)
    if "_entries" in normalized:
        normalized["latencies"] = normalized["_entries"]
    if "_errors" in normalized:
        normalized["errors"] = normalized["_errors"]
    return normalized


def iter_contexts(
    granularity: Granularity, report: Mapping[str, Any]
) -> Iterator[Context]:
    """Yield the extraction contexts for one measurement.

    ``sample`` yields one ``{"sample", "report"}`` context per sample row;
    ``report`` yields a single ``{"report"}`` context.
    """
    if granularity is Granularity.SAMPLE:
        for sample in report.get("latencies") or []:
            yield {"sample": sample, "report": report}
    else:
        yield {"report": report}


def _present(values: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def assemble_point(
    measurement: MeasurementDefinition,
    context: Context,
    static_tags: Mapping[str, Any],
    evaluator: ExpressionEvaluator,
) -> Point | None:
    """Build one point for a context, or None when it has no primary value.

    Static tags are merged over computed tags.
    """
    fields = process(context, measurement.fields, evaluator)
    if fields.get(PRIMARY_FIELD) is None:
        logger.debug("%s: no %s for context, point skipped", measurement.name, PRIMARY_FIELD)
        return None

    tags = process(context, measurement.tags, evaluator) if measurement.tags else {}
    return Point(fields=_present(fields), tags={**_present(tags), **static_tags})


def measurement_points(
    measurement: MeasurementDefinition,
    report: Mapping[str, Any],
    static_tags: Mapping[str, Any],
    evaluator: ExpressionEvaluator,
) -> list[Point]:
    """Assemble every point a measurement produces for one report."""
    points = []
    for context in iter_contexts(measurement.granularity, report):
        point = assemble_point(measurement, context, static_tags, evaluator)
        if point is not None:
            points.append(point)
    return points


def aggregate_errors(
    report: Mapping[str, Any], static_tags: Mapping[str, Any]
) -> Point | None:
    """Sum the report's error map into a single error-count point.

    Returns:
        A point with ``time`` and ``value`` fields tagged with the static
        tags, or None if the report has no errors or no static tags are set.
    """
    errors = report.get("errors")
    if not errors or not static_tags:
        return None
    error_count = sum(int(count) for count in errors.values())
    return Point(fields={"time": now(), PRIMARY_FIELD: error_count}, tags=dict(static_tags))
