"""Measurement processor: runs the extraction stages over a property set."""

import logging
from typing import Any

from loadmetrics.core.models import ABSENT, Context, PropertySet, Series, StageResult
from loadmetrics.core.ports import ExpressionEvaluator
from loadmetrics.core.query import evaluate_query
from loadmetrics.core.stages import (
    apply_default,
    apply_mapper,
    apply_reducer,
    extract_scalar,
)

logger = logging.getLogger(__name__)


def run_stages(
    context: Context,
    properties: PropertySet,
    evaluator: ExpressionEvaluator,
) -> StageResult:
    """Run query, default, map, reduce and extract, in that order.

    Returns:
        The stage result: one Value per property name in the set.
    """
    result: StageResult = {}

    for name, path in properties.queries.items():
        result[name] = Series(tuple(evaluate_query(context, path))) if path else ABSENT
    logger.debug("0 - queries %r", result)

    for name, default in properties.defaults.items():
        apply_default(result, name, default, evaluator)
    logger.debug("1 - defaults %r", result)

    for name, expression in properties.mappers.items():
        apply_mapper(result, name, expression, evaluator)
    logger.debug("2 - mappers %r", result)

    for name, expression in properties.reducers.items():
        apply_reducer(result, name, expression, evaluator)
    logger.debug("3 - reducers %r", result)

    for name in result:
        extract_scalar(result, name)
    logger.debug("4 - extract %r", result)

    return result


def process(
    context: Context,
    properties: PropertySet,
    evaluator: ExpressionEvaluator,
) -> dict[str, Any]:
    """Resolve every property of the set to a scalar or None."""
    result = run_stages(context, properties, evaluator)
    return {name: result.get(name, ABSENT).resolve() for name in properties.names}
