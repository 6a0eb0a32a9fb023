"""The four transformation stages applied after querying.

Each stage reads and replaces one property of a StageResult in place.
"""

import logging
from functools import reduce
from typing import Any

from loadmetrics.core.expressions import MAPPER_PARAMS, REDUCER_PARAMS
from loadmetrics.core.models import ABSENT, Scalar, Series, StageResult
from loadmetrics.core.ports import ExpressionEvaluator

logger = logging.getLogger(__name__)


def apply_default(
    result: StageResult,
    name: str,
    default: Any,
    evaluator: ExpressionEvaluator,
) -> None:
    """Fill an absent or empty property with a default.

    String defaults are evaluated; other literals are used as-is. A callable
    outcome (e.g. ``now`` or ``() => now()``) is invoked with no arguments.
    The property always becomes a one-element Series.
    """
    if not result.get(name, ABSENT).is_empty:
        return
    value = evaluator.evaluate(default) if isinstance(default, str) else default
    if callable(value):
        value = value()
    result[name] = Series((value,))
    logger.debug("default %s: %r -> %r", name, default, result[name])


def apply_mapper(
    result: StageResult,
    name: str,
    expression: str,
    evaluator: ExpressionEvaluator,
) -> None:
    """Transform every element of a Series property."""
    current = result.get(name, ABSENT)
    if not isinstance(current, Series):
        result.setdefault(name, ABSENT)
        return
    transform = evaluator.function(expression, MAPPER_PARAMS)
    result[name] = Series(tuple(transform(value) for value in current.values))
    logger.debug("map %s: %s -> %r", name, expression, result[name])


def apply_reducer(
    result: StageResult,
    name: str,
    expression: str,
    evaluator: ExpressionEvaluator,
) -> None:
    """Left-fold a non-empty Series property into a Scalar.

    The first element seeds the fold, so a one-element Series yields that
    element without calling the combining function.
    """
    current = result.get(name, ABSENT)
    if not isinstance(current, Series) or current.is_empty:
        result.setdefault(name, ABSENT)
        return
    combine = evaluator.function(expression, REDUCER_PARAMS)
    result[name] = Scalar(reduce(combine, current.values))
    logger.debug("reduce %s: %s -> %r", name, expression, result[name])


def extract_scalar(result: StageResult, name: str) -> None:
    """Collapse any array left in a property to its first element.

    Applies to a Series and to a reducer result that is itself a list. An
    empty list becomes Absent.
    """
    current = result.get(name, ABSENT)
    if isinstance(current, Series) and not current.is_empty:
        result[name] = Scalar(current.values[0])
    elif isinstance(current, Scalar) and isinstance(current.value, (list, tuple)):
        result[name] = Scalar(current.value[0]) if current.value else ABSENT
