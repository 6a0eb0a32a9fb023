"""Sandboxed evaluation of default, mapper and reducer snippets.

Snippets are evaluated with simpleeval, never with the interpreter's own
``eval``. Two spellings are accepted:

- arrow functions: ``v => v / 1000000``, ``(acc, value) => acc + value``,
  ``() => now()``
- bare expressions over implicit parameters: ``value / 1000000`` for
  mappers, ``acc + value`` for reducers
"""

import re
import time
from collections.abc import Callable, Mapping
from typing import Any

from simpleeval import DEFAULT_FUNCTIONS, simple_eval

MAPPER_PARAMS = ("value",)
REDUCER_PARAMS = ("acc", "value")

_ARROW = re.compile(
    r"^\s*(?:\((?P<params>[^()]*)\)|(?P<param>[A-Za-z_]\w*))\s*=>\s*(?P<body>.+?)\s*$",
    re.DOTALL,
)


def now() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def _default_functions() -> dict[str, Callable[..., Any]]:
    functions = dict(DEFAULT_FUNCTIONS)
    functions.update(
        {
            "now": now,
            "round": round,
            "abs": abs,
            "min": min,
            "max": max,
            "len": len,
        }
    )
    return functions


def parse_arrow(expression: str) -> tuple[tuple[str, ...], str] | None:
    """Split an arrow function into its parameter names and body.

    Returns:
        ``(params, body)`` or None if the expression is not an arrow function.
    """
    match = _ARROW.match(expression)
    if match is None:
        return None
    if match.group("param") is not None:
        return (match.group("param"),), match.group("body")
    params = tuple(p.strip() for p in match.group("params").split(",") if p.strip())
    return params, match.group("body")


class SimpleEvalEvaluator:
    """ExpressionEvaluator backed by simpleeval.

    Args:
        functions: Extra functions made available to snippets, merged over
            the defaults (``now``, ``str``, ``int``, ``float``, ``round``...).
    """

    def __init__(self, functions: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self._functions = _default_functions()
        if functions:
            self._functions.update(functions)

    def evaluate(self, expression: str, names: Mapping[str, Any] | None = None) -> Any:
        """Evaluate an expression; arrow functions evaluate to callables."""
        arrow = parse_arrow(expression)
        if arrow is not None:
            params, body = arrow
            return self._compile(params, body)
        return simple_eval(expression, names=dict(names or {}), functions=self._functions)

    def function(
        self, expression: str, params: tuple[str, ...]
    ) -> Callable[..., Any]:
        """Compile a snippet into a callable.

        Arrow functions bind their own parameter names. Bare expressions bind
        ``params`` positionally.
        """
        arrow = parse_arrow(expression)
        if arrow is not None:
            return self._compile(*arrow)
        return self._compile(params, expression)

    def _compile(self, params: tuple[str, ...], body: str) -> Callable[..., Any]:
        functions = self._functions

        def call(*args: Any) -> Any:
            # Extra positional arguments are ignored, missing ones are unbound.
            return simple_eval(body, names=dict(zip(params, args)), functions=functions)

        return call
