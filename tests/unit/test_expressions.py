"""Tests for the simpleeval-backed snippet evaluator."""

import time

import pytest
from simpleeval import NameNotDefined

from loadmetrics.core.expressions import (
    MAPPER_PARAMS,
    REDUCER_PARAMS,
    SimpleEvalEvaluator,
    now,
    parse_arrow,
)
from loadmetrics.core.ports import ExpressionEvaluator

pytestmark = [pytest.mark.core, pytest.mark.tier(0)]


class TestParseArrow:
    """Tests for parse_arrow()."""

    def test_single_parameter(self) -> None:
        assert parse_arrow("v => v / 1000000") == (("v",), "v / 1000000")

    def test_parenthesized_parameters(self) -> None:
        assert parse_arrow("(acc, value) => acc + value") == (
            ("acc", "value"),
            "acc + value",
        )

    def test_no_parameters(self) -> None:
        assert parse_arrow("() => now()") == ((), "now()")

    def test_plain_expression_is_not_an_arrow(self) -> None:
        assert parse_arrow("value >= 1") is None

    def test_string_literal_is_not_an_arrow(self) -> None:
        assert parse_arrow('"a => b"') is None


class TestSimpleEvalEvaluator:
    """Tests for SimpleEvalEvaluator."""

    def test_implements_evaluator_port(self) -> None:
        """SimpleEvalEvaluator must satisfy the ExpressionEvaluator protocol."""
        assert isinstance(SimpleEvalEvaluator(), ExpressionEvaluator)

    def test_evaluates_literals(self, evaluator: SimpleEvalEvaluator) -> None:
        assert evaluator.evaluate("333") == 333
        assert evaluator.evaluate('"default-value"') == "default-value"

    def test_evaluates_with_names(self, evaluator: SimpleEvalEvaluator) -> None:
        assert evaluator.evaluate("a * 2", {"a": 21}) == 42

    def test_arrow_evaluates_to_callable(self, evaluator: SimpleEvalEvaluator) -> None:
        result = evaluator.evaluate('() => str(444) + "S"')
        assert callable(result)
        assert result() == "444S"

    def test_bare_function_name_evaluates_to_callable(
        self, evaluator: SimpleEvalEvaluator
    ) -> None:
        assert evaluator.evaluate("now") is now

    def test_arrow_function_binds_own_parameters(
        self, evaluator: SimpleEvalEvaluator
    ) -> None:
        transform = evaluator.function("v => v / 1000000", MAPPER_PARAMS)
        assert transform(999) == 0.000999

    def test_bare_mapper_binds_value(self, evaluator: SimpleEvalEvaluator) -> None:
        transform = evaluator.function("value * 10", MAPPER_PARAMS)
        assert transform(4) == 40

    def test_bare_reducer_binds_acc_and_value(
        self, evaluator: SimpleEvalEvaluator
    ) -> None:
        combine = evaluator.function("acc if acc > value else value", REDUCER_PARAMS)
        assert combine(3, 7) == 7

    def test_custom_functions_are_available(self) -> None:
        evaluator = SimpleEvalEvaluator(functions={"double": lambda x: x * 2})
        assert evaluator.evaluate("double(21)") == 42

    def test_unknown_name_raises(self, evaluator: SimpleEvalEvaluator) -> None:
        """Evaluation errors propagate unchanged."""
        with pytest.raises(NameNotDefined):
            evaluator.evaluate("undefined_name + 1")

    def test_host_builtins_are_not_exposed(
        self, evaluator: SimpleEvalEvaluator
    ) -> None:
        with pytest.raises(NameNotDefined):
            evaluator.evaluate("open")


class TestNow:
    """Tests for now()."""

    def test_returns_epoch_milliseconds(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(time, "time", lambda: 1702300000.5)
        assert now() == 1702300000500
