"""Port interfaces for the pipeline's collaborators.

These protocols define the contracts that adapters must implement.
The core pipeline depends only on these interfaces, not concrete implementations.
"""

from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from loadmetrics.core.models import Point


@runtime_checkable
class PointWriterPort(Protocol):
    """Port for persisting point batches to a time-series backend.

    Examples: InMemoryPointStorage, SQLitePointStorage, InfluxHTTPWriter.
    """

    async def write_points(self, measurement: str, points: Iterable[Point]) -> None:
        """Write a batch of points under the given measurement name.

        Raises:
            MetricsWriteError: If the backend rejects or cannot receive the batch.
        """
        ...


@runtime_checkable
class ExpressionEvaluator(Protocol):
    """Port for the sandboxed evaluator of default/mapper/reducer snippets.

    Examples: SimpleEvalEvaluator.
    """

    def evaluate(self, expression: str, names: Mapping[str, Any] | None = None) -> Any:
        """Evaluate an expression and return its value.

        Arrow functions evaluate to callables.
        """
        ...

    def function(
        self, expression: str, params: tuple[str, ...]
    ) -> Callable[..., Any]:
        """Compile a snippet into a callable taking ``params`` positionally."""
        ...


@runtime_checkable
class EventEmitter(Protocol):
    """Port for the host test runner's event source."""

    def on(self, event: str, callback: Callable[..., Any]) -> Any:
        """Register a callback for an event."""
        ...
