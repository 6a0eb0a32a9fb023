"""Measurement set runner: turns one report into written point batches."""

import asyncio
import logging
from collections.abc import Iterator, Mapping
from typing import Any

from loadmetrics.config import ReporterConfig
from loadmetrics.core.expressions import SimpleEvalEvaluator
from loadmetrics.core.models import Point
from loadmetrics.core.points import aggregate_errors, measurement_points, normalize_report
from loadmetrics.core.ports import ExpressionEvaluator, PointWriterPort

logger = logging.getLogger(__name__)


class MeasurementSetRunner:
    """Runs every configured measurement against a report and writes the points.

    Each report is processed independently: nothing is cached between
    reports. Writes for different measurements are submitted without
    waiting for earlier ones, so they may complete in any order.
    """

    def __init__(
        self,
        config: ReporterConfig,
        writer: PointWriterPort,
        evaluator: ExpressionEvaluator | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Validated reporter configuration.
            writer: Storage adapter implementing PointWriterPort.
            evaluator: Snippet evaluator (default: SimpleEvalEvaluator).
        """
        self.config = config
        self.writer = writer
        self.evaluator = evaluator or SimpleEvalEvaluator()
        self._pending: set[asyncio.Task[None]] = set()
        self._loop_runner: asyncio.Runner | None = None

    def iter_batches(self, report: Mapping[str, Any]) -> Iterator[tuple[str, list[Point]]]:
        """Yield ``(measurement name, points)`` for every non-empty batch.

        Measurements come first, in declaration order, then the error-count
        point. Batches are assembled lazily, one measurement at a time.
        """
        report = normalize_report(report)
        static_tags = self.config.static_tags

        for measurement in self.config.measurements:
            points = measurement_points(measurement, report, static_tags, self.evaluator)
            if not points:
                logger.debug("No data for measurement %s: nothing written", measurement.name)
                continue
            yield measurement.name, points

        error_point = aggregate_errors(report, static_tags)
        if error_point is not None:
            yield self.config.error_measurement_name, [error_point]

    async def _write(self, name: str, points: list[Point]) -> None:
        await self.writer.write_points(name, points)
        logger.debug("%s metrics reported to %s.", len(points), name)

    def _schedule(self, report: Mapping[str, Any]) -> list[asyncio.Task[None]]:
        tasks = []
        for name, points in self.iter_batches(report):
            task = asyncio.create_task(self._write(name, points))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)
        return tasks

    def submit(self, report: Mapping[str, Any]) -> list[asyncio.Task[None]]:
        """Schedule a write task per batch on the running event loop.

        Returns immediately. A failed write is passed to the loop's
        exception handler and kept on its task.
        """
        tasks = self._schedule(report)
        for task in tasks:
            task.add_done_callback(_report_write_failure)
        return tasks

    async def write_report(self, report: Mapping[str, Any]) -> None:
        """Write every batch for a report and wait for all writes to finish.

        Raises:
            MetricsWriteError: If any write fails.
        """
        tasks = self._schedule(report)
        for outcome in await asyncio.gather(*tasks, return_exceptions=True):
            if isinstance(outcome, BaseException):
                raise outcome

    def handle_stats(self, report: Mapping[str, Any]) -> None:
        """Synchronous callback for the host runner's stats event.

        Inside a running event loop the writes are scheduled and not awaited;
        failures go to that loop's exception handler. Otherwise they run to
        completion before returning, on an event loop owned by the runner and
        reused for every report until close().
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if self._loop_runner is None:
                self._loop_runner = asyncio.Runner()
            self._loop_runner.run(self.write_report(report))
            return
        self.submit(report)

    def close(self) -> None:
        """Close the writer and the runner's own event loop, if one was started."""
        if self._loop_runner is None:
            return
        aclose = getattr(self.writer, "aclose", None)
        if aclose is not None:
            self._loop_runner.run(aclose())
        self._loop_runner.close()
        self._loop_runner = None


def _report_write_failure(task: "asyncio.Task[None]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        task.get_loop().call_exception_handler(
            {"message": "Failed to write metrics", "exception": exc, "task": task}
        )
