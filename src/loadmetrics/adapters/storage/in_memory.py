"""In-memory point storage."""

from collections.abc import Iterable

from loadmetrics.core.models import Point


class InMemoryPointStorage:
    """In-memory implementation of PointWriterPort.

    Keeps every written batch in a list. Suitable for testing and dry runs
    where persistence is not required.
    """

    def __init__(self) -> None:
        self.batches: list[tuple[str, list[Point]]] = []

    async def write_points(self, measurement: str, points: Iterable[Point]) -> None:
        """Record a batch of points."""
        self.batches.append((measurement, list(points)))

    def read(self, measurement: str | None = None) -> list[Point]:
        """Return written points, optionally for one measurement only."""
        return [
            point
            for name, points in self.batches
            if measurement is None or name == measurement
            for point in points
        ]

    @property
    def measurements(self) -> list[str]:
        """Measurement names in write order."""
        return [name for name, _ in self.batches]
