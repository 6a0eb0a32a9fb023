"""InfluxDB 1.x HTTP writer."""

from collections.abc import Iterable

import httpx

from loadmetrics.config import InfluxConfig
from loadmetrics.core.encoding.line_protocol import encode_points
from loadmetrics.core.errors import MetricsWriteError
from loadmetrics.core.models import Point


class InfluxHTTPWriter:
    """PointWriterPort that posts line protocol to InfluxDB's ``/write`` endpoint.

    Timestamps are sent with millisecond precision.

    Example:
        ```python
        writer = InfluxHTTPWriter(config.influx)
        await writer.write_points("latency", points)
        await writer.aclose()
        ```
    """

    def __init__(
        self,
        config: InfluxConfig,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the writer.

        Args:
            config: InfluxDB connection settings.
            client: HTTP client to use. One is created (and owned) if omitted.
            timeout: Request timeout in seconds for an owned client.
        """
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def write_points(self, measurement: str, points: Iterable[Point]) -> None:
        """Write a batch of points.

        Raises:
            MetricsWriteError: On transport errors or a non-2xx response.
        """
        body = encode_points(measurement, points)
        if not body:
            return
        params = {
            "db": self._config.database,
            "u": self._config.username,
            "p": self._config.password,
            "precision": "ms",
        }
        try:
            response = await self._client.post(
                f"{self._config.url}/write", params=params, content=body.encode()
            )
        except httpx.HTTPError as exc:
            raise MetricsWriteError(
                f"Failed to write {measurement} to {self._config.host}: {exc}"
            ) from exc
        if not response.is_success:
            raise MetricsWriteError(
                f"InfluxDB rejected {measurement} write "
                f"({response.status_code}): {response.text.strip()}"
            )

    async def aclose(self) -> None:
        """Close the HTTP client if this writer created it."""
        if self._owns_client:
            await self._client.aclose()
