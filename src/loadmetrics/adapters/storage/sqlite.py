"""SQLite storage adapter for points."""

import asyncio
import json
import sqlite3
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

import aiosqlite

from loadmetrics.core.errors import MetricsWriteError
from loadmetrics.core.models import Point

_POINTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS points (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    measurement TEXT NOT NULL,
    time INTEGER,
    fields TEXT NOT NULL,
    tags TEXT NOT NULL DEFAULT '{}'
);
CREATE INDEX IF NOT EXISTS idx_points_measurement ON points(measurement);
"""

_INSERT_POINT = """
INSERT INTO points (measurement, time, fields, tags) VALUES (?, ?, ?, ?)
"""

_SELECT_POINTS = """
SELECT fields, tags FROM points ORDER BY id ASC
"""

_SELECT_MEASUREMENT_POINTS = """
SELECT fields, tags FROM points WHERE measurement = ? ORDER BY id ASC
"""

_COUNT_POINTS = """
SELECT COUNT(*) FROM points
"""


class SQLitePointStorage:
    """SQLite implementation of PointWriterPort.

    Stores points in a local SQLite database using aiosqlite for
    non-blocking async operations. Uses WAL mode for concurrent access.

    For :memory: databases, a persistent connection is maintained since
    in-memory databases are connection-scoped in SQLite.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._initialized = False
        self._init_lock: asyncio.Lock | None = None
        self._persistent_conn: aiosqlite.Connection | None = None

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the initialization lock (lazy to avoid event loop issues)."""
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        return self._init_lock

    async def _ensure_initialized(self) -> None:
        """Initialize database schema once."""
        if self._initialized:
            return
        async with self._get_lock():
            if self._initialized:
                return
            if self._db_path == ":memory:":
                self._persistent_conn = await aiosqlite.connect(":memory:")
                await self._persistent_conn.executescript(_POINTS_SCHEMA)
            else:
                async with aiosqlite.connect(self._db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(_POINTS_SCHEMA)
            self._initialized = True

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Context manager for database connections.

        File-based connections are closed after use; the :memory: connection
        is kept open.
        """
        await self._ensure_initialized()
        if self._db_path == ":memory:":
            if self._persistent_conn is None:
                raise RuntimeError("Memory database connection not initialized")
            yield self._persistent_conn
            return
        db = await aiosqlite.connect(self._db_path)
        try:
            yield db
        finally:
            await db.close()

    async def write_points(self, measurement: str, points: Iterable[Point]) -> None:
        """Write a batch of points in one transaction."""
        points = list(points)
        try:
            rows = [
                (
                    measurement,
                    point.time,
                    json.dumps(point.fields),
                    json.dumps(point.tags),
                )
                for point in points
            ]
            async with self._connection() as db:
                await db.executemany(_INSERT_POINT, rows)
                await db.commit()
        except (sqlite3.Error, TypeError, ValueError) as exc:
            raise MetricsWriteError(
                f"Failed to write {len(points)} points to {measurement}: {exc}"
            ) from exc

    async def read(self, measurement: str | None = None) -> list[Point]:
        """Read points in write order, optionally for one measurement only."""
        async with self._connection() as db:
            if measurement is None:
                cursor = await db.execute(_SELECT_POINTS)
            else:
                cursor = await db.execute(_SELECT_MEASUREMENT_POINTS, (measurement,))
            rows = await cursor.fetchall()
            await cursor.close()
        return [Point(fields=json.loads(fields), tags=json.loads(tags)) for fields, tags in rows]

    async def count(self) -> int:
        """Return total number of stored points."""
        async with self._connection() as db:
            async with db.execute(_COUNT_POINTS) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def close(self) -> None:
        """Close persistent connection (for :memory: databases)."""
        if self._persistent_conn is not None:
            await self._persistent_conn.close()
            self._persistent_conn = None
            self._initialized = False
