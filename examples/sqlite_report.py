"""Write a load-test report to a local SQLite point store.

Run with:
    python examples/sqlite_report.py points.db
"""

import asyncio
import logging
import sys
import time

from loadmetrics import MeasurementSetRunner, SQLitePointStorage, load_config

PLUGIN_CONFIG = {
    "testName": "checkout",
    "sqlite": {"path": "points.db"},
    "tags": {"env": "local"},
    "matches": True,
}


def fake_report() -> dict:
    """A report shaped like the load-test runner's stats event."""
    now_ms = int(time.time() * 1000)
    return {
        "_matches": 3,
        "latencies": [
            [now_ms, "req-1", 12_500_000, 200],
            [now_ms + 5, "req-2", 48_000_000, 200],
            [now_ms + 9, "req-3", 230_000_000, 503],
        ],
        "errors": {"ETIMEDOUT": 2},
    }


async def main(db_path: str) -> None:
    config = load_config({**PLUGIN_CONFIG, "sqlite": {"path": db_path}}, environ={})
    storage = SQLitePointStorage(db_path)
    runner = MeasurementSetRunner(config, storage)

    await runner.write_report(fake_report())

    for point in await storage.read():
        print(point.fields, point.tags)


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "points.db"))
