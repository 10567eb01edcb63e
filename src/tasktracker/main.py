"""
Demo entrypoint for tasktracker.

What it does:
- Loads tracker definitions from `config/tasktracker.yaml` when present,
  otherwise builds three small trackers (Renderer, ReportingSvc, DataSvc)
  that log reclaimed ledger entries as JSON lines.
- Optionally starts the Prometheus exporter (`PROMETHEUS_PORT`).
- Runs `DEMO_TASKS` random-duration tasks concurrently on every tracker, with
  delays up to `DEMO_MAX_DELAY_MS`.

Where it is used:
- Invoked by `python -m tasktracker.main` (also installed as `tasktracker-demo`).
"""
import asyncio
import logging
import os
import random
from typing import List

from tasktracker.config.loader import (
    DEFAULT_CONFIG_PATH,
    Settings,
    TrackerSettings,
    build_tracker,
    load_settings,
)
from tasktracker.metrics.core import start_server_safe
from tasktracker.tracker import Tracker

DEMO_TRACKERS = ("Renderer", "ReportingSvc", "DataSvc")


def default_settings() -> Settings:
    return Settings(
        trackers=[TrackerSettings(name=n, max_history_size=10, persist="log") for n in DEMO_TRACKERS]
    )


async def random_execution(max_delay_ms: int) -> None:
    delay_ms = random.randint(max(1, max_delay_ms // 20), max(1, max_delay_ms))
    await asyncio.sleep(delay_ms / 1000.0)


async def drive(tracker: Tracker, count: int, max_delay_ms: int) -> None:
    await asyncio.gather(
        *(tracker.run(lambda: random_execution(max_delay_ms), name=f"job-{i}") for i in range(count))
    )


async def run_demo(trackers: List[Tracker], count: int, max_delay_ms: int) -> None:
    await asyncio.gather(*(drive(t, count, max_delay_ms) for t in trackers))


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    path = os.getenv("TASKTRACKER_CONFIG", DEFAULT_CONFIG_PATH)
    if os.path.exists(path):
        settings = load_settings(path)
        logging.info(f"Loaded {len(settings.trackers)} tracker(s) from {path}")
    else:
        settings = default_settings()
        logging.info(f"No config at {path}; using demo trackers {', '.join(DEMO_TRACKERS)}")

    port_env = os.getenv("PROMETHEUS_PORT")
    start_server_safe(int(port_env) if port_env else settings.metrics_port)

    count = int(os.getenv("DEMO_TASKS", "100"))
    max_delay_ms = int(os.getenv("DEMO_MAX_DELAY_MS", "1000"))
    trackers = [build_tracker(s, log=logging.getLogger("tasktracker.demo").debug) for s in settings.trackers]
    asyncio.run(run_demo(trackers, count, max_delay_ms))
    for t in trackers:
        logging.info(f"{t.name or 'unnamed'}: {len(t.history)} record(s) retained, {t.active_count} in flight")


if __name__ == "__main__":
    main()
