"""
Collector service entrypoint.
Runs the collection loop with asyncio; SIGINT/SIGTERM drain the in-flight match and exit 0.
"""
from __future__ import annotations

import asyncio
import signal
import sys

from shared.config import get_settings
from shared.utils.health_server import start_health_server
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from collector.config import get_collector_settings
from collector.gate import LifecycleGate
from collector.matches import load_matches
from collector.orchestrator import FetchOrchestrator
from collector.scheduler import CollectorScheduler
from collector.sources.registry import build_adapters
from collector.store import AppendStore

logger = get_logger(__name__)


def build_scheduler() -> CollectorScheduler:
    settings = get_collector_settings()
    adapters = build_adapters(settings)
    gate = LifecycleGate(adapters, settings.authoritative_source)
    orchestrator = FetchOrchestrator(
        adapters,
        primary=settings.primary_source,
        source_timeout_s=settings.source_timeout_s,
    )
    store = AppendStore(settings.output_dir, primary=settings.primary_source)
    return CollectorScheduler(
        gate,
        orchestrator,
        store,
        load_matches=lambda: load_matches(settings.matches_file),
        settings=settings,
    )


async def main() -> None:
    setup_logging("collector")
    start_metrics_server()
    settings = get_collector_settings()
    scheduler = build_scheduler()
    start_health_server("collector", get_settings().health_port, scheduler.health)

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            asyncio.get_running_loop().add_signal_handler(sig, scheduler.stop)
        except NotImplementedError:
            pass

    logger.info(
        "collector_started",
        matches_file=str(settings.matches_file),
        output_dir=str(settings.output_dir),
        interval_s=settings.poll_interval_s,
    )
    await scheduler.run()
    logger.info("collector_stopped")


def run() -> None:
    asyncio.run(main())
    sys.exit(0)


if __name__ == "__main__":
    run()
