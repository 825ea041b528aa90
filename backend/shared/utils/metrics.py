"""
Lightweight metrics collection for scorewatch.
Wraps prometheus_client with async-safe patterns.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
COLLECT_CYCLES = Counter(
    "sw_collect_cycles_total",
    "Per-match collection cycles by result",
    ["result"],
)
SOURCE_FETCHES = Counter(
    "sw_source_fetches_total",
    "Source adapter fetches by outcome",
    ["source", "outcome"],
)
SOURCE_REQUESTS = Counter(
    "sw_source_http_requests_total",
    "Total HTTP requests issued to JSON sources",
    ["source", "status"],
)
SCORE_DISCREPANCIES = Counter(
    "sw_score_discrepancies_total",
    "Cycles where the compared sources disagreed on a score",
    ["field"],
)
STORE_WRITES = Counter(
    "sw_store_writes_total",
    "Spreadsheet append attempts by status",
    ["status"],
)

# ── Histograms ──────────────────────────────────────────────────────────
SOURCE_LATENCY = Histogram(
    "sw_source_latency_seconds",
    "Source adapter fetch latency in seconds",
    ["source"],
    buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

# ── Gauges ──────────────────────────────────────────────────────────────
BROWSER_SESSIONS = Gauge(
    "sw_browser_sessions_open",
    "Browser automation sessions currently open",
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        histogram.labels(**labels).observe(elapsed)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
