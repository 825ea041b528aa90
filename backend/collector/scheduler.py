"""
Fixed-interval collection loop.

Matches are processed one at a time so at most one match's browser sessions
are open at any instant. stop() lets the in-flight match finish, then no new
match or cycle starts.
"""
from __future__ import annotations

import asyncio
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from shared.models.domain import MatchConfig
from shared.models.enums import CycleResult, SourceName
from shared.utils.logging import get_logger, match_context
from shared.utils.metrics import COLLECT_CYCLES

from collector.config import CollectorSettings, get_collector_settings
from collector.discrepancy import detect
from collector.errors import ConfigError, PersistenceError
from collector.gate import LifecycleGate
from collector.orchestrator import SKIP, FetchOrchestrator
from collector.store import AppendStore

logger = get_logger(__name__)

MatchLoader = Callable[[], list[MatchConfig]]


class CollectorScheduler:
    """Owns the stop token and drives gate -> orchestrator -> detector -> store per match."""

    def __init__(
        self,
        gate: LifecycleGate,
        orchestrator: FetchOrchestrator,
        store: AppendStore,
        load_matches: MatchLoader,
        settings: Optional[CollectorSettings] = None,
    ) -> None:
        self._gate = gate
        self._orchestrator = orchestrator
        self._store = store
        self._load_matches = load_matches
        self._settings = settings or get_collector_settings()
        self._primary: SourceName = self._settings.primary_source
        self._comparison: SourceName = self._settings.comparison_source
        self._stop = asyncio.Event()
        self._last_cycle_at: Optional[datetime] = None
        self._last_summary: Counter[CycleResult] = Counter()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Request a graceful stop; safe to call from a signal handler."""
        if not self._stop.is_set():
            logger.info("scheduler_stop_requested")
            self._stop.set()

    def health(self) -> dict[str, Any]:
        """Snapshot for the health endpoint; read from the server thread."""
        return {
            "status": "stopping" if self._stop.is_set() else "ok",
            "last_cycle_at": self._last_cycle_at.isoformat() if self._last_cycle_at else None,
            "last_cycle": {result.value: count for result, count in self._last_summary.items()},
        }

    async def run(self) -> None:
        """Run cycles every poll_interval_s (start to start) until stop() is called."""
        interval = self._settings.poll_interval_s
        loop = asyncio.get_running_loop()
        logger.info("scheduler_started", interval_s=interval)
        while not self._stop.is_set():
            started = loop.time()
            try:
                await self.run_cycle()
            except Exception as e:
                logger.exception("cycle_error", error=str(e))
            if await self._pause(interval - (loop.time() - started)):
                break
        logger.info("scheduler_stopped")

    async def run_cycle(self) -> Counter[CycleResult]:
        """Process every configured match once, sequentially."""
        summary: Counter[CycleResult] = Counter()
        try:
            matches = self._load_matches()
        except ConfigError as exc:
            logger.warning("match_list_unavailable", error=str(exc))
            return summary

        logger.info("cycle_started", matches=len(matches))
        for index, config in enumerate(matches):
            if index and await self._pause(self._settings.between_matches_s):
                break
            if self._stop.is_set():
                break
            summary[await self.process_match(config)] += 1

        if self._stop.is_set() and sum(summary.values()) < len(matches):
            logger.info("cycle_interrupted", processed=sum(summary.values()), total=len(matches))
        logger.info(
            "cycle_finished",
            recorded=summary[CycleResult.RECORDED],
            skipped=summary[CycleResult.SKIPPED],
            failed=summary[CycleResult.FAILED],
        )
        self._last_cycle_at = datetime.now(timezone.utc)
        self._last_summary = summary
        return summary

    async def process_match(self, config: MatchConfig) -> CycleResult:
        """One gated fetch-reconcile-append cycle; never raises."""
        with match_context(config.name):
            return await self._process_match(config)

    async def _process_match(self, config: MatchConfig) -> CycleResult:
        result = CycleResult.FAILED
        try:
            verdict = await self._gate.decide(config)
            if not verdict.proceed:
                result = CycleResult.SKIPPED
                return result

            record = await self._orchestrator.run(config, verdict.prefetched())
            if record is SKIP:
                result = CycleResult.SKIPPED
                return result

            flags = detect(record, self._primary, self._comparison)
            path = await asyncio.to_thread(self._store.append, config.name, record, flags)
            logger.info("match_recorded", match=config.name, path=str(path), flagged=flags.any)
            result = CycleResult.RECORDED
        except PersistenceError as e:
            logger.error("store_write_failed", match=config.name, error=str(e))
        except Exception as e:
            logger.exception("process_match_error", match=config.name, error=str(e))
        finally:
            COLLECT_CYCLES.labels(result=result.value).inc()
        return result

    async def _pause(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True as soon as a stop is requested."""
        if seconds <= 0:
            return self._stop.is_set()
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
