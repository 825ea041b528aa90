"""
Fetch orchestration: run every configured source concurrently with settle-all
semantics and fold the outcomes into one immutable ReconciledRecord.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Union

from shared.models.domain import MatchConfig
from shared.models.enums import SOURCE_ORDER, GateDecision, SourceName
from shared.utils.logging import get_logger

from collector.sources.base import FetchOutcome, NotYetEligible, Snapshot, SourceAdapter, SourceError, describe_error

logger = get_logger(__name__)

SKIP = GateDecision.SKIP


@dataclass(frozen=True)
class ReconciledRecord:
    """All outcomes of one eligible cycle, sharing one capture timestamp."""
    observed_at: datetime
    per_source: Mapping[SourceName, FetchOutcome]

    def __post_init__(self) -> None:
        object.__setattr__(self, "per_source", MappingProxyType(dict(self.per_source)))

    def snapshot(self, source: SourceName) -> Optional[Snapshot]:
        outcome = self.per_source.get(source)
        return outcome if isinstance(outcome, Snapshot) else None

    def ordered(self) -> list[tuple[SourceName, FetchOutcome]]:
        """Outcomes in the fixed persisted row order."""
        known = [(s, self.per_source[s]) for s in SOURCE_ORDER if s in self.per_source]
        extra = [(s, o) for s, o in self.per_source.items() if s not in SOURCE_ORDER]
        return known + extra


class FetchOrchestrator:
    """Runs all adapters for one match; one failing or slow source never blocks the rest."""

    def __init__(
        self,
        adapters: dict[SourceName, SourceAdapter],
        primary: SourceName = SourceName.FLASHSCORE,
        source_timeout_s: float = 150.0,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ) -> None:
        self._adapters = adapters
        self._primary = primary
        self._timeout = source_timeout_s
        self._clock = clock

    async def run(
        self,
        config: MatchConfig,
        prefetched: Optional[Mapping[SourceName, FetchOutcome]] = None,
    ) -> Union[ReconciledRecord, GateDecision]:
        """
        Fetch every configured source not already in ``prefetched``.

        Returns:
            The record, or SKIP when any source reports the match is outside
            its recordable window.
        """
        outcomes: dict[SourceName, FetchOutcome] = dict(prefetched or {})
        pending = [(s, url) for s, url in config.sources.items() if s not in outcomes]

        results = await asyncio.gather(
            *(self._fetch_one(source, url) for source, url in pending),
            return_exceptions=True,
        )
        for (source, _url), result in zip(pending, results):
            if isinstance(result, BaseException):
                logger.warning("source_task_failed", match=config.name, source=source.value, error=repr(result))
                outcomes[source] = SourceError(source, describe_error(result))
            else:
                outcomes[source] = result

        for source, outcome in outcomes.items():
            if isinstance(outcome, Snapshot):
                logger.info(
                    "source_snapshot",
                    match=config.name,
                    source=source.value,
                    home_team=outcome.home_team,
                    home_score=outcome.home_score,
                    away_team=outcome.away_team,
                    away_score=outcome.away_score,
                )

        not_eligible = {s: o for s, o in outcomes.items() if isinstance(o, NotYetEligible)}
        if not_eligible:
            primary_blocked = self._primary in not_eligible
            logger.info(
                "cycle_skipped",
                match=config.name,
                primary=primary_blocked,
                sources=sorted(s.value for s in not_eligible),
                reasons=[o.reason for o in not_eligible.values()],
            )
            return SKIP

        return ReconciledRecord(observed_at=self._clock(), per_source=outcomes)

    async def _fetch_one(self, source: SourceName, endpoint: str) -> FetchOutcome:
        adapter = self._adapters.get(source)
        if adapter is None:
            return SourceError(source, "no adapter registered")
        try:
            return await asyncio.wait_for(adapter.fetch(endpoint), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("source_timeout", source=source.value, timeout_s=self._timeout)
            return SourceError(source, f"timeout after {self._timeout:g}s")
