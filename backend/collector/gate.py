"""
Lifecycle gate: one cheap authoritative check before any browser session starts.
On uncertainty the gate skips; a cycle that is not recorded costs nothing.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.models.domain import MatchConfig
from shared.models.enums import GateDecision, SourceName
from shared.utils.logging import get_logger

from collector.sources.base import FetchOutcome, Snapshot, SourceAdapter, SourceError

logger = get_logger(__name__)


@dataclass(frozen=True)
class GateVerdict:
    decision: GateDecision
    source: Optional[SourceName] = None
    outcome: Optional[FetchOutcome] = None

    @property
    def proceed(self) -> bool:
        return self.decision == GateDecision.PROCEED

    def prefetched(self) -> dict[SourceName, FetchOutcome]:
        """The authoritative snapshot, reusable by the orchestrator for this cycle."""
        if self.source is not None and isinstance(self.outcome, Snapshot):
            return {self.source: self.outcome}
        return {}


class LifecycleGate:
    """Decides PROCEED / SKIP for a whole match cycle."""

    def __init__(
        self,
        adapters: dict[SourceName, SourceAdapter],
        authoritative: Optional[SourceName] = SourceName.GOALSERVE,
    ) -> None:
        self._adapters = adapters
        self._authoritative = authoritative

    async def decide(self, config: MatchConfig) -> GateVerdict:
        source = self._authoritative
        endpoint = config.endpoint(source) if source is not None else None
        adapter = self._adapters.get(source) if source is not None else None
        if source is None or endpoint is None or adapter is None:
            # Per-adapter eligibility checks decide instead
            return GateVerdict(GateDecision.PROCEED)

        outcome = await adapter.fetch(endpoint)
        if isinstance(outcome, Snapshot):
            return GateVerdict(GateDecision.PROCEED, source, outcome)

        if isinstance(outcome, SourceError):
            logger.warning("gate_source_error", match=config.name, source=source.value, error=outcome.message)
        else:
            logger.info("gate_not_eligible", match=config.name, source=source.value, reason=outcome.reason)
        return GateVerdict(GateDecision.SKIP, source, outcome)
