"""
Pairwise score comparison between the primary source and one comparison source.
An empty score on either side is missing evidence, never a discrepancy.
"""
from __future__ import annotations

from dataclasses import dataclass

from shared.models.enums import SourceName
from shared.utils.logging import get_logger
from shared.utils.metrics import SCORE_DISCREPANCIES

from collector.orchestrator import ReconciledRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class DiscrepancyFlags:
    home_score_differs: bool = False
    away_score_differs: bool = False

    @property
    def any(self) -> bool:
        return self.home_score_differs or self.away_score_differs


NO_DISCREPANCY = DiscrepancyFlags()


def _normalize_score(score: str) -> str:
    return (score or "").strip()


def scores_differ(a: str, b: str) -> bool:
    na, nb = _normalize_score(a), _normalize_score(b)
    return bool(na) and bool(nb) and na != nb


def detect(record: ReconciledRecord, source_a: SourceName, source_b: SourceName) -> DiscrepancyFlags:
    """Compare home and away scores of two sources; both must have produced a snapshot."""
    a = record.snapshot(source_a)
    b = record.snapshot(source_b)
    if a is None or b is None:
        return NO_DISCREPANCY

    flags = DiscrepancyFlags(
        home_score_differs=scores_differ(a.home_score, b.home_score),
        away_score_differs=scores_differ(a.away_score, b.away_score),
    )
    if flags.any:
        if flags.home_score_differs:
            SCORE_DISCREPANCIES.labels(field="home").inc()
        if flags.away_score_differs:
            SCORE_DISCREPANCIES.labels(field="away").inc()
        logger.warning(
            "score_discrepancy",
            suspect=source_a.value,
            against=source_b.value,
            score_a=f"{_normalize_score(a.home_score)}-{_normalize_score(a.away_score)}",
            score_b=f"{_normalize_score(b.home_score)}-{_normalize_score(b.away_score)}",
        )
    return flags
