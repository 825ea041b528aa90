"""Domain enumerations for the scorewatch collector."""
from __future__ import annotations

from enum import Enum


class SourceName(str, Enum):
    FLASHSCORE = "flashscore"
    SCORELEO = "scoreleo"
    GOALSERVE = "goalserve"

    @property
    def label(self) -> str:
        return SOURCE_LABELS[self]


SOURCE_LABELS: dict[SourceName, str] = {
    SourceName.FLASHSCORE: "Flashscore",
    SourceName.SCORELEO: "Scoreleo",
    SourceName.GOALSERVE: "Goalserve",
}

# Row order in the persisted log
SOURCE_ORDER: tuple[SourceName, ...] = (
    SourceName.FLASHSCORE,
    SourceName.SCORELEO,
    SourceName.GOALSERVE,
)


class GateDecision(str, Enum):
    PROCEED = "proceed"
    SKIP = "skip"


class CycleResult(str, Enum):
    """Per-match cycle result label for metrics and logs."""
    RECORDED = "recorded"
    SKIPPED = "skipped"
    FAILED = "failed"
