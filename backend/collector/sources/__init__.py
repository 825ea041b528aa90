from collector.sources.base import FetchOutcome, NotYetEligible, Snapshot, SourceAdapter, SourceError
from collector.sources.flashscore import FlashscoreSource
from collector.sources.goalserve import GoalserveSource
from collector.sources.scoreleo import ScoreleoSource

__all__ = [
    "FetchOutcome",
    "NotYetEligible",
    "Snapshot",
    "SourceAdapter",
    "SourceError",
    "FlashscoreSource",
    "GoalserveSource",
    "ScoreleoSource",
]
