"""Adapter registry: one adapter instance per source, shared across matches."""
from __future__ import annotations

from typing import Optional

from shared.models.enums import SourceName

from collector.config import CollectorSettings, get_collector_settings
from collector.sources.base import SourceAdapter
from collector.sources.flashscore import FlashscoreSource
from collector.sources.goalserve import GoalserveSource
from collector.sources.scoreleo import ScoreleoSource


def build_adapters(settings: Optional[CollectorSettings] = None) -> dict[SourceName, SourceAdapter]:
    """Instantiate the default adapter for every known source."""
    settings = settings or get_collector_settings()
    return {
        SourceName.FLASHSCORE: FlashscoreSource(settings),
        SourceName.SCORELEO: ScoreleoSource(settings),
        SourceName.GOALSERVE: GoalserveSource(settings),
    }
