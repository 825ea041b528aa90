"""
Scoreleo match page scraper (secondary source).
The page is a client-side app; content needs a longer render pause than Flashscore.
"""
from __future__ import annotations

from shared.models.enums import SourceName

from collector.sources.browser import BrowserSourceAdapter, FieldStrategies


class ScoreleoSource(BrowserSourceAdapter):
    """Reads team names and the live score from a Scoreleo match URL."""

    content_ready_selector = ".home-team"
    render_pause_ms = 5000

    home_team = FieldStrategies("home team", (".home-team", "[class*='home-team-name']"))
    away_team = FieldStrategies("away team", (".away-team", "[class*='away-team-name']"))
    home_score = FieldStrategies("home score", (".home-team-score", "[class*='home-score']"))
    away_score = FieldStrategies("away score", (".away-team-score", "[class*='away-score']"))
    status = FieldStrategies("match status", (".match-status", "[class*='match-status']"))

    @property
    def source_name(self) -> SourceName:
        return SourceName.SCORELEO
