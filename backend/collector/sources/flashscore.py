"""
Flashscore match-detail page scraper (primary source).
The score header doubles as the eligibility signal: a dash before kickoff,
"Finished" in the status span after the final whistle.
"""
from __future__ import annotations

from shared.models.enums import SourceName

from collector.sources.browser import BrowserSourceAdapter, FieldStrategies

_PARTICIPANTS = "#detail > div.duelParticipant__container > div.duelParticipant"
_SCORE = f"{_PARTICIPANTS} > div.duelParticipant__score > div"
_NAME = "div.participant__participantNameWrapper > div.participant__participantName.participant__overflow > a"


class FlashscoreSource(BrowserSourceAdapter):
    """Reads team names and the live score from a Flashscore match URL."""

    content_ready_selector = "#detail"
    render_pause_ms = 2000

    home_team = FieldStrategies(
        "home team",
        (
            f"{_PARTICIPANTS} > div.duelParticipant__home > {_NAME}",
            "div.duelParticipant__home a.participant__participantName",
        ),
    )
    away_team = FieldStrategies(
        "away team",
        (
            f"{_PARTICIPANTS} > div.duelParticipant__away > {_NAME}",
            "div.duelParticipant__away a.participant__participantName",
        ),
    )
    home_score = FieldStrategies(
        "home score",
        (
            f"{_SCORE} > div.detailScore__wrapper > span:nth-child(1)",
            "div.detailScore__wrapper span:nth-child(1)",
        ),
    )
    away_score = FieldStrategies(
        "away score",
        (
            f"{_SCORE} > div.detailScore__wrapper > span:nth-child(3)",
            "div.detailScore__wrapper span:nth-child(3)",
        ),
    )
    status = FieldStrategies(
        "match status",
        (
            f"{_SCORE} > div.detailScore__status > span",
            "div.detailScore__status span",
        ),
    )

    @property
    def source_name(self) -> SourceName:
        return SourceName.FLASHSCORE
