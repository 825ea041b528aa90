"""
Goalserve commentaries API source (authoritative).
Uses the structured JSON feed; no HTML scraping. Doubles as the lifecycle
pre-check because one request is far cheaper than a browser session.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx

from shared.models.enums import SourceName
from shared.utils.http_client import SourceHTTPClient
from shared.utils.logging import get_logger

from collector.config import CollectorSettings, get_collector_settings
from collector.eligibility import is_not_started_status, is_terminal_status, looks_live
from collector.sources.base import FetchOutcome, NotYetEligible, Snapshot, SourceAdapter, SourceError

logger = get_logger(__name__)

KICKOFF_FORMATS: tuple[str, ...] = (
    "%d.%m.%Y %H:%M",
    "%Y-%m-%d %H:%M",
    "%d/%m/%Y %H:%M",
    "%b %d %Y %H:%M",
    "%B %d %Y %H:%M",
)


class MalformedDocument(ValueError):
    pass


def _first(value: Any) -> Optional[dict[str, Any]]:
    """Goalserve renders single children as objects and repeated ones as lists."""
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, dict) else None


def _attr(obj: Optional[dict[str, Any]], *names: str) -> str:
    """First non-empty attribute, accepting both '@name' and 'name' keys."""
    if not obj:
        return ""
    for name in names:
        for key in (f"@{name}", name):
            value = obj.get(key)
            if value is not None and str(value).strip():
                return str(value).strip()
    return ""


def extract_match(document: Any) -> dict[str, Any]:
    """Locate commentaries > tournament > match, normalizing object-or-list nodes."""
    if not isinstance(document, dict):
        raise MalformedDocument("document is not a JSON object")
    commentaries = _first(document.get("commentaries"))
    tournament = _first(commentaries.get("tournament")) if commentaries else None
    match = _first(tournament.get("match")) if tournament else None
    if match is None:
        raise MalformedDocument("match object not found")
    return match


def parse_kickoff(date_text: str, time_text: str, now: datetime) -> Optional[datetime]:
    """Parse the feed's kickoff (UTC); a missing year is taken from ``now``."""
    if not date_text or not time_text:
        return None
    time_text = time_text[:5]
    for candidate in (f"{date_text} {time_text}", f"{date_text} {now.year} {time_text}"):
        for fmt in KICKOFF_FORMATS:
            try:
                return datetime.strptime(candidate, fmt).replace(tzinfo=timezone.utc)
            except ValueError:
                continue
    return None


class GoalserveSource(SourceAdapter):
    """Fetches one match from the Goalserve commentaries endpoint."""

    def __init__(
        self,
        settings: Optional[CollectorSettings] = None,
        http_client: Optional[SourceHTTPClient] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._settings = settings or get_collector_settings()
        self._http = http_client or SourceHTTPClient(
            SourceName.GOALSERVE.value,
            headers={"User-Agent": self._settings.http_user_agent, "Accept": "application/json"},
            timeout_s=self._settings.http_timeout_s,
        )
        self._clock = clock

    @property
    def source_name(self) -> SourceName:
        return SourceName.GOALSERVE

    async def _fetch(self, endpoint: str) -> FetchOutcome:
        try:
            document = await self._http.get_json(endpoint)
        except httpx.TimeoutException:
            return SourceError(self.source_name, f"timeout after {self._http.timeout_s:g}s")
        except httpx.HTTPStatusError as exc:
            return SourceError(self.source_name, f"HTTP error {exc.response.status_code}")
        except ValueError as exc:
            return SourceError(self.source_name, f"malformed document: {exc}")

        try:
            match = extract_match(document)
        except MalformedDocument as exc:
            return SourceError(self.source_name, f"malformed document: {exc}")
        return self._evaluate(match)

    def _evaluate(self, match: dict[str, Any]) -> FetchOutcome:
        status = _attr(match, "status", "time_status", "state")
        if is_terminal_status(status):
            return NotYetEligible(self.source_name, f"finished ({status})")
        if is_not_started_status(status):
            return NotYetEligible(self.source_name, f"not started ({status})")

        home = _first(match.get("localteam"))
        away = _first(match.get("visitorteam"))
        home_score = _attr(home, "goals")
        away_score = _attr(away, "goals")

        if not looks_live(status):
            now = self._clock()
            kickoff = parse_kickoff(
                _attr(match, "formatted_date", "date"),
                _attr(match, "time"),
                now,
            )
            if kickoff is not None and kickoff > now:
                return NotYetEligible(self.source_name, f"kickoff at {kickoff.isoformat()}")
            if not home_score and not away_score:
                return NotYetEligible(self.source_name, f"no score and no live status ({status or 'unknown'})")

        logger.debug("goalserve_match_live", status=status or "unknown")
        return Snapshot(
            source=self.source_name,
            home_team=_attr(home, "name"),
            home_score=home_score,
            away_team=_attr(away, "name"),
            away_score=away_score,
        )
