"""
Fetch outcome schema and base source interface.
Every adapter returns exactly one of Snapshot, NotYetEligible or SourceError;
nothing raised inside an adapter escapes fetch().
"""
from __future__ import annotations

import abc
import asyncio
from dataclasses import dataclass
from typing import Union

import httpx
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from shared.models.enums import SourceName
from shared.utils.logging import get_logger
from shared.utils.metrics import SOURCE_FETCHES, SOURCE_LATENCY, atrack_latency

logger = get_logger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """The four reconciled fields as the source renders them (scores stay text)."""
    source: SourceName
    home_team: str
    home_score: str
    away_team: str
    away_score: str


@dataclass(frozen=True)
class NotYetEligible:
    """The source shows the match has not started or is already over."""
    source: SourceName
    reason: str = ""


@dataclass(frozen=True)
class SourceError:
    source: SourceName
    message: str


FetchOutcome = Union[Snapshot, NotYetEligible, SourceError]


def describe_error(exc: BaseException) -> str:
    """Human-readable failure reason; timeouts always start with 'timeout'."""
    if isinstance(exc, httpx.TimeoutException):
        return f"timeout: {exc}" if str(exc) else "timeout"
    if isinstance(exc, PlaywrightTimeoutError):
        return f"timeout: {str(exc).splitlines()[0] if str(exc) else 'page did not respond'}"
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "timeout"
    message = str(exc).strip()
    return message.splitlines()[0] if message else exc.__class__.__name__


def outcome_label(outcome: FetchOutcome) -> str:
    if isinstance(outcome, Snapshot):
        return "snapshot"
    if isinstance(outcome, NotYetEligible):
        return "not_yet_eligible"
    return "error"


class SourceAdapter(abc.ABC):
    """
    Base for browser-driven scrapers and JSON API sources.

    The base class converts any exception from _fetch into a SourceError and
    records latency and outcome metrics.
    """

    @property
    @abc.abstractmethod
    def source_name(self) -> SourceName:
        ...

    async def fetch(self, endpoint: str) -> FetchOutcome:
        """Fetch one observation of the match at ``endpoint``."""
        async with atrack_latency(SOURCE_LATENCY, source=self.source_name.value):
            try:
                outcome = await self._fetch(endpoint)
            except Exception as exc:
                outcome = SourceError(self.source_name, describe_error(exc))
                logger.warning(
                    "source_fetch_error",
                    source=self.source_name.value,
                    endpoint=endpoint,
                    error=outcome.message,
                )
        SOURCE_FETCHES.labels(source=self.source_name.value, outcome=outcome_label(outcome)).inc()
        return outcome

    @abc.abstractmethod
    async def _fetch(self, endpoint: str) -> FetchOutcome:
        """Source-specific fetch logic. May raise; fetch() converts failures."""
        ...
