"""
Browser-driven scraping on Playwright.

Each fetch runs in its own short-lived session (driver, browser, context, page)
that is torn down on every exit path. Fields are read through ordered selector
strategies: the first selector that yields text wins.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncContextManager, AsyncIterator, Awaitable, Callable, Optional, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, async_playwright

from shared.utils.logging import get_logger
from shared.utils.metrics import BROWSER_SESSIONS

from collector.config import CollectorSettings, get_collector_settings
from collector.eligibility import is_placeholder_score, is_terminal_status
from collector.sources.base import FetchOutcome, NotYetEligible, Snapshot, SourceAdapter, SourceError, describe_error

logger = get_logger(__name__)

CHROMIUM_ARGS: list[str] = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-background-networking",
]

EXTRA_HEADERS: dict[str, str] = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
}

SessionFactory = Callable[[], AsyncContextManager[Any]]


@dataclass(frozen=True)
class BrowserOptions:
    headless: bool = True
    user_agent: str = ""
    viewport_width: int = 1920
    viewport_height: int = 1080
    settle_s: float = 0.5

    @classmethod
    def from_settings(cls, settings: CollectorSettings) -> "BrowserOptions":
        return cls(
            headless=settings.browser_headless,
            user_agent=settings.browser_user_agent,
            viewport_width=settings.viewport_width,
            viewport_height=settings.viewport_height,
            settle_s=settings.session_settle_s,
        )


async def _close_quietly(resource: str, close: Callable[[], Awaitable[None]]) -> None:
    try:
        await close()
    except Exception as exc:
        logger.debug("browser_close_failed", resource=resource, error=str(exc))


@asynccontextmanager
async def open_browser_session(options: BrowserOptions) -> AsyncIterator[Page]:
    """
    Launch an isolated Chromium session and yield its page.

    Teardown is unconditional: a short settle pause, then page, context,
    browser and driver are closed in that order. Close failures are logged
    and swallowed.
    """
    playwright = browser = context = page = None
    counted = False
    try:
        playwright = await async_playwright().start()
        browser = await playwright.chromium.launch(headless=options.headless, args=CHROMIUM_ARGS)
        BROWSER_SESSIONS.inc()
        counted = True
        context = await browser.new_context(
            viewport={"width": options.viewport_width, "height": options.viewport_height},
            user_agent=options.user_agent or None,
            extra_http_headers=EXTRA_HEADERS,
            ignore_https_errors=True,
        )
        page = await context.new_page()
        yield page
    finally:
        await asyncio.sleep(options.settle_s)
        if page is not None:
            await _close_quietly("page", page.close)
        if context is not None:
            await _close_quietly("context", context.close)
        if browser is not None:
            await _close_quietly("browser", browser.close)
        if playwright is not None:
            await _close_quietly("playwright", playwright.stop)
        if counted:
            BROWSER_SESSIONS.dec()


# ── Field extraction ────────────────────────────────────────────────────

@dataclass(frozen=True)
class FieldStrategies:
    """Ordered selectors for one field: primary first, then the fallback."""
    field: str
    selectors: tuple[str, ...]


@dataclass(frozen=True)
class ExtractionFailure:
    field: str
    tried: tuple[str, ...]
    error: str = ""

    def __str__(self) -> str:
        detail = f": {self.error}" if self.error else ""
        return f"{self.field} not found ({len(self.tried)} selectors tried){detail}"


async def try_extract(page: Any, strategies: FieldStrategies, timeout_ms: int) -> Union[str, ExtractionFailure]:
    """Return the stripped text of the first selector that resolves, else an ExtractionFailure."""
    last_error = ""
    for selector in strategies.selectors:
        try:
            text = await page.locator(selector).first.text_content(timeout=timeout_ms)
        except PlaywrightError as exc:
            last_error = describe_error(exc)
            continue
        if text is None:
            last_error = "element has no text"
            continue
        return text.strip()
    return ExtractionFailure(strategies.field, strategies.selectors, last_error)


# ── Adapter template ────────────────────────────────────────────────────

class BrowserSourceAdapter(SourceAdapter):
    """
    Template for page scrapers: load, pre-flight eligibility, then read the
    four fields. Subclasses declare selectors and the content-ready signal.
    """

    content_ready_selector: str
    render_pause_ms: int = 2000
    home_team: FieldStrategies
    away_team: FieldStrategies
    home_score: FieldStrategies
    away_score: FieldStrategies
    status: Optional[FieldStrategies] = None

    def __init__(
        self,
        settings: Optional[CollectorSettings] = None,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self._settings = settings or get_collector_settings()
        options = BrowserOptions.from_settings(self._settings)
        self._session_factory = session_factory or (lambda: open_browser_session(options))

    async def _fetch(self, endpoint: str) -> FetchOutcome:
        async with self._session_factory() as page:
            await self._load(page, endpoint)
            not_eligible = await self._preflight(page)
            if not_eligible is not None:
                logger.info(
                    "source_not_eligible",
                    source=self.source_name.value,
                    reason=not_eligible.reason,
                )
                return not_eligible
            return await self._read_snapshot(page)

    async def _load(self, page: Any, endpoint: str) -> None:
        await page.goto(endpoint, wait_until="domcontentloaded", timeout=self._settings.navigation_timeout_ms)
        # Scores are rendered client-side after the DOM is ready
        await page.wait_for_timeout(self.render_pause_ms)
        await page.wait_for_selector(self.content_ready_selector, timeout=self._settings.selector_timeout_ms)

    async def _preflight(self, page: Any) -> Optional[NotYetEligible]:
        score = await try_extract(page, self.home_score, self._settings.field_timeout_ms)
        if isinstance(score, ExtractionFailure):
            return NotYetEligible(self.source_name, "score not rendered")
        if is_placeholder_score(score):
            return NotYetEligible(self.source_name, f"not started (score {score!r})")
        if self.status is not None:
            status = await try_extract(page, self.status, self._settings.field_timeout_ms)
            if isinstance(status, str) and is_terminal_status(status):
                return NotYetEligible(self.source_name, f"finished ({status})")
        return None

    async def _read_snapshot(self, page: Any) -> FetchOutcome:
        timeout = self._settings.field_timeout_ms
        home_team = await try_extract(page, self.home_team, timeout)
        if isinstance(home_team, ExtractionFailure):
            return SourceError(self.source_name, str(home_team))
        away_team = await try_extract(page, self.away_team, timeout)
        if isinstance(away_team, ExtractionFailure):
            return SourceError(self.source_name, str(away_team))
        home_score = await try_extract(page, self.home_score, timeout)
        away_score = await try_extract(page, self.away_score, timeout)
        return Snapshot(
            source=self.source_name,
            home_team=home_team,
            home_score=home_score if isinstance(home_score, str) else "",
            away_team=away_team,
            away_score=away_score if isinstance(away_score, str) else "",
        )

