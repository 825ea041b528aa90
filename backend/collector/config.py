"""
Collector service configuration.
Uses SW_COLLECTOR_ prefix; process-wide settings (logging, metrics) live in shared.config.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.models.enums import SourceName

DESKTOP_CHROME_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class CollectorSettings(BaseSettings):
    """Collector-specific settings."""

    model_config = SettingsConfigDict(
        env_prefix="SW_COLLECTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_parse_none_str="none",
        extra="ignore",
    )

    # Inputs and outputs
    matches_file: Path = Field(default=Path("matches.json"), description="JSON match list, re-read every cycle")
    output_dir: Path = Field(default=Path("files"), description="Directory holding one workbook per match")

    # Scheduling (seconds)
    poll_interval_s: float = Field(default=30.0, description="Start-to-start interval between cycles")
    between_matches_s: float = Field(default=2.0, description="Pause between consecutive matches")
    source_timeout_s: float = Field(default=150.0, description="Overall budget for one adapter fetch")

    # JSON source
    http_timeout_s: float = Field(default=30.0, description="Timeout for the authoritative API request")
    http_user_agent: str = DESKTOP_CHROME_UA

    # Browser automation
    browser_headless: bool = True
    browser_user_agent: str = DESKTOP_CHROME_UA
    viewport_width: int = 1920
    viewport_height: int = 1080
    navigation_timeout_ms: int = Field(default=120_000, description="page.goto timeout")
    selector_timeout_ms: int = Field(default=60_000, description="Content-ready selector timeout")
    field_timeout_ms: int = Field(default=5_000, description="Per-selector text read timeout")
    session_settle_s: float = Field(default=0.5, description="Pause before tearing a session down")

    # Source roles
    # "none" disables the lifecycle gate
    authoritative_source: Optional[SourceName] = SourceName.GOALSERVE
    primary_source: SourceName = SourceName.FLASHSCORE
    comparison_source: SourceName = SourceName.SCORELEO


@lru_cache(maxsize=1)
def get_collector_settings() -> CollectorSettings:
    """Load collector settings once per process."""
    return CollectorSettings()
