"""
Match list loader. The file is re-read every cycle so matches can be added or
removed without restarting the collector.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from shared.models.domain import MatchConfig
from shared.utils.logging import get_logger

from collector.errors import ConfigError

logger = get_logger(__name__)


def parse_matches(document: Any) -> list[MatchConfig]:
    """
    Build MatchConfigs from ``{"matches": [...]}`` (or a bare list).
    Invalid entries are skipped with a warning; order is preserved.
    """
    entries = document.get("matches") if isinstance(document, dict) else document
    if not isinstance(entries, list):
        raise ConfigError("match list must be a list under 'matches'")

    configs: list[MatchConfig] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        try:
            config = MatchConfig.model_validate(entry)
        except ValidationError as exc:
            logger.warning("match_entry_invalid", index=index, errors=exc.error_count(), error=str(exc).splitlines()[0])
            continue
        if config.storage_key in seen:
            # Two entries would append to the same workbook
            logger.warning("match_entry_duplicate", index=index, match=config.name)
            continue
        seen.add(config.storage_key)
        configs.append(config)

    if not configs:
        raise ConfigError("no valid matches configured")
    return configs


def load_matches(path: Path) -> list[MatchConfig]:
    """Read and validate the match list file; raises ConfigError on any failure."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path} is not valid JSON: {exc}") from exc
    return parse_matches(document)
