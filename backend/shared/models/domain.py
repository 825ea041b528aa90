"""
Pydantic v2 domain models shared across scorewatch services.
These are the canonical input representations read from the match list.
"""
from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shared.models.enums import SourceName

# Path separators, reserved filename characters and control characters
_UNSAFE_FILENAME = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')


def sanitize_match_name(name: str) -> str:
    """Map a match name to a filesystem-safe storage key."""
    return _UNSAFE_FILENAME.sub("_", name).strip()


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, frozen=True)


# ── Match configuration ─────────────────────────────────────────────────
class MatchConfig(DomainModel):
    """One tracked match and the endpoint each source should be polled at."""
    name: str = Field(min_length=1)
    sources: dict[SourceName, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def collect_flat_source_keys(cls, data: Any) -> Any:
        """Accept the flat ``{"name", "flashscore", "scoreleo", "goalserve"}`` form."""
        if not isinstance(data, dict):
            return data
        sources = dict(data.get("sources") or {})
        for source in SourceName:
            url = data.get(source.value)
            if url and source.value not in sources and source not in sources:
                sources[source.value] = url
        return {"name": data.get("name"), "sources": sources}

    @field_validator("name")
    @classmethod
    def name_must_be_storable(cls, v: str) -> str:
        if not sanitize_match_name(v):
            raise ValueError("match name is empty after sanitization")
        return v.strip()

    @field_validator("sources")
    @classmethod
    def drop_blank_endpoints(cls, v: dict[SourceName, str]) -> dict[SourceName, str]:
        cleaned = {k: url.strip() for k, url in v.items() if url and url.strip()}
        if not cleaned:
            raise ValueError("at least one source endpoint is required")
        return cleaned

    @property
    def storage_key(self) -> str:
        return sanitize_match_name(self.name)

    def endpoint(self, source: SourceName) -> str | None:
        return self.sources.get(source)
