"""
Eligibility vocabulary shared by every source adapter.
A match is recordable between kickoff and the final whistle; text outside that
window resolves to NotYetEligible instead of a snapshot.
"""
from __future__ import annotations

import re

# Rendered before kickoff in place of a score
SCORE_PLACEHOLDERS: frozenset[str] = frozenset({"", "-", "–", "—", "?", "n/a"})

TERMINAL_STATUSES: frozenset[str] = frozenset({
    "finished",
    "ft",
    "full time",
    "full-time",
    "ended",
    "fin",
    "aet",
    "after extra time",
    "after penalties",
    "pen.",
    "awarded",
    "abandoned",
    "interrupted",
})

NOT_STARTED_STATUSES: frozenset[str] = frozenset({
    "not started",
    "ns",
    "scheduled",
    "postponed",
    "post.",
    "cancelled",
    "canceled",
    "canc.",
    "delayed",
    "tba",
    "time to be defined",
})

# Exact short codes and substrings that mean the ball is in play
_LIVE_CODES: frozenset[str] = frozenset({"ht", "et", "pen", "p", "bt", "break", "in play"})
_LIVE_SUBSTRINGS: tuple[str, ...] = ("live", "1st", "2nd", "half", "extra time", "penalt")
_MINUTE = re.compile(r"^\d{1,3}(\+\d{1,2})?'?$")


def normalize_status(text: object) -> str:
    return str(text or "").strip().lower()


def is_placeholder_score(text: object) -> bool:
    """True when the score field shows no goals have been counted yet."""
    return normalize_status(text) in SCORE_PLACEHOLDERS


def is_terminal_status(text: object) -> bool:
    return normalize_status(text) in TERMINAL_STATUSES


def is_not_started_status(text: object) -> bool:
    return normalize_status(text) in NOT_STARTED_STATUSES


def looks_live(text: object) -> bool:
    """True when a status string positively indicates play is under way."""
    status = normalize_status(text)
    if not status:
        return False
    if status in _LIVE_CODES or _MINUTE.match(status):
        return True
    return any(marker in status for marker in _LIVE_SUBSTRINGS)
