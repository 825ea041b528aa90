"""Exceptions raised inside the collector. Source failures are values, not exceptions."""
from __future__ import annotations


class CollectorError(Exception):
    """Base for collector failures caught at the per-match or per-cycle boundary."""


class PersistenceError(CollectorError):
    """The match workbook could not be opened or written."""


class ConfigError(CollectorError):
    """The match list is missing, unreadable or empty."""
