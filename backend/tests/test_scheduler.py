"""
Tests for the collection loop: end-to-end match cycles against stub adapters
and a real workbook, sequential processing, graceful stop and failure isolation.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import pytest
from openpyxl import load_workbook

from shared.models.domain import MatchConfig
from shared.models.enums import CycleResult, SourceName
from collector.config import CollectorSettings
from collector.errors import ConfigError
from collector.gate import LifecycleGate
from collector.orchestrator import FetchOrchestrator
from collector.scheduler import CollectorScheduler
from collector.sources.base import NotYetEligible, SourceError
from collector.store import SHEET_TITLE, AppendStore

from fakes import StubAdapter, snap

FS, SL, GS = SourceName.FLASHSCORE, SourceName.SCORELEO, SourceName.GOALSERVE
NOW = datetime(2026, 10, 19, 20, 15, tzinfo=timezone.utc)
RED = "FFFF0000"


@pytest.fixture(autouse=True)
def reset_concurrency() -> None:
    StubAdapter.active = 0
    StubAdapter.max_active = 0


def _match(name: str = "Home FC - Away FC") -> MatchConfig:
    return MatchConfig(name=name, sources={s: f"https://{s.value}.test/{name}" for s in (FS, SL, GS)})


def _scheduler(
    tmp_path: Path,
    adapters: dict,
    matches: Optional[list[MatchConfig]] = None,
    loader: Optional[Callable[[], list[MatchConfig]]] = None,
    timeout_s: float = 5.0,
    poll_interval_s: float = 30.0,
) -> CollectorScheduler:
    settings = CollectorSettings(poll_interval_s=poll_interval_s, between_matches_s=0, source_timeout_s=timeout_s)
    return CollectorScheduler(
        LifecycleGate(adapters, authoritative=GS),
        FetchOrchestrator(adapters, primary=FS, source_timeout_s=timeout_s, clock=lambda: NOW),
        AppendStore(tmp_path, primary=FS),
        load_matches=loader or (lambda: list(matches or [_match()])),
        settings=settings,
    )


def _rows(path: Path) -> list[tuple]:
    sheet = load_workbook(path)[SHEET_TITLE]
    return [tuple(c.value for c in row) for row in sheet.iter_rows(min_row=1, max_row=sheet.max_row)]


# ── Single match cycle ──────────────────────────────────────────────────

class TestProcessMatch:

    @pytest.mark.asyncio
    async def test_authoritative_not_started_skips_without_browser_or_write(self, tmp_path: Path) -> None:
        adapters = {
            FS: StubAdapter(FS, NotYetEligible(FS, "not started (score '-')")),
            SL: StubAdapter(SL, SourceError(SL, "net::ERR_CONNECTION_REFUSED")),
            GS: StubAdapter(GS, NotYetEligible(GS, "kickoff at 2026-10-19T22:15:00+00:00")),
        }
        scheduler = _scheduler(tmp_path, adapters)

        result = await scheduler.process_match(_match())

        assert result == CycleResult.SKIPPED
        assert adapters[FS].calls == []
        assert adapters[SL].calls == []
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_primary_not_started_skips_without_write(self, tmp_path: Path) -> None:
        adapters = {
            FS: StubAdapter(FS, NotYetEligible(FS, "not started (score '-')")),
            SL: StubAdapter(SL, SourceError(SL, "net::ERR_CONNECTION_REFUSED")),
            GS: StubAdapter(GS, snap(GS, "0", "0")),
        }
        result = await _scheduler(tmp_path, adapters).process_match(_match())

        assert result == CycleResult.SKIPPED
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_discrepancy_recorded_with_primary_row_flagged(self, tmp_path: Path) -> None:
        adapters = {
            FS: StubAdapter(FS, snap(FS, "2", "1")),
            SL: StubAdapter(SL, snap(SL, "2", "2")),
            GS: StubAdapter(GS, snap(GS, "2", "1")),
        }

        result = await _scheduler(tmp_path, adapters).process_match(_match())

        assert result == CycleResult.RECORDED
        path = tmp_path / "Home FC - Away FC.xlsx"
        rows = _rows(path)
        assert [r[0] for r in rows[1:]] == ["Flashscore", "Scoreleo", "Goalserve"]
        assert [(r[2], r[4]) for r in rows[1:]] == [("2", "1"), ("2", "2"), ("2", "1")]
        sheet = load_workbook(path)[SHEET_TITLE]
        assert all(c.fill.fgColor.rgb == RED for c in sheet[2])
        assert all(c.fill.fgColor.rgb != RED for c in sheet[3])
        assert all(c.fill.fgColor.rgb != RED for c in sheet[4])
        # Goalserve was fetched once, by the gate
        assert len(adapters[GS].calls) == 1

    @pytest.mark.asyncio
    async def test_slow_source_recorded_as_timeout(self, tmp_path: Path) -> None:
        adapters = {
            FS: StubAdapter(FS, snap(FS, "1", "0")),
            SL: StubAdapter(SL, snap(SL, "1", "0"), delay=1.0),
            GS: StubAdapter(GS, snap(GS, "1", "0")),
        }

        result = await _scheduler(tmp_path, adapters, timeout_s=0.05).process_match(_match())

        assert result == CycleResult.RECORDED
        scoreleo = _rows(tmp_path / "Home FC - Away FC.xlsx")[2]
        assert scoreleo[:5] == ("Scoreleo", "-", "-", "-", "-")
        assert "timeout" in scoreleo[6]

    @pytest.mark.asyncio
    async def test_unwritable_workbook_is_a_failed_cycle(self, tmp_path: Path) -> None:
        (tmp_path / "Home FC - Away FC.xlsx").write_bytes(b"garbage")
        adapters = {s: StubAdapter(s, snap(s)) for s in (FS, SL, GS)}

        result = await _scheduler(tmp_path, adapters).process_match(_match())

        assert result == CycleResult.FAILED


# ── Cycles ──────────────────────────────────────────────────────────────

class TestRunCycle:

    @pytest.mark.asyncio
    async def test_matches_processed_sequentially(self, tmp_path: Path) -> None:
        adapters = {s: StubAdapter(s, snap(s), delay=0.02) for s in (FS, SL, GS)}
        matches = [_match("Match A"), _match("Match B"), _match("Match C")]

        summary = await _scheduler(tmp_path, adapters, matches).run_cycle()

        assert summary[CycleResult.RECORDED] == 3
        # Only one match's browser sources are ever in flight together
        assert StubAdapter.max_active == 2
        assert sorted(p.name for p in tmp_path.iterdir()) == ["Match A.xlsx", "Match B.xlsx", "Match C.xlsx"]

    @pytest.mark.asyncio
    async def test_persistence_failure_does_not_stop_next_match(self, tmp_path: Path) -> None:
        (tmp_path / "Match A.xlsx").write_bytes(b"garbage")
        adapters = {s: StubAdapter(s, snap(s)) for s in (FS, SL, GS)}

        summary = await _scheduler(tmp_path, adapters, [_match("Match A"), _match("Match B")]).run_cycle()

        assert summary[CycleResult.FAILED] == 1
        assert summary[CycleResult.RECORDED] == 1
        assert (tmp_path / "Match B.xlsx").exists()

    @pytest.mark.asyncio
    async def test_unavailable_match_list_is_a_no_op(self, tmp_path: Path) -> None:
        def loader() -> list[MatchConfig]:
            raise ConfigError("cannot read matches.json")

        adapters = {s: StubAdapter(s, snap(s)) for s in (FS, SL, GS)}
        summary = await _scheduler(tmp_path, adapters, loader=loader).run_cycle()

        assert sum(summary.values()) == 0
        assert all(a.calls == [] for a in adapters.values())

    @pytest.mark.asyncio
    async def test_stop_drains_current_match_only(self, tmp_path: Path) -> None:
        holder: dict[str, CollectorScheduler] = {}
        adapters = {
            FS: StubAdapter(FS, snap(FS), on_fetch=lambda: holder["s"].stop()),
            SL: StubAdapter(SL, snap(SL)),
            GS: StubAdapter(GS, snap(GS)),
        }
        scheduler = _scheduler(tmp_path, adapters, [_match("Match A"), _match("Match B")])
        holder["s"] = scheduler

        summary = await scheduler.run_cycle()

        assert summary == {CycleResult.RECORDED: 1}
        assert scheduler.stopping
        assert [p.name for p in tmp_path.iterdir()] == ["Match A.xlsx"]


# ── Loop ────────────────────────────────────────────────────────────────

class TestRun:

    @pytest.mark.asyncio
    async def test_stop_ends_loop_without_waiting_for_interval(self, tmp_path: Path) -> None:
        holder: dict[str, CollectorScheduler] = {}
        adapters = {
            FS: StubAdapter(FS, snap(FS), on_fetch=lambda: holder["s"].stop()),
            SL: StubAdapter(SL, snap(SL)),
            GS: StubAdapter(GS, snap(GS)),
        }
        scheduler = _scheduler(tmp_path, adapters, poll_interval_s=3600)
        holder["s"] = scheduler

        await asyncio.wait_for(scheduler.run(), timeout=5)

        assert len(adapters[FS].calls) == 1

    @pytest.mark.asyncio
    async def test_stop_interrupts_the_interval_sleep(self, tmp_path: Path) -> None:
        adapters = {s: StubAdapter(s, snap(s)) for s in (FS, SL, GS)}
        scheduler = _scheduler(tmp_path, adapters, poll_interval_s=3600)

        task = asyncio.create_task(scheduler.run())
        await asyncio.sleep(0.1)
        scheduler.stop()
        await asyncio.wait_for(task, timeout=5)

        assert len(adapters[FS].calls) == 1

    @pytest.mark.asyncio
    async def test_unexpected_cycle_error_does_not_end_loop(self, tmp_path: Path) -> None:
        calls: list[int] = []
        holder: dict[str, CollectorScheduler] = {}

        def loader() -> list[MatchConfig]:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("disk vanished")
            holder["s"].stop()
            raise ConfigError("no valid matches configured")

        adapters = {s: StubAdapter(s, snap(s)) for s in (FS, SL, GS)}
        scheduler = _scheduler(tmp_path, adapters, loader=loader, poll_interval_s=0.01)
        holder["s"] = scheduler

        await asyncio.wait_for(scheduler.run(), timeout=5)

        assert len(calls) == 2
