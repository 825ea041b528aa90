"""
Tests for the lifecycle gate and the fetch orchestrator: settle-all fan-out,
per-source timeouts, skip semantics and reuse of the gate's snapshot.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest
from structlog.testing import capture_logs

from shared.models.domain import MatchConfig
from shared.models.enums import GateDecision, SourceName
from collector.gate import LifecycleGate
from collector.orchestrator import SKIP, FetchOrchestrator, ReconciledRecord
from collector.sources.base import NotYetEligible, Snapshot, SourceError

from fakes import RogueAdapter, StubAdapter, snap

FS, SL, GS = SourceName.FLASHSCORE, SourceName.SCORELEO, SourceName.GOALSERVE
NOW = datetime(2026, 10, 19, 20, 15, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_concurrency() -> None:
    StubAdapter.active = 0
    StubAdapter.max_active = 0


def _config(*sources: SourceName) -> MatchConfig:
    chosen = sources or (FS, SL, GS)
    return MatchConfig(name="Home FC - Away FC", sources={s: f"https://{s.value}.test/m/1" for s in chosen})


def _orchestrator(adapters: dict, timeout_s: float = 5.0) -> FetchOrchestrator:
    return FetchOrchestrator(adapters, primary=FS, source_timeout_s=timeout_s, clock=lambda: NOW)


# ── Gate ────────────────────────────────────────────────────────────────

class TestLifecycleGate:

    @pytest.mark.asyncio
    async def test_live_authoritative_proceeds_with_snapshot(self) -> None:
        gate = LifecycleGate({GS: StubAdapter(GS, snap(GS, "2", "1"))})

        verdict = await gate.decide(_config())

        assert verdict.proceed
        assert verdict.prefetched() == {GS: snap(GS, "2", "1")}

    @pytest.mark.asyncio
    async def test_not_eligible_skips(self) -> None:
        gate = LifecycleGate({GS: StubAdapter(GS, NotYetEligible(GS, "kickoff at 22:00"))})

        verdict = await gate.decide(_config())

        assert verdict.decision == GateDecision.SKIP
        assert verdict.prefetched() == {}

    @pytest.mark.asyncio
    async def test_authoritative_error_skips(self) -> None:
        gate = LifecycleGate({GS: StubAdapter(GS, SourceError(GS, "HTTP error 500"))})
        assert not (await gate.decide(_config())).proceed

    @pytest.mark.asyncio
    async def test_match_without_authoritative_endpoint_proceeds(self) -> None:
        adapter = StubAdapter(GS, snap(GS))
        verdict = await LifecycleGate({GS: adapter}).decide(_config(FS, SL))

        assert verdict.proceed
        assert adapter.calls == []

    @pytest.mark.asyncio
    async def test_gate_disabled(self) -> None:
        adapter = StubAdapter(GS, NotYetEligible(GS))
        verdict = await LifecycleGate({GS: adapter}, authoritative=None).decide(_config())

        assert verdict.proceed
        assert adapter.calls == []


# ── Orchestrator ────────────────────────────────────────────────────────

class TestFetchOrchestrator:

    @pytest.mark.asyncio
    async def test_all_sources_fetched_concurrently(self) -> None:
        adapters = {s: StubAdapter(s, snap(s), delay=0.05) for s in (FS, SL, GS)}

        record = await _orchestrator(adapters).run(_config())

        assert isinstance(record, ReconciledRecord)
        assert record.observed_at == NOW
        assert set(record.per_source) == {FS, SL, GS}
        assert StubAdapter.max_active == 3

    @pytest.mark.asyncio
    async def test_prefetched_source_is_not_refetched(self) -> None:
        goalserve = StubAdapter(GS, snap(GS, "9", "9"))
        adapters = {FS: StubAdapter(FS, snap(FS)), SL: StubAdapter(SL, snap(SL)), GS: goalserve}

        record = await _orchestrator(adapters).run(_config(), {GS: snap(GS, "2", "1")})

        assert goalserve.calls == []
        assert record.per_source[GS] == snap(GS, "2", "1")

    @pytest.mark.asyncio
    async def test_timeout_becomes_error_while_others_succeed(self) -> None:
        adapters = {
            FS: StubAdapter(FS, snap(FS, "2", "1")),
            SL: StubAdapter(SL, snap(SL), delay=1.0),
        }

        record = await _orchestrator(adapters, timeout_s=0.05).run(_config(FS, SL))

        assert isinstance(record, ReconciledRecord)
        assert record.per_source[FS] == snap(FS, "2", "1")
        scoreleo = record.per_source[SL]
        assert isinstance(scoreleo, SourceError)
        assert scoreleo.message == "timeout after 0.05s"

    @pytest.mark.asyncio
    async def test_adapter_exception_is_contained(self) -> None:
        adapters = {
            FS: StubAdapter(FS, snap(FS)),
            SL: StubAdapter(SL, exc=RuntimeError("selector engine crashed")),
        }

        record = await _orchestrator(adapters).run(_config(FS, SL))

        assert isinstance(record, ReconciledRecord)
        assert record.per_source[SL] == SourceError(SL, "selector engine crashed")

    @pytest.mark.asyncio
    async def test_contract_breaking_adapter_is_contained(self) -> None:
        adapters = {FS: StubAdapter(FS, snap(FS)), SL: RogueAdapter(SL, ValueError("bad state"))}

        record = await _orchestrator(adapters).run(_config(FS, SL))

        assert isinstance(record, ReconciledRecord)
        assert record.per_source[SL] == SourceError(SL, "bad state")
        assert isinstance(record.per_source[FS], Snapshot)

    @pytest.mark.asyncio
    async def test_primary_not_eligible_skips(self) -> None:
        adapters = {FS: StubAdapter(FS, NotYetEligible(FS, "not started")), SL: StubAdapter(SL, snap(SL))}
        assert await _orchestrator(adapters).run(_config(FS, SL)) is SKIP

    @pytest.mark.asyncio
    async def test_any_source_not_eligible_skips(self) -> None:
        adapters = {FS: StubAdapter(FS, snap(FS)), SL: StubAdapter(SL, NotYetEligible(SL, "finished"))}
        assert await _orchestrator(adapters).run(_config(FS, SL)) is SKIP

    @pytest.mark.asyncio
    async def test_missing_adapter_is_reported(self) -> None:
        record = await _orchestrator({FS: StubAdapter(FS, snap(FS))}).run(_config(FS, SL))

        assert isinstance(record, ReconciledRecord)
        assert record.per_source[SL] == SourceError(SL, "no adapter registered")

    @pytest.mark.asyncio
    async def test_only_configured_sources_are_fetched(self) -> None:
        scoreleo = StubAdapter(SL, snap(SL))
        record = await _orchestrator({FS: StubAdapter(FS, snap(FS)), SL: scoreleo}).run(_config(FS))

        assert isinstance(record, ReconciledRecord)
        assert list(record.per_source) == [FS]
        assert scoreleo.calls == []

    @pytest.mark.asyncio
    async def test_record_rows_follow_fixed_order(self) -> None:
        adapters = {s: StubAdapter(s, snap(s)) for s in (GS, SL, FS)}
        record = await _orchestrator(adapters).run(_config(GS, SL, FS))

        assert [s for s, _ in record.ordered()] == [FS, SL, GS]

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self) -> None:
        adapters = {FS: StubAdapter(FS, snap(FS), delay=5.0)}
        task = asyncio.create_task(_orchestrator(adapters).run(_config(FS)))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


@pytest.mark.asyncio
async def test_each_snapshot_is_logged() -> None:
    adapters = {
        FS: StubAdapter(FS, snap(FS, "2", "1")),
        SL: StubAdapter(SL, SourceError(SL, "HTTP error 502")),
    }

    with capture_logs() as logs:
        await _orchestrator(adapters).run(_config(FS, SL))

    snapshots = [e for e in logs if e["event"] == "source_snapshot"]
    assert len(snapshots) == 1
    assert snapshots[0]["log_level"] == "info"
    assert snapshots[0]["source"] == "flashscore"
    assert (snapshots[0]["home_score"], snapshots[0]["away_score"]) == ("2", "1")
