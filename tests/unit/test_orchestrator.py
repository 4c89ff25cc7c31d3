"""Unit tests for the analysis orchestrator."""

import asyncio
import json

import pytest

from tennisoracle.errors import AnalysisInProgressError, PlayerNotFoundError
from tennisoracle.services.agent_registry import AgentRegistry, AgentState
from tennisoracle.services.agents import StatsProvider
from tennisoracle.services.orchestrator import AnalysisOrchestrator, gather_or_cancel, json_safe
from tennisoracle.services.state_store import InMemoryStateStore, analysis_lock_key


class BlockingCompletionClient:
    """Holds every completion call until released, then fails it."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def complete(self, prompt, **kwargs):
        self.started.set()
        await self.release.wait()
        raise RuntimeError("completion unavailable")


@pytest.fixture
async def registry_and_store():
    store = InMemoryStateStore()
    registry = AgentRegistry(store)
    await registry.initialize()
    return registry, store


def build(storage, registry_and_store, client, relay):
    registry, store = registry_and_store
    return AnalysisOrchestrator(
        storage=storage,
        registry=registry,
        state_store=store,
        completion_client=client,
        relay=relay,
        stats=StatsProvider(seed=5),
    )


class TestAnalyzeMatch:
    """End-to-end runs against an in-memory database."""

    async def test_fallback_prediction_is_persisted(
        self, storage, registry_and_store, failing_client, relay, match
    ):
        orchestrator = build(storage, registry_and_store, failing_client, relay)
        prediction = await orchestrator.analyze_match(match)

        assert prediction.match_id == match.id
        assert prediction.synthesis_method == "fallback"
        assert prediction.predicted_winner_id in (match.player1_id, match.player2_id)
        assert 0.5 <= prediction.win_probability <= 0.9
        assert len(prediction.factor_analysis) == 19
        assert set(prediction.agent_contributions) >= {
            "recent_performance",
            "surface_environment",
            "statistical",
            "physical_condition",
            "matchup",
            "contextual",
            "key_factors",
        }

        rows = await storage.get_analysis_by_match(match.id)
        assert len(rows) == 19
        assert {row.agent_type for row in rows} == {
            "recent_performance",
            "surface_environment",
            "statistical",
            "physical_condition",
            "matchup",
            "contextual",
        }

        assert relay.channels() == ["analysis:started", "analysis:completed"]
        completed = relay.events[-1][1]
        assert completed["matchId"] == match.id
        assert completed["prediction"]["id"] == prediction.id

    async def test_registry_tracks_failures(
        self, storage, registry_and_store, failing_client, relay, match
    ):
        registry, _ = registry_and_store
        await build(storage, registry_and_store, failing_client, relay).analyze_match(match)

        serve = await registry.get("Service Performance Analyst")
        assert serve.state == AgentState.ERROR
        assert serve.total_analyses == 1
        assert serve.successful_analyses == 0

        momentum = await registry.get("Momentum Analyst")
        assert momentum.state == AgentState.ACTIVE
        assert momentum.successful_analyses == 1

    async def test_llm_synthesis(self, storage, registry_and_store, canned_client, relay, match):
        reply = json.dumps(
            {
                "predictedWinner": "player1",
                "winProbability": 0.62,
                "confidenceLevel": 0.71,
                "reasoning": "Sharper recent form",
                "keyFactors": ["Factor 1.2 (Momentum & Consistency)"],
            }
        )
        orchestrator = build(storage, registry_and_store, canned_client(reply), relay)
        prediction = await orchestrator.analyze_match(match)

        assert prediction.synthesis_method == "llm"
        assert prediction.predicted_winner_id == match.player1_id
        assert prediction.win_probability == pytest.approx(0.62)
        assert prediction.agent_contributions["key_factors"] == ["Factor 1.2 (Momentum & Consistency)"]

    async def test_rerun_updates_existing_prediction(
        self, storage, registry_and_store, failing_client, relay, match
    ):
        orchestrator = build(storage, registry_and_store, failing_client, relay)
        first = await orchestrator.analyze_match(match)
        second = await orchestrator.analyze_match(match)
        assert first.id == second.id

    async def test_lock_released_after_run(
        self, storage, registry_and_store, failing_client, relay, match
    ):
        _, store = registry_and_store
        await build(storage, registry_and_store, failing_client, relay).analyze_match(match)
        assert not await store.is_held(analysis_lock_key(match.id))


class TestInFlightGuard:
    """At most one run per match."""

    async def test_second_concurrent_call_is_rejected(
        self, storage, registry_and_store, relay, match
    ):
        client = BlockingCompletionClient()
        orchestrator = build(storage, registry_and_store, client, relay)

        first = asyncio.create_task(orchestrator.analyze_match(match))
        await asyncio.wait_for(client.started.wait(), timeout=5)

        with pytest.raises(AnalysisInProgressError):
            await orchestrator.analyze_match(match)

        client.release.set()
        prediction = await asyncio.wait_for(first, timeout=10)
        assert prediction.synthesis_method == "fallback"

    async def test_held_marker_rejects(self, storage, registry_and_store, failing_client, relay, match):
        _, store = registry_and_store
        await store.acquire(analysis_lock_key(match.id), ttl=60)
        with pytest.raises(AnalysisInProgressError):
            await build(storage, registry_and_store, failing_client, relay).analyze_match(match)
        assert relay.events == []

    async def test_missing_player_releases_lock(
        self, storage, registry_and_store, failing_client, relay, match
    ):
        _, store = registry_and_store
        match.player2_id = 9999
        with pytest.raises(PlayerNotFoundError):
            await build(storage, registry_and_store, failing_client, relay).analyze_match(match)
        assert not await store.is_held(analysis_lock_key(match.id))


def test_json_safe_converts_datetimes():
    from datetime import datetime, timezone

    value = json_safe({"when": datetime(2026, 1, 2, tzinfo=timezone.utc), "n": [1, 2]})
    assert value == {"when": "2026-01-02 00:00:00+00:00", "n": [1, 2]}


class TestAgentGroups:
    """Grouping and failure policy."""

    async def test_data_gaps_reporter_sees_failed_agents(
        self, storage, registry_and_store, failing_client, relay, match, players
    ):
        player1, player2 = players
        orchestrator = build(storage, registry_and_store, failing_client, relay)
        results = await orchestrator.run_agent_groups(match, player1, player2)

        news, gaps = results["contextual"]
        assert news.agent_name == "News Monitor"
        assert gaps.agent_name == "Data Gaps & Uncertainty Reporter"
        assert "Unable to complete Factor 3.1 (Serve Performance) analysis" in gaps.analysis["data_gaps"]
        assert "Unable to complete Factor 6.1 (Recent News & Context) analysis" in gaps.analysis["data_gaps"]
        failed = [f for group in results.values() for f in group if f.failed]
        assert sum("Unable to complete" in gap for gap in gaps.analysis["data_gaps"]) == len(failed)

    async def test_raising_agent_cancels_its_siblings(
        self, storage, registry_and_store, failing_client, relay, match, players
    ):
        registry, _ = registry_and_store
        orchestrator = build(storage, registry_and_store, failing_client, relay)
        sibling_started = asyncio.Event()
        sibling_cancelled = asyncio.Event()

        async def explode(match, player1, player2):
            await sibling_started.wait()
            raise RuntimeError("boom")

        async def hang(match, player1, player2):
            sibling_started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                sibling_cancelled.set()
                raise

        explode.agent_name = "Service Performance Analyst"
        hang.agent_name = "Return Performance Analyst"

        with pytest.raises(RuntimeError, match="boom"):
            await asyncio.wait_for(
                orchestrator._run_group([explode, hang], (match, *players)), timeout=5
            )

        assert sibling_cancelled.is_set()
        assert (await registry.get("Service Performance Analyst")).state == AgentState.ERROR
        assert (await registry.get("Return Performance Analyst")).state == AgentState.ERROR


async def test_gather_or_cancel_keeps_order():
    async def value(n):
        await asyncio.sleep(0.01 * (3 - n))
        return n

    assert await gather_or_cancel(value(1), value(2), value(3)) == [1, 2, 3]
