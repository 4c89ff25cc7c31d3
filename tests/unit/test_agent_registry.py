"""Unit tests for the agent status registry and the in-memory state store."""

import pytest

from tennisoracle.config import Settings
from tennisoracle.services.agent_registry import AGENT_CATEGORIES, AgentRegistry, AgentState
from tennisoracle.services.state_store import (
    InMemoryStateStore,
    RedisStateStore,
    analysis_lock_key,
    build_state_store,
)


class TestInMemoryStateStore:
    """Markers and hashes."""

    def setup_method(self):
        self.store = InMemoryStateStore()

    async def test_acquire_is_exclusive(self):
        assert await self.store.acquire("k", ttl=60)
        assert not await self.store.acquire("k", ttl=60)
        await self.store.release("k")
        assert await self.store.acquire("k", ttl=60)

    async def test_marker_expires(self):
        assert await self.store.acquire("k", ttl=0)
        assert not await self.store.is_held("k")
        assert await self.store.acquire("k", ttl=60)

    async def test_hash_roundtrip(self):
        await self.store.hash_set("h", {"state": "idle"})
        assert await self.store.hash_incr("h", "count") == 1
        assert await self.store.hash_incr("h", "count", 2) == 3
        assert await self.store.hash_get_all("h") == {"state": "idle", "count": "3"}
        await self.store.delete("h")
        assert await self.store.hash_get_all("h") == {}


def test_lock_keys_are_per_match():
    assert analysis_lock_key(1) != analysis_lock_key(2)


def test_build_state_store_selects_backend():
    assert isinstance(build_state_store(Settings(state_backend="memory")), InMemoryStateStore)
    assert isinstance(
        build_state_store(Settings(state_backend="redis", redis_url="redis://localhost:6379/0")),
        RedisStateStore,
    )
    with pytest.raises(ValueError):
        build_state_store(Settings(state_backend="etcd"))


class TestAgentRegistry:
    """Status transitions and counters."""

    @pytest.fixture
    async def registry(self):
        registry = AgentRegistry(InMemoryStateStore())
        await registry.initialize()
        return registry

    async def test_nineteen_agents_in_six_categories(self, registry):
        statuses = await registry.statuses()
        assert len(statuses) == 19
        assert len(AGENT_CATEGORIES) == 6
        assert {s.category for s in statuses} == set(AGENT_CATEGORIES)
        assert all(s.state == AgentState.IDLE for s in statuses)
        assert statuses[0].name == "Recent Matches Analyst"

    async def test_successful_run(self, registry):
        await registry.mark_processing("Momentum Analyst")
        assert (await registry.get("Momentum Analyst")).state == AgentState.PROCESSING

        await registry.mark_active("Momentum Analyst")
        status = await registry.get("Momentum Analyst")
        assert status.state == AgentState.ACTIVE
        assert status.total_analyses == 1
        assert status.successful_analyses == 1
        assert status.accuracy == 100.0

    async def test_failed_run_counts_against_accuracy(self, registry):
        name = "News Monitor"
        await registry.mark_processing(name)
        await registry.mark_active(name)
        await registry.mark_processing(name)
        await registry.mark_error(name)

        status = await registry.get(name)
        assert status.state == AgentState.ERROR
        assert status.total_analyses == 2
        assert status.successful_analyses == 1
        assert status.accuracy == 50.0

    async def test_initialize_resets_counters(self, registry):
        await registry.mark_processing("Head-to-Head Analyst")
        await registry.initialize()
        status = await registry.get("Head-to-Head Analyst")
        assert status.total_analyses == 0
        assert status.accuracy == 0.0

    async def test_unknown_agent(self, registry):
        with pytest.raises(KeyError):
            await registry.mark_processing("Crystal Ball")

    async def test_status_dict(self, registry):
        data = (await registry.get("Tactical Battle Synthesizer")).to_dict()
        assert data["category"] == "matchup"
        assert data["status"] == "idle"
        assert data["last_activity"] is not None
