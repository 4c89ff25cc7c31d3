"""API route tests.

Routes run in-process over httpx's ASGI transport with the service
dependencies overridden, so no lifespan, Redis or network is involved.
"""

from types import SimpleNamespace

import httpx
import pytest

from tennisoracle.api.dependencies import get_orchestrator, get_registry, get_relay, get_storage
from tennisoracle.errors import AnalysisInProgressError
from tennisoracle.main import app
from tennisoracle.services.agent_registry import AgentRegistry
from tennisoracle.services.agents import StatsProvider
from tennisoracle.services.orchestrator import AnalysisOrchestrator
from tennisoracle.services.state_store import InMemoryStateStore
from tennisoracle.tasks import celery_app


class BusyOrchestrator:
    """Every run collides with one already in flight."""

    async def analyze_match(self, match):
        raise AnalysisInProgressError(match.id)


@pytest.fixture
async def services(storage, relay, failing_client):
    store = InMemoryStateStore()
    registry = AgentRegistry(store)
    await registry.initialize()
    orchestrator = AnalysisOrchestrator(
        storage=storage,
        registry=registry,
        state_store=store,
        completion_client=failing_client,
        relay=relay,
        stats=StatsProvider(seed=2),
    )
    return SimpleNamespace(storage=storage, registry=registry, orchestrator=orchestrator, relay=relay)


@pytest.fixture
async def api(services):
    app.dependency_overrides[get_storage] = lambda: services.storage
    app.dependency_overrides[get_registry] = lambda: services.registry
    app.dependency_overrides[get_orchestrator] = lambda: services.orchestrator
    app.dependency_overrides[get_relay] = lambda: services.relay
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class TestHealth:
    async def test_health(self, api):
        response = await api.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_ready_with_memory_backend(self, api):
        data = (await api.get("/ready")).json()
        assert data["ready"] is True
        assert data["checks"]["db"]["status"] == "ok"
        assert data["checks"]["redis"]["status"] == "skipped"
        assert data["checks"]["completion"]["status"] == "warning"


class TestPlayersAndMatches:
    async def test_top_players(self, api, players):
        response = await api.get("/api/players/top", params={"limit": 1})
        assert response.status_code == 200
        body = response.json()
        assert len(body) == 1
        assert body[0]["name"] == "Jannik Sinner"

    async def test_unknown_player(self, api):
        response = await api.get("/api/players/999")
        assert response.status_code == 404
        assert response.json() == {"error": "Player not found"}

    async def test_recent_matches(self, api, players, completed_match):
        player1, player2 = players
        await completed_match(player1, player2, days_ago=4, surface="clay")
        response = await api.get(f"/api/players/{player1.id}/recent-matches", params={"surface": "clay"})
        assert [m["winner_id"] for m in response.json()] == [player1.id]

    async def test_upcoming_and_get(self, api, match):
        upcoming = (await api.get("/api/matches/upcoming")).json()
        assert [m["id"] for m in upcoming] == [match.id]
        assert (await api.get(f"/api/matches/{match.id}")).json()["surface"] == "hard"
        assert (await api.get("/api/matches/999")).status_code == 404

    async def test_create_match_broadcasts(self, api, players, relay):
        player1, player2 = players
        response = await api.post(
            "/api/matches",
            json={"player1_id": player1.id, "player2_id": player2.id, "surface": "grass", "best_of": 5},
        )
        assert response.status_code == 201
        assert response.json()["status"] == "scheduled"
        assert relay.channels() == ["matches:new"]

    @pytest.mark.parametrize(
        "body",
        [
            {"player1_id": 1, "player2_id": 1, "surface": "hard"},
            {"player1_id": 1, "player2_id": 2, "surface": "carpet"},
            {"player1_id": 1},
        ],
    )
    async def test_create_match_validation(self, api, body):
        response = await api.post("/api/matches", json=body)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request data"
        assert response.json()["details"]


class TestPredictions:
    async def test_missing_match_id(self, api):
        response = await api.post("/api/predictions/analyze", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Match ID is required"}

    async def test_unknown_match(self, api):
        response = await api.post("/api/predictions/analyze", json={"matchId": 999})
        assert response.status_code == 404
        assert response.json() == {"error": "Match not found"}

    async def test_analyze_then_reuse(self, api, match, relay):
        first = await api.post("/api/predictions/analyze", json={"matchId": match.id})
        assert first.status_code == 200
        prediction = first.json()
        assert prediction["synthesis_method"] == "fallback"
        assert len(prediction["factor_analysis"]) == 19

        second = await api.post("/api/predictions/analyze", json={"matchId": match.id})
        assert second.json()["id"] == prediction["id"]
        assert relay.channels().count("analysis:completed") == 1

        stored = await api.get(f"/api/predictions/match/{match.id}")
        assert stored.json()["id"] == prediction["id"]
        assert len((await api.get("/api/predictions/recent")).json()) == 1

        rows = (await api.get(f"/api/agents/analysis/{match.id}")).json()
        assert len(rows) == 19

    async def test_force_refresh_reruns(self, api, match, relay):
        await api.post("/api/predictions/analyze", json={"matchId": match.id})
        await api.post("/api/predictions/analyze", json={"matchId": match.id, "forceRefresh": True})
        assert relay.channels().count("analysis:completed") == 2

    async def test_in_flight_run_is_a_server_error(self, api, match):
        app.dependency_overrides[get_orchestrator] = lambda: BusyOrchestrator()
        response = await api.post("/api/predictions/analyze", json={"matchId": match.id})
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to analyze match"}

    async def test_prediction_not_found(self, api):
        response = await api.get("/api/predictions/match/999")
        assert response.status_code == 404
        assert response.json() == {"error": "Prediction not found"}


class TestAgentsNewsSync:
    async def test_agent_status(self, api):
        statuses = (await api.get("/api/agents/status")).json()
        assert len(statuses) == 19
        assert statuses[-1]["name"] == "Data Gaps & Uncertainty Reporter"
        assert statuses[-1]["status"] == "idle"

    async def test_head_to_head_missing(self, api, players):
        player1, player2 = players
        response = await api.get(f"/api/head-to-head/{player1.id}/{player2.id}")
        assert response.status_code == 404

    async def test_news_endpoints_empty(self, api, players):
        player1, _ = players
        assert (await api.get("/api/news/recent")).json() == []
        assert (await api.get(f"/api/news/player/{player1.id}")).json() == []
        assert (await api.get("/api/news/injuries", params={"player_id": player1.id})).json() == []

    async def test_sync_enqueues(self, api, monkeypatch):
        sent = []

        def fake_send_task(name, kwargs=None):
            sent.append((name, kwargs))
            return SimpleNamespace(id="task-123")

        monkeypatch.setattr(celery_app, "send_task", fake_send_task)
        response = await api.post("/api/sync/matches", params={"tournament_id": 4})

        assert response.status_code == 202
        assert response.json() == {"message": "Match sync started", "task_id": "task-123"}
        assert sent == [("tennisoracle.tasks.sync.sync_matches", {"tournament_id": 4})]
