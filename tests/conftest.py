"""Pytest configuration and fixtures for TennisOracle tests."""

import os

# Must be set before tennisoracle modules build their engine and settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STATE_BACKEND"] = "memory"
os.environ["OPENAI_API_KEY"] = ""
os.environ["NEWS_API_KEY"] = ""

from datetime import date, datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402

from tennisoracle.models.base import Base, get_engine, get_session_factory  # noqa: E402
from tennisoracle.services.completion import (  # noqa: E402
    CompletionError,
    CompletionErrorType,
    CompletionResult,
)
from tennisoracle.services.storage import TennisStorage  # noqa: E402


class FailingCompletionClient:
    """Completion client whose every call fails like an unreachable API."""

    def __init__(self):
        self.calls = 0

    async def complete(self, prompt, **kwargs):
        self.calls += 1
        raise CompletionError("Completion API returned 503", CompletionErrorType.SERVICE_UNAVAILABLE, True)


class CannedCompletionClient:
    """Completion client that replays fixed replies, repeating the last one."""

    def __init__(self, *replies: str):
        self.replies = list(replies)
        self.prompts: list[str] = []

    async def complete(self, prompt, **kwargs):
        self.prompts.append(prompt)
        text = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        return CompletionResult(text=text, model="test-model")


class RecordingRelay:
    """Stand-in relay that keeps every broadcast."""

    def __init__(self):
        self.events: list[tuple[str, object]] = []

    async def broadcast(self, channel, data):
        self.events.append((channel, data))
        return 0

    def channels(self) -> list[str]:
        return [channel for channel, _ in self.events]


@pytest.fixture
def failing_client():
    return FailingCompletionClient()


@pytest.fixture
def canned_client():
    def build(*replies: str) -> CannedCompletionClient:
        return CannedCompletionClient(*replies)

    return build


@pytest.fixture
def relay():
    return RecordingRelay()


@pytest.fixture
async def db_engine():
    engine = get_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory(db_engine)


@pytest.fixture
def storage(session_factory):
    return TennisStorage(session_factory)


@pytest.fixture
async def players(storage):
    """Two ranked players with full profiles."""
    player1 = await storage.create_player(
        name="Carlos Alcaraz",
        nationality="ESP",
        birth_date=date(2003, 5, 5),
        ranking=2,
        playing_style="Aggressive Baseliner",
        preferred_surface="clay",
        fitness_level="excellent",
    )
    player2 = await storage.create_player(
        name="Jannik Sinner",
        nationality="ITA",
        birth_date=date(2001, 8, 16),
        ranking=1,
        playing_style="Aggressive Baseliner",
        preferred_surface="hard",
        fitness_level="excellent",
    )
    return player1, player2


@pytest.fixture
async def match(storage, players):
    """Scheduled hard-court match between the two players."""
    player1, player2 = players
    return await storage.create_match(
        player1_id=player1.id,
        player2_id=player2.id,
        scheduled_time=datetime.now(timezone.utc) + timedelta(days=1),
        status="scheduled",
        surface="hard",
        round="Final",
        best_of=3,
    )


@pytest.fixture
def completed_match(storage):
    """Factory for completed matches, ``days_ago`` days in the past."""

    async def build(winner, loser, days_ago: int, surface: str = "hard", score: str = "6-4, 6-4"):
        finished = datetime.now(timezone.utc) - timedelta(days=days_ago)
        return await storage.create_match(
            player1_id=winner.id,
            player2_id=loser.id,
            scheduled_time=finished - timedelta(hours=2),
            completed_time=finished,
            status="completed",
            winner_id=winner.id,
            score=score,
            surface=surface,
            round="Quarterfinal",
        )

    return build
