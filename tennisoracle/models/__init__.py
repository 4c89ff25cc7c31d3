"""Database models for TennisOracle."""

from tennisoracle.models.base import Base, async_session_factory, engine
from tennisoracle.models.domain import (
    AgentAnalysis,
    HeadToHeadRecord,
    JobRun,
    Match,
    NewsArticle,
    Player,
    PlayerStats,
    Prediction,
    Tournament,
    User,
)

__all__ = [
    # Base
    "Base",
    "engine",
    "async_session_factory",
    # Domain models
    "User",
    "Player",
    "Tournament",
    "Match",
    "Prediction",
    "PlayerStats",
    "AgentAnalysis",
    "HeadToHeadRecord",
    "NewsArticle",
    "JobRun",
]
