"""Named agent registry with per-agent status.

Status transitions:
    idle | active | error  -> processing   (run starts, total_analyses += 1)
    processing             -> active       (run succeeded, successful_analyses += 1)
    processing             -> error        (run raised)

State lives in a StateStore so every instance sees the same statuses.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog

from tennisoracle.services.state_store import StateStore, agent_status_key

logger = structlog.get_logger(__name__)


class AgentState(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    ACTIVE = "active"
    ERROR = "error"


# Category -> agent names, in orchestration order
AGENT_CATEGORIES: dict[str, list[str]] = {
    "recent_performance": [
        "Recent Matches Analyst",
        "Momentum Analyst",
        "Clutch Performance Analyst",
    ],
    "surface_environment": [
        "Surface Suitability Analyst",
        "Environment Analyst",
    ],
    "statistical": [
        "Service Performance Analyst",
        "Return Performance Analyst",
        "Rally & Point Construction Analyst",
        "Pressure Statistics Analyst",
        "Statistical Trend Analyst",
    ],
    "physical_condition": [
        "Recent Schedule Burden Analyst",
        "Recent Match Physical Toll Analyst",
        "Injury & Fitness Status Monitor",
        "Age & Endurance Profiler",
    ],
    "matchup": [
        "Playing Style Profiler",
        "Head-to-Head Analyst",
        "Tactical Battle Synthesizer",
    ],
    "contextual": [
        "News Monitor",
        "Data Gaps & Uncertainty Reporter",
    ],
}


@dataclass
class AgentStatus:
    """Snapshot of one agent's status."""

    name: str
    category: str
    state: AgentState
    last_activity: datetime | None
    total_analyses: int = 0
    successful_analyses: int = 0

    @property
    def accuracy(self) -> float:
        """Percentage of runs that completed without raising."""
        if self.total_analyses == 0:
            return 0.0
        return round(self.successful_analyses / self.total_analyses * 100, 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "status": self.state.value,
            "last_activity": self.last_activity.isoformat() if self.last_activity else None,
            "total_analyses": self.total_analyses,
            "successful_analyses": self.successful_analyses,
            "accuracy": self.accuracy,
        }


class AgentRegistry:
    """Fixed registry of named agents backed by a StateStore."""

    def __init__(
        self,
        store: StateStore,
        categories: dict[str, list[str]] | None = None,
    ):
        self.store = store
        self.categories = categories or AGENT_CATEGORIES
        self._category_of = {
            name: category
            for category, names in self.categories.items()
            for name in names
        }

    @property
    def agent_names(self) -> list[str]:
        return list(self._category_of)

    def category_of(self, agent_name: str) -> str:
        try:
            return self._category_of[agent_name]
        except KeyError:
            raise KeyError(f"Unknown agent: {agent_name}") from None

    async def initialize(self) -> None:
        """Reset every agent to idle with zeroed counters."""
        now = _now_iso()
        for name, category in self._category_of.items():
            key = agent_status_key(name)
            await self.store.delete(key)
            await self.store.hash_set(
                key,
                {
                    "category": category,
                    "state": AgentState.IDLE.value,
                    "last_activity": now,
                    "total_analyses": "0",
                    "successful_analyses": "0",
                },
            )
        logger.info("agent_registry_initialized", agents=len(self._category_of))

    async def mark_processing(self, agent_name: str) -> None:
        key = self._key(agent_name)
        await self.store.hash_set(
            key, {"state": AgentState.PROCESSING.value, "last_activity": _now_iso()}
        )
        await self.store.hash_incr(key, "total_analyses")

    async def mark_active(self, agent_name: str) -> None:
        key = self._key(agent_name)
        await self.store.hash_set(
            key, {"state": AgentState.ACTIVE.value, "last_activity": _now_iso()}
        )
        await self.store.hash_incr(key, "successful_analyses")

    async def mark_error(self, agent_name: str) -> None:
        await self.store.hash_set(
            self._key(agent_name),
            {"state": AgentState.ERROR.value, "last_activity": _now_iso()},
        )

    async def get(self, agent_name: str) -> AgentStatus:
        fields = await self.store.hash_get_all(self._key(agent_name))
        return self._to_status(agent_name, fields)

    async def statuses(self) -> list[AgentStatus]:
        """All agent statuses in registry order."""
        return [await self.get(name) for name in self._category_of]

    def _key(self, agent_name: str) -> str:
        self.category_of(agent_name)
        return agent_status_key(agent_name)

    def _to_status(self, agent_name: str, fields: dict[str, str]) -> AgentStatus:
        last_activity = fields.get("last_activity")
        return AgentStatus(
            name=agent_name,
            category=fields.get("category", self._category_of[agent_name]),
            state=AgentState(fields.get("state", AgentState.IDLE.value)),
            last_activity=datetime.fromisoformat(last_activity) if last_activity else None,
            total_analyses=int(fields.get("total_analyses", "0")),
            successful_analyses=int(fields.get("successful_analyses", "0")),
        )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
