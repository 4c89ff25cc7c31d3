"""Shared building blocks for the analysis agents.

Each agent method returns a FactorOutcome; the ``factor_agent`` decorator
turns it into an immutable FactorResult, records processing time, and
downgrades any exception to a zero-confidence "Analysis Error" record.
"""

import functools
import json
import re
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ValidationError

from tennisoracle.config import Settings, get_settings
from tennisoracle.models.domain import Match, Player

logger = structlog.get_logger(__name__)


class Advantage(str, Enum):
    PLAYER1 = "player1"
    PLAYER2 = "player2"
    NONE = "none"
    SLIGHT_PLAYER1 = "slight_player1"
    SLIGHT_PLAYER2 = "slight_player2"


PLAYER1_ADVANTAGES = {Advantage.PLAYER1.value, Advantage.SLIGHT_PLAYER1.value}
PLAYER2_ADVANTAGES = {Advantage.PLAYER2.value, Advantage.SLIGHT_PLAYER2.value}

NO_CLEAR_ADVANTAGE = "No Clear Advantage"
ANALYSIS_ERROR = "Analysis Error"

ADVANTAGE_MARKER = re.compile(
    r"\*\*Advantage Player ([12])\*\*"
    r"|\*\*Slight Advantage Player ([12])\*\*"
    r"|\*\*No Clear Advantage\*\*",
    re.IGNORECASE,
)

FACTOR_SYSTEM_PROMPT = """You are a specialized tennis analyst focusing on {factor}.
Provide objective, data-driven analysis following these rules:
1. Base conclusions strictly on the provided data
2. Be concise but thorough
3. Avoid speculation or betting references
4. Reply with a single JSON object:
   {{"advantage": "player1" | "player2" | "slight_player1" | "slight_player2" | "none",
     "summary": "one sentence conclusion",
     "reasoning": "your analysis, highlighting the verdict as **Advantage Player X**, **Slight Advantage Player X** or **No Clear Advantage**"}}"""


@dataclass(frozen=True)
class FactorResult:
    """Output of one agent run. Never mutated once built."""

    agent_name: str
    category: str
    factor: str
    conclusion: str
    advantage: str
    confidence: float
    reasoning: str
    analysis: dict[str, Any] = field(default_factory=dict)
    processing_time_ms: int = 0

    @property
    def failed(self) -> bool:
        return self.conclusion == ANALYSIS_ERROR

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class FactorOutcome:
    """What an agent method computes; identity fields are added by the decorator."""

    advantage: str
    conclusion: str
    confidence: float
    reasoning: str
    analysis: dict[str, Any] = field(default_factory=dict)


@dataclass
class Verdict:
    """Advantage verdict parsed from a completion reply."""

    advantage: str
    conclusion: str
    reasoning: str


class FactorVerdict(BaseModel):
    """Structured reply requested from the completion API."""

    advantage: Literal["player1", "player2", "none", "slight_player1", "slight_player2"]
    summary: str = ""
    reasoning: str = ""


def conclusion_for(advantage: str) -> str:
    """Human-readable conclusion for an advantage tag."""
    if advantage == Advantage.NONE.value:
        return NO_CLEAR_ADVANTAGE
    number = advantage[-1]
    if advantage.startswith("slight_"):
        return f"Slight Advantage Player {number}"
    return f"Advantage Player {number}"


def extract_advantage(text: str) -> tuple[str, str]:
    """
    Find the advantage marker in free text.

    Returns:
        (advantage tag, conclusion); ("none", "No Clear Advantage") when
        no marker is present
    """
    found = ADVANTAGE_MARKER.search(text or "")
    if not found:
        return Advantage.NONE.value, NO_CLEAR_ADVANTAGE
    if found.group(1):
        advantage = f"player{found.group(1)}"
    elif found.group(2):
        advantage = f"slight_player{found.group(2)}"
    else:
        advantage = Advantage.NONE.value
    return advantage, conclusion_for(advantage)


def strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def parse_verdict(text: str) -> Verdict:
    """
    Parse a factor reply.

    The JSON contract is tried first; a reply that violates it falls back
    to the textual advantage markers.
    """
    try:
        verdict = FactorVerdict.model_validate_json(strip_code_fence(text))
    except ValidationError:
        advantage, conclusion = extract_advantage(text)
        return Verdict(advantage=advantage, conclusion=conclusion, reasoning=text)

    reasoning = verdict.reasoning or verdict.summary or text
    return Verdict(
        advantage=verdict.advantage,
        conclusion=conclusion_for(verdict.advantage),
        reasoning=reasoning,
    )


def compare_scores(
    score1: float,
    score2: float,
    slight_threshold: float,
    full_threshold: float,
) -> tuple[str, float]:
    """
    Grade a score difference into an advantage tag and confidence.

    Below slight_threshold: none at 0.5. Below full_threshold: slight at
    0.6 + diff. Otherwise full at 0.7 + min(diff, 0.3).
    """
    difference = abs(score1 - score2)
    leader = "player1" if score1 > score2 else "player2"
    if difference < slight_threshold:
        return Advantage.NONE.value, 0.5
    if difference < full_threshold:
        return f"slight_{leader}", 0.6 + difference
    return leader, 0.7 + min(difference, 0.3)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def factor_agent(agent_name: str, factor: str, subject: str):
    """
    Wrap an agent method ``(self, match, player1, player2, ...)``.

    Args:
        agent_name: Registry name of the agent
        factor: Factor label, e.g. "Factor 3.1 (Serve Performance)"
        subject: Used in the error reasoning, e.g. "serve performance"
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, match: Match, player1: Player, player2: Player, *args, **kwargs):
            started = time.perf_counter()
            try:
                outcome = await func(self, match, player1, player2, *args, **kwargs)
            except Exception as e:
                logger.error(
                    "agent_analysis_failed",
                    agent=agent_name,
                    match_id=match.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                outcome = FactorOutcome(
                    advantage=Advantage.NONE.value,
                    conclusion=ANALYSIS_ERROR,
                    confidence=0.0,
                    reasoning=f"Unable to analyze {subject} due to data limitations.",
                )

            return FactorResult(
                agent_name=agent_name,
                category=self.category,
                factor=factor,
                conclusion=outcome.conclusion,
                advantage=outcome.advantage,
                confidence=round(outcome.confidence, 4),
                reasoning=outcome.reasoning,
                analysis=outcome.analysis,
                processing_time_ms=int((time.perf_counter() - started) * 1000),
            )

        wrapper.agent_name = agent_name
        wrapper.factor = factor
        return wrapper

    return decorator


class AgentGroup:
    """
    Base class for a category of agents.

    Args:
        completion_client: Object with an async ``complete`` method
        storage: TennisStorage for real aggregates
        stats: StatsProvider for values the store cannot supply
        settings: Optional settings override
    """

    category: str = ""

    def __init__(self, completion_client, storage, stats, settings: Settings | None = None):
        self.client = completion_client
        self.storage = storage
        self.stats = stats
        self.settings = settings or get_settings()
        self.config = self.settings.load_defaults_config().get("agents", {})

    async def ask_factor(self, factor: str, rubric: str, data: dict[str, Any]) -> Verdict:
        """Send one factor prompt and parse the verdict."""
        prompt = f"{rubric}\n\nData:\n{json.dumps(data, indent=2, default=str)}"
        result = await self.client.complete(
            prompt,
            system_prompt=FACTOR_SYSTEM_PROMPT.format(factor=factor),
            temperature=self.settings.factor_temperature,
            max_tokens=self.settings.factor_max_tokens,
            response_format="json",
        )
        return parse_verdict(result.text)


def player_summary(player: Player) -> dict[str, Any]:
    return {
        "name": player.name,
        "ranking": player.ranking,
        "age": player.age,
        "playing_style": player.playing_style,
    }
