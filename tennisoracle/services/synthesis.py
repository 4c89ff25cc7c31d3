"""Final prediction synthesis.

The completion API weighs all factor records into one verdict. When the call
fails or the reply breaks the JSON contract, a deterministic majority vote
over the factor advantages is used instead.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field

from tennisoracle.config import Settings, get_settings
from tennisoracle.models.domain import Match, Player
from tennisoracle.services.agents.base import (
    PLAYER1_ADVANTAGES,
    PLAYER2_ADVANTAGES,
    FactorResult,
    strip_code_fence,
)

logger = structlog.get_logger(__name__)

DEFAULT_FALLBACK_CONFIG: dict[str, float] = {
    "base_probability": 0.5,
    "step_per_factor": 0.05,
    "min_probability": 0.5,
    "max_probability": 0.9,
    "confidence": 0.75,
    "empty_confidence": 0.0,
}

SYNTHESIS_SYSTEM_PROMPT = (
    "You are the lead tennis analyst combining specialist reports into one "
    "prediction. Reply with a single JSON object and nothing else."
)


class SynthesisReply(BaseModel):
    """JSON contract for the synthesis completion."""

    predictedWinner: Literal["player1", "player2"]
    winProbability: float = Field(ge=0.5, le=1.0)
    confidenceLevel: float = Field(ge=0.0, le=1.0)
    reasoning: str
    keyFactors: list[str] = Field(default_factory=list)


@dataclass
class SynthesisOutcome:
    winner_id: int
    win_probability: float
    confidence_level: float
    reasoning: str
    key_factors: list[str] = field(default_factory=list)
    method: str = "llm"


def majority_vote(
    factors: list[FactorResult],
    player1_id: int,
    player2_id: int,
    config: dict[str, Any] | None = None,
    player1_name: str = "Player 1",
    player2_name: str = "Player 2",
) -> SynthesisOutcome:
    """
    Count factors favoring each player, full or slight, and pick the majority.

    Ties go to player 2. Probability is 0.5 + step * |difference|, clamped to
    [min, max]; confidence is fixed. No factors at all gives probability 0.5
    with zero confidence.
    """
    cfg = {**DEFAULT_FALLBACK_CONFIG, **(config or {})}
    favors1 = [f for f in factors if f.advantage in PLAYER1_ADVANTAGES]
    favors2 = [f for f in factors if f.advantage in PLAYER2_ADVANTAGES]

    player1_wins = len(favors1) > len(favors2)
    winner_id = player1_id if player1_wins else player2_id
    probability = cfg["base_probability"] + abs(len(favors1) - len(favors2)) * cfg["step_per_factor"]
    probability = max(cfg["min_probability"], min(cfg["max_probability"], probability))
    confidence = cfg["confidence"] if factors else cfg["empty_confidence"]

    supporting = favors1 if player1_wins else favors2
    key_factors = [
        f.factor for f in sorted(supporting, key=lambda f: f.confidence, reverse=True)[:3]
    ]
    return SynthesisOutcome(
        winner_id=winner_id,
        win_probability=round(probability, 4),
        confidence_level=confidence,
        reasoning=(
            f"Based on factor analysis: {len(favors1)} factors favor {player1_name}, "
            f"{len(favors2)} factors favor {player2_name}. "
            "Prediction made using fallback majority vote system."
        ),
        key_factors=key_factors,
        method="fallback",
    )


def build_synthesis_prompt(
    match: Match, player1: Player, player2: Player, factors: list[FactorResult]
) -> str:
    lines = [
        f"- {f.factor}: {f.conclusion} (Advantage: {f.advantage}, Confidence: {f.confidence})\n"
        f"  Reasoning: {f.reasoning}"
        for f in factors
    ]
    return f"""Analyze the following tennis match prediction data and provide a final prediction:

Match: {player1.name} (player1) vs {player2.name} (player2)
Surface: {match.surface}

Factor Analyses:
{chr(10).join(lines)}

Provide your analysis in the following JSON format:
{{
  "predictedWinner": "player1" or "player2",
  "winProbability": number between 0.5 and 1.0,
  "confidenceLevel": number between 0.0 and 1.0,
  "reasoning": "detailed reasoning for the prediction",
  "keyFactors": ["list of most important factors"]
}}

Consider the weight and reliability of each factor, and provide a well-reasoned final prediction."""


class PredictionSynthesizer:
    """
    Combine factor records into a final prediction.

    Args:
        completion_client: Object with an async ``complete`` method
        settings: Optional settings override
    """

    def __init__(self, completion_client, settings: Settings | None = None):
        self.client = completion_client
        self.settings = settings or get_settings()
        config = self.settings.load_defaults_config().get("synthesis", {})
        self.fallback_config = {**DEFAULT_FALLBACK_CONFIG, **config.get("fallback", {})}
        self.max_tokens = config.get("max_tokens", 1000)

    async def synthesize(
        self,
        match: Match,
        player1: Player,
        player2: Player,
        factors: list[FactorResult],
    ) -> SynthesisOutcome:
        try:
            result = await self.client.complete(
                build_synthesis_prompt(match, player1, player2, factors),
                system_prompt=SYNTHESIS_SYSTEM_PROMPT,
                temperature=self.settings.synthesis_temperature,
                max_tokens=self.max_tokens,
                response_format="json",
            )
            reply = SynthesisReply.model_validate_json(strip_code_fence(result.text))
        except Exception as e:
            logger.warning(
                "synthesis_fallback",
                match_id=match.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return majority_vote(
                factors,
                player1.id,
                player2.id,
                self.fallback_config,
                player1_name=player1.name,
                player2_name=player2.name,
            )

        return SynthesisOutcome(
            winner_id=player1.id if reply.predictedWinner == "player1" else player2.id,
            win_probability=reply.winProbability,
            confidence_level=reply.confidenceLevel,
            reasoning=reply.reasoning,
            key_factors=reply.keyFactors,
            method="llm",
        )
