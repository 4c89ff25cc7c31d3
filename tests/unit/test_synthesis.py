"""Unit tests for final prediction synthesis."""

import json
from types import SimpleNamespace

import pytest

from tennisoracle.services.agents.base import FactorResult
from tennisoracle.services.synthesis import PredictionSynthesizer, majority_vote


def factor(advantage: str, confidence: float = 0.7, label: str = "Factor 1.1 (Recent Match Results)"):
    return FactorResult(
        agent_name="Recent Matches Analyst",
        category="recent_performance",
        factor=label,
        conclusion="test",
        advantage=advantage,
        confidence=confidence,
        reasoning="test",
    )


class TestMajorityVote:
    """Deterministic fallback."""

    def test_two_to_one_for_player1(self):
        outcome = majority_vote([factor("player1"), factor("player1"), factor("player2")], 10, 20)
        assert outcome.winner_id == 10
        assert outcome.win_probability == pytest.approx(0.55)
        assert outcome.confidence_level == 0.75
        assert outcome.method == "fallback"

    def test_slight_advantages_count(self):
        outcome = majority_vote(
            [factor("slight_player2"), factor("slight_player2"), factor("none")], 10, 20
        )
        assert outcome.winner_id == 20
        assert outcome.win_probability == pytest.approx(0.6)

    def test_tie_goes_to_player2(self):
        outcome = majority_vote([factor("player1"), factor("player2")], 10, 20)
        assert outcome.winner_id == 20
        assert outcome.win_probability == pytest.approx(0.5)

    def test_probability_is_capped(self):
        outcome = majority_vote([factor("player1")] * 15, 10, 20)
        assert outcome.win_probability == pytest.approx(0.9)

    def test_empty_factor_list(self):
        outcome = majority_vote([], 10, 20)
        assert outcome.win_probability == pytest.approx(0.5)
        assert outcome.confidence_level == 0.0

    def test_reasoning_counts_and_names(self):
        outcome = majority_vote(
            [factor("player1"), factor("player2"), factor("player1")],
            10,
            20,
            player1_name="Alcaraz",
            player2_name="Sinner",
        )
        assert "2 factors favor Alcaraz" in outcome.reasoning
        assert "1 factors favor Sinner" in outcome.reasoning
        assert "fallback majority vote" in outcome.reasoning

    def test_key_factors_are_top_supporting(self):
        factors = [
            factor("player1", 0.6, "A"),
            factor("player1", 0.9, "B"),
            factor("player1", 0.8, "C"),
            factor("player1", 0.5, "D"),
            factor("player2", 0.95, "E"),
        ]
        assert majority_vote(factors, 1, 2).key_factors == ["B", "C", "A"]


@pytest.fixture
def pair():
    match = SimpleNamespace(id=7, surface="clay")
    player1 = SimpleNamespace(id=1, name="Carlos Alcaraz")
    player2 = SimpleNamespace(id=2, name="Jannik Sinner")
    return match, player1, player2


class TestPredictionSynthesizer:
    """Completion-backed synthesis with fallback."""

    async def test_valid_reply(self, canned_client, pair):
        reply = json.dumps(
            {
                "predictedWinner": "player2",
                "winProbability": 0.64,
                "confidenceLevel": 0.7,
                "reasoning": "Better return games",
                "keyFactors": ["Factor 3.2 (Return Performance)"],
            }
        )
        synthesizer = PredictionSynthesizer(canned_client(reply))
        outcome = await synthesizer.synthesize(*pair, [factor("player1")])

        assert outcome.winner_id == 2
        assert outcome.win_probability == pytest.approx(0.64)
        assert outcome.method == "llm"
        assert outcome.key_factors == ["Factor 3.2 (Return Performance)"]

    async def test_failing_client_uses_majority_vote(self, failing_client, pair):
        synthesizer = PredictionSynthesizer(failing_client)
        outcome = await synthesizer.synthesize(
            *pair, [factor("player1"), factor("player1"), factor("player2")]
        )

        assert outcome.method == "fallback"
        assert outcome.winner_id == 1
        assert outcome.win_probability == pytest.approx(0.55)

    async def test_out_of_range_probability_uses_majority_vote(self, canned_client, pair):
        reply = json.dumps(
            {
                "predictedWinner": "player1",
                "winProbability": 0.3,
                "confidenceLevel": 0.7,
                "reasoning": "x",
            }
        )
        synthesizer = PredictionSynthesizer(canned_client(reply))
        outcome = await synthesizer.synthesize(*pair, [factor("player2")])
        assert outcome.method == "fallback"
        assert outcome.winner_id == 2

    async def test_prose_reply_uses_majority_vote(self, canned_client, pair):
        synthesizer = PredictionSynthesizer(canned_client("Player 1 should win."))
        outcome = await synthesizer.synthesize(*pair, [])
        assert outcome.method == "fallback"
        assert outcome.confidence_level == 0.0
