"""Unit tests for the per-factor scoring and confidence formulas."""

from types import SimpleNamespace

import pytest

from tennisoracle.services.agents.base import FactorResult
from tennisoracle.services.agents.contextual import (
    extract_insights,
    factor_coverage,
    limitations_report,
    news_confidence,
    reliability_score,
)
from tennisoracle.services.agents.matchup import (
    classify_style,
    head_to_head_confidence,
    head_to_head_summary,
)
from tennisoracle.services.agents.physical_condition import (
    career_stage,
    fitness_confidence,
    is_prime_age,
    schedule_confidence,
)
from tennisoracle.services.agents.recent_performance import (
    form_score,
    is_clutch_match,
    momentum,
    momentum_score,
    record,
)
from tennisoracle.services.agents.statistical import serve_confidence, trend_confidence
from tennisoracle.services.agents.surface_environment import (
    environment_confidence,
    surface_confidence,
)


def result(winner_id: int, score: str = "6-3, 6-3", surface: str = "hard"):
    return SimpleNamespace(winner_id=winner_id, score=score, surface=surface)


def factor(confidence: float, conclusion: str = "Advantage Player 1", advantage: str = "player1"):
    return FactorResult(
        agent_name="a",
        category="c",
        factor="f",
        conclusion=conclusion,
        advantage=advantage,
        confidence=confidence,
        reasoning="r",
    )


class TestRecentPerformanceFormulas:
    def test_record(self):
        assert record([result(1), result(2), result(1)], 1) == {
            "wins": 2,
            "losses": 1,
            "win_rate": pytest.approx(2 / 3),
            "total_matches": 3,
        }

    def test_record_empty(self):
        assert record([], 1)["win_rate"] == 0.0

    def test_form_score_weights(self):
        assert form_score({"win_rate": 1.0}, {"win_rate": 0.5}) == pytest.approx(0.8)

    def test_momentum_streak_stops_at_first_change(self):
        state = momentum([result(1), result(1), result(2), result(1)], 1)
        assert state["current_streak"] == 2
        assert state["streak_type"] == "win"
        assert state["recent_form"] == [1, 1, 0, 1]
        assert state["consistency"] == pytest.approx(0.75)

    def test_momentum_empty(self):
        assert momentum([], 1)["streak_type"] == "none"

    def test_momentum_score_bounds(self):
        assert momentum_score({"consistency": 1.0, "current_streak": 8, "streak_type": "win"}) == 1.0
        assert momentum_score({"consistency": 0.0, "current_streak": 3, "streak_type": "loss"}) == 0.0

    def test_clutch_matches(self):
        assert is_clutch_match("7-6, 6-4")
        assert is_clutch_match("6-4, 3-6, 6-2")
        assert not is_clutch_match("6-1, 6-2")


class TestSurfaceEnvironment:
    def test_small_sample_discount(self):
        stats1 = {"win_rate": 0.8, "total_matches": 3}
        stats2 = {"win_rate": 0.4, "total_matches": 20}
        assert surface_confidence(stats1, stats2) == pytest.approx(0.7 * 0.6)

    def test_medium_sample_discount(self):
        stats1 = {"win_rate": 0.8, "total_matches": 8}
        stats2 = {"win_rate": 0.4, "total_matches": 20}
        assert surface_confidence(stats1, stats2) == pytest.approx(0.7 * 0.8)

    def test_large_sample_clamped(self):
        stats1 = {"win_rate": 1.0, "total_matches": 30}
        stats2 = {"win_rate": 0.0, "total_matches": 30}
        assert surface_confidence(stats1, stats2) == 0.95

    def test_extreme_conditions_raise_confidence(self):
        weather = {"forecast_reliability": 0.7, "temperature": 38, "wind_speed": 25}
        assert environment_confidence(weather) == pytest.approx(0.9)

    def test_mild_conditions(self):
        weather = {"forecast_reliability": 0.2, "temperature": 22, "wind_speed": 5}
        assert environment_confidence(weather) == 0.3


class TestStatistical:
    def test_serve_confidence_counts_significant_gaps(self):
        serve1 = {"first_serve_win_rate": 0.8, "service_games_held": 0.9, "ace_rate": 0.1}
        serve2 = {"first_serve_win_rate": 0.6, "service_games_held": 0.7, "ace_rate": 0.1}
        assert serve_confidence(serve1, serve2) == pytest.approx(0.8)

    def test_trend_confidence_diverging(self):
        rising = {"recent": {"win_rate_change": 0.2}}
        falling = {"recent": {"win_rate_change": -0.15}}
        assert trend_confidence(rising, falling) == 0.8
        assert trend_confidence(rising, rising) == 0.6


class TestPhysicalCondition:
    @pytest.mark.parametrize(
        "age,stage",
        [(19, "Rising"), (23, "Developing"), (27, "Prime"), (31, "Experienced"), (35, "Veteran")],
    )
    def test_career_stage(self, age, stage):
        assert career_stage(age) == stage

    def test_prime_age_window(self):
        assert is_prime_age(23) and is_prime_age(29)
        assert not is_prime_age(30)

    def test_schedule_confidence(self):
        rested = {"days_since_last_match": 10, "total_minutes_played": 0}
        busy = {"days_since_last_match": 1, "total_minutes_played": 400}
        assert schedule_confidence(rested, busy) == 0.8
        assert schedule_confidence(busy, busy) == 0.6

    def test_fitness_confidence(self):
        clean = {"injury_reports": [], "medical_timeouts": 0}
        injured = {"injury_reports": ["Withdrew with wrist injury"], "medical_timeouts": 0}
        timeout = {"injury_reports": [], "medical_timeouts": 1}
        assert fitness_confidence(injured, clean) == 0.9
        assert fitness_confidence(clean, timeout) == 0.75
        assert fitness_confidence(clean, clean) == 0.5


class TestMatchup:
    def test_classify_style(self):
        assert classify_style({"aggression_index": 0.75, "net_approach_rate": 0.0}) == "Aggressive Baseliner"
        assert classify_style({"aggression_index": 0.2, "net_approach_rate": 0.0}) == "Counter-Puncher"
        assert classify_style({"aggression_index": 0.5, "net_approach_rate": 0.25}) == "Serve-and-Volleyer"
        assert classify_style({"aggression_index": 0.5, "net_approach_rate": 0.1}) == "All-Court Player"

    def test_head_to_head_summary(self):
        meetings = [result(1, surface="clay"), result(1), result(1), result(2), result(1)]
        summary = head_to_head_summary(meetings, 1, 2)
        assert summary["total_meetings"] == 5
        assert summary["player1_wins"] == 4
        assert summary["surfaces"] == ["clay", "hard"]
        assert summary["current_streak"] == {"player_id": 1, "length": 3}
        assert summary["significant_streak"] is True
        assert summary["psychological_dominance"] is True

    def test_head_to_head_confidence(self):
        assert head_to_head_confidence(head_to_head_summary([], 1, 2)) == 0.0
        even = head_to_head_summary([result(1), result(2)], 1, 2)
        assert head_to_head_confidence(even) == pytest.approx(0.2)

    def test_head_to_head_skips_meetings_without_winner(self):
        meetings = [result(None), result(1), result(None), result(1), result(2)]
        summary = head_to_head_summary(meetings, 1, 2)
        assert summary["total_meetings"] == 5
        assert summary["decided_meetings"] == 3
        assert summary["player1_wins"] == 2
        assert summary["player2_wins"] == 1
        assert summary["current_streak"] == {"player_id": 1, "length": 2}
        assert head_to_head_confidence(head_to_head_summary([result(None)], 1, 2)) == 0.0


class TestContextual:
    def test_extract_insights_buckets_lines(self):
        text = "Knee injury reported last week\nStrong form on clay\nNew coach hired"
        insights = extract_insights(text)
        assert insights["injuries"] == ["Knee injury reported last week"]
        assert insights["form_indicators"] == ["Strong form on clay"]
        assert insights["contextual_factors"] == ["New coach hired"]

    def test_news_confidence(self):
        empty = {"injuries": [], "form_indicators": [], "contextual_factors": []}
        assert news_confidence(empty, empty) == 0.5
        assert news_confidence(empty, {**empty, "injuries": ["x"]}) == 0.85
        assert news_confidence({**empty, "contextual_factors": ["x"]}, empty) == 0.7

    def test_coverage_ignores_failed_and_weak_factors(self):
        factors = [factor(0.8), factor(0.05), factor(0.0, conclusion="Analysis Error", advantage="none")]
        assert factor_coverage(factors, total_factors=17) == pytest.approx(1 / 17)

    def test_reliability_score(self):
        factors = [factor(0.8), factor(0.6)]
        expected = 0.7 * 0.7 + (2 / 17) * 0.3
        assert reliability_score(factors) == pytest.approx(expected)
        assert reliability_score([]) == 0.0

    def test_limitations_report_sections(self):
        report = limitations_report(["Tournament information not available"], ["Closely ranked players"])
        assert "**Data Gaps:**\n• Tournament information not available" in report
        assert "**Uncertainties:**\n• Closely ranked players" in report
        assert report.endswith("confidence scores of individual predictions.")

    def test_limitations_report_clean(self):
        report = limitations_report([], [])
        assert "comprehensive data coverage" in report
