"""Recent performance agents (factors 1.1 to 1.3).

These are computed directly from stored matches and player stats and do not
call the completion API.
"""

from typing import Any

from tennisoracle.models.domain import Match, Player
from tennisoracle.services.agents.base import (
    Advantage,
    AgentGroup,
    FactorOutcome,
    compare_scores,
    conclusion_for,
    factor_agent,
)
from tennisoracle.services.agents.stats import won


def record(matches: list[Match], player_id: int) -> dict[str, Any]:
    wins = sum(1 for m in matches if won(m, player_id))
    return {
        "wins": wins,
        "losses": len(matches) - wins,
        "win_rate": wins / len(matches) if matches else 0.0,
        "total_matches": len(matches),
    }


def form_score(overall: dict[str, Any], surface: dict[str, Any]) -> float:
    """Blend of overall (60%) and surface (40%) win rate."""
    return overall["win_rate"] * 0.6 + surface["win_rate"] * 0.4


def momentum(matches: list[Match], player_id: int, consistency_window: int = 5) -> dict[str, Any]:
    """Current streak and recent consistency. Matches are most recent first."""
    if not matches:
        return {"current_streak": 0, "streak_type": "none", "consistency": 0.0, "recent_form": []}

    streak = 0
    streak_type = "none"
    for match in matches:
        result = "win" if won(match, player_id) else "loss"
        if streak == 0:
            streak, streak_type = 1, result
        elif result == streak_type:
            streak += 1
        else:
            break

    recent = [1 if won(m, player_id) else 0 for m in matches[:consistency_window]]
    return {
        "current_streak": streak,
        "streak_type": streak_type,
        "consistency": sum(recent) / len(recent),
        "recent_form": recent,
    }


def momentum_score(state: dict[str, Any]) -> float:
    score = state["consistency"] * 0.6
    bonus = min(state["current_streak"] * 0.1, 0.4)
    if state["streak_type"] == "win":
        score += bonus
    elif state["streak_type"] == "loss":
        score -= bonus
    return max(0.0, min(1.0, score))


def is_clutch_match(score: str) -> bool:
    """A tie-break set or a match that went at least three sets."""
    return "7-6" in score or len(score.split(",")) >= 3


def recent_clutch_rate(matches: list[Match], player_id: int) -> float:
    clutch = [m for m in matches if m.score and is_clutch_match(m.score)]
    if not clutch:
        return 0.0
    return sum(1 for m in clutch if won(m, player_id)) / len(clutch)


def clutch_profile(stats, matches: list[Match], player_id: int) -> dict[str, Any]:
    if stats is None:
        return {
            "tiebreak_rate": 0.0,
            "deciding_set_rate": 0.0,
            "break_points_saved": 0.0,
            "recent_clutch_moments": 0.0,
            "clutch_score": 0.0,
        }
    tiebreak_rate = (
        (stats.tiebreaks_won or 0) / stats.tiebreaks_played if stats.tiebreaks_played else 0.0
    )
    deciding_set_rate = (
        (stats.deciding_sets_won or 0) / stats.deciding_sets_played
        if stats.deciding_sets_played
        else 0.0
    )
    break_points_saved = float(stats.break_points_saved or 0.0)
    clutch_moments = recent_clutch_rate(matches, player_id)
    return {
        "tiebreak_rate": tiebreak_rate,
        "deciding_set_rate": deciding_set_rate,
        "break_points_saved": break_points_saved,
        "recent_clutch_moments": clutch_moments,
        "clutch_score": (
            tiebreak_rate * 0.3
            + deciding_set_rate * 0.3
            + break_points_saved * 0.2
            + clutch_moments * 0.2
        ),
    }


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


class RecentPerformanceAgents(AgentGroup):
    category = "recent_performance"

    async def _opponent_quality(self, matches: list[Match], player_id: int) -> float:
        rankings = []
        for match in matches:
            opponent = await self.storage.get_player(match.opponent_of(player_id))
            if opponent and opponent.ranking:
                rankings.append(opponent.ranking)
        return sum(rankings) / len(rankings) if rankings else 0.0

    @factor_agent("Recent Matches Analyst", "Factor 1.1 (Recent Match Results)", "recent match results")
    async def analyze_recent_matches(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        limit = self.config.get("recent_matches_limit", 15)
        analysis: dict[str, Any] = {}
        scores = []
        for key, player in (("player1", player1), ("player2", player2)):
            recent = await self.storage.get_player_matches(player.id, limit=limit)
            overall = record(recent, player.id)
            surface = record([m for m in recent if m.surface == match.surface], player.id)
            analysis[key] = {
                "overall": overall,
                "surface": surface,
                "opponent_quality": await self._opponent_quality(recent, player.id),
            }
            scores.append(form_score(overall, surface))

        advantage, confidence = compare_scores(scores[0], scores[1], 0.1, 0.2)
        p1, p2 = analysis["player1"], analysis["player2"]
        reasoning = (
            f"{player1.name} has won {p1['overall']['wins']} of their last "
            f"{p1['overall']['total_matches']} matches ({_pct(p1['overall']['win_rate'])} win rate), "
            f"including {p1['surface']['wins']} of {p1['surface']['total_matches']} on {match.surface}. "
            f"{player2.name} has won {p2['overall']['wins']} of their last "
            f"{p2['overall']['total_matches']} matches ({_pct(p2['overall']['win_rate'])} win rate), "
            f"with {p2['surface']['wins']} of {p2['surface']['total_matches']} on {match.surface}. "
            f"Average opponent ranking: {p1['opponent_quality']:.0f} for {player1.name}, "
            f"{p2['opponent_quality']:.0f} for {player2.name}."
        )
        return FactorOutcome(
            advantage=advantage,
            conclusion=conclusion_for(advantage),
            confidence=confidence,
            reasoning=reasoning,
            analysis=analysis,
        )

    @factor_agent("Momentum Analyst", "Factor 1.2 (Momentum & Consistency)", "momentum")
    async def analyze_momentum(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        window = self.config.get("momentum_window", 10)
        consistency_window = self.config.get("consistency_window", 5)
        states = {}
        for key, player in (("player1", player1), ("player2", player2)):
            recent = await self.storage.get_player_matches(player.id, limit=window)
            states[key] = momentum(recent, player.id, consistency_window)
            states[key]["score"] = momentum_score(states[key])

        advantage, confidence = compare_scores(
            states["player1"]["score"], states["player2"]["score"], 0.15, 0.3
        )
        parts = []
        for player, state in ((player1, states["player1"]), (player2, states["player2"])):
            parts.append(
                f"{player.name} is on a {state['current_streak']}-match {state['streak_type']} "
                f"streak with {_pct(state['consistency'])} consistency in recent matches."
            )
        if advantage != Advantage.NONE.value:
            leader = player1 if advantage.endswith("player1") else player2
            parts.append(f"{leader.name} carries the stronger momentum into this match.")
        return FactorOutcome(
            advantage=advantage,
            conclusion=conclusion_for(advantage),
            confidence=confidence,
            reasoning=" ".join(parts),
            analysis=states,
        )

    @factor_agent("Clutch Performance Analyst", "Factor 1.3 (Clutch Moments Recently)", "clutch performance")
    async def analyze_clutch_performance(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        profiles = {}
        for key, player in (("player1", player1), ("player2", player2)):
            stats = await self.storage.get_player_stats(player.id, match.surface, "last_52_weeks")
            recent = await self.storage.get_player_matches(player.id, limit=10)
            profiles[key] = clutch_profile(stats, recent, player.id)

        advantage, confidence = compare_scores(
            profiles["player1"]["clutch_score"], profiles["player2"]["clutch_score"], 0.1, 0.2
        )
        reasoning = " ".join(
            f"{player.name}: tie-breaks {_pct(profile['tiebreak_rate'])}, deciding sets "
            f"{_pct(profile['deciding_set_rate'])}, break points saved "
            f"{_pct(profile['break_points_saved'])}, tight recent matches won "
            f"{_pct(profile['recent_clutch_moments'])}."
            for player, profile in ((player1, profiles["player1"]), (player2, profiles["player2"]))
        )
        return FactorOutcome(
            advantage=advantage,
            conclusion=conclusion_for(advantage),
            confidence=confidence,
            reasoning=reasoning,
            analysis=profiles,
        )
