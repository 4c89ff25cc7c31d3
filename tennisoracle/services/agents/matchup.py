"""Match-up agents (factors 5.1 to 5.3).

These run in sequence: the tactical battle synthesizer is given the style
and head-to-head results as context.
"""

from typing import Any

from tennisoracle.models.domain import Match, Player
from tennisoracle.services.agents.base import (
    Advantage,
    AgentGroup,
    FactorOutcome,
    FactorResult,
    conclusion_for,
    factor_agent,
)
from tennisoracle.services.agents.stats import won

STYLE_CHARACTERISTICS = {
    "Aggressive Baseliner": ["Powerful groundstrokes", "Dictates from the baseline", "Short points"],
    "Counter-Puncher": ["Excellent defense", "Consistency", "Extends rallies"],
    "Serve-and-Volleyer": ["Big serve", "Net rushing", "Quick points"],
    "All-Court Player": ["Versatility", "Adapts tactics", "Comfortable in all areas"],
}


def classify_style(metrics: dict[str, Any]) -> str:
    if metrics["aggression_index"] > 0.7:
        return "Aggressive Baseliner"
    if metrics["aggression_index"] < 0.3:
        return "Counter-Puncher"
    if metrics["net_approach_rate"] > 0.2:
        return "Serve-and-Volleyer"
    return "All-Court Player"


def head_to_head_summary(meetings: list[Match], player1_id: int, player2_id: int) -> dict[str, Any]:
    """Record and current streak. Meetings are most recent first; ones without a winner are not counted."""
    decided = [m for m in meetings if m.winner_id is not None]
    p1_wins = sum(1 for m in decided if won(m, player1_id))
    p2_wins = sum(1 for m in decided if won(m, player2_id))
    streak_holder = None
    streak = 0
    for meeting in decided:
        if streak_holder is None:
            streak_holder, streak = meeting.winner_id, 1
        elif meeting.winner_id == streak_holder:
            streak += 1
        else:
            break
    p1_rate = p1_wins / len(decided) if decided else 0.0
    return {
        "total_meetings": len(meetings),
        "decided_meetings": len(decided),
        "player1_wins": p1_wins,
        "player2_wins": p2_wins,
        "player1_win_rate": p1_rate,
        "surfaces": sorted({m.surface for m in meetings}),
        "current_streak": {"player_id": streak_holder, "length": streak},
        "significant_streak": streak >= 3,
        "psychological_dominance": len(decided) >= 4 and (p1_rate > 0.75 or p1_rate < 0.25),
    }


def head_to_head_confidence(summary: dict[str, Any]) -> float:
    decided = summary["decided_meetings"]
    if decided == 0:
        return 0.0
    dominance = abs(2 * summary["player1_win_rate"] - 1)
    return dominance * min(1.0, decided / 10) * 0.8 + 0.2


class MatchupAgents(AgentGroup):
    category = "matchup"

    def _style_profile(self, player: Player) -> dict[str, Any]:
        metrics = self.stats.style_metrics(player.id)
        style = classify_style(metrics)
        return {
            "name": player.name,
            "declared_style": player.playing_style,
            "classified_style": style,
            "characteristics": STYLE_CHARACTERISTICS[style],
            "strengths": player.strengths or [],
            "weaknesses": player.weaknesses or [],
            "metrics": metrics,
        }

    @factor_agent("Playing Style Profiler", "Factor 5.1 (Playing Style Matchup)", "playing style matchup")
    async def analyze_playing_style(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        profile1 = self._style_profile(player1)
        profile2 = self._style_profile(player2)
        data = {"surface": match.surface, "player1": profile1, "player2": profile2}
        verdict = await self.ask_factor(
            "Playing Style Matchup",
            f"""Analyze how the two playing styles interact on {match.surface}:
1. Style classification and characteristic patterns
2. Whose strengths attack the other's weaknesses
3. How the surface amplifies or blunts each style

Determine whose style is favored in this matchup.""",
            data,
        )
        aggression_diff = abs(
            profile1["metrics"]["aggression_index"] - profile2["metrics"]["aggression_index"]
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=min(0.9, 0.5 + aggression_diff * 0.5),
            reasoning=verdict.reasoning,
            analysis=data,
        )

    @factor_agent("Head-to-Head Analyst", "Factor 5.2 (Head-to-Head)", "head-to-head history")
    async def analyze_head_to_head(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        meetings = await self.storage.get_head_to_head_matches(player1.id, player2.id)
        summary = head_to_head_summary(meetings, player1.id, player2.id)
        if not meetings:
            return FactorOutcome(
                advantage=Advantage.NONE.value,
                conclusion=conclusion_for(Advantage.NONE.value),
                confidence=0.0,
                reasoning=f"{player1.name} and {player2.name} have not met before.",
                analysis=summary,
            )

        names = {player1.id: player1.name, player2.id: player2.name}
        data = {
            "player1": player1.name,
            "player2": player2.name,
            "surface": match.surface,
            "head_to_head": summary,
            "recent_meetings": [
                {
                    "winner": names.get(m.winner_id),
                    "score": m.score,
                    "surface": m.surface,
                    "round": m.round,
                }
                for m in meetings[:5]
            ],
        }
        verdict = await self.ask_factor(
            "Head-to-Head",
            """Analyze the head-to-head history:
1. Overall record and recent meetings
2. Results on this surface
3. Current winning streaks
4. Any psychological edge from past results

Determine whether the history favors either player.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=head_to_head_confidence(summary),
            reasoning=verdict.reasoning,
            analysis=data,
        )

    @factor_agent("Tactical Battle Synthesizer", "Factor 5.3 (Tactical Battle)", "tactical matchup")
    async def analyze_tactical_battle(
        self,
        match: Match,
        player1: Player,
        player2: Player,
        style_result: FactorResult,
        h2h_result: FactorResult,
    ) -> FactorOutcome:
        data = {
            "surface": match.surface,
            "player1": {"name": player1.name, "strengths": player1.strengths or [], "weaknesses": player1.weaknesses or []},
            "player2": {"name": player2.name, "strengths": player2.strengths or [], "weaknesses": player2.weaknesses or []},
            "style_analysis": {
                "conclusion": style_result.conclusion,
                "advantage": style_result.advantage,
                "reasoning": style_result.reasoning,
            },
            "head_to_head_analysis": {
                "conclusion": h2h_result.conclusion,
                "advantage": h2h_result.advantage,
                "reasoning": h2h_result.reasoning,
            },
        }
        verdict = await self.ask_factor(
            "Tactical Battle",
            """Combine the style and head-to-head findings into a tactical picture:
1. The key patterns each player will try to impose
2. Where the decisive exchanges will happen
3. Which adjustments each player needs to make

Determine who is better placed to win the tactical battle.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=0.7,
            reasoning=verdict.reasoning,
            analysis=data,
        )
