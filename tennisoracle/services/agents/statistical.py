"""Statistical agents (factors 3.1 to 3.5)."""

from typing import Any

from tennisoracle.models.domain import Match, Player
from tennisoracle.services.agents.base import AgentGroup, FactorOutcome, factor_agent

SERVE_METRICS = ("first_serve_win_rate", "service_games_held", "ace_rate")


def serve_confidence(serve1: dict[str, Any], serve2: dict[str, Any]) -> float:
    significant = sum(1 for key in SERVE_METRICS if abs(serve1[key] - serve2[key]) > 0.1)
    return min(0.9, 0.5 + significant * 0.15)


def return_confidence(return1: dict[str, Any], return2: dict[str, Any]) -> float:
    diff = abs(return1["break_points_converted"] - return2["break_points_converted"])
    return min(0.85, 0.5 + diff)


def rally_confidence(rally1: dict[str, Any], rally2: dict[str, Any]) -> float:
    diff = abs(rally1["winners_to_errors"] - rally2["winners_to_errors"])
    return min(0.8, 0.5 + diff * 0.3)


def pressure_confidence(pressure1: dict[str, Any], pressure2: dict[str, Any]) -> float:
    diff = abs(pressure1["tiebreak_win_rate"] - pressure2["tiebreak_win_rate"])
    return min(0.85, 0.5 + diff * 1.5)


def trend_confidence(trend1: dict[str, Any], trend2: dict[str, Any]) -> float:
    """Higher when one player is rising and the other falling."""
    change1 = trend1["recent"]["win_rate_change"]
    change2 = trend2["recent"]["win_rate_change"]
    diverging = (change1 > 0.1 and change2 < -0.1) or (change1 < -0.1 and change2 > 0.1)
    return 0.8 if diverging else 0.6


class StatisticalAgents(AgentGroup):
    category = "statistical"

    async def _stored(self, player_id: int, surface: str):
        return await self.storage.get_player_stats(player_id, surface, "last_52_weeks")

    @factor_agent("Service Performance Analyst", "Factor 3.1 (Serve Performance)", "serve performance")
    async def analyze_serve_performance(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        serve1 = self.stats.serve_stats(player1.id, await self._stored(player1.id, match.surface))
        serve2 = self.stats.serve_stats(player2.id, await self._stored(player2.id, match.surface))
        data = {
            "surface": match.surface,
            "player1": {"name": player1.name, "serve_stats": serve1},
            "player2": {"name": player2.name, "serve_stats": serve2},
        }
        verdict = await self.ask_factor(
            "Serve Performance",
            f"""Analyze the serving capabilities of both players on {match.surface}:
1. First serve percentage and effectiveness
2. Second serve reliability and points won
3. Ace production and double fault tendencies
4. Service game hold percentage
5. Break point defense on serve

Determine who has the serving advantage and how it impacts the match.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=serve_confidence(serve1, serve2),
            reasoning=verdict.reasoning,
            analysis=data,
        )

    @factor_agent("Return Performance Analyst", "Factor 3.2 (Return Performance)", "return performance")
    async def analyze_return_performance(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        return1 = self.stats.return_stats(player1.id, await self._stored(player1.id, match.surface))
        return2 = self.stats.return_stats(player2.id, await self._stored(player2.id, match.surface))
        data = {
            "surface": match.surface,
            "player1": {"name": player1.name, "return_stats": return1},
            "player2": {"name": player2.name, "return_stats": return2},
        }
        verdict = await self.ask_factor(
            "Return Performance",
            f"""Analyze the returning capabilities of both players on {match.surface}:
1. First and second serve return effectiveness
2. Break point conversion under pressure
3. Return games won percentage
4. Ability to neutralize big servers

Determine who has the return advantage and its significance.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=return_confidence(return1, return2),
            reasoning=verdict.reasoning,
            analysis=data,
        )

    @factor_agent("Rally & Point Construction Analyst", "Factor 3.3 (Rally Patterns)", "rally patterns")
    async def analyze_rally_patterns(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        rally1 = self.stats.rally_stats(player1.id)
        rally2 = self.stats.rally_stats(player2.id)
        data = {
            "surface": match.surface,
            "player1": {"name": player1.name, "playing_style": player1.playing_style, "rally_stats": rally1},
            "player2": {"name": player2.name, "playing_style": player2.playing_style, "rally_stats": rally2},
        }
        verdict = await self.ask_factor(
            "Rally Patterns",
            """Analyze rally dynamics and point construction:
1. Short versus long rally effectiveness
2. Winners to unforced errors ratio
3. Net approach success
4. How each player's rally profile suits the other's

Determine who controls the baseline exchanges.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=rally_confidence(rally1, rally2),
            reasoning=verdict.reasoning,
            analysis=data,
        )

    @factor_agent("Pressure Statistics Analyst", "Factor 3.4 (Pressure Points)", "pressure performance")
    async def analyze_pressure_points(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        pressure1 = self.stats.pressure_stats(player1.id, await self._stored(player1.id, match.surface))
        pressure2 = self.stats.pressure_stats(player2.id, await self._stored(player2.id, match.surface))
        data = {
            "player1": {"name": player1.name, "pressure_stats": pressure1},
            "player2": {"name": player2.name, "pressure_stats": pressure2},
        }
        verdict = await self.ask_factor(
            "Pressure Points",
            """Analyze performance in high-pressure situations:
1. Tie-break record
2. Deciding set record
3. Break points saved and converted

Determine who is more reliable when the match is on the line.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=pressure_confidence(pressure1, pressure2),
            reasoning=verdict.reasoning,
            analysis=data,
        )

    @factor_agent("Statistical Trend Analyst", "Factor 3.5 (Statistical Trends)", "statistical trends")
    async def analyze_statistical_trends(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        trend1 = self.stats.trends(player1.id, await self.storage.get_player_matches(player1.id, limit=20))
        trend2 = self.stats.trends(player2.id, await self.storage.get_player_matches(player2.id, limit=20))
        data = {
            "player1": {"name": player1.name, "trends": trend1},
            "player2": {"name": player2.name, "trends": trend2},
        }
        verdict = await self.ask_factor(
            "Statistical Trends",
            """Analyze the direction of each player's statistics:
1. Change in win rate over recent matches
2. Serve and return improvement or decline
3. Current season against previous season

Determine whose trajectory gives them the edge.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=trend_confidence(trend1, trend2),
            reasoning=verdict.reasoning,
            analysis=data,
        )
