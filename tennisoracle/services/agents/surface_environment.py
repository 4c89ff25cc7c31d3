"""Surface and environment agents (factors 2.1 and 2.2)."""

from typing import Any

from tennisoracle.models.domain import Match, Player
from tennisoracle.services.agents.base import AgentGroup, FactorOutcome, clamp, factor_agent
from tennisoracle.services.agents.stats import court_pace, win_rate


def surface_confidence(stats1: dict[str, Any], stats2: dict[str, Any]) -> float:
    """Win-rate gap scaled by 0.5, discounted for small samples."""
    confidence = 0.5 + abs(stats1["win_rate"] - stats2["win_rate"]) * 0.5
    sample = min(stats1["total_matches"], stats2["total_matches"])
    if sample < 5:
        confidence *= 0.6
    elif sample < 10:
        confidence *= 0.8
    return clamp(confidence, 0.1, 0.95)


def environment_confidence(weather: dict[str, Any]) -> float:
    """Forecast reliability, boosted when conditions are extreme."""
    confidence = weather["forecast_reliability"]
    if weather["temperature"] > 35 or weather["temperature"] < 10:
        confidence *= 1.2
    if weather["wind_speed"] > 20:
        confidence *= 1.1
    return clamp(confidence, 0.3, 0.9)


class SurfaceEnvironmentAgents(AgentGroup):
    category = "surface_environment"

    async def _surface_stats(self, player_id: int, surface: str) -> dict[str, Any]:
        matches = await self.storage.get_player_matches(player_id, surface=surface, limit=100)
        wins = sum(1 for m in matches if m.winner_id == player_id)
        return {
            "win_rate": win_rate(matches, player_id),
            "total_matches": len(matches),
            "recent_form": win_rate(matches[:10], player_id),
            "wins": wins,
            "losses": len(matches) - wins,
        }

    async def _venue(self, tournament_id: int | None) -> dict[str, Any]:
        tournament = await self.storage.get_tournament(tournament_id) if tournament_id else None
        if tournament is None:
            return {"location": "Unknown", "altitude": 0, "indoor": False, "timezone": "UTC"}
        return {
            "location": tournament.location,
            "altitude": 0,
            "indoor": tournament.surface == "indoor",
            "timezone": "UTC",
        }

    @factor_agent("Surface Suitability Analyst", "Factor 2.1 (Surface Fit)", "surface suitability")
    async def analyze_surface_suitability(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        stats1 = await self._surface_stats(player1.id, match.surface)
        stats2 = await self._surface_stats(player2.id, match.surface)
        data = {
            "surface": match.surface,
            "court_pace": court_pace(match.surface),
            "player1": {
                "name": player1.name,
                "surface_win_rate": stats1["win_rate"],
                "surface_matches": stats1["total_matches"],
                "recent_surface_form": stats1["recent_form"],
                "playing_style": player1.playing_style,
                "preferred_surface": player1.preferred_surface,
            },
            "player2": {
                "name": player2.name,
                "surface_win_rate": stats2["win_rate"],
                "surface_matches": stats2["total_matches"],
                "recent_surface_form": stats2["recent_form"],
                "playing_style": player2.playing_style,
                "preferred_surface": player2.preferred_surface,
            },
        }
        verdict = await self.ask_factor(
            "Surface Suitability",
            f"""Analyze how each player adapts to {match.surface} courts. Consider:
1. Historical performance on this surface
2. Playing style compatibility with surface characteristics
3. Recent form on this specific surface
4. Court pace implications for each player's game

Determine who has the surface advantage and explain why.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=surface_confidence(stats1, stats2),
            reasoning=verdict.reasoning,
            analysis=data,
        )

    @factor_agent("Environment Analyst", "Factor 2.2 (Conditions & Acclimatization)", "environmental conditions")
    async def analyze_environment(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        venue = await self._venue(match.tournament_id)
        weather = self.stats.forecast(venue["location"], match.scheduled_time)
        data: dict[str, Any] = {"venue": venue, "weather": weather}
        for key, player in (("player1", player1), ("player2", player2)):
            data[key] = {
                "name": player.name,
                "age": player.age,
                "fitness": player.fitness_level,
                **self.stats.condition_record(player.id),
            }
        verdict = await self.ask_factor(
            "Environmental Conditions",
            """Analyze how environmental conditions will impact each player:
1. Weather effects (temperature, humidity, wind)
2. Altitude implications if applicable
3. Time of day and potential fatigue factors
4. Historical performance in similar conditions

Determine if conditions favor either player.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=environment_confidence(weather),
            reasoning=verdict.reasoning,
            analysis=data,
        )
