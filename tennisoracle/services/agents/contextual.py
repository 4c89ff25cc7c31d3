"""Contextual agents (factors 6.1 and 6.2)."""

import re
from typing import Any

from tennisoracle.models.domain import Match, Player
from tennisoracle.services.agents.base import (
    Advantage,
    AgentGroup,
    FactorOutcome,
    FactorResult,
    PLAYER1_ADVANTAGES,
    PLAYER2_ADVANTAGES,
    factor_agent,
)

INSIGHT_PATTERNS = {
    "injuries": re.compile(r".*injur.*", re.IGNORECASE),
    "form_indicators": re.compile(r".*(form|performance).*", re.IGNORECASE),
    "contextual_factors": re.compile(r".*(context|coach|personal).*", re.IGNORECASE),
}

# Data each scored factor depends on; factor 6.x is not scored
FACTOR_SOURCES = {
    "Factor 1.1 (Recent Match Results)": "recent_matches",
    "Factor 1.2 (Momentum & Consistency)": "recent_matches",
    "Factor 1.3 (Clutch Moments Recently)": "player_stats",
    "Factor 2.1 (Surface Fit)": "surface_matches",
    "Factor 2.2 (Conditions & Acclimatization)": "tournament",
    "Factor 3.1 (Serve Performance)": "player_stats",
    "Factor 3.2 (Return Performance)": "player_stats",
    "Factor 3.3 (Rally Patterns)": "rally_data",
    "Factor 3.4 (Pressure Points)": "player_stats",
    "Factor 3.5 (Statistical Trends)": "recent_matches",
    "Factor 4.1 (Schedule Burden)": "recent_matches",
    "Factor 4.2 (Physical Toll)": "recent_matches",
    "Factor 4.3 (Injury & Fitness)": "fitness",
    "Factor 4.4 (Age & Endurance)": "birth_dates",
    "Factor 5.1 (Playing Style Matchup)": "playing_styles",
    "Factor 5.2 (Head-to-Head)": "head_to_head",
    "Factor 5.3 (Tactical Battle)": "playing_styles",
}

SOURCE_GAPS = {
    "recent_matches": "No completed matches on record for one or both players",
    "surface_matches": "No completed matches on this surface for one or both players",
    "player_stats": "Serve, return and pressure statistics are estimated for one or both players",
    "tournament": "Tournament information not available",
    "rally_data": "Rally statistics are estimated",
    "fitness": "Fitness level not reported for one or both players",
    "birth_dates": "Birth date unknown for one or both players",
    "playing_styles": "Playing style not recorded for one or both players",
    "head_to_head": "No previous head-to-head meetings between players",
    "rankings": "Current rankings not available for one or both players",
}


def extract_insights(text: str) -> dict[str, list[str]]:
    """Lines of an insight reply, bucketed by keyword."""
    return {
        key: [m.group(0).strip() for m in pattern.finditer(text or "") if m.group(0).strip()]
        for key, pattern in INSIGHT_PATTERNS.items()
    }


def news_confidence(insights1: dict[str, list[str]], insights2: dict[str, list[str]]) -> float:
    if insights1["injuries"] or insights2["injuries"]:
        return 0.85
    if insights1["contextual_factors"] or insights2["contextual_factors"]:
        return 0.7
    return 0.5


def factor_coverage(factors: list[FactorResult], total_factors: int = 17) -> float:
    completed = [f for f in factors if not f.failed and f.confidence > 0.1]
    return min(1.0, len(completed) / total_factors)


def reliability_score(factors: list[FactorResult], total_factors: int = 17) -> float:
    """Average confidence weighted 0.7 plus factor coverage weighted 0.3."""
    if not factors:
        return 0.0
    average = sum(f.confidence for f in factors) / len(factors)
    return average * 0.7 + factor_coverage(factors, total_factors) * 0.3


def limitations_report(gaps: list[str], uncertainties: list[str]) -> str:
    report = "Analysis Transparency Report:\n\n"
    if gaps:
        report += "**Data Gaps:**\n" + "".join(f"• {gap}\n" for gap in gaps) + "\n"
    if uncertainties:
        report += "**Uncertainties:**\n" + "".join(f"• {u}\n" for u in uncertainties) + "\n"
    if not gaps and not uncertainties:
        report += "Analysis completed with comprehensive data coverage and high confidence."
    else:
        report += (
            "Note: These limitations have been factored into the confidence scores "
            "of individual predictions."
        )
    return report


class ContextualAgents(AgentGroup):
    category = "contextual"

    INSIGHT_PROMPT = """Analyze this news text about {name} and extract:
1. Any injury or health concerns
2. Form indicators (recent performance mentions)
3. Other contextual factors (coaching changes, personal issues, etc.)

News text: {text}

Provide only confirmed facts, no speculation."""

    async def _player_news(self, player: Player) -> tuple[list[str], dict[str, list[str]]]:
        articles = await self.storage.get_news_by_player(player.id, limit=10)
        headlines = [
            f"{a.title}. {a.content}" if a.content else a.title for a in articles
        ]
        if not headlines:
            return [], {key: [] for key in INSIGHT_PATTERNS}
        result = await self.client.complete(
            self.INSIGHT_PROMPT.format(name=player.name, text="\n".join(headlines)),
            temperature=self.settings.synthesis_temperature,
            max_tokens=500,
        )
        return headlines, extract_insights(result.text)

    @factor_agent("News Monitor", "Factor 6.1 (Recent News & Context)", "recent news and context")
    async def analyze_news(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        news1, insights1 = await self._player_news(player1)
        news2, insights2 = await self._player_news(player2)
        data = {
            "player1": {"name": player1.name, "recent_news": news1[:3], **insights1},
            "player2": {"name": player2.name, "recent_news": news2[:3], **insights2},
            "match_context": {
                "tournament_id": match.tournament_id,
                "round": match.round,
                "scheduled_time": match.scheduled_time,
            },
        }
        verdict = await self.ask_factor(
            "Contextual Factors",
            """Analyze recent news and contextual factors that could impact this match:
1. Any confirmed injuries or health issues
2. Recent coaching changes or team adjustments
3. Personal circumstances affecting focus or motivation
4. Tournament-specific context (defending champion, first-time participant, etc.)
5. External pressures or expectations

Only report confirmed facts, no speculation. Determine if any contextual factors favor either player.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=news_confidence(insights1, insights2),
            reasoning=verdict.reasoning,
            analysis=data,
        )

    async def _available_sources(self, match: Match, player1: Player, player2: Player) -> dict[str, bool]:
        async def both(check) -> bool:
            return bool(await check(player1)) and bool(await check(player2))

        tournament = (
            await self.storage.get_tournament(match.tournament_id) if match.tournament_id else None
        )
        return {
            "recent_matches": await both(lambda p: self.storage.get_player_matches(p.id, limit=1)),
            "surface_matches": await both(
                lambda p: self.storage.get_player_matches(p.id, surface=match.surface, limit=1)
            ),
            "player_stats": await both(
                lambda p: self.storage.get_player_stats(p.id, match.surface, "last_52_weeks")
            ),
            "tournament": tournament is not None,
            "rally_data": False,
            "fitness": bool(player1.fitness_level and player2.fitness_level),
            "birth_dates": bool(player1.birth_date and player2.birth_date),
            "playing_styles": bool(player1.playing_style and player2.playing_style),
            "head_to_head": bool(await self.storage.get_head_to_head_matches(player1.id, player2.id)),
            "rankings": bool(player1.ranking and player2.ranking),
        }

    @factor_agent("Data Gaps & Uncertainty Reporter", "Factor 6.2 (Data Limitations)", "data limitations")
    async def report_data_gaps(
        self,
        match: Match,
        player1: Player,
        player2: Player,
        factors: list[FactorResult] | None = None,
    ) -> FactorOutcome:
        total = self.config.get("coverage_factor_total", 17)
        sources = await self._available_sources(match, player1, player2)
        gaps = [SOURCE_GAPS[key] for key, available in sources.items() if not available]

        uncertainties = []
        if player1.ranking and player2.ranking and abs(player1.ranking - player2.ranking) <= 5:
            uncertainties.append("Closely ranked players")

        if factors:
            for factor in factors:
                if factor.failed:
                    gaps.append(f"Unable to complete {factor.factor} analysis")
                elif factor.confidence < 0.3:
                    gaps.append(f"Low confidence in {factor.factor} due to insufficient data")
            favors1 = sum(1 for f in factors if f.advantage in PLAYER1_ADVANTAGES)
            favors2 = sum(1 for f in factors if f.advantage in PLAYER2_ADVANTAGES)
            if abs(favors1 - favors2) <= 1:
                uncertainties.append("Close match with nearly equal advantages for both players")
            coverage = factor_coverage(factors, total)
            reliability = reliability_score(factors, total)
        else:
            covered = sum(1 for source in FACTOR_SOURCES.values() if sources[source])
            coverage = covered / total
            reliability = coverage

        return FactorOutcome(
            advantage=Advantage.NONE.value,
            conclusion="Transparency Report",
            confidence=reliability,
            reasoning=limitations_report(gaps, uncertainties),
            analysis={
                "data_gaps": gaps,
                "uncertainties": uncertainties,
                "data_coverage": round(coverage, 4),
                "reliability_score": round(reliability, 4),
                "sources": sources,
            },
        )
