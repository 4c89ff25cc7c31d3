"""Physical condition agents (factors 4.1 to 4.4)."""

from typing import Any

from tennisoracle.models.domain import Match, Player
from tennisoracle.services.agents.base import AgentGroup, FactorOutcome, factor_agent
from tennisoracle.services.agents.stats import win_rate


def career_stage(age: int) -> str:
    if age < 21:
        return "Rising"
    if age < 25:
        return "Developing"
    if age < 30:
        return "Prime"
    if age < 33:
        return "Experienced"
    return "Veteran"


def is_prime_age(age: int) -> bool:
    return 23 <= age <= 29


def schedule_confidence(load1: dict[str, Any], load2: dict[str, Any]) -> float:
    rest_diff = abs(load1["days_since_last_match"] - load2["days_since_last_match"])
    minutes_diff = abs(load1["total_minutes_played"] - load2["total_minutes_played"])
    return 0.8 if rest_diff > 3 or minutes_diff > 200 else 0.6


def toll_confidence(toll1: dict[str, Any], toll2: dict[str, Any]) -> float:
    hours_diff = abs(toll1["hours_ago"] - toll2["hours_ago"])
    duration_diff = abs(toll1["duration"] - toll2["duration"])
    return 0.85 if hours_diff > 24 and duration_diff > 60 else 0.65


def fitness_confidence(status1: dict[str, Any], status2: dict[str, Any]) -> float:
    if status1["injury_reports"] or status2["injury_reports"]:
        return 0.9
    if status1["medical_timeouts"] or status2["medical_timeouts"]:
        return 0.75
    return 0.5


def endurance_confidence(profile1: dict[str, Any], profile2: dict[str, Any]) -> float:
    if abs(profile1["age"] - profile2["age"]) > 5:
        return 0.8
    if abs(profile1["five_set_win_rate"] - profile2["five_set_win_rate"]) > 0.2:
        return 0.75
    return 0.6


class PhysicalConditionAgents(AgentGroup):
    category = "physical_condition"

    async def _recent(self, player_id: int, limit: int = 20) -> list[Match]:
        return await self.storage.get_player_matches(player_id, limit=limit)

    @factor_agent("Recent Schedule Burden Analyst", "Factor 4.1 (Schedule Burden)", "schedule burden")
    async def analyze_schedule_burden(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        window = self.config.get("schedule_window_days", 14)
        load1 = self.stats.schedule_load(player1.id, await self._recent(player1.id), window)
        load2 = self.stats.schedule_load(player2.id, await self._recent(player2.id), window)
        data = {
            "window_days": window,
            "player1": {"name": player1.name, "age": player1.age, "schedule": load1},
            "player2": {"name": player2.name, "age": player2.age, "schedule": load2},
        }
        verdict = await self.ask_factor(
            "Schedule Burden",
            """Analyze the recent workload of both players:
1. Matches and minutes played in the recent window
2. Rest days since the last match
3. Back-to-back match days
4. Travel distance and time zone changes

Determine who arrives fresher and whether workload is a deciding factor.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=schedule_confidence(load1, load2),
            reasoning=verdict.reasoning,
            analysis=data,
        )

    @factor_agent("Recent Match Physical Toll Analyst", "Factor 4.2 (Physical Toll)", "physical toll")
    async def analyze_physical_toll(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        toll1 = self.stats.last_match_toll(player1.id, await self._recent(player1.id, 1))
        toll2 = self.stats.last_match_toll(player2.id, await self._recent(player2.id, 1))
        data = {
            "player1": {"name": player1.name, "last_match": toll1},
            "player2": {"name": player2.name, "last_match": toll2},
        }
        verdict = await self.ask_factor(
            "Physical Toll",
            """Analyze the physical cost of each player's most recent match:
1. Duration and number of sets
2. Intensity and rally volume
3. Distance covered
4. Hours of recovery before this match

Determine who is carrying more fatigue into the match.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=toll_confidence(toll1, toll2),
            reasoning=verdict.reasoning,
            analysis=data,
        )

    async def _fitness_status(self, player: Player) -> dict[str, Any]:
        injuries = await self.storage.get_injury_news(player.id, limit=5)
        return {
            "fitness_level": player.fitness_level or "unknown",
            "injury_reports": [
                {"title": a.title, "published_at": a.published_at, "source": a.source}
                for a in injuries
            ],
            "medical_timeouts": self.stats.medical_timeouts(player.id),
        }

    @factor_agent("Injury & Fitness Status Monitor", "Factor 4.3 (Injury & Fitness)", "injury and fitness status")
    async def analyze_injury_status(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        status1 = await self._fitness_status(player1)
        status2 = await self._fitness_status(player2)
        data = {
            "player1": {"name": player1.name, **status1},
            "player2": {"name": player2.name, **status2},
        }
        verdict = await self.ask_factor(
            "Injury & Fitness",
            """Analyze the fitness status of both players:
1. Reported injuries and how recent they are
2. Medical timeouts in recent matches
3. Overall fitness level

Determine whether either player's physical condition is compromised.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=fitness_confidence(status1, status2),
            reasoning=verdict.reasoning,
            analysis=data,
        )

    async def _endurance_profile(self, player: Player) -> dict[str, Any]:
        matches = await self._recent(player.id, 50)
        five_setters = [m for m in matches if m.best_of == 5 and m.sets_played == 5]
        long_matches = [m for m in matches if m.sets_played >= 3]
        return {
            "age": player.age,
            "career_stage": career_stage(player.age),
            "prime_age": is_prime_age(player.age),
            "five_set_matches": len(five_setters),
            "five_set_win_rate": win_rate(five_setters, player.id),
            "long_match_win_rate": win_rate(long_matches, player.id),
            "third_set_dropoff": self.stats.third_set_dropoff(player.id),
        }

    @factor_agent("Age & Endurance Profiler", "Factor 4.4 (Age & Endurance)", "age and endurance")
    async def analyze_endurance(self, match: Match, player1: Player, player2: Player) -> FactorOutcome:
        profile1 = await self._endurance_profile(player1)
        profile2 = await self._endurance_profile(player2)
        data = {
            "best_of": match.best_of,
            "player1": {"name": player1.name, **profile1},
            "player2": {"name": player2.name, **profile2},
        }
        verdict = await self.ask_factor(
            "Age & Endurance",
            f"""Analyze the endurance of both players for a best-of-{match.best_of} match:
1. Age and career stage
2. Record in five-set and long matches
3. Performance drop-off in deciding sets

Determine who is better equipped if the match goes the distance.""",
            data,
        )
        return FactorOutcome(
            advantage=verdict.advantage,
            conclusion=verdict.conclusion,
            confidence=endurance_confidence(profile1, profile2),
            reasoning=verdict.reasoning,
            analysis=data,
        )
