"""Statistics inputs for the agents.

Stored PlayerStats rows and completed matches are used wherever they carry
the metric. Metrics with no data source yet (rally length, travel, weather)
are estimated: each estimate comes from a ``random.Random`` seeded with
(seed, player, metric group), so the same player always gets the same value
and test runs are reproducible. Every payload says which values are estimates.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import Any

from tennisoracle.models.domain import Match, PlayerStats

COURT_PACE = {
    "hard": "medium-fast",
    "clay": "slow",
    "grass": "fast",
    "indoor": "medium-fast",
}

NEUTRAL_FORECAST = {
    "temperature": 25,
    "humidity": 60,
    "wind_speed": 10,
    "conditions": "partly_cloudy",
    "forecast_reliability": 0.8,
}


def won(match: Match, player_id: int) -> bool:
    return match.winner_id == player_id


def win_rate(matches: list[Match], player_id: int) -> float:
    if not matches:
        return 0.0
    return sum(1 for m in matches if won(m, player_id)) / len(matches)


def _aware(moment: datetime | None) -> datetime | None:
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def match_time(match: Match) -> datetime | None:
    """Completion time, falling back to the scheduled time."""
    return _aware(match.completed_time) or _aware(match.scheduled_time)


def court_pace(surface: str) -> dict[str, str]:
    pace = COURT_PACE.get(surface, "medium")
    if surface == "clay":
        bounce = "high"
    elif surface == "grass":
        bounce = "low"
    else:
        bounce = "medium"
    return {
        "pace": pace,
        "bounce_height": bounce,
        "description": f"{surface} court with {pace} pace",
    }


class StatsProvider:
    """Builds per-player metric dictionaries for the agents."""

    def __init__(self, seed: int = 0, minutes_per_set: int = 35):
        self.seed = seed
        self.minutes_per_set = minutes_per_set

    def _rng(self, player_id: int, group: str) -> random.Random:
        return random.Random(f"{self.seed}:{player_id}:{group}")

    @staticmethod
    def _pick(stored: float | None, estimate: float) -> float:
        return float(stored) if stored is not None else estimate

    def serve_stats(self, player_id: int, stored: PlayerStats | None) -> dict[str, Any]:
        rng = self._rng(player_id, "serve")
        s = stored
        return {
            "first_serve_percentage": self._pick(
                s and s.first_serve_percentage, 0.60 + rng.random() * 0.15
            ),
            "first_serve_win_rate": self._pick(
                s and s.first_serve_points_won, 0.70 + rng.random() * 0.15
            ),
            "second_serve_win_rate": self._pick(
                s and s.second_serve_points_won, 0.45 + rng.random() * 0.15
            ),
            "ace_rate": 0.08 + rng.random() * 0.10,
            "double_fault_rate": 0.03 + rng.random() * 0.04,
            "service_games_held": 0.80 + rng.random() * 0.15,
            "break_points_saved": self._pick(
                s and s.break_points_saved, 0.60 + rng.random() * 0.20
            ),
            "aces_per_match": s.aces_per_match if s else None,
            "estimated": s is None,
        }

    def return_stats(self, player_id: int, stored: PlayerStats | None) -> dict[str, Any]:
        rng = self._rng(player_id, "return")
        s = stored
        return {
            "first_serve_return_win_rate": 0.25 + rng.random() * 0.15,
            "second_serve_return_win_rate": 0.50 + rng.random() * 0.15,
            "break_points_converted": self._pick(
                s and s.break_points_converted, 0.40 + rng.random() * 0.20
            ),
            "return_points_won": self._pick(
                s and s.return_points_won, 0.35 + rng.random() * 0.10
            ),
            "return_games_won": 0.20 + rng.random() * 0.15,
            "average_breaks_per_match": 2 + rng.random() * 2,
            "estimated": s is None,
        }

    def rally_stats(self, player_id: int) -> dict[str, Any]:
        rng = self._rng(player_id, "rally")
        return {
            "avg_rally_length": 3 + rng.random() * 4,
            "short_rally_win_rate": 0.45 + rng.random() * 0.20,
            "long_rally_win_rate": 0.45 + rng.random() * 0.20,
            "winners_to_errors": 0.8 + rng.random() * 0.6,
            "net_approach_success": 0.60 + rng.random() * 0.20,
            "estimated": True,
        }

    def pressure_stats(self, player_id: int, stored: PlayerStats | None) -> dict[str, Any]:
        rng = self._rng(player_id, "pressure")
        s = stored
        tiebreak = None
        deciding = None
        if s and s.tiebreaks_played:
            tiebreak = (s.tiebreaks_won or 0) / s.tiebreaks_played
        if s and s.deciding_sets_played:
            deciding = (s.deciding_sets_won or 0) / s.deciding_sets_played
        return {
            "tiebreak_win_rate": self._pick(tiebreak, 0.45 + rng.random() * 0.20),
            "deciding_set_win_rate": self._pick(deciding, 0.45 + rng.random() * 0.20),
            "break_point_save_rate": self._pick(
                s and s.break_points_saved, 0.60 + rng.random() * 0.20
            ),
            "break_point_conversion_rate": self._pick(
                s and s.break_points_converted, 0.35 + rng.random() * 0.20
            ),
            "estimated": s is None,
        }

    def trends(self, player_id: int, matches: list[Match]) -> dict[str, Any]:
        """Win-rate trend from the last ten matches against the ten before."""
        rng = self._rng(player_id, "trend")
        recent, previous = matches[:10], matches[10:20]
        if recent and previous:
            current_rate = win_rate(recent, player_id)
            previous_rate = win_rate(previous, player_id)
            estimated = False
        else:
            current_rate = 0.5 + rng.random() * 0.3
            previous_rate = 0.5 + rng.random() * 0.3
            estimated = True
        return {
            "recent": {
                "serve_improvement": (rng.random() - 0.5) * 0.2,
                "return_improvement": (rng.random() - 0.5) * 0.2,
                "win_rate_change": current_rate - previous_rate,
            },
            "season_comparison": {
                "current_win_rate": current_rate,
                "previous_win_rate": previous_rate,
            },
            "estimated": estimated,
        }

    def style_metrics(self, player_id: int) -> dict[str, Any]:
        rng = self._rng(player_id, "style")
        return {
            "aggression_index": 0.5 + (rng.random() * 0.4 - 0.2),
            "avg_rally_length": 4 + rng.random() * 3,
            "net_approach_rate": rng.random() * 0.3,
            "serve_points_won_rate": 0.6 + rng.random() * 0.2,
            "return_points_won_rate": 0.35 + rng.random() * 0.1,
        }

    def condition_record(self, player_id: int) -> dict[str, Any]:
        rng = self._rng(player_id, "conditions")
        return {
            "heat_record": round(0.4 + rng.random() * 0.3, 3),
            "wind_record": round(0.4 + rng.random() * 0.3, 3),
            "altitude_matches": rng.randint(0, 12),
            "estimated": True,
        }

    def forecast(self, location: str, scheduled_time: datetime | None) -> dict[str, Any]:
        """Neutral forecast; no weather source is wired in."""
        return {"location": location, "scheduled_time": scheduled_time, **NEUTRAL_FORECAST}

    def schedule_load(self, player_id: int, matches: list[Match], window_days: int = 14) -> dict[str, Any]:
        """Court time and rest derived from completed matches, most recent first."""
        rng = self._rng(player_id, "travel")
        now = datetime.now(timezone.utc)
        window_start = now - timedelta(days=window_days)
        in_window = [m for m in matches if (match_time(m) or window_start) > window_start]
        last = match_time(matches[0]) if matches else None
        return {
            "recent_matches": len(in_window),
            "total_minutes_played": sum(
                (m.sets_played or 3) * self.minutes_per_set for m in in_window
            ),
            "days_since_last_match": (now - last).days if last else 7,
            "consecutive_match_days": consecutive_match_days(matches),
            "travel_distance_km": rng.randint(0, 5000),
            "time_zone_changes": rng.randint(0, 2),
        }

    def last_match_toll(self, player_id: int, matches: list[Match]) -> dict[str, Any]:
        rng = self._rng(player_id, "toll")
        if not matches:
            return {
                "duration": 0,
                "intensity": "low",
                "sets_played": 0,
                "rally_count": 0,
                "distance_covered_m": 0,
                "hours_ago": 168,
            }
        last = matches[0]
        sets = last.sets_played or 3
        finished = match_time(last)
        hours_ago = (
            int((datetime.now(timezone.utc) - finished).total_seconds() // 3600)
            if finished
            else 48
        )
        if sets >= 4:
            intensity = "high"
        elif sets == 3:
            intensity = "medium"
        else:
            intensity = "low"
        return {
            "duration": sets * self.minutes_per_set,
            "intensity": intensity,
            "sets_played": sets,
            "rally_count": 50 + rng.randint(0, 100),
            "distance_covered_m": 2000 + rng.randint(0, 2000),
            "hours_ago": hours_ago,
        }

    def medical_timeouts(self, player_id: int) -> int:
        return self._rng(player_id, "medical").randint(0, 1)

    def third_set_dropoff(self, player_id: int) -> float:
        return self._rng(player_id, "endurance").random() * 0.2 - 0.1


def consecutive_match_days(matches: list[Match]) -> int:
    """Length of the run of matches played on back-to-back days, most recent first."""
    if len(matches) < 2:
        return 0
    consecutive = 1
    for newer, older in zip(matches, matches[1:]):
        newer_time, older_time = match_time(newer), match_time(older)
        if newer_time is None or older_time is None:
            break
        if (newer_time - older_time).days <= 1:
            consecutive += 1
        else:
            break
    return consecutive
