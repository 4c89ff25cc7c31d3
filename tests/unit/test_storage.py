"""Unit tests for TennisStorage against an in-memory SQLite database."""

from datetime import datetime, timedelta, timezone

import pytest


class TestPredictions:
    """Prediction persistence."""

    async def test_roundtrip_by_match(self, storage, match):
        factors = [{"factor": f"Factor {i}", "advantage": "none", "confidence": 0.5} for i in range(19)]
        saved = await storage.save_prediction(
            match_id=match.id,
            predicted_winner_id=match.player1_id,
            win_probability=0.65,
            confidence_level=0.7,
            factor_analysis=factors,
            reasoning="Stronger serve",
            agent_contributions={"key_factors": ["Factor 3.1 (Serve Performance)"]},
        )

        fetched = await storage.get_prediction_by_match(match.id)
        assert fetched.id == saved.id
        assert fetched.predicted_winner_id == match.player1_id
        assert fetched.win_probability == pytest.approx(0.65)
        assert len(fetched.factor_analysis) == 19
        assert fetched.synthesis_method == "llm"
        assert fetched.created_at is not None

    async def test_second_save_updates_in_place(self, storage, match):
        common = dict(
            match_id=match.id,
            confidence_level=0.75,
            factor_analysis=[],
            reasoning="r",
            agent_contributions={},
        )
        first = await storage.save_prediction(
            predicted_winner_id=match.player1_id, win_probability=0.55, **common
        )
        second = await storage.save_prediction(
            predicted_winner_id=match.player2_id,
            win_probability=0.6,
            synthesis_method="fallback",
            **common,
        )

        assert second.id == first.id
        recent = await storage.get_recent_predictions()
        assert len(recent) == 1
        assert recent[0].predicted_winner_id == match.player2_id
        assert recent[0].synthesis_method == "fallback"

    async def test_missing_prediction(self, storage):
        assert await storage.get_prediction_by_match(12345) is None


class TestMatches:
    """Match queries."""

    async def test_player_matches_most_recent_first(self, storage, players, completed_match):
        player1, player2 = players
        older = await completed_match(player1, player2, days_ago=20)
        newer = await completed_match(player2, player1, days_ago=2, surface="clay")

        matches = await storage.get_player_matches(player1.id)
        assert [m.id for m in matches] == [newer.id, older.id]

        clay = await storage.get_player_matches(player1.id, surface="clay")
        assert [m.id for m in clay] == [newer.id]

    async def test_scheduled_matches_excluded_from_history(self, storage, players, match):
        player1, _ = players
        assert await storage.get_player_matches(player1.id) == []
        upcoming = await storage.get_upcoming_matches()
        assert [m.id for m in upcoming] == [match.id]

    async def test_head_to_head_in_either_order(self, storage, players, completed_match):
        player1, player2 = players
        await completed_match(player1, player2, days_ago=5)
        await completed_match(player2, player1, days_ago=50)

        assert len(await storage.get_head_to_head_matches(player1.id, player2.id)) == 2
        assert len(await storage.get_head_to_head_matches(player2.id, player1.id)) == 2


class TestPlayers:
    async def test_upsert_by_name(self, storage):
        player, created = await storage.upsert_player({"name": "Daniil Medvedev", "ranking": 5})
        assert created
        updated, created = await storage.upsert_player({"name": "Daniil Medvedev", "ranking": 4})
        assert not created
        assert updated.id == player.id
        assert updated.ranking == 4

    async def test_top_players_skip_unranked(self, storage, players):
        await storage.create_player(name="Unranked Qualifier")
        top = await storage.get_top_players(10)
        assert [p.ranking for p in top] == [1, 2]

    async def test_age_defaults_without_birth_date(self, storage):
        player = await storage.create_player(name="Mystery Player")
        assert player.age == 25


class TestAgentAnalysisAndNews:
    async def test_agent_analysis_rows(self, storage, match):
        count = await storage.create_agent_analyses(
            [
                {
                    "match_id": match.id,
                    "agent_type": "matchup",
                    "agent_name": "Head-to-Head Analyst",
                    "factor": "Factor 5.2 (Head-to-Head)",
                    "analysis": {"total_meetings": 0},
                    "conclusion": "No Clear Advantage",
                    "advantage": "none",
                    "confidence_level": 0.0,
                    "reasoning": "First meeting",
                    "processing_time": 3,
                }
            ]
        )
        assert count == 1
        rows = await storage.get_analysis_by_match(match.id)
        assert rows[0].analysis == {"total_meetings": 0}
        assert await storage.create_agent_analyses([]) == 0

    async def test_injury_news_filter(self, storage, players):
        player1, player2 = players
        now = datetime.now(timezone.utc)
        await storage.create_news_article(
            player_id=player1.id,
            title="Alcaraz withdraws with ankle injury",
            source="Tennis Wire",
            url="https://example.com/a",
            published_at=now,
            is_injury_related=True,
        )
        await storage.create_news_article(
            player_id=player2.id,
            title="Sinner wins title",
            source="Tennis Wire",
            url="https://example.com/b",
            published_at=now - timedelta(hours=1),
        )

        injuries = await storage.get_injury_news()
        assert [a.title for a in injuries] == ["Alcaraz withdraws with ankle injury"]
        assert await storage.get_injury_news(player_id=player2.id) == []
        assert len(await storage.get_recent_news()) == 2
        assert (await storage.get_news_article_by_url("https://example.com/b")).player_id == player2.id
