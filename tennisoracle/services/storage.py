"""Persistence accessor for TennisOracle.

Every method opens its own short-lived session from the injected factory,
so agents running concurrently never share a session. There is no
transaction spanning a prediction and its agent analysis rows.
"""

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tennisoracle.models.domain import (
    AgentAnalysis,
    HeadToHeadRecord,
    Match,
    NewsArticle,
    Player,
    PlayerStats,
    Prediction,
    Tournament,
)

logger = structlog.get_logger(__name__)


class TennisStorage:
    """Query and write helpers over the relational store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    async def get_player(self, player_id: int) -> Player | None:
        async with self.session_factory() as session:
            return await session.get(Player, player_id)

    async def get_player_by_name(self, name: str) -> Player | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Player).where(Player.name == name).limit(1)
            )
            return result.scalar_one_or_none()

    async def list_players(self) -> list[Player]:
        async with self.session_factory() as session:
            result = await session.execute(select(Player).order_by(Player.name))
            return list(result.scalars().all())

    async def get_top_players(self, limit: int = 50) -> list[Player]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Player)
                .where(Player.ranking.is_not(None))
                .order_by(Player.ranking)
                .limit(limit)
            )
            return list(result.scalars().all())

    async def create_player(self, **fields: Any) -> Player:
        async with self.session_factory() as session:
            player = Player(**fields)
            session.add(player)
            await session.commit()
            await session.refresh(player)
            return player

    async def upsert_player(self, fields: dict[str, Any]) -> tuple[Player, bool]:
        """Insert or update a player matched by name. Returns (player, created)."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Player).where(Player.name == fields["name"]).limit(1)
            )
            player = result.scalar_one_or_none()
            created = player is None
            if created:
                player = Player(**fields)
                session.add(player)
            else:
                for key, value in fields.items():
                    setattr(player, key, value)
            await session.commit()
            await session.refresh(player)
            return player, created

    # ------------------------------------------------------------------
    # Tournaments
    # ------------------------------------------------------------------

    async def get_tournament(self, tournament_id: int) -> Tournament | None:
        async with self.session_factory() as session:
            return await session.get(Tournament, tournament_id)

    async def get_tournament_by_name(self, name: str) -> Tournament | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Tournament).where(Tournament.name == name).limit(1)
            )
            return result.scalar_one_or_none()

    async def create_tournament(self, **fields: Any) -> Tournament:
        async with self.session_factory() as session:
            tournament = Tournament(**fields)
            session.add(tournament)
            await session.commit()
            await session.refresh(tournament)
            return tournament

    async def get_active_tournaments(self) -> list[Tournament]:
        now = datetime.now(timezone.utc)
        async with self.session_factory() as session:
            result = await session.execute(
                select(Tournament)
                .where(and_(Tournament.start_date <= now, Tournament.end_date >= now))
                .order_by(Tournament.start_date)
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    async def get_match(self, match_id: int) -> Match | None:
        async with self.session_factory() as session:
            return await session.get(Match, match_id)

    async def create_match(self, **fields: Any) -> Match:
        async with self.session_factory() as session:
            match = Match(**fields)
            session.add(match)
            await session.commit()
            await session.refresh(match)
            return match

    async def get_upcoming_matches(self, limit: int = 20) -> list[Match]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Match)
                .where(Match.status == "scheduled")
                .order_by(Match.scheduled_time)
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get_player_matches(
        self,
        player_id: int,
        surface: str | None = None,
        limit: int = 50,
        completed_only: bool = True,
    ) -> list[Match]:
        """Matches involving a player, most recent first."""
        conditions = [or_(Match.player1_id == player_id, Match.player2_id == player_id)]
        if completed_only:
            conditions.append(Match.status == "completed")
        if surface:
            conditions.append(Match.surface == surface)

        async with self.session_factory() as session:
            result = await session.execute(
                select(Match)
                .where(and_(*conditions))
                .order_by(
                    Match.completed_time.desc().nulls_last(),
                    Match.scheduled_time.desc().nulls_last(),
                )
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get_head_to_head_matches(
        self, player1_id: int, player2_id: int
    ) -> list[Match]:
        """Completed meetings between two players, most recent first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(Match)
                .where(
                    and_(
                        Match.status == "completed",
                        or_(
                            and_(
                                Match.player1_id == player1_id,
                                Match.player2_id == player2_id,
                            ),
                            and_(
                                Match.player1_id == player2_id,
                                Match.player2_id == player1_id,
                            ),
                        ),
                    )
                )
                .order_by(Match.completed_time.desc().nulls_last())
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Predictions
    # ------------------------------------------------------------------

    async def get_prediction_by_match(self, match_id: int) -> Prediction | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Prediction)
                .where(Prediction.match_id == match_id)
                .order_by(Prediction.id.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def get_recent_predictions(self, limit: int = 20) -> list[Prediction]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Prediction)
                .order_by(Prediction.created_at.desc(), Prediction.id.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def save_prediction(
        self,
        match_id: int,
        predicted_winner_id: int,
        win_probability: float,
        confidence_level: float,
        factor_analysis: list[dict[str, Any]],
        reasoning: str,
        agent_contributions: dict[str, Any],
        synthesis_method: str = "llm",
    ) -> Prediction:
        """Update the match's current prediction, or insert one if none exists."""
        values = {
            "predicted_winner_id": predicted_winner_id,
            "win_probability": win_probability,
            "confidence_level": confidence_level,
            "factor_analysis": factor_analysis,
            "reasoning": reasoning,
            "agent_contributions": agent_contributions,
            "synthesis_method": synthesis_method,
        }
        async with self.session_factory() as session:
            result = await session.execute(
                select(Prediction)
                .where(Prediction.match_id == match_id)
                .order_by(Prediction.id.desc())
                .limit(1)
            )
            prediction = result.scalar_one_or_none()
            if prediction is None:
                prediction = Prediction(match_id=match_id, **values)
                session.add(prediction)
            else:
                for key, value in values.items():
                    setattr(prediction, key, value)
            await session.commit()
            await session.refresh(prediction)

        logger.info(
            "prediction_saved",
            match_id=match_id,
            winner_id=predicted_winner_id,
            method=synthesis_method,
        )
        return prediction

    # ------------------------------------------------------------------
    # Player stats
    # ------------------------------------------------------------------

    async def get_player_stats(
        self, player_id: int, surface: str, timeframe: str
    ) -> PlayerStats | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PlayerStats).where(
                    and_(
                        PlayerStats.player_id == player_id,
                        PlayerStats.surface == surface,
                        PlayerStats.timeframe == timeframe,
                    )
                )
            )
            return result.scalar_one_or_none()

    async def save_player_stats(self, **fields: Any) -> PlayerStats:
        async with self.session_factory() as session:
            stats = PlayerStats(**fields)
            session.add(stats)
            await session.commit()
            await session.refresh(stats)
            return stats

    # ------------------------------------------------------------------
    # Agent analysis
    # ------------------------------------------------------------------

    async def create_agent_analyses(self, rows: list[dict[str, Any]]) -> int:
        """Insert one agent_analysis row per dict. Returns the count."""
        if not rows:
            return 0
        async with self.session_factory() as session:
            session.add_all([AgentAnalysis(**row) for row in rows])
            await session.commit()
        return len(rows)

    async def get_analysis_by_match(self, match_id: int) -> list[AgentAnalysis]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(AgentAnalysis)
                .where(AgentAnalysis.match_id == match_id)
                .order_by(AgentAnalysis.id)
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Head to head
    # ------------------------------------------------------------------

    async def get_head_to_head(
        self, player1_id: int, player2_id: int
    ) -> HeadToHeadRecord | None:
        """Stored record for a pair, in either player order."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(HeadToHeadRecord)
                .where(
                    or_(
                        and_(
                            HeadToHeadRecord.player1_id == player1_id,
                            HeadToHeadRecord.player2_id == player2_id,
                        ),
                        and_(
                            HeadToHeadRecord.player1_id == player2_id,
                            HeadToHeadRecord.player2_id == player1_id,
                        ),
                    )
                )
                .limit(1)
            )
            return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # News
    # ------------------------------------------------------------------

    async def create_news_article(self, **fields: Any) -> NewsArticle:
        async with self.session_factory() as session:
            article = NewsArticle(**fields)
            session.add(article)
            await session.commit()
            await session.refresh(article)
            return article

    async def get_news_article_by_url(self, url: str) -> NewsArticle | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(NewsArticle).where(NewsArticle.url == url).limit(1)
            )
            return result.scalar_one_or_none()

    async def get_recent_news(self, limit: int = 50) -> list[NewsArticle]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(NewsArticle).order_by(NewsArticle.published_at.desc()).limit(limit)
            )
            return list(result.scalars().all())

    async def get_news_by_player(self, player_id: int, limit: int = 20) -> list[NewsArticle]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(NewsArticle)
                .where(NewsArticle.player_id == player_id)
                .order_by(NewsArticle.published_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get_injury_news(
        self, player_id: int | None = None, limit: int = 20
    ) -> list[NewsArticle]:
        query = select(NewsArticle).where(NewsArticle.is_injury_related.is_(True))
        if player_id is not None:
            query = query.where(NewsArticle.player_id == player_id)
        async with self.session_factory() as session:
            result = await session.execute(
                query.order_by(NewsArticle.published_at.desc()).limit(limit)
            )
            return list(result.scalars().all())
