"""Domain models for TennisOracle.

Players, tournaments and matches are reference data kept fresh by the sync
jobs. Predictions and agent analysis rows are written by the orchestrator,
one prediction per match (upserted) plus one analysis row per agent run.
"""

from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tennisoracle.models.base import Base, TimestampMixin

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

DEFAULT_PLAYER_AGE = 25


class User(Base, TimestampMixin):
    """Application user. Schema only, no login flows are exposed."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.username}>"


class Player(Base, TimestampMixin):
    """Professional player with ranking and profile attributes used in prompts."""

    __tablename__ = "players"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    nationality: Mapped[str | None] = mapped_column(String(10), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    ranking: Mapped[int | None] = mapped_column(Integer, nullable=True)
    elo_rating: Mapped[float | None] = mapped_column(
        Numeric(10, 2, asdecimal=False), nullable=True
    )
    playing_style: Mapped[str | None] = mapped_column(String(50), nullable=True)
    preferred_surface: Mapped[str | None] = mapped_column(String(20), nullable=True)
    fitness_level: Mapped[str | None] = mapped_column(String(20), nullable=True)
    strengths: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    weaknesses: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_players_name", "name"),
        Index("ix_players_ranking", "ranking"),
    )

    @property
    def age(self) -> int:
        """Age in whole years, or a neutral default when the birth date is unknown."""
        if self.birth_date is None:
            return DEFAULT_PLAYER_AGE
        today = datetime.now(timezone.utc).date()
        years = today.year - self.birth_date.year
        if (today.month, today.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return years

    def __repr__(self) -> str:
        return f"<Player {self.name} (#{self.ranking})>"


class Tournament(Base, TimestampMixin):
    """
    Tournament on the tour calendar.

    Category is one of grand_slam, masters_1000, atp_500, atp_250.
    """

    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    surface: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    matches: Mapped[list["Match"]] = relationship("Match", back_populates="tournament")

    def __repr__(self) -> str:
        return f"<Tournament {self.name} ({self.surface})>"


class Match(Base, TimestampMixin):
    """
    A singles match between two players.

    Score is stored as comma-separated sets, e.g. "6-4, 3-6, 7-6".
    """

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tournament_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("tournaments.id"), nullable=True
    )
    player1_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=False
    )
    player2_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=False
    )
    scheduled_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="scheduled",
        doc="'scheduled', 'in_progress', 'completed', 'cancelled'",
    )
    winner_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=True
    )
    score: Mapped[str | None] = mapped_column(String(100), nullable=True)
    surface: Mapped[str] = mapped_column(String(20), nullable=False)
    round: Mapped[str | None] = mapped_column(String(50), nullable=True)
    best_of: Mapped[int] = mapped_column(Integer, default=3)
    match_stats: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    tournament: Mapped["Tournament"] = relationship(
        "Tournament", back_populates="matches"
    )

    __table_args__ = (
        Index("ix_matches_status_scheduled", "status", "scheduled_time"),
        Index("ix_matches_player1", "player1_id"),
        Index("ix_matches_player2", "player2_id"),
    )

    @property
    def sets_played(self) -> int:
        if not self.score:
            return 0
        return len([s for s in self.score.split(",") if s.strip()])

    def opponent_of(self, player_id: int) -> int:
        return self.player2_id if self.player1_id == player_id else self.player1_id

    def __repr__(self) -> str:
        return f"<Match {self.id} {self.player1_id} v {self.player2_id} ({self.status})>"


class Prediction(Base):
    """
    Synthesized prediction for a match.

    At most one current row per match: TennisStorage.save_prediction updates
    the existing row instead of inserting a second one.
    """

    __tablename__ = "predictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    match_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("matches.id"), nullable=False
    )
    predicted_winner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=False
    )
    win_probability: Mapped[float] = mapped_column(
        Numeric(5, 4, asdecimal=False), nullable=False
    )
    confidence_level: Mapped[float] = mapped_column(
        Numeric(5, 4, asdecimal=False), nullable=False
    )
    factor_analysis: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False
    )
    reasoning: Mapped[str] = mapped_column(Text, nullable=False)
    agent_contributions: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False
    )
    synthesis_method: Mapped[str] = mapped_column(
        String(20), nullable=False, default="llm", doc="'llm' or 'fallback'"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_predictions_match", "match_id"),)

    def __repr__(self) -> str:
        return f"<Prediction match={self.match_id} winner={self.predicted_winner_id}>"


class PlayerStats(Base):
    """
    Aggregate statistics per player, surface and timeframe.

    Timeframe is one of last_10, last_52_weeks, career. Rates are stored
    as fractions in [0, 1].
    """

    __tablename__ = "player_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=False
    )
    surface: Mapped[str] = mapped_column(String(20), nullable=False)
    timeframe: Mapped[str] = mapped_column(String(20), nullable=False)
    matches_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    matches_won: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sets_won: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sets_lost: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_serve_percentage: Mapped[float | None] = mapped_column(
        Numeric(5, 4, asdecimal=False), nullable=True
    )
    first_serve_points_won: Mapped[float | None] = mapped_column(
        Numeric(5, 4, asdecimal=False), nullable=True
    )
    second_serve_points_won: Mapped[float | None] = mapped_column(
        Numeric(5, 4, asdecimal=False), nullable=True
    )
    aces_per_match: Mapped[float | None] = mapped_column(
        Numeric(6, 2, asdecimal=False), nullable=True
    )
    double_faults_per_match: Mapped[float | None] = mapped_column(
        Numeric(6, 2, asdecimal=False), nullable=True
    )
    break_points_converted: Mapped[float | None] = mapped_column(
        Numeric(5, 4, asdecimal=False), nullable=True
    )
    break_points_saved: Mapped[float | None] = mapped_column(
        Numeric(5, 4, asdecimal=False), nullable=True
    )
    return_points_won: Mapped[float | None] = mapped_column(
        Numeric(5, 4, asdecimal=False), nullable=True
    )
    tiebreaks_won: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tiebreaks_played: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deciding_sets_won: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deciding_sets_played: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "player_id", "surface", "timeframe", name="uq_player_stats_scope"
        ),
    )

    def __repr__(self) -> str:
        return f"<PlayerStats player={self.player_id} {self.surface}/{self.timeframe}>"


class AgentAnalysis(Base):
    """One row per agent run for a match."""

    __tablename__ = "agent_analysis"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    match_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("matches.id"), nullable=False
    )
    agent_type: Mapped[str] = mapped_column(String(50), nullable=False)
    agent_name: Mapped[str] = mapped_column(String(100), nullable=False)
    factor: Mapped[str | None] = mapped_column(String(100), nullable=True)
    analysis: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    conclusion: Mapped[str | None] = mapped_column(String(200), nullable=True)
    advantage: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        doc="'player1', 'player2', 'none', 'slight_player1', 'slight_player2'",
    )
    confidence_level: Mapped[float | None] = mapped_column(
        Numeric(5, 4, asdecimal=False), nullable=True
    )
    reasoning: Mapped[str | None] = mapped_column(Text, nullable=True)
    processing_time: Mapped[int | None] = mapped_column(
        Integer, nullable=True, doc="Milliseconds"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_agent_analysis_match", "match_id"),)

    def __repr__(self) -> str:
        return f"<AgentAnalysis match={self.match_id} {self.agent_name}>"


class HeadToHeadRecord(Base):
    """Aggregated meetings between two players, split by surface."""

    __tablename__ = "head_to_head_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player1_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=False
    )
    player2_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=False
    )
    total_meetings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    player1_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    player2_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clay_meetings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clay_player1_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hard_meetings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hard_player1_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    grass_meetings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    grass_player1_wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_meeting: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    recent_form: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONType, nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("player1_id", "player2_id", name="uq_head_to_head_pair"),
    )

    def __repr__(self) -> str:
        return f"<HeadToHeadRecord {self.player1_id} v {self.player2_id}>"


class NewsArticle(Base):
    """News item, optionally linked to the player it mentions."""

    __tablename__ = "news_articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("players.id"), nullable=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(200), nullable=False)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    sentiment: Mapped[str | None] = mapped_column(
        String(20), nullable=True, doc="'positive', 'negative', 'neutral'"
    )
    relevance_score: Mapped[float | None] = mapped_column(
        Numeric(5, 4, asdecimal=False), nullable=True
    )
    keywords: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True)
    is_injury_related: Mapped[bool] = mapped_column(Boolean, default=False)
    is_coaching_change: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_news_published", "published_at"),
        Index("ix_news_player", "player_id"),
    )

    def __repr__(self) -> str:
        return f"<NewsArticle {self.title[:40]}>"


class JobRun(Base):
    """
    Task execution audit log.

    Every sync job run is logged here for monitoring and debugging.
    """

    __tablename__ = "job_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    job_name: Mapped[str] = mapped_column(String(100), nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, doc="'running', 'success', 'failed'"
    )
    records_processed: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSONType, nullable=True
    )

    def __repr__(self) -> str:
        return f"<JobRun {self.job_name} status={self.status}>"
