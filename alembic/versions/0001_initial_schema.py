"""Initial schema for TennisOracle.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(100), nullable=False, unique=True),
        sa.Column('password', sa.String(255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'players',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('nationality', sa.String(10), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('ranking', sa.Integer(), nullable=True),
        sa.Column('elo_rating', sa.Numeric(10, 2), nullable=True),
        sa.Column('playing_style', sa.String(50), nullable=True),
        sa.Column('preferred_surface', sa.String(20), nullable=True),
        sa.Column('fitness_level', sa.String(20), nullable=True),
        sa.Column('strengths', postgresql.JSONB(), nullable=True),
        sa.Column('weaknesses', postgresql.JSONB(), nullable=True),
        sa.Column('profile_image_url', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_players_name', 'players', ['name'])
    op.create_index('ix_players_ranking', 'players', ['ranking'])

    op.create_table(
        'tournaments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('location', sa.String(200), nullable=False),
        sa.Column('surface', sa.String(20), nullable=False),
        sa.Column('category', sa.String(30), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'matches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tournament_id', sa.Integer(), sa.ForeignKey('tournaments.id'), nullable=True),
        sa.Column('player1_id', sa.Integer(), sa.ForeignKey('players.id'), nullable=False),
        sa.Column('player2_id', sa.Integer(), sa.ForeignKey('players.id'), nullable=False),
        sa.Column('scheduled_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='scheduled'),
        sa.Column('winner_id', sa.Integer(), sa.ForeignKey('players.id'), nullable=True),
        sa.Column('score', sa.String(100), nullable=True),
        sa.Column('surface', sa.String(20), nullable=False),
        sa.Column('round', sa.String(50), nullable=True),
        sa.Column('best_of', sa.Integer(), nullable=True, server_default='3'),
        sa.Column('match_stats', postgresql.JSONB(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_matches_status_scheduled', 'matches', ['status', 'scheduled_time'])
    op.create_index('ix_matches_player1', 'matches', ['player1_id'])
    op.create_index('ix_matches_player2', 'matches', ['player2_id'])

    op.create_table(
        'predictions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('match_id', sa.Integer(), sa.ForeignKey('matches.id'), nullable=False),
        sa.Column('predicted_winner_id', sa.Integer(), sa.ForeignKey('players.id'), nullable=False),
        sa.Column('win_probability', sa.Numeric(5, 4), nullable=False),
        sa.Column('confidence_level', sa.Numeric(5, 4), nullable=False),
        sa.Column('factor_analysis', postgresql.JSONB(), nullable=False),
        sa.Column('reasoning', sa.Text(), nullable=False),
        sa.Column('agent_contributions', postgresql.JSONB(), nullable=False),
        sa.Column('synthesis_method', sa.String(20), nullable=False, server_default='llm'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_predictions_match', 'predictions', ['match_id'])

    op.create_table(
        'player_stats',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('players.id'), nullable=False),
        sa.Column('surface', sa.String(20), nullable=False),
        sa.Column('timeframe', sa.String(20), nullable=False),
        sa.Column('matches_played', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('matches_won', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sets_won', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sets_lost', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('first_serve_percentage', sa.Numeric(5, 4), nullable=True),
        sa.Column('first_serve_points_won', sa.Numeric(5, 4), nullable=True),
        sa.Column('second_serve_points_won', sa.Numeric(5, 4), nullable=True),
        sa.Column('aces_per_match', sa.Numeric(6, 2), nullable=True),
        sa.Column('double_faults_per_match', sa.Numeric(6, 2), nullable=True),
        sa.Column('break_points_converted', sa.Numeric(5, 4), nullable=True),
        sa.Column('break_points_saved', sa.Numeric(5, 4), nullable=True),
        sa.Column('return_points_won', sa.Numeric(5, 4), nullable=True),
        sa.Column('tiebreaks_won', sa.Integer(), nullable=True),
        sa.Column('tiebreaks_played', sa.Integer(), nullable=True),
        sa.Column('deciding_sets_won', sa.Integer(), nullable=True),
        sa.Column('deciding_sets_played', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('player_id', 'surface', 'timeframe', name='uq_player_stats_scope'),
    )

    op.create_table(
        'agent_analysis',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('match_id', sa.Integer(), sa.ForeignKey('matches.id'), nullable=False),
        sa.Column('agent_type', sa.String(50), nullable=False),
        sa.Column('agent_name', sa.String(100), nullable=False),
        sa.Column('factor', sa.String(100), nullable=True),
        sa.Column('analysis', postgresql.JSONB(), nullable=False),
        sa.Column('conclusion', sa.String(200), nullable=True),
        sa.Column('advantage', sa.String(20), nullable=True),
        sa.Column('confidence_level', sa.Numeric(5, 4), nullable=True),
        sa.Column('reasoning', sa.Text(), nullable=True),
        sa.Column('processing_time', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_agent_analysis_match', 'agent_analysis', ['match_id'])

    op.create_table(
        'head_to_head_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('player1_id', sa.Integer(), sa.ForeignKey('players.id'), nullable=False),
        sa.Column('player2_id', sa.Integer(), sa.ForeignKey('players.id'), nullable=False),
        sa.Column('total_meetings', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('player1_wins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('player2_wins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('clay_meetings', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('clay_player1_wins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('hard_meetings', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('hard_player1_wins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('grass_meetings', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('grass_player1_wins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_meeting', sa.DateTime(timezone=True), nullable=True),
        sa.Column('recent_form', postgresql.JSONB(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('player1_id', 'player2_id', name='uq_head_to_head_pair'),
    )

    op.create_table(
        'news_articles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('players.id'), nullable=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('source', sa.String(200), nullable=False),
        sa.Column('url', sa.Text(), nullable=True),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('sentiment', sa.String(20), nullable=True),
        sa.Column('relevance_score', sa.Numeric(5, 4), nullable=True),
        sa.Column('keywords', postgresql.JSONB(), nullable=True),
        sa.Column('is_injury_related', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('is_coaching_change', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_news_published', 'news_articles', ['published_at'])
    op.create_index('ix_news_player', 'news_articles', ['player_id'])

    op.create_table(
        'job_runs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('job_name', sa.String(100), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('records_processed', sa.Integer(), nullable=True, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('job_runs')
    op.drop_index('ix_news_player', table_name='news_articles')
    op.drop_index('ix_news_published', table_name='news_articles')
    op.drop_table('news_articles')
    op.drop_table('head_to_head_records')
    op.drop_index('ix_agent_analysis_match', table_name='agent_analysis')
    op.drop_table('agent_analysis')
    op.drop_table('player_stats')
    op.drop_index('ix_predictions_match', table_name='predictions')
    op.drop_table('predictions')
    op.drop_index('ix_matches_player2', table_name='matches')
    op.drop_index('ix_matches_player1', table_name='matches')
    op.drop_index('ix_matches_status_scheduled', table_name='matches')
    op.drop_table('matches')
    op.drop_table('tournaments')
    op.drop_index('ix_players_ranking', table_name='players')
    op.drop_index('ix_players_name', table_name='players')
    op.drop_table('players')
    op.drop_table('users')
