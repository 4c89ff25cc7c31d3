"""Player API endpoints."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict

from tennisoracle.api.dependencies import get_storage
from tennisoracle.api.routes.matches import MatchResponse
from tennisoracle.services.storage import TennisStorage

router = APIRouter(prefix="/api/players", tags=["players"])


class PlayerResponse(BaseModel):
    """Player profile."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    nationality: str | None
    birth_date: date | None
    age: int
    ranking: int | None
    elo_rating: float | None
    playing_style: str | None
    preferred_surface: str | None
    fitness_level: str | None
    strengths: list[str] | None
    weaknesses: list[str] | None
    profile_image_url: str | None


class PlayerStatsResponse(BaseModel):
    """Aggregate statistics for one surface and timeframe."""

    model_config = ConfigDict(from_attributes=True)

    player_id: int
    surface: str
    timeframe: str
    matches_played: int
    matches_won: int
    sets_won: int
    sets_lost: int
    first_serve_percentage: float | None
    first_serve_points_won: float | None
    second_serve_points_won: float | None
    aces_per_match: float | None
    double_faults_per_match: float | None
    break_points_converted: float | None
    break_points_saved: float | None
    return_points_won: float | None
    tiebreaks_won: int | None
    tiebreaks_played: int | None
    deciding_sets_won: int | None
    deciding_sets_played: int | None
    updated_at: datetime


@router.get("", response_model=list[PlayerResponse])
async def list_players(storage: TennisStorage = Depends(get_storage)):
    return await storage.list_players()


@router.get("/top", response_model=list[PlayerResponse])
async def top_players(
    storage: TennisStorage = Depends(get_storage),
    limit: int = Query(50, ge=1, le=500),
):
    """Ranked players, best ranking first."""
    return await storage.get_top_players(limit)


@router.get("/{player_id}", response_model=PlayerResponse)
async def get_player(player_id: int, storage: TennisStorage = Depends(get_storage)):
    player = await storage.get_player(player_id)
    if player is None:
        raise HTTPException(status_code=404, detail="Player not found")
    return player


@router.get("/{player_id}/stats", response_model=PlayerStatsResponse)
async def get_player_stats(
    player_id: int,
    storage: TennisStorage = Depends(get_storage),
    surface: str = Query("all"),
    timeframe: str = Query("last_52_weeks"),
):
    stats = await storage.get_player_stats(player_id, surface, timeframe)
    if stats is None:
        raise HTTPException(status_code=404, detail="Player stats not found")
    return stats


@router.get("/{player_id}/recent-matches", response_model=list[MatchResponse])
async def recent_matches(
    player_id: int,
    storage: TennisStorage = Depends(get_storage),
    surface: str | None = Query(None),
    limit: int = Query(15, ge=1, le=100),
):
    """Completed matches for the player, most recent first."""
    return await storage.get_player_matches(player_id, surface=surface, limit=limit)
