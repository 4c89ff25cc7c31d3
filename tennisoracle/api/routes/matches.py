"""Match API endpoints."""

from datetime import datetime
from typing import Any, Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field, model_validator

from tennisoracle.api.dependencies import get_relay, get_storage
from tennisoracle.services.realtime import RealtimeRelay
from tennisoracle.services.storage import TennisStorage

router = APIRouter(prefix="/api/matches", tags=["matches"])
logger = structlog.get_logger(__name__)


class MatchResponse(BaseModel):
    """Match as stored."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int | None
    player1_id: int
    player2_id: int
    scheduled_time: datetime | None
    completed_time: datetime | None
    status: str
    winner_id: int | None
    score: str | None
    surface: str
    round: str | None
    best_of: int
    match_stats: dict[str, Any] | None


class MatchCreate(BaseModel):
    """Body for creating a match."""

    tournament_id: int | None = None
    player1_id: int
    player2_id: int
    scheduled_time: datetime | None = None
    status: Literal["scheduled", "in_progress", "completed", "cancelled"] = "scheduled"
    surface: Literal["hard", "clay", "grass", "indoor"]
    round: str | None = Field(default=None, max_length=50)
    best_of: Literal[3, 5] = 3

    @model_validator(mode="after")
    def distinct_players(self) -> "MatchCreate":
        if self.player1_id == self.player2_id:
            raise ValueError("player1_id and player2_id must differ")
        return self


@router.get("/upcoming", response_model=list[MatchResponse])
async def upcoming_matches(
    storage: TennisStorage = Depends(get_storage),
    limit: int = Query(20, ge=1, le=200),
):
    """Scheduled matches, soonest first."""
    return await storage.get_upcoming_matches(limit)


@router.get("/{match_id}", response_model=MatchResponse)
async def get_match(match_id: int, storage: TennisStorage = Depends(get_storage)):
    match = await storage.get_match(match_id)
    if match is None:
        raise HTTPException(status_code=404, detail="Match not found")
    return match


@router.post("", response_model=MatchResponse, status_code=201)
async def create_match(
    body: MatchCreate,
    storage: TennisStorage = Depends(get_storage),
    relay: RealtimeRelay = Depends(get_relay),
):
    """Create a match and announce it on ``matches:new``."""
    for player_id in (body.player1_id, body.player2_id):
        if await storage.get_player(player_id) is None:
            raise HTTPException(status_code=404, detail=f"Player not found: {player_id}")

    match = await storage.create_match(**body.model_dump())
    logger.info("match_created", match_id=match.id)
    await relay.broadcast("matches:new", MatchResponse.model_validate(match).model_dump(mode="json"))
    return match
