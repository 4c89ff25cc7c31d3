"""News API endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from tennisoracle.api.dependencies import get_storage
from tennisoracle.services.storage import TennisStorage

router = APIRouter(prefix="/api/news", tags=["news"])


class NewsArticleResponse(BaseModel):
    """Stored news article."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    player_id: int | None
    title: str
    content: str | None
    source: str
    url: str | None
    published_at: datetime
    sentiment: str | None
    relevance_score: float | None
    keywords: list[str] | None
    is_injury_related: bool
    is_coaching_change: bool


@router.get("/recent", response_model=list[NewsArticleResponse])
async def recent_news(
    storage: TennisStorage = Depends(get_storage),
    limit: int = Query(50, ge=1, le=200),
):
    return await storage.get_recent_news(limit)


@router.get("/player/{player_id}", response_model=list[NewsArticleResponse])
async def player_news(
    player_id: int,
    storage: TennisStorage = Depends(get_storage),
    limit: int = Query(20, ge=1, le=200),
):
    return await storage.get_news_by_player(player_id, limit)


@router.get("/injuries", response_model=list[NewsArticleResponse])
async def injury_news(
    storage: TennisStorage = Depends(get_storage),
    player_id: int | None = Query(None, description="Restrict to one player"),
    limit: int = Query(20, ge=1, le=200),
):
    return await storage.get_injury_news(player_id=player_id, limit=limit)
