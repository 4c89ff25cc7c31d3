"""Prediction API endpoints."""

from datetime import datetime
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict

from tennisoracle.api.dependencies import get_orchestrator, get_storage
from tennisoracle.services.orchestrator import AnalysisOrchestrator
from tennisoracle.services.storage import TennisStorage

router = APIRouter(prefix="/api/predictions", tags=["predictions"])
logger = structlog.get_logger(__name__)


class PredictionResponse(BaseModel):
    """Synthesized prediction for a match."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    match_id: int
    predicted_winner_id: int
    win_probability: float
    confidence_level: float
    factor_analysis: list[dict[str, Any]]
    reasoning: str
    agent_contributions: dict[str, Any]
    synthesis_method: str
    created_at: datetime


class AnalyzeRequest(BaseModel):
    """Body of an analysis request."""

    matchId: int | None = None
    forceRefresh: bool = False


@router.get("/recent", response_model=list[PredictionResponse])
async def recent_predictions(
    storage: TennisStorage = Depends(get_storage),
    limit: int = Query(20, ge=1, le=200),
):
    return await storage.get_recent_predictions(limit)


@router.get("/match/{match_id}", response_model=PredictionResponse)
async def prediction_for_match(match_id: int, storage: TennisStorage = Depends(get_storage)):
    prediction = await storage.get_prediction_by_match(match_id)
    if prediction is None:
        raise HTTPException(status_code=404, detail="Prediction not found")
    return prediction


@router.post("/analyze", response_model=PredictionResponse)
async def analyze_match(
    body: AnalyzeRequest | None = None,
    storage: TennisStorage = Depends(get_storage),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    Run the agent pipeline for a match.

    The stored prediction is returned as-is unless ``forceRefresh`` is set.
    A run already in flight for the same match, or a missing participant,
    surfaces as a 500 like any other pipeline failure.
    """
    if body is None or body.matchId is None:
        raise HTTPException(status_code=400, detail="Match ID is required")

    if not body.forceRefresh:
        existing = await storage.get_prediction_by_match(body.matchId)
        if existing is not None:
            return existing

    match = await storage.get_match(body.matchId)
    if match is None:
        raise HTTPException(status_code=404, detail="Match not found")

    try:
        return await orchestrator.analyze_match(match)
    except Exception as e:
        logger.error("match_analysis_failed", match_id=body.matchId, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to analyze match")
