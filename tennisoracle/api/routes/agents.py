"""Agent status and per-match analysis endpoints."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from tennisoracle.api.dependencies import get_registry, get_storage
from tennisoracle.services.agent_registry import AgentRegistry
from tennisoracle.services.storage import TennisStorage

router = APIRouter(prefix="/api/agents", tags=["agents"])


class AgentStatusResponse(BaseModel):
    """Live status of one agent."""

    name: str
    category: str
    status: str
    last_activity: str | None
    total_analyses: int
    successful_analyses: int
    accuracy: float


class AgentAnalysisResponse(BaseModel):
    """Stored factor record produced by one agent."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    match_id: int
    agent_type: str
    agent_name: str
    factor: str | None
    analysis: dict[str, Any]
    conclusion: str | None
    advantage: str | None
    confidence_level: float | None
    reasoning: str | None
    processing_time: int | None
    created_at: datetime


@router.get("/status", response_model=list[AgentStatusResponse])
async def agent_status(registry: AgentRegistry = Depends(get_registry)):
    """Status of every registered agent, in registration order."""
    return [status.to_dict() for status in await registry.statuses()]


@router.get("/analysis/{match_id}", response_model=list[AgentAnalysisResponse])
async def match_analysis(match_id: int, storage: TennisStorage = Depends(get_storage)):
    return await storage.get_analysis_by_match(match_id)
