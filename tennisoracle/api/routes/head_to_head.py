"""Head-to-head record endpoint."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from tennisoracle.api.dependencies import get_storage
from tennisoracle.services.storage import TennisStorage

router = APIRouter(prefix="/api/head-to-head", tags=["head-to-head"])


class HeadToHeadResponse(BaseModel):
    """Stored meeting record between two players."""

    model_config = ConfigDict(from_attributes=True)

    player1_id: int
    player2_id: int
    total_meetings: int
    player1_wins: int
    player2_wins: int
    clay_meetings: int
    clay_player1_wins: int
    hard_meetings: int
    hard_player1_wins: int
    grass_meetings: int
    grass_player1_wins: int
    last_meeting: datetime | None
    recent_form: list[dict[str, Any]] | None


@router.get("/{player1_id}/{player2_id}", response_model=HeadToHeadResponse)
async def head_to_head(
    player1_id: int,
    player2_id: int,
    storage: TennisStorage = Depends(get_storage),
):
    """Record for the pair, looked up in either player order."""
    record = await storage.get_head_to_head(player1_id, player2_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Head-to-head record not found")
    return record
