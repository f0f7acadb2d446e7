# src/reactionhub/api/routes/reactions.py
"""
Public reaction endpoints.

- POST /reactions/toggle: LIKE/DISLIKE toggle for the calling user
- GET  /reactions/counts: like/dislike counts for one target, plus the
  caller's own state when ``X-User-Id`` is sent
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Header, HTTPException, Query
from pydantic import BaseModel, Field

from reactionhub.api.deps import get_reaction_service
from reactionhub.utils.logging_config import LogFiles, Logger, set_trace_id

router = APIRouter()


class ToggleRequest(BaseModel):
    kind: str = Field(..., min_length=1, max_length=32)
    entity_id: str = Field(..., min_length=1, max_length=64)
    action: str = Field(..., min_length=1, max_length=16)


class ToggleResponse(BaseModel):
    state: str
    previous_state: str
    liked: bool
    disliked: bool
    like_count: int
    dislike_count: int
    reaction: Optional[Dict[str, Any]] = None


class CountsResponse(BaseModel):
    kind: str
    entity_id: str
    likes: int
    dislikes: int
    user_state: Optional[Dict[str, bool]] = None


@router.post("/reactions/toggle", response_model=ToggleResponse)
async def toggle_reaction(
    req: ToggleRequest,
    x_user_id: Optional[str] = Header(default=None),
):
    set_trace_id()
    if not (x_user_id or "").strip():
        raise HTTPException(status_code=401, detail="X-User-Id header is required")

    Logger.info(
        f"toggle request user={x_user_id} kind={req.kind} entity={req.entity_id} action={req.action}",
        file=LogFiles.API,
    )
    service = get_reaction_service()
    result = await service.toggle_reaction(x_user_id, req.kind, req.entity_id, req.action)
    return ToggleResponse(**result.to_dict())


@router.get("/reactions/counts", response_model=CountsResponse)
async def get_counts(
    kind: str = Query(..., min_length=1),
    entity_id: str = Query(..., min_length=1),
    x_user_id: Optional[str] = Header(default=None),
):
    service = get_reaction_service()
    counts = await service.counts(kind, entity_id)
    user_state = None
    if (x_user_id or "").strip():
        state = await service.user_state(kind, entity_id, x_user_id)
        user_state = state.to_dict()

    return CountsResponse(
        kind=service.registry.require_kind(kind).value,
        entity_id=entity_id.strip(),
        likes=counts.likes,
        dislikes=counts.dislikes,
        user_state=user_state,
    )
