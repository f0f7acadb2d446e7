# src/reactionhub/api/routes/admin_reactions.py
"""
Moderation endpoints for the reaction ledger.

Provides endpoints for:
- Listing reactions with filters, free-text search, sorting and pagination
- Grouped statistics over a trailing window
- Single and bulk deletion (mirrored counters are reconciled)
- Reaction detail with its resolved target
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Header, HTTPException, Query
from pydantic import BaseModel, Field

from reactionhub.api.deps import get_reaction_service
from reactionhub.utils.logging_config import LogFiles, Logger, set_trace_id

router = APIRouter()


class ReactionListResponse(BaseModel):
    items: List[Dict[str, Any]]
    pagination: Dict[str, int]
    degraded: List[str] = Field(default_factory=list)


class ReactionDetailResponse(BaseModel):
    item: Dict[str, Any]


class ReactionStatsResponse(BaseModel):
    stats: Dict[str, Any]


class BulkDeleteRequest(BaseModel):
    ids: Optional[List[int]] = None
    user_id: Optional[str] = None
    kind: Optional[str] = None
    entity_id: Optional[str] = None


class BulkDeleteResponse(BaseModel):
    deleted: int
    reconciled: List[Dict[str, Any]] = Field(default_factory=list)
    failed_reconciliations: List[str] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    deleted: bool
    id: int


# ============================================================================
# Listing & stats
# ============================================================================


@router.get("/admin/reactions", response_model=ReactionListResponse)
async def list_reactions(
    kind: Optional[str] = None,
    action: Optional[str] = None,
    user_id: Optional[str] = None,
    entity_id: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = None,
    sort: str = "recent",
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
):
    set_trace_id()
    service = get_reaction_service()
    filters = service.build_filter(
        kind=kind,
        action=action,
        user_id=user_id,
        entity_id=entity_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    result = await service.list_reactions(filters, sort=sort, page=page, page_size=page_size)
    if result.degraded:
        Logger.warning(
            f"Listing served with degraded sources {result.degraded} search={search!r}",
            file=LogFiles.API,
        )
    return ReactionListResponse(**result.to_dict())


@router.get("/admin/reactions/stats", response_model=ReactionStatsResponse)
async def get_reaction_stats(days: Optional[int] = Query(None, ge=1, le=365)):
    service = get_reaction_service()
    stats = await service.stats(days)
    return ReactionStatsResponse(stats=stats.to_dict())


# ============================================================================
# Deletion
# ============================================================================


@router.delete("/admin/reactions/bulk", response_model=BulkDeleteResponse)
async def bulk_delete_reactions(
    req: BulkDeleteRequest,
    x_user_id: Optional[str] = Header(default=None),
):
    set_trace_id()
    service = get_reaction_service()
    result = await service.bulk_delete_reactions(
        ids=req.ids,
        user_id=req.user_id,
        kind=req.kind,
        entity_id=req.entity_id,
        actor=x_user_id,
    )
    return BulkDeleteResponse(**result.to_dict())


@router.get("/admin/reactions/{reaction_id}", response_model=ReactionDetailResponse)
async def get_reaction_detail(reaction_id: str):
    service = get_reaction_service()
    resolved = await service.get_reaction_detail(reaction_id)
    if resolved is None:
        raise HTTPException(status_code=404, detail="Reaction not found")
    return ReactionDetailResponse(item=resolved.to_dict())


@router.delete("/admin/reactions/{reaction_id}", response_model=DeleteResponse)
async def delete_reaction(
    reaction_id: str,
    x_user_id: Optional[str] = Header(default=None),
):
    set_trace_id()
    service = get_reaction_service()
    if not await service.delete_reaction(reaction_id, actor=x_user_id):
        raise HTTPException(status_code=404, detail="Reaction not found")
    return DeleteResponse(deleted=True, id=int(reaction_id))
