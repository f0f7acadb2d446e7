"""Process-wide ReactionService used by the HTTP routes."""

from __future__ import annotations

from typing import Optional

from reactionhub.application.services.reaction_service import (
    ReactionService,
    build_reaction_service,
)

# Lazy-initialized; tests replace it with monkeypatch.
_service: Optional[ReactionService] = None


def get_reaction_service() -> ReactionService:
    global _service
    if _service is None:
        _service = build_reaction_service()
    return _service


async def shutdown_reaction_service() -> None:
    global _service
    if _service is not None:
        await _service.close()
        _service = None
