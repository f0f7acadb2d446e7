"""CountAggregator — authoritative like/dislike counts derived from the ledger."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from reactionhub.application.ports.reaction_store_port import ReactionStorePort
from reactionhub.application.services.entity_registry import EntityRegistry
from reactionhub.domain.moderation import TopEntity
from reactionhub.domain.reaction import (
    EntityKind,
    ReactionAction,
    ReactionCounts,
    UserReactionState,
)

logger = logging.getLogger(__name__)


class CountAggregator:
    """
    Pure reads over the ledger, always filtered by the kind tag.

    ``sync_counters`` is the one side effect: it copies the authoritative
    counts onto the owning store's mirror and never fails the caller.
    """

    def __init__(self, store: ReactionStorePort, registry: Optional[EntityRegistry] = None):
        self._store = store
        self._registry = registry

    async def counts(self, entity_kind: EntityKind, entity_id: str) -> ReactionCounts:
        by_action = await asyncio.to_thread(
            self._store.count_by_action, entity_kind=entity_kind, entity_id=entity_id
        )
        return ReactionCounts(
            likes=int(by_action.get(ReactionAction.LIKE, 0)),
            dislikes=int(by_action.get(ReactionAction.DISLIKE, 0)),
        )

    async def user_state(
        self, entity_kind: EntityKind, entity_id: str, user_id: str
    ) -> UserReactionState:
        existing = await asyncio.to_thread(
            self._store.find, user_id=user_id, entity_kind=entity_kind, entity_id=entity_id
        )
        return UserReactionState.from_action(existing.action if existing else None)

    async def user_states(
        self, entity_kind: EntityKind, entity_ids: Iterable[str], user_id: str
    ) -> Dict[str, UserReactionState]:
        """One query for a whole listing; entities the user never touched map to NONE."""
        ids = [str(i) for i in entity_ids if i]
        actions = await asyncio.to_thread(
            self._store.actions_for_user,
            user_id=user_id,
            entity_kind=entity_kind,
            entity_ids=ids,
        )
        return {i: UserReactionState.from_action(actions.get(i)) for i in ids}

    async def top_entities(
        self,
        *,
        action: ReactionAction = ReactionAction.LIKE,
        entity_kind: Optional[EntityKind] = None,
        limit: int = 10,
    ) -> List[TopEntity]:
        rows = await asyncio.to_thread(
            self._store.top_entities, action=action, entity_kind=entity_kind, limit=limit
        )
        return [TopEntity(entity_kind=k, entity_id=i, count=n) for k, i, n in rows]

    async def sync_counters(
        self,
        entity_kind: EntityKind,
        entity_id: str,
        counts: Optional[ReactionCounts] = None,
    ) -> bool:
        if self._registry is None or entity_kind not in self._registry:
            return False
        if counts is None:
            counts = await self.counts(entity_kind, entity_id)
        adapter = self._registry.get(entity_kind)
        try:
            await adapter.apply_counters(entity_id, counts.likes, counts.dislikes)
            return True
        except Exception as exc:
            logger.warning(
                "Mirror counter sync failed for %s/%s: %s", entity_kind.value, entity_id, exc
            )
            return False
