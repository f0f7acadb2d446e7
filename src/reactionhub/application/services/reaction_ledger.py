"""ReactionLedger — the per-(user, target) toggle state machine."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Tuple

from reactionhub.application.ports.reaction_store_port import ReactionStorePort
from reactionhub.application.services.count_aggregator import CountAggregator
from reactionhub.domain.errors import ConflictError
from reactionhub.domain.reaction import (
    EntityKind,
    Reaction,
    ReactionAction,
    ReactionState,
    ToggleResult,
    normalize_action,
    normalize_kind,
    validate_entity_id,
    validate_user_id,
)
from reactionhub.utils.logging_config import LogFiles, Logger

logger = logging.getLogger(__name__)


class ReactionLedger:
    """
    Applies toggles against the ledger store.

    NONE + a -> a, a + a -> NONE, a + b -> b. The store's uniqueness constraint
    on (user, kind, entity) is the only guard against concurrent creates; a
    losing create is retried once as an update against the winner's row.
    """

    def __init__(self, store: ReactionStorePort, counter: Optional[CountAggregator] = None):
        self._store = store
        self._counter = counter or CountAggregator(store)

    async def toggle(
        self,
        user_id: str,
        entity_kind,
        entity_id: str,
        action,
    ) -> ToggleResult:
        kind = normalize_kind(entity_kind)
        requested = normalize_action(action)
        user_id = validate_user_id(user_id)
        entity_id = validate_entity_id(entity_id)

        existing = await self._find(user_id, kind, entity_id)
        previous = ReactionState.from_action(existing.action if existing else None)

        try:
            reaction, state = await self._apply(existing, user_id, kind, entity_id, requested)
        except ConflictError:
            logger.info(
                "Concurrent create for %s on %s/%s, retrying as update",
                user_id,
                kind.value,
                entity_id,
            )
            reaction, state = await self._retry_after_conflict(user_id, kind, entity_id, requested)

        counts = await self._counter.counts(kind, entity_id)
        Logger.info(
            f"toggle user={user_id} target={kind.value}/{entity_id} action={requested.value} "
            f"{previous.value}->{state.value} likes={counts.likes} dislikes={counts.dislikes}",
            file=LogFiles.LEDGER,
        )
        return ToggleResult(state=state, previous_state=previous, counts=counts, reaction=reaction)

    async def _find(self, user_id: str, kind: EntityKind, entity_id: str) -> Optional[Reaction]:
        return await asyncio.to_thread(
            self._store.find, user_id=user_id, entity_kind=kind, entity_id=entity_id
        )

    async def _create(
        self, user_id: str, kind: EntityKind, entity_id: str, action: ReactionAction
    ) -> Reaction:
        return await asyncio.to_thread(
            self._store.create,
            user_id=user_id,
            entity_kind=kind,
            entity_id=entity_id,
            action=action,
        )

    async def _apply(
        self,
        existing: Optional[Reaction],
        user_id: str,
        kind: EntityKind,
        entity_id: str,
        action: ReactionAction,
    ) -> Tuple[Optional[Reaction], ReactionState]:
        if existing is None:
            created = await self._create(user_id, kind, entity_id, action)
            return created, ReactionState.from_action(action)

        if existing.action == action:
            await asyncio.to_thread(self._store.delete, existing.id)
            return None, ReactionState.NONE

        updated = await asyncio.to_thread(
            self._store.update_action, existing.id, action, modified_by=user_id
        )
        if updated is None:
            # Row vanished between read and write.
            updated = await self._create(user_id, kind, entity_id, action)
        return updated, ReactionState.from_action(action)

    async def _retry_after_conflict(
        self, user_id: str, kind: EntityKind, entity_id: str, action: ReactionAction
    ) -> Tuple[Optional[Reaction], ReactionState]:
        current = await self._find(user_id, kind, entity_id)
        if current is None:
            # A second conflict propagates to the caller.
            created = await self._create(user_id, kind, entity_id, action)
            return created, ReactionState.from_action(action)
        if current.action == action:
            return current, ReactionState.from_action(action)
        updated = await asyncio.to_thread(
            self._store.update_action, current.id, action, modified_by=user_id
        )
        return updated, ReactionState.from_action(action)
