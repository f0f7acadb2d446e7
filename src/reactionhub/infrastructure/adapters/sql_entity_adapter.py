"""SQL-backed EntityStorePort adapter."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, Optional, Set

from reactionhub.domain.errors import NotFoundError
from reactionhub.domain.reaction import EntityKind
from reactionhub.infrastructure.stores.content_store import SqlAlchemyContentStore


class SqlEntityStoreAdapter:
    """EntityStorePort implementation for one kind of SqlAlchemyContentStore."""

    def __init__(self, kind: EntityKind, store: Optional[SqlAlchemyContentStore] = None):
        self._kind = kind
        self._store = store or SqlAlchemyContentStore()
        self._store.table(kind)

    @property
    def kind(self) -> EntityKind:
        return self._kind

    async def exists(self, entity_id: str) -> bool:
        return await asyncio.to_thread(self._store.exists, self._kind, entity_id)

    async def bulk_get(self, entity_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(entity_ids)
        if not ids:
            return {}
        return await asyncio.to_thread(self._store.bulk_get, self._kind, ids)

    async def search(self, query: str) -> Set[str]:
        return await asyncio.to_thread(self._store.search, self._kind, query)

    async def mirrored_ids(self) -> Set[str]:
        return await asyncio.to_thread(self._store.ids_with_counters, self._kind)

    async def apply_counters(self, entity_id: str, likes: int, dislikes: int) -> None:
        written = await asyncio.to_thread(
            self._store.set_counters, self._kind, entity_id, likes, dislikes
        )
        if not written:
            raise NotFoundError(f"{self._kind.value} {entity_id} not found")

    async def adjust_counters(
        self, entity_id: str, likes_delta: int, dislikes_delta: int
    ) -> None:
        written = await asyncio.to_thread(
            self._store.add_to_counters, self._kind, entity_id, likes_delta, dislikes_delta
        )
        if not written:
            raise NotFoundError(f"{self._kind.value} {entity_id} not found")

    async def close(self) -> None:
        pass
