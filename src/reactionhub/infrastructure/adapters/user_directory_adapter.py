"""SQL-backed UserDirectoryPort adapter."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, Optional, Set

from reactionhub.infrastructure.stores.content_store import SqlAlchemyUserStore


class SqlUserDirectoryAdapter:
    def __init__(self, store: Optional[SqlAlchemyUserStore] = None):
        self._store = store or SqlAlchemyUserStore()

    @property
    def source_name(self) -> str:
        return "users"

    async def bulk_get(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(user_ids)
        if not ids:
            return {}
        return await asyncio.to_thread(self._store.bulk_get, ids)

    async def search(self, query: str) -> Set[str]:
        return await asyncio.to_thread(self._store.search, query)

    async def close(self) -> None:
        pass
