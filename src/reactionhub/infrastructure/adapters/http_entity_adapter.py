"""EntityStorePort adapter for kinds served by a remote content service."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Set

from reactionhub.domain.reaction import EntityKind
from reactionhub.infrastructure.api_clients.base import APIClient


class HttpEntityStoreAdapter:
    """
    Talks to a content service exposing:

        GET   {base}/{kind}/exists/{id}      -> {"exists": bool}
        POST  {base}/{kind}/bulk             <- {"ids": [...]}  -> {"items": [{"id": ...}, ...]}
        GET   {base}/{kind}/search?q=...     -> {"ids": [...]}
        GET   {base}/{kind}/mirrored           -> {"ids": [...]}   rows with nonzero counters
        PUT   {base}/{kind}/{id}/counters    <- {"likes": n, "dislikes": n}
        PATCH {base}/{kind}/{id}/counters    <- {"likes_delta": n, "dislikes_delta": n}
    """

    def __init__(
        self,
        kind: EntityKind,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[APIClient] = None,
    ):
        self._kind = kind
        self._client = client or APIClient(base_url, api_key=api_key, timeout=timeout)
        self._prefix = kind.value.lower()

    @property
    def kind(self) -> EntityKind:
        return self._kind

    async def exists(self, entity_id: str) -> bool:
        payload = await self._client.get(f"{self._prefix}/exists/{entity_id}")
        return bool((payload or {}).get("exists"))

    async def bulk_get(self, entity_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = sorted({str(i) for i in entity_ids if i})
        if not ids:
            return {}
        payload = await self._client.post(f"{self._prefix}/bulk", json_data={"ids": ids})
        items = (payload or {}).get("items") or []
        return {str(item["id"]): dict(item) for item in items if item.get("id") is not None}

    async def search(self, query: str) -> Set[str]:
        payload = await self._client.get(f"{self._prefix}/search", params={"q": query})
        return {str(i) for i in (payload or {}).get("ids") or []}

    async def mirrored_ids(self) -> Set[str]:
        payload = await self._client.get(f"{self._prefix}/mirrored")
        return {str(i) for i in (payload or {}).get("ids") or []}

    async def apply_counters(self, entity_id: str, likes: int, dislikes: int) -> None:
        await self._client.put(
            f"{self._prefix}/{entity_id}/counters",
            json_data={"likes": int(likes), "dislikes": int(dislikes)},
        )

    async def adjust_counters(
        self, entity_id: str, likes_delta: int, dislikes_delta: int
    ) -> None:
        await self._client.patch(
            f"{self._prefix}/{entity_id}/counters",
            json_data={"likes_delta": int(likes_delta), "dislikes_delta": int(dislikes_delta)},
        )

    async def close(self) -> None:
        await self._client.close()
