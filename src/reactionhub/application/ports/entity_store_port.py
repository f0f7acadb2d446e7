"""EntityStorePort — per content-kind store interface consumed by the reaction core."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Protocol, Set, runtime_checkable

from reactionhub.domain.reaction import EntityKind


@runtime_checkable
class EntityStorePort(Protocol):
    """One adapter per entity kind."""

    @property
    def kind(self) -> EntityKind: ...

    async def exists(self, entity_id: str) -> bool: ...

    async def bulk_get(self, entity_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]: ...

    async def search(self, query: str) -> Set[str]: ...

    async def mirrored_ids(self) -> Set[str]:
        """Ids whose mirrored counters are nonzero, for full resyncs."""
        ...

    async def apply_counters(self, entity_id: str, likes: int, dislikes: int) -> None:
        """Overwrite the mirrored counters; raises NotFoundError if the target is gone."""
        ...

    async def adjust_counters(
        self, entity_id: str, likes_delta: int, dislikes_delta: int
    ) -> None:
        """
        Add deltas to the mirrored counters after bulk deletions.

        Raises NotFoundError if the target is gone.
        """
        ...

    async def close(self) -> None: ...
