"""EntityRegistry — startup-time mapping of entity kinds to their store adapters."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from reactionhub.application.ports.entity_store_port import EntityStorePort
from reactionhub.domain.errors import ValidationError
from reactionhub.domain.reaction import EntityKind, normalize_kind

logger = logging.getLogger(__name__)


class EntityRegistry:
    """
    Closed-set registry: a kind is usable only once an adapter is registered
    for it. Lookups never inspect the shape of an entity id.
    """

    def __init__(self, adapters: Optional[Iterable[EntityStorePort]] = None):
        self._adapters: Dict[EntityKind, EntityStorePort] = {}
        for adapter in adapters or ():
            self.register(adapter)

    def register(self, adapter: EntityStorePort) -> None:
        kind = adapter.kind
        if kind in self._adapters:
            logger.info("Replacing adapter for %s", kind.value)
        self._adapters[kind] = adapter

    def get(self, kind) -> EntityStorePort:
        resolved = normalize_kind(kind)
        adapter = self._adapters.get(resolved)
        if adapter is None:
            raise ValidationError(f"Entity kind {resolved.value} is not registered", field="kind")
        return adapter

    def require_kind(self, kind) -> EntityKind:
        return self.get(kind).kind

    def kinds(self) -> List[EntityKind]:
        return list(self._adapters.keys())

    def adapters(self) -> List[EntityStorePort]:
        return list(self._adapters.values())

    def __contains__(self, kind) -> bool:
        return kind in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    async def close(self) -> None:
        for adapter in self._adapters.values():
            try:
                await adapter.close()
            except Exception:
                logger.warning("Failed to close adapter for %s", adapter.kind.value, exc_info=True)
