"""Entity store adapter registry."""

from __future__ import annotations

from typing import Optional

from reactionhub.application.services.entity_registry import EntityRegistry
from reactionhub.config import ReactionHubSettings
from reactionhub.domain.reaction import EntityKind
from reactionhub.infrastructure.adapters.http_entity_adapter import HttpEntityStoreAdapter
from reactionhub.infrastructure.adapters.sql_entity_adapter import SqlEntityStoreAdapter
from reactionhub.infrastructure.adapters.user_directory_adapter import SqlUserDirectoryAdapter
from reactionhub.infrastructure.stores.content_store import (
    SqlAlchemyContentStore,
    SqlAlchemyUserStore,
)


def build_entity_registry(
    settings: ReactionHubSettings,
    *,
    content_store: Optional[SqlAlchemyContentStore] = None,
) -> EntityRegistry:
    """Every kind gets the bundled SQL adapter unless settings route it to a remote service."""
    store = content_store or SqlAlchemyContentStore(
        db_url=settings.db_url, search_limit=settings.search_limit
    )
    registry = EntityRegistry()
    for kind in EntityKind:
        base_url = settings.remote_kinds.get(kind)
        if base_url:
            registry.register(
                HttpEntityStoreAdapter(
                    kind,
                    base_url,
                    api_key=settings.remote_api_key,
                    timeout=settings.adapter_timeout,
                )
            )
        else:
            registry.register(SqlEntityStoreAdapter(kind, store))
    return registry


def build_user_directory(
    settings: ReactionHubSettings,
    *,
    user_store: Optional[SqlAlchemyUserStore] = None,
) -> SqlUserDirectoryAdapter:
    return SqlUserDirectoryAdapter(
        user_store or SqlAlchemyUserStore(db_url=settings.db_url, search_limit=settings.search_limit)
    )


__all__ = [
    "HttpEntityStoreAdapter",
    "SqlEntityStoreAdapter",
    "SqlUserDirectoryAdapter",
    "build_entity_registry",
    "build_user_directory",
]
