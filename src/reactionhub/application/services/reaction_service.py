"""
ReactionService — the one entry point the API and CLI talk to.

Wires the ledger, count aggregator, resolver, search planner and moderation
aggregator around a single reaction store and entity registry.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from reactionhub.application.ports.reaction_store_port import ReactionStorePort
from reactionhub.application.ports.user_directory_port import UserDirectoryPort
from reactionhub.application.services.count_aggregator import CountAggregator
from reactionhub.application.services.cross_entity_resolver import CrossEntityResolver
from reactionhub.application.services.entity_registry import EntityRegistry
from reactionhub.application.services.fanout import fan_out, is_degraded
from reactionhub.application.services.moderation_aggregator import ModerationAggregator
from reactionhub.application.services.reaction_ledger import ReactionLedger
from reactionhub.application.services.search_fanout_planner import SearchFanoutPlanner
from reactionhub.config import ReactionHubSettings
from reactionhub.domain.errors import (
    ContentStoreUnavailableError,
    NotFoundError,
    ReactionHubError,
    ValidationError,
)
from reactionhub.domain.listing import (
    ReactionFilter,
    ReactionPage,
    ReactionSort,
    ResolvedReaction,
)
from reactionhub.domain.moderation import BulkDeleteResult, BulkDeleteSelector, ReactionStats
from reactionhub.domain.reaction import (
    ReactionCounts,
    ToggleResult,
    UserReactionState,
    normalize_action,
    normalize_kind,
    validate_entity_id,
    validate_user_id,
)

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_reaction_id(raw: Any) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid reaction id: {raw!r}", field="id") from None
    if value < 1:
        raise ValidationError(f"Invalid reaction id: {raw!r}", field="id")
    return value


class ReactionService:
    def __init__(
        self,
        *,
        store: ReactionStorePort,
        registry: EntityRegistry,
        user_directory: Optional[UserDirectoryPort] = None,
        settings: Optional[ReactionHubSettings] = None,
    ):
        self.settings = settings or ReactionHubSettings.from_env()
        self.store = store
        self.registry = registry
        self.user_directory = user_directory

        timeout = self.settings.adapter_timeout
        self.counter = CountAggregator(store, registry)
        self.ledger = ReactionLedger(store, self.counter)
        self.resolver = CrossEntityResolver(registry, user_directory, timeout=timeout)
        self.planner = SearchFanoutPlanner(
            registry, user_directory, timeout=timeout, search_limit=self.settings.search_limit
        )
        self.moderation = ModerationAggregator(
            store,
            registry,
            self.counter,
            default_window_days=self.settings.stats_window_days,
            timeout=timeout,
        )

    # --- public toggle surface ---

    async def toggle_reaction(self, user_id: str, kind: Any, entity_id: str, action: Any) -> ToggleResult:
        """Validate, confirm the target exists, toggle, then refresh the mirror counters."""
        resolved_kind = normalize_kind(kind)
        adapter = self.registry.get(resolved_kind)
        requested = normalize_action(action)
        user_id = validate_user_id(user_id)
        entity_id = validate_entity_id(entity_id)

        if not await self._target_exists(adapter, entity_id):
            raise NotFoundError(f"{resolved_kind.value} {entity_id} not found")

        result = await self.ledger.toggle(user_id, resolved_kind, entity_id, requested)
        await self.counter.sync_counters(resolved_kind, entity_id, result.counts)
        return result

    async def _target_exists(self, adapter: Any, entity_id: str) -> bool:
        """Existence check under the adapter timeout; store failures raise ContentStoreUnavailableError."""
        try:
            return await asyncio.wait_for(
                adapter.exists(entity_id), timeout=self.settings.adapter_timeout
            )
        except ReactionHubError:
            raise
        except asyncio.TimeoutError as exc:
            raise ContentStoreUnavailableError(
                f"{adapter.kind.value} store timed out after {self.settings.adapter_timeout:.1f}s"
            ) from exc
        except Exception as exc:
            raise ContentStoreUnavailableError(
                f"{adapter.kind.value} store unavailable: {type(exc).__name__}: {exc}"
            ) from exc

    async def counts(self, kind: Any, entity_id: str) -> ReactionCounts:
        resolved_kind = self.registry.require_kind(kind)
        return await self.counter.counts(resolved_kind, validate_entity_id(entity_id))

    async def user_state(self, kind: Any, entity_id: str, user_id: str) -> UserReactionState:
        resolved_kind = self.registry.require_kind(kind)
        return await self.counter.user_state(
            resolved_kind, validate_entity_id(entity_id), validate_user_id(user_id)
        )

    async def user_states(
        self, kind: Any, entity_ids: Sequence[str], user_id: str
    ) -> Dict[str, UserReactionState]:
        resolved_kind = self.registry.require_kind(kind)
        ids = [validate_entity_id(i) for i in entity_ids]
        return await self.counter.user_states(resolved_kind, ids, validate_user_id(user_id))

    # --- admin listing ---

    @staticmethod
    def build_filter(
        *,
        kind: Any = None,
        action: Any = None,
        user_id: Optional[str] = None,
        entity_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> ReactionFilter:
        """Normalize raw query parameters; blank values and ``all`` mean no filter."""
        date_from = _as_utc(date_from)
        date_to = _as_utc(date_to)
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from must not be after date_to", field="date_from")
        return ReactionFilter(
            kind=normalize_kind(kind, allow_all=True),
            action=normalize_action(action, allow_all=True),
            user_id=validate_user_id(user_id) if (user_id or "").strip() else None,
            entity_id=(
                validate_entity_id(entity_id) if (entity_id or "").strip() else None
            ),
            date_from=date_from,
            date_to=date_to,
            search_text=(search or "").strip() or None,
        )

    def clamp_page_size(self, page_size: Optional[int]) -> int:
        if page_size is None:
            return self.settings.default_page_size
        return max(1, min(int(page_size), self.settings.max_page_size))

    async def list_reactions(
        self,
        filters: Optional[ReactionFilter] = None,
        *,
        sort: Any = ReactionSort.RECENT,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> ReactionPage:
        filters = filters or ReactionFilter()
        order = ReactionSort.parse(sort)
        page = max(1, int(page or 1))
        size = self.clamp_page_size(page_size)

        plan = await self.planner.plan(filters.search_text) if filters.has_search() else None
        reactions, total = await asyncio.to_thread(
            self.store.list,
            filters=filters,
            plan=plan,
            sort=order,
            offset=(page - 1) * size,
            limit=size,
        )
        resolution = await self.resolver.resolve(reactions)

        degraded: List[str] = []
        for source in (plan.degraded if plan else []) + resolution.degraded:
            if source not in degraded:
                degraded.append(source)
        return ReactionPage(
            rows=resolution.rows,
            total=total,
            page=page,
            page_size=size,
            degraded=degraded,
        )

    async def get_reaction_detail(self, reaction_id: int) -> Optional[ResolvedReaction]:
        """Resolved record, or None when the id is unknown."""
        reaction = await asyncio.to_thread(self.store.get, _parse_reaction_id(reaction_id))
        if reaction is None:
            return None
        resolved, degraded = await self.resolver.resolve_one(reaction)
        if degraded:
            logger.info("Detail for reaction %s resolved with degraded sources %s", reaction_id, degraded)
        return resolved

    # --- moderation ---

    async def delete_reaction(self, reaction_id: int, *, actor: Optional[str] = None) -> bool:
        removed = await self.moderation.delete_one(_parse_reaction_id(reaction_id), actor=actor)
        return removed is not None

    async def bulk_delete_reactions(
        self,
        *,
        ids: Optional[Sequence[int]] = None,
        user_id: Optional[str] = None,
        kind: Any = None,
        entity_id: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> BulkDeleteResult:
        selector = BulkDeleteSelector(
            ids=[_parse_reaction_id(i) for i in ids] if ids else None,
            user_id=validate_user_id(user_id) if (user_id or "").strip() else None,
            entity_kind=normalize_kind(kind, allow_all=True),
            entity_id=validate_entity_id(entity_id) if (entity_id or "").strip() else None,
        )
        return await self.moderation.bulk_delete(selector, actor=actor)

    async def stats(self, window_days: Optional[int] = None) -> ReactionStats:
        return await self.moderation.stats(window_days)

    async def sync_counters(self, kind: Any, entity_id: str) -> ReactionCounts:
        """Recompute one target's counts from the ledger and push them to its mirror."""
        resolved_kind = self.registry.require_kind(kind)
        entity_id = validate_entity_id(entity_id)
        counts = await self.counter.counts(resolved_kind, entity_id)
        await self.counter.sync_counters(resolved_kind, entity_id, counts)
        return counts

    async def resync_counters(self, kind: Any = None) -> Dict[str, Any]:
        """
        Push ledger counts onto every mirror that may be wrong, one target at a time.

        Targets are the union of everything the ledger references and every
        content row still carrying nonzero counters, so entities whose last
        reaction was removed are reset to zero. Kinds whose stores cannot list
        their counted rows are reported under ``degraded``.
        """
        resolved_kind = normalize_kind(kind, allow_all=True)
        ledger_targets = await asyncio.to_thread(
            self.store.distinct_targets, entity_kind=resolved_kind
        )
        adapters = [
            a for a in self.registry.adapters() if resolved_kind is None or a.kind == resolved_kind
        ]
        listed = await fan_out(
            [(a.kind.value, a.mirrored_ids()) for a in adapters], self.settings.adapter_timeout
        )

        targets = set(ledger_targets)
        degraded: List[str] = []
        for adapter, (source, ids) in zip(adapters, listed):
            if is_degraded(ids):
                degraded.append(source)
                continue
            targets.update((adapter.kind, str(entity_id)) for entity_id in ids)

        synced = failed = 0
        for target_kind, entity_id in sorted(targets, key=lambda t: (t[0].value, t[1])):
            if await self.counter.sync_counters(target_kind, entity_id):
                synced += 1
            else:
                failed += 1
        logger.info(
            "Mirror resync: %d targets synced, %d failed, degraded=%s", synced, failed, degraded
        )
        return {"targets": len(targets), "synced": synced, "failed": failed, "degraded": degraded}

    async def close(self) -> None:
        await self.registry.close()
        if self.user_directory is not None:
            await self.user_directory.close()
        self.store.close()


def build_reaction_service(settings: Optional[ReactionHubSettings] = None) -> ReactionService:
    """Default wiring: one SQL database for the ledger, content tables and users."""
    from reactionhub.infrastructure.adapters import build_entity_registry, build_user_directory
    from reactionhub.infrastructure.stores.reaction_store import SqlAlchemyReactionStore

    settings = settings or ReactionHubSettings.from_env()
    return ReactionService(
        store=SqlAlchemyReactionStore(db_url=settings.db_url),
        registry=build_entity_registry(settings),
        user_directory=build_user_directory(settings),
        settings=settings,
    )
