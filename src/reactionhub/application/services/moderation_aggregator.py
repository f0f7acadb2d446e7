"""ModerationAggregator — admin statistics and deletions with counter reconciliation."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime, time, timedelta, timezone
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Tuple

from reactionhub.application.ports.reaction_store_port import ReactionStorePort
from reactionhub.application.services.count_aggregator import CountAggregator
from reactionhub.application.services.entity_registry import EntityRegistry
from reactionhub.application.services.fanout import fan_out, is_degraded
from reactionhub.domain.errors import ValidationError
from reactionhub.domain.moderation import (
    BucketCount,
    BulkDeleteResult,
    BulkDeleteSelector,
    CounterDelta,
    ReactionStats,
)
from reactionhub.domain.reaction import EntityKind, Reaction, ReactionAction
from reactionhub.utils.logging_config import LogFiles, Logger

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7
DEFAULT_TOP_N = 5


def summarize_deltas(reactions: Iterable[Reaction]) -> Dict[Tuple[EntityKind, str], CounterDelta]:
    """Net mirror-counter change per target after ``reactions`` are removed."""
    deltas: Dict[Tuple[EntityKind, str], CounterDelta] = {}
    for reaction in reactions:
        delta = deltas.setdefault(reaction.target_key, CounterDelta())
        if reaction.action == ReactionAction.LIKE:
            delta.likes -= 1
        else:
            delta.dislikes -= 1
    return deltas


class ModerationAggregator:
    def __init__(
        self,
        store: ReactionStorePort,
        registry: EntityRegistry,
        counter: Optional[CountAggregator] = None,
        *,
        default_window_days: int = DEFAULT_WINDOW_DAYS,
        timeout: float = 5.0,
    ):
        self._store = store
        self._registry = registry
        self._counter = counter or CountAggregator(store, registry)
        self.default_window_days = default_window_days
        self.timeout = timeout

    async def stats(
        self,
        window_days: Optional[int] = None,
        *,
        now: Optional[datetime] = None,
        top_n: int = DEFAULT_TOP_N,
    ) -> ReactionStats:
        """
        Totals grouped by kind and action, a zero-filled per-day histogram for
        the trailing window (UTC days, oldest first, today included), and the
        most-liked targets.
        """
        days = int(window_days or self.default_window_days)
        if days < 1:
            raise ValidationError("window_days must be >= 1", field="window_days")
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        today = now.astimezone(timezone.utc).date()
        first_day = today - timedelta(days=days - 1)
        since = datetime.combine(first_day, time.min, tzinfo=timezone.utc)

        by_kind, by_action, created, top_liked = await asyncio.gather(
            asyncio.to_thread(self._store.group_counts, "entity_kind"),
            asyncio.to_thread(self._store.group_counts, "action"),
            asyncio.to_thread(self._store.created_since, since),
            self._counter.top_entities(action=ReactionAction.LIKE, limit=top_n),
        )

        per_day = Counter(ts.astimezone(timezone.utc).date() for ts in created)
        by_day = [
            BucketCount(key=day.isoformat(), count=per_day.get(day, 0))
            for day in (first_day + timedelta(days=i) for i in range(days))
        ]
        return ReactionStats(
            total=sum(count for _, count in by_kind),
            by_kind=[BucketCount(key=k, count=c) for k, c in by_kind],
            by_action=[BucketCount(key=k, count=c) for k, c in by_action],
            by_day=by_day,
            window_days=days,
            top_liked=top_liked,
        )

    async def delete_one(self, reaction_id: int, *, actor: Optional[str] = None) -> Optional[Reaction]:
        removed = await asyncio.to_thread(self._store.delete, reaction_id)
        if removed is None:
            return None
        failed = await self._reconcile(summarize_deltas([removed]))
        Logger.info(
            f"delete reaction={reaction_id} actor={actor or '-'} "
            f"target={removed.entity_kind.value}/{removed.entity_id} failed={failed}",
            file=LogFiles.MODERATION,
        )
        return removed

    async def bulk_delete(
        self, selector: BulkDeleteSelector, *, actor: Optional[str] = None
    ) -> BulkDeleteResult:
        if selector.is_empty():
            raise ValidationError("Bulk delete needs at least one selector", field="selector")

        removed = await asyncio.to_thread(self._store.delete_matching, selector)
        deltas = summarize_deltas(removed)
        failed = await self._reconcile(deltas)

        Logger.warning(
            f"bulk_delete actor={actor or '-'} ids={selector.ids} user={selector.user_id} "
            f"kind={selector.entity_kind.value if selector.entity_kind else None} "
            f"entity={selector.entity_id} deleted={len(removed)} groups={len(deltas)} "
            f"failed={failed}",
            file=LogFiles.MODERATION,
        )
        return BulkDeleteResult(deleted=len(removed), reconciled=deltas, failed_reconciliations=failed)

    async def _reconcile(self, deltas: Dict[Tuple[EntityKind, str], CounterDelta]) -> List[str]:
        """One ``adjust_counters`` call per target; returns ``kind/id`` for each failure."""
        failed: List[str] = []
        calls: List[Tuple[str, Awaitable[Any]]] = []
        for (kind, entity_id), delta in deltas.items():
            label = f"{kind.value}/{entity_id}"
            if kind not in self._registry:
                failed.append(label)
                continue
            adapter = self._registry.get(kind)
            calls.append((label, adapter.adjust_counters(entity_id, delta.likes, delta.dislikes)))

        for label, result in await fan_out(calls, self.timeout):
            if is_degraded(result):
                failed.append(label)
        if failed:
            Logger.error(f"Counter reconciliation failed for {failed}", file=LogFiles.ERROR)
        return failed
