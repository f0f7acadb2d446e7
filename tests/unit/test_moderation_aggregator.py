from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Set, Tuple

import pytest
from sqlalchemy import select

from reactionhub.application.services.entity_registry import EntityRegistry
from reactionhub.application.services.moderation_aggregator import (
    ModerationAggregator,
    summarize_deltas,
)
from reactionhub.domain.errors import ValidationError
from reactionhub.domain.listing import ReactionFilter
from reactionhub.domain.moderation import BulkDeleteSelector
from reactionhub.domain.reaction import EntityKind, Reaction, ReactionAction
from reactionhub.infrastructure.stores.models import ReactionModel
from reactionhub.infrastructure.stores.reaction_store import SqlAlchemyReactionStore


@dataclass
class _CounterRecordingAdapter:
    kind: EntityKind
    fail: bool = False
    adjustments: List[Tuple[str, int, int]] = field(default_factory=list)

    async def adjust_counters(self, entity_id: str, likes_delta: int, dislikes_delta: int) -> None:
        if self.fail:
            raise ConnectionError("mirror unavailable")
        self.adjustments.append((entity_id, likes_delta, dislikes_delta))

    async def apply_counters(self, entity_id: str, likes: int, dislikes: int) -> None:
        return None

    async def exists(self, entity_id: str) -> bool:
        return True

    async def bulk_get(self, entity_ids) -> Dict[str, dict]:
        return {}

    async def search(self, query: str) -> Set[str]:
        return set()

    async def close(self) -> None:
        return None


def _setup(tmp_path: Path):
    store = SqlAlchemyReactionStore(db_url=f"sqlite:///{tmp_path / 'moderation.db'}")
    adapters = {kind: _CounterRecordingAdapter(kind) for kind in EntityKind}
    moderation = ModerationAggregator(store, EntityRegistry(adapters.values()))
    return store, adapters, moderation


def _react(store, user: str, kind: EntityKind, entity_id: str, action: ReactionAction) -> Reaction:
    return store.create(user_id=user, entity_kind=kind, entity_id=entity_id, action=action)


def test_summarize_deltas_groups_by_target():
    reactions = [
        Reaction(1, "x", EntityKind.VIDEO, "v1", ReactionAction.LIKE),
        Reaction(2, "y", EntityKind.VIDEO, "v1", ReactionAction.LIKE),
        Reaction(3, "z", EntityKind.VIDEO, "v1", ReactionAction.DISLIKE),
        Reaction(4, "x", EntityKind.POST, "v1", ReactionAction.DISLIKE),
    ]

    deltas = summarize_deltas(reactions)

    assert (deltas[(EntityKind.VIDEO, "v1")].likes, deltas[(EntityKind.VIDEO, "v1")].dislikes) == (-2, -1)
    assert (deltas[(EntityKind.POST, "v1")].likes, deltas[(EntityKind.POST, "v1")].dislikes) == (0, -1)


@pytest.mark.asyncio
async def test_bulk_delete_by_user_and_kind_reconciles_once_per_video(tmp_path: Path):
    store, adapters, moderation = _setup(tmp_path)
    _react(store, "x", EntityKind.VIDEO, "v1", ReactionAction.LIKE)
    _react(store, "x", EntityKind.VIDEO, "v2", ReactionAction.DISLIKE)
    _react(store, "x", EntityKind.VIDEO, "v3", ReactionAction.LIKE)
    _react(store, "x", EntityKind.POST, "p1", ReactionAction.LIKE)
    _react(store, "y", EntityKind.VIDEO, "v1", ReactionAction.LIKE)

    result = await moderation.bulk_delete(
        BulkDeleteSelector(user_id="x", entity_kind=EntityKind.VIDEO), actor="admin-1"
    )

    assert result.deleted == 3
    assert sorted(adapters[EntityKind.VIDEO].adjustments) == [
        ("v1", -1, 0),
        ("v2", 0, -1),
        ("v3", -1, 0),
    ]
    assert adapters[EntityKind.POST].adjustments == []
    assert result.failed_reconciliations == []

    remaining, total = store.list(filters=ReactionFilter(), limit=10)
    assert total == 2
    assert {(r.user_id, r.entity_kind) for r in remaining} == {
        ("x", EntityKind.POST),
        ("y", EntityKind.VIDEO),
    }


@pytest.mark.asyncio
async def test_bulk_delete_by_target_sums_all_users_into_one_adjustment(tmp_path: Path):
    store, adapters, moderation = _setup(tmp_path)
    for user in ("a", "b", "c"):
        _react(store, user, EntityKind.PODCAST, "pod1", ReactionAction.LIKE)
    _react(store, "d", EntityKind.PODCAST, "pod1", ReactionAction.DISLIKE)

    result = await moderation.bulk_delete(
        BulkDeleteSelector(entity_kind=EntityKind.PODCAST, entity_id="pod1")
    )

    assert result.deleted == 4
    assert adapters[EntityKind.PODCAST].adjustments == [("pod1", -3, -1)]
    assert result.to_dict()["reconciled"] == [
        {"entity_kind": "PODCAST", "entity_id": "pod1", "likes_delta": -3, "dislikes_delta": -1}
    ]


@pytest.mark.asyncio
async def test_bulk_delete_by_ids(tmp_path: Path):
    store, adapters, moderation = _setup(tmp_path)
    first = _react(store, "a", EntityKind.MEMORY, "m1", ReactionAction.LIKE)
    _react(store, "b", EntityKind.MEMORY, "m1", ReactionAction.LIKE)
    third = _react(store, "c", EntityKind.PLAYLIST, "pl1", ReactionAction.DISLIKE)

    result = await moderation.bulk_delete(BulkDeleteSelector(ids=[first.id, third.id, 999]))

    assert result.deleted == 2
    assert adapters[EntityKind.MEMORY].adjustments == [("m1", -1, 0)]
    assert adapters[EntityKind.PLAYLIST].adjustments == [("pl1", 0, -1)]


@pytest.mark.asyncio
async def test_bulk_delete_requires_a_selector(tmp_path: Path):
    _, _, moderation = _setup(tmp_path)

    with pytest.raises(ValidationError):
        await moderation.bulk_delete(BulkDeleteSelector())


@pytest.mark.asyncio
async def test_failed_mirror_reconciliation_is_reported_not_raised(tmp_path: Path):
    store, adapters, moderation = _setup(tmp_path)
    adapters[EntityKind.COMMENT].fail = True
    _react(store, "a", EntityKind.COMMENT, "c1", ReactionAction.LIKE)
    _react(store, "a", EntityKind.POST, "p1", ReactionAction.LIKE)

    result = await moderation.bulk_delete(BulkDeleteSelector(user_id="a"))

    assert result.deleted == 2
    assert result.failed_reconciliations == ["COMMENT/c1"]
    assert adapters[EntityKind.POST].adjustments == [("p1", -1, 0)]


@pytest.mark.asyncio
async def test_delete_one_decrements_matching_counter(tmp_path: Path):
    store, adapters, moderation = _setup(tmp_path)
    reaction = _react(store, "a", EntityKind.VIDEO, "v1", ReactionAction.DISLIKE)

    removed = await moderation.delete_one(reaction.id, actor="admin")

    assert removed.id == reaction.id
    assert adapters[EntityKind.VIDEO].adjustments == [("v1", 0, -1)]
    assert await moderation.delete_one(reaction.id) is None


@pytest.mark.asyncio
async def test_stats_groups_and_zero_fills_day_buckets(tmp_path: Path):
    store, _, moderation = _setup(tmp_path)
    now = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
    _react(store, "a", EntityKind.VIDEO, "v1", ReactionAction.LIKE)
    _react(store, "b", EntityKind.VIDEO, "v1", ReactionAction.LIKE)
    _react(store, "c", EntityKind.POST, "p1", ReactionAction.DISLIKE)
    _react(store, "d", EntityKind.POST, "p2", ReactionAction.LIKE)

    # Pin creation times so the histogram does not depend on the wall clock.
    stamps = {
        "a": now - timedelta(hours=1),
        "b": now - timedelta(days=2),
        "c": now - timedelta(days=2, hours=3),
        "d": now - timedelta(days=30),
    }
    with store._provider.session() as session:
        for row in session.execute(select(ReactionModel)).scalars().all():
            row.created_at = stamps[row.user_id]
        session.commit()

    stats = await moderation.stats(3, now=now)

    assert stats.total == 4
    assert [(b.key, b.count) for b in stats.by_kind] == [("POST", 2), ("VIDEO", 2)]
    assert [(b.key, b.count) for b in stats.by_action] == [("LIKE", 3), ("DISLIKE", 1)]
    assert [(b.key, b.count) for b in stats.by_day] == [
        ("2026-10-15", 2),
        ("2026-10-16", 0),
        ("2026-10-17", 1),
    ]
    assert stats.top_liked[0].entity_id == "v1"
    assert stats.top_liked[0].count == 2


@pytest.mark.asyncio
async def test_stats_rejects_non_positive_window(tmp_path: Path):
    _, _, moderation = _setup(tmp_path)

    with pytest.raises(ValidationError):
        await moderation.stats(-1)
