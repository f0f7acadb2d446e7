from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Set

import pytest

from reactionhub.application.services.cross_entity_resolver import CrossEntityResolver
from reactionhub.application.services.entity_registry import EntityRegistry
from reactionhub.domain.reaction import EntityKind, Reaction, ReactionAction


@dataclass
class _FakeEntityAdapter:
    kind: EntityKind
    documents: Dict[str, dict] = field(default_factory=dict)
    fail: bool = False
    delay: float = 0.0
    bulk_calls: List[List[str]] = field(default_factory=list)

    async def exists(self, entity_id: str) -> bool:
        return entity_id in self.documents

    async def bulk_get(self, entity_ids) -> Dict[str, dict]:
        ids = list(entity_ids)
        self.bulk_calls.append(ids)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError(f"{self.kind.value} store down")
        return {i: self.documents[i] for i in ids if i in self.documents}

    async def search(self, query: str) -> Set[str]:
        return set()

    async def apply_counters(self, entity_id: str, likes: int, dislikes: int) -> None:
        return None

    async def adjust_counters(self, entity_id: str, likes_delta: int, dislikes_delta: int) -> None:
        return None

    async def close(self) -> None:
        return None


@dataclass
class _FakeUserDirectory:
    users: Dict[str, dict] = field(default_factory=dict)
    calls: int = 0
    source_name: str = "users"

    async def bulk_get(self, user_ids) -> Dict[str, dict]:
        self.calls += 1
        return {u: self.users[u] for u in user_ids if u in self.users}

    async def search(self, query: str) -> Set[str]:
        return set()

    async def close(self) -> None:
        return None


def _reaction(rid: int, user: str, kind: EntityKind, entity_id: str) -> Reaction:
    return Reaction(
        id=rid, user_id=user, entity_kind=kind, entity_id=entity_id, action=ReactionAction.LIKE
    )


def _adapters() -> Dict[EntityKind, _FakeEntityAdapter]:
    return {
        EntityKind.VIDEO: _FakeEntityAdapter(
            EntityKind.VIDEO, {"v1": {"id": "v1", "title": "So What"}, "v2": {"id": "v2"}}
        ),
        EntityKind.POST: _FakeEntityAdapter(EntityKind.POST, {"p1": {"id": "p1"}}),
        EntityKind.COMMENT: _FakeEntityAdapter(EntityKind.COMMENT, {"c1": {"id": "c1"}}),
        EntityKind.PODCAST: _FakeEntityAdapter(EntityKind.PODCAST, {}),
    }


@pytest.mark.asyncio
async def test_one_bulk_fetch_per_kind_regardless_of_page_length():
    adapters = _adapters()
    users = _FakeUserDirectory({"x": {"id": "x", "first_name": "Ann"}})
    resolver = CrossEntityResolver(EntityRegistry(adapters.values()), users)

    page = [
        _reaction(1, "x", EntityKind.VIDEO, "v1"),
        _reaction(2, "y", EntityKind.POST, "p1"),
        _reaction(3, "x", EntityKind.VIDEO, "v2"),
        _reaction(4, "z", EntityKind.VIDEO, "v1"),
        _reaction(5, "x", EntityKind.POST, "p1"),
        _reaction(6, "y", EntityKind.VIDEO, "v2"),
    ]
    result = await resolver.resolve(page)

    assert adapters[EntityKind.VIDEO].bulk_calls == [["v1", "v2"]]
    assert adapters[EntityKind.POST].bulk_calls == [["p1"]]
    assert adapters[EntityKind.COMMENT].bulk_calls == []
    assert adapters[EntityKind.PODCAST].bulk_calls == []
    assert users.calls == 1

    assert [row.reaction.id for row in result.rows] == [1, 2, 3, 4, 5, 6]
    assert result.rows[0].target["title"] == "So What"
    assert result.rows[0].user["first_name"] == "Ann"
    assert result.rows[1].user is None
    assert result.degraded == []


@pytest.mark.asyncio
async def test_deleted_target_resolves_to_none_without_affecting_siblings():
    adapters = _adapters()
    resolver = CrossEntityResolver(EntityRegistry(adapters.values()))

    result = await resolver.resolve(
        [
            _reaction(1, "x", EntityKind.PODCAST, "gone"),
            _reaction(2, "x", EntityKind.COMMENT, "c1"),
            _reaction(3, "x", EntityKind.VIDEO, "deleted-video"),
        ]
    )

    assert result.rows[0].target is None
    assert result.rows[1].target == {"id": "c1"}
    assert result.rows[2].target is None
    assert result.degraded == []


@pytest.mark.asyncio
async def test_failing_store_degrades_only_its_own_kind():
    adapters = _adapters()
    adapters[EntityKind.POST].fail = True
    resolver = CrossEntityResolver(EntityRegistry(adapters.values()))

    result = await resolver.resolve(
        [_reaction(1, "x", EntityKind.POST, "p1"), _reaction(2, "x", EntityKind.VIDEO, "v1")]
    )

    assert result.degraded == ["POST"]
    assert result.rows[0].target is None
    assert result.rows[1].target["id"] == "v1"


@pytest.mark.asyncio
async def test_slow_store_times_out_without_cancelling_others():
    adapters = _adapters()
    adapters[EntityKind.VIDEO].delay = 2.0
    resolver = CrossEntityResolver(EntityRegistry(adapters.values()), timeout=0.1)

    result = await resolver.resolve(
        [_reaction(1, "x", EntityKind.VIDEO, "v1"), _reaction(2, "x", EntityKind.COMMENT, "c1")]
    )

    assert result.degraded == ["VIDEO"]
    assert result.rows[0].target is None
    assert result.rows[1].target == {"id": "c1"}


@pytest.mark.asyncio
async def test_bulk_fetches_run_concurrently():
    adapters = _adapters()
    for adapter in adapters.values():
        adapter.delay = 0.3
    resolver = CrossEntityResolver(EntityRegistry(adapters.values()))

    page = [
        _reaction(1, "x", EntityKind.VIDEO, "v1"),
        _reaction(2, "x", EntityKind.POST, "p1"),
        _reaction(3, "x", EntityKind.COMMENT, "c1"),
    ]
    loop = asyncio.get_running_loop()
    started = loop.time()
    result = await resolver.resolve(page)
    elapsed = loop.time() - started

    assert all(row.target is not None for row in result.rows)
    assert elapsed < 0.8


@pytest.mark.asyncio
async def test_unregistered_kind_on_page_is_reported_as_degraded():
    adapters = _adapters()
    registry = EntityRegistry([adapters[EntityKind.VIDEO]])
    resolver = CrossEntityResolver(registry)

    result = await resolver.resolve(
        [_reaction(1, "x", EntityKind.MEMORY, "m1"), _reaction(2, "x", EntityKind.VIDEO, "v1")]
    )

    assert result.degraded == ["MEMORY"]
    assert result.rows[0].target is None
    assert result.rows[1].target is not None


@pytest.mark.asyncio
async def test_empty_page_issues_no_calls():
    adapters = _adapters()
    users = _FakeUserDirectory()
    resolver = CrossEntityResolver(EntityRegistry(adapters.values()), users)

    result = await resolver.resolve([])

    assert result.rows == []
    assert users.calls == 0
    assert all(not a.bulk_calls for a in adapters.values())
