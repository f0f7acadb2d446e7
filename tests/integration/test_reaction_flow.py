from __future__ import annotations

from pathlib import Path

import pytest

from reactionhub.application.services.reaction_service import build_reaction_service
from reactionhub.config import ReactionHubSettings
from reactionhub.domain.errors import NotFoundError, ValidationError
from reactionhub.domain.reaction import EntityKind, ReactionState
from reactionhub.infrastructure.stores.content_store import (
    SqlAlchemyContentStore,
    SqlAlchemyUserStore,
)


def _seed(db_url: str) -> SqlAlchemyContentStore:
    content = SqlAlchemyContentStore(db_url=db_url)
    content.upsert(EntityKind.VIDEO, {"id": "v1", "title": "Blue in Green", "artist": "Bill Evans"})
    content.upsert(EntityKind.VIDEO, {"id": "v2", "title": "Giant Steps", "artist": "Coltrane"})
    content.upsert(EntityKind.POST, {"id": "p1", "content": "first post", "hashtags": "#jazz"})
    content.upsert(EntityKind.COMMENT, {"id": "c1", "content": "great take", "author_id": "y"})
    content.upsert(EntityKind.PLAYLIST, {"id": "pl1", "name": "Sunday", "description": "slow"})
    users = SqlAlchemyUserStore(db_url=db_url)
    users.upsert_user(user_id="x", first_name="Xavier", last_name="Stone", email="X@Example.com")
    users.upsert_user(user_id="y", first_name="Yara", last_name="Bell", email="yara@example.com")
    return content


@pytest.fixture
def service_and_content(tmp_path: Path):
    db_url = f"sqlite:///{tmp_path / 'flow.db'}"
    content = _seed(db_url)
    service = build_reaction_service(ReactionHubSettings(db_url=db_url, default_page_size=10))
    return service, content


@pytest.mark.asyncio
async def test_toggle_scenarios_keep_counts_and_mirrors_in_step(service_and_content):
    service, content = service_and_content

    liked = await service.toggle_reaction("x", "video", "v1", "like")
    assert liked.state == ReactionState.LIKED
    assert liked.like_count == 1
    assert content.get(EntityKind.VIDEO, "v1")["likes"] == 1

    unliked = await service.toggle_reaction("x", "video", "v1", "like")
    assert unliked.state == ReactionState.NONE
    assert content.get(EntityKind.VIDEO, "v1")["likes"] == 0

    await service.toggle_reaction("x", "post", "p1", "like")
    both = await service.toggle_reaction("y", "post", "p1", "dislike")
    assert (both.like_count, both.dislike_count) == (1, 1)
    assert content.get(EntityKind.POST, "p1")["dislikes"] == 1

    await service.toggle_reaction("x", "comment", "c1", "like")
    flipped = await service.toggle_reaction("x", "comment", "c1", "dislike")
    assert (flipped.like_count, flipped.dislike_count) == (0, 1)
    page = await service.list_reactions(service.build_filter(kind="comment"))
    assert page.total == 1

    state = await service.user_state("post", "p1", "y")
    assert state.disliked and not state.liked
    states = await service.user_states("post", ["p1"], "x")
    assert states["p1"].liked


@pytest.mark.asyncio
async def test_toggle_validates_before_touching_stores(service_and_content):
    service, _ = service_and_content

    with pytest.raises(NotFoundError):
        await service.toggle_reaction("x", "video", "v404", "like")
    with pytest.raises(ValidationError):
        await service.toggle_reaction("x", "stories", "s1", "like")
    with pytest.raises(ValidationError):
        await service.toggle_reaction("x", "video", "v1", "meh")

    page = await service.list_reactions()
    assert page.total == 0


@pytest.mark.asyncio
async def test_listing_resolves_targets_and_tolerates_deleted_ones(service_and_content):
    service, content = service_and_content
    await service.toggle_reaction("x", "video", "v1", "like")
    await service.toggle_reaction("x", "playlist", "pl1", "dislike")
    await service.toggle_reaction("y", "video", "v2", "like")

    content.delete(EntityKind.VIDEO, "v1")
    page = await service.list_reactions(sort="oldest")

    assert page.total == 3
    assert page.total_pages == 1
    assert [row.reaction.entity_id for row in page.rows] == ["v1", "pl1", "v2"]
    assert page.rows[0].target is None
    assert page.rows[1].target["name"] == "Sunday"
    assert page.rows[2].target["artist"] == "Coltrane"
    assert page.rows[2].user["first_name"] == "Yara"
    assert page.degraded == []


@pytest.mark.asyncio
async def test_search_fans_out_to_content_and_users(service_and_content):
    service, _ = service_and_content
    await service.toggle_reaction("x", "video", "v1", "like")
    await service.toggle_reaction("y", "post", "p1", "dislike")
    await service.toggle_reaction("y", "comment", "c1", "like")

    by_content = await service.list_reactions(service.build_filter(search="JAZZ"))
    assert [row.reaction.entity_id for row in by_content.rows] == ["p1"]

    by_user = await service.list_reactions(service.build_filter(search="stone"))
    assert [row.reaction.user_id for row in by_user.rows] == ["x"]

    by_action = await service.list_reactions(service.build_filter(search="dislike"))
    assert [row.reaction.entity_id for row in by_action.rows] == ["p1"]

    narrowed = await service.list_reactions(service.build_filter(search="yara", kind="comment"))
    assert [row.reaction.entity_id for row in narrowed.rows] == ["c1"]


@pytest.mark.asyncio
async def test_pagination_is_one_indexed_and_bounded(service_and_content):
    service, _ = service_and_content
    for user in ("a", "b", "c", "d", "e"):
        await service.toggle_reaction(user, "video", "v2", "like")

    second = await service.list_reactions(page=2, page_size=2)
    assert second.total == 5
    assert second.total_pages == 3
    assert len(second.rows) == 2

    huge = await service.list_reactions(page_size=10_000)
    assert huge.page_size == service.settings.max_page_size

    beyond = await service.list_reactions(page=9, page_size=2)
    assert beyond.rows == []
    assert beyond.total == 5


@pytest.mark.asyncio
async def test_bulk_delete_reconciles_mirrored_counters(service_and_content):
    service, content = service_and_content
    await service.toggle_reaction("x", "video", "v1", "like")
    await service.toggle_reaction("y", "video", "v1", "like")
    await service.toggle_reaction("x", "video", "v2", "dislike")
    await service.toggle_reaction("x", "post", "p1", "like")
    assert content.get(EntityKind.VIDEO, "v1")["likes"] == 2

    result = await service.bulk_delete_reactions(user_id="x", kind="video", actor="admin")

    assert result.deleted == 2
    assert content.get(EntityKind.VIDEO, "v1")["likes"] == 1
    assert content.get(EntityKind.VIDEO, "v2")["dislikes"] == 0
    assert content.get(EntityKind.POST, "p1")["likes"] == 1
    assert (await service.counts("video", "v1")).likes == 1

    remaining = await service.list_reactions(service.build_filter(user_id="x"))
    assert [row.reaction.entity_kind for row in remaining.rows] == [EntityKind.POST]


@pytest.mark.asyncio
async def test_detail_and_single_delete(service_and_content):
    service, content = service_and_content
    toggled = await service.toggle_reaction("y", "comment", "c1", "dislike")
    reaction_id = toggled.reaction.id

    detail = await service.get_reaction_detail(reaction_id)
    assert detail.target["content"] == "great take"
    assert detail.user["email"] == "yara@example.com"

    assert await service.delete_reaction(reaction_id, actor="admin") is True
    assert content.get(EntityKind.COMMENT, "c1")["dislikes"] == 0
    assert await service.get_reaction_detail(reaction_id) is None
    assert await service.delete_reaction(reaction_id) is False


@pytest.mark.asyncio
async def test_stats_and_sync_counters(service_and_content):
    service, content = service_and_content
    await service.toggle_reaction("x", "video", "v1", "like")
    await service.toggle_reaction("y", "video", "v1", "like")
    await service.toggle_reaction("y", "post", "p1", "dislike")
    content.upsert(EntityKind.VIDEO, {"id": "v1", "likes": 40})

    counts = await service.sync_counters("video", "v1")
    stats = await service.stats(3)

    assert counts.likes == 2
    assert content.get(EntityKind.VIDEO, "v1")["likes"] == 2
    assert stats.total == 3
    assert [(b.key, b.count) for b in stats.by_kind] == [("VIDEO", 2), ("POST", 1)]
    assert sum(b.count for b in stats.by_day) == 3
    assert stats.top_liked[0].entity_id == "v1"


@pytest.mark.asyncio
async def test_resync_counters_repairs_every_drifted_mirror(service_and_content):
    service, content = service_and_content
    await service.toggle_reaction("x", "video", "v1", "like")
    await service.toggle_reaction("y", "video", "v2", "dislike")
    await service.toggle_reaction("x", "post", "p1", "like")
    content.upsert(EntityKind.VIDEO, {"id": "v1", "likes": 17})
    content.upsert(EntityKind.VIDEO, {"id": "v2", "dislikes": 0})
    content.upsert(EntityKind.POST, {"id": "p1", "likes": 9})

    videos_only = await service.resync_counters("video")

    assert videos_only == {"targets": 2, "synced": 2, "failed": 0, "degraded": []}
    assert content.get(EntityKind.VIDEO, "v1")["likes"] == 1
    assert content.get(EntityKind.VIDEO, "v2")["dislikes"] == 1
    assert content.get(EntityKind.POST, "p1")["likes"] == 9

    everything = await service.resync_counters()
    assert everything["targets"] == 3
    assert content.get(EntityKind.POST, "p1")["likes"] == 1


@pytest.mark.asyncio
async def test_mirror_writes_to_deleted_targets_are_reported_as_failures(service_and_content):
    service, content = service_and_content
    await service.toggle_reaction("x", "video", "v1", "like")
    await service.toggle_reaction("x", "video", "v2", "like")
    content.delete(EntityKind.VIDEO, "v1")

    assert await service.counter.sync_counters(EntityKind.VIDEO, "v1") is False
    assert await service.resync_counters("video") == {
        "targets": 2,
        "synced": 1,
        "failed": 1,
        "degraded": [],
    }

    result = await service.bulk_delete_reactions(user_id="x", kind="video", actor="admin")

    assert result.deleted == 2
    assert result.failed_reconciliations == ["VIDEO/v1"]
    assert content.get(EntityKind.VIDEO, "v2")["likes"] == 0


@pytest.mark.asyncio
async def test_capped_search_marks_the_page_as_degraded(tmp_path: Path):
    db_url = f"sqlite:///{tmp_path / 'capped.db'}"
    _seed(db_url)
    service = build_reaction_service(ReactionHubSettings(db_url=db_url, search_limit=1))
    await service.toggle_reaction("x", "video", "v1", "like")
    await service.toggle_reaction("y", "video", "v2", "like")

    page = await service.list_reactions(service.build_filter(search="e"))

    assert "VIDEO:truncated" in page.degraded
    assert page.total == 2


@pytest.mark.asyncio
async def test_resync_resets_mirrors_of_entities_with_no_reactions_left(service_and_content):
    service, content = service_and_content
    await service.toggle_reaction("x", "video", "v1", "like")
    content.upsert(EntityKind.VIDEO, {"id": "v2", "likes": 4, "dislikes": 2})
    content.upsert(EntityKind.PLAYLIST, {"id": "pl1", "dislikes": 3})

    videos = await service.resync_counters("video")

    assert videos == {"targets": 2, "synced": 2, "failed": 0, "degraded": []}
    v2 = content.get(EntityKind.VIDEO, "v2")
    assert (v2["likes"], v2["dislikes"]) == (0, 0)
    assert content.get(EntityKind.VIDEO, "v1")["likes"] == 1
    assert content.get(EntityKind.PLAYLIST, "pl1")["dislikes"] == 3

    await service.resync_counters()
    assert content.get(EntityKind.PLAYLIST, "pl1")["dislikes"] == 0
