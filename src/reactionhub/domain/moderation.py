"""Moderation read models: grouped statistics and bulk-deletion outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from reactionhub.domain.reaction import EntityKind


@dataclass
class BucketCount:
    key: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "count": self.count}


@dataclass
class TopEntity:
    entity_kind: EntityKind
    entity_id: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_kind": self.entity_kind.value,
            "entity_id": self.entity_id,
            "count": self.count,
        }


@dataclass
class ReactionStats:
    total: int
    by_kind: List[BucketCount] = field(default_factory=list)
    by_action: List[BucketCount] = field(default_factory=list)
    by_day: List[BucketCount] = field(default_factory=list)
    window_days: int = 7
    top_liked: List[TopEntity] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "window_days": self.window_days,
            "by_kind": [b.to_dict() for b in self.by_kind],
            "by_action": [b.to_dict() for b in self.by_action],
            "by_day": [b.to_dict() for b in self.by_day],
            "top_liked": [t.to_dict() for t in self.top_liked],
        }


@dataclass
class CounterDelta:
    """Net change to one entity's mirrored counters (negative after deletions)."""

    likes: int = 0
    dislikes: int = 0


@dataclass
class BulkDeleteResult:
    deleted: int
    # (kind, entity_id) -> delta applied to the owning store's mirror
    reconciled: Dict[Tuple[EntityKind, str], CounterDelta] = field(default_factory=dict)
    failed_reconciliations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deleted": self.deleted,
            "reconciled": [
                {
                    "entity_kind": kind.value,
                    "entity_id": entity_id,
                    "likes_delta": delta.likes,
                    "dislikes_delta": delta.dislikes,
                }
                for (kind, entity_id), delta in sorted(
                    self.reconciled.items(), key=lambda item: (item[0][0].value, item[0][1])
                )
            ],
            "failed_reconciliations": list(self.failed_reconciliations),
        }


@dataclass
class BulkDeleteSelector:
    """What to delete. At least one selector must be set."""

    ids: Optional[List[int]] = None
    user_id: Optional[str] = None
    entity_kind: Optional[EntityKind] = None
    entity_id: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.ids or self.user_id or self.entity_kind or self.entity_id)
