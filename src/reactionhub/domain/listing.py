"""Listing, search-plan and enrichment value objects."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from reactionhub.domain.errors import ValidationError
from reactionhub.domain.reaction import EntityKind, Reaction, ReactionAction


class ReactionSort(str, Enum):
    RECENT = "recent"
    OLDEST = "oldest"
    # Groups rows by target (kind, entity_id), newest first inside each group.
    MOST_ACTIVE = "most_active"

    @classmethod
    def parse(cls, raw: Any) -> "ReactionSort":
        if isinstance(raw, cls):
            return raw
        token = str(raw or "").strip().lower() or cls.RECENT.value
        try:
            return cls(token)
        except ValueError:
            raise ValidationError(f"Unsupported sort: {raw!r}", field="sort") from None


@dataclass
class ReactionFilter:
    """Listing filter. Every field is optional; None means "don't filter"."""

    kind: Optional[EntityKind] = None
    action: Optional[ReactionAction] = None
    user_id: Optional[str] = None
    entity_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search_text: Optional[str] = None

    def has_search(self) -> bool:
        return bool((self.search_text or "").strip())


@dataclass
class SearchPlan:
    """
    Disjunctive filter compiled from a free-text query.

    A ledger row matches when any branch matches:
    kind literal, action literal, user in ``user_ids``,
    (kind = K and entity_id in ``ids_by_kind[K]``), or entity_id = ``id_candidate``.
    """

    text: str
    user_ids: Set[str] = field(default_factory=set)
    ids_by_kind: Dict[EntityKind, Set[str]] = field(default_factory=dict)
    id_candidate: Optional[str] = None
    degraded: List[str] = field(default_factory=list)

    def matched_kinds(self) -> List[EntityKind]:
        return [kind for kind, ids in self.ids_by_kind.items() if ids]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "user_ids": sorted(self.user_ids),
            "ids_by_kind": {k.value: sorted(v) for k, v in self.ids_by_kind.items() if v},
            "id_candidate": self.id_candidate,
            "degraded": list(self.degraded),
        }


@dataclass
class ResolvedReaction:
    """A ledger record joined with its target document and reacting user (either may be None)."""

    reaction: Reaction
    target: Optional[Dict[str, Any]] = None
    user: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.reaction.to_dict()
        data["target"] = self.target
        data["user"] = self.user
        return data


@dataclass
class ResolutionResult:
    rows: List[ResolvedReaction] = field(default_factory=list)
    degraded: List[str] = field(default_factory=list)


@dataclass
class ReactionPage:
    rows: List[ResolvedReaction]
    total: int
    page: int
    page_size: int
    degraded: List[str] = field(default_factory=list)

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return int(math.ceil(self.total / float(self.page_size)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [row.to_dict() for row in self.rows],
            "pagination": {
                "page": self.page,
                "page_size": self.page_size,
                "total": self.total,
                "total_pages": self.total_pages,
            },
            "degraded": list(self.degraded),
        }
