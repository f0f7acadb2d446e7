# src/reactionhub/domain/reaction.py
"""
Reaction domain model.

Contains the value objects of the reaction ledger:
- EntityKind: closed set of content kinds a reaction can target
- ReactionAction: LIKE / DISLIKE (absence of a record means NONE)
- ReactionState: the toggle state machine's states
- Reaction: one ledger record
- ReactionCounts / UserReactionState / ToggleResult: read models
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from reactionhub.domain.errors import ValidationError


class EntityKind(str, Enum):
    """Content kinds known to the ledger. Each one maps to exactly one adapter."""

    VIDEO = "VIDEO"
    POST = "POST"
    COMMENT = "COMMENT"
    MEMORY = "MEMORY"
    PLAYLIST = "PLAYLIST"
    PODCAST = "PODCAST"


class ReactionAction(str, Enum):
    LIKE = "LIKE"
    DISLIKE = "DISLIKE"


class ReactionState(str, Enum):
    NONE = "NONE"
    LIKED = "LIKED"
    DISLIKED = "DISLIKED"

    @classmethod
    def from_action(cls, action: Optional[ReactionAction]) -> "ReactionState":
        if action is None:
            return cls.NONE
        return cls.LIKED if action == ReactionAction.LIKE else cls.DISLIKED


ALL = "ALL"

# Plural / lowercase aliases accepted from query strings.
_KIND_ALIASES: Dict[str, str] = {
    "VIDEOS": "VIDEO",
    "POSTS": "POST",
    "COMMENTS": "COMMENT",
    "MEMORIES": "MEMORY",
    "PLAYLISTS": "PLAYLIST",
    "PODCASTS": "PODCAST",
}

_ACTION_ALIASES: Dict[str, str] = {
    "LIKES": "LIKE",
    "DISLIKES": "DISLIKE",
}

ENTITY_ID_RX = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-:.]{0,63}$")
_OBJECT_ID_RX = re.compile(r"^[0-9a-fA-F]{24}$")
_UUID_RX = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def _to_enum_token(raw: Any) -> str:
    return str(raw or "").strip().upper()


def normalize_kind(raw: Any, *, allow_all: bool = False) -> Optional[EntityKind]:
    """
    Parse a kind tag. Accepts enum members, any case, singular or plural.

    Returns None for "all" when ``allow_all`` is set (meaning: no kind filter).
    """
    if isinstance(raw, EntityKind):
        return raw
    token = _to_enum_token(raw)
    if allow_all and token in ("", ALL):
        return None
    token = _KIND_ALIASES.get(token, token)
    try:
        return EntityKind(token)
    except ValueError:
        raise ValidationError(f"Unknown entity kind: {raw!r}", field="kind") from None


def normalize_action(raw: Any, *, allow_all: bool = False) -> Optional[ReactionAction]:
    if isinstance(raw, ReactionAction):
        return raw
    token = _to_enum_token(raw)
    if allow_all and token in ("", ALL):
        return None
    token = _ACTION_ALIASES.get(token, token)
    try:
        return ReactionAction(token)
    except ValueError:
        raise ValidationError(f"Unknown reaction action: {raw!r}", field="action") from None


def validate_entity_id(raw: Any, *, field: str = "entity_id") -> str:
    """Syntactic check only; existence is the owning store's business."""
    value = str(raw or "").strip()
    if not value:
        raise ValidationError(f"{field} is required", field=field)
    if not ENTITY_ID_RX.match(value):
        raise ValidationError(f"Malformed {field}: {raw!r}", field=field)
    return value


def validate_user_id(raw: Any) -> str:
    return validate_entity_id(raw, field="user_id")


def parse_id_candidate(raw: Any) -> Optional[str]:
    """Return the query as an id if it looks like a store identifier (object id or UUID)."""
    value = str(raw or "").strip()
    if _OBJECT_ID_RX.match(value):
        return value.lower()
    if _UUID_RX.match(value):
        return value.lower()
    return None


@dataclass
class Reaction:
    """One ledger record. ``(entity_kind, entity_id)`` is authoritative; refs are legacy mirrors."""

    id: int
    user_id: str
    entity_kind: EntityKind
    entity_id: str
    action: ReactionAction
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    video_ref: Optional[str] = None
    post_ref: Optional[str] = None
    created_by: Optional[str] = None
    modified_by: Optional[str] = None

    @property
    def target_key(self) -> tuple[EntityKind, str]:
        return (self.entity_kind, self.entity_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "entity_kind": self.entity_kind.value,
            "entity_id": self.entity_id,
            "action": self.action.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "video_ref": self.video_ref,
            "post_ref": self.post_ref,
            "created_by": self.created_by,
            "modified_by": self.modified_by,
        }


@dataclass(frozen=True)
class ReactionCounts:
    likes: int = 0
    dislikes: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"likes": self.likes, "dislikes": self.dislikes}


@dataclass(frozen=True)
class UserReactionState:
    liked: bool = False
    disliked: bool = False

    @classmethod
    def from_action(cls, action: Optional[ReactionAction]) -> "UserReactionState":
        return cls(
            liked=action == ReactionAction.LIKE,
            disliked=action == ReactionAction.DISLIKE,
        )

    def to_dict(self) -> Dict[str, bool]:
        return {"liked": self.liked, "disliked": self.disliked}


@dataclass
class ToggleResult:
    """Outcome of one toggle call: the new state plus authoritative counts."""

    state: ReactionState
    previous_state: ReactionState
    counts: ReactionCounts
    reaction: Optional[Reaction] = None

    @property
    def like_count(self) -> int:
        return self.counts.likes

    @property
    def dislike_count(self) -> int:
        return self.counts.dislikes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "previous_state": self.previous_state.value,
            "liked": self.state == ReactionState.LIKED,
            "disliked": self.state == ReactionState.DISLIKED,
            "like_count": self.counts.likes,
            "dislike_count": self.counts.dislikes,
            "reaction": self.reaction.to_dict() if self.reaction else None,
        }
