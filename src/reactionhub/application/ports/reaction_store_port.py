"""ReactionStorePort — persistence interface behind the reaction ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

from reactionhub.domain.listing import ReactionFilter, ReactionSort, SearchPlan
from reactionhub.domain.moderation import BulkDeleteSelector
from reactionhub.domain.reaction import EntityKind, Reaction, ReactionAction


@runtime_checkable
class ReactionStorePort(Protocol):
    """
    Synchronous store contract. Implementations must enforce uniqueness of
    (user_id, entity_kind, entity_id) and raise ConflictError when a create
    loses that race.
    """

    def find(self, *, user_id: str, entity_kind: EntityKind, entity_id: str) -> Optional[Reaction]: ...

    def get(self, reaction_id: int) -> Optional[Reaction]: ...

    def create(
        self,
        *,
        user_id: str,
        entity_kind: EntityKind,
        entity_id: str,
        action: ReactionAction,
    ) -> Reaction: ...

    def update_action(
        self, reaction_id: int, action: ReactionAction, *, modified_by: Optional[str] = None
    ) -> Optional[Reaction]: ...

    def delete(self, reaction_id: int) -> Optional[Reaction]: ...

    def count_by_action(self, *, entity_kind: EntityKind, entity_id: str) -> Dict[ReactionAction, int]: ...

    def actions_for_user(
        self, *, user_id: str, entity_kind: EntityKind, entity_ids: Iterable[str]
    ) -> Dict[str, ReactionAction]: ...

    def list(
        self,
        *,
        filters: ReactionFilter,
        plan: Optional[SearchPlan] = None,
        sort: ReactionSort = ReactionSort.RECENT,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Reaction], int]: ...

    def delete_matching(self, selector: BulkDeleteSelector) -> List[Reaction]: ...

    def group_counts(self, column: str) -> List[Tuple[str, int]]: ...

    def created_since(self, since: datetime) -> List[datetime]: ...

    def top_entities(
        self, *, action: ReactionAction, entity_kind: Optional[EntityKind] = None, limit: int = 10
    ) -> List[Tuple[EntityKind, str, int]]: ...

    def distinct_targets(
        self, *, entity_kind: Optional[EntityKind] = None
    ) -> List[Tuple[EntityKind, str]]: ...

    def close(self) -> None: ...
