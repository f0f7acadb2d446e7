"""Reaction store — SQLAlchemy persistence for the generic reaction ledger."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from loguru import logger
from sqlalchemy import and_, asc, delete, desc, func, or_, select
from sqlalchemy.exc import IntegrityError, OperationalError

from reactionhub.domain.errors import ConflictError, StoreUnavailableError
from reactionhub.domain.listing import ReactionFilter, ReactionSort, SearchPlan
from reactionhub.domain.moderation import BulkDeleteSelector
from reactionhub.domain.reaction import EntityKind, Reaction, ReactionAction
from reactionhub.infrastructure.stores.models import Base, ReactionModel
from reactionhub.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


_GROUPABLE_COLUMNS = {
    "entity_kind": ReactionModel.entity_kind,
    "action": ReactionModel.action,
}


class SqlAlchemyReactionStore:
    """
    Ledger table access.

    Uniqueness of (user_id, entity_kind, entity_id) is enforced by
    ``uq_reactions_user_kind_entity``; a create that violates it raises
    ConflictError so the caller can retry as an update.
    Database connectivity failures surface as StoreUnavailableError.
    """

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            with self._guard():
                Base.metadata.create_all(self._provider.engine)

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except OperationalError as exc:
            logger.warning(f"reaction store unavailable at {self._provider.engine.url!r}: {exc.orig}")
            raise StoreUnavailableError(f"Reaction store unavailable: {exc.orig}") from exc

    # --- single-record reads ---

    def find(
        self, *, user_id: str, entity_kind: EntityKind, entity_id: str
    ) -> Optional[Reaction]:
        with self._guard(), self._provider.session() as session:
            row = session.execute(
                select(ReactionModel).where(
                    ReactionModel.user_id == user_id,
                    ReactionModel.entity_kind == entity_kind.value,
                    ReactionModel.entity_id == entity_id,
                )
            ).scalar_one_or_none()
            return self._row_to_reaction(row) if row else None

    def get(self, reaction_id: int) -> Optional[Reaction]:
        with self._guard(), self._provider.session() as session:
            row = session.get(ReactionModel, int(reaction_id))
            return self._row_to_reaction(row) if row else None

    # --- writes ---

    def create(
        self,
        *,
        user_id: str,
        entity_kind: EntityKind,
        entity_id: str,
        action: ReactionAction,
    ) -> Reaction:
        now = _utcnow()
        with self._guard(), self._provider.session() as session:
            row = ReactionModel(
                user_id=user_id,
                entity_kind=entity_kind.value,
                entity_id=entity_id,
                action=action.value,
                video_ref=entity_id if entity_kind == EntityKind.VIDEO else None,
                post_ref=entity_id if entity_kind == EntityKind.POST else None,
                created_by=user_id,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                logger.info(f"reaction create lost uniqueness race for {user_id}/{entity_kind.value}/{entity_id}")
                raise ConflictError(
                    f"Reaction already exists for ({user_id}, {entity_kind.value}, {entity_id})"
                ) from exc
            return self._row_to_reaction(row)

    def update_action(
        self, reaction_id: int, action: ReactionAction, *, modified_by: Optional[str] = None
    ) -> Optional[Reaction]:
        with self._guard(), self._provider.session() as session:
            row = session.get(ReactionModel, int(reaction_id))
            if row is None:
                return None
            row.action = action.value
            row.modified_by = modified_by
            row.updated_at = _utcnow()
            session.commit()
            return self._row_to_reaction(row)

    def delete(self, reaction_id: int) -> Optional[Reaction]:
        """Physically delete one record. Returns the removed record, or None if absent."""
        with self._guard(), self._provider.session() as session:
            row = session.get(ReactionModel, int(reaction_id))
            if row is None:
                return None
            removed = self._row_to_reaction(row)
            session.delete(row)
            session.commit()
            return removed

    def delete_matching(self, selector: BulkDeleteSelector) -> List[Reaction]:
        """
        Delete every record matching the selector in one statement.

        Records come back from ``DELETE ... RETURNING``, so they reflect the rows
        actually removed even if a toggle changed one after the caller decided
        to delete it.
        """
        clauses = []
        if selector.ids:
            clauses.append(ReactionModel.id.in_([int(i) for i in selector.ids]))
        if selector.user_id:
            clauses.append(ReactionModel.user_id == selector.user_id)
        if selector.entity_kind:
            clauses.append(ReactionModel.entity_kind == selector.entity_kind.value)
        if selector.entity_id:
            clauses.append(ReactionModel.entity_id == selector.entity_id)
        if not clauses:
            return []

        table = ReactionModel.__table__
        with self._guard(), self._provider.session() as session:
            if self._provider.engine.dialect.delete_returning:
                rows = session.execute(
                    delete(table).where(and_(*clauses)).returning(*table.columns)
                ).all()
            else:
                # No RETURNING support: read and delete inside one transaction.
                rows = session.execute(
                    select(*table.columns).where(and_(*clauses)).with_for_update()
                ).all()
                if rows:
                    session.execute(delete(table).where(table.c.id.in_([r.id for r in rows])))
            session.commit()
            return [self._row_to_reaction(row) for row in rows]

    # --- aggregates ---

    def count_by_action(
        self, *, entity_kind: EntityKind, entity_id: str
    ) -> Dict[ReactionAction, int]:
        with self._guard(), self._provider.session() as session:
            rows = session.execute(
                select(ReactionModel.action, func.count(ReactionModel.id))
                .where(
                    ReactionModel.entity_kind == entity_kind.value,
                    ReactionModel.entity_id == entity_id,
                )
                .group_by(ReactionModel.action)
            ).all()
        counts = {action: 0 for action in ReactionAction}
        for action, count in rows:
            counts[ReactionAction(action)] = int(count)
        return counts

    def actions_for_user(
        self, *, user_id: str, entity_kind: EntityKind, entity_ids: Iterable[str]
    ) -> Dict[str, ReactionAction]:
        ids = sorted({str(i) for i in entity_ids if i})
        if not ids:
            return {}
        with self._guard(), self._provider.session() as session:
            rows = session.execute(
                select(ReactionModel.entity_id, ReactionModel.action).where(
                    ReactionModel.user_id == user_id,
                    ReactionModel.entity_kind == entity_kind.value,
                    ReactionModel.entity_id.in_(ids),
                )
            ).all()
        return {entity_id: ReactionAction(action) for entity_id, action in rows}

    def group_counts(self, column: str) -> List[Tuple[str, int]]:
        col = _GROUPABLE_COLUMNS.get(column)
        if col is None:
            raise ValueError(f"Cannot group reactions by {column!r}")
        count = func.count(ReactionModel.id)
        with self._guard(), self._provider.session() as session:
            rows = session.execute(
                select(col, count).group_by(col).order_by(desc(count), asc(col))
            ).all()
        return [(str(key), int(n)) for key, n in rows]

    def created_since(self, since: datetime) -> List[datetime]:
        with self._guard(), self._provider.session() as session:
            values = (
                session.execute(
                    select(ReactionModel.created_at).where(ReactionModel.created_at >= since)
                )
                .scalars()
                .all()
            )
        return [_as_utc(v) for v in values if v is not None]

    def top_entities(
        self,
        *,
        action: ReactionAction,
        entity_kind: Optional[EntityKind] = None,
        limit: int = 10,
    ) -> List[Tuple[EntityKind, str, int]]:
        count = func.count(ReactionModel.id)
        stmt = select(ReactionModel.entity_kind, ReactionModel.entity_id, count).where(
            ReactionModel.action == action.value
        )
        if entity_kind is not None:
            stmt = stmt.where(ReactionModel.entity_kind == entity_kind.value)
        stmt = (
            stmt.group_by(ReactionModel.entity_kind, ReactionModel.entity_id)
            .order_by(desc(count), asc(ReactionModel.entity_kind), asc(ReactionModel.entity_id))
            .limit(max(1, int(limit)))
        )
        with self._guard(), self._provider.session() as session:
            rows = session.execute(stmt).all()
        return [(EntityKind(kind), str(entity_id), int(n)) for kind, entity_id, n in rows]

    def distinct_targets(
        self, *, entity_kind: Optional[EntityKind] = None
    ) -> List[Tuple[EntityKind, str]]:
        stmt = select(ReactionModel.entity_kind, ReactionModel.entity_id).distinct()
        if entity_kind is not None:
            stmt = stmt.where(ReactionModel.entity_kind == entity_kind.value)
        stmt = stmt.order_by(asc(ReactionModel.entity_kind), asc(ReactionModel.entity_id))
        with self._guard(), self._provider.session() as session:
            rows = session.execute(stmt).all()
        return [(EntityKind(kind), str(entity_id)) for kind, entity_id in rows]

    # --- listing ---

    def list(
        self,
        *,
        filters: ReactionFilter,
        plan: Optional[SearchPlan] = None,
        sort: ReactionSort = ReactionSort.RECENT,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Reaction], int]:
        clauses = self._filter_clauses(filters)
        if plan is not None:
            clauses.append(self._plan_clause(plan))

        count_stmt = select(func.count(ReactionModel.id))
        page_stmt = select(ReactionModel)
        if clauses:
            count_stmt = count_stmt.where(*clauses)
            page_stmt = page_stmt.where(*clauses)
        page_stmt = page_stmt.order_by(*self._order_by(sort)).offset(max(0, offset)).limit(limit)

        with self._guard(), self._provider.session() as session:
            total = int(session.execute(count_stmt).scalar_one() or 0)
            rows = session.execute(page_stmt).scalars().all()
            return [self._row_to_reaction(r) for r in rows], total

    @staticmethod
    def _filter_clauses(filters: ReactionFilter) -> list:
        clauses = []
        if filters.kind is not None:
            clauses.append(ReactionModel.entity_kind == filters.kind.value)
        if filters.action is not None:
            clauses.append(ReactionModel.action == filters.action.value)
        if filters.user_id:
            clauses.append(ReactionModel.user_id == filters.user_id)
        if filters.entity_id:
            clauses.append(ReactionModel.entity_id == filters.entity_id)
        if filters.date_from is not None:
            clauses.append(ReactionModel.created_at >= filters.date_from)
        if filters.date_to is not None:
            clauses.append(ReactionModel.created_at <= filters.date_to)
        return clauses

    @staticmethod
    def _plan_clause(plan: SearchPlan):
        text = (plan.text or "").strip()
        branches = [
            ReactionModel.entity_kind.icontains(text, autoescape=True),
            ReactionModel.action.icontains(text, autoescape=True),
        ]
        if plan.user_ids:
            branches.append(ReactionModel.user_id.in_(sorted(plan.user_ids)))
        for kind in plan.matched_kinds():
            branches.append(
                and_(
                    ReactionModel.entity_kind == kind.value,
                    ReactionModel.entity_id.in_(sorted(plan.ids_by_kind[kind])),
                )
            )
        if plan.id_candidate:
            branches.append(ReactionModel.entity_id == plan.id_candidate)
        return or_(*branches)

    @staticmethod
    def _order_by(sort: ReactionSort) -> list:
        if sort == ReactionSort.OLDEST:
            return [asc(ReactionModel.created_at), asc(ReactionModel.id)]
        if sort == ReactionSort.MOST_ACTIVE:
            return [
                asc(ReactionModel.entity_kind),
                asc(ReactionModel.entity_id),
                desc(ReactionModel.created_at),
                desc(ReactionModel.id),
            ]
        return [desc(ReactionModel.created_at), desc(ReactionModel.id)]

    def close(self) -> None:
        try:
            self._provider.engine.dispose()
        except Exception as exc:
            logger.warning(f"reaction store engine dispose failed: {exc}")

    @staticmethod
    def _row_to_reaction(row: ReactionModel) -> Reaction:
        return Reaction(
            id=int(row.id),
            user_id=row.user_id,
            entity_kind=EntityKind(row.entity_kind),
            entity_id=row.entity_id,
            action=ReactionAction(row.action),
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
            video_ref=row.video_ref,
            post_ref=row.post_ref,
            created_by=row.created_by,
            modified_by=row.modified_by,
        )
