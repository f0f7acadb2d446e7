"""Content store — SQL-backed documents for every bundled entity kind, plus users."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Set, Tuple, Type

from loguru import logger
from sqlalchemy import or_, select

from reactionhub.domain.reaction import EntityKind
from reactionhub.infrastructure.stores.models import (
    Base,
    CommentModel,
    MemoryModel,
    PlaylistModel,
    PodcastModel,
    PostModel,
    UserModel,
    VideoModel,
)
from reactionhub.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url

DEFAULT_SEARCH_LIMIT = 500


@dataclass(frozen=True)
class ContentTable:
    """How one kind is stored: model, text columns searched, columns returned."""

    kind: EntityKind
    model: Type[Base]
    search_fields: Tuple[str, ...]
    document_fields: Tuple[str, ...]


CONTENT_TABLES: Dict[EntityKind, ContentTable] = {
    EntityKind.VIDEO: ContentTable(
        EntityKind.VIDEO, VideoModel, ("title", "artist"), ("title", "artist", "media_type")
    ),
    EntityKind.POST: ContentTable(
        EntityKind.POST, PostModel, ("content", "hashtags"), ("content", "hashtags", "media_type")
    ),
    EntityKind.COMMENT: ContentTable(
        EntityKind.COMMENT, CommentModel, ("content",), ("content", "author_id")
    ),
    EntityKind.MEMORY: ContentTable(EntityKind.MEMORY, MemoryModel, ("content",), ("content",)),
    EntityKind.PLAYLIST: ContentTable(
        EntityKind.PLAYLIST, PlaylistModel, ("name", "description"), ("name", "description")
    ),
    EntityKind.PODCAST: ContentTable(
        EntityKind.PODCAST,
        PodcastModel,
        ("title", "host_name", "guest_name", "description"),
        ("title", "host_name", "guest_name", "description"),
    ),
}

_USER_SEARCH_FIELDS = ("first_name", "last_name", "email")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean_ids(ids: Iterable[str]) -> list[str]:
    return sorted({str(i).strip() for i in ids if str(i or "").strip()})


def _text_match(model: Type[Base], fields: Tuple[str, ...], query: str):
    return or_(*[getattr(model, f).icontains(query, autoescape=True) for f in fields])


class SqlAlchemyContentStore:
    """Per-kind content tables with mirrored like/dislike counters."""

    def __init__(
        self,
        db_url: Optional[str] = None,
        *,
        auto_create_schema: bool = True,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ):
        self.db_url = db_url or get_db_url()
        self.search_limit = search_limit
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    @staticmethod
    def table(kind: EntityKind) -> ContentTable:
        try:
            return CONTENT_TABLES[kind]
        except KeyError:
            raise ValueError(f"No content table for kind {kind!r}") from None

    # --- writes ---

    def upsert(self, kind: EntityKind, document: Dict[str, Any]) -> Dict[str, Any]:
        spec = self.table(kind)
        entity_id = str(document.get("id") or "").strip()
        if not entity_id:
            raise ValueError("document id is required")
        with self._provider.session() as session:
            row = session.get(spec.model, entity_id)
            if row is None:
                row = spec.model(id=entity_id, likes=0, dislikes=0, created_at=_utcnow())
                session.add(row)
            for name in spec.document_fields:
                if name in document:
                    setattr(row, name, document[name])
            for name in ("likes", "dislikes"):
                if name in document:
                    setattr(row, name, int(document[name] or 0))
            session.commit()
            return self._row_to_document(spec, row)

    def delete(self, kind: EntityKind, entity_id: str) -> bool:
        spec = self.table(kind)
        with self._provider.session() as session:
            row = session.get(spec.model, entity_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def set_counters(self, kind: EntityKind, entity_id: str, likes: int, dislikes: int) -> bool:
        spec = self.table(kind)
        with self._provider.session() as session:
            row = session.get(spec.model, entity_id)
            if row is None:
                logger.warning(f"mirror counters skipped, {kind.value} {entity_id} no longer exists")
                return False
            row.likes = max(0, int(likes))
            row.dislikes = max(0, int(dislikes))
            session.commit()
            return True

    def add_to_counters(
        self, kind: EntityKind, entity_id: str, likes_delta: int, dislikes_delta: int
    ) -> bool:
        spec = self.table(kind)
        with self._provider.session() as session:
            row = session.get(spec.model, entity_id)
            if row is None:
                logger.warning(f"mirror delta skipped, {kind.value} {entity_id} no longer exists")
                return False
            row.likes = max(0, int(row.likes or 0) + int(likes_delta))
            row.dislikes = max(0, int(row.dislikes or 0) + int(dislikes_delta))
            session.commit()
            return True

    # --- reads ---

    def exists(self, kind: EntityKind, entity_id: str) -> bool:
        spec = self.table(kind)
        with self._provider.session() as session:
            found = session.execute(
                select(spec.model.id).where(spec.model.id == entity_id)
            ).scalar_one_or_none()
            return found is not None

    def get(self, kind: EntityKind, entity_id: str) -> Optional[Dict[str, Any]]:
        return self.bulk_get(kind, [entity_id]).get(entity_id)

    def bulk_get(self, kind: EntityKind, entity_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        spec = self.table(kind)
        ids = _clean_ids(entity_ids)
        if not ids:
            return {}
        with self._provider.session() as session:
            rows = session.execute(select(spec.model).where(spec.model.id.in_(ids))).scalars().all()
            return {row.id: self._row_to_document(spec, row) for row in rows}

    def search(
        self, kind: EntityKind, query: str, *, limit: Optional[int] = None
    ) -> Set[str]:
        """Ids of rows matching the query, at most ``limit`` (default ``search_limit``)."""
        spec = self.table(kind)
        query = (query or "").strip()
        if not query:
            return set()
        with self._provider.session() as session:
            ids = (
                session.execute(
                    select(spec.model.id)
                    .where(_text_match(spec.model, spec.search_fields, query))
                    .limit(limit or self.search_limit)
                )
                .scalars()
                .all()
            )
            return set(ids)

    def ids_with_counters(self, kind: EntityKind) -> Set[str]:
        """Rows whose mirrored likes or dislikes are nonzero."""
        spec = self.table(kind)
        with self._provider.session() as session:
            ids = session.execute(
                select(spec.model.id).where(or_(spec.model.likes != 0, spec.model.dislikes != 0))
            ).scalars().all()
            return set(ids)

    def close(self) -> None:
        try:
            self._provider.engine.dispose()
        except Exception as exc:
            logger.warning(f"content store engine dispose failed: {exc}")

    @staticmethod
    def _row_to_document(spec: ContentTable, row: Any) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"id": row.id, "kind": spec.kind.value}
        for name in spec.document_fields:
            doc[name] = getattr(row, name)
        doc["likes"] = int(row.likes or 0)
        doc["dislikes"] = int(row.dislikes or 0)
        return doc


class SqlAlchemyUserStore:
    """Read-mostly access to user identities."""

    def __init__(
        self,
        db_url: Optional[str] = None,
        *,
        auto_create_schema: bool = True,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ):
        self.db_url = db_url or get_db_url()
        self.search_limit = search_limit
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    def upsert_user(
        self,
        *,
        user_id: str,
        first_name: str = "",
        last_name: str = "",
        email: str = "",
        avatar_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        with self._provider.session() as session:
            row = session.get(UserModel, user_id)
            if row is None:
                row = UserModel(id=user_id)
                session.add(row)
            row.first_name = (first_name or "").strip()
            row.last_name = (last_name or "").strip()
            row.email = (email or "").strip().lower()
            row.avatar_url = avatar_url
            session.commit()
            return self._row_to_dict(row)

    def bulk_get(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = _clean_ids(user_ids)
        if not ids:
            return {}
        with self._provider.session() as session:
            rows = session.execute(select(UserModel).where(UserModel.id.in_(ids))).scalars().all()
            return {row.id: self._row_to_dict(row) for row in rows}

    def search(self, query: str, *, limit: Optional[int] = None) -> Set[str]:
        query = (query or "").strip()
        if not query:
            return set()
        with self._provider.session() as session:
            ids = (
                session.execute(
                    select(UserModel.id)
                    .where(_text_match(UserModel, _USER_SEARCH_FIELDS, query))
                    .limit(limit or self.search_limit)
                )
                .scalars()
                .all()
            )
            return set(ids)

    def close(self) -> None:
        try:
            self._provider.engine.dispose()
        except Exception as exc:
            logger.warning(f"user store engine dispose failed: {exc}")

    @staticmethod
    def _row_to_dict(row: UserModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "first_name": row.first_name,
            "last_name": row.last_name,
            "email": row.email,
            "avatar_url": row.avatar_url,
        }
