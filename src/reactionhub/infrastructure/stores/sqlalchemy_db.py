"""Engine/session plumbing shared by every SQLAlchemy-backed store."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

DEFAULT_DB_URL = "sqlite:///data/reactionhub.db"


def get_db_url() -> str:
    return os.getenv("REACTIONHUB_DB_URL", "").strip() or DEFAULT_DB_URL


def _is_memory_sqlite(db_url: str) -> bool:
    return db_url in ("sqlite://", "sqlite:///:memory:")


def _ensure_sqlite_dir(db_url: str) -> None:
    if not db_url.startswith("sqlite:///") or _is_memory_sqlite(db_url):
        return
    path = Path(db_url[len("sqlite:///"):])
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)


class SessionProvider:
    """Owns one engine and hands out short-lived sessions."""

    def __init__(self, db_url: Optional[str] = None, *, echo: bool = False):
        self.db_url = db_url or get_db_url()
        kwargs = {"echo": echo, "future": True}
        if self.db_url.startswith("sqlite"):
            # Stores are driven from worker threads via asyncio.to_thread.
            kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_sqlite(self.db_url):
                kwargs["poolclass"] = StaticPool
            else:
                _ensure_sqlite_dir(self.db_url)
        self.engine: Engine = create_engine(self.db_url, **kwargs)
        self._factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    @contextmanager
    def session(self) -> Iterator[Session]:
        session = self._factory()
        try:
            yield session
        finally:
            session.close()
