"""Runtime settings read from REACTIONHUB_* environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from reactionhub.domain.reaction import EntityKind, normalize_kind
from reactionhub.infrastructure.stores.sqlalchemy_db import get_db_url

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def _parse_csv_env(name: str, default: str = "") -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _parse_remote_kinds(items: List[str]) -> Dict[EntityKind, str]:
    """``VIDEO=https://videos.internal,PODCAST=https://pods.internal`` -> {kind: base_url}."""
    remote: Dict[EntityKind, str] = {}
    for item in items:
        if "=" not in item:
            logger.warning("Ignoring malformed remote kind entry %r", item)
            continue
        raw_kind, url = item.split("=", 1)
        remote[normalize_kind(raw_kind)] = url.strip()
    return remote


@dataclass
class ReactionHubSettings:
    db_url: str
    adapter_timeout: float = 5.0
    default_page_size: int = 20
    max_page_size: int = 100
    stats_window_days: int = 7
    search_limit: int = 500
    remote_kinds: Dict[EntityKind, str] = field(default_factory=dict)
    remote_api_key: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ReactionHubSettings":
        max_page_size = max(1, _env_int("REACTIONHUB_MAX_PAGE_SIZE", 100))
        return cls(
            db_url=get_db_url(),
            adapter_timeout=max(0.1, _env_float("REACTIONHUB_ADAPTER_TIMEOUT", 5.0)),
            default_page_size=min(
                max_page_size, max(1, _env_int("REACTIONHUB_DEFAULT_PAGE_SIZE", 20))
            ),
            max_page_size=max_page_size,
            stats_window_days=max(1, _env_int("REACTIONHUB_STATS_WINDOW_DAYS", 7)),
            search_limit=max(1, _env_int("REACTIONHUB_SEARCH_LIMIT", 500)),
            remote_kinds=_parse_remote_kinds(_parse_csv_env("REACTIONHUB_REMOTE_KINDS")),
            remote_api_key=os.getenv("REACTIONHUB_REMOTE_API_KEY") or None,
        )
