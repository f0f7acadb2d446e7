#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from reactionhub.application.services.reaction_service import build_reaction_service
from reactionhub.config import ReactionHubSettings
from reactionhub.infrastructure.stores.sqlalchemy_db import get_db_url


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Overwrite mirrored like/dislike counters with counts from the reaction ledger"
    )
    parser.add_argument("--db-url", default=get_db_url())
    parser.add_argument("--kind", default=None, help="Only resync one entity kind")
    return parser.parse_args()


async def _run(db_url: str, kind: str | None) -> dict:
    settings = ReactionHubSettings.from_env()
    settings.db_url = db_url
    service = build_reaction_service(settings)
    try:
        return await service.resync_counters(kind)
    finally:
        await service.close()


def main() -> int:
    args = parse_args()
    stats = asyncio.run(_run(args.db_url, args.kind))
    print(json.dumps(stats, ensure_ascii=False, indent=2))
    return 0 if stats["failed"] == 0 and not stats["degraded"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
