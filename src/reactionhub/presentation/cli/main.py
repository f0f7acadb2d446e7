"""
CLI entry point

Stats, listing and toggling against the configured reaction database.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

from reactionhub import __version__
from reactionhub.application.services.reaction_service import (
    ReactionService,
    build_reaction_service,
)
from reactionhub.domain.errors import ReactionHubError

# Load local .env automatically so REACTIONHUB_* settings apply.
load_dotenv(find_dotenv(usecwd=True), override=False)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reactionhub",
        description="ReactionHub - polymorphic like/dislike ledger",
    )
    parser.add_argument("--version", "-v", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    stats_parser = subparsers.add_parser("stats", help="Grouped reaction statistics")
    stats_parser.add_argument("--days", type=int, default=None, help="Trailing window in days")

    list_parser = subparsers.add_parser("list", help="List reactions")
    list_parser.add_argument("--kind", default=None, help="Entity kind, or 'all'")
    list_parser.add_argument("--action", default=None, help="LIKE, DISLIKE or 'all'")
    list_parser.add_argument("--user", dest="user_id", default=None, help="Reacting user id")
    list_parser.add_argument("--entity", dest="entity_id", default=None, help="Target entity id")
    list_parser.add_argument("--search", "-q", default=None, help="Free-text search")
    list_parser.add_argument(
        "--sort", default="recent", choices=["recent", "oldest", "most_active"]
    )
    list_parser.add_argument("--page", type=int, default=1)
    list_parser.add_argument("--page-size", type=int, default=None)

    toggle_parser = subparsers.add_parser("toggle", help="Toggle a reaction for a user")
    toggle_parser.add_argument("user_id")
    toggle_parser.add_argument("kind")
    toggle_parser.add_argument("entity_id")
    toggle_parser.add_argument("action", help="LIKE or DISLIKE")

    return parser


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def _run_stats(service: ReactionService, parsed: argparse.Namespace) -> Dict[str, Any]:
    stats = await service.stats(parsed.days)
    return stats.to_dict()


async def _run_list(service: ReactionService, parsed: argparse.Namespace) -> Dict[str, Any]:
    filters = service.build_filter(
        kind=parsed.kind,
        action=parsed.action,
        user_id=parsed.user_id,
        entity_id=parsed.entity_id,
        search=parsed.search,
    )
    page = await service.list_reactions(
        filters, sort=parsed.sort, page=parsed.page, page_size=parsed.page_size
    )
    return page.to_dict()


async def _run_toggle(service: ReactionService, parsed: argparse.Namespace) -> Dict[str, Any]:
    result = await service.toggle_reaction(
        parsed.user_id, parsed.kind, parsed.entity_id, parsed.action
    )
    return result.to_dict()


_COMMANDS = {
    "stats": _run_stats,
    "list": _run_list,
    "toggle": _run_toggle,
}


async def _dispatch(service: ReactionService, parsed: argparse.Namespace) -> Dict[str, Any]:
    try:
        return await _COMMANDS[parsed.command](service, parsed)
    finally:
        await service.close()


def run_cli(args: Optional[list] = None, *, service: Optional[ReactionService] = None) -> int:
    """
    Run the CLI.

    Args:
        args: command line arguments (defaults to sys.argv)
        service: pre-built service, mainly for tests

    Returns:
        exit code
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.version:
        print(f"ReactionHub v{__version__}")
        return 0

    if not parsed.command:
        parser.print_help()
        return 0

    try:
        payload = asyncio.run(_dispatch(service or build_reaction_service(), parsed))
    except ReactionHubError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_json(payload)
    return 0


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
