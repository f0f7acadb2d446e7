from __future__ import annotations

import json
from pathlib import Path

from reactionhub.application.services.reaction_service import build_reaction_service
from reactionhub.config import ReactionHubSettings
from reactionhub.domain.reaction import EntityKind
from reactionhub.infrastructure.stores.content_store import SqlAlchemyContentStore
from reactionhub.presentation.cli.main import create_parser, run_cli


def _service(db_url: str):
    return build_reaction_service(ReactionHubSettings(db_url=db_url))


def test_cli_toggle_list_and_stats(tmp_path: Path, capsys):
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    SqlAlchemyContentStore(db_url=db_url).upsert(
        EntityKind.PODCAST, {"id": "pod1", "title": "Late Night Jazz", "host_name": "Sam"}
    )

    assert run_cli(["toggle", "u1", "podcast", "pod1", "like"], service=_service(db_url)) == 0
    toggled = json.loads(capsys.readouterr().out)
    assert toggled["state"] == "LIKED"
    assert toggled["like_count"] == 1

    assert run_cli(["list", "--search", "jazz"], service=_service(db_url)) == 0
    listing = json.loads(capsys.readouterr().out)
    assert listing["pagination"]["total"] == 1
    assert listing["items"][0]["target"]["title"] == "Late Night Jazz"

    assert run_cli(["stats", "--days", "2"], service=_service(db_url)) == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["total"] == 1
    assert len(stats["by_day"]) == 2


def test_cli_reports_domain_errors(tmp_path: Path, capsys):
    db_url = f"sqlite:///{tmp_path / 'cli-errors.db'}"

    code = run_cli(["toggle", "u1", "video", "missing", "like"], service=_service(db_url))

    assert code == 1
    assert "not found" in capsys.readouterr().err


def test_parser_accepts_list_options():
    parser = create_parser()
    parsed = parser.parse_args(["list", "--sort", "most_active", "--page-size", "5"])

    assert parsed.sort == "most_active"
    assert parsed.page_size == 5
