# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src/ to sys.path so `import reactionhub` works without an install.
"""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from reactionhub.utils.logging_config import Logger, clear_trace_id  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_log_dir(tmp_path, monkeypatch):
    """Route file logs into the test's tmp dir instead of ./logs."""
    Logger.close()
    monkeypatch.setenv("REACTIONHUB_LOG_DIR", str(tmp_path / "logs"))
    yield
    Logger.close()
    clear_trace_id()
