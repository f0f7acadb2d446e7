# src/reactionhub/utils/logging_config.py
"""
Centralized file logging for ReactionHub.

Usage:
    from reactionhub.utils.logging_config import Logger, LogFiles

    Logger.info("Toggled reaction", file=LogFiles.LEDGER)
    Logger.warning("Bulk delete by user u1", file=LogFiles.MODERATION)

    # Log to default file (logs/reactionhub.log)
    Logger.info("General message")

Configuration via environment variables:
    REACTIONHUB_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
    REACTIONHUB_LOG_DIR: Base directory for log files (default: logs/)
    REACTIONHUB_LOG_MAX_BYTES: Max size per log file in bytes (default: 10MB)
    REACTIONHUB_LOG_BACKUP_COUNT: Number of backup files to keep (default: 5)
"""

from __future__ import annotations

import logging
import os
import uuid
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

import yaml

# Context variable for trace_id (async-safe: each request task sees its own value)
_trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "reactionhub.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(trace_id)s] %(filename)s:%(lineno)d - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_CONFIG_FILE = Path(__file__).parent / "log_config.yaml"


class _LogFilesMeta(type):
    """Metaclass to allow attribute access like LogFiles.LEDGER."""

    def __getattr__(cls, name: str) -> str:
        cls._load()
        if name in cls._files:
            return cls._files[name]
        key = name.lower()
        if key in cls._files:
            return cls._files[key]
        raise AttributeError(f"Log file '{name}' not found in config")


class LogFiles(metaclass=_LogFilesMeta):
    """
    Log file paths loaded from src/reactionhub/utils/log_config.yaml.

    To add a new log file, add an entry under ``files`` in the YAML and access
    it as ``LogFiles.YOUR_NAME``.
    """

    _loaded = False
    _files: Dict[str, str] = {}

    @classmethod
    def _load(cls) -> None:
        if cls._loaded:
            return

        cls._files = {
            "api": "api/api.log",
            "ledger": "ledger/ledger.log",
            "moderation": "moderation/moderation.log",
            "error": "errors/error.log",
        }

        if LOG_CONFIG_FILE.exists():
            with open(LOG_CONFIG_FILE, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
            cls._files.update(config.get("files") or {})

        cls._loaded = True

    @classmethod
    def get(cls, name: str) -> str:
        cls._load()
        if name in cls._files:
            return cls._files[name]
        return cls._files.get(name.lower(), f"{name}/{name}.log")


class _TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = _trace_id_var.get() or "-"
        return True


_config: dict = {}
_initialized = False
_file_loggers: Dict[str, logging.Logger] = {}


def _get_config() -> dict:
    return {
        "level": os.environ.get("REACTIONHUB_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        "base_dir": os.environ.get("REACTIONHUB_LOG_DIR", DEFAULT_LOG_DIR),
        "max_bytes": int(os.environ.get("REACTIONHUB_LOG_MAX_BYTES", DEFAULT_MAX_BYTES)),
        "backup_count": int(os.environ.get("REACTIONHUB_LOG_BACKUP_COUNT", DEFAULT_BACKUP_COUNT)),
    }


def _resolve_file_path(file: Optional[str]) -> Path:
    base_dir = Path(_config.get("base_dir", DEFAULT_LOG_DIR))
    return base_dir / (file or DEFAULT_LOG_FILE)


def _file_logger(file: Optional[str]) -> logging.Logger:
    path = _resolve_file_path(file)
    key = str(path)
    if key not in _file_loggers:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=key,
            maxBytes=_config.get("max_bytes", DEFAULT_MAX_BYTES),
            backupCount=_config.get("backup_count", DEFAULT_BACKUP_COUNT),
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT))
        handler.addFilter(_TraceIdFilter())

        file_logger = logging.getLogger(f"reactionhub.file.{key}")
        file_logger.propagate = False
        file_logger.handlers = [handler]
        file_logger.setLevel(_config.get("level", DEFAULT_LOG_LEVEL))
        _file_loggers[key] = file_logger
    return _file_loggers[key]


class Logger:
    """
    Static facade writing to named rotating log files.

    Every line carries the current trace id (see ``set_trace_id``) and the
    caller's file name and line number.
    """

    @staticmethod
    def init(
        level: Optional[str] = None,
        base_dir: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
    ) -> None:
        global _initialized, _config

        if _initialized:
            return

        _config = _get_config()
        if level:
            _config["level"] = level.upper()
        if base_dir:
            _config["base_dir"] = base_dir
        if max_bytes:
            _config["max_bytes"] = max_bytes
        if backup_count:
            _config["backup_count"] = backup_count

        _initialized = True

    @staticmethod
    def _log(level: int, message: str, file: Optional[str]) -> None:
        if not _initialized:
            Logger.init()
        # stacklevel=3: skip _log and the public method, report the real caller
        _file_logger(file).log(level, message, stacklevel=3)

    @staticmethod
    def debug(message: str, file: Optional[str] = None) -> None:
        Logger._log(logging.DEBUG, message, file)

    @staticmethod
    def info(message: str, file: Optional[str] = None) -> None:
        Logger._log(logging.INFO, message, file)

    @staticmethod
    def warning(message: str, file: Optional[str] = None) -> None:
        Logger._log(logging.WARNING, message, file)

    @staticmethod
    def error(message: str, file: Optional[str] = None) -> None:
        Logger._log(logging.ERROR, message, file)

    @staticmethod
    def critical(message: str, file: Optional[str] = None) -> None:
        Logger._log(logging.CRITICAL, message, file)

    @staticmethod
    def set_level(level: str) -> None:
        if not _initialized:
            Logger.init()
        _config["level"] = level.upper()
        for file_logger in _file_loggers.values():
            file_logger.setLevel(_config["level"])

    @staticmethod
    def close() -> None:
        global _initialized
        for file_logger in _file_loggers.values():
            for handler in file_logger.handlers:
                handler.close()
            file_logger.handlers = []
        _file_loggers.clear()
        _initialized = False


# ============================================================================
# Trace ID Management
# ============================================================================

def generate_trace_id() -> str:
    return f"req-{uuid.uuid4().hex[:12]}"


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Set the trace ID for the current context; generates one when omitted."""
    tid = trace_id or generate_trace_id()
    _trace_id_var.set(tid)
    return tid


def get_trace_id() -> Optional[str]:
    return _trace_id_var.get()


def clear_trace_id() -> None:
    _trace_id_var.set(None)
