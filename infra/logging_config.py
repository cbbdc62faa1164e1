"""Centralized logging configuration.

Text logs for humans, JSON logs for hosted runtimes. ``setup_logging`` only
installs a handler when the root logger has none, unless an override is
requested, so it is safe to call from the CLI, workers and the Flask app.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from infra.config import get_settings

# Context merged into every JSON record (run_id, trigger, request path...).
request_ctx: ContextVar[dict[str, Any] | None] = ContextVar("request_ctx", default=None)

_STANDARD_RECORD_ATTRS = frozenset(
    {
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module",
        "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created", "msecs",
        "relativeCreated", "thread", "threadName", "processName", "process", "taskName",
        "message", "asctime",
    }
)


def set_request_context(**kwargs: Any) -> None:
    """Set context values that will be included in all subsequent log entries."""
    current = dict(request_ctx.get() or {})
    current.update(kwargs)
    request_ctx.set(current)


def clear_request_context() -> None:
    """Clear the request context (typically at the start of a new request or run)."""
    request_ctx.set({})


def get_request_context() -> dict[str, Any]:
    """Get a copy of the current request context."""
    ctx = request_ctx.get()
    return dict(ctx) if ctx else {}


def _utc_iso8601() -> str:
    # 2026-01-24T18:03:12.123Z
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    """One JSON object per line; extras and request context become top-level keys."""

    def __init__(self, *, extra_fields: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._extra_fields = dict(extra_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "timestamp": _utc_iso8601(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_ATTRS and key not in base:
                base[key] = value

        for key, value in self._extra_fields.items():
            base.setdefault(key, value)

        if record.exc_info:
            base["exception"] = self.formatException(record.exc_info)

        for key, value in get_request_context().items():
            base.setdefault(key, value)

        return json.dumps(base, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Human-friendly logs with UTC timestamps and trailing key=value extras."""

    converter = time.gmtime

    def __init__(self) -> None:
        super().__init__("%(asctime)sZ | %(levelname)s | %(name)s | %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = {
            k: v
            for k, v in record.__dict__.items()
            if k not in _STANDARD_RECORD_ATTRS and k != "event"
        }
        if not fields:
            return text
        tail = " ".join(f"{k}={v}" for k, v in fields.items())
        return f"{text} | {tail}"


class StructuredLogger:
    """
    Event-style logger with keyword fields.

    Usage:
        logger = StructuredLogger(__name__)
        set_request_context(trigger="cli", run_id="abc")
        logger.info("discovery_run_started", adapters=2)
        # {"timestamp": "...", "event": "discovery_run_started", "adapters": 2,
        #  "trigger": "cli", "run_id": "abc", ...}
    """

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _log(self, level: int, event: str, *, exc_info: bool = False, **kwargs: Any) -> None:
        extra = {"event": event, **kwargs}
        self._logger.log(level, event, extra=extra, exc_info=exc_info)

    def debug(self, event: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, event, **kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self._log(logging.INFO, event, **kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, event, **kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, event, **kwargs)

    def exception(self, event: str, **kwargs: Any) -> None:
        """Log at ERROR with the active exception's traceback attached."""
        self._log(logging.ERROR, event, exc_info=True, **kwargs)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json_logs: bool = False
    override_root_handlers: bool = False
    extra_fields: Mapping[str, Any] | None = None


def setup_logging(
    *,
    level: str | None = None,
    json_logs: bool | None = None,
    override_root_handlers: bool | None = None,
    extra_fields: Mapping[str, Any] | None = None,
) -> None:
    """
    Central logging setup for the repo.

    Env vars:
      - TESTNET_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default INFO)
      - TESTNET_LOG_JSON:  1/0 (default 0)
      - TESTNET_LOG_OVERRIDE: 1/0 (default 0)
         If 1, replaces any pre-configured root handlers.
         If 0, only configures logging if root has no handlers.
    """
    config = get_settings(reload=True).logging

    cfg = LoggingConfig(
        level=(level or config.level).upper(),
        json_logs=json_logs if json_logs is not None else bool(config.json_logs),
        override_root_handlers=override_root_handlers
        if override_root_handlers is not None
        else bool(config.override_root_handlers),
        extra_fields=extra_fields,
    )

    root = logging.getLogger()
    root.setLevel(getattr(logging, cfg.level, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if cfg.json_logs:
        handler.setFormatter(JsonFormatter(extra_fields=cfg.extra_fields))
    else:
        handler.setFormatter(TextFormatter())

    if cfg.override_root_handlers:
        for existing in list(root.handlers):
            root.removeHandler(existing)
        root.addHandler(handler)
    elif not root.handlers:
        root.addHandler(handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
