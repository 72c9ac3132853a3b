from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog

_TOKEN_RE = re.compile(r"bot\d+:[A-Za-z0-9_-]+")


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        return _TOKEN_RE.sub("bot[REDACTED]", value)
    return value


def _redact_tokens(
    _logger: Any, _method: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    return {key: _redact_value(value) for key, value in event_dict.items()}


def setup_logging(*, debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _redact_tokens,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_run_context(**fields: Any) -> None:
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in fields.items() if value is not None}
    )


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
