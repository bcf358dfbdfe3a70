"""Structured logging for questy_coach.

Every module logs through structlog with snake_case event names.
Output is pretty console text by default and JSON when
QUESTY_LOG_JSON_OUTPUT is set.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from questy_coach.config import LoggingSettings

__all__ = [
    "configure_logging",
    "get_logger",
    "student_context",
]

_NOISY_LOGGERS = ("httpx", "httpcore", "motor", "pymongo", "openai", "anthropic", "redis")


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        settings: Output settings (default: loaded from the environment)
    """
    settings = settings or LoggingSettings()
    level = logging.getLevelNamesMapping().get(settings.level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.timestamps:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if settings.json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def student_context(student_id: str) -> Iterator[None]:
    """Attach student_id to every log event emitted inside the block."""
    with structlog.contextvars.bound_contextvars(student_id=student_id):
        yield


_configured = False


def _ensure_configured() -> None:
    global _configured
    if not _configured:
        configure_logging()
        _configured = True


_ensure_configured()
