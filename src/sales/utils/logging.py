"""Logging configuration for the sales domain.

Standard library logging carries the handlers; structlog renders structured
events on top of it. Field values that are PII never reach these loggers.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}


def current_environment() -> str:
    return os.getenv("PROTEAN_ENV", "development").lower()


def log_level(env: str) -> str:
    """``LOG_LEVEL`` wins; otherwise the level follows the environment."""
    return os.getenv("LOG_LEVEL", _LEVELS.get(env, "INFO")).upper()


def _handlers(env: str) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    # Test runs stay on the console only
    if env != "test":
        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_dir / "sales.log", maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
            )
        )
    return handlers


def renderer(env: str):
    if env in ("production", "staging"):
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=env != "test",
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=2),
    )


def configure_logging() -> None:
    env = current_environment()
    level = log_level(env)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = _handlers(env)
    logging.getLogger("protean").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer(env),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Cached loggers cannot be captured by structlog.testing
        cache_logger_on_first_use=env != "test",
    )


def add_context(**kwargs: Any) -> None:
    """Bind request-scoped values (path, method, actor) to every log line."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
