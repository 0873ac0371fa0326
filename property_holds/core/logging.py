from __future__ import annotations

import logging
import sys

from loguru import logger

_LOGGING_CONFIGURED = False

# Third-party loggers forwarded into loguru so uvicorn and SQLAlchemy share one sink.
_FORWARDED = ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine")


class _ForwardToLoguru(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", serialize: bool = False) -> None:
    """Configure the single stdout sink. Later calls are no-ops."""
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    level = level.upper()
    logger.remove()
    logger.add(
        sys.stdout,
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
        serialize=serialize,
        enqueue=True,
        diagnose=False,
        backtrace=False,
    )

    handler = _ForwardToLoguru()
    for name in _FORWARDED:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [handler]
        stdlib_logger.propagate = False
    # SQL echo only when explicitly debugging.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if level == "DEBUG" else logging.WARNING)

    _LOGGING_CONFIGURED = True
