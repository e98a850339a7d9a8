"""Logging setup for the template_fetch package."""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_LOGGER_NAME = "template_fetch"
_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


class _ShortNameFormatter(logging.Formatter):
    def __init__(self, fmt: str, level_value: int) -> None:
        super().__init__(fmt)
        self.level_value = level_value

    def format(self, record: logging.LogRecord) -> str:
        # Keep full module paths only in debug mode.
        if self.level_value > logging.DEBUG and record.name.startswith(_LOGGER_NAME + "."):
            record = logging.makeLogRecord({**record.__dict__, "name": record.name.rsplit(".", 1)[-1]})
        return super().format(record)


def setup_logging(
    level: str | None = None,
    stream: IO[str] | None = None,
    force: bool = False,
) -> logging.Logger:
    """Install a single stream handler on the package logger.

    The level comes from ``level`` or ``TEMPLATE_FETCH_LOG_LEVEL`` (default
    ``info``). Calling this again is a no-op unless ``force`` is set.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers and not force:
        return logger

    level_name = (level or os.getenv("TEMPLATE_FETCH_LOG_LEVEL", "info")).strip().upper()
    effective = logging.getLevelName(level_name)
    if not isinstance(effective, int):
        effective = logging.INFO

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(_ShortNameFormatter(_FORMAT, effective))
    logger.handlers = [handler]
    logger.setLevel(effective)
    logger.propagate = False

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    return logger
