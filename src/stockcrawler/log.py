"""Process-wide logging setup: console plus per-level daily rotating files."""

from __future__ import annotations

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

# file suffix -> (lowest level, highest level) routed to that file
_LEVEL_FILES: dict[str, tuple[int, int]] = {
    "debug": (logging.DEBUG, logging.DEBUG),
    "info": (logging.INFO, logging.INFO),
    "warn": (logging.WARNING, logging.WARNING),
    "error": (logging.ERROR, logging.CRITICAL),
}


class _LevelRangeFilter(logging.Filter):
    def __init__(self, low: int, high: int) -> None:
        super().__init__()
        self.low = low
        self.high = high

    def filter(self, record: logging.LogRecord) -> bool:
        return self.low <= record.levelno <= self.high


def configure_logging(
    level: str = "INFO",
    log_dir: Path | str | None = None,
    name: str = "stockcrawler",
    backup_days: int = 14,
) -> logging.Logger:
    """Configure the ``stockcrawler`` logger tree.

    Args:
        level: Minimum level name (``DEBUG``, ``INFO``, ...).
        log_dir: When set, also write ``{name}_{debug,info,warn,error}.log``
            files there, rotated at midnight.
        name: File name prefix.
        backup_days: Number of rotated files kept per level.

    Returns:
        The configured package logger.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger("stockcrawler")
    logger.setLevel(numeric)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        for suffix, (low, high) in _LEVEL_FILES.items():
            handler = TimedRotatingFileHandler(
                directory / f"{name}_{suffix}.log",
                when="midnight",
                backupCount=backup_days,
                encoding="utf-8",
            )
            handler.setFormatter(formatter)
            handler.addFilter(_LevelRangeFilter(low, high))
            logger.addHandler(handler)

    return logger
