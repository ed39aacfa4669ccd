"""Per-instance loggers using TJBot level names."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

VERBOSE = 15
SILLY = 5

LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "verbose": VERBOSE,
    "debug": logging.DEBUG,
    "silly": SILLY,
}


def to_level(name: str | int) -> int:
    """Translate a TJBot level name into a :mod:`logging` level."""
    if isinstance(name, int):
        return name
    try:
        return LEVELS[str(name).lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {name!r}") from None


def get_logger(
    name: str,
    level: str | int = "info",
    *,
    log_path: Path | str | None = None,
) -> logging.Logger:
    """Return the logger *name* set to *level*.

    Only the named logger is configured; the root logger and other
    libraries keep their own levels.  With *log_path* a rotating file
    handler is attached once.
    """
    logger = logging.getLogger(name)
    logger.setLevel(to_level(level))

    if log_path is not None:
        log_path = Path(log_path)
        has_file = any(
            isinstance(h, RotatingFileHandler)
            and h.baseFilename == os.path.abspath(log_path)
            for h in logger.handlers
        )
        if not has_file:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(log_path, maxBytes=1_048_576, backupCount=5)
            handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
            logger.addHandler(handler)
    return logger
