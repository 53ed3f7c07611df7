"""Logging setup shared by the terminal app and the web service."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_HANDLER_NAME = "habitgrid"


def setup_logging(log_level: str = "INFO", log_file: Path | None = None) -> logging.Logger:
    """Attach one handler to the ``habitgrid`` logger. Safe to call repeatedly.

    Logs go to ``log_file`` when given (the terminal app owns the screen),
    otherwise to stderr.
    """
    level = getattr(logging, str(log_level).upper(), logging.INFO)
    logger = logging.getLogger("habitgrid")
    logger.setLevel(level)
    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME:
            handler.setLevel(level)
            return logger

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
