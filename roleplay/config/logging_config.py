"""
Application logger setup.

Every module logs through ``logging.getLogger(LOGGER_NAME)``. The relay, the
interview client and the CLI call :func:`configure_logging` once at start-up;
records go to stdout and, when the ``logs/`` directory is writable, to a
size-capped rotating file. Secrets are never passed to the logger.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from roleplay.config.constants import LOGGER_NAME

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_DIR = Path("logs")
LOG_FILE = LOG_DIR / "interview_roleplay.log"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

# Libraries whose INFO output would drown the interview log
QUIET_LOGGERS = ("httpx", "websockets")


def _rotating_file_handler(formatter: logging.Formatter) -> Optional[RotatingFileHandler]:
    """File handler under ``LOG_DIR``, or None if the directory is not writable."""
    try:
        LOG_DIR.mkdir(exist_ok=True)
        handler = RotatingFileHandler(LOG_FILE, maxBytes=MAX_LOG_SIZE, backupCount=BACKUP_COUNT, encoding="utf-8")
    except OSError:
        return None
    handler.setFormatter(formatter)
    return handler


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach fresh stdout and file handlers to the application logger.

    Safe to call more than once: handlers from an earlier call are replaced.

    Args:
        level: Level name such as ``"debug"``; defaults to ``LOG_LEVEL``
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    file_handler = _rotating_file_handler(formatter)
    if file_handler is None:
        logger.warning(f"File logging disabled: cannot write to {LOG_DIR}/")
    else:
        logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug(f"Logging configured at {logging.getLevelName(logger.level)}")
    return logger
