"""Logging setup for the path-walker service."""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

LOG_FORMAT = "[%(asctime)s - %(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_FILE_SIZE_MB = 10
BACKUP_COUNT = 5


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure the root logger.

    Args:
        level: Level name, e.g. ``"DEBUG"``.
        log_file: Optional path of a rotating log file, written in addition
            to stdout.
    """
    numeric_level = getattr(logging, level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_path,
                maxBytes=MAX_FILE_SIZE_MB * 1024 * 1024,
                backupCount=BACKUP_COUNT,
                encoding="utf-8",
            )
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            # Keep serving with console output only
            root_logger.error("Failed to set up file logging at %s: %s", log_file, e)

    # werkzeug logs every request at INFO
    if numeric_level > logging.DEBUG:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)

    root_logger.debug("Logging initialized at %s", level.upper())
