# SPDX-License-Identifier: MIT
"""Two-channel logging for analyses.

``predcheck.detail`` records registry calls, matcher verdicts and candidate
counts in the log file only. ``predcheck.status`` carries batch progress,
retraction warnings and coverage gaps to stderr as well as the log file.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

DETAIL_LOGGER_NAME = "predcheck.detail"
STATUS_LOGGER_NAME = "predcheck.status"

LOG_FILE_NAME = "predcheck.log"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(asctime)s %(message)s"


class FlushingStreamHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Flushes after every record so batch progress appears while it happens."""

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        if self.stream and not self.stream.closed:
            self.flush()


def setup_logging(log_dir: Path | None = None) -> tuple[logging.Logger, logging.Logger]:
    """Attach handlers to the detail and status loggers.

    Calling this again replaces the previous handlers, and the log file is
    truncated so it holds a single run.

    Args:
        log_dir: Directory for ``predcheck.log``; ``./.predcheck`` when None

    Returns:
        Tuple of (detail_logger, status_logger)
    """
    log_dir = log_dir or Path.cwd() / ".predcheck"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )

    console_handler = FlushingStreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S"))

    detail_logger = _install(DETAIL_LOGGER_NAME, logging.DEBUG, file_handler)
    status_logger = _install(
        STATUS_LOGGER_NAME, logging.INFO, console_handler, file_handler
    )

    detail_logger.info(f"Logging to {log_file}")
    return detail_logger, status_logger


def _install(name: str, level: int, *handlers: logging.Handler) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for old in logger.handlers[:]:
        old.close()
    logger.handlers.clear()
    for handler in handlers:
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_detail_logger() -> logging.Logger:
    """Logger for technical detail (file only)."""
    return logging.getLogger(DETAIL_LOGGER_NAME)


def get_status_logger() -> logging.Logger:
    """Logger for user-facing progress (console and file)."""
    return logging.getLogger(STATUS_LOGGER_NAME)
