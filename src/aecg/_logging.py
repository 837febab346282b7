"""Logging configuration for the aecg package.

The package logs through a single named logger that writes to stdout by
default, using the format ``name | level | message``. Parsing, serialization
and validation report their progress through it; builders report rejected
input at WARNING level.
"""

import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_formatter = logging.Formatter("%(name)s | %(levelname)s | %(message)s")


def _make_logger() -> logging.Logger:
    package_logger = logging.getLogger(__package__)
    if package_logger.handlers:
        # Already configured by an earlier import or by the application
        return package_logger
    package_logger.setLevel(logging.INFO)
    package_logger.propagate = False
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(_formatter)
    stdout_handler.setLevel(logging.INFO)
    package_logger.addHandler(stdout_handler)
    return package_logger


logger = _make_logger()


def _to_level(log_level: LogLevel) -> int:
    return int(getattr(logging, log_level))


def set_log_level(log_level: LogLevel) -> None:
    """Set the level of the package logger and every attached handler.

    Example:
        >>> set_log_level("WARNING")
        >>> logger.info("hidden")
        >>> logger.warning("shown")
    """
    level = _to_level(log_level)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def set_log_file(
    log_file: str | Path,
    log_level: LogLevel = "DEBUG",
    max_bytes: int = 100_000_000,
    backup_count: int = 3,
) -> RotatingFileHandler:
    """Mirror package log records into a rotating log file.

    A file handler installed by an earlier call is closed and replaced, so
    repeated calls never write the same record twice.

    Args:
        log_file: Path of the log file. Missing parent directories are created.
        log_level: Level of the file handler only; the stdout level is unchanged.
        max_bytes: Size at which the file is rotated.
        backup_count: Number of rotated files kept.

    Returns:
        The new handler.

    Example:
        >>> set_log_file("logs/aecg.log", log_level="INFO")
    """
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    for old in [h for h in logger.handlers if isinstance(h, logging.FileHandler)]:
        logger.removeHandler(old)
        old.close()

    file_handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    file_handler.setLevel(_to_level(log_level))
    file_handler.setFormatter(_formatter)
    logger.addHandler(file_handler)
    if logger.level > file_handler.level:
        logger.setLevel(file_handler.level)
    return file_handler


def log_start(action: str, subject: str) -> float:
    """Log the start of a document operation and return the start time."""
    logger.info("Starting %s (%s)...", action, subject)
    return time.perf_counter()


def log_end(action: str, start_time: float, summary: str = "") -> None:
    """Log the completion of a document operation with its duration."""
    logger.info(
        "Completed %s%s. Time taken: %.3f s",
        action,
        f": {summary}" if summary else "",
        time.perf_counter() - start_time,
    )
