"""Logging setup for the coursereg service.

All ``coursereg.*`` loggers write to one rotating file (and optionally the
console). When the API runs under uvicorn, its error and access loggers are
routed to the same handlers so one file holds the whole request history.
"""

from __future__ import annotations

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "coursereg.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER = "coursereg"
SERVER_LOGGERS = ("uvicorn.error", "uvicorn.access")

# Credentials that can show up in request dumps or upstream error bodies
_REDACTIONS = [
    (re.compile(r"Bearer [a-zA-Z0-9._-]+"), "Bearer [REDACTED]"),
    (re.compile(r"eyJ[\w-]+\.[\w-]+\.[\w-]+"), "[TOKEN]"),  # bare JWT
    (re.compile(r"key=[a-zA-Z0-9._-]+"), "key=[REDACTED]"),
    (re.compile(r"AIza[0-9A-Za-z_-]{35}"), "[API_KEY]"),
    (re.compile(r'"password"\s*:\s*"[^"]*"'), '"password": "[REDACTED]"'),
]


def _build_handlers(
    log_path: Path, level: int, max_bytes: int, backup_count: int, console: bool
) -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [
        RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    log_dir: str | Path | None = None,
    log_file: str = DEFAULT_LOG_FILE,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    level: str | None = None,
    console: bool = True,
    capture_server: bool = True,
) -> logging.Logger:
    """Configure the coursereg logger tree.

    Args:
        log_dir: Directory for log files. Falls back to ``COURSEREG_LOG_DIR``,
            then ``logs`` in the working directory.
        log_file: Log file name.
        max_bytes: Size at which the file rotates.
        backup_count: Rotated files to keep.
        level: DEBUG, INFO, WARNING or ERROR. Falls back to ``COURSEREG_LOG_LEVEL``.
        console: Also write to stderr.
        capture_server: Send uvicorn's error and access logs to the same handlers.

    Returns:
        The ``coursereg`` logger. Calling again replaces its handlers.
    """
    log_dir = Path(log_dir or os.environ.get("COURSEREG_LOG_DIR", DEFAULT_LOG_DIR))
    log_dir.mkdir(parents=True, exist_ok=True)
    level = level or os.environ.get("COURSEREG_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    log_level = getattr(logging, level.upper(), logging.INFO)

    log_path = log_dir / log_file
    handlers = _build_handlers(log_path, log_level, max_bytes, backup_count, console)

    names = (ROOT_LOGGER, *SERVER_LOGGERS) if capture_server else (ROOT_LOGGER,)
    for name in names:
        target = logging.getLogger(name)
        target.setLevel(log_level)
        target.handlers.clear()
        for handler in handlers:
            target.addHandler(handler)
        if name != ROOT_LOGGER:
            target.propagate = False

    logger = logging.getLogger(ROOT_LOGGER)
    logger.info("coursereg logging initialized (level=%s, file=%s)", level, log_path)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for a component, e.g. ``get_logger("cli")`` -> ``coursereg.cli``."""
    if not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def truncate_output(output: str, max_length: int = 2000) -> str:
    """Shorten an upstream response body before it is logged."""
    if len(output) <= max_length:
        return output
    return output[:max_length] + f"\n... [truncated, {len(output) - max_length} more chars]"


def sanitize_for_log(text: str) -> str:
    """Redact bearer tokens, API keys and passwords from ``text``."""
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text
