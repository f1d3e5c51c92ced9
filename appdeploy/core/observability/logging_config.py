"""
Logging configuration — one setup call per process, made by main.py.

Modules log through ``logging.getLogger(__name__)`` and inherit this.

stdout belongs to the run report the management agent parses, so the
console handler writes to stderr only.

Level precedence:
    --debug / --verbose / --quiet  >  APPDEPLOY_LOG_LEVEL  >  WARNING

APPDEPLOY_LOG_FILE adds a rotating file log (the agent re-runs the tool
on every sync, so an unbounded file would grow forever).
APPDEPLOY_LOG_FILE_LEVEL sets its level independently.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

# (max level, format, datefmt): first row whose level >= handler level wins
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(levelname)s: %(message)s", None),
)

_FILE_FORMAT = "%(asctime)s %(process)d %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"
_FILE_MAX_BYTES = 1024 * 1024
_FILE_BACKUPS = 3

# Chatty below WARNING and irrelevant to an install run
_NOISY_LOGGERS = ("urllib3", "psutil")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path of a rotating log file. Parent
            directories are created. An unusable path is reported on
            the console and the file log is skipped.
        log_file_level: Level for the file; defaults to ``level``.
        quiet_third_party: Pin ``_NOISY_LOGGERS`` at WARNING unless the
            console runs at DEBUG.
    """
    console_level = _parse_level(level)
    handlers: list[logging.Handler] = [_console_handler(console_level)]

    file_error: OSError | None = None
    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        try:
            handlers.append(_file_handler(Path(log_file), file_level))
        except OSError as exc:
            file_error = exc

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    if file_error is not None:
        logging.getLogger(__name__).warning(
            "Cannot open log file %s, logging to console only: %s", log_file, file_error,
        )

    # A broken stderr must not turn into a failed install
    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
            break
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path, maxBytes=_FILE_MAX_BYTES, backupCount=_FILE_BACKUPS, encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name → numeric level; unknown or empty names mean WARNING."""
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
