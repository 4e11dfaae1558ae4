"""
Logging configuration — one setup call per process, plus line sinks.

Every module logs through ``logging.getLogger(__name__)``; this module
decides where those records go.

Console level, first match wins:
    --debug / --verbose / --quiet  >  TOOLWARDEN_LOG_LEVEL  >  WARNING

An optional log file (TOOLWARDEN_LOG_FILE) always gets the full
diagnostic format, at TOOLWARDEN_LOG_FILE_LEVEL or the console level.

Progress for a presentation layer is a plain line stream:
``attach_log_sink(callback)`` hands every ``toolwarden.*`` record to
``callback(line)`` as it is logged, on the logging thread.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Callable

LOG_LEVEL_ENV = "TOOLWARDEN_LOG_LEVEL"
LOG_FILE_ENV = "TOOLWARDEN_LOG_FILE"
LOG_FILE_LEVEL_ENV = "TOOLWARDEN_LOG_FILE_LEVEL"

_DIAGNOSTIC = ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s", "%H:%M:%S")

# Console format by threshold: (format, datefmt), checked top-down
_CONSOLE_FORMATS: list[tuple[int, tuple[str, str | None]]] = [
    (logging.DEBUG, _DIAGNOSTIC),
    (logging.INFO, ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S")),
]
_CONSOLE_DEFAULT = ("%(message)s", None)

_FILE_FORMAT = (_DIAGNOSTIC[0], "%Y-%m-%d %H:%M:%S")
_SINK_FORMAT = ("%(asctime)s %(message)s", "%H:%M:%S")


def _parse_level(level: str | None) -> int:
    """Level name to number; anything unknown means WARNING."""
    numeric = getattr(logging, (level or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.WARNING


def resolve_level(*, debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Console level name from CLI flags, falling back to the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LOG_LEVEL_ENV, "WARNING")


def _console_handler(numeric_level: int) -> logging.Handler:
    fmt, datefmt = _CONSOLE_DEFAULT
    for threshold, candidate in _CONSOLE_FORMATS:
        if numeric_level <= threshold:
            fmt, datefmt = candidate
            break
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def setup_logging(
    level: str | None = None,
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Route all logging to stderr and, optionally, a file.

    Args:
        level: Console level name; ``TOOLWARDEN_LOG_LEVEL`` when None.
        log_file: File to append to; ``TOOLWARDEN_LOG_FILE`` when None.
        log_file_level: File level; ``TOOLWARDEN_LOG_FILE_LEVEL`` or the
            console level when None.

    Replaces any handlers already on the root logger, so calling it
    twice does not duplicate output.
    """
    console_level = _parse_level(level or os.environ.get(LOG_LEVEL_ENV))
    log_file = log_file or os.environ.get(LOG_FILE_ENV)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_console_handler(console_level))
    root_level = console_level

    if log_file:
        file_level_name = log_file_level or os.environ.get(LOG_FILE_LEVEL_ENV)
        file_level = _parse_level(file_level_name) if file_level_name else console_level
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(*_FILE_FORMAT))
        root.addHandler(fh)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    # a broken stream must not take an install down with it
    logging.raiseExceptions = False


# ── Log sink ────────────────────────────────────────────────────


class LogSinkHandler(logging.Handler):
    """Forward formatted records to a ``callback(line)``.

    The callback runs on whatever thread logged the record (the
    background reconciler included); it must be quick and thread-safe.
    """

    def __init__(self, callback: Callable[[str], None], level: int = logging.INFO) -> None:
        super().__init__(level)
        self._callback = callback
        self.setFormatter(logging.Formatter(*_SINK_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
            for part in line.splitlines() or [""]:
                self._callback(part)
        except Exception:
            self.handleError(record)


def attach_log_sink(
    callback: Callable[[str], None],
    level: str = "INFO",
    logger_name: str = "toolwarden",
) -> LogSinkHandler:
    """Attach a line sink to the ``toolwarden`` logger tree.

    Returns the handler so the caller can ``detach_log_sink()`` it.
    """
    numeric_level = _parse_level(level)
    handler = LogSinkHandler(callback, level=numeric_level)
    target = logging.getLogger(logger_name)
    target.addHandler(handler)
    if target.getEffectiveLevel() > numeric_level:
        target.setLevel(numeric_level)
    return handler


def detach_log_sink(handler: LogSinkHandler, logger_name: str = "toolwarden") -> None:
    logging.getLogger(logger_name).removeHandler(handler)
