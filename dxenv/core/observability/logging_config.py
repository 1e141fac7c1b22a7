"""
Logging configuration — central setup for the CLI entrypoint.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  configuration file  >  DXENV_LOG_LEVEL env var  >  WARNING

The log file is always written in the full line format and rotated
at 10 MiB, keeping 5 generations (dxenv.log.1 … dxenv.log.5).
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

# ── Format strings ──────────────────────────────────────────────

# WARNING level: minimal, no noise
_FMT_MINIMAL = "%(message)s"

# INFO level: timestamped with module context
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

# DEBUG level: full diagnostic with file:line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

# File output: [timestamp] [LEVEL] [file:line] function: message
FILE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(filename)s:%(lineno)d] %(funcName)s: %(message)s"

LOG_FILE_NAME = "dxenv.log"
MAX_LOG_BYTES = 10 * 1024 * 1024
MAX_LOG_FILES = 5

# Third-party loggers that are noisy at INFO/DEBUG
_NOISY_LOGGERS = ("urllib3", "charset_normalizer", "psutil")


class IsoFormatter(logging.Formatter):
    """Formatter that renders ``asctime`` as an ISO-8601 UTC timestamp."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        return datetime.fromtimestamp(record.created, UTC).isoformat(timespec="milliseconds")


def setup_logging(
    level: str = "WARNING",
    log_file: str | Path | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
    max_bytes: int = MAX_LOG_BYTES,
    backup_count: int = MAX_LOG_FILES,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to the rotating log file. Its directory
            is created if missing.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.
        quiet_third_party: If True, keep noisy third-party loggers at WARNING
            unless we're at DEBUG level.
        max_bytes: Rotate once the active file would exceed this size.
        backup_count: Rotated generations to keep; the oldest is evicted.
    """
    numeric_level = parse_level(level)

    # ── Console handler (stderr) ────────────────────────────────
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    # ── Root logger ─────────────────────────────────────────────
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console)

    # Effective root level = minimum of console and file levels
    effective_level = numeric_level

    # ── Rotating file handler (optional) ────────────────────────
    if log_file:
        path = Path(log_file).expanduser()
        file_level = parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        except OSError as e:
            logging.getLogger(__name__).warning("File logging disabled (%s): %s", path, e)
        else:
            fh.setLevel(file_level)
            fh.setFormatter(IsoFormatter(FILE_FORMAT))
            root.addHandler(fh)

    root.setLevel(effective_level)

    # ── Third-party noise control ───────────────────────────────
    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # Don't propagate exceptions from logging itself
    logging.raiseExceptions = False


def parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
