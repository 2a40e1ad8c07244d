from __future__ import annotations

import logging
import os
from pathlib import Path

from concurrent_log_handler import ConcurrentRotatingFileHandler

LOG_LEVEL_ENV = "HIVE_LOG_LEVEL"
LOG_FILE_NAME = "debug.log"
_LOG_FORMAT = "%(asctime)s pid=%(process)d %(levelname)s %(name)s: %(message)s"
_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}
# keeps debug.log plus three rotations, 10 MiB each
_ROTATE_BYTES = 10 * 1024 * 1024
_ROTATE_BACKUPS = 3

_file_handler: ConcurrentRotatingFileHandler | None = None


def resolve_log_level(value: str | None) -> int:
    """Map a level name to its ``logging`` constant; unknown names mean INFO."""
    return _LEVELS.get(str(value or "").strip().upper(), logging.INFO)


def log_file_path(home_dir: str | Path) -> Path:
    return Path(home_dir).expanduser() / "logs" / LOG_FILE_NAME


def open_log_file(home_dir: str | Path) -> ConcurrentRotatingFileHandler:
    path = log_file_path(home_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = ConcurrentRotatingFileHandler(
        os.fspath(path),
        "a",
        maxBytes=_ROTATE_BYTES,
        backupCount=_ROTATE_BACKUPS,
    )
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    return handler


def initialize_cli_file_logging(home_dir: str | Path, *, log_level: str | None = None) -> logging.Logger:
    """Send ``hivecli`` logs to ``<home>/logs/debug.log``.

    The handler is attached once per process; later calls only change the
    level, taken from ``log_level`` or ``HIVE_LOG_LEVEL``. Nothing is written
    to the console, which belongs to command output.
    """
    global _file_handler
    level = resolve_log_level(log_level if log_level is not None else os.getenv(LOG_LEVEL_ENV))
    logger = logging.getLogger("hivecli")
    if _file_handler is None:
        _file_handler = open_log_file(home_dir)
        logger.addHandler(_file_handler)
    _file_handler.setLevel(level)
    logger.setLevel(level)
    return logger


def shutdown_cli_file_logging() -> None:
    global _file_handler
    if _file_handler is None:
        return
    logging.getLogger("hivecli").removeHandler(_file_handler)
    _file_handler.close()
    _file_handler = None
