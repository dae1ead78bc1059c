"""Logging setup: console plus an optional rotating log file."""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"
LOG_FILE = "zp_agency.log"
MAX_BYTES = 10 * 1024 * 1024  # 10MB
BACKUP_COUNT = 5

# Third-party loggers that are too chatty below WARNING.
NOISY_LOGGERS = ("playwright", "asyncio")


def _resolve_level(level: str | None) -> int:
    name = level or os.environ.get("LOG_LEVEL", "INFO")
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(level: str | None = None, log_dir: str | None = None) -> None:
    """Configure the root logger for a pipeline run.

    Args:
        level: Log level name. Falls back to the LOG_LEVEL env var, then INFO.
        log_dir: If given, also log to log_dir/zp_agency.log with rotation.
    """
    numeric_level = _resolve_level(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(numeric_level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / LOG_FILE,
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def set_log_level(level: str) -> None:
    """Change the level of the root logger and all of its handlers."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    root = logging.getLogger()
    root.setLevel(numeric_level)
    for handler in root.handlers:
        handler.setLevel(numeric_level)
