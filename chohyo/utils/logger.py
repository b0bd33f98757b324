"""Logging helpers shared by the engine, the CLI and the API.

Library modules only call :func:`get_logger`; handlers are installed once
by the entry points through :func:`setup_logging`.
"""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Attach stderr (and optionally file) handlers to the root logger.

    Calling this again after handlers exist is a no-op, so the CLI and the
    API server can both call it safely.

    Args:
        level: Logging level name. Unknown names fall back to INFO.
        log_file: Optional file that receives the same records.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module, usually ``__name__``."""
    return logging.getLogger(name)
