"""Rotating-file logging for the Codenook command line."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["LOG_FILE_NAME", "current_log_path", "resolve_log_dir", "setup_logging"]

LOG_FILE_NAME = "codenook.log"
_DEFAULT_LOG_DIR = Path.home() / ".codenook" / "logs"
_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LIBRARY_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore", "openai")

# Handlers attached to the root logger by setup_logging(); replaced on every call.
_installed: list[logging.Handler] = []


def resolve_log_dir(log_dir: Path | str | None = None) -> Path:
    """Return ``log_dir``, else ``$CODENOOK_LOG_DIR``, else ``~/.codenook/logs``."""

    return Path(log_dir or os.environ.get("CODENOOK_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """Send root logging to ``<log_dir>/codenook.log`` and optionally stderr.

    Calling this again swaps out the handlers from the previous call, which is
    how the CLI applies the level and directory found in the settings file.
    Third-party client libraries are held at WARNING unless ``level`` is
    stricter.
    """

    log_path = resolve_log_dir(log_dir) / LOG_FILE_NAME
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())

    root = logging.getLogger()
    _remove_installed(root)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)
    _installed.extend(handlers)
    root.setLevel(level)
    logging.captureWarnings(True)

    library_level = max(level, logging.WARNING)
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
    return log_path


def current_log_path() -> Path | None:
    """Return the file the last :func:`setup_logging` call writes to."""

    for handler in _installed:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            return Path(handler.baseFilename)
    return None


def _remove_installed(root: logging.Logger) -> None:
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()
