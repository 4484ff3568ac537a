"""Application logging helpers.

The console shows the requested level. When a log file is attached, the
``mirrordeck.bridge`` loggers run at DEBUG, so every adb/scrcpy invocation is
recorded in the file even when the console is quiet.
"""

from __future__ import annotations

import logging as py_logging
import sys
from pathlib import Path
from typing import TextIO

LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "WARNING": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
ROOT_LOGGER = "mirrordeck"
BRIDGE_LOGGER = "mirrordeck.bridge"
DEFAULT_LOG_PATH = Path("~/.config/mirrordeck/logs/mirrordeck.log")
_FALLBACK_LOG_PATH = Path(".mirrordeck/logs/mirrordeck.log")
_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"


def default_log_path() -> Path:
    try:
        resolved = DEFAULT_LOG_PATH.expanduser()
    except RuntimeError:
        resolved = (Path.cwd() / _FALLBACK_LOG_PATH).resolve()
    else:
        if not resolved.is_absolute():
            resolved = resolved.resolve()
    return resolved


def resolve_level(level: str) -> int:
    normalized = level.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    return LOG_LEVELS.get(normalized, py_logging.INFO)


def _open_file_handler(log_file: str | Path, formatter: py_logging.Formatter) -> py_logging.Handler | None:
    try:
        log_path = Path(log_file).expanduser()
    except RuntimeError:
        log_path = Path(log_file)
    if not log_path.is_absolute():
        log_path = log_path.resolve()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = py_logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        return None
    handler.setLevel(py_logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    resolved = resolve_level(level)
    logger = py_logging.getLogger(ROOT_LOGGER)
    logger.setLevel(resolved)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    formatter = py_logging.Formatter(_FORMAT)

    console = py_logging.StreamHandler(stream or sys.stderr)
    console.setLevel(resolved)
    console.setFormatter(formatter)
    logger.addHandler(console)

    file_handler = _open_file_handler(log_file, formatter) if log_file else None
    if file_handler is not None:
        logger.addHandler(file_handler)

    # Children propagate to the package handlers regardless of the package level.
    bridge_level = py_logging.DEBUG if file_handler is not None else py_logging.NOTSET
    py_logging.getLogger(BRIDGE_LOGGER).setLevel(bridge_level)

    logger.propagate = False
    return logger
