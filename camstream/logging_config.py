"""Logging helpers for the camstream service."""
from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

_LOG_FILE: Optional[Path] = None
_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s [%(threadName)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# per-request access lines from the dev server drown out session events
_NOISY_LOGGERS = ("werkzeug", "urllib3")


def _resolve_log_directory(log_dir: Optional[Path | str]) -> Path:
    candidate = log_dir if log_dir is not None else os.getenv("STREAM_LOG_DIR")
    if candidate:
        return Path(candidate).expanduser()
    return Path.cwd() / "logs"


def _build_handlers(log_file: Path) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT)
    handlers: List[logging.Handler] = [
        logging.FileHandler(log_file, encoding="utf-8"),
        logging.StreamHandler(sys.stdout),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(
    prefix: str = "camstream",
    *,
    log_dir: Optional[Path | str] = None,
    level: str | int = "INFO",
) -> Path:
    """Send root logging to a timestamped file and stdout; later calls are no-ops."""

    global _LOG_FILE

    if _LOG_FILE is not None:
        return _LOG_FILE

    directory = _resolve_log_directory(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_file = directory / f"{prefix}-{stamp}.log"

    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in _build_handlers(log_file):
        root.addHandler(handler)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _LOG_FILE = log_file
    root.info("Logging to %s", log_file)
    return log_file


__all__ = ["configure_logging"]
