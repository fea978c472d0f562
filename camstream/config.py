"""Configuration helpers for the camstream service."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from dotenv import find_dotenv, load_dotenv


def _ensure_dotenv_loaded() -> None:
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path, override=False)


_ensure_dotenv_loaded()

LOGGER = logging.getLogger(__name__)


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    trimmed = raw.strip()
    return trimmed or default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _env_csv(name: str, default: Iterable[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return [item for item in default]
    values = [value.strip().lower() for value in raw.split(",") if value.strip()]
    return values if values else [item for item in default]


DEFAULT_OUTPUT = str(Path.home() / "camstream_data")


def build_default_config() -> Dict[str, Any]:
    """Return the base configuration mapping for the service.

    Values are read from the environment at call time so tests (and process
    managers that rewrite the environment) see their overrides.
    """

    cfg: Dict[str, Any] = {
        "STREAM_OUTPUT_DIR": _env_str("STREAM_OUTPUT_DIR") or DEFAULT_OUTPUT,
        "STREAM_URL_SECRET": _env_str("STREAM_URL_SECRET") or _env_str("URL_SECRET_KEY"),
        "STREAM_CONTROL_TOKEN": _env_str("STREAM_CONTROL_TOKEN"),
        "STREAM_URL_PREFIX": _env_str("STREAM_URL_PREFIX", "/live"),
        "STREAM_URL_DEFAULT_TTL": _env_int("STREAM_URL_DEFAULT_TTL", 300),
        "STREAM_URL_MAX_TTL": _env_int("STREAM_URL_MAX_TTL", 86400),
        "STREAM_MANIFEST_NAME": _env_str("STREAM_MANIFEST_NAME", "index.m3u8"),
        "STREAM_FFMPEG_BINARY": _env_str("STREAM_FFMPEG_BINARY", "ffmpeg"),
        "STREAM_INPUT_FORMAT": _env_str("STREAM_INPUT_FORMAT", "v4l2"),
        "STREAM_DEVICE_TEMPLATE": _env_str("STREAM_DEVICE_TEMPLATE", "/dev/video{device}"),
        "STREAM_FRAMERATE": _env_int("STREAM_FRAMERATE", 30),
        "STREAM_VIDEO_CODEC": _env_str("STREAM_VIDEO_CODEC", "libx264"),
        "STREAM_VIDEO_PRESET": _env_str("STREAM_VIDEO_PRESET", "ultrafast"),
        "STREAM_VIDEO_TUNE": _env_str("STREAM_VIDEO_TUNE", "zerolatency"),
        "STREAM_SEGMENT_SECONDS": _env_int("STREAM_SEGMENT_SECONDS", 2),
        "STREAM_PLAYLIST_SIZE": _env_int("STREAM_PLAYLIST_SIZE", 6),
        "STREAM_VERIFY_DEVICE": _env_bool("STREAM_VERIFY_DEVICE", True),
        "STREAM_STOP_GRACE_SECONDS": _env_float("STREAM_STOP_GRACE_SECONDS", 5.0),
        "STREAM_STOP_TERMINATE_SECONDS": _env_float("STREAM_STOP_TERMINATE_SECONDS", 5.0),
        "STREAM_STOP_KILL_SECONDS": _env_float("STREAM_STOP_KILL_SECONDS", 2.0),
        "STREAM_SESSION_RETENTION": max(_env_int("STREAM_SESSION_RETENTION", 2), 0),
        "STREAM_CORS_ORIGIN": _env_str("STREAM_CORS_ORIGIN", "*"),
        "STREAM_CACHE_MAX_AGE": max(_env_int("STREAM_CACHE_MAX_AGE", 30), 0),
        "STREAM_CACHE_EXTENSIONS": tuple(_env_csv("STREAM_CACHE_EXTENSIONS", ["ts", "m4s", "mp4"])),
        "STREAM_LOG_DIR": _env_str("STREAM_LOG_DIR"),
        "STREAM_LOG_LEVEL": _env_str("STREAM_LOG_LEVEL", "INFO"),
        "STREAM_STATUS_REDIS_URL": _env_str("STREAM_STATUS_REDIS_URL") or _env_str("REDIS_URL"),
        "STREAM_STATUS_PREFIX": _env_str("STREAM_STATUS_PREFIX", "camstream"),
        "STREAM_STATUS_KEY": _env_str("STREAM_STATUS_KEY", "sessions"),
        "STREAM_STATUS_CHANNEL": _env_str("STREAM_STATUS_CHANNEL", "camstream:sessions"),
        "STREAM_STATUS_TTL_SECONDS": _env_int("STREAM_STATUS_TTL_SECONDS", 30),
        "STREAM_STATUS_HEARTBEAT_SECONDS": _env_int("STREAM_STATUS_HEARTBEAT_SECONDS", 5),
    }
    return cfg


__all__ = ["build_default_config"]
