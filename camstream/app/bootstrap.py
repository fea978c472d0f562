"""Bootstrap helpers for the camstream Flask application."""
from __future__ import annotations

import logging
import os
import secrets
from typing import Any, Mapping, Optional

from flask import Flask

from ..config import build_default_config
from ..logging_config import configure_logging

LOGGER = logging.getLogger(__name__)


def load_configuration(app: Flask, overrides: Optional[Mapping[str, Any]] = None) -> None:
    """Populate the default configuration values on the Flask app."""

    app.config.from_mapping(build_default_config())
    if overrides:
        app.config.from_mapping(dict(overrides))


def init_logging(app: Flask) -> None:
    """Configure file + console logging unless running under tests."""

    if app.config.get("TESTING"):
        return
    configure_logging(
        "camstream",
        log_dir=app.config.get("STREAM_LOG_DIR"),
        level=app.config.get("STREAM_LOG_LEVEL") or "INFO",
    )


def ensure_url_secret(app: Flask) -> str:
    """Return the URL signing secret, generating an ephemeral one if none is set."""

    secret = app.config.get("STREAM_URL_SECRET")
    if isinstance(secret, str) and secret.strip():
        return secret.strip()
    LOGGER.warning(
        "STREAM_URL_SECRET is not set; using a per-process secret. "
        "Issued URLs will stop working after a restart."
    )
    generated = secrets.token_hex(32)
    app.config["STREAM_URL_SECRET"] = generated
    return generated


def ensure_single_worker() -> None:
    """Validate that the service is running with a single worker process.

    The session registry lives in memory, so a second worker would hold its own
    table and could launch a second encoder against the same device.
    """

    worker_count = 1
    raw_worker_count = (
        os.getenv("STREAM_WORKER_PROCESSES")
        or os.getenv("GUNICORN_WORKERS")
        or os.getenv("WEB_CONCURRENCY")
    )
    if raw_worker_count:
        try:
            worker_count = max(1, int(raw_worker_count))
        except ValueError:
            worker_count = 1
    if worker_count != 1:
        raise RuntimeError(
            "camstream requires a single worker process. "
            "Set GUNICORN_WORKERS=1 (or WEB_CONCURRENCY=1) before launching; use threads for concurrency. "
            f"Detected {worker_count}."
        )


__all__ = [
    "ensure_single_worker",
    "ensure_url_secret",
    "init_logging",
    "load_configuration",
]
