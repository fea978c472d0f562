"""Bearer-token guard for the stream control endpoints."""
from __future__ import annotations

import hmac
from functools import wraps
from http import HTTPStatus
from typing import Any, Callable, Optional

from flask import Flask, Request, current_app, jsonify, request


def require_control_token(app: Flask, req: Request):
    """Validate the provided control token, returning an error response if invalid."""

    expected = _expected_control_token(app)
    if not expected:
        app.logger.warning("Stream control blocked: token not configured")
        return jsonify({"error": "stream control not configured"}), HTTPStatus.SERVICE_UNAVAILABLE

    provided = _extract_bearer_token(req)
    if not provided:
        return jsonify({"error": "No token provided"}), HTTPStatus.UNAUTHORIZED

    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        app.logger.warning("Stream control blocked: invalid token from %s", req.remote_addr)
        return jsonify({"error": "Invalid token"}), HTTPStatus.FORBIDDEN

    return None


def control_token_required(view: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(view)
    def _wrapped(*args: Any, **kwargs: Any):
        failure = require_control_token(current_app, request)
        if failure is not None:
            return failure
        return view(*args, **kwargs)

    return _wrapped


def _expected_control_token(app: Flask) -> Optional[str]:
    token = app.config.get("STREAM_CONTROL_TOKEN")
    if isinstance(token, str):
        trimmed = token.strip()
        if trimmed:
            return trimmed
    return None


def _extract_bearer_token(req: Request) -> Optional[str]:
    auth_header = req.headers.get("Authorization")
    if isinstance(auth_header, str) and auth_header.lower().startswith("bearer "):
        candidate = auth_header[7:].strip()
        if candidate:
            return candidate
    return None


__all__ = ["control_token_required", "require_control_token"]
