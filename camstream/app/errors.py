"""Map the camstream error taxonomy onto HTTP responses."""
from __future__ import annotations

import logging
from http import HTTPStatus

from flask import Flask, jsonify

from ..exceptions import AccessDenied, ArtifactNotFound, StreamError

LOGGER = logging.getLogger(__name__)

ACCESS_DENIED_BODY = "Invalid or expired URL"
NOT_FOUND_BODY = "Stream not found"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AccessDenied)
    def _access_denied(exc: AccessDenied):
        # one body for every reason so callers cannot probe token validity
        LOGGER.warning("Artifact access denied (%s): %s", exc.reason, exc)
        return ACCESS_DENIED_BODY, HTTPStatus.FORBIDDEN, {"Content-Type": "text/plain; charset=utf-8"}

    @app.errorhandler(ArtifactNotFound)
    def _artifact_not_found(exc: ArtifactNotFound):
        LOGGER.debug("%s", exc)
        return NOT_FOUND_BODY, HTTPStatus.NOT_FOUND, {"Content-Type": "text/plain; charset=utf-8"}

    @app.errorhandler(StreamError)
    def _stream_error(exc: StreamError):
        status = exc.status_code
        if status >= HTTPStatus.INTERNAL_SERVER_ERROR:
            LOGGER.error("%s: %s", type(exc).__name__, exc)
        else:
            LOGGER.info("%s: %s", type(exc).__name__, exc)
        return jsonify({"error": str(exc)}), status


__all__ = ["ACCESS_DENIED_BODY", "NOT_FOUND_BODY", "register_error_handlers"]
