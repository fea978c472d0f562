"""camstream application factory."""
from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from flask import Flask

from ..engine import EncoderSupervisor
from .bootstrap import ensure_single_worker, init_logging, load_configuration
from .extensions import (
    configure_cors,
    init_access_gateway,
    init_session_registry,
    init_status_broadcaster,
    init_token_codec,
    register_blueprints,
    register_shutdown,
)


def create_app(
    config: Optional[Mapping[str, Any]] = None,
    *,
    supervisor: Optional[EncoderSupervisor] = None,
    clock: Optional[Callable[[], float]] = None,
) -> Flask:
    """Create and configure the camstream Flask application.

    ``supervisor`` and ``clock`` replace the FFmpeg supervisor and the token
    clock; both exist for tests and embedding.
    """

    app = Flask(__name__)
    load_configuration(app, config)
    init_logging(app)
    ensure_single_worker()

    broadcaster = init_status_broadcaster(app)
    codec = init_token_codec(app, clock=clock)
    registry = init_session_registry(app, codec=codec, supervisor=supervisor, broadcaster=broadcaster)
    init_access_gateway(app, registry=registry)

    register_blueprints(app)
    configure_cors(app, app.config.get("STREAM_CORS_ORIGIN", "*"))
    register_shutdown(app, registry)

    return app


__all__ = ["create_app"]
