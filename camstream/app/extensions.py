"""Extension wiring for the camstream Flask application."""
from __future__ import annotations

import atexit
import time
from typing import Callable, Optional

from flask import Flask, Response, request

from ..engine import (
    EncoderSettings,
    EncoderSupervisor,
    SessionOutputStore,
    SessionRegistry,
    SessionStatusBroadcaster,
    StopStrategy,
)
from ..gateway import AccessGateway
from ..routes import control_bp, live_bp
from ..tokens import TokenCodec
from ..utils import coerce_float, coerce_int, normalise_prefix
from .bootstrap import ensure_url_secret
from .errors import register_error_handlers


def init_status_broadcaster(app: Flask) -> Optional[SessionStatusBroadcaster]:
    redis_url = app.config.get("STREAM_STATUS_REDIS_URL")
    if not redis_url:
        return None
    broadcaster = SessionStatusBroadcaster(
        redis_url=redis_url,
        prefix=app.config.get("STREAM_STATUS_PREFIX", "camstream"),
        key=app.config.get("STREAM_STATUS_KEY", "sessions"),
        channel=app.config.get("STREAM_STATUS_CHANNEL"),
        ttl_seconds=coerce_int(app.config.get("STREAM_STATUS_TTL_SECONDS"), 30),
        heartbeat_seconds=coerce_int(app.config.get("STREAM_STATUS_HEARTBEAT_SECONDS"), 5),
    )
    if not broadcaster.available:
        app.logger.warning("Session status broadcasting unavailable: %s", broadcaster.last_error)
    app.extensions["camstream_status_broadcaster"] = broadcaster
    return broadcaster


def init_token_codec(app: Flask, *, clock: Optional[Callable[[], float]] = None) -> TokenCodec:
    codec = TokenCodec(ensure_url_secret(app), clock=clock or time.time)
    app.extensions["camstream_token_codec"] = codec
    return codec


def build_supervisor(app: Flask) -> EncoderSupervisor:
    stop_strategy = StopStrategy(
        graceful_timeout=coerce_float(app.config.get("STREAM_STOP_GRACE_SECONDS"), 5.0),
        terminate_timeout=coerce_float(app.config.get("STREAM_STOP_TERMINATE_SECONDS"), 5.0),
        kill_timeout=coerce_float(app.config.get("STREAM_STOP_KILL_SECONDS"), 2.0),
    )
    return EncoderSupervisor(EncoderSettings.from_config(app.config), stop_strategy=stop_strategy)


def init_session_registry(
    app: Flask,
    *,
    codec: TokenCodec,
    supervisor: Optional[EncoderSupervisor] = None,
    broadcaster: Optional[SessionStatusBroadcaster] = None,
) -> SessionRegistry:
    output_store = SessionOutputStore(
        app.config["STREAM_OUTPUT_DIR"],
        retention=coerce_int(app.config.get("STREAM_SESSION_RETENTION"), 2),
    )
    output_store.ensure_root()
    registry = SessionRegistry(
        supervisor=supervisor or build_supervisor(app),
        codec=codec,
        output_store=output_store,
        manifest_name=app.config.get("STREAM_MANIFEST_NAME", "index.m3u8"),
        url_prefix=app.config.get("STREAM_URL_PREFIX", "/live"),
        default_ttl=coerce_int(app.config.get("STREAM_URL_DEFAULT_TTL"), 300),
        max_ttl=coerce_int(app.config.get("STREAM_URL_MAX_TTL"), 86400),
        broadcaster=broadcaster,
    )
    app.extensions["camstream_registry"] = registry
    return registry


def init_access_gateway(app: Flask, *, registry: SessionRegistry) -> AccessGateway:
    gateway = AccessGateway(registry.output_store.root, registry.codec)
    app.extensions["camstream_gateway"] = gateway
    return gateway


def register_blueprints(app: Flask) -> None:
    app.register_blueprint(control_bp)
    app.register_blueprint(live_bp, url_prefix=normalise_prefix(app.config.get("STREAM_URL_PREFIX", "/live")))
    register_error_handlers(app)


def register_shutdown(app: Flask, registry: SessionRegistry) -> None:
    """Stop every encoder when the interpreter exits."""

    if app.config.get("TESTING"):
        return
    atexit.register(registry.close)


def configure_cors(app: Flask, cors_origin: str | None) -> None:
    allowed_default = cors_origin or "*"

    @app.after_request
    def add_cors_headers(response: Response) -> Response:
        origin = request.headers.get("Origin")
        allowed_origin = allowed_default
        if allowed_default == "*" and origin:
            allowed_origin = origin
        response.headers["Access-Control-Allow-Origin"] = allowed_origin
        response.headers.setdefault("Access-Control-Allow-Headers", "Authorization,Content-Type,Range")
        response.headers.setdefault("Access-Control-Allow-Methods", "GET,HEAD,POST,OPTIONS")
        if origin:
            response.headers.add("Vary", "Origin")
        return response


__all__ = [
    "build_supervisor",
    "configure_cors",
    "init_access_gateway",
    "init_session_registry",
    "init_status_broadcaster",
    "init_token_codec",
    "register_blueprints",
    "register_shutdown",
]
