"""Accessors for the per-application session services."""
from __future__ import annotations

from flask import Flask

from .engine import SessionRegistry
from .gateway import AccessGateway


def get_registry(app: Flask) -> SessionRegistry:
    registry = app.extensions.get("camstream_registry")
    if not isinstance(registry, SessionRegistry):
        raise RuntimeError("Session registry not initialised on Flask app.")
    return registry


def get_gateway(app: Flask) -> AccessGateway:
    gateway = app.extensions.get("camstream_gateway")
    if not isinstance(gateway, AccessGateway):
        raise RuntimeError("Access gateway not initialised on Flask app.")
    return gateway


__all__ = ["get_gateway", "get_registry"]
