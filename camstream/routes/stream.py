"""HTTP routes that start, stop and hand out URLs for camera streams."""
from __future__ import annotations

from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from ..auth import control_token_required
from ..services import get_registry

control_bp = Blueprint("camstream_control", __name__)

DEFAULT_DEVICE_ID = 0


def _device_from_body() -> Any:
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return DEFAULT_DEVICE_ID
    return payload.get("deviceId", DEFAULT_DEVICE_ID)


@control_bp.route("/stream/start", methods=["POST"])
@control_token_required
def start_stream_endpoint():
    record = get_registry(current_app).start_session(_device_from_body())
    payload = {
        "message": "Stream started successfully",
        "deviceId": record.device_id,
        "sessionId": record.session_id,
    }
    return jsonify(payload), HTTPStatus.OK


@control_bp.route("/stream/stop", methods=["POST"])
@control_token_required
def stop_stream_endpoint():
    record = get_registry(current_app).stop_session(_device_from_body())
    payload = {
        "message": "Stream stopped successfully",
        "deviceId": record.device_id,
        "sessionId": record.session_id,
    }
    return jsonify(payload), HTTPStatus.OK


@control_bp.route("/stream/url", methods=["GET"])
@control_token_required
def stream_url_endpoint():
    device_id = request.args.get("deviceId", DEFAULT_DEVICE_ID)
    grant = get_registry(current_app).get_access_url(device_id, request.args.get("ttl"))
    payload = {
        "url": grant.url,
        "sessionId": grant.session_id,
        "expires": grant.expires,
    }
    return jsonify(payload), HTTPStatus.OK


@control_bp.route("/stream/status", methods=["GET"])
@control_token_required
def stream_status_endpoint():
    sessions = [status.to_dict() for status in get_registry(current_app).snapshot()]
    return jsonify({"sessions": sessions}), HTTPStatus.OK


@control_bp.route("/health", methods=["GET"])
def health_endpoint():
    payload = {
        "status": "ok",
        "service": "camstream",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "activeSessions": get_registry(current_app).active_count(),
    }
    return jsonify(payload), HTTPStatus.OK


__all__ = ["control_bp"]
