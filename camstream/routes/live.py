"""Token-gated delivery of HLS manifests and segments."""
from __future__ import annotations

from flask import Blueprint, Response, current_app, request, send_file

from ..exceptions import ArtifactNotFound
from ..services import get_gateway
from ..utils import coerce_int, normalise_extensions

live_bp = Blueprint("camstream_live", __name__)

_MIMETYPES = {
    "m3u8": "application/vnd.apple.mpegurl",
    "ts": "video/mp2t",
    "m4s": "video/iso.segment",
    "mp4": "video/mp4",
}


def _extension(file_name: str) -> str:
    if "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[-1].lower()


@live_bp.route("/<string:session_id>/<path:file_name>", methods=["GET", "HEAD"])
def artifact_endpoint(session_id: str, file_name: str) -> Response:
    path = get_gateway(current_app).resolve(session_id, file_name, request.args)

    extension = _extension(path.name)
    cache_max_age = max(coerce_int(current_app.config.get("STREAM_CACHE_MAX_AGE"), 0), 0)
    cache_extensions = normalise_extensions(current_app.config.get("STREAM_CACHE_EXTENSIONS"))
    cacheable = extension != "m3u8" and extension in cache_extensions and cache_max_age > 0

    try:
        response = send_file(
            path,
            mimetype=_MIMETYPES.get(extension, "application/octet-stream"),
            conditional=True,
            max_age=cache_max_age if cacheable else None,
        )
    except FileNotFoundError as exc:
        # segment rotated out by the encoder after the token check
        raise ArtifactNotFound(f"Artifact {session_id}/{file_name} not found") from exc
    if cacheable:
        response.headers["Cache-Control"] = f"private, max-age={cache_max_age}"
    else:
        response.headers["Cache-Control"] = "no-cache, no-store"
    return response


__all__ = ["live_bp"]
