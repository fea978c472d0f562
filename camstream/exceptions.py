"""Custom exceptions raised by the camstream package."""
from __future__ import annotations

from http import HTTPStatus
from typing import Optional


class StreamError(RuntimeError):
    """Base error for the camstream package."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR.value


class InvalidRequestError(StreamError, ValueError):
    """Raised when a caller supplies a malformed device id or validity window."""

    status_code = HTTPStatus.BAD_REQUEST.value


class AlreadyActiveError(StreamError):
    """Raised when a start is requested for a device that already streams."""

    status_code = HTTPStatus.CONFLICT.value

    def __init__(self, device_id: str, session_id: Optional[str] = None) -> None:
        super().__init__(f"Stream already active for device {device_id}")
        self.device_id = device_id
        self.session_id = session_id


class NotActiveError(StreamError):
    """Raised when a device has no active session."""

    status_code = HTTPStatus.NOT_FOUND.value

    def __init__(self, device_id: str) -> None:
        super().__init__(f"No active stream for device {device_id}")
        self.device_id = device_id


class LaunchError(StreamError):
    """Raised when the capture device cannot be opened or FFmpeg cannot be spawned."""

    status_code = HTTPStatus.BAD_GATEWAY.value


class NotRunningError(StreamError):
    """Raised when stopping an encoder that has already been stopped or exited."""

    status_code = HTTPStatus.CONFLICT.value


class AccessDenied(StreamError):
    """Base class for every rejected artifact read.

    Subclasses only exist so the rejection reason can be logged; callers see an
    identical response for all of them.
    """

    status_code = HTTPStatus.FORBIDDEN.value
    reason = "denied"


class TokenExpired(AccessDenied):
    reason = "expired"


class TokenForged(AccessDenied):
    reason = "forged"


class TokenMalformed(AccessDenied):
    reason = "malformed"


class SessionMismatch(AccessDenied):
    reason = "session-mismatch"


class PathTraversalRejected(AccessDenied):
    reason = "path-traversal"


class ArtifactNotFound(StreamError):
    """Raised when a requested manifest or segment does not exist."""

    status_code = HTTPStatus.NOT_FOUND.value


__all__ = [
    "AccessDenied",
    "AlreadyActiveError",
    "ArtifactNotFound",
    "InvalidRequestError",
    "LaunchError",
    "NotActiveError",
    "NotRunningError",
    "PathTraversalRejected",
    "SessionMismatch",
    "StreamError",
    "TokenExpired",
    "TokenForged",
    "TokenMalformed",
]
