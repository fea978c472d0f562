"""Token-gated, read-only access to session output artifacts."""
from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Mapping

from .exceptions import ArtifactNotFound, PathTraversalRejected
from .session_keys import is_safe_session_id
from .tokens import TokenCodec

LOGGER = logging.getLogger(__name__)

_FORBIDDEN_CHARACTERS = ("/", "\\", "\x00", ":")


def is_safe_artifact_name(file_name: object) -> bool:
    """Return whether ``file_name`` is a bare filename that stays in its directory.

    The check is purely lexical so it can run before any filesystem access.
    """

    if not isinstance(file_name, str) or not file_name or len(file_name) > 255:
        return False
    if file_name in {".", ".."} or ".." in file_name:
        return False
    if any(char in file_name for char in _FORBIDDEN_CHARACTERS):
        return False
    if PurePosixPath(file_name).is_absolute() or PureWindowsPath(file_name).is_absolute():
        return False
    if file_name.startswith("~"):
        return False
    return True


class AccessGateway:
    """Resolve artifact reads after verifying the presented capability token."""

    def __init__(self, output_root: Path | str, codec: TokenCodec) -> None:
        self._root = Path(output_root).expanduser().resolve()
        self._codec = codec

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, session_id: str, file_name: str, params: Mapping[str, object]) -> Path:
        """Return the on-disk path of an artifact the token authorises."""

        self._codec.require(params, session_id)

        if not is_safe_session_id(session_id) or not is_safe_artifact_name(file_name):
            raise PathTraversalRejected(f"Rejected artifact path {session_id!r}/{file_name!r}")

        session_dir = self._root / session_id
        target = session_dir / file_name
        try:
            resolved = target.resolve()
            resolved.relative_to(session_dir.resolve())
        except (OSError, ValueError) as exc:
            LOGGER.warning("Artifact %s resolves outside %s", target, session_dir)
            raise PathTraversalRejected(f"Artifact {target} escapes its session directory") from exc

        if not resolved.is_file():
            raise ArtifactNotFound(f"Artifact {session_id}/{file_name} not found")
        return resolved

    def serve(self, session_id: str, file_name: str, params: Mapping[str, object]) -> bytes:
        path = self.resolve(session_id, file_name, params)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            # segment pruned by the encoder between resolve and read
            raise ArtifactNotFound(f"Artifact {session_id}/{file_name} not found") from exc


__all__ = ["AccessGateway", "is_safe_artifact_name"]
