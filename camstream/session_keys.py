"""Session identifier derivation.

Identifiers are fresh per start call: the registry asks for
:func:`new_session_id`, which feeds a random nonce into the pure
:func:`derive_session_id`. A recomputed identifier never matches an older run,
so a token minted for a previous session cannot read a later one.
"""
from __future__ import annotations

import hashlib
import re
import secrets

_SAFE_SESSION_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,128}")
_DIGEST_LENGTH = 24


def derive_session_id(device_id: str, nonce: str) -> str:
    """Return a filesystem- and URL-safe identifier for ``device_id`` and ``nonce``."""

    device = str(device_id)
    if not _SAFE_SESSION_PATTERN.fullmatch(device):
        raise ValueError(f"Unsafe device id {device_id!r}")
    digest = hashlib.sha256(f"{device}\x00{nonce}".encode("utf-8")).hexdigest()
    return f"cam-{device}-{digest[:_DIGEST_LENGTH]}"


def new_session_id(device_id: str) -> str:
    return derive_session_id(device_id, secrets.token_hex(16))


def is_safe_session_id(value: object) -> bool:
    return isinstance(value, str) and bool(_SAFE_SESSION_PATTERN.fullmatch(value))


__all__ = ["derive_session_id", "is_safe_session_id", "new_session_id"]
