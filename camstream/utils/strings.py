"""String helper utilities shared across the camstream service."""
from __future__ import annotations

import re

from ..exceptions import InvalidRequestError

_DEVICE_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")


def normalise_device_id(value: object) -> str:
    """Return the canonical string form of a caller-supplied device identifier."""

    if isinstance(value, bool) or value is None:
        raise InvalidRequestError("Device ID is required")
    if isinstance(value, int):
        if value < 0:
            raise InvalidRequestError("Device ID must not be negative")
        return str(value)
    if isinstance(value, str):
        text = value.strip()
        if _DEVICE_PATTERN.fullmatch(text):
            return text
    raise InvalidRequestError("Device ID must be a small integer or a simple name")


__all__ = ["normalise_device_id"]
