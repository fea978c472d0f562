"""Utility helpers shared across the camstream service."""
from __future__ import annotations

from .coerce import coerce_float, coerce_int, normalise_extensions, to_bool
from .strings import normalise_device_id
from .urls import normalise_prefix, strip_trailing_slash

__all__ = [
    "coerce_float",
    "coerce_int",
    "normalise_device_id",
    "normalise_extensions",
    "normalise_prefix",
    "strip_trailing_slash",
    "to_bool",
]
