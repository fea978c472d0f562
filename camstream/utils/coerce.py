"""Generic coercion utilities shared across the camstream codebase."""
from __future__ import annotations

from typing import Any, Iterable

_TRUTHY = frozenset({"true", "1", "yes", "on"})


def to_bool(value: Any) -> bool:
    """Interpret config-style flags; anything unrecognised counts as ``False``."""

    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    if isinstance(value, (bool, int, float)):
        return bool(value)
    return False


def coerce_int(value: Any, fallback: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def coerce_float(value: Any, fallback: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return fallback


def normalise_extensions(raw: Any, fallback: Iterable[str] = ()) -> set[str]:
    """Turn a CSV string or iterable of file extensions into a lowercase set."""

    if isinstance(raw, str):
        pieces: Iterable[Any] = raw.split(",")
    elif isinstance(raw, Iterable):
        pieces = raw
    else:
        pieces = fallback
    return {str(ext).strip().lower().lstrip(".") for ext in pieces if str(ext).strip()}


__all__ = [
    "coerce_float",
    "coerce_int",
    "normalise_extensions",
    "to_bool",
]
