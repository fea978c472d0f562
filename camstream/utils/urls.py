"""URL manipulation helpers."""
from __future__ import annotations


def strip_trailing_slash(url: str) -> str:
    trimmed = (url or "").strip()
    while trimmed.endswith("/"):
        trimmed = trimmed[:-1]
    return trimmed


def normalise_prefix(prefix: str | None) -> str:
    """Return a route prefix with one leading slash and no trailing slash."""

    trimmed = strip_trailing_slash(prefix or "")
    if not trimmed:
        return ""
    return "/" + trimmed.lstrip("/")


__all__ = ["normalise_prefix", "strip_trailing_slash"]
