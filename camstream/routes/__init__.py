"""HTTP blueprints for the camstream service."""
from __future__ import annotations

from .live import live_bp
from .stream import control_bp

__all__ = ["control_bp", "live_bp"]
