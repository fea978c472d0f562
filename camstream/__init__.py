"""Token-gated live camera streaming over HLS."""
from __future__ import annotations

from .app import create_app
from .engine import EncoderSupervisor, SessionRegistry, SessionState
from .gateway import AccessGateway
from .tokens import CapabilityToken, TokenCodec, TokenStatus

__version__ = "0.1.0"

__all__ = [
    "AccessGateway",
    "CapabilityToken",
    "EncoderSupervisor",
    "SessionRegistry",
    "SessionState",
    "TokenCodec",
    "TokenStatus",
    "create_app",
]
