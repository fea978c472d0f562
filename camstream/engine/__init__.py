"""Engine layer: encoder supervision and the session registry."""
from __future__ import annotations

from .encoder import EncoderSettings, build_encoder_command
from .output_store import SessionOutputStore
from .registry import AccessGrant, SessionRecord, SessionRegistry, SessionState
from .status import SessionStatusBroadcaster
from .status_snapshot import SessionStatus
from .stop_strategy import StopStrategy
from .supervisor import EncoderEvent, EncoderEventKind, EncoderHandle, EncoderSupervisor

__all__ = [
    "AccessGrant",
    "EncoderEvent",
    "EncoderEventKind",
    "EncoderHandle",
    "EncoderSettings",
    "EncoderSupervisor",
    "SessionOutputStore",
    "SessionRecord",
    "SessionRegistry",
    "SessionState",
    "SessionStatus",
    "SessionStatusBroadcaster",
    "StopStrategy",
    "build_encoder_command",
]
