"""Data structures that describe registry state."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class SessionStatus:
    """Snapshot of one device's session."""

    device_id: str
    session_id: Optional[str]
    state: str
    running: bool
    pid: Optional[int]
    output_dir: Optional[str]
    created_at: Optional[str]
    last_error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "deviceId": self.device_id,
            "state": self.state,
            "running": self.running,
            "pid": self.pid,
            "outputDir": self.output_dir,
            "createdAt": self.created_at,
        }
        if self.session_id is not None:
            payload["sessionId"] = self.session_id
        if self.last_error is not None:
            payload["lastError"] = self.last_error
        return payload


__all__ = ["SessionStatus"]
