"""Session output directories and their retention."""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from threading import Lock

from ..session_keys import is_safe_session_id

LOGGER = logging.getLogger(__name__)


class SessionOutputStore:
    """Own the output root, hand out per-session directories and prune old ones.

    Only directories of sessions created by this process are ever removed; a
    directory that belongs to a live session is always preserved.
    """

    def __init__(self, root: Path | str, *, retention: int = 2) -> None:
        self._root = Path(root).expanduser().resolve()
        self._retention = max(0, int(retention))
        self._lock = Lock()
        self._finished: list[str] = []
        self._known_sessions: set[str] = set()

    @property
    def root(self) -> Path:
        return self._root

    def ensure_root(self) -> Path:
        self._root.mkdir(parents=True, exist_ok=True)
        return self._root

    def path_for(self, session_id: str) -> Path:
        if not is_safe_session_id(session_id):
            raise ValueError(f"Unsafe session id {session_id!r}")
        return self._root / session_id

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------
    def register(self, session_id: str) -> Path:
        with self._lock:
            self._known_sessions.add(session_id)
        return self.path_for(session_id)

    def finish(self, session_id: str) -> None:
        """Record that ``session_id`` no longer has a running encoder."""

        with self._lock:
            if session_id not in self._known_sessions:
                return
            if session_id in self._finished:
                self._finished.remove(session_id)
            self._finished.append(session_id)

    def prune(self, *, live_sessions: set[str]) -> list[Path]:
        """Remove finished session directories beyond the retention window."""

        with self._lock:
            stale_count = len(self._finished) - self._retention
            if stale_count <= 0:
                return []
            candidates = [entry for entry in self._finished[:stale_count] if entry not in live_sessions]

        removed: list[Path] = []
        for session_id in candidates:
            target = self.path_for(session_id)
            try:
                if target.exists():
                    shutil.rmtree(target)
                    LOGGER.info("Removed stale session artifacts %s", target)
                    removed.append(target)
            except OSError as exc:
                LOGGER.warning("Failed to remove stale session directory %s: %s", target, exc)
                continue
            self._discard(session_id)
        return removed

    def _discard(self, session_id: str) -> None:
        with self._lock:
            self._known_sessions.discard(session_id)
            if session_id in self._finished:
                self._finished.remove(session_id)


__all__ = ["SessionOutputStore"]
