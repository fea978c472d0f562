"""Redis-backed broadcaster for registry status updates."""
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

import redis
from redis.exceptions import RedisError

from .status_snapshot import SessionStatus

LOGGER = logging.getLogger(__name__)

SnapshotSource = Callable[[], Sequence[SessionStatus]]


class SessionStatusBroadcaster:
    """Publish registry snapshots to Redis for downstream consumers.

    The latest snapshot is written to ``<prefix>:<key>`` (expiring after
    ``ttl_seconds``) and, when a channel is configured, published on it. While
    a heartbeat is running the snapshot is refreshed every
    ``heartbeat_seconds`` so the key does not expire under a live session.
    """

    def __init__(
        self,
        *,
        redis_url: Optional[str],
        prefix: str = "camstream",
        key: str = "sessions",
        channel: Optional[str] = None,
        ttl_seconds: int = 30,
        heartbeat_seconds: int = 5,
    ) -> None:
        self._redis_url = (redis_url or "").strip()
        self._prefix = prefix.strip() or "camstream"
        self._key = key.strip() or "sessions"
        self._channel = channel.strip() if isinstance(channel, str) and channel.strip() else None
        self._ttl = max(0, int(ttl_seconds))
        self._heartbeat_seconds = max(1, int(heartbeat_seconds))
        self._client: Optional[redis.Redis] = None
        self._last_error: Optional[str] = None
        self._heartbeat_stop = threading.Event()
        self._heartbeat_thread: Optional[threading.Thread] = None
        self._connect()

    # ------------------------------------------------------------------
    # Connection helpers
    # ------------------------------------------------------------------
    def _connect(self) -> None:
        if not self._redis_url:
            self._last_error = "Redis URL not configured"
            self._client = None
            return
        try:
            client = redis.from_url(
                self._redis_url,
                socket_timeout=3,
                health_check_interval=30,
            )
            client.ping()
        except (RedisError, OSError, ValueError) as exc:  # pragma: no cover - network dependent
            LOGGER.warning("Failed to connect to Redis for status broadcasting: %s", exc)
            self._client = None
            self._last_error = f"Failed to connect to Redis: {exc}"
            return
        self._client = client
        self._last_error = None

    def _ensure_client(self) -> Optional[redis.Redis]:
        if self._client is None and self._redis_url:
            self._connect()
        return self._client

    def _drop_client(self) -> None:
        client = self._client
        self._client = None
        if client is None:
            return
        try:
            client.close()
        except RedisError:  # pragma: no cover
            LOGGER.debug("Failed to close Redis client", exc_info=True)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def enabled(self) -> bool:
        return bool(self._redis_url)

    @property
    def available(self) -> bool:
        return self._ensure_client() is not None

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def redis_key(self) -> str:
        return f"{self._prefix}:{self._key}"

    def publish(self, sessions: Sequence[SessionStatus]) -> None:
        """Persist and broadcast the latest registry snapshot."""

        client = self._ensure_client()
        if client is None:
            return
        payload = self.serialize(sessions)
        try:
            if self._ttl > 0:
                client.set(self.redis_key, payload, ex=self._ttl)
            else:
                client.set(self.redis_key, payload)
            if self._channel:
                client.publish(self._channel, payload)
            self._last_error = None
        except RedisError as exc:  # pragma: no cover - network dependent
            self._last_error = f"Failed to publish session status: {exc}"
            LOGGER.debug("Failed to publish session status to Redis: %s", exc)
            self._drop_client()

    def start_heartbeat(self, source: SnapshotSource) -> None:
        if not self.enabled:
            return
        thread = self._heartbeat_thread
        if thread and thread.is_alive():
            return

        def _worker() -> None:
            while not self._heartbeat_stop.wait(self._heartbeat_seconds):
                try:
                    self.publish(source())
                except Exception:  # pragma: no cover
                    LOGGER.debug("Status heartbeat failed", exc_info=True)

        self._heartbeat_stop.clear()
        thread = threading.Thread(target=_worker, name="camstream-status-heartbeat", daemon=True)
        self._heartbeat_thread = thread
        thread.start()

    def stop_heartbeat(self) -> None:
        thread = self._heartbeat_thread
        self._heartbeat_thread = None
        if thread is None:
            return
        self._heartbeat_stop.set()
        if thread is not threading.current_thread():
            thread.join(timeout=2.0)

    def close(self) -> None:
        self.stop_heartbeat()
        self._drop_client()

    @staticmethod
    def serialize(sessions: Sequence[SessionStatus]) -> str:
        payload = {
            "sessions": [status.to_dict() for status in sessions],
            "updatedAt": datetime.now(timezone.utc).isoformat(),
        }
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


__all__ = ["SessionStatusBroadcaster", "SnapshotSource"]
