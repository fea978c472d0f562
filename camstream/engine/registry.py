"""Authoritative table of capture sessions, one per device."""
from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional
from urllib.parse import urlencode

from ..exceptions import (
    AlreadyActiveError,
    InvalidRequestError,
    LaunchError,
    NotActiveError,
    NotRunningError,
    StreamError,
)
from ..session_keys import new_session_id
from ..tokens import TokenCodec
from ..utils import normalise_device_id, normalise_prefix
from .output_store import SessionOutputStore
from .status import SessionStatusBroadcaster
from .status_snapshot import SessionStatus
from .supervisor import EncoderEvent, EncoderEventKind, EncoderHandle, EncoderSupervisor

LOGGER = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_MAX_TTL_SECONDS = 86400


class SessionState(enum.Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


ACTIVE_STATES = frozenset({SessionState.STARTING, SessionState.RUNNING})


@dataclass(eq=False)
class SessionRecord:
    """One encoder run for one device."""

    device_id: str
    session_id: str
    output_dir: Path
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: SessionState = SessionState.STARTING
    handle: Optional[EncoderHandle] = None
    last_error: Optional[str] = None
    stop_pending: bool = False

    @property
    def active(self) -> bool:
        return self.state in ACTIVE_STATES

    def status(self) -> SessionStatus:
        handle = self.handle
        return SessionStatus(
            device_id=self.device_id,
            session_id=self.session_id,
            state=self.state.value,
            running=self.active,
            pid=handle.pid if handle is not None else None,
            output_dir=str(self.output_dir),
            created_at=self.created_at.isoformat(),
            last_error=self.last_error,
        )


@dataclass(frozen=True)
class AccessGrant:
    """A playable URL together with the token it embeds."""

    url: str
    session_id: str
    expires: int


class SessionRegistry:
    """Enforce one active session per device and coordinate the supervisor.

    All mutations of the device table happen under a single lock. The lock is
    released before the encoder is launched or signalled, so it only ever
    covers bookkeeping.
    """

    def __init__(
        self,
        *,
        supervisor: EncoderSupervisor,
        codec: TokenCodec,
        output_store: SessionOutputStore,
        manifest_name: str = "index.m3u8",
        url_prefix: str = "/live",
        default_ttl: int = DEFAULT_TTL_SECONDS,
        max_ttl: int = DEFAULT_MAX_TTL_SECONDS,
        broadcaster: Optional[SessionStatusBroadcaster] = None,
        key_factory: Callable[[str], str] = new_session_id,
    ) -> None:
        self._supervisor = supervisor
        self._codec = codec
        self._store = output_store
        self._manifest_name = manifest_name
        self._url_prefix = normalise_prefix(url_prefix)
        self._max_ttl = max(1, int(max_ttl))
        self._default_ttl = min(max(1, int(default_ttl)), self._max_ttl)
        self._broadcaster = broadcaster
        self._key_factory = key_factory
        self._lock = threading.Lock()
        self._sessions: Dict[str, SessionRecord] = {}
        self._retiring: Dict[str, SessionRecord] = {}
        self._failures: Dict[str, str] = {}
        self._closed = False

    @property
    def output_store(self) -> SessionOutputStore:
        return self._store

    @property
    def codec(self) -> TokenCodec:
        return self._codec

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start_session(self, device_id: object) -> SessionRecord:
        """Claim the device, launch its encoder and return the new record."""

        device = normalise_device_id(device_id)
        with self._lock:
            if self._closed:
                raise StreamError("Session registry is shutting down")
            existing = self._sessions.get(device)
            if existing is not None:
                raise AlreadyActiveError(device, existing.session_id)
            session_id = self._key_factory(device)
            output_dir = self._store.register(session_id)
            record = SessionRecord(device_id=device, session_id=session_id, output_dir=output_dir)
            self._sessions[device] = record
            self._failures.pop(device, None)
            live_sessions = self._live_session_ids_locked()

        LOGGER.info("Session %s starting for device %s", session_id, device)
        self._notify()
        self._store.prune(live_sessions=live_sessions)

        try:
            handle = self._supervisor.start(device, session_id, output_dir, listener=self._on_event)
        except Exception as exc:
            error = exc if isinstance(exc, LaunchError) else LaunchError(
                f"Unable to launch encoder for device {device}: {exc!r}"
            )
            with self._lock:
                if self._sessions.get(device) is record:
                    del self._sessions[device]
                self._retiring.pop(session_id, None)
                record.state = SessionState.FAILED
                record.last_error = str(error)
                self._failures[device] = str(error)
            self._store.finish(session_id)
            LOGGER.error("Session %s failed to launch: %s", session_id, error)
            self._notify()
            if error is exc:
                raise
            raise error from exc

        with self._lock:
            record.handle = handle
            stop_pending = record.stop_pending
            failed = record.state is SessionState.FAILED
        if stop_pending:
            self._request_stop(record, handle)
        if failed:
            raise LaunchError(record.last_error or f"Encoder for device {device} exited during startup")
        return record

    def stop_session(self, device_id: object) -> SessionRecord:
        """Stop the device's active session.

        The record leaves the active table immediately; it is dropped from the
        registry once the encoder confirms it has exited.
        """

        device = normalise_device_id(device_id)
        with self._lock:
            record = self._sessions.pop(device, None)
            if record is None:
                raise NotActiveError(device)
            record.state = SessionState.STOPPING
            self._retiring[record.session_id] = record
            handle = record.handle
            if handle is None:
                record.stop_pending = True

        LOGGER.info("Session %s stopping for device %s", record.session_id, device)
        self._notify()
        if handle is not None:
            self._request_stop(record, handle)
        return record

    def get_access_url(self, device_id: object, ttl_seconds: object = None) -> AccessGrant:
        """Mint a capability token for the device's session and embed it in a URL."""

        device = normalise_device_id(device_id)
        ttl = self._coerce_ttl(ttl_seconds)
        with self._lock:
            record = self._sessions.get(device)
            if record is None:
                raise NotActiveError(device)
            session_id = record.session_id

        token = self._codec.issue(session_id, ttl)
        url = f"{self._url_prefix}/{session_id}/{self._manifest_name}?{urlencode(token.to_query())}"
        return AccessGrant(url=url, session_id=session_id, expires=token.expires)

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop every session and wait (bounded) for the encoders to exit."""

        with self._lock:
            self._closed = True
            records = list(self._sessions.values())
            self._sessions.clear()
            for record in records:
                record.state = SessionState.STOPPING
                self._retiring[record.session_id] = record
                if record.handle is None:
                    record.stop_pending = True
        if records:
            LOGGER.info("Stopping %d session(s) during registry teardown", len(records))
        self._supervisor.shutdown(timeout)
        if self._broadcaster is not None:
            self._broadcaster.close()

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    def get(self, device_id: object) -> Optional[SessionRecord]:
        device = normalise_device_id(device_id)
        with self._lock:
            return self._sessions.get(device)

    def active_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def snapshot(self) -> List[SessionStatus]:
        with self._lock:
            statuses = [record.status() for record in self._sessions.values()]
            statuses.extend(record.status() for record in self._retiring.values())
            for device, error in self._failures.items():
                if device in self._sessions:
                    continue
                statuses.append(
                    SessionStatus(
                        device_id=device,
                        session_id=None,
                        state=SessionState.FAILED.value,
                        running=False,
                        pid=None,
                        output_dir=None,
                        created_at=None,
                        last_error=error,
                    )
                )
        return statuses

    # ------------------------------------------------------------------
    # Encoder events
    # ------------------------------------------------------------------
    def _on_event(self, event: EncoderEvent) -> None:
        finished = False
        with self._lock:
            record = self._find_locked(event.device_id, event.session_id)
            if record is None:
                LOGGER.debug("Ignoring %s event for unknown session %s", event.kind.value, event.session_id)
                return
            if event.kind is EncoderEventKind.STARTED:
                if record.state is SessionState.STARTING:
                    record.state = SessionState.RUNNING
            elif record.state is SessionState.STOPPING:
                record.state = SessionState.STOPPED
                self._retiring.pop(record.session_id, None)
                finished = True
            elif record.active:
                record.state = SessionState.FAILED
                record.last_error = event.error or f"encoder exited with {event.returncode}"
                self._failures[record.device_id] = record.last_error
                if self._sessions.get(record.device_id) is record:
                    del self._sessions[record.device_id]
                finished = True

        if event.kind is EncoderEventKind.STARTED:
            LOGGER.info("Session %s running", event.session_id)
        elif record.state is SessionState.FAILED:
            LOGGER.error("Session %s failed: %s", record.session_id, record.last_error)
        elif finished:
            LOGGER.info("Session %s stopped", record.session_id)
        if finished:
            self._store.finish(record.session_id)
        self._notify()

    def _request_stop(self, record: SessionRecord, handle: EncoderHandle) -> None:
        try:
            self._supervisor.stop(handle)
        except NotRunningError:
            with self._lock:
                already_final = self._retiring.pop(record.session_id, None) is None
                if record.state is SessionState.STOPPING:
                    record.state = SessionState.STOPPED
            if not already_final:
                self._store.finish(record.session_id)
                self._notify()

    def _find_locked(self, device_id: str, session_id: str) -> Optional[SessionRecord]:
        record = self._sessions.get(device_id)
        if record is not None and record.session_id == session_id:
            return record
        return self._retiring.get(session_id)

    def _live_session_ids_locked(self) -> set[str]:
        live = {record.session_id for record in self._sessions.values()}
        live.update(self._retiring)
        return live

    def _coerce_ttl(self, value: object) -> int:
        if value is None or value == "":
            return self._default_ttl
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise InvalidRequestError("Validity duration must be a whole number of seconds")
        try:
            ttl = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise InvalidRequestError("Validity duration must be a whole number of seconds") from exc
        if ttl <= 0 or ttl > self._max_ttl:
            raise InvalidRequestError(f"Validity duration must be between 1 and {self._max_ttl} seconds")
        return ttl

    def _notify(self) -> None:
        broadcaster = self._broadcaster
        if broadcaster is None or not broadcaster.enabled:
            return
        statuses = self.snapshot()
        broadcaster.publish(statuses)
        if any(status.running for status in statuses):
            broadcaster.start_heartbeat(self.snapshot)
        else:
            broadcaster.stop_heartbeat()


__all__ = [
    "ACTIVE_STATES",
    "AccessGrant",
    "DEFAULT_MAX_TTL_SECONDS",
    "DEFAULT_TTL_SECONDS",
    "SessionRecord",
    "SessionRegistry",
    "SessionState",
]
