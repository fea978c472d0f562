from __future__ import annotations

import itertools
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from camstream.engine import EncoderEvent, EncoderEventKind, SessionOutputStore, SessionRegistry
from camstream.exceptions import NotRunningError
from camstream.tokens import TokenCodec


class ManualClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle:
    _pids = itertools.count(4000)

    def __init__(self, device_id: str, session_id: str, output_dir: Path, listener) -> None:
        self.device_id = device_id
        self.session_id = session_id
        self.output_dir = output_dir
        self.listener = listener
        self.pid = next(self._pids)
        self.stopped = False
        self.exited = False


class FakeSupervisor:
    """In-memory stand-in for :class:`EncoderSupervisor` that never spawns FFmpeg."""

    def __init__(self, *, emit_started: bool = True) -> None:
        self.emit_started = emit_started
        self.launch_error: Optional[Exception] = None
        self.crash_during_start = False
        self.handles: List[FakeHandle] = []
        self.started: Dict[str, int] = {}
        self.stop_calls: List[FakeHandle] = []
        self.shutdown_calls = 0
        self.start_gate: Optional[threading.Event] = None
        self._lock = threading.Lock()

    def start(self, device_id: str, session_id: str, output_dir: Path, listener=None) -> FakeHandle:
        if self.start_gate is not None:
            self.start_gate.wait(5)
        if self.launch_error is not None:
            raise self.launch_error
        output_dir.mkdir(parents=True, exist_ok=True)
        handle = FakeHandle(device_id, session_id, output_dir, listener)
        with self._lock:
            self.handles.append(handle)
            self.started[device_id] = self.started.get(device_id, 0) + 1
        if self.emit_started:
            self._emit(handle, EncoderEventKind.STARTED)
        if self.crash_during_start:
            self.crash(handle, "v4l2: device busy")
        return handle

    def stop(self, handle: FakeHandle) -> None:
        if handle.stopped or handle.exited:
            raise NotRunningError(f"Encoder for session {handle.session_id} is not running")
        handle.stopped = True
        self.stop_calls.append(handle)
        handle.exited = True
        self._emit(handle, EncoderEventKind.ENDED, returncode=255)

    def crash(self, handle: FakeHandle, error: str = "encoder crashed") -> None:
        handle.exited = True
        self._emit(handle, EncoderEventKind.ERRORED, returncode=1, error=error)

    def shutdown(self, timeout: Optional[float] = None) -> None:
        self.shutdown_calls += 1
        for handle in list(self.handles):
            if not handle.stopped and not handle.exited:
                self.stop(handle)

    def _emit(self, handle: FakeHandle, kind: EncoderEventKind, **fields) -> None:
        if handle.listener is None:
            return
        handle.listener(
            EncoderEvent(
                kind,
                handle.device_id,
                handle.session_id,
                stop_requested=handle.stopped,
                **fields,
            )
        )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def codec(clock: ManualClock) -> TokenCodec:
    return TokenCodec("unit-test-secret", clock=clock)


@pytest.fixture
def supervisor() -> FakeSupervisor:
    return FakeSupervisor()


@pytest.fixture
def make_registry(tmp_path: Path, codec: TokenCodec, supervisor: FakeSupervisor) -> Callable[..., SessionRegistry]:
    def _factory(**overrides) -> SessionRegistry:
        options = {
            "supervisor": supervisor,
            "codec": codec,
            "output_store": SessionOutputStore(tmp_path / "sessions"),
            "manifest_name": "index.m3u8",
        }
        options.update(overrides)
        return SessionRegistry(**options)

    return _factory


@pytest.fixture(autouse=True)
def _single_worker_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("STREAM_WORKER_PROCESSES", "GUNICORN_WORKERS", "WEB_CONCURRENCY", "REDIS_URL"):
        monkeypatch.delenv(name, raising=False)
