"""Launch and supervise one FFmpeg capture process per session."""
from __future__ import annotations

import enum
import logging
import subprocess
import threading
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Deque, Dict, List, Optional

from ..exceptions import LaunchError, NotRunningError
from .encoder import EncoderSettings, build_encoder_command, describe_command
from .stop_strategy import StopStrategy

LOGGER = logging.getLogger(__name__)
_STDERR_TAIL_LINES = 20


class EncoderEventKind(enum.Enum):
    STARTED = "started"
    ERRORED = "errored"
    ENDED = "ended"


@dataclass(frozen=True)
class EncoderEvent:
    """Lifecycle notification emitted by a handle's watcher thread."""

    kind: EncoderEventKind
    device_id: str
    session_id: str
    returncode: Optional[int] = None
    error: Optional[str] = None
    stop_requested: bool = False


EventListener = Callable[[EncoderEvent], None]


@dataclass(eq=False)
class EncoderHandle:
    """Owned reference to a running encoder process."""

    device_id: str
    session_id: str
    output_dir: Path
    process: subprocess.Popen
    command: List[str] = field(default_factory=list)
    stop_requested: bool = False
    watcher: Optional[threading.Thread] = None
    stopper: Optional[threading.Thread] = None
    exited: threading.Event = field(default_factory=threading.Event)

    @property
    def pid(self) -> int:
        return self.process.pid

    def wait_released(self, timeout: Optional[float]) -> bool:
        """Block until the process has been reaped; ``False`` on timeout."""

        return self.exited.wait(timeout)


class EncoderSupervisor:
    """Start and stop FFmpeg capture processes and report their lifecycle."""

    def __init__(
        self,
        settings: Optional[EncoderSettings] = None,
        *,
        stop_strategy: Optional[StopStrategy] = None,
    ) -> None:
        self._settings = settings or EncoderSettings()
        self._stopper = stop_strategy or StopStrategy()
        self._lock = threading.Lock()
        self._handles: Dict[str, EncoderHandle] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def build_command(self, device_id: str, output_dir: Path) -> List[str]:
        return build_encoder_command(self._settings, device_id, output_dir)

    def start(
        self,
        device_id: str,
        session_id: str,
        output_dir: Path,
        listener: Optional[EventListener] = None,
    ) -> EncoderHandle:
        """Spawn the encoder for ``device_id`` writing HLS output into ``output_dir``."""

        self._await_device_release(device_id)

        device_path = self._settings.device_path(device_id)
        if self._settings.verify_device and not Path(device_path).exists():
            raise LaunchError(f"Capture device {device_path} is not available")

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LaunchError(f"Unable to prepare output directory {output_dir}: {exc}") from exc

        command = self.build_command(device_id, output_dir)
        LOGGER.info("Starting encoder for device %s: %s", device_id, describe_command(command))
        try:
            process = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as exc:
            raise LaunchError(f"Unable to launch encoder for device {device_id}: {exc}") from exc

        handle = EncoderHandle(
            device_id=device_id,
            session_id=session_id,
            output_dir=output_dir,
            process=process,
            command=command,
        )
        with self._lock:
            self._handles[device_id] = handle
        handle.watcher = self._watch(handle, listener)
        return handle

    def stop(self, handle: EncoderHandle) -> None:
        """Request shutdown without waiting for the process to exit."""

        with self._lock:
            if handle.stop_requested or handle.exited.is_set():
                raise NotRunningError(f"Encoder for session {handle.session_id} is not running")
            handle.stop_requested = True

        thread = threading.Thread(
            target=self._stopper.shutdown,
            args=(handle.process,),
            name=f"encoder-stop-{handle.device_id}",
            daemon=True,
        )
        handle.stopper = thread
        thread.start()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop every live encoder and wait (bounded) for them to exit."""

        with self._lock:
            handles = list(self._handles.values())
        for handle in handles:
            try:
                self.stop(handle)
            except NotRunningError:
                pass
        wait_seconds = timeout if timeout is not None else self._stopper.total_timeout
        for handle in handles:
            if not handle.wait_released(wait_seconds):
                LOGGER.error("Encoder for session %s did not exit during shutdown", handle.session_id)

    def active_handles(self) -> List[EncoderHandle]:
        with self._lock:
            return [handle for handle in self._handles.values() if not handle.exited.is_set()]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _await_device_release(self, device_id: str) -> None:
        with self._lock:
            previous = self._handles.get(device_id)
        if previous is None or previous.exited.is_set():
            return
        LOGGER.info(
            "Waiting for previous encoder (pid=%s) to release device %s",
            previous.pid,
            device_id,
        )
        if not previous.wait_released(self._stopper.total_timeout):
            raise LaunchError(f"Capture device {device_id} is still held by pid {previous.pid}")

    def _watch(self, handle: EncoderHandle, listener: Optional[EventListener]) -> threading.Thread:
        def _emit(event: EncoderEvent) -> None:
            if listener is None:
                return
            try:
                listener(event)
            except Exception:  # pragma: no cover
                LOGGER.exception("Encoder event listener failed for %s", event.kind.value)

        def _runner() -> None:
            _emit(EncoderEvent(EncoderEventKind.STARTED, handle.device_id, handle.session_id))
            LOGGER.info("Encoder running for session %s (pid=%s)", handle.session_id, handle.pid)
            stderr_lines: Deque[str] = deque(maxlen=_STDERR_TAIL_LINES)
            try:
                if handle.process.stderr is not None:
                    for line in handle.process.stderr:
                        text = line.rstrip()
                        if text:
                            stderr_lines.append(text)
                            LOGGER.debug("ffmpeg[%s]: %s", handle.device_id, text)
                returncode = handle.process.wait()
            except Exception as exc:
                LOGGER.exception("Waiting on encoder for session %s failed", handle.session_id)
                handle.exited.set()
                self._forget(handle)
                _emit(
                    EncoderEvent(
                        EncoderEventKind.ERRORED,
                        handle.device_id,
                        handle.session_id,
                        error=str(exc),
                        stop_requested=handle.stop_requested,
                    )
                )
                return

            handle.exited.set()
            self._forget(handle)
            stderr_tail = " | ".join(stderr_lines)
            if handle.stop_requested or returncode == 0:
                LOGGER.info("Encoder for session %s ended with %s", handle.session_id, returncode)
                kind = EncoderEventKind.ENDED
                error = None
            else:
                LOGGER.error(
                    "Encoder for session %s exited unexpectedly with %s: %s",
                    handle.session_id,
                    returncode,
                    stderr_tail or "no output",
                )
                kind = EncoderEventKind.ERRORED
                error = stderr_tail or f"encoder exited with {returncode}"
            _emit(
                EncoderEvent(
                    kind,
                    handle.device_id,
                    handle.session_id,
                    returncode=returncode,
                    error=error,
                    stop_requested=handle.stop_requested,
                )
            )

        thread = threading.Thread(
            target=_runner,
            name=f"encoder-watch-{handle.device_id}",
            daemon=True,
        )
        thread.start()
        return thread

    def _forget(self, handle: EncoderHandle) -> None:
        with self._lock:
            if self._handles.get(handle.device_id) is handle:
                del self._handles[handle.device_id]


__all__ = [
    "EncoderEvent",
    "EncoderEventKind",
    "EncoderHandle",
    "EncoderSupervisor",
    "EventListener",
]
