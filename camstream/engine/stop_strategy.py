"""Signal orchestration used to stop capture encoders."""
from __future__ import annotations

import logging
import signal
import subprocess
from subprocess import TimeoutExpired
from typing import Optional

LOGGER = logging.getLogger(__name__)


class StopStrategy:
    """Escalate SIGINT, SIGTERM then SIGKILL with a bounded wait between each."""

    def __init__(
        self,
        *,
        graceful_timeout: float = 5.0,
        terminate_timeout: float = 5.0,
        kill_timeout: float = 2.0,
    ) -> None:
        self._graceful_timeout = max(0.0, graceful_timeout)
        self._terminate_timeout = max(0.0, terminate_timeout)
        self._kill_timeout = max(0.0, kill_timeout)

    @property
    def total_timeout(self) -> float:
        return self._graceful_timeout + self._terminate_timeout + self._kill_timeout

    def shutdown(self, process: subprocess.Popen) -> Optional[int]:
        """Stop ``process`` and return its exit code, if one was observed."""

        if process.poll() is not None:
            return process.returncode

        try:
            LOGGER.info("Sending SIGINT to encoder (pid=%s)", process.pid)
            process.send_signal(signal.SIGINT)
        except OSError as exc:  # pragma: no cover - system dependent
            LOGGER.warning("Failed to signal encoder process %s: %s", process.pid, exc)

        returncode = self._wait_for_exit(process, self._graceful_timeout)
        if returncode is None and process.poll() is None:
            LOGGER.warning("Encoder %s still running after SIGINT; sending SIGTERM", process.pid)
            try:
                process.terminate()
            except OSError as exc:  # pragma: no cover - system dependent
                LOGGER.warning("Failed to terminate encoder process %s: %s", process.pid, exc)
            returncode = self._wait_for_exit(process, self._terminate_timeout)

        if returncode is None and process.poll() is None:
            LOGGER.error("Encoder %s ignored SIGTERM; sending SIGKILL", process.pid)
            try:
                process.kill()
            except OSError as exc:  # pragma: no cover - system dependent
                LOGGER.warning("Failed to kill encoder process %s: %s", process.pid, exc)
            returncode = self._wait_for_exit(process, self._kill_timeout)
            if returncode is None:
                LOGGER.error("Encoder process %s still running after SIGKILL attempt", process.pid)
                returncode = process.returncode

        if returncode is not None:
            LOGGER.info("Encoder %s exited with %s", process.pid, returncode)
        else:
            LOGGER.warning("Encoder %s exit code unknown after stop sequence", process.pid)
        return returncode

    @staticmethod
    def _wait_for_exit(process: subprocess.Popen, timeout: float) -> Optional[int]:
        try:
            return process.wait(timeout=timeout)
        except TimeoutExpired:
            return None


__all__ = ["StopStrategy"]
