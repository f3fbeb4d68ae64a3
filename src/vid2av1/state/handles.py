"""Control handles for a running encoder process."""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - subprocess is required for ffmpeg control
import threading
from typing import Protocol

from vid2av1.errors import PipeError
from vid2av1.state.termination import Terminator, terminate_process_tree

logger = logging.getLogger(__name__)

# ffmpeg finishes the current frame, writes the trailer and exits on "q".
QUIT_COMMAND = "q\n"


class ProcessHandle(Protocol):
    """What cancellation needs from a running process."""

    @property
    def pid(self) -> int: ...

    def graceful_stop(self) -> None:
        """Ask the process to exit on its own.

        Raises:
            PipeError: If the request cannot be delivered.
        """
        ...

    def force_kill(self) -> None:
        """Terminate the process and its children immediately."""
        ...

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for exit; True if the process exited within ``timeout``."""
        ...


class PopenProcessHandle:
    """ProcessHandle for a ``subprocess.Popen`` ffmpeg child.

    The graceful stop writes ffmpeg's interactive quit command to stdin.
    Writes are serialized so concurrent cancel requests never interleave.
    """

    def __init__(
        self,
        process: subprocess.Popen,
        terminator: Terminator = terminate_process_tree,
    ) -> None:
        if process.stdin is None:
            raise PipeError("No ffmpeg stdin.")
        self._process = process
        self._terminator = terminator
        self._stdin_lock = threading.Lock()

    @property
    def pid(self) -> int:
        return self._process.pid

    def graceful_stop(self) -> None:
        stdin = self._process.stdin
        with self._stdin_lock:
            try:
                stdin.write(QUIT_COMMAND)
                stdin.flush()
            except (OSError, ValueError) as e:
                raise PipeError(f"Failed to send command to ffmpeg: {e}") from e

    def force_kill(self) -> None:
        if self._process.poll() is not None:
            return
        self._terminator(self.pid)

    def wait(self, timeout: float | None = None) -> bool:
        try:
            self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        return True
