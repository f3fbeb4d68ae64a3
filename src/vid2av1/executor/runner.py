"""Supervised ffmpeg execution with progress reporting.

``FFmpegRunner.run`` spawns one encode attempt, registers it with the shared
``ConversionState`` (tracked pid plus the single active-conversion slot),
streams ``-progress`` output into throttled ``ProgressEvent`` callbacks, and
classifies the exit status.
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - subprocess is required for ffmpeg invocation
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import IO

from vid2av1.core.subprocess_utils import no_window_flags
from vid2av1.errors import (
    CanceledByUserError,
    EncodeFailedError,
    PipeError,
    SpawnError,
)
from vid2av1.models import ProgressEvent
from vid2av1.state import ConversionState, PopenProcessHandle
from vid2av1.state.termination import Terminator, terminate_process_tree
from vid2av1.tools.ffmpeg_progress import (
    PROGRESS_EMIT_INTERVAL_MS,
    PROGRESS_EMIT_PERCENT_STEP,
    FFmpegProgress,
    ProgressThrottle,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]

# Machine-readable progress on stdout; only real errors on stderr.
PROGRESS_ARGS = ("-progress", "pipe:1", "-nostats", "-loglevel", "error")


def _read_lines(stream: IO[str]) -> Iterator[str]:
    while True:
        try:
            line = stream.readline()
        except (OSError, ValueError) as e:
            raise PipeError(f"Failed to read ffmpeg output: {e}") from e
        if not line:
            return
        yield line


class FFmpegRunner:
    """Runs single ffmpeg encode attempts under a ConversionState.

    Args:
        state: Shared conversion state.
        progress_callback: Receives throttled progress events.
        progress_interval_ms: Maximum silence between progress events.
        progress_percent_step: Percent advance that forces an event.
        popen: Process factory, ``subprocess.Popen`` by default.
        terminator: Tree-kill used by the active conversion's handle.
        clock: Monotonic clock used for throttling.
    """

    STDERR_DRAIN_TIMEOUT: float = 5.0

    def __init__(
        self,
        state: ConversionState,
        progress_callback: ProgressCallback | None = None,
        *,
        progress_interval_ms: int = PROGRESS_EMIT_INTERVAL_MS,
        progress_percent_step: float = PROGRESS_EMIT_PERCENT_STEP,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        terminator: Terminator = terminate_process_tree,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.state = state
        self.progress_callback = progress_callback
        self.progress_interval_ms = progress_interval_ms
        self.progress_percent_step = progress_percent_step
        self._popen = popen
        self._terminator = terminator
        self._clock = clock

    def run(
        self,
        tool_path: Path,
        args: list[str],
        duration_sec: float,
        label: str,
    ) -> None:
        """Run ffmpeg to completion.

        Args:
            tool_path: ffmpeg executable.
            args: ffmpeg arguments, without the progress flags.
            duration_sec: Input duration, used to compute percentages.
            label: Label attached to every progress event.

        Raises:
            CanceledByUserError: If cancellation was requested before the
                spawn or while ffmpeg was running, whatever its exit code.
            SpawnError: If ffmpeg could not be started.
            PipeError: If a pipe is missing or reading stdout fails.
            ConcurrentConversionError: If another conversion is active.
            EncodeFailedError: If ffmpeg exited non-zero on its own.
        """
        self.state.abort_if_cancel_requested()

        cmd = [str(tool_path), *args, *PROGRESS_ARGS]
        logger.debug("Starting ffmpeg: %s", " ".join(cmd))
        try:
            process = self._popen(  # nosec B603 - args built from plan values
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                creationflags=no_window_flags(),
            )
        except (OSError, ValueError) as e:
            raise SpawnError(f"Failed to start ffmpeg: {e}") from e

        with self.state.tracked_process(process.pid):
            try:
                self._supervise(process, duration_sec, label)
            except BaseException:
                self._kill_and_reap(process)
                raise
            finally:
                self._close_pipes(process)

    def _supervise(
        self, process: subprocess.Popen, duration_sec: float, label: str
    ) -> None:
        handle = PopenProcessHandle(process, self._terminator)
        with self.state.active_conversion(handle):
            if process.stdout is None:
                raise PipeError("No ffmpeg stdout.")
            if process.stderr is None:
                raise PipeError("No ffmpeg stderr.")

            stderr_chunks: list[str] = []
            reader = threading.Thread(
                target=self._drain_stderr,
                args=(process.stderr, stderr_chunks),
                name=f"ffmpeg-stderr-{process.pid}",
                daemon=True,
            )
            reader.start()

            progress = self._follow_progress(process.stdout, duration_sec, label)

            returncode = process.wait()
            reader.join(timeout=self.STDERR_DRAIN_TIMEOUT)
            if reader.is_alive():
                logger.warning("Stderr reader for pid %d did not finish", process.pid)

            # ffmpeg exits 0 after a quit command, leaving a truncated file.
            if self.state.is_cancel_requested():
                logger.info(
                    "ffmpeg stopped after cancellation",
                    extra={"returncode": returncode},
                )
                raise CanceledByUserError()
            if returncode != 0:
                stderr_text = "".join(stderr_chunks)
                logger.warning(
                    "ffmpeg exited with code %d",
                    returncode,
                    extra={"returncode": returncode},
                )
                raise EncodeFailedError(returncode, stderr_text)

        self._emit(
            ProgressEvent(
                percent=100.0,
                speed=progress.speed,
                eta_seconds=0.0,
                label=label,
            )
        )

    def _follow_progress(
        self, stdout: IO[str], duration_sec: float, label: str
    ) -> FFmpegProgress:
        """Consume the progress stream until EOF, emitting throttled events."""
        progress = FFmpegProgress()
        throttle = ProgressThrottle(
            interval_ms=self.progress_interval_ms,
            percent_step=self.progress_percent_step,
            clock=self._clock,
        )
        for line in _read_lines(stdout):
            if not progress.update(line) or duration_sec <= 0:
                continue
            # Never report going backwards within an attempt.
            percent = max(progress.get_percent(duration_sec), throttle.last_percent)
            if not throttle.should_emit(percent):
                continue
            self._emit(
                ProgressEvent(
                    percent=percent,
                    speed=progress.speed if progress.speed > 0 else None,
                    eta_seconds=progress.get_eta_seconds(duration_sec),
                    label=label,
                )
            )
        return progress

    def _emit(self, event: ProgressEvent) -> None:
        if self.progress_callback is not None:
            self.progress_callback(event)

    @staticmethod
    def _drain_stderr(stream: IO[str], chunks: list[str]) -> None:
        try:
            for line in stream:
                chunks.append(line)
        except (OSError, ValueError) as e:
            logger.debug("Stderr reader stopped: %s", e)

    @staticmethod
    def _kill_and_reap(process: subprocess.Popen) -> None:
        if process.poll() is None:
            logger.warning("Killing ffmpeg pid %d after supervision error", process.pid)
            try:
                process.kill()
            except OSError as e:
                logger.debug("Kill of pid %d failed: %s", process.pid, e)
        process.wait()

    @staticmethod
    def _close_pipes(process: subprocess.Popen) -> None:
        for stream in (process.stdin, process.stdout, process.stderr):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError as e:
                logger.debug("Closing ffmpeg pipe failed: %s", e)
