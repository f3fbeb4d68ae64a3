"""Shared conversion state: single-flight slot, process registry, cancellation.

A ``ConversionState`` is owned by whoever drives conversions (the CLI uses
``get_default_state()``) and passed explicitly to every component that needs
it. Each piece of state has its own lock; locks are only held for the single
read or write that needs them, never across subprocess I/O or waits.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from enum import Enum

from vid2av1.errors import (
    CanceledByUserError,
    ConcurrentConversionError,
    NoActiveConversionError,
    PipeError,
    StateLockError,
)
from vid2av1.state.handles import ProcessHandle
from vid2av1.state.termination import Terminator, terminate_process_tree

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 5.0


class ConversionPhase(Enum):
    """Lifecycle of one conversion request."""

    IDLE = "idle"
    PLANNING = "planning"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class ActiveConversion:
    """The one conversion currently allowed to run.

    Holds the control handle of its encoder process and a per-conversion
    cancel flag, separate from the state-wide one.
    """

    def __init__(self, handle: ProcessHandle) -> None:
        self.handle = handle
        self._cancel_requested = threading.Event()

    @property
    def pid(self) -> int:
        return self.handle.pid

    def mark_cancel_requested(self) -> None:
        self._cancel_requested.set()

    def clear_cancel_requested(self) -> None:
        self._cancel_requested.clear()

    def is_cancel_requested(self) -> bool:
        return self._cancel_requested.is_set()

    def send_quit_command(self) -> bool:
        """Ask the encoder to stop gracefully.

        Returns:
            True if the request was delivered. Delivery failures are logged;
            the caller escalates to a forceful kill either way.
        """
        try:
            self.handle.graceful_stop()
        except PipeError as e:
            logger.warning("Could not send quit command to pid %d: %s", self.pid, e)
            return False
        return True


class ConversionState:
    """Process-wide conversion state, made explicit and injectable.

    Args:
        terminator: Kills a process tree by pid. Replaced in tests.
        lock_timeout: Seconds to wait for any internal lock before raising
            StateLockError.
    """

    def __init__(
        self,
        terminator: Terminator = terminate_process_tree,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ) -> None:
        self._terminator = terminator
        self._lock_timeout = lock_timeout

        self._active: ActiveConversion | None = None
        self._active_lock = threading.Lock()

        self._pids: set[int] = set()
        self._pids_lock = threading.Lock()

        self._encoder_cache: list[str] | None = None
        self._encoder_cache_lock = threading.Lock()

        self._cancel_requested = threading.Event()

    @contextmanager
    def _locked(self, lock: threading.Lock, what: str) -> Iterator[None]:
        if not lock.acquire(timeout=self._lock_timeout):
            raise StateLockError(f"Failed to lock {what} state.")
        try:
            yield
        finally:
            lock.release()

    # -- tracked processes --------------------------------------------------

    def register_pid(self, pid: int) -> None:
        with self._locked(self._pids_lock, "ffmpeg process"):
            self._pids.add(pid)

    def unregister_pid(self, pid: int) -> None:
        with self._locked(self._pids_lock, "ffmpeg process"):
            self._pids.discard(pid)

    def tracked_pids(self) -> set[int]:
        """Snapshot of the tracked process ids."""
        with self._locked(self._pids_lock, "ffmpeg process"):
            return set(self._pids)

    @contextmanager
    def tracked_process(self, pid: int) -> Generator[None, None, None]:
        """Track ``pid`` for termination sweeps for the duration of the block."""
        self.register_pid(pid)
        try:
            yield
        finally:
            try:
                self.unregister_pid(pid)
            except StateLockError as e:
                logger.warning("Could not untrack pid %d: %s", pid, e)

    # -- active conversion --------------------------------------------------

    def register_active(self, handle: ProcessHandle) -> ActiveConversion:
        """Claim the single active-conversion slot.

        Raises:
            ConcurrentConversionError: If another conversion holds the slot.
        """
        with self._locked(self._active_lock, "active conversion"):
            if self._active is not None:
                raise ConcurrentConversionError()
            self._active = ActiveConversion(handle)
            return self._active

    def unregister_active(self, pid: int) -> None:
        """Release the slot, but only if ``pid`` still owns it."""
        with self._locked(self._active_lock, "active conversion"):
            if self._active is not None and self._active.pid == pid:
                self._active = None

    @contextmanager
    def active_conversion(
        self, handle: ProcessHandle
    ) -> Generator[ActiveConversion, None, None]:
        """Hold the active-conversion slot for the duration of the block."""
        active = self.register_active(handle)
        try:
            yield active
        finally:
            try:
                self.unregister_active(active.pid)
            except StateLockError as e:
                logger.warning(
                    "Could not release active conversion for pid %d: %s",
                    active.pid,
                    e,
                )

    def get_active(self) -> ActiveConversion:
        """Return the running conversion.

        Raises:
            NoActiveConversionError: If nothing is running.
        """
        with self._locked(self._active_lock, "active conversion"):
            if self._active is None:
                raise NoActiveConversionError()
            return self._active

    def _set_active_cancel_requested(self, requested: bool) -> None:
        with self._locked(self._active_lock, "active conversion"):
            if self._active is None:
                return
            if requested:
                self._active.mark_cancel_requested()
            else:
                self._active.clear_cancel_requested()

    # -- encoder cache ------------------------------------------------------

    def get_cached_encoders(self) -> list[str] | None:
        with self._locked(self._encoder_cache_lock, "encoder cache"):
            if self._encoder_cache is None:
                return None
            return list(self._encoder_cache)

    def set_cached_encoders(self, encoders: list[str]) -> None:
        with self._locked(self._encoder_cache_lock, "encoder cache"):
            self._encoder_cache = list(encoders)

    def invalidate_encoder_cache(self) -> None:
        """Forget discovered encoders so the next lookup queries ffmpeg again."""
        with self._locked(self._encoder_cache_lock, "encoder cache"):
            self._encoder_cache = None

    # -- cancellation -------------------------------------------------------

    def is_cancel_requested(self) -> bool:
        """True if cancellation was requested globally or for the active run.

        If the active conversion cannot be inspected, cancellation is
        assumed.
        """
        if self._cancel_requested.is_set():
            return True
        try:
            with self._locked(self._active_lock, "active conversion"):
                return self._active is not None and self._active.is_cancel_requested()
        except StateLockError as e:
            logger.error("Failed to read active conversion cancel state: %s", e)
            return True

    def request_cancel(self) -> None:
        """Set the state-wide cancel flag."""
        self._cancel_requested.set()

    def clear_cancel_requested(self) -> None:
        """Clear both cancel flags. Safe to call at any time."""
        self._cancel_requested.clear()
        self._set_active_cancel_requested(False)

    def abort_if_cancel_requested(self) -> None:
        """Raise CanceledByUserError if cancellation was requested."""
        if self.is_cancel_requested():
            raise CanceledByUserError()

    def cancel_active_conversion(self, grace_seconds: float = 2.0) -> None:
        """Cancel the running conversion, if any.

        Sends the graceful quit, gives the process up to ``grace_seconds``
        to exit, then force-terminates every tracked process regardless.
        With nothing running this only sets the cancel flag.
        """
        self.request_cancel()

        try:
            active: ActiveConversion | None = self.get_active()
        except NoActiveConversionError:
            active = None

        if active is not None:
            logger.info("Canceling conversion", extra={"pid": active.pid})
            active.mark_cancel_requested()
            if active.send_quit_command() and grace_seconds > 0:
                if active.handle.wait(grace_seconds):
                    logger.debug("ffmpeg exited after quit command")

        self.terminate_all_active_ffmpeg()

    def terminate_all_active_ffmpeg(self) -> None:
        """Force-terminate every tracked ffmpeg process and mark all canceled."""
        self.request_cancel()
        self._set_active_cancel_requested(True)

        pids = self.tracked_pids()
        for pid in sorted(pids):
            self._terminator(pid)

        with self._locked(self._pids_lock, "ffmpeg process"):
            self._pids.difference_update(pids)
        if pids:
            logger.info("Terminated %d ffmpeg process(es)", len(pids))


_default_state: ConversionState | None = None
_default_state_lock = threading.Lock()


def get_default_state() -> ConversionState:
    """Return the lazily created state shared by a whole CLI session."""
    global _default_state
    with _default_state_lock:
        if _default_state is None:
            _default_state = ConversionState()
        return _default_state
