"""FFmpeg progress parsing utilities.

ffmpeg run with ``-progress pipe:1`` writes ``key=value`` lines to stdout
and closes each block with ``progress=continue`` (or ``progress=end``).
This module turns that stream into percent/speed/ETA values and decides
when a progress notification is worth emitting.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

# Emission thresholds
PROGRESS_EMIT_INTERVAL_MS = 120
PROGRESS_EMIT_PERCENT_STEP = 0.25
PROGRESS_ALWAYS_EMIT_PERCENT = 99.9


@dataclass
class FFmpegProgress:
    """Latest values seen in an ffmpeg ``-progress`` stream."""

    out_time_seconds: float = 0.0
    speed: float = 0.0

    def get_percent(self, duration_seconds: float) -> float:
        """Progress percentage clamped to [0, 100]."""
        if duration_seconds <= 0:
            return 0.0
        return min(100.0, max(0.0, self.out_time_seconds / duration_seconds * 100))

    def get_eta_seconds(self, duration_seconds: float) -> float | None:
        """Seconds remaining at the current speed, or None if speed is unknown."""
        if self.speed <= 0:
            return None
        return max(duration_seconds - self.out_time_seconds, 0.0) / self.speed

    def update(self, line: str) -> bool:
        """Fold one line of progress output into the current values.

        ``out_time_ms`` is in microseconds despite its name. Unparseable
        values (such as ``N/A``) leave the previous value untouched.

        Returns:
            True when the line closes a progress block (``progress=continue``).
        """
        key, sep, value = line.strip().partition("=")
        if not sep:
            return False

        if key == "out_time_ms":
            try:
                self.out_time_seconds = float(value) / 1_000_000
            except ValueError:
                pass
        elif key == "speed":
            if value.endswith("x"):
                try:
                    self.speed = float(value[:-1].strip())
                except ValueError:
                    pass
        elif key == "progress":
            return value == "continue"
        return False


@dataclass
class ProgressThrottle:
    """Rate limiter for progress notifications.

    A value is emitted when it reaches the near-complete threshold, when it
    advanced by at least ``percent_step`` since the last emission, or when
    ``interval_ms`` elapsed since the last emission. The first value is
    always emitted.
    """

    interval_ms: int = PROGRESS_EMIT_INTERVAL_MS
    percent_step: float = PROGRESS_EMIT_PERCENT_STEP
    clock: Callable[[], float] = time.monotonic
    last_percent: float = field(default=0.0, init=False)
    _last_emit_at: float | None = field(default=None, init=False)

    def should_emit(self, percent: float) -> bool:
        """Decide whether to emit ``percent``; records the emission if so."""
        now = self.clock()
        due = (
            self._last_emit_at is None
            or (now - self._last_emit_at) * 1000 >= self.interval_ms
        )
        if not (
            percent >= PROGRESS_ALWAYS_EMIT_PERCENT
            or percent - self.last_percent >= self.percent_step
            or due
        ):
            return False
        self._last_emit_at = now
        self.last_percent = max(self.last_percent, percent)
        return True
