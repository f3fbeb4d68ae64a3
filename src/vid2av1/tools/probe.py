"""Media inspection through ffprobe."""

from __future__ import annotations

import logging
import math
import subprocess  # nosec B404 - subprocess is required for ffprobe invocation
from pathlib import Path
from typing import Protocol

from vid2av1.core.subprocess_utils import run_command
from vid2av1.errors import ProbeError

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 60


class MediaProbe(Protocol):
    """Reads the media properties bitrate planning needs."""

    def read_duration(self, input_path: Path) -> float:
        """Container duration in seconds; always > 0."""
        ...

    def read_audio_bitrate_kbps(self, input_path: Path, fallback_kbps: int) -> int:
        """First audio stream bitrate in kbps, or ``fallback_kbps``."""
        ...


def _first_line_as_float(output: str) -> float:
    for line in output.splitlines():
        if line.strip():
            try:
                return float(line.strip())
            except ValueError as e:
                raise ProbeError(f"Parse error: {e}") from e
    raise ProbeError("Expected ffprobe output.")


class FFprobeMediaProbe:
    """MediaProbe backed by the ffprobe executable."""

    def __init__(self, ffprobe_path: Path) -> None:
        self.ffprobe_path = ffprobe_path

    def _query(self, input_path: Path, stream: str, entry: str) -> tuple[str, str, int]:
        args = [
            self.ffprobe_path,
            "-v",
            "error",
            "-select_streams",
            stream,
            "-show_entries",
            entry,
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            input_path,
        ]
        try:
            return run_command(args, timeout=PROBE_TIMEOUT)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ProbeError(f"Failed to run ffprobe: {e}") from e

    def read_duration(self, input_path: Path) -> float:
        """Read the container duration.

        Raises:
            ProbeError: If ffprobe fails, prints nothing usable, or reports
                a non-positive or non-finite duration.
        """
        stdout, stderr, returncode = self._query(input_path, "v:0", "format=duration")
        if returncode != 0:
            raise ProbeError(f"ffprobe failed: {stderr.strip()}")

        duration = _first_line_as_float(stdout)
        if not math.isfinite(duration) or duration <= 0:
            raise ProbeError("Duration must be > 0.")
        return duration

    def read_audio_bitrate_kbps(self, input_path: Path, fallback_kbps: int) -> int:
        """Read the first audio stream's bitrate, floored to whole kbps.

        Files without audio, or whose audio bitrate ffprobe cannot report,
        get ``fallback_kbps``.
        """
        stdout, _, returncode = self._query(input_path, "a:0", "stream=bit_rate")
        if returncode != 0:
            return fallback_kbps

        try:
            bit_rate = _first_line_as_float(stdout)
        except ProbeError:
            logger.debug("No audio bitrate for %s, using %d kbps", input_path, fallback_kbps)
            return fallback_kbps
        if not math.isfinite(bit_rate) or bit_rate <= 0:
            return fallback_kbps
        return math.floor(bit_rate / 1000)
