"""Tests for FFprobeMediaProbe."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from vid2av1.errors import ProbeError
from vid2av1.tools.probe import FFprobeMediaProbe

FFPROBE = Path("/opt/ffmpeg/bin/ffprobe")
INPUT = Path("/videos/holiday.mkv")


@pytest.fixture
def probe() -> FFprobeMediaProbe:
    return FFprobeMediaProbe(FFPROBE)


class TestReadDuration:
    """Tests for read_duration."""

    @patch("vid2av1.tools.probe.run_command")
    def test_parses_duration(self, mock_run, probe: FFprobeMediaProbe) -> None:
        """The first line of output is the duration."""
        mock_run.return_value = ("120.500000\n", "", 0)

        assert probe.read_duration(INPUT) == 120.5
        args = mock_run.call_args.args[0]
        assert args[0] == FFPROBE
        assert "format=duration" in args
        assert args[-1] == INPUT

    @patch("vid2av1.tools.probe.run_command")
    def test_nonzero_exit(self, mock_run, probe: FFprobeMediaProbe) -> None:
        mock_run.return_value = ("", "Invalid data found\n", 1)

        with pytest.raises(ProbeError, match="Invalid data found"):
            probe.read_duration(INPUT)

    @patch("vid2av1.tools.probe.run_command")
    @pytest.mark.parametrize("output", ["0\n", "-3\n", "nan\n", "inf\n"])
    def test_rejects_non_positive(
        self, mock_run, probe: FFprobeMediaProbe, output: str
    ) -> None:
        """Durations must be finite and positive."""
        mock_run.return_value = (output, "", 0)

        with pytest.raises(ProbeError, match="Duration must be > 0"):
            probe.read_duration(INPUT)

    @patch("vid2av1.tools.probe.run_command")
    def test_unparseable(self, mock_run, probe: FFprobeMediaProbe) -> None:
        mock_run.return_value = ("N/A\n", "", 0)

        with pytest.raises(ProbeError, match="Parse error"):
            probe.read_duration(INPUT)

    @patch("vid2av1.tools.probe.run_command")
    def test_empty_output(self, mock_run, probe: FFprobeMediaProbe) -> None:
        mock_run.return_value = ("\n", "", 0)

        with pytest.raises(ProbeError, match="Expected ffprobe output"):
            probe.read_duration(INPUT)

    @patch("vid2av1.tools.probe.run_command")
    def test_spawn_failure(self, mock_run, probe: FFprobeMediaProbe) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired("ffprobe", 60)

        with pytest.raises(ProbeError, match="Failed to run ffprobe"):
            probe.read_duration(INPUT)


class TestReadAudioBitrate:
    """Tests for read_audio_bitrate_kbps."""

    @patch("vid2av1.tools.probe.run_command")
    def test_floors_to_kbps(self, mock_run, probe: FFprobeMediaProbe) -> None:
        """Bits per second are floored to whole kilobits."""
        mock_run.return_value = ("192999\n", "", 0)

        assert probe.read_audio_bitrate_kbps(INPUT, 128) == 192

    @patch("vid2av1.tools.probe.run_command")
    @pytest.mark.parametrize(
        ("stdout", "returncode"),
        [("", 0), ("N/A\n", 0), ("0\n", 0), ("192000\n", 1)],
    )
    def test_fallback(
        self, mock_run, probe: FFprobeMediaProbe, stdout: str, returncode: int
    ) -> None:
        """Missing, unknown or failed audio probes use the fallback."""
        mock_run.return_value = (stdout, "", returncode)

        assert probe.read_audio_bitrate_kbps(INPUT, 96) == 96

    @patch("vid2av1.tools.probe.run_command")
    def test_spawn_failure_raises(self, mock_run, probe: FFprobeMediaProbe) -> None:
        """An ffprobe that cannot start is an error, not a fallback."""
        mock_run.side_effect = PermissionError("denied")

        with pytest.raises(ProbeError):
            probe.read_audio_bitrate_kbps(INPUT, 96)
