"""Tests for the convert CLI command."""

import json
import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from vid2av1.cli import main
from vid2av1.cli.convert import CancelSignal, ProgressPrinter, run_conversion
from vid2av1.cli.exit_codes import ExitCode
from vid2av1.errors import CanceledByUserError, EncodeFailedError
from vid2av1.executor import ConversionService
from vid2av1.models import ConversionRequest, ProgressEvent
from vid2av1.state import ConversionState


class FakeLocator:
    def resolve(self, name: str) -> Path:
        return Path(f"/opt/ffmpeg/bin/{name}")


class FakeProbe:
    def read_duration(self, input_path: Path) -> float:
        return 10.0

    def read_audio_bitrate_kbps(self, input_path: Path, fallback_kbps: int) -> int:
        return 128


class FakeRunner:
    """Emits one progress event, then succeeds or raises."""

    def __init__(self, callback, error: Exception | None = None) -> None:
        self.callback = callback
        self.error = error

    def run(self, tool_path, args, duration_sec, label) -> None:
        if self.callback is not None:
            self.callback(ProgressEvent(50.0, 2.0, 2.5, label))
        if self.error is not None:
            raise self.error


def make_obj(state: ConversionState, error: Exception | None = None) -> dict:
    state.set_cached_encoders(["libsvtav1"])

    def service_factory(callback):
        return ConversionService(
            state=state,
            tool_locator=FakeLocator(),
            probe=FakeProbe(),
            runner_factory=lambda st, cb: FakeRunner(cb, error),
            progress_callback=callback,
        )

    return {"state": state, "service_factory": service_factory}


class TestConvertCommand:
    """Tests for vid2av1 convert."""

    def test_success_text(self, runner, state, input_file: Path) -> None:
        result = runner.invoke(
            main, ["convert", str(input_file)], obj=make_obj(state)
        )

        assert result.exit_code == 0, result.output
        assert "holiday.av1.mp4" in result.stdout
        assert "libsvtav1" in result.stdout
        assert "672 kbps video" in result.stdout
        assert "AV1 (libsvtav1):  50.0%" in result.stderr

    def test_success_json(self, runner, state, input_file: Path) -> None:
        result = runner.invoke(
            main, ["convert", str(input_file), "--json"], obj=make_obj(state)
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data == {
            "status": "completed",
            "outputPath": str(input_file.parent / "holiday.av1.mp4"),
            "targetSizeBytes": 1_000_000,
            "audioBitrateKbps": 128,
            "videoBitrateKbps": 672,
            "av1Encoder": "libsvtav1",
        }
        assert '"progress"' in result.stderr

    def test_missing_input(self, runner, state, tmp_path: Path) -> None:
        result = runner.invoke(
            main,
            ["convert", str(tmp_path / "missing.mkv"), "--json"],
            obj=make_obj(state),
        )

        assert result.exit_code == ExitCode.GENERAL_ERROR
        error = json.loads(result.stderr.strip().splitlines()[-1])
        assert error["status"] == "failed"
        assert error["error"]["code"] == "INPUT_NOT_FOUND"

    def test_unavailable_encoder(self, runner, state, input_file: Path) -> None:
        result = runner.invoke(
            main,
            ["convert", str(input_file), "--encoder", "av1_qsv"],
            obj=make_obj(state),
        )

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "Requested AV1 encoder is unavailable: av1_qsv" in result.stderr

    def test_encode_failure(self, runner, state, input_file: Path) -> None:
        result = runner.invoke(
            main,
            ["convert", str(input_file)],
            obj=make_obj(state, EncodeFailedError(1, "boom")),
        )

        assert result.exit_code == ExitCode.GENERAL_ERROR
        assert "All AV1 encoder attempts failed (libsvtav1)" in result.stderr

    def test_canceled(self, runner, state, input_file: Path) -> None:
        """Cancellation exits with the interrupted code."""
        result = runner.invoke(
            main,
            ["convert", str(input_file), "--json"],
            obj=make_obj(state, CanceledByUserError()),
        )

        assert result.exit_code == ExitCode.INTERRUPTED
        error = json.loads(result.stderr.strip().splitlines()[-1])
        assert error["error"]["code"] == "CANCELED_BY_USER"


class TestRunConversion:
    """Tests for run_conversion."""

    def test_returns_summary(self) -> None:
        service = MagicMock()
        service.convert.return_value = "summary"
        request = ConversionRequest(Path("/videos/a.mkv"))

        assert run_conversion(service, request, threading.Event()) == "summary"
        service.cancel.assert_not_called()

    def test_cancel_event_cancels_once(self) -> None:
        """Setting the event cancels the running service exactly once."""
        started = threading.Event()
        release = threading.Event()
        cancel_event = threading.Event()
        service = MagicMock()

        def convert(request):
            started.set()
            assert release.wait(5)
            raise CanceledByUserError()

        def cancel():
            release.set()

        service.convert.side_effect = convert
        service.cancel.side_effect = cancel

        def trigger():
            started.wait(5)
            cancel_event.set()

        threading.Thread(target=trigger, daemon=True).start()

        with pytest.raises(CanceledByUserError):
            run_conversion(service, ConversionRequest(Path("/a.mkv")), cancel_event)
        service.cancel.assert_called_once_with()


class TestCancelSignal:
    """Tests for CancelSignal."""

    def test_handler_sets_event_and_restores(self) -> None:
        import signal

        previous = signal.getsignal(signal.SIGTERM)
        with CancelSignal() as cancel_signal:
            handler = signal.getsignal(signal.SIGTERM)
            handler(signal.SIGTERM, None)
            assert cancel_signal.event.is_set()
        assert signal.getsignal(signal.SIGTERM) is previous


class TestProgressPrinter:
    """Tests for ProgressPrinter."""

    def test_text_line(self, capsys) -> None:
        printer = ProgressPrinter()
        printer(ProgressEvent(42.5, 1.5, 75.0, "AV1 (libsvtav1)"))
        printer.finish()

        err = capsys.readouterr().err
        assert "\rAV1 (libsvtav1):  42.5%  1.50x  ETA 1:15" in err
        assert err.endswith("\n")

    def test_unknown_speed(self, capsys) -> None:
        ProgressPrinter()(ProgressEvent(10.0, None, None, "AV1 (libaom-av1)"))
        err = capsys.readouterr().err
        assert "x" not in err.split(":", 1)[1]
        assert "ETA" not in err

    def test_json_line(self, capsys) -> None:
        ProgressPrinter(json_output=True)(ProgressEvent(100.0, 2.0, 0.0, "AV1 (a)"))
        line = json.loads(capsys.readouterr().err)
        assert line == {
            "progress": {
                "percent": 100.0,
                "speed": 2.0,
                "etaSeconds": 0.0,
                "label": "AV1 (a)",
            }
        }
