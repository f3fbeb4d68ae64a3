"""``vid2av1 convert`` command."""

from __future__ import annotations

import json
import logging
import signal
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

import click

from vid2av1.cli import build_service
from vid2av1.cli.exit_codes import ExitCode
from vid2av1.cli.output import error_exit, success_output
from vid2av1.errors import CanceledByUserError, Vid2Av1Error
from vid2av1.executor import ConversionService
from vid2av1.models import ConversionRequest, ConversionSummary, ProgressEvent

logger = logging.getLogger(__name__)

# How often the main thread wakes up to check for a cancel signal
_POLL_INTERVAL = 0.2


class ProgressPrinter:
    """Renders progress events on stderr.

    Text mode rewrites a single status line; JSON mode writes one object
    per event.
    """

    def __init__(self, json_output: bool = False) -> None:
        self.json_output = json_output
        self._printed = False

    def __call__(self, event: ProgressEvent) -> None:
        if self.json_output:
            click.echo(json.dumps({"progress": event.to_dict()}), err=True)
            return

        parts = [f"{event.label}: {event.percent:5.1f}%"]
        if event.speed is not None:
            parts.append(f"{event.speed:.2f}x")
        if event.eta_seconds is not None:
            minutes, seconds = divmod(int(event.eta_seconds), 60)
            parts.append(f"ETA {minutes:d}:{seconds:02d}")
        click.echo("\r" + "  ".join(parts).ljust(60), err=True, nl=False)
        self._printed = True

    def finish(self) -> None:
        """End the status line so later output starts on a fresh line."""
        if self._printed:
            click.echo("", err=True)
            self._printed = False


class CancelSignal:
    """Turns SIGINT/SIGTERM into a cancel request while installed."""

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self) -> None:
        self.event = threading.Event()
        self._previous: dict[int, object] = {}

    def _handler(self, signum: int, frame) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, canceling conversion...", sig_name)
        self.event.set()

    def __enter__(self) -> CancelSignal:
        # Signal handlers can only be installed from the main thread.
        if threading.current_thread() is threading.main_thread():
            for signum in self.SIGNALS:
                self._previous[signum] = signal.signal(signum, self._handler)
        return self

    def __exit__(self, *exc_info: object) -> None:
        for signum, previous in self._previous.items():
            signal.signal(signum, previous)
        self._previous.clear()


def run_conversion(
    service: ConversionService,
    request: ConversionRequest,
    cancel_event: threading.Event,
) -> ConversionSummary:
    """Run ``service.convert`` on a worker thread.

    The calling thread stays free to notice ``cancel_event`` and cancel the
    running encode; the worker's outcome (summary or exception) is returned
    or re-raised once it finishes.
    """
    with ThreadPoolExecutor(
        max_workers=1, thread_name_prefix="vid2av1-convert"
    ) as pool:
        future: Future[ConversionSummary] = pool.submit(service.convert, request)
        canceled = False
        while not future.done():
            if cancel_event.wait(_POLL_INTERVAL) and not canceled:
                canceled = True
                service.cancel()
        return future.result()


@click.command("convert")
@click.argument("input_path", type=click.Path(path_type=Path, dir_okay=False))
@click.option(
    "--encoder",
    "encoder",
    default=None,
    help="AV1 encoder to try first (default: best available).",
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def convert_command(
    ctx: click.Context, input_path: Path, encoder: str | None, json_output: bool
) -> None:
    """Re-encode INPUT_PATH to AV1 at half its size.

    The output is written next to the input as <name>.av1.mp4. Press
    Ctrl-C to cancel; the running ffmpeg is stopped and nothing keeps
    running in the background.
    """
    printer = ProgressPrinter(json_output)
    service = build_service(ctx, printer)
    request = ConversionRequest(input_path=input_path, requested_encoder=encoder)

    try:
        with CancelSignal() as cancel_signal:
            summary = run_conversion(service, request, cancel_signal.event)
    except CanceledByUserError as e:
        printer.finish()
        error_exit(e, ExitCode.INTERRUPTED, json_output)
    except Vid2Av1Error as e:
        printer.finish()
        logger.debug("Conversion failed", exc_info=True)
        error_exit(e, ExitCode.GENERAL_ERROR, json_output)

    printer.finish()
    success_output(
        f"Wrote {summary.output_path} using {summary.av1_encoder} "
        f"({summary.video_bitrate_kbps} kbps video, "
        f"{summary.audio_bitrate_kbps} kbps audio, "
        f"target {summary.target_size_bytes} bytes)",
        summary.to_dict(),
        json_output,
    )
