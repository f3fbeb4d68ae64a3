"""Conversion service: plan once, then try encoders until one succeeds."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from vid2av1.config.models import ConversionConfig
from vid2av1.errors import (
    CanceledByUserError,
    ConcurrentConversionError,
    EncodersExhaustedError,
    NoActiveConversionError,
    Vid2Av1Error,
)
from vid2av1.executor.command import build_encode_args
from vid2av1.executor.planning import build_conversion_plan
from vid2av1.executor.runner import FFmpegRunner, ProgressCallback
from vid2av1.logging import conversion_context
from vid2av1.models import ConversionRequest, ConversionSummary, EncodeAttempt
from vid2av1.state import ConversionPhase, ConversionState
from vid2av1.tools.encoders import pick_auto_encoder
from vid2av1.tools.paths import ToolLocator
from vid2av1.tools.probe import MediaProbe

logger = logging.getLogger(__name__)

RunnerFactory = Callable[[ConversionState, ProgressCallback | None], FFmpegRunner]


def attempt_label(encoder: str) -> str:
    """Progress label for one encode attempt."""
    return f"AV1 ({encoder})"


@dataclass
class ConversionService:
    """Runs conversions against a shared ConversionState.

    Separates the conversion flow from the CLI so it can be driven with
    fake tools and runners in tests.
    """

    state: ConversionState
    config: ConversionConfig = field(default_factory=ConversionConfig)
    tool_locator: ToolLocator = field(default_factory=ToolLocator)
    probe: MediaProbe | None = None
    runner_factory: RunnerFactory | None = None
    progress_callback: ProgressCallback | None = None
    phase: ConversionPhase = field(default=ConversionPhase.IDLE, init=False)

    def _transition(self, phase: ConversionPhase) -> None:
        logger.debug("Conversion phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def _make_runner(self) -> FFmpegRunner:
        if self.runner_factory is not None:
            return self.runner_factory(self.state, self.progress_callback)
        return FFmpegRunner(
            self.state,
            self.progress_callback,
            progress_interval_ms=self.config.progress_interval_ms,
            progress_percent_step=self.config.progress_percent_step,
        )

    def convert(self, request: ConversionRequest) -> ConversionSummary:
        """Convert one file, falling back through encoder candidates.

        Cancellation at any point ends the whole conversion; any other
        per-encoder failure moves on to the next candidate.

        Raises:
            ConcurrentConversionError: If another conversion is running.
            CanceledByUserError: If cancellation was requested.
            EncodersExhaustedError: If every candidate failed.
            Vid2Av1Error: Any planning failure.
        """
        self._refuse_if_busy()
        self.state.clear_cancel_requested()

        with conversion_context(input_path=request.input_path):
            try:
                summary = self._convert(request)
            except CanceledByUserError:
                self._transition(ConversionPhase.CANCELED)
                raise
            except BaseException:
                self._transition(ConversionPhase.FAILED)
                raise
            self._transition(ConversionPhase.SUCCEEDED)
            return summary

    def _refuse_if_busy(self) -> None:
        # Must run before clear_cancel_requested: the running conversion keeps its flag.
        try:
            active = self.state.get_active()
        except NoActiveConversionError:
            return
        logger.warning("Refusing conversion while pid %d is running", active.pid)
        raise ConcurrentConversionError()

    def _convert(self, request: ConversionRequest) -> ConversionSummary:
        self._transition(ConversionPhase.PLANNING)
        plan = build_conversion_plan(
            request,
            self.state,
            tool_locator=self.tool_locator,
            probe=self.probe,
            config=self.config,
        )

        runner = self._make_runner()
        attempts: list[EncodeAttempt] = []
        self._transition(ConversionPhase.RUNNING)

        for encoder in plan.encoder_candidates:
            self.state.abort_if_cancel_requested()
            args = build_encode_args(plan, encoder, strict_size=self.config.strict_size)

            with conversion_context(encoder=encoder):
                logger.info("Starting encode attempt")
                try:
                    runner.run(plan.tool_path, args, plan.duration_sec, attempt_label(encoder))
                except (CanceledByUserError, ConcurrentConversionError):
                    raise
                except Vid2Av1Error as e:
                    logger.warning("Encode attempt failed: %s", e.message)
                    attempts.append(EncodeAttempt(encoder=encoder, error_message=e.message))
                    continue

            logger.info("Conversion finished: %s", plan.output_path)
            return ConversionSummary(
                output_path=plan.output_path,
                target_size_bytes=plan.target_size_bytes,
                audio_bitrate_kbps=plan.audio_bitrate_kbps,
                video_bitrate_kbps=plan.video_bitrate_kbps,
                av1_encoder=encoder,
            )

        raise EncodersExhaustedError(plan.encoder_candidates, attempts)

    def pick_auto_encoder(self) -> str:
        """Encoder that automatic selection would try first."""
        return pick_auto_encoder(self.state, self.tool_locator.resolve("ffmpeg"))

    def cancel(self) -> None:
        """Cancel the running conversion; a no-op success when idle."""
        self.state.cancel_active_conversion(self.config.cancel_grace_seconds)
