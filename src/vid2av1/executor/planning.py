"""Bitrate planning for a conversion request.

The output targets half the input size. The video bitrate is whatever that
budget leaves after the audio stream, using floor arithmetic only so the
same inputs always give the same plan.
"""

from __future__ import annotations

import logging
import math

from vid2av1.config.models import ConversionConfig
from vid2av1.errors import BitrateTooLowError, InputNotFoundError
from vid2av1.executor.command import default_output_for_input
from vid2av1.models import MIN_VIDEO_BITRATE_KBPS, ConversionPlan, ConversionRequest
from vid2av1.state import ConversionState
from vid2av1.tools.encoders import get_available_encoders, resolve_candidates
from vid2av1.tools.paths import ToolLocator
from vid2av1.tools.probe import FFprobeMediaProbe, MediaProbe

logger = logging.getLogger(__name__)


def target_size_bytes(input_size_bytes: int) -> int:
    """Planned output size for an input of the given size."""
    return input_size_bytes // 2


def compute_video_bitrate_kbps(
    target_size_bytes: int, duration_sec: float, audio_bitrate_kbps: int
) -> int:
    """Video bitrate that fits ``target_size_bytes`` over ``duration_sec``.

    Raises:
        BitrateTooLowError: If less than the minimum video bitrate remains.
    """
    total_bps = math.floor(target_size_bytes * 8 / duration_sec)
    total_kbps = total_bps // 1000
    video_kbps = total_kbps - audio_bitrate_kbps
    if video_kbps < MIN_VIDEO_BITRATE_KBPS:
        raise BitrateTooLowError(
            f"Computed video bitrate too low ({video_kbps} kbps). "
            "Use a larger source file."
        )
    return video_kbps


def build_conversion_plan(
    request: ConversionRequest,
    state: ConversionState,
    *,
    tool_locator: ToolLocator,
    probe: MediaProbe | None = None,
    config: ConversionConfig | None = None,
) -> ConversionPlan:
    """Build the plan for ``request``.

    Cancellation is checked before any work, before encoder discovery, and
    after each ffprobe call.

    Args:
        request: The conversion request.
        state: Shared state for cancellation and the encoder cache.
        tool_locator: Resolves the ffmpeg and ffprobe executables.
        probe: Media inspector. Defaults to ffprobe at the located path.
        config: Conversion settings. Defaults to ConversionConfig().

    Raises:
        CanceledByUserError: If cancellation is requested at a checkpoint.
        InputNotFoundError: If the input file does not exist.
        ToolNotFoundError: If ffmpeg or ffprobe cannot be found.
        EncoderDiscoveryError, NoEncoderAvailableError,
        RequestedEncoderUnavailableError: From encoder resolution.
        ProbeError: If the duration cannot be read.
        BitrateTooLowError: If the input is too small for its duration.
    """
    config = config or ConversionConfig()
    state.abort_if_cancel_requested()

    input_path = request.input_path
    if not input_path.exists():
        raise InputNotFoundError(f"Input file not found: {input_path}")

    output_path = default_output_for_input(input_path, config.output_suffix)
    ffmpeg_path = tool_locator.resolve("ffmpeg")
    ffprobe_path = tool_locator.resolve("ffprobe")

    state.abort_if_cancel_requested()
    available = get_available_encoders(state, ffmpeg_path)
    candidates = resolve_candidates(request.requested_encoder, available)

    try:
        input_size = input_path.stat().st_size
    except OSError as e:
        raise InputNotFoundError(f"Could not read input file metadata: {e}") from e
    target = target_size_bytes(input_size)

    if probe is None:
        probe = FFprobeMediaProbe(ffprobe_path)
    duration_sec = probe.read_duration(input_path)
    state.abort_if_cancel_requested()

    audio_kbps = probe.read_audio_bitrate_kbps(
        input_path, config.audio_bitrate_fallback_kbps
    )
    state.abort_if_cancel_requested()

    video_kbps = compute_video_bitrate_kbps(target, duration_sec, audio_kbps)

    plan = ConversionPlan(
        tool_path=ffmpeg_path,
        input_path=input_path,
        output_path=output_path,
        duration_sec=duration_sec,
        target_size_bytes=target,
        audio_bitrate_kbps=audio_kbps,
        video_bitrate_kbps=video_kbps,
        encoder_candidates=tuple(candidates),
    )
    logger.info(
        "Planned conversion: %d kbps video, %d kbps audio, candidates %s",
        video_kbps,
        audio_kbps,
        ", ".join(candidates),
        extra={
            "target_size_bytes": target,
            "duration_sec": duration_sec,
        },
    )
    return plan
