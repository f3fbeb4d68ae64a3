"""Conversion execution: planning, argument building, supervision, fallback."""

from vid2av1.executor.command import (
    build_encode_args,
    default_output_for_input,
    video_rate_args,
)
from vid2av1.executor.planning import (
    build_conversion_plan,
    compute_video_bitrate_kbps,
    target_size_bytes,
)
from vid2av1.executor.runner import FFmpegRunner, ProgressCallback
from vid2av1.executor.service import ConversionService

__all__ = [
    "ConversionService",
    "FFmpegRunner",
    "ProgressCallback",
    "build_conversion_plan",
    "build_encode_args",
    "compute_video_bitrate_kbps",
    "default_output_for_input",
    "target_size_bytes",
    "video_rate_args",
]
