"""ffmpeg argument construction for size-targeted AV1 encodes."""

from __future__ import annotations

from pathlib import Path

from vid2av1.models import ConversionPlan

DEFAULT_OUTPUT_SUFFIX = ".av1.mp4"
MIN_BUFSIZE_KBPS = 1000
OUTPUT_AUDIO_CODEC = "aac"


def default_output_for_input(
    input_path: Path, suffix: str = DEFAULT_OUTPUT_SUFFIX
) -> Path:
    """Output path next to the input: ``videos/input.mkv`` -> ``videos/input.av1.mp4``."""
    return input_path.parent / f"{input_path.stem}{suffix}"


def video_rate_args(
    video_bitrate_kbps: int, strict_size: bool, encoder: str
) -> list[str]:
    """Rate-control arguments for the video stream.

    With ``strict_size`` the min and max rate are pinned to the target so
    the output lands close to the planned size. NVENC additionally needs
    explicit constant-bitrate mode for that to hold.
    """
    rate = f"{video_bitrate_kbps}k"
    args = ["-b:v", rate]
    if not strict_size:
        return args

    if encoder == "av1_nvenc":
        args += ["-rc", "cbr"]
    bufsize = max(video_bitrate_kbps * 2, MIN_BUFSIZE_KBPS)
    args += ["-minrate", rate, "-maxrate", rate, "-bufsize", f"{bufsize}k"]
    return args


def build_encode_args(
    plan: ConversionPlan, encoder: str, strict_size: bool = True
) -> list[str]:
    """Full ffmpeg argument list (without the executable) for one attempt."""
    return [
        "-y",
        "-i",
        str(plan.input_path),
        "-c:v",
        encoder,
        *video_rate_args(plan.video_bitrate_kbps, strict_size, encoder),
        "-c:a",
        OUTPUT_AUDIO_CODEC,
        "-b:a",
        f"{plan.audio_bitrate_kbps}k",
        "-movflags",
        "+faststart",
        str(plan.output_path),
    ]
