"""Data models for conversion requests, plans and results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

MIN_VIDEO_BITRATE_KBPS = 100


@dataclass(frozen=True)
class ConversionRequest:
    """A caller's request to convert one file.

    Attributes:
        input_path: Source video file.
        requested_encoder: Encoder name to try first, or None for automatic.
    """

    input_path: Path
    requested_encoder: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConversionRequest:
        """Build a request from its external mapping form.

        Accepts both ``inputPath``/``av1Encoder`` and the snake_case keys.
        Blank encoder names are treated as automatic selection.
        """
        raw_path = data.get("inputPath", data.get("input_path"))
        if not raw_path:
            raise ValueError("inputPath is required")
        encoder = data.get("av1Encoder", data.get("av1_encoder"))
        if isinstance(encoder, str):
            encoder = encoder.strip() or None
        return cls(input_path=Path(raw_path), requested_encoder=encoder)


@dataclass(frozen=True)
class ConversionPlan:
    """Everything needed to run the encode attempts for one request."""

    tool_path: Path
    input_path: Path
    output_path: Path
    duration_sec: float
    target_size_bytes: int
    audio_bitrate_kbps: int
    video_bitrate_kbps: int
    encoder_candidates: tuple[str, ...]

    def __post_init__(self) -> None:
        if self.duration_sec <= 0:
            raise ValueError(f"duration_sec must be positive, got {self.duration_sec}")
        if self.video_bitrate_kbps < MIN_VIDEO_BITRATE_KBPS:
            raise ValueError(
                f"video_bitrate_kbps must be at least {MIN_VIDEO_BITRATE_KBPS}, "
                f"got {self.video_bitrate_kbps}"
            )
        if not self.encoder_candidates:
            raise ValueError("encoder_candidates must not be empty")
        if len(set(self.encoder_candidates)) != len(self.encoder_candidates):
            raise ValueError("encoder_candidates must not contain duplicates")


@dataclass(frozen=True)
class ConversionSummary:
    """Result of a successful conversion."""

    output_path: Path
    target_size_bytes: int
    audio_bitrate_kbps: int
    video_bitrate_kbps: int
    av1_encoder: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase result shape."""
        return {
            "outputPath": str(self.output_path),
            "targetSizeBytes": self.target_size_bytes,
            "audioBitrateKbps": self.audio_bitrate_kbps,
            "videoBitrateKbps": self.video_bitrate_kbps,
            "av1Encoder": self.av1_encoder,
        }


@dataclass(frozen=True)
class ProgressEvent:
    """A progress notification for one encode attempt.

    Attributes:
        percent: Completion percentage in [0, 100].
        speed: Encoding speed as a multiple of realtime, if known.
        eta_seconds: Estimated seconds remaining, if speed is known.
        label: Human-readable attempt label, e.g. ``"AV1 (libsvtav1)"``.
    """

    percent: float
    speed: float | None
    eta_seconds: float | None
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "percent": self.percent,
            "speed": self.speed,
            "etaSeconds": self.eta_seconds,
            "label": self.label,
        }


@dataclass(frozen=True)
class EncodeAttempt:
    """A failed encode attempt recorded by the fallback loop."""

    encoder: str
    error_message: str
