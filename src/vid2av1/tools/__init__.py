"""External tool integration: discovery, probing and progress parsing."""

from vid2av1.tools.encoders import (
    PREFERRED_ENCODER_ORDER,
    discover_capabilities,
    get_available_encoders,
    parse_encoder_list,
    pick_auto_encoder,
    resolve_candidates,
)
from vid2av1.tools.ffmpeg_progress import FFmpegProgress, ProgressThrottle
from vid2av1.tools.paths import ToolLocator
from vid2av1.tools.probe import FFprobeMediaProbe, MediaProbe

__all__ = [
    "PREFERRED_ENCODER_ORDER",
    "FFmpegProgress",
    "FFprobeMediaProbe",
    "MediaProbe",
    "ProgressThrottle",
    "ToolLocator",
    "discover_capabilities",
    "get_available_encoders",
    "parse_encoder_list",
    "pick_auto_encoder",
    "resolve_candidates",
]
