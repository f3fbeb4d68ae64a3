"""Configuration data models.

This module defines dataclasses for vid2av1 configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up in the
    bundled vendor directory and then in PATH.
    """

    ffmpeg: Path | None = None
    ffprobe: Path | None = None


@dataclass
class ConversionConfig:
    """Configuration for the conversion pipeline."""

    # Used when ffprobe cannot report the first audio stream's bitrate
    audio_bitrate_fallback_kbps: int = 128

    # Pin min/max rate to the target bitrate for a predictable output size
    strict_size: bool = True

    # Appended to the input stem to form the output file name
    output_suffix: str = ".av1.mp4"

    # Seconds to wait after the quit command before force-killing ffmpeg
    cancel_grace_seconds: float = 2.0

    # Progress emission throttling
    progress_interval_ms: int = 120
    progress_percent_step: float = 0.25

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.audio_bitrate_fallback_kbps < 0:
            raise ValueError(
                "audio_bitrate_fallback_kbps must be non-negative, "
                f"got {self.audio_bitrate_fallback_kbps}"
            )
        if not self.output_suffix.startswith("."):
            raise ValueError(
                f"output_suffix must start with '.', got {self.output_suffix}"
            )
        if self.cancel_grace_seconds < 0:
            raise ValueError(
                "cancel_grace_seconds must be non-negative, "
                f"got {self.cancel_grace_seconds}"
            )
        if self.progress_interval_ms < 0:
            raise ValueError(
                "progress_interval_ms must be non-negative, "
                f"got {self.progress_interval_ms}"
            )
        if self.progress_percent_step <= 0:
            raise ValueError(
                "progress_percent_step must be positive, "
                f"got {self.progress_percent_step}"
            )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class Vid2Av1Config:
    """Main configuration container.

    Aggregates all configuration sections.
    """

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    conversion: ConversionConfig = field(default_factory=ConversionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def get_tool_path(self, tool_name: str) -> Path | None:
        """Get configured path for a tool (ffmpeg or ffprobe), if any."""
        return getattr(self.tools, tool_name.lower(), None)
