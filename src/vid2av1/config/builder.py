"""Configuration builder with explicit layering.

Each configuration source (file, environment, CLI) is reduced to a
``ConfigSource`` of optional values. ``ConfigBuilder`` applies them in order
of increasing precedence and fills anything still unset with defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from vid2av1.config.env import (
    ENV_CANCEL_GRACE_SECONDS,
    ENV_FFMPEG_PATH,
    ENV_FFPROBE_PATH,
    ENV_LOG_LEVEL,
    EnvReader,
)
from vid2av1.config.models import (
    ConversionConfig,
    LoggingConfig,
    ToolPathsConfig,
    Vid2Av1Config,
)


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values mean "not specified in this source" and never override
    values from lower-precedence sources.
    """

    # Tool paths
    ffmpeg_path: Path | None = None
    ffprobe_path: Path | None = None

    # Conversion
    audio_bitrate_fallback_kbps: int | None = None
    strict_size: bool | None = None
    output_suffix: str | None = None
    cancel_grace_seconds: float | None = None
    progress_interval_ms: int | None = None
    progress_percent_step: float | None = None

    # Logging
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None


class ConfigBuilder:
    """Builds Vid2Av1Config by layering ConfigSources.

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config))
        builder.apply(source_from_env(reader))
        builder.apply(cli_source)
        config = builder.build()
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def apply(self, source: ConfigSource) -> None:
        """Apply a source; its non-None values override existing ones."""
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> Vid2Av1Config:
        """Build the final config with defaults for unset values.

        Raises:
            ValueError: If a resolved value fails model validation.
        """
        defaults = ConversionConfig()
        log_defaults = LoggingConfig()

        tools = ToolPathsConfig(
            ffmpeg=self._get("ffmpeg_path", None),
            ffprobe=self._get("ffprobe_path", None),
        )

        conversion = ConversionConfig(
            audio_bitrate_fallback_kbps=self._get(
                "audio_bitrate_fallback_kbps", defaults.audio_bitrate_fallback_kbps
            ),
            strict_size=self._get("strict_size", defaults.strict_size),
            output_suffix=self._get("output_suffix", defaults.output_suffix),
            cancel_grace_seconds=self._get(
                "cancel_grace_seconds", defaults.cancel_grace_seconds
            ),
            progress_interval_ms=self._get(
                "progress_interval_ms", defaults.progress_interval_ms
            ),
            progress_percent_step=self._get(
                "progress_percent_step", defaults.progress_percent_step
            ),
        )

        logging_config = LoggingConfig(
            level=self._get("logging_level", log_defaults.level),
            file=self._get("logging_file", log_defaults.file),
            format=self._get("logging_format", log_defaults.format),
            include_stderr=self._get(
                "logging_include_stderr", log_defaults.include_stderr
            ),
            max_bytes=self._get("logging_max_bytes", log_defaults.max_bytes),
            backup_count=self._get("logging_backup_count", log_defaults.backup_count),
        )

        return Vid2Av1Config(tools=tools, conversion=conversion, logging=logging_config)


def _optional_path(value: Any) -> Path | None:
    return Path(value).expanduser() if value else None


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create a ConfigSource from a parsed TOML config file.

    Expected layout::

        [tools]
        ffmpeg = "/opt/ffmpeg/bin/ffmpeg"

        [conversion]
        cancel_grace_seconds = 1.5

        [logging]
        level = "debug"
    """
    tools = file_config.get("tools", {})
    conversion = file_config.get("conversion", {})
    logging_conf = file_config.get("logging", {})

    return ConfigSource(
        ffmpeg_path=_optional_path(tools.get("ffmpeg")),
        ffprobe_path=_optional_path(tools.get("ffprobe")),
        audio_bitrate_fallback_kbps=conversion.get("audio_bitrate_fallback_kbps"),
        strict_size=conversion.get("strict_size"),
        output_suffix=conversion.get("output_suffix"),
        cancel_grace_seconds=conversion.get("cancel_grace_seconds"),
        progress_interval_ms=conversion.get("progress_interval_ms"),
        progress_percent_step=conversion.get("progress_percent_step"),
        logging_level=logging_conf.get("level"),
        logging_file=_optional_path(logging_conf.get("file")),
        logging_format=logging_conf.get("format"),
        logging_include_stderr=logging_conf.get("include_stderr"),
        logging_max_bytes=logging_conf.get("max_bytes"),
        logging_backup_count=logging_conf.get("backup_count"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create a ConfigSource from ``VID2AV1_*`` environment variables."""
    level = reader.get_str(ENV_LOG_LEVEL)
    return ConfigSource(
        ffmpeg_path=reader.get_path(ENV_FFMPEG_PATH),
        ffprobe_path=reader.get_path(ENV_FFPROBE_PATH),
        cancel_grace_seconds=reader.get_float(ENV_CANCEL_GRACE_SECONDS),
        logging_level=level.lower() if level else None,
    )
