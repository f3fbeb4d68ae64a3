"""Configuration loader with precedence handling.

Configuration is resolved with the following precedence (highest first):
1. CLI arguments (passed directly to get_config)
2. Environment variables (VID2AV1_*)
3. Config file (~/.vid2av1/config.toml)
4. Default values

Environment variables:
- VID2AV1_FFMPEG_PATH: Path to the ffmpeg executable
- VID2AV1_FFPROBE_PATH: Path to the ffprobe executable
- VID2AV1_LOG_LEVEL: Log level (debug, info, warning, error)
- VID2AV1_CANCEL_GRACE_SECONDS: Grace window before force-killing on cancel
- VID2AV1_CONFIG_PATH: Path to the config file (overrides default location)
"""

from __future__ import annotations

import logging
import threading
import tomllib
from pathlib import Path
from typing import Any

from vid2av1.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from vid2av1.config.env import ENV_CONFIG_PATH, EnvReader
from vid2av1.config.models import Vid2Av1Config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".vid2av1"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# path -> (parsed dict, mtime); reloaded automatically when the file changes
_config_cache: dict[Path, tuple[dict[str, Any], float]] = {}
_config_cache_lock = threading.Lock()


class ConfigFileError(Exception):
    """Raised in strict mode when the config file cannot be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config file {path}: {reason}")


def get_default_config_path(env_reader: EnvReader | None = None) -> Path:
    """Get the config file path, honoring VID2AV1_CONFIG_PATH."""
    reader = env_reader or EnvReader()
    env_path = reader.get_path(ENV_CONFIG_PATH, must_exist=False)
    return env_path if env_path is not None else DEFAULT_CONFIG_FILE


def _read_toml(path: Path, *, strict: bool) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        if strict:
            raise ConfigFileError(path, str(e)) from e
        logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from a TOML file.

    Results are cached and reloaded when the file's mtime changes.
    Thread-safe.

    Args:
        path: Path to config file. If None, uses the default location.
        strict: If True, raise ConfigFileError on read or parse failures.
            Otherwise log a warning and use an empty config.

    Returns:
        Parsed configuration dict. Empty dict if the file doesn't exist.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        result = _read_toml(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def get_config(
    config_path: Path | None = None,
    # CLI overrides (highest precedence)
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
    log_level: str | None = None,
    log_file: Path | None = None,
    log_format: str | None = None,
    # Optional dependency injection for testing
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> Vid2Av1Config:
    """Get configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides VID2AV1_CONFIG_PATH).
        ffmpeg_path: CLI override for the ffmpeg path.
        ffprobe_path: CLI override for the ffprobe path.
        log_level: CLI override for the log level.
        log_file: CLI override for the log file.
        log_format: CLI override for the log format ("text" or "json").
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise ConfigFileError for an unparseable file.

    Returns:
        Vid2Av1Config with merged configuration.

    Raises:
        ConfigFileError: When strict=True and the config file is invalid.
        ValueError: When a merged value fails validation.
    """
    reader = env_reader or EnvReader()
    if config_path is None:
        config_path = get_default_config_path(reader)

    file_config = load_config_file(config_path, strict=strict)

    cli_source = ConfigSource(
        ffmpeg_path=ffmpeg_path,
        ffprobe_path=ffprobe_path,
        logging_level=log_level,
        logging_file=log_file,
        logging_format=log_format,
    )

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config))
    builder.apply(source_from_env(reader))
    builder.apply(cli_source)
    return builder.build()
