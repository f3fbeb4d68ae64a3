"""Configuration management for vid2av1.

Configuration is loaded with precedence handling:
1. CLI flags (highest priority)
2. Environment variables (VID2AV1_*)
3. Config file (~/.vid2av1/config.toml)
4. Default values (lowest priority)
"""

from vid2av1.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from vid2av1.config.env import EnvReader
from vid2av1.config.loader import (
    ConfigFileError,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
)
from vid2av1.config.models import (
    ConversionConfig,
    LoggingConfig,
    ToolPathsConfig,
    Vid2Av1Config,
)

__all__ = [
    # Models
    "ConversionConfig",
    "LoggingConfig",
    "ToolPathsConfig",
    "Vid2Av1Config",
    # Builder
    "ConfigBuilder",
    "ConfigSource",
    "source_from_env",
    "source_from_file",
    # Env
    "EnvReader",
    # Loader
    "ConfigFileError",
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
]
