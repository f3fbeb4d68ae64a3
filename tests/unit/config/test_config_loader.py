"""Tests for configuration loading and layering."""

from pathlib import Path

import pytest

from vid2av1.config import (
    ConfigBuilder,
    ConfigFileError,
    ConfigSource,
    ConversionConfig,
    EnvReader,
    LoggingConfig,
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
    source_from_file,
)


@pytest.fixture(autouse=True)
def fresh_cache():
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(
        """
[tools]
ffmpeg = "/opt/ffmpeg/bin/ffmpeg"

[conversion]
cancel_grace_seconds = 1.5
audio_bitrate_fallback_kbps = 96
strict_size = false

[logging]
level = "debug"
format = "json"
"""
    )
    return path


class TestModels:
    """Validation in the config dataclasses."""

    def test_defaults(self) -> None:
        config = ConversionConfig()
        assert config.cancel_grace_seconds == 2.0
        assert config.output_suffix == ".av1.mp4"
        assert config.strict_size is True

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"audio_bitrate_fallback_kbps": -1},
            {"output_suffix": "av1.mp4"},
            {"cancel_grace_seconds": -0.1},
            {"progress_interval_ms": -5},
            {"progress_percent_step": 0},
        ],
    )
    def test_invalid_conversion_values(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            ConversionConfig(**kwargs)

    def test_invalid_logging_values(self) -> None:
        with pytest.raises(ValueError):
            LoggingConfig(level="verbose")
        with pytest.raises(ValueError):
            LoggingConfig(format="xml")


class TestConfigBuilder:
    """Tests for layering ConfigSources."""

    def test_later_sources_override(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(cancel_grace_seconds=1.0, logging_level="debug"))
        builder.apply(ConfigSource(cancel_grace_seconds=3.0))

        config = builder.build()

        assert config.conversion.cancel_grace_seconds == 3.0
        assert config.logging.level == "debug"

    def test_none_does_not_override(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(strict_size=False))
        builder.apply(ConfigSource(strict_size=None))
        assert builder.build().conversion.strict_size is False

    def test_source_from_file(self) -> None:
        source = source_from_file(
            {"tools": {"ffprobe": "/usr/local/bin/ffprobe"}, "logging": {"file": ""}}
        )
        assert source.ffprobe_path == Path("/usr/local/bin/ffprobe")
        assert source.ffmpeg_path is None
        assert source.logging_file is None


class TestLoadConfigFile:
    """Tests for load_config_file."""

    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_config_file(tmp_path / "none.toml") == {}

    def test_parses_toml(self, config_file: Path) -> None:
        data = load_config_file(config_file)
        assert data["conversion"]["cancel_grace_seconds"] == 1.5

    def test_invalid_toml_lenient(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.toml"
        path.write_text("[conversion\n")
        assert load_config_file(path) == {}

    def test_invalid_toml_strict(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.toml"
        path.write_text("[conversion\n")
        with pytest.raises(ConfigFileError) as exc_info:
            load_config_file(path, strict=True)
        assert exc_info.value.path == path

    def test_cached_until_modified(self, config_file: Path) -> None:
        import os

        first = load_config_file(config_file)
        assert load_config_file(config_file) is first

        config_file.write_text('[logging]\nlevel = "error"\n')
        stat = config_file.stat()
        os.utime(config_file, (stat.st_atime, stat.st_mtime + 10))

        assert load_config_file(config_file)["logging"]["level"] == "error"


class TestGetConfig:
    """Tests for get_config precedence."""

    def test_file_values(self, config_file: Path) -> None:
        config = get_config(config_file, env_reader=EnvReader({}))

        assert config.tools.ffmpeg == Path("/opt/ffmpeg/bin/ffmpeg")
        assert config.conversion.cancel_grace_seconds == 1.5
        assert config.conversion.audio_bitrate_fallback_kbps == 96
        assert config.conversion.strict_size is False
        assert config.logging.format == "json"

    def test_env_overrides_file(self, config_file: Path) -> None:
        env = EnvReader(
            {"VID2AV1_CANCEL_GRACE_SECONDS": "0.25", "VID2AV1_LOG_LEVEL": "WARNING"}
        )
        config = get_config(config_file, env_reader=env)

        assert config.conversion.cancel_grace_seconds == 0.25
        assert config.logging.level == "warning"

    def test_cli_overrides_env(self, config_file: Path) -> None:
        env = EnvReader({"VID2AV1_LOG_LEVEL": "warning"})
        config = get_config(
            config_file, log_level="error", log_format="text", env_reader=env
        )

        assert config.logging.level == "error"
        assert config.logging.format == "text"

    def test_env_tool_path(self, tmp_path: Path) -> None:
        ffprobe = tmp_path / "ffprobe"
        ffprobe.touch()
        env = EnvReader({"VID2AV1_FFPROBE_PATH": str(ffprobe)})

        config = get_config(tmp_path / "none.toml", env_reader=env)

        assert config.get_tool_path("ffprobe") == ffprobe
        assert config.get_tool_path("ffmpeg") is None

    def test_config_path_from_env(self, config_file: Path) -> None:
        env = EnvReader({"VID2AV1_CONFIG_PATH": str(config_file)})

        assert get_default_config_path(env) == config_file
        assert get_config(env_reader=env).conversion.cancel_grace_seconds == 1.5

    def test_invalid_merged_value(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text('[conversion]\noutput_suffix = "mp4"\n')

        with pytest.raises(ValueError):
            get_config(path, env_reader=EnvReader({}))
