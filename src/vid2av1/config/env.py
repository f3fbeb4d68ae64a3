"""Environment variable reader.

``EnvReader`` parses ``VID2AV1_*`` variables with type conversion. It takes
an optional mapping in place of ``os.environ`` so configuration code can be
tested without touching the real environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_FFMPEG_PATH = "VID2AV1_FFMPEG_PATH"
ENV_FFPROBE_PATH = "VID2AV1_FFPROBE_PATH"
ENV_LOG_LEVEL = "VID2AV1_LOG_LEVEL"
ENV_CANCEL_GRACE_SECONDS = "VID2AV1_CANCEL_GRACE_SECONDS"
ENV_CONFIG_PATH = "VID2AV1_CONFIG_PATH"

_TRUE_VALUES = ("true", "1", "yes", "on")


class EnvReader:
    """Typed access to environment variables.

    Invalid numeric values are logged and replaced by the default rather than
    raised, so a typo in the environment never prevents startup.

    Example:
        reader = EnvReader(env={"VID2AV1_CANCEL_GRACE_SECONDS": "0.5"})
        reader.get_float("VID2AV1_CANCEL_GRACE_SECONDS")  # 0.5
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def get_str(self, var: str, default: str | None = None) -> str | None:
        """Get a string value. Empty strings count as unset."""
        value = self._env.get(var)
        if not value:
            return default
        return value

    def get_int(self, var: str, default: int | None = None) -> int | None:
        """Get an integer value, or default if unset or unparseable."""
        value = self.get_str(var)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer value for %s: %s", var, value)
            return default

    def get_float(self, var: str, default: float | None = None) -> float | None:
        """Get a float value, or default if unset or unparseable."""
        value = self.get_str(var)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float value for %s: %s", var, value)
            return default

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Get a boolean value.

        "true", "1", "yes" and "on" (any case) are true; any other non-empty
        value is false.
        """
        value = self.get_str(var)
        if value is None:
            return default
        return value.lower() in _TRUE_VALUES

    def get_path(
        self, var: str, must_exist: bool = True, default: Path | None = None
    ) -> Path | None:
        """Get a path value with tilde expansion.

        Args:
            var: Environment variable name.
            must_exist: If True, a path that does not exist is logged and
                replaced by the default.
            default: Value returned when unset or missing.
        """
        value = self.get_str(var)
        if value is None:
            return default

        path = Path(value).expanduser()
        if must_exist and not path.exists():
            logger.warning(
                "Environment variable %s points to non-existent path: %s",
                var,
                value,
            )
            return default
        return path
