"""Locating the ffmpeg and ffprobe executables.

A bundled copy under ``vendor/ffmpeg/bin`` takes priority over whatever is
on PATH, so a packaged build always uses the binaries it ships with.
"""

from __future__ import annotations

import logging
import shutil
import sys
from collections.abc import Sequence
from pathlib import Path

from vid2av1.config.models import ToolPathsConfig
from vid2av1.errors import ToolNotFoundError

logger = logging.getLogger(__name__)

VENDOR_BIN = Path("vendor") / "ffmpeg" / "bin"


def tool_filename(name: str) -> str:
    """Platform-specific executable file name for a tool."""
    if sys.platform == "win32" and not name.lower().endswith(".exe"):
        return f"{name}.exe"
    return name


def default_search_roots() -> list[Path]:
    """Directories searched for a bundled ``vendor/ffmpeg/bin``."""
    exe_dir = Path(sys.executable).resolve().parent
    return [exe_dir, exe_dir.parent, Path.cwd()]


class ToolLocator:
    """Resolves tool names to executable paths.

    Lookup order: the configured path, ``vendor/ffmpeg/bin/<name>`` under
    each search root, the executable's own directory, then PATH.
    """

    def __init__(
        self,
        tools: ToolPathsConfig | None = None,
        search_roots: Sequence[Path] | None = None,
    ) -> None:
        self.tools = tools or ToolPathsConfig()
        self.search_roots = (
            list(search_roots) if search_roots is not None else default_search_roots()
        )

    def candidates(self, name: str) -> list[Path]:
        """All filesystem locations checked for ``name``, de-duplicated, in order."""
        filename = tool_filename(name)
        result: list[Path] = []

        def push(candidate: Path) -> None:
            if candidate not in result:
                result.append(candidate)

        configured = getattr(self.tools, name, None)
        if configured is not None:
            push(Path(configured))
        for root in self.search_roots:
            push(root / VENDOR_BIN / filename)
        if self.search_roots:
            push(self.search_roots[0] / filename)
        return result

    def resolve(self, name: str) -> Path:
        """Find the executable for ``name`` ("ffmpeg" or "ffprobe").

        Raises:
            ToolNotFoundError: If no candidate exists and PATH has no match.
        """
        configured = getattr(self.tools, name, None)
        for candidate in self.candidates(name):
            if candidate.is_file():
                return candidate
            if candidate == configured:
                logger.warning(
                    "Configured path for %s is not a file: %s", name, candidate
                )

        which_result = shutil.which(name)
        if which_result:
            return Path(which_result)

        raise ToolNotFoundError(f"Could not find {tool_filename(name)}.")
