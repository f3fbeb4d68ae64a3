"""Subprocess helpers for short-lived ffmpeg/ffprobe invocations.

Long-running encodes go through :mod:`vid2av1.executor.runner`; this module
covers the quick query calls (encoder listing, probing) that only need the
captured output and exit code.
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - subprocess is required for ffmpeg invocation
import sys
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Windows CREATE_NO_WINDOW; keeps console windows from flashing up when the
# host process is a GUI or a detached terminal.
_CREATE_NO_WINDOW = 0x08000000


def no_window_flags() -> int:
    """Return the creation flags that suppress a console window for children."""
    if sys.platform == "win32":
        return _CREATE_NO_WINDOW
    return 0


def run_command(
    args: list[str | Path],
    timeout: float = 30,
    **kwargs: Any,
) -> tuple[str, str, int]:
    """Run a command to completion and capture its output.

    Output is decoded as UTF-8 with replacement characters for invalid bytes.

    Args:
        args: Command and arguments. Path objects are converted to strings.
        timeout: Timeout in seconds.
        **kwargs: Additional subprocess.run arguments.

    Returns:
        Tuple of (stdout, stderr, returncode).

    Raises:
        OSError: If the executable cannot be started.
        subprocess.TimeoutExpired: If the command times out. The child has
            already been killed by subprocess.run at that point.
    """
    str_args = [str(arg) for arg in args]
    command_name = Path(str_args[0]).name if str_args else "unknown"

    logger.debug(
        "Executing command: %s",
        " ".join(str_args),
        extra={"command": command_name, "arg_count": len(str_args)},
    )
    kwargs.setdefault("creationflags", no_window_flags())

    start_time = time.monotonic()
    try:
        result = subprocess.run(  # nosec B603 - args built from resolved tool paths
            str_args,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            **kwargs,
        )
    except subprocess.TimeoutExpired:
        logger.warning(
            "Command timed out after %ss: %s",
            timeout,
            " ".join(str_args[:3]) + ("..." if len(str_args) > 3 else ""),
            extra={"command": command_name, "timeout_seconds": timeout},
        )
        raise

    elapsed = time.monotonic() - start_time
    logger.debug(
        "Command completed",
        extra={
            "command": command_name,
            "elapsed_seconds": round(elapsed, 3),
            "returncode": result.returncode,
        },
    )
    return result.stdout or "", result.stderr or "", result.returncode
