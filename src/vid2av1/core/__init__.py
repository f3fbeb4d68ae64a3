"""Core utilities shared by the tool wrappers and the encode runner."""

from vid2av1.core.subprocess_utils import no_window_flags, run_command

__all__ = [
    "no_window_flags",
    "run_command",
]
