"""Process exit codes for CLI commands."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes returned by vid2av1 commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    INTERRUPTED = 130
