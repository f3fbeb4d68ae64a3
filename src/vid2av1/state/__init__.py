"""Single-flight conversion state, process tracking and cancellation."""

from vid2av1.state.handles import PopenProcessHandle, ProcessHandle
from vid2av1.state.registry import (
    ActiveConversion,
    ConversionPhase,
    ConversionState,
    get_default_state,
)
from vid2av1.state.termination import Terminator, terminate_process_tree

__all__ = [
    "ActiveConversion",
    "ConversionPhase",
    "ConversionState",
    "PopenProcessHandle",
    "ProcessHandle",
    "Terminator",
    "get_default_state",
    "terminate_process_tree",
]
