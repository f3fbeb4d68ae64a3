"""AV1 encoder discovery and candidate ordering.

Functions in this module:
- parse_encoder_list: Extract AV1 video encoder names from ``ffmpeg -encoders``
- discover_capabilities: Run ffmpeg and parse its encoder list
- get_available_encoders: Cached discovery on a ConversionState
- resolve_candidates: Order encoders for the fallback loop
- pick_auto_encoder: Best available encoder when the user did not choose
- encoder_type: Classify an encoder as hardware or software
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - subprocess is required for encoder discovery
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from vid2av1.core.subprocess_utils import run_command
from vid2av1.errors import (
    EncoderDiscoveryError,
    NoEncoderAvailableError,
    RequestedEncoderUnavailableError,
)

if TYPE_CHECKING:
    from vid2av1.state import ConversionState

logger = logging.getLogger(__name__)

# Hardware encoders first, then the software encoders by quality/speed
# tradeoff, then the remaining hardware vendors.
PREFERRED_ENCODER_ORDER: tuple[str, ...] = (
    "av1_nvenc",
    "libsvtav1",
    "libaom-av1",
    "librav1e",
    "av1_qsv",
    "av1_amf",
    "av1_mf",
    "av1_vaapi",
)

# Encoder name suffix -> hardware platform
HARDWARE_PLATFORMS: dict[str, str] = {
    "_nvenc": "nvenc",
    "_qsv": "qsv",
    "_amf": "amf",
    "_mf": "mf",
    "_vaapi": "vaapi",
}

DISCOVERY_TIMEOUT = 10


def parse_encoder_list(output: str) -> list[str]:
    """Parse ``ffmpeg -encoders`` output into sorted AV1 video encoder names.

    Lines look like ``V....D libsvtav1  SVT-AV1(...)``; the first token holds
    capability flags with ``V`` marking a video encoder.
    """
    encoders: set[str] = set()
    for line in output.splitlines():
        if "av1" not in line:
            continue
        tokens = line.split()
        if len(tokens) < 2:
            continue
        if tokens[0].startswith("V"):
            encoders.add(tokens[1])
    return sorted(encoders)


def discover_capabilities(tool_path: Path) -> list[str]:
    """List the AV1 encoders the given ffmpeg binary supports.

    Raises:
        EncoderDiscoveryError: If ffmpeg cannot be run or exits non-zero.
    """
    try:
        stdout, stderr, returncode = run_command(
            [tool_path, "-hide_banner", "-encoders"], timeout=DISCOVERY_TIMEOUT
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise EncoderDiscoveryError(f"Failed to run ffmpeg -encoders: {e}") from e

    if returncode != 0:
        raise EncoderDiscoveryError(f"ffmpeg -encoders failed: {stderr.strip()}")

    encoders = parse_encoder_list(stdout)
    logger.debug("Discovered AV1 encoders: %s", ", ".join(encoders) or "none")
    return encoders


def get_available_encoders(state: ConversionState, tool_path: Path) -> list[str]:
    """Return the AV1 encoders for ``tool_path``, discovering them at most once.

    A cache hit on ``state`` skips the subprocess entirely. Use
    ``ConversionState.invalidate_encoder_cache`` to force rediscovery.
    """
    cached = state.get_cached_encoders()
    if cached is not None:
        return cached

    discovered = discover_capabilities(tool_path)
    state.set_cached_encoders(discovered)
    return list(discovered)


def resolve_candidates(requested: str | None, available: Sequence[str]) -> list[str]:
    """Order the encoders to try for one conversion.

    The requested encoder comes first, then every preferred encoder that is
    available, then any other available encoder in its original order. No
    encoder appears twice.

    Raises:
        NoEncoderAvailableError: If nothing is available.
        RequestedEncoderUnavailableError: If ``requested`` is not available.
    """
    if not available:
        raise NoEncoderAvailableError()

    available_set = set(available)
    ordered: list[str] = []

    def push_unique(encoder: str) -> None:
        if encoder not in ordered:
            ordered.append(encoder)

    if requested is not None:
        if requested not in available_set:
            raise RequestedEncoderUnavailableError(requested)
        push_unique(requested)

    for encoder in PREFERRED_ENCODER_ORDER:
        if encoder in available_set:
            push_unique(encoder)

    for encoder in available:
        push_unique(encoder)

    if not ordered:
        raise NoEncoderAvailableError()
    return ordered


def pick_auto_encoder(state: ConversionState, tool_path: Path) -> str:
    """Return the encoder automatic selection would try first."""
    available = get_available_encoders(state, tool_path)
    return resolve_candidates(None, available)[0]


def encoder_type(encoder: str) -> Literal["hardware", "software"]:
    """Classify an encoder by its name."""
    for suffix in HARDWARE_PLATFORMS:
        if encoder.endswith(suffix):
            return "hardware"
    return "software"
