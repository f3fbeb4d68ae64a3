"""Exception types and the error wire protocol.

Every failure surfaced by the conversion core is a ``Vid2Av1Error``. Each
subclass carries a stable machine-checkable ``code`` next to its
human-readable message, so callers can branch on cancellation without
string-matching free text.

Errors crossing a text-only boundary are encoded as::

    VID2AV1_ERROR|<CODE>|<message>

Strings without the prefix are plain messages.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vid2av1.models import EncodeAttempt

ERROR_PREFIX = "VID2AV1_ERROR"

ERROR_CODE_CANCELED_BY_USER = "CANCELED_BY_USER"
ERROR_CODE_NO_ACTIVE_CONVERSION = "NO_ACTIVE_CONVERSION"

CANCELED_BY_USER_MESSAGE = "Conversion canceled by user."
NO_ACTIVE_CONVERSION_MESSAGE = "No conversion is currently running."


class Vid2Av1Error(Exception):
    """Base exception for all conversion errors.

    Attributes:
        code: Stable error code, identical for every instance of a subclass.
        message: Human-readable description.
    """

    code: str = "ERROR"
    default_message: str = "Conversion failed."

    def __init__(self, message: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable message. Defaults to the class message.
        """
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_wire(self) -> str:
        """Encode this error in the structured wire format."""
        return encode_error(self.code, self.message)


class InputNotFoundError(Vid2Av1Error):
    """Raised when the input file does not exist."""

    code = "INPUT_NOT_FOUND"


class ToolNotFoundError(Vid2Av1Error):
    """Raised when ffmpeg or ffprobe cannot be located."""

    code = "TOOL_NOT_FOUND"


class ProbeError(Vid2Av1Error):
    """Raised when ffprobe fails or produces unusable output."""

    code = "PROBE_FAILED"


class BitrateTooLowError(Vid2Av1Error):
    """Raised when the computed video bitrate falls below the floor."""

    code = "BITRATE_TOO_LOW"


class NoEncoderAvailableError(Vid2Av1Error):
    """Raised when ffmpeg reports no usable AV1 encoder."""

    code = "NO_ENCODER_AVAILABLE"
    default_message = "No supported AV1 encoder found in ffmpeg."


class RequestedEncoderUnavailableError(Vid2Av1Error):
    """Raised when the caller asks for an encoder ffmpeg does not offer."""

    code = "REQUESTED_ENCODER_UNAVAILABLE"

    def __init__(self, encoder: str) -> None:
        self.encoder = encoder
        super().__init__(f"Requested AV1 encoder is unavailable: {encoder}")


class EncoderDiscoveryError(Vid2Av1Error):
    """Raised when ``ffmpeg -encoders`` cannot be run or fails."""

    code = "ENCODER_DISCOVERY_FAILED"


class SpawnError(Vid2Av1Error):
    """Raised when the ffmpeg process cannot be started."""

    code = "SPAWN_FAILED"


class PipeError(Vid2Av1Error):
    """Raised when a process pipe is missing or breaks while reading."""

    code = "PIPE_FAILED"


class EncodeFailedError(Vid2Av1Error):
    """Raised when ffmpeg exits non-zero without a cancellation request.

    Attributes:
        returncode: Process exit code.
        stderr: Captured stderr text.
    """

    code = "ENCODE_FAILED"

    def __init__(self, returncode: int, stderr: str) -> None:
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"ffmpeg failed: {stderr.strip() or f'exit code {returncode}'}")


class EncodersExhaustedError(Vid2Av1Error):
    """Raised when every candidate encoder failed.

    Attributes:
        encoders: All candidates in the order they were tried.
        attempts: One entry per failed attempt.
    """

    code = "ENCODERS_EXHAUSTED"

    def __init__(
        self, encoders: Sequence[str], attempts: Sequence[EncodeAttempt]
    ) -> None:
        self.encoders = tuple(encoders)
        self.attempts = tuple(attempts)
        last = attempts[-1] if attempts else None
        last_error = f"{last.encoder}: {last.error_message}" if last else ""
        super().__init__(
            f"All AV1 encoder attempts failed ({', '.join(self.encoders)}). "
            f"Last error: {last_error}"
        )


class CanceledByUserError(Vid2Av1Error):
    """Raised when a conversion stops because cancellation was requested."""

    code = ERROR_CODE_CANCELED_BY_USER
    default_message = CANCELED_BY_USER_MESSAGE


class ConcurrentConversionError(Vid2Av1Error):
    """Raised when a second conversion tries to claim the active slot."""

    code = "CONVERSION_ALREADY_RUNNING"
    default_message = "Another conversion is already running."


class StateLockError(Vid2Av1Error):
    """Raised when shared conversion state cannot be locked in time."""

    code = "STATE_LOCK_FAILED"


class NoActiveConversionError(Vid2Av1Error):
    """Raised when the active conversion is requested but nothing is running."""

    code = ERROR_CODE_NO_ACTIVE_CONVERSION
    default_message = NO_ACTIVE_CONVERSION_MESSAGE


@dataclass(frozen=True)
class DecodedError:
    """A wire-format error split into its parts."""

    code: str | None
    message: str


def encode_error(code: str, message: str) -> str:
    """Encode an error code and message in the wire format."""
    return f"{ERROR_PREFIX}|{code}|{message}"


def decode_error(text: str) -> DecodedError:
    """Split a wire-format error.

    Args:
        text: Encoded error or plain message.

    Returns:
        DecodedError. ``code`` is None for plain messages.
    """
    parts = text.split("|", 2)
    if len(parts) == 3 and parts[0] == ERROR_PREFIX:
        return DecodedError(code=parts[1], message=parts[2])
    return DecodedError(code=None, message=text)


def is_error_code(text: str, code: str) -> bool:
    """Check whether an encoded error carries the given code."""
    return decode_error(text).code == code
