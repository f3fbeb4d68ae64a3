"""Conversion context for structured logging.

Tracks the input file and the encoder attempt currently being run in
contextvars, so every log record emitted during a conversion can be tagged
without threading the values through each call.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_input_path: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "input_path", default=None
)
_encoder: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "encoder", default=None
)


@contextmanager
def conversion_context(
    input_path: Path | str | None = None,
    encoder: str | None = None,
) -> Generator[None, None, None]:
    """Set the conversion context for the duration of the block.

    Arguments left as None keep the value of any enclosing context, so an
    encoder attempt can be nested inside the per-file context.

    Example:
        with conversion_context(input_path="/videos/a.mkv"):
            with conversion_context(encoder="libsvtav1"):
                logger.info("Starting attempt")  # tagged [a.mkv:libsvtav1]
    """
    tokens = []
    if input_path is not None:
        tokens.append((_input_path, _input_path.set(str(input_path))))
    if encoder is not None:
        tokens.append((_encoder, _encoder.set(encoder)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def get_conversion_context() -> tuple[str | None, str | None]:
    """Return (input_path, encoder) for the current context."""
    return _input_path.get(), _encoder.get()


class ConversionContextFilter(logging.Filter):
    """Logging filter that injects conversion context into log records.

    Adds ``input_path`` and ``encoder`` attributes for JSON output and a
    compact ``conversion_tag`` such as ``[movie.mkv:libsvtav1] `` for text
    output. Never drops records.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        input_path, encoder = get_conversion_context()
        record.input_path = input_path
        record.encoder = encoder

        if input_path and encoder:
            record.conversion_tag = f"[{Path(input_path).name}:{encoder}] "
        elif input_path:
            record.conversion_tag = f"[{Path(input_path).name}] "
        else:
            record.conversion_tag = ""
        return True
