"""Logging setup with JSON output, file rotation and conversion context."""

from vid2av1.logging.config import configure_logging
from vid2av1.logging.context import (
    ConversionContextFilter,
    conversion_context,
    get_conversion_context,
)
from vid2av1.logging.handlers import JSONFormatter

__all__ = [
    "ConversionContextFilter",
    "JSONFormatter",
    "configure_logging",
    "conversion_context",
    "get_conversion_context",
]
