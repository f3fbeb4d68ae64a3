"""Tests for JSONFormatter."""

import json
import logging

from vid2av1.logging import ConversionContextFilter, JSONFormatter, conversion_context


def format_record(record: logging.LogRecord) -> dict:
    ConversionContextFilter().filter(record)
    return json.loads(JSONFormatter().format(record))


class TestJSONFormatter:
    """Tests for structured log output."""

    def test_basic_fields(self) -> None:
        record = logging.LogRecord(
            "vid2av1.executor", logging.WARNING, __file__, 1, "failed %s", ("x",), None
        )
        entry = format_record(record)

        assert entry["level"] == "WARNING"
        assert entry["message"] == "failed x"
        assert entry["logger"] == "vid2av1.executor"
        assert entry["timestamp"].endswith("+00:00")
        assert "context" not in entry

    def test_extra_and_conversion_context(self) -> None:
        record = logging.LogRecord(
            "vid2av1", logging.INFO, __file__, 1, "done", None, None
        )
        record.returncode = 0
        with conversion_context(input_path="/videos/a.mkv", encoder="libaom-av1"):
            entry = format_record(record)

        assert entry["context"] == {
            "returncode": 0,
            "input_path": "/videos/a.mkv",
            "encoder": "libaom-av1",
        }

    def test_exception(self) -> None:
        try:
            raise ValueError("bad")
        except ValueError:
            import sys

            record = logging.LogRecord(
                "vid2av1", logging.ERROR, __file__, 1, "oops", None, sys.exc_info()
            )
        entry = format_record(record)
        assert "ValueError: bad" in entry["exception"]
