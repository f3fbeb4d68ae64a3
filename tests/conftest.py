"""Shared test fixtures for vid2av1."""

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from vid2av1.state import ConversionState


@pytest.fixture
def terminator() -> MagicMock:
    """Stand-in for the process tree killer; records the pids it was given."""
    return MagicMock(name="terminator")


@pytest.fixture
def state(terminator: MagicMock) -> ConversionState:
    """Fresh, isolated conversion state that never kills real processes."""
    return ConversionState(terminator=terminator, lock_timeout=0.05)


@pytest.fixture
def input_file(tmp_path: Path) -> Path:
    """A 2,000,000 byte stand-in for a source video."""
    path = tmp_path / "videos" / "holiday.mkv"
    path.parent.mkdir()
    path.write_bytes(b"\0" * 2_000_000)
    return path


@pytest.fixture
def runner() -> CliRunner:
    """Click test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Undo handler changes made by configure_logging during a test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
