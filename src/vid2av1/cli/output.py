"""CLI output formatting for JSON and human-readable results."""

from __future__ import annotations

import json
import sys
from typing import Any, NoReturn

import click

from vid2av1.cli.exit_codes import ExitCode
from vid2av1.errors import Vid2Av1Error


def error_exit(
    error: Vid2Av1Error | str,
    code: ExitCode | int = ExitCode.GENERAL_ERROR,
    json_output: bool = False,
) -> NoReturn:
    """Print an error to stderr and exit.

    JSON output carries the stable error code of a Vid2Av1Error so scripts
    can tell cancellation from failure without parsing the message.
    """
    if isinstance(error, Vid2Av1Error):
        code_name, message = error.code, error.message
    else:
        code_name, message = "ERROR", error

    if json_output:
        click.echo(
            json.dumps(
                {"status": "failed", "error": {"code": code_name, "message": message}}
            ),
            err=True,
        )
    else:
        click.echo(f"Error: {message}", err=True)

    sys.exit(int(code))


def success_output(
    message: str, data: dict[str, Any] | None = None, json_output: bool = False
) -> None:
    """Print a successful result."""
    if json_output:
        click.echo(json.dumps({"status": "completed", **(data or {})}, indent=2))
    else:
        click.echo(message)
