"""``vid2av1 encoders`` and ``vid2av1 pick-encoder`` commands."""

from __future__ import annotations

import json

import click

from vid2av1.cli import build_service, get_state
from vid2av1.cli.output import error_exit
from vid2av1.errors import Vid2Av1Error
from vid2av1.tools.encoders import (
    encoder_type,
    get_available_encoders,
    resolve_candidates,
)


@click.command("encoders")
@click.option(
    "--refresh",
    is_flag=True,
    help="Query ffmpeg again instead of using cached results.",
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format.")
@click.pass_context
def encoders_command(ctx: click.Context, refresh: bool, json_output: bool) -> None:
    """List available AV1 encoders in the order they would be tried."""
    state = get_state(ctx)
    service = build_service(ctx)
    try:
        if refresh:
            state.invalidate_encoder_cache()
        ffmpeg_path = service.tool_locator.resolve("ffmpeg")
        ordered = resolve_candidates(None, get_available_encoders(state, ffmpeg_path))
    except Vid2Av1Error as e:
        error_exit(e, json_output=json_output)

    if json_output:
        click.echo(
            json.dumps(
                [{"name": name, "type": encoder_type(name)} for name in ordered],
                indent=2,
            )
        )
        return

    for position, name in enumerate(ordered, start=1):
        click.echo(f"{position:2d}. {name} ({encoder_type(name)})")


@click.command("pick-encoder")
@click.pass_context
def pick_encoder_command(ctx: click.Context) -> None:
    """Print the AV1 encoder automatic selection would use."""
    service = build_service(ctx)
    try:
        click.echo(service.pick_auto_encoder())
    except Vid2Av1Error as e:
        error_exit(e)
