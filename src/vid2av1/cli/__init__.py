"""Command-line interface for vid2av1."""

import atexit
import logging
from pathlib import Path

import click

from vid2av1.config import ConfigFileError, Vid2Av1Config, get_config
from vid2av1.executor import ConversionService, ProgressCallback
from vid2av1.logging import configure_logging
from vid2av1.state import ConversionState, get_default_state
from vid2av1.tools.paths import ToolLocator

_atexit_registered: bool = False

logger = logging.getLogger(__name__)


def _terminate_on_exit() -> None:
    """Make sure no ffmpeg started by this session outlives it."""
    get_default_state().terminate_all_active_ffmpeg()


def _register_shutdown_hook() -> None:
    global _atexit_registered
    if not _atexit_registered:
        atexit.register(_terminate_on_exit)
        _atexit_registered = True


def get_state(ctx: click.Context) -> ConversionState:
    """ConversionState for this invocation (injectable through ctx.obj)."""
    return ctx.obj["state"]


def build_service(
    ctx: click.Context, progress_callback: ProgressCallback | None = None
) -> ConversionService:
    """ConversionService wired to this invocation's config and state."""
    if "service_factory" in ctx.obj:
        return ctx.obj["service_factory"](progress_callback)
    config: Vid2Av1Config = ctx.obj["config"]
    return ConversionService(
        state=get_state(ctx),
        config=config.conversion,
        tool_locator=ToolLocator(config.tools),
        progress_callback=progress_callback,
    )


@click.group()
@click.version_option(package_name="vid2av1")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Config file (default: ~/.vid2av1/config.toml).",
)
@click.pass_context
def main(
    ctx: click.Context,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
    config_path: Path | None,
) -> None:
    """vid2av1 - shrink videos to half their size with AV1."""
    ctx.ensure_object(dict)

    try:
        config = get_config(
            config_path,
            log_level=log_level.lower() if log_level else None,
            log_file=log_file,
            log_format="json" if log_json else None,
            strict=config_path is not None,
        )
    except (ConfigFileError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    configure_logging(config.logging)
    ctx.obj["config"] = config

    # Preserve a state passed in by tests
    if "state" not in ctx.obj:
        ctx.obj["state"] = get_default_state()
        _register_shutdown_hook()


def _register_commands() -> None:
    from vid2av1.cli.convert import convert_command
    from vid2av1.cli.encoders import encoders_command, pick_encoder_command

    main.add_command(convert_command)
    main.add_command(encoders_command)
    main.add_command(pick_encoder_command)


_register_commands()
