"""Entry point: the ``adjctl`` command group.

Global flags are folded into one :class:`AdjSettings`; subcommands reach it
through the :class:`AppContext` stored on ``ctx.obj``.
"""

from __future__ import annotations

from pathlib import Path

import click

from adjctl import __version__
from adjctl.commands import register_commands
from adjctl.commands._context import AppContext
from adjctl.config.settings import AdjSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="adjctl")
@click.option("--json", "json_output", is_flag=True, help="Emit results as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Print only the essentials.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and timing spans.")
@click.option("--log-json", is_flag=True, help="Write log lines to stderr as JSON.")
@click.option("-c", "--config", "config_path", default=None, help="Path to an adjctl.toml.")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding .adjctl/ (default: next to adjctl.toml, else cwd).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    root: Path | None,
) -> None:
    """Keep redistricting unit adjacency symmetric and group totals current."""
    ctx.obj = AppContext(
        AdjSettings.from_cli(
            config_path=config_path,
            root=root,
            json_output=json_output,
            quiet=quiet,
            verbose=verbose,
            log_json=log_json,
        )
    )
    ctx.call_on_close(ctx.obj.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
