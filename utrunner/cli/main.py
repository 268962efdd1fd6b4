"""Main CLI entry point for utRunner."""

from __future__ import annotations

import click

from utrunner import __version__
from utrunner.cli.commands import register_commands
from utrunner.cli.commands.configuration import config_group
from utrunner.cli.commands.run import run_command
from utrunner.cli.utils import configure_logging, console
from utrunner.config import EnvironmentSettings


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.option("--config", type=click.Path(exists=True), help="Path to configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(
    ctx: click.Context,
    version: bool,
    config: str,
    verbose: bool,
) -> None:
    """utRunner - run database unit tests and collect their reports."""
    ctx.ensure_object(dict)
    ctx.obj.update(
        {
            "config": config,
            "verbose": verbose,
        }
    )
    configure_logging(EnvironmentSettings().log_level, verbose)

    if version:
        console.print(f"utRunner v{__version__}")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


COMMAND_REGISTRY = [
    run_command,
    config_group,
]

register_commands(cli, COMMAND_REGISTRY)


if __name__ == "__main__":
    cli()
