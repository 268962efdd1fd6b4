"""Configuration management CLI commands."""

from __future__ import annotations

from pathlib import Path

import click

from utrunner.cli.utils import console
from utrunner.config import ConfigParser, create_sample_config
from utrunner.exceptions import ConfigurationError


@click.group(name="config")
def config_group() -> None:
    """Configuration management."""
    pass


@config_group.command(name="validate")
@click.argument("config_file", type=click.Path(exists=True))
def validate_command(config_file: str) -> None:
    """Validate configuration file."""
    try:
        config = ConfigParser().load_config(config_file)
        console.print(f"[green]✅ Configuration file '{config_file}' is valid[/green]")
        console.print(f"Sources: {len(config.sources)} resource(s), tests: {len(config.tests)} resource(s)")
        reporter_names = ", ".join(r.name for r in config.reporters) or "UT_DOCUMENTATION_REPORTER (default)"
        console.print(f"Reporters: [cyan]{reporter_names}[/cyan]")
        console.print(f"Output directory: [cyan]{config.output_path}[/cyan]")
    except ConfigurationError as exc:
        console.print(f"[red]❌ Configuration validation failed: {exc}[/red]")
        raise SystemExit(1) from exc


@config_group.command(name="sample")
@click.argument("output_file", type=click.Path())
def sample_command(output_file: str) -> None:
    """Create sample configuration file."""
    try:
        output_path = Path(output_file)
        if output_path.exists():
            click.confirm(f"File '{output_file}' exists. Overwrite?", abort=True)

        create_sample_config(output_path)
        console.print(f"[green]✅ Sample configuration created: {output_file}[/green]")
        console.print("\n[yellow]Next steps:[/yellow]")
        console.print("1. Edit the database section and resource directories")
        console.print("2. Set UTRUNNER_DB_URL / UTRUNNER_DB_USER / UTRUNNER_DB_PASS or edit the file")
        console.print(f"3. Validate: [cyan]utrunner config validate {output_file}[/cyan]")
    except OSError as exc:
        console.print(f"[red]Error creating sample configuration: {exc}[/red]")
        raise SystemExit(1) from exc
