"""Test run command implementation for utRunner CLI."""

from __future__ import annotations

from typing import Optional, Tuple

import click
from rich.table import Table

from utrunner.cli.utils import console, print_exception
from utrunner.config import ConfigParser, RunnerConfig
from utrunner.exceptions import ConfigurationError, DatabaseConnectionError, UtRunnerError
from utrunner.orchestrator import ExecutionOrchestrator, ExecutionResult, OutcomeKind


@click.command(name="run")
@click.option("--config", type=click.Path(exists=True), help="Path to configuration file")
@click.option("--db-url", help="Database URL (overrides configuration)")
@click.option("--db-user", help="Database user (overrides configuration)")
@click.option("--db-pass", help="Database password (overrides configuration)")
@click.option("--base-dir", type=click.Path(file_okay=False), help="Project base directory")
@click.option("--output-dir", type=click.Path(file_okay=False), help="Directory for report files")
@click.option("--path", "paths", multiple=True, help="Suite path to run (repeatable)")
@click.option("--tag", "tags", multiple=True, help="Only run tests with this tag (repeatable)")
@click.option("--include-object", help="Comma separated objects to include in coverage")
@click.option("--exclude-object", help="Comma separated objects to exclude from coverage")
@click.option("--random-order/--no-random-order", default=None, help="Run tests in random order")
@click.option("--seed", type=int, help="Seed for random test order")
@click.option("--ignore-failure/--no-ignore-failure", default=None, help="Exit successfully when tests fail")
@click.option("--dbms-output/--no-dbms-output", default=None, help="Enable DBMS_OUTPUT during the run")
@click.option("--skip-compatibility-check/--compatibility-check", default=None,
              help="Skip the framework compatibility check")
@click.option("--skip", is_flag=True, default=None, help="Skip test execution")
@click.pass_context
def run_command(
    ctx: click.Context,
    config: Optional[str],
    db_url: Optional[str],
    db_user: Optional[str],
    db_pass: Optional[str],
    base_dir: Optional[str],
    output_dir: Optional[str],
    paths: Tuple[str, ...],
    tags: Tuple[str, ...],
    include_object: Optional[str],
    exclude_object: Optional[str],
    random_order: Optional[bool],
    seed: Optional[int],
    ignore_failure: Optional[bool],
    dbms_output: Optional[bool],
    skip_compatibility_check: Optional[bool],
    skip: Optional[bool],
) -> None:
    """Run database unit tests and write the configured reports."""
    verbose = ctx.obj.get("verbose", False)
    try:
        runner_config = _load_config(config or ctx.obj.get("config"))

        database_update = {k: v for k, v in (("url", db_url), ("username", db_user), ("password", db_pass)) if v}
        runner_config = runner_config.with_overrides(
            database=runner_config.database.model_copy(update=database_update) if database_update else None,
            base_dir=base_dir,
            output_dir=output_dir,
            paths=list(paths) or None,
            tags=list(dict.fromkeys(tags)) or None,
            include_object=include_object,
            exclude_object=exclude_object,
            random_test_order=random_order,
            random_test_order_seed=seed,
            ignore_failure=ignore_failure,
            dbms_output=dbms_output,
            skip_compatibility_check=skip_compatibility_check,
            skip=skip or None,
        )

        orchestrator = ExecutionOrchestrator(
            runner_config,
            color_console=console.is_terminal and console.color_system is not None,
        )
        result = orchestrator.execute()

    except ConfigurationError as exc:
        console.print(f"[red]Configuration Error: {exc}[/red]")
        raise SystemExit(1) from exc
    except DatabaseConnectionError as exc:
        console.print(f"[red]Connection Error: {exc}[/red]")
        raise SystemExit(1) from exc
    except UtRunnerError as exc:
        print_exception("Error", exc, verbose)
        raise SystemExit(1) from exc

    _render_result(result)
    if not result.exit_success:
        raise SystemExit(1)


def _load_config(config_path: Optional[str]) -> RunnerConfig:
    parser = ConfigParser()
    if config_path is None and parser.locate_config_file() is None:
        return parser.apply_environment(RunnerConfig())
    return parser.load_config(config_path)


def _render_result(result: ExecutionResult) -> None:
    if result.skipped:
        console.print("[yellow]utPLSQL tests are skipped.[/yellow]")
        return

    if result.write_report.results:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Reporter", style="cyan")
        table.add_column("Destination", style="white")
        table.add_column("Status", style="green")
        for item in result.write_report.results:
            destinations = []
            if item.path is not None:
                destinations.append(str(item.path))
            if item.binding.writes_console:
                destinations.append("console")
            status = "✅" if item.success else f"[red]❌ {item.error.message}[/red]"
            table.add_row(item.binding.reporter.type_name, ", ".join(destinations), status)
        console.print(table)

    kind = result.outcome.kind
    if kind == OutcomeKind.SUCCESS:
        console.print(f"\n[green]✅ {result.message}[/green]")
    elif result.exit_success:
        console.print(f"\n[yellow]⚠️  {result.message}[/yellow]")
    else:
        console.print(f"\n[red]❌ {result.message}[/red]")
