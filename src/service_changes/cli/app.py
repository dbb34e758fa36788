"""
Main CLI application entry point.

This module contains the main Typer application and command handlers
for Service Changes.
"""

from typing import Any, List, NoReturn, Optional
import asyncio
import json
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from service_changes import VERSION
from service_changes.config.settings import ServiceChangesSettings, get_settings
from service_changes.core.detector import DetectionReport, ServiceChangeDetector, classify_offline
from service_changes.core.errors import (
    ConfigurationError,
    ServiceChangesError,
    create_user_friendly_message,
)
from service_changes.core.models import ChangedFile
from service_changes.services.reporting import (
    OutputFormat,
    format_result,
    render_result,
    write_action_outputs,
    write_changes_record,
)
from service_changes.services.service_discovery import ServiceDirectoryResolver

# Create the main Typer application
app = typer.Typer(
    name="service-changes",
    help="Service Changes - detect which monorepo services a change set added, modified or removed",
    add_completion=False,
    rich_markup_mode="rich",
)

# Results go to stdout, diagnostics to stderr
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(f"[bold blue]Service Changes[/bold blue] version [green]{VERSION}[/green]")
        raise typer.Exit()


def setup_logging(log_level: str) -> None:
    """Route log records to stderr at the given level."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (overrides the configured level)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """
    Service Changes - monorepo service change detection.

    A service is any directory holding the marker file (main.go by default).
    """
    ctx.obj = {"log_level": "DEBUG" if debug else log_level}


def _fail(error: ServiceChangesError) -> NoReturn:
    """Print a single terminal failure message and exit with the error's code."""
    err_console.print(f"[red]Error:[/red] {escape(create_user_friendly_message(error))}")
    logger.debug(f"Run failed: {error.to_dict()}")
    raise typer.Exit(error.exit_code)


def _load_settings(ctx: typer.Context, **overrides: Any) -> ServiceChangesSettings:
    """Load settings and configure logging from them unless the command line chose a level."""
    try:
        settings = get_settings(**overrides)
    except ServiceChangesError as e:
        _fail(e)

    cli_level = (ctx.obj or {}).get("log_level")
    setup_logging(cli_level or ("DEBUG" if settings.debug else settings.log_level))
    return settings


def _print_result(report: DetectionReport, output_format: OutputFormat) -> None:
    if output_format == OutputFormat.TEXT and console.is_terminal:
        render_result(console, report.result)
    else:
        typer.echo(format_result(report.result, output_format))


@app.command("detect")
def detect_command(
    ctx: typer.Context,
    token: Optional[str] = typer.Option(None, "--token", "-t", help="GitHub access token"),
    event_name: Optional[str] = typer.Option(None, "--event-name", help="Triggering event (push or pull_request)"),
    event_path: Optional[Path] = typer.Option(None, "--event-path", help="Path to the JSON event payload"),
    repository: Optional[str] = typer.Option(None, "--repository", help="Repository in owner/name form"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Repository checkout root"),
    marker: Optional[str] = typer.Option(None, "--marker", "-m", help="Service marker filename"),
    search_path: Optional[List[str]] = typer.Option(None, "--search-path", "-s", help="Directory to search for services (repeatable)"),
    output_file: Optional[Path] = typer.Option(None, "--output-file", "-o", help="Where to write the JSON change record"),
    record: Optional[bool] = typer.Option(None, "--record/--no-record", help="Write the JSON change record"),
    output_format: OutputFormat = typer.Option(OutputFormat.TEXT, "--format", "-f", help="Console output format"),
) -> None:
    """Detect service changes for the push or pull request that triggered the workflow."""
    settings = _load_settings(
        ctx,
        github_token=token,
        event_name=event_name,
        event_path=event_path,
        repository=repository,
        workspace=workspace,
        marker_filename=marker,
        search_paths=search_path or None,
        output_file=output_file,
        write_record=record,
    )

    try:
        report = asyncio.run(ServiceChangeDetector(settings).run())

        write_action_outputs(report.result, settings.github_output)
        if settings.write_record:
            write_changes_record(
                report.result,
                report.commit_ids,
                settings.output_file,
                payload=report.trigger.payload if settings.include_payload and report.trigger else None,
            )
    except ServiceChangesError as e:
        _fail(e)
    except OSError as e:
        err_console.print(f"[red]Error:[/red] Unable to write results: {escape(str(e))}")
        raise typer.Exit(1)

    _print_result(report, output_format)


@app.command("classify")
def classify_command(
    ctx: typer.Context,
    changes: Path = typer.Option(..., "--changes", "-c", help="JSON file with changed files ('-' reads stdin)", allow_dash=True),
    service_dir: Optional[List[str]] = typer.Option(None, "--service-dir", "-d", help="Known service directory (repeatable); skips discovery"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Repository checkout root"),
    marker: Optional[str] = typer.Option(None, "--marker", "-m", help="Service marker filename"),
    search_path: Optional[List[str]] = typer.Option(None, "--search-path", "-s", help="Directory to search for services (repeatable)"),
    output_format: OutputFormat = typer.Option(OutputFormat.TEXT, "--format", "-f", help="Console output format"),
) -> None:
    """Classify a list of changed files without contacting GitHub."""
    settings = _load_settings(
        ctx,
        workspace=workspace,
        marker_filename=marker,
        search_paths=search_path or None,
    )

    try:
        changed_files = load_changed_files(changes)
        report = classify_offline(settings, changed_files, service_dir or None)
    except ServiceChangesError as e:
        _fail(e)

    _print_result(report, output_format)


@app.command("discover")
def discover_command(
    ctx: typer.Context,
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Repository checkout root"),
    marker: Optional[str] = typer.Option(None, "--marker", "-m", help="Service marker filename"),
    search_path: Optional[List[str]] = typer.Option(None, "--search-path", "-s", help="Directory to search for services (repeatable)"),
) -> None:
    """List the service directories on disk, deepest first."""
    settings = _load_settings(
        ctx,
        workspace=workspace,
        marker_filename=marker,
        search_paths=search_path or None,
    )

    resolver = ServiceDirectoryResolver(
        workspace=settings.workspace,
        marker_filename=settings.marker_filename,
        search_paths=settings.search_paths,
        ignore_patterns=settings.ignore_patterns,
    )
    try:
        directories = resolver.resolve()
    except ServiceChangesError as e:
        _fail(e)

    for directory in directories:
        typer.echo(directory or ".")


@app.command("config")
def config_command(
    ctx: typer.Context,
    show: bool = typer.Option(False, "--show", "-s", help="Show current configuration"),
    key: Optional[str] = typer.Option(None, "--key", "-k", help="Show specific configuration key"),
) -> None:
    """Show the effective Service Changes configuration."""
    settings = _load_settings(ctx)
    data = settings.to_dict()

    if key:
        if key not in data:
            err_console.print(f"[red]Error:[/red] Key '{escape(key)}' not found in configuration")
            raise typer.Exit(1)
        typer.echo(_display_value(data[key]))
        return

    if not show:
        console.print("[yellow]Use one of the following options:[/yellow]")
        console.print("  --show         Show current configuration")
        console.print("  --key <key>    Show specific configuration key")
        return

    table = Table(title="Current Configuration", show_header=True, header_style="bold magenta")
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    for name, value in data.items():
        table.add_row(name, _display_value(value))

    console.print(table)


def _display_value(value: Any) -> str:
    if value is None:
        return "Not set"
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    return str(value)


def load_changed_files(source: Path) -> List[ChangedFile]:
    """Read changed files from a JSON file, or stdin when ``source`` is '-'.

    Accepts a list of ``{"filename"|"path", "status"}`` objects or an object
    with such a list under ``files``.

    Raises:
        ConfigurationError: If the input cannot be read or has the wrong shape
    """
    try:
        if str(source) == "-":
            data = json.load(sys.stdin)
        else:
            with open(source, "r", encoding="utf-8") as f:
                data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Unable to read changes from {source}: {e}", config_field="changes", original_error=e)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Changes input is not valid JSON: {e}", config_field="changes", original_error=e)

    if isinstance(data, dict):
        data = data.get("files")

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise ConfigurationError(
            "Changes input must be a list of {\"filename\", \"status\"} objects",
            config_field="changes"
        )

    return [ChangedFile.from_dict(item) for item in data]


def main() -> None:
    """Entry point for the CLI application."""
    app()


if __name__ == "__main__":
    main()
