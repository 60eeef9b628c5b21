"""Main Typer CLI application for testrelay."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from testrelay.cli.formatters import (
    format_outcome_json,
    format_outcome_text,
    format_report_json,
    format_report_text,
)
from testrelay.config import Settings, get_settings
from testrelay.core.exceptions import TestRelayError
from testrelay.importer import ReportImporter, read_report_file
from testrelay.logging import configure_logging
from testrelay.registry.client import HttpRegistryClient
from testrelay.reports import ReportInput, get_default_registry

app = typer.Typer(
    name="testrelay",
    help="Import automated test reports into a test-management registry",
    no_args_is_help=True,
)

OUTPUT_FORMATS = ("text", "json")


def _check_format(output_format: str) -> None:
    if output_format not in OUTPUT_FORMATS:
        typer.echo(f"Unknown output format: {output_format}", err=True)
        raise typer.Exit(code=2)


def load_settings(
    project: str | None = None,
    server: str | None = None,
    api_key: str | None = None,
) -> Settings:
    """Settings from the environment, with command-line overrides applied."""
    overrides = {
        key: value
        for key, value in (("project_id", project), ("server_url", server), ("api_key", api_key))
        if value
    }
    if not overrides:
        return get_settings()
    return Settings(**overrides)


@app.command("import")
def import_report(
    report: Annotated[
        Path,
        typer.Argument(
            help="Path to a JSON or HTML test report",
        ),
    ],
    direct: Annotated[
        bool,
        typer.Option(
            "--direct",
            help="Send a minimal JSON report to the one-call automation-report endpoint",
        ),
    ] = False,
    project: Annotated[
        str | None,
        typer.Option(
            "-p",
            "--project",
            help="Registry project id (or set TESTRELAY_PROJECT_ID)",
        ),
    ] = None,
    server: Annotated[
        str | None,
        typer.Option(
            "-s",
            "--server",
            help="Registry server URL (or set TESTRELAY_SERVER_URL)",
        ),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option(
            "-k",
            "--api-key",
            help="Registry API key (or set TESTRELAY_API_KEY)",
        ),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option(
            "-f",
            "--format",
            help="Output format (text, json)",
        ),
    ] = "text",
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Log level (DEBUG, INFO, WARNING, ERROR)",
        ),
    ] = None,
) -> None:
    """Import a test report and replay it as a registry test run.

    Exits 0 when a test run was created, 1 otherwise.
    """
    _check_format(output_format)
    try:
        settings = load_settings(project, server, api_key)
    except ValidationError as e:
        configure_logging(log_level=log_level or "INFO", json_format=False)
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from e

    configure_logging(
        log_level=log_level or settings.log_level,
        json_format=settings.log_json_format,
    )

    with HttpRegistryClient(settings) as client:
        importer = ReportImporter(client, default_environment=settings.environment)
        outcome = importer.import_direct_file(report) if direct else importer.import_file(report)

    if output_format == "json":
        typer.echo(format_outcome_json(outcome))
    else:
        typer.echo(format_outcome_text(outcome))
    raise typer.Exit(code=0 if outcome.ok else 1)


@app.command()
def inspect(
    report: Annotated[
        Path,
        typer.Argument(
            help="Path to a JSON or HTML test report",
        ),
    ],
    output_format: Annotated[
        str,
        typer.Option(
            "-f",
            "--format",
            help="Output format (text, json)",
        ),
    ] = "text",
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level",
            help="Log level (DEBUG, INFO, WARNING, ERROR)",
        ),
    ] = "WARNING",
) -> None:
    """Parse a report offline and print what would be imported."""
    _check_format(output_format)
    configure_logging(log_level=log_level, json_format=False)

    try:
        text = read_report_file(report)
        parsed = get_default_registry().parse(ReportInput(text, report.name))
    except TestRelayError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    if output_format == "json":
        typer.echo(format_report_json(parsed))
    else:
        typer.echo(format_report_text(parsed))
