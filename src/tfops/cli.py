"""CLI interface for tfops using Typer framework."""

import logging
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from tfops import __description__, __version__
from tfops.config import (
    TfOpsConfig,
    load_config,
    parse_graph_format,
    parse_group_by,
    parse_summary_format,
)
from tfops.errors import TfOpsError
from tfops.graph import GraphGenerator
from tfops.parser import PlanLoader
from tfops.summary import PlanSummarizer, create_formatter

app = typer.Typer(
    name="tfops",
    help=__description__,
    add_completion=False,
    rich_markup_mode="rich"
)

# Rendered documents go to stdout; everything meant for the user goes here.
console = Console(stderr=True, soft_wrap=True)

logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        typer.echo(f"tfops version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit")
    ] = False,
) -> None:
    """tfops - Terraform plan visualization and summary CLI."""


def _configure_logging(verbose: bool, config: TfOpsConfig) -> None:
    level = logging.DEBUG if verbose else config.logging.python_level
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(1)


def _write_output(content: str, output: Path | None, what: str) -> None:
    if output is None:
        typer.echo(content, nl=False)
        return
    output.write_text(content, encoding="utf-8")
    console.print(f"[green]{what} written to[/green] {escape(str(output))}")


@app.command("plan-graph")
def plan_graph(
    plan_file: Annotated[
        Path,
        typer.Argument(help="Terraform plan JSON (terraform show -json <planfile>)")
    ],
    format: Annotated[
        Optional[str],
        typer.Option("--format", "-f", help="Output format: graphviz, mermaid, plantuml (default: graphviz)")
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file path (default: stdout)")
    ] = None,
    group_by: Annotated[
        Optional[str],
        typer.Option("--group-by", "-g", help="Grouping: module, action, resource_type (default: module)")
    ] = None,
    no_data_sources: Annotated[
        bool,
        typer.Option("--no-data-sources", help="Exclude data sources")
    ] = False,
    no_outputs: Annotated[
        bool,
        typer.Option("--no-outputs", help="Exclude output nodes")
    ] = False,
    no_variables: Annotated[
        bool,
        typer.Option("--no-variables", help="Exclude variable nodes")
    ] = False,
    no_locals: Annotated[
        bool,
        typer.Option("--no-locals", help="Exclude local value nodes")
    ] = False,
    compact: Annotated[
        bool,
        typer.Option("--compact", "-c", help="Omit attribute details from node labels")
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Write debug logging to stderr")
    ] = False,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", help="Configuration file path (default: search for .tfops.json)")
    ] = None,
) -> None:
    """Generate a dependency graph of the resources in a Terraform plan."""
    try:
        # Command-line values are checked before any config or plan file is read.
        if format is not None:
            parse_graph_format(format)
        if group_by is not None:
            parse_group_by(group_by)

        tfops_config = load_config(config)
        _configure_logging(verbose, tfops_config)

        options = tfops_config.graph_options(
            format=format,
            group_by=group_by,
            no_data_sources=no_data_sources,
            no_outputs=no_outputs,
            no_variables=no_variables,
            no_locals=no_locals,
            compact=compact,
            verbose=verbose,
        )
        generator = GraphGenerator(options, tfops_config.limits)

        rendered = generator.generate_from_file(plan_file)
        _write_output(rendered, output, "Graph")

    except (TfOpsError, OSError) as e:
        _fail(e)


@app.command("summarize-plan")
def summarize_plan(
    plan_file: Annotated[
        Path,
        typer.Argument(help="Terraform plan JSON (terraform show -json <planfile>)")
    ],
    format: Annotated[
        Optional[str],
        typer.Option("--format", "-f", help="Output format: text, json, markdown, table (default: text)")
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file path (default: stdout)")
    ] = None,
    show_details: Annotated[
        bool,
        typer.Option("--show-details", help="Show changed attribute values")
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Write debug logging to stderr")
    ] = False,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", help="Configuration file path (default: search for .tfops.json)")
    ] = None,
) -> None:
    """Summarize the changes in a Terraform plan."""
    try:
        if format is not None:
            parse_summary_format(format)

        tfops_config = load_config(config)
        _configure_logging(verbose, tfops_config)

        options = tfops_config.summary_options(format=format, show_details=show_details, verbose=verbose)
        formatter = create_formatter(options.format)

        plan = PlanLoader(tfops_config.limits).load_file(plan_file)
        summary = PlanSummarizer().summarize(plan)
        rendered = formatter.format(summary, show_details=options.show_details)
        _write_output(rendered, output, "Summary")

    except (TfOpsError, OSError) as e:
        _fail(e)


if __name__ == "__main__":
    app()
