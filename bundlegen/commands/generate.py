"""Generate the production config and bundles.

Uses asyncio for the parallel bundling stages.
"""

import asyncio
import json
import sys

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from bundlegen.pipeline.structures import PipelineResult
from bundlegen.pipeline.ui import console, print_status_panel, truncate_lines
from bundlegen.utils.error_handler import handle_exceptions
from bundlegen.utils.exit_codes import ExitCodes


def print_generate_complete_panel(result: PipelineResult) -> None:
    """Print the GENERATE COMPLETE panel with a per-stage table."""
    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("Stage", style="cyan", no_wrap=True)
    table.add_column("Status", width=10)
    table.add_column("Time", justify="right", width=8)
    for stage in result.stages:
        style = {"success": "green", "failed": "red", "skipped": "dim"}.get(stage.status.value, "white")
        time_str = f"{stage.elapsed:.1f}s" if stage.elapsed > 0 else "-"
        table.add_row(stage.name, f"[{style}]{stage.status.value}[/{style}]", time_str)
    console.print(table)

    if result.success:
        title = "GENERATE COMPLETE"
        status_line = f"All {len(result.stages)} stages successful"
        border_style = "green"
    else:
        title = "GENERATE FAILED"
        status_line = f"Failed in: {result.stage or 'planning'}"
        border_style = "red"

    panel = Panel(
        Text.assemble(
            (status_line + "\n", "bold " + border_style),
            (f"Total time: {result.elapsed:.1f}s", "dim"),
        ),
        title=f"[bold]{title}[/bold]",
        border_style=border_style,
        expand=False,
    )
    console.print(panel)


@click.command()
@handle_exceptions
@click.option(
    "--dir",
    "directory",
    default=".",
    type=click.Path(file_okay=False),
    help="Project directory (or its parent holding .bundlegen/)",
)
@click.option("--no-cache", "no_cache", is_flag=True, help="Disable the local introspection cache")
@click.option("--offline", is_flag=True, help="Disable loading resources from the network")
@click.option("--quiet", is_flag=True, help="Minimal output")
@click.option("--json", "as_json", is_flag=True, help="Print the pipeline result as JSON")
def generate(directory, no_cache, offline, quiet, as_json):
    """Generate the production config and bundles.

    Bundles the config entry point, runs it with node to produce the
    production config and then bundles hooks, webhooks and operations in
    parallel. All files are stored in generated/bundle/. The local
    introspection cache has precedence; pass --no-cache to bypass it.

    Pipeline Stages:
      1. config-bundler       bundlegen.config.ts -> generated/bundle/config.js
      2. config-runner        node generated/bundle/config.js (production env)
      3. in parallel, only when the sources exist:
           server-bundler     bundlegen.server.ts
           webhooks-bundler   webhooks/*
           operations-bundler operations/**

    Examples:
      bundlegen generate
      bundlegen generate --dir ./app --offline
      bundlegen generate --no-cache --json

    Exit Codes:
      0 = All bundles generated
      1 = A bundler failed
      2 = Config runner exited unsuccessfully
      3 = Entry point or project directory missing"""
    from bundlegen.events import ConsoleLogger, NullObserver
    from bundlegen.pipelines import run_generate

    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

    observer = NullObserver() if as_json else ConsoleLogger(quiet=quiet)
    try:
        result = asyncio.run(
            run_generate(
                directory=directory,
                offline=offline,
                disable_cache=no_cache,
                quiet=quiet,
                observer=observer,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[bold red]Generate stopped by user.[/bold red]")
        sys.exit(130)

    exit_code = ExitCodes.for_error(result.error)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(exit_code)

    if not quiet:
        console.print()
        print_generate_complete_panel(result)

    if result.success:
        if not quiet:
            print_status_panel(
                "SUCCESS",
                "Production config and bundles generated.",
                "Start the node and server with the generated bundle.",
                level="success",
            )
    else:
        print_status_panel(
            "FAILED",
            truncate_lines(str(result.error)),
            ExitCodes.get_description(exit_code),
            level="critical",
        )
        for extra in result.errors[1:]:
            console.print(f"[dim]also failed:[/dim] {escape(truncate_lines(str(extra)))}")

    sys.exit(exit_code)
