"""Report display command."""

from pathlib import Path

import click

from pluginspect.cli.output import OutputFormatter
from pluginspect.core.errors import InspectorError
from pluginspect.report.builder import load_report


@click.command()
@click.argument("report", type=click.Path(path_type=Path))
@click.pass_context
def show(ctx: click.Context, report: Path) -> None:
    """Print a report written by 'inspect'."""
    formatter: OutputFormatter = ctx.obj["formatter"]

    try:
        loaded = load_report(report)
    except InspectorError as e:
        formatter.error(e.to_structured())
        ctx.exit(1)

    formatter.output(loaded, title=f"Report for {loaded.artifact_path}")
