"""Inspection CLI commands."""

from pathlib import Path

import click

from pluginspect.cli.output import OutputFormatter
from pluginspect.core.config import InspectorSettings, load_settings
from pluginspect.core.errors import ConfigError
from pluginspect.core.inspector import PluginInspector, inspect_many
from pluginspect.core.logging import get_sink


def _settings(
    ctx: click.Context,
    config_path: Path | None,
    report_format: str | None,
    timeout: float | None,
) -> InspectorSettings:
    formatter: OutputFormatter = ctx.obj["formatter"]
    try:
        return load_settings(config_path, report_format=report_format, timeout_seconds=timeout)
    except ConfigError as e:
        formatter.error(e.to_structured())
        ctx.exit(1)


report_format_option = click.option(
    "--report-format",
    type=click.Choice(["xml", "json"]),
    default=None,
    help="Report format (default: xml, or the settings file value)",
)
timeout_option = click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds allowed for entry-point construction and enumeration (default: 30)",
)
config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="YAML or JSON settings file",
)


@click.command()
@click.argument("artifact", type=click.Path(path_type=Path))
@click.argument("output", required=False, type=click.Path(path_type=Path))
@report_format_option
@timeout_option
@config_option
@click.pass_context
def inspect(
    ctx: click.Context,
    artifact: Path,
    output: Path | None,
    report_format: str | None,
    timeout: float | None,
    config_path: Path | None,
) -> None:
    """Inspect a plugin artifact and write its report.

    OUTPUT defaults to ARTIFACT plus '.dump.xml' ('.dump.json' for JSON
    reports).
    """
    formatter: OutputFormatter = ctx.obj["formatter"]
    settings = _settings(ctx, config_path, report_format, timeout)

    result = PluginInspector(settings=settings, log=get_sink()).inspect(artifact, output)
    if result.error is not None:
        formatter.error(result.error)
        ctx.exit(1)

    formatter.output(result.to_summary(), title="Inspection")


@click.command()
@click.argument("artifacts", nargs=-1, required=True, type=click.Path(path_type=Path))
@report_format_option
@timeout_option
@config_option
@click.pass_context
def batch(
    ctx: click.Context,
    artifacts: tuple[Path, ...],
    report_format: str | None,
    timeout: float | None,
    config_path: Path | None,
) -> None:
    """Inspect several artifacts, each next to its default report path.

    Exits 1 if any artifact failed; the others are still inspected.
    """
    formatter: OutputFormatter = ctx.obj["formatter"]
    settings = _settings(ctx, config_path, report_format, timeout)

    results = inspect_many(artifacts, settings=settings, log=get_sink())
    formatter.output([result.to_summary() for result in results], title="Batch inspection")
    if any(not result.succeeded for result in results):
        ctx.exit(1)
