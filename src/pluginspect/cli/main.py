"""pluginspect CLI entry point and global options."""

import sys
from typing import Literal

import click

from pluginspect import __version__
from pluginspect.cli.inspect import batch, inspect
from pluginspect.cli.output import OutputFormat, OutputFormatter
from pluginspect.cli.show import show
from pluginspect.core.errors import handle_error
from pluginspect.core.logging import configure_logging, set_verbose


@click.group()
@click.option(
    "--format",
    "-f",
    type=click.Choice(["json", "human"]),
    default="json",
    help="Output format (default: json)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose logging to stderr",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Suppress progress output",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Log format for stderr (default: text)",
)
@click.version_option(version=__version__, prog_name="pluginspect")
@click.pass_context
def cli(
    ctx: click.Context,
    format: OutputFormat,
    verbose: bool,
    quiet: bool,
    log_format: Literal["text", "json"],
) -> None:
    """pluginspect: load a plugin artifact in isolation and report what it declares.

    Reads the artifact manifest, activates its entry point inside an
    isolated import context and writes a deterministic report of its
    extensions.
    """
    ctx.ensure_object(dict)
    ctx.obj = {
        "format": format,
        "verbose": verbose,
        "quiet": quiet,
        "log_format": log_format,
        "formatter": OutputFormatter(format=format),
    }

    set_verbose(verbose)
    configure_logging(log_format=log_format, quiet=quiet)


cli.add_command(inspect)
cli.add_command(batch)
cli.add_command(show)


# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1


def main(argv: list[str] | None = None) -> None:
    """Main entry point.

    Usage errors are printed to stdout together with the usage line and
    exit with status 1, like every other failure.
    """
    try:
        exit_code = cli.main(args=argv, prog_name="pluginspect", standalone_mode=False)
    except click.UsageError as e:
        if e.ctx is not None:
            click.echo(e.ctx.get_usage())
            click.echo(f"Try '{e.ctx.command_path} --help' for help.")
        click.echo(f"Error: {e.format_message()}")
        sys.exit(EXIT_ERROR)
    except click.ClickException as e:
        click.echo(f"Error: {e.format_message()}")
        sys.exit(EXIT_ERROR)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(EXIT_ERROR)
    except Exception as e:
        handle_error(e, exit_code=EXIT_ERROR)

    sys.exit(exit_code if isinstance(exit_code, int) else EXIT_SUCCESS)


if __name__ == "__main__":
    main()
