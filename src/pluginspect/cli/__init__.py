"""pluginspect CLI layer."""

__all__ = ["cli", "main"]


def cli() -> None:
    """Lazy import and run the CLI."""
    from pluginspect.cli.main import cli as _cli

    _cli()


def main() -> None:
    """Console-script entry point."""
    from pluginspect.cli.main import main as _main

    _main()
