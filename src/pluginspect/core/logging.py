"""Logging utilities for pluginspect.

All log output goes to stderr to keep stdout clean for machine-readable
results. Components take a ``LogSink`` so that the informational trace of a
run is decoupled from the report it produces; the module-level helpers
configure a process-wide default sink used by the CLI.
"""

import json
import sys
from datetime import UTC, datetime
from typing import Any, Literal, TextIO

LogLevel = Literal["debug", "info", "warning", "error"]
LogFormat = Literal["text", "json"]


class LogSink:
    """Writes log messages to a text stream (stderr by default)."""

    def __init__(
        self,
        stream: TextIO | None = None,
        verbose: bool = False,
        quiet: bool = False,
        log_format: LogFormat = "text",
    ) -> None:
        self._stream = stream
        self.verbose = verbose
        self.quiet = quiet
        self.log_format = log_format

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so that captured/redirected stderr is honoured.
        return self._stream if self._stream is not None else sys.stderr

    def configure(
        self,
        verbose: bool | None = None,
        quiet: bool | None = None,
        log_format: LogFormat | None = None,
    ) -> None:
        """Update sink settings in place."""
        if verbose is not None:
            self.verbose = verbose
        if quiet is not None:
            self.quiet = quiet
        if log_format is not None:
            self.log_format = log_format

    def enabled(self, level: LogLevel) -> bool:
        if self.quiet and level in ("debug", "info"):
            return False
        if level == "debug" and not self.verbose:
            return False
        return True

    def log(self, message: str, level: LogLevel = "info", **context: Any) -> None:
        """Log a message.

        Args:
            message: Log message
            level: Log level
            **context: Additional context to include
        """
        if not self.enabled(level):
            return

        if self.log_format == "json":
            log_entry = {
                "timestamp": datetime.now(UTC).isoformat(),
                "level": level,
                "message": message,
                **context,
            }
            print(json.dumps(log_entry, default=str), file=self.stream)
        else:
            prefix = f"[{level.upper()}]" if level != "info" else ""
            if prefix:
                print(f"{prefix} {message}", file=self.stream)
            else:
                print(message, file=self.stream)

    def debug(self, message: str, **context: Any) -> None:
        self.log(message, level="debug", **context)

    def info(self, message: str, **context: Any) -> None:
        self.log(message, level="info", **context)

    def warning(self, message: str, **context: Any) -> None:
        self.log(message, level="warning", **context)

    def error(self, message: str, **context: Any) -> None:
        self.log(message, level="error", **context)


_default_sink = LogSink()


def get_sink() -> LogSink:
    """Return the process-wide default sink."""
    return _default_sink


def set_verbose(verbose: bool) -> None:
    """Set verbose mode."""
    _default_sink.configure(verbose=verbose)


def configure_logging(
    log_format: LogFormat = "text",
    quiet: bool = False,
) -> None:
    """Configure logging settings.

    Args:
        log_format: Output format for log messages
        quiet: Suppress informational output
    """
    _default_sink.configure(log_format=log_format, quiet=quiet)
