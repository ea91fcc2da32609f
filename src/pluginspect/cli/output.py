"""Output rendering for the pluginspect CLI.

stdout carries results and structured errors only; progress and logs go to
stderr. JSON is the default and is what scripts consume. The human format
prints a report as a tree (manifest, then each extension with its
repositories and rules) and an error with its remediation.
"""

import json
import sys
from pathlib import Path
from typing import Any, Literal, TextIO

from pydantic import BaseModel

from pluginspect.models.error import StructuredError
from pluginspect.models.report import (
    PluginReport,
    PropertyExtension,
    RepositoryNode,
    RulesExtension,
)

OutputFormat = Literal["json", "human"]

INDENT = "  "


class JSONEncoder(json.JSONEncoder):
    """JSON encoder for pluginspect types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Path):
            return str(obj)
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json")
        return super().default(obj)


def write_json(data: Any, file: TextIO) -> None:
    """Write one JSON document followed by a newline."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    json.dump(data, file, cls=JSONEncoder, ensure_ascii=False)
    file.write("\n")


def render_report(report: PluginReport, file: TextIO) -> None:
    """Write a report as an indented tree."""
    file.write(f"artifact: {report.artifact_path}\n")

    file.write("manifest:\n")
    for item in report.manifest:
        file.write(f"{INDENT}{item.key}: {item.value}\n")

    file.write(f"extensions: {len(report.extensions)}\n")
    for index, extension in enumerate(report.extensions, start=1):
        file.write(f"{INDENT}[{index}] {extension.kind} {extension.class_name}\n")
        detail = INDENT * 3
        if isinstance(extension, PropertyExtension):
            file.write(f"{detail}key: {extension.key}\n")
            file.write(f"{detail}default: {extension.default_value}\n")
        elif isinstance(extension, RulesExtension):
            for repository in extension.repositories:
                _render_repository(repository, file, detail)
        elif extension.error:
            file.write(f"{detail}error: {extension.error}\n")


def _render_repository(repository: RepositoryNode, file: TextIO, prefix: str) -> None:
    title = f" {repository.name!r}" if repository.name else ""
    file.write(f"{prefix}repository {repository.key}{title} ({repository.language}), {len(repository.rules)} rules\n")
    if repository.note:
        file.write(f"{prefix}{INDENT}note: {repository.note}\n")
    for rule in repository.rules:
        name = f" {rule.name}" if rule.name else ""
        file.write(f"{prefix}{INDENT}- {rule.key} [{rule.severity}]{name}\n")


def render_error(error: StructuredError, file: TextIO) -> None:
    """Write a structured error with its context and remediation."""
    file.write(f"Error [{error.code}]: {error.message}\n")
    for key, value in (error.context or {}).items():
        file.write(f"{INDENT}{key}: {value}\n")
    if error.remediation:
        file.write(f"Remediation: {error.remediation}\n")


def render_fields(data: Any, file: TextIO, indent: int = 0) -> None:
    """Write summaries (mappings and lists of them) as ``key: value`` lines."""
    prefix = INDENT * indent
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, (dict, list)):
                file.write(f"{prefix}{key}:\n")
                render_fields(value, file, indent + 1)
            else:
                file.write(f"{prefix}{key}: {value}\n")
    elif isinstance(data, list):
        for index, item in enumerate(data):
            if isinstance(item, dict):
                file.write(f"{prefix}[{index}]:\n")
                render_fields(item, file, indent + 1)
            else:
                file.write(f"{prefix}- {item}\n")
    else:
        file.write(f"{prefix}{data}\n")


class OutputFormatter:
    """Writes command results and errors to stdout in one format."""

    def __init__(self, format: OutputFormat = "json", file: TextIO | None = None):
        """Initialize formatter with specified format.

        Args:
            format: Output format (json, human)
            file: Destination (defaults to the current stdout)
        """
        self.format = format
        self._file = file

    @property
    def file(self) -> TextIO:
        return self._file if self._file is not None else sys.stdout

    def output(self, data: Any, title: str | None = None) -> None:
        """Output a result.

        Args:
            data: Report, summary mapping or list of summaries
            title: Heading for human output
        """
        file = self.file
        if self.format == "json":
            write_json(data, file)
        else:
            if title:
                file.write(f"\n{title}\n{'=' * len(title)}\n\n")
            if isinstance(data, PluginReport):
                render_report(data, file)
            else:
                render_fields(data, file)
        file.flush()

    def error(self, error: StructuredError) -> None:
        """Output a structured error."""
        file = self.file
        if self.format == "json":
            write_json(error.model_dump(mode="json", exclude_none=True), file)
        else:
            render_error(error, file)
        file.flush()
