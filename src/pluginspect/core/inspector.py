"""Inspection run orchestration.

One run takes an artifact through

    Start -> MetadataRead -> ContextBuilt -> EntryPointActivated
          -> DescriptorsClassified -> ReportWritten

and any fatal failure moves it straight to Failed. Per-descriptor failures
are absorbed by the dispatcher and never fail the run.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pluginspect.core.config import InspectorSettings
from pluginspect.core.errors import InspectorError, internal_error
from pluginspect.core.logging import LogSink, get_sink
from pluginspect.models.error import StructuredError
from pluginspect.models.report import PluginReport
from pluginspect.plugins.dispatch import ExtensionDispatcher
from pluginspect.plugins.loader import IsolatedContextBuilder
from pluginspect.plugins.manifest import ManifestReader
from pluginspect.plugins.registration import RegistrationDriver
from pluginspect.plugins.runner import EntryPointActivator
from pluginspect.report.builder import ReportBuilder, report_summary
from pluginspect.report.writer import ReportWriter


class RunState(str, Enum):
    """States of an inspection run."""

    START = "Start"
    METADATA_READ = "MetadataRead"
    CONTEXT_BUILT = "ContextBuilt"
    ENTRY_POINT_ACTIVATED = "EntryPointActivated"
    DESCRIPTORS_CLASSIFIED = "DescriptorsClassified"
    REPORT_WRITTEN = "ReportWritten"
    FAILED = "Failed"


@dataclass
class InspectionResult:
    """Outcome of inspecting one artifact."""

    artifact_path: str
    report_path: str
    state: RunState
    report: PluginReport | None = None
    error: StructuredError | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.REPORT_WRITTEN

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def to_summary(self) -> dict[str, Any]:
        """JSON-serializable summary for CLI output."""
        summary: dict[str, Any] = {
            "artifact_path": self.artifact_path,
            "report_path": self.report_path,
            "state": self.state.value,
        }
        if self.report is not None:
            summary.update(report_summary(self.report))
        if self.error is not None:
            summary["error"] = self.error.model_dump(mode="json", exclude_none=True)
        return summary


class PluginInspector:
    """Runs the inspection stages for one artifact at a time."""

    def __init__(
        self,
        settings: InspectorSettings | None = None,
        log: LogSink | None = None,
    ) -> None:
        self.settings = settings or InspectorSettings()
        self.log = log or get_sink()
        self.state = RunState.START

        self.manifest_reader = ManifestReader(settings=self.settings, log=self.log)
        self.context_builder = IsolatedContextBuilder(settings=self.settings, log=self.log)
        self.activator = EntryPointActivator(timeout_seconds=self.settings.timeout_seconds, log=self.log)
        self.dispatcher = ExtensionDispatcher(driver=RegistrationDriver(log=self.log), log=self.log)
        self.writer = ReportWriter(report_format=self.settings.report_format, log=self.log)

    def _advance(self, state: RunState) -> None:
        self.log.debug(f"{self.state.value} -> {state.value}")
        self.state = state

    def build_report(self, artifact_path: Path) -> PluginReport:
        """Run every stage except writing.

        Raises:
            InspectorError: On any fatal failure
        """
        self.state = RunState.START
        path = str(artifact_path)

        manifest = self.manifest_reader.read(artifact_path)
        self._advance(RunState.METADATA_READ)

        builder = ReportBuilder(path).add_manifest(manifest)
        with self.context_builder.build(artifact_path) as context:
            self._advance(RunState.CONTEXT_BUILT)

            activation = self.activator.activate(context, manifest.entry_point_type)
            self._advance(RunState.ENTRY_POINT_ACTIVATED)

            builder.add_extensions(self.dispatcher.dispatch_all(activation.extensions))
            self._advance(RunState.DESCRIPTORS_CLASSIFIED)

        return builder.build()

    def inspect(self, artifact_path: Path, output: Path | None = None) -> InspectionResult:
        """Inspect an artifact and write its report.

        Args:
            artifact_path: Path to the artifact archive
            output: Report destination (default: artifact path plus suffix)

        Returns:
            InspectionResult; failures are reported in it, not raised
        """
        artifact_path = Path(artifact_path)
        report_path = Path(output) if output is not None else self.settings.default_report_path(artifact_path)
        report = None

        try:
            report = self.build_report(artifact_path)
            self.writer.write(report, report_path)
            self._advance(RunState.REPORT_WRITTEN)
            error = None
        except InspectorError as e:
            self.log.error(str(e), code=e.code, stage=e.stage)
            error = e.to_structured()
        except KeyboardInterrupt:
            raise
        except BaseException as e:
            # Also covers SystemExit raised by artifact code outside the dispatcher.
            self.log.error(f"Unexpected error inspecting {artifact_path}: {type(e).__name__}: {e}")
            error = internal_error(e, artifact_path=str(artifact_path))

        if error is not None:
            self._advance(RunState.FAILED)
            report = None

        return InspectionResult(
            artifact_path=str(artifact_path),
            report_path=str(report_path),
            state=self.state,
            report=report,
            error=error,
        )


def inspect_many(
    artifact_paths: Iterable[Path],
    settings: InspectorSettings | None = None,
    log: LogSink | None = None,
) -> list[InspectionResult]:
    """Inspect artifacts one after another, each in a fresh isolated context.

    Reports go to each artifact's default report path. A failing artifact
    does not stop the batch.
    """
    inspector = PluginInspector(settings=settings, log=log)
    results = []
    for artifact_path in artifact_paths:
        result = inspector.inspect(Path(artifact_path))
        inspector.log.info(f"{artifact_path}: {result.state.value}")
        results.append(result)
    return results
