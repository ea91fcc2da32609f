"""Structured error handling for pluginspect.

Every fatal failure of an inspection run is an ``InspectorError``. Each one
names the artifact and the stage that failed so that the message printed by
the CLI is actionable on its own.
"""

import sys
from typing import Any, NoReturn

from pluginspect.models.error import ErrorCode, StructuredError


class Stage:
    """Inspection run stages, used in error context."""

    METADATA = "metadata"
    CONTEXT = "context"
    ACTIVATION = "activation"
    CLASSIFICATION = "classification"
    REPORT = "report"
    CONFIG = "config"


class InspectorError(Exception):
    """Base exception for pluginspect errors.

    Wraps a StructuredError for consistent error handling.
    """

    def __init__(
        self,
        code: str,
        message: str,
        remediation: str,
        retryable: bool = False,
        context: dict[str, Any] | None = None,
    ):
        self.error = StructuredError(
            code=code,
            message=message,
            remediation=remediation,
            retryable=retryable,
            context=context,
        )
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def stage(self) -> str | None:
        return (self.error.context or {}).get("stage")

    def to_structured(self) -> StructuredError:
        """Convert to StructuredError."""
        return self.error


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class ArtifactUnreadableError(InspectorError):
    """The artifact cannot be opened as an archive."""

    def __init__(self, artifact_path: str, reason: str, stage: str = Stage.METADATA):
        super().__init__(
            code=ErrorCode.ARTIFACT_UNREADABLE,
            message=f"Cannot open artifact {artifact_path} as an archive ({stage}): {reason}",
            remediation="Check that the path exists and points to a complete zip/jar archive",
            retryable=False,
            context={"artifact_path": artifact_path, "stage": stage, "reason": reason},
        )


class MetadataMissingError(InspectorError):
    """The archive carries no manifest record."""

    def __init__(
        self,
        artifact_path: str,
        manifest_path: str,
        code: str = ErrorCode.METADATA_MISSING,
        detail: str | None = None,
    ):
        message = f"No manifest found at {manifest_path} in {artifact_path}"
        if detail:
            message = f"Manifest {manifest_path} in {artifact_path} is malformed: {detail}"
        context: dict[str, Any] = {
            "artifact_path": artifact_path,
            "stage": Stage.METADATA,
            "manifest_path": manifest_path,
        }
        if detail:
            context["detail"] = detail
        super().__init__(
            code=code,
            message=message,
            remediation="Rebuild the artifact so that it embeds a jar-style manifest",
            retryable=False,
            context=context,
        )


class MetadataMalformedError(MetadataMissingError):
    """The manifest exists but cannot be parsed."""

    def __init__(self, artifact_path: str, manifest_path: str, detail: str):
        super().__init__(
            artifact_path,
            manifest_path,
            code=ErrorCode.METADATA_MALFORMED,
            detail=detail,
        )


class EntryPointUndeclaredError(InspectorError):
    """The manifest does not name an entry-point type."""

    def __init__(self, artifact_path: str, attribute: str):
        super().__init__(
            code=ErrorCode.ENTRY_POINT_UNDECLARED,
            message=f"The manifest of {artifact_path} does not declare {attribute}",
            remediation=f"Add a '{attribute}: package.module:ClassName' line to the manifest",
            retryable=False,
            context={"artifact_path": artifact_path, "stage": Stage.METADATA, "attribute": attribute},
        )


class EntryPointNotFoundError(InspectorError):
    """The declared entry-point type cannot be resolved inside the artifact."""

    def __init__(self, artifact_path: str, type_name: str, reason: str):
        super().__init__(
            code=ErrorCode.ENTRY_POINT_NOT_FOUND,
            message=f"Entry point {type_name} not found in {artifact_path} ({Stage.ACTIVATION}): {reason}",
            remediation="Check the manifest entry-point value against the modules packaged in the artifact",
            retryable=False,
            context={
                "artifact_path": artifact_path,
                "stage": Stage.ACTIVATION,
                "type_name": type_name,
                "reason": reason,
            },
        )


class EntryPointConstructionFailedError(InspectorError):
    """The entry point was found but creating an instance failed."""

    def __init__(
        self,
        artifact_path: str,
        type_name: str,
        cause: BaseException | str,
        code: str = ErrorCode.ENTRY_POINT_CONSTRUCTION_FAILED,
    ):
        cause_text = cause if isinstance(cause, str) else _describe(cause)
        super().__init__(
            code=code,
            message=f"Could not construct entry point {type_name} from {artifact_path} ({Stage.ACTIVATION}): {cause_text}",
            remediation="The entry point must be a concrete class with a zero-argument constructor",
            retryable=False,
            context={
                "artifact_path": artifact_path,
                "stage": Stage.ACTIVATION,
                "type_name": type_name,
                "cause": cause_text,
            },
        )
        self.cause = cause if isinstance(cause, BaseException) else None


class EntryPointNotConstructibleError(EntryPointConstructionFailedError):
    """The entry point exists but has no zero-argument construction contract."""

    def __init__(self, artifact_path: str, type_name: str, reason: str):
        super().__init__(
            artifact_path,
            type_name,
            reason,
            code=ErrorCode.ENTRY_POINT_NOT_CONSTRUCTIBLE,
        )


class ExtensionEnumerationError(InspectorError):
    """``get_extensions`` is missing, raised, or returned a non-iterable."""

    def __init__(self, artifact_path: str, type_name: str, cause: BaseException | str):
        cause_text = cause if isinstance(cause, str) else _describe(cause)
        super().__init__(
            code=ErrorCode.EXTENSION_ENUMERATION_FAILED,
            message=f"Entry point {type_name} in {artifact_path} failed to enumerate extensions ({Stage.ACTIVATION}): {cause_text}",
            remediation="get_extensions() must return an iterable of extension descriptors",
            retryable=False,
            context={
                "artifact_path": artifact_path,
                "stage": Stage.ACTIVATION,
                "type_name": type_name,
                "cause": cause_text,
            },
        )


class EntryPointTimeoutError(InspectorError):
    """Entry-point construction or enumeration did not finish in time."""

    def __init__(self, artifact_path: str, type_name: str, timeout_seconds: float):
        super().__init__(
            code=ErrorCode.ENTRY_POINT_TIMEOUT,
            message=f"Entry point {type_name} in {artifact_path} did not finish within {timeout_seconds}s ({Stage.ACTIVATION})",
            remediation="Raise --timeout if the plugin is slow, otherwise look for a hang in its constructor or get_extensions()",
            retryable=True,
            context={
                "artifact_path": artifact_path,
                "stage": Stage.ACTIVATION,
                "type_name": type_name,
                "timeout_seconds": timeout_seconds,
            },
        )


class ReportWriteError(InspectorError):
    """The report could not be written to its destination."""

    def __init__(self, artifact_path: str, report_path: str, reason: str):
        super().__init__(
            code=ErrorCode.REPORT_WRITE_FAILED,
            message=f"Failed to write report for {artifact_path} to {report_path} ({Stage.REPORT}): {reason}",
            remediation="Check that the output directory exists and is writable",
            retryable=True,
            context={
                "artifact_path": artifact_path,
                "stage": Stage.REPORT,
                "report_path": report_path,
                "reason": reason,
            },
        )


class ReportReadError(InspectorError):
    """A previously written report cannot be loaded."""

    def __init__(self, report_path: str, reason: str):
        super().__init__(
            code=ErrorCode.REPORT_UNREADABLE,
            message=f"Cannot load report {report_path}: {reason}",
            remediation="Pass a report written by 'pluginspect inspect' (XML or JSON)",
            retryable=False,
            context={"stage": Stage.REPORT, "report_path": report_path, "reason": reason},
        )


class ConfigError(InspectorError):
    """Settings file or option values are invalid."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(
            code=ErrorCode.CONFIG_ERROR,
            message=message,
            remediation="Fix the settings file or command-line options and try again",
            retryable=False,
            context={"stage": Stage.CONFIG, "path": path} if path else {"stage": Stage.CONFIG},
        )


def internal_error(error: BaseException, artifact_path: str | None = None) -> StructuredError:
    """Wrap an unexpected exception as a StructuredError."""
    context: dict[str, Any] = {"type": type(error).__name__}
    if artifact_path:
        context["artifact_path"] = artifact_path
    return StructuredError(
        code=ErrorCode.INTERNAL_ERROR,
        message=str(error) or type(error).__name__,
        remediation="This is an unexpected error. Please report it.",
        retryable=False,
        context=context,
    )


def handle_error(error: InspectorError | Exception, exit_code: int = 1, formatter: Any = None) -> NoReturn:
    """Handle an error by outputting it and exiting.

    Args:
        error: The error to handle
        exit_code: Exit code to use
        formatter: CLI OutputFormatter (JSON on stdout if omitted)
    """
    from pluginspect.cli.output import OutputFormatter

    formatter = formatter or OutputFormatter()
    if isinstance(error, InspectorError):
        formatter.error(error.to_structured())
    else:
        formatter.error(internal_error(error))

    sys.exit(exit_code)
