"""Structured error model for pluginspect."""

from typing import Any

from pydantic import BaseModel, Field


class StructuredError(BaseModel):
    """Structured error response format.

    All fatal errors emitted by pluginspect follow this schema so that a
    calling harness can react to them programmatically.
    """

    code: str = Field(
        ...,
        pattern=r"^[A-Z][A-Z0-9_]*$",
        description="Error code (e.g., ENTRY_POINT_NOT_FOUND)",
        examples=[
            "ARTIFACT_UNREADABLE",
            "METADATA_MISSING",
            "ENTRY_POINT_UNDECLARED",
            "ENTRY_POINT_TIMEOUT",
        ],
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
    )

    remediation: str = Field(
        ...,
        description="Suggested fix or next step",
    )

    retryable: bool = Field(
        ...,
        description="Whether retry may succeed",
    )

    context: dict[str, Any] | None = Field(
        default=None,
        description="Additional context (artifact_path, stage, cause, etc.)",
    )

    model_config = {"extra": "forbid"}


class ErrorCode:
    """Standard error codes for pluginspect."""

    ARTIFACT_UNREADABLE = "ARTIFACT_UNREADABLE"
    METADATA_MISSING = "METADATA_MISSING"
    METADATA_MALFORMED = "METADATA_MALFORMED"
    ENTRY_POINT_UNDECLARED = "ENTRY_POINT_UNDECLARED"
    ENTRY_POINT_NOT_FOUND = "ENTRY_POINT_NOT_FOUND"
    ENTRY_POINT_NOT_CONSTRUCTIBLE = "ENTRY_POINT_NOT_CONSTRUCTIBLE"
    ENTRY_POINT_CONSTRUCTION_FAILED = "ENTRY_POINT_CONSTRUCTION_FAILED"
    EXTENSION_ENUMERATION_FAILED = "EXTENSION_ENUMERATION_FAILED"
    ENTRY_POINT_TIMEOUT = "ENTRY_POINT_TIMEOUT"
    REPORT_WRITE_FAILED = "REPORT_WRITE_FAILED"
    REPORT_UNREADABLE = "REPORT_UNREADABLE"
    CONFIG_ERROR = "CONFIG_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
