"""Pydantic models for pluginspect."""

from pluginspect.models.error import ErrorCode, StructuredError
from pluginspect.models.report import (
    Extension,
    ExtensionKind,
    ManifestItem,
    PluginReport,
    PropertyExtension,
    RepositoryNode,
    RuleNode,
    RulesExtension,
    UnknownExtension,
)

__all__ = [
    "ErrorCode",
    "StructuredError",
    "Extension",
    "ExtensionKind",
    "ManifestItem",
    "PluginReport",
    "PropertyExtension",
    "RepositoryNode",
    "RuleNode",
    "RulesExtension",
    "UnknownExtension",
]
