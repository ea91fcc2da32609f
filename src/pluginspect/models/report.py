"""Report document models.

A report describes one inspected artifact: its manifest attributes in
declaration order followed by one node per extension, in the order the
entry point returned them. The ordering is part of the contract because
reports are compared byte-for-byte between runs.
"""

from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field


class ExtensionKind(str, Enum):
    """Classified extension type tags as they appear in the report."""

    PROPERTY = "PropertyDefinition"
    RULES = "RulesDefinition"
    UNKNOWN = "Unknown"


class ManifestItem(BaseModel):
    """A single manifest attribute, copied verbatim."""

    key: str
    value: str

    model_config = {"extra": "forbid"}


class RuleNode(BaseModel):
    """A rule registered in a repository."""

    key: str
    name: str | None = None
    internal_key: str | None = None
    severity: str | None = None

    model_config = {"extra": "forbid"}


class RepositoryNode(BaseModel):
    """A rule repository committed by a rules definition."""

    key: str
    name: str | None = None
    language: str
    rules: list[RuleNode] = Field(default_factory=list)
    note: str | None = Field(
        default=None,
        description="Set when the repository was committed without rule data",
    )

    model_config = {"extra": "forbid"}


class PropertyExtension(BaseModel):
    """A property declaration extension."""

    kind: Literal["PropertyDefinition"] = "PropertyDefinition"
    class_name: str
    key: str | None = None
    default_value: str | None = None

    model_config = {"extra": "forbid"}


class RulesExtension(BaseModel):
    """A rule-registry provider and the repositories it registered."""

    kind: Literal["RulesDefinition"] = "RulesDefinition"
    class_name: str
    repositories: list[RepositoryNode] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class UnknownExtension(BaseModel):
    """An extension whose shape was not recognised, or whose rendering failed."""

    kind: Literal["Unknown"] = "Unknown"
    class_name: str
    error: str | None = None

    model_config = {"extra": "forbid"}


Extension = Annotated[
    PropertyExtension | RulesExtension | UnknownExtension,
    Field(discriminator="kind"),
]


class PluginReport(BaseModel):
    """Complete inspection report for one artifact."""

    artifact_path: str
    manifest: list[ManifestItem] = Field(default_factory=list)
    extensions: list[Extension] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    def manifest_dict(self) -> dict[str, str]:
        """Manifest attributes as an ordered mapping."""
        return {item.key: item.value for item in self.manifest}

    def extensions_of(self, kind: ExtensionKind) -> list[Extension]:
        """Extensions of a given kind, in report order."""
        return [ext for ext in self.extensions if ext.kind == kind]
