"""Report assembly and serialization.

XML layout::

    <PluginReport artifactPath="...">
      <Manifest>
        <Item key="Entry-Point-Type" value="..."/>
      </Manifest>
      <Extensions>
        <Extension type="PropertyDefinition" class="..." key="..." defaultValue="..."/>
        <Extension type="RulesDefinition" class="...">
          <Repository key="..." name="..." language="..." note="...">
            <Rule key="..." name="..." internalKey="..." severity="..."/>
          </Repository>
        </Extension>
        <Extension type="Unknown" class="..." error="..."/>
      </Extensions>
    </PluginReport>

Attributes without a value are omitted. Attribute order is fixed and nodes
follow report order, so equal reports serialize to equal bytes.
"""

import json
import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pluginspect.core.errors import ReportReadError
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
from pluginspect.plugins.manifest import ArtifactManifest

ROOT_TAG = "PluginReport"
MANIFEST_TAG = "Manifest"
ITEM_TAG = "Item"
EXTENSIONS_TAG = "Extensions"
EXTENSION_TAG = "Extension"
REPOSITORY_TAG = "Repository"
RULE_TAG = "Rule"

_RULE_ATTRIBUTES = (
    ("key", "key"),
    ("name", "name"),
    ("internalKey", "internal_key"),
    ("severity", "severity"),
)


class ReportBuilder:
    """Accumulates the report document for one run."""

    def __init__(self, artifact_path: str) -> None:
        self.artifact_path = artifact_path
        self.manifest: list[ManifestItem] = []
        self.extensions: list[Extension] = []

    def add_manifest(self, manifest: ArtifactManifest) -> "ReportBuilder":
        for key, value in manifest.attributes.items():
            self.manifest.append(ManifestItem(key=key, value=value))
        return self

    def add_extensions(self, extensions: list[Extension]) -> "ReportBuilder":
        self.extensions.extend(extensions)
        return self

    def build(self) -> PluginReport:
        return PluginReport(
            artifact_path=self.artifact_path,
            manifest=list(self.manifest),
            extensions=list(self.extensions),
        )


# Characters outside the XML 1.0 Char production cannot appear in a
# well-formed document, even as character references.
_XML_ILLEGAL = re.compile(r"[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")
REPLACEMENT_CHARACTER = "\ufffd"


def xml_safe(value: str) -> str:
    """Replace characters XML 1.0 cannot carry with U+FFFD."""
    return _XML_ILLEGAL.sub(REPLACEMENT_CHARACTER, value)


def _set(element: ET.Element, name: str, value: str | None) -> None:
    if value is not None:
        element.set(name, xml_safe(value))


def to_xml_bytes(report: PluginReport) -> bytes:
    """Serialize a report as UTF-8 XML."""
    root = ET.Element(ROOT_TAG)
    _set(root, "artifactPath", report.artifact_path)

    manifest = ET.SubElement(root, MANIFEST_TAG)
    for item in report.manifest:
        node = ET.SubElement(manifest, ITEM_TAG)
        _set(node, "key", item.key)
        _set(node, "value", item.value)

    extensions = ET.SubElement(root, EXTENSIONS_TAG)
    for extension in report.extensions:
        node = ET.SubElement(extensions, EXTENSION_TAG)
        _set(node, "type", extension.kind)
        _set(node, "class", extension.class_name)
        if isinstance(extension, PropertyExtension):
            _set(node, "key", extension.key)
            _set(node, "defaultValue", extension.default_value)
        elif isinstance(extension, RulesExtension):
            for repository in extension.repositories:
                _repository_element(node, repository)
        else:
            _set(node, "error", extension.error)

    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n"


def _repository_element(parent: ET.Element, repository: RepositoryNode) -> None:
    node = ET.SubElement(parent, REPOSITORY_TAG)
    _set(node, "key", repository.key)
    _set(node, "name", repository.name)
    _set(node, "language", repository.language)
    _set(node, "note", repository.note)
    for rule in repository.rules:
        rule_node = ET.SubElement(node, RULE_TAG)
        for attribute, field in _RULE_ATTRIBUTES:
            _set(rule_node, attribute, getattr(rule, field))


def to_json_bytes(report: PluginReport) -> bytes:
    """Serialize a report as UTF-8 JSON with the same tree and ordering."""
    data = report.model_dump(mode="json")
    return (json.dumps(data, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def serialize(report: PluginReport, report_format: str = "xml") -> bytes:
    if report_format == "json":
        return to_json_bytes(report)
    return to_xml_bytes(report)


def from_xml_bytes(data: bytes) -> PluginReport:
    """Parse an XML report.

    Raises:
        ValueError: If the document is not a report
    """
    root = ET.fromstring(data)
    if root.tag != ROOT_TAG:
        raise ValueError(f"expected <{ROOT_TAG}> root element, found <{root.tag}>")

    manifest = [
        ManifestItem(key=item.get("key", ""), value=item.get("value", ""))
        for item in root.findall(f"{MANIFEST_TAG}/{ITEM_TAG}")
    ]
    extensions = [
        _extension_from_element(node)
        for node in root.findall(f"{EXTENSIONS_TAG}/{EXTENSION_TAG}")
    ]
    return PluginReport(
        artifact_path=root.get("artifactPath", ""),
        manifest=manifest,
        extensions=extensions,
    )


def _extension_from_element(node: ET.Element) -> Extension:
    kind = node.get("type")
    class_name = node.get("class", "")
    if kind == ExtensionKind.PROPERTY.value:
        return PropertyExtension(
            class_name=class_name,
            key=node.get("key"),
            default_value=node.get("defaultValue"),
        )
    if kind == ExtensionKind.RULES.value:
        repositories = [
            RepositoryNode(
                key=repo.get("key", ""),
                name=repo.get("name"),
                language=repo.get("language", ""),
                note=repo.get("note"),
                rules=[
                    RuleNode(**{field: rule.get(attribute) for attribute, field in _RULE_ATTRIBUTES})
                    for rule in repo.findall(RULE_TAG)
                ],
            )
            for repo in node.findall(REPOSITORY_TAG)
        ]
        return RulesExtension(class_name=class_name, repositories=repositories)
    if kind == ExtensionKind.UNKNOWN.value:
        return UnknownExtension(class_name=class_name, error=node.get("error"))
    raise ValueError(f"unknown extension type {kind!r}")


def load_report(path: Path) -> PluginReport:
    """Load a report written by ``inspect`` (XML or JSON).

    JSON is recognised by a ``.json`` suffix or a leading ``{``.

    Raises:
        ReportReadError: If the file cannot be read or is not a report
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ReportReadError(str(path), str(e))

    is_json = path.suffix == ".json" or data.lstrip().startswith(b"{")
    try:
        if is_json:
            return PluginReport.model_validate_json(data)
        return from_xml_bytes(data)
    except ET.ParseError as e:
        raise ReportReadError(str(path), f"invalid XML: {e}")
    except ValidationError as e:
        raise ReportReadError(str(path), f"invalid report: {e}")
    except ValueError as e:
        raise ReportReadError(str(path), str(e))


def report_summary(report: PluginReport) -> dict[str, Any]:
    """Counts per extension kind, in a fixed order."""
    return {
        "extensions": len(report.extensions),
        "properties": len(report.extensions_of(ExtensionKind.PROPERTY)),
        "rules_definitions": len(report.extensions_of(ExtensionKind.RULES)),
        "unknown": len(report.extensions_of(ExtensionKind.UNKNOWN)),
    }
