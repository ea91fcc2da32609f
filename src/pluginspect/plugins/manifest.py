"""Artifact manifest reading.

Reads the jar-style manifest embedded in a plugin artifact. Only the archive
directory and the manifest entry are read; nothing from the artifact is
executed at this stage.
"""

import re
import zipfile
from pathlib import Path

from pydantic import BaseModel, Field

from pluginspect.core.config import InspectorSettings
from pluginspect.core.errors import (
    ArtifactUnreadableError,
    EntryPointUndeclaredError,
    MetadataMalformedError,
    MetadataMissingError,
    Stage,
)
from pluginspect.core.logging import LogSink, get_sink

SEPARATOR = ": "
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class ManifestFormatError(ValueError):
    """Raised when manifest text is not a valid jar manifest."""


class ArtifactManifest(BaseModel):
    """Manifest attributes of an artifact plus its declared entry point."""

    artifact_path: str
    attributes: dict[str, str] = Field(
        default_factory=dict,
        description="Main-section attributes in declaration order",
    )
    entry_point_type: str


def parse_manifest(text: str) -> dict[str, str]:
    """Parse the main section of a v1.0 jar manifest.

    Lines longer than 72 bytes are wrapped in manifests, the continuation
    starting with a single space. The first blank line after an attribute
    ends the main section.

    Args:
        text: Manifest text

    Returns:
        Attribute mapping in declaration order

    Raises:
        ManifestFormatError: If a line is not a ``Name: value`` pair
    """
    attributes: dict[str, str] = {}
    last_key: str | None = None

    for line_no, line in enumerate(_LINE_BREAK.split(text.lstrip("\ufeff")), start=1):
        if not line:
            if attributes:
                break
            continue

        if line.startswith(" "):
            if last_key is None:
                raise ManifestFormatError(f"line {line_no}: continuation without an attribute")
            attributes[last_key] += line[1:]
            continue

        key, sep, value = line.partition(SEPARATOR)
        if not sep or not key:
            raise ManifestFormatError(f"line {line_no}: expected 'Name: value', got {line!r}")

        # A repeated name keeps its first position and takes the last value.
        existing = find_key(attributes, key)
        last_key = existing if existing is not None else key
        attributes[last_key] = value

    return attributes


def find_key(attributes: dict[str, str], key: str) -> str | None:
    lowered = key.lower()
    for name in attributes:
        if name.lower() == lowered:
            return name
    return None


def find_attribute(attributes: dict[str, str], key: str) -> str | None:
    name = find_key(attributes, key)
    return attributes[name] if name is not None else None


def open_artifact(artifact_path: Path, stage: str) -> zipfile.ZipFile:
    """Open an artifact archive for reading.

    Raises:
        ArtifactUnreadableError: If the path is missing or not a zip archive
    """
    path = str(artifact_path)
    if not Path(artifact_path).is_file():
        raise ArtifactUnreadableError(path, "file does not exist", stage=stage)
    try:
        return zipfile.ZipFile(artifact_path)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
        raise ArtifactUnreadableError(path, str(e), stage=stage)


class ManifestReader:
    """Reads and validates the manifest of an artifact."""

    def __init__(
        self,
        settings: InspectorSettings | None = None,
        log: LogSink | None = None,
    ) -> None:
        self.settings = settings or InspectorSettings()
        self.log = log or get_sink()

    def read(self, artifact_path: Path) -> ArtifactManifest:
        """Read the manifest and the entry-point declaration.

        Args:
            artifact_path: Path to the artifact archive

        Returns:
            ArtifactManifest with attributes and entry-point type

        Raises:
            ArtifactUnreadableError: If the archive cannot be opened
            MetadataMissingError: If the manifest entry is absent
            MetadataMalformedError: If the manifest cannot be parsed
            EntryPointUndeclaredError: If no entry point is declared
        """
        path = str(artifact_path)
        manifest_path = self.settings.manifest_path

        with open_artifact(artifact_path, stage=Stage.METADATA) as archive:
            try:
                raw = archive.read(manifest_path)
            except KeyError:
                raise MetadataMissingError(path, manifest_path)
            except (zipfile.BadZipFile, OSError) as e:
                raise ArtifactUnreadableError(path, str(e))

        try:
            attributes = parse_manifest(raw.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise MetadataMalformedError(path, manifest_path, f"not UTF-8: {e}")
        except ManifestFormatError as e:
            raise MetadataMalformedError(path, manifest_path, str(e))

        self.log.debug(
            f"Read {len(attributes)} manifest attribute(s) from {path}",
            artifact_path=path,
        )

        attribute = self.settings.entry_point_attribute
        entry_point = find_attribute(attributes, attribute)
        if entry_point is None or not entry_point.strip():
            raise EntryPointUndeclaredError(path, attribute)

        entry_point = entry_point.strip()
        self.log.info(f"Entry point to be created: {entry_point}", artifact_path=path)
        return ArtifactManifest(
            artifact_path=path,
            attributes=attributes,
            entry_point_type=entry_point,
        )
