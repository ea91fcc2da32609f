"""Tests for manifest parsing and reading."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from pluginspect.core.config import InspectorSettings
from pluginspect.core.errors import (
    ArtifactUnreadableError,
    EntryPointUndeclaredError,
    MetadataMalformedError,
    MetadataMissingError,
)
from pluginspect.models.error import ErrorCode
from pluginspect.plugins.manifest import (
    ManifestFormatError,
    ManifestReader,
    find_attribute,
    parse_manifest,
)


class TestParseManifest:
    def test_preserves_declaration_order(self) -> None:
        text = "Manifest-Version: 1.0\r\nZeta: z\r\nAlpha: a\r\n"
        assert list(parse_manifest(text)) == ["Manifest-Version", "Zeta", "Alpha"]

    def test_joins_continuation_lines(self) -> None:
        text = "Entry-Point-Type: sampleplugin.some.very.long\n .module:Plugin\n"
        assert parse_manifest(text) == {
            "Entry-Point-Type": "sampleplugin.some.very.long.module:Plugin"
        }

    def test_stops_at_first_blank_line(self) -> None:
        text = "Main: yes\r\n\r\nName: sampleplugin/plugin.py\r\nDigest: abc\r\n"
        assert parse_manifest(text) == {"Main": "yes"}

    def test_accepts_mixed_line_endings_and_bom(self) -> None:
        text = "\ufeffA: 1\rB: 2\nC: 3\r\n"
        assert parse_manifest(text) == {"A": "1", "B": "2", "C": "3"}

    def test_repeated_name_keeps_position_takes_last_value(self) -> None:
        text = "A: 1\nB: 2\na: 3\n"
        assert parse_manifest(text) == {"A": "3", "B": "2"}

    def test_value_may_contain_separator(self) -> None:
        assert parse_manifest("Url: http://host: 80\n") == {"Url": "http://host: 80"}

    def test_line_without_separator_is_malformed(self) -> None:
        with pytest.raises(ManifestFormatError, match="line 2"):
            parse_manifest("A: 1\nnot an attribute\n")

    def test_leading_continuation_is_malformed(self) -> None:
        with pytest.raises(ManifestFormatError, match="continuation"):
            parse_manifest(" dangling\n")

    def test_find_attribute_is_case_insensitive(self) -> None:
        attributes = {"Entry-Point-Type": "a.b:C"}
        assert find_attribute(attributes, "entry-point-type") == "a.b:C"
        assert find_attribute(attributes, "Missing") is None


class TestManifestReader:
    def test_reads_entry_point_and_attributes(self, sample_artifact: Path, log) -> None:
        manifest = ManifestReader(log=log).read(sample_artifact)
        assert manifest.entry_point_type == "sampleplugin.plugin:SamplePlugin"
        assert manifest.attributes["Plugin-Key"] == "sample"
        assert manifest.artifact_path == str(sample_artifact)

    def test_logs_entry_point(self, sample_artifact: Path, log, log_stream) -> None:
        ManifestReader(log=log).read(sample_artifact)
        assert "Entry point to be created: sampleplugin.plugin:SamplePlugin" in log_stream.getvalue()

    def test_entry_point_attribute_matched_case_insensitively(self, make_artifact, log) -> None:
        artifact = make_artifact(manifest={"entry-point-type": " pkg.mod:Plugin "})
        assert ManifestReader(log=log).read(artifact).entry_point_type == "pkg.mod:Plugin"

    def test_custom_entry_point_attribute(self, make_artifact, log) -> None:
        artifact = make_artifact(manifest={"Plugin-Class": "pkg.mod:Plugin"})
        settings = InspectorSettings(entry_point_attribute="Plugin-Class")
        manifest = ManifestReader(settings=settings, log=log).read(artifact)
        assert manifest.entry_point_type == "pkg.mod:Plugin"

    def test_missing_manifest(self, make_artifact, log) -> None:
        artifact = make_artifact(manifest=None)
        with pytest.raises(MetadataMissingError) as exc_info:
            ManifestReader(log=log).read(artifact)
        assert exc_info.value.code == ErrorCode.METADATA_MISSING
        assert exc_info.value.stage == "metadata"
        assert str(artifact) in str(exc_info.value)

    def test_malformed_manifest(self, make_artifact, log) -> None:
        artifact = make_artifact(manifest="Entry-Point-Type pkg.mod:Plugin\n")
        with pytest.raises(MetadataMalformedError) as exc_info:
            ManifestReader(log=log).read(artifact)
        assert exc_info.value.code == ErrorCode.METADATA_MALFORMED

    def test_undecodable_manifest(self, tmp_path: Path, log) -> None:
        artifact = tmp_path / "latin1.jar"
        with zipfile.ZipFile(artifact, "w") as archive:
            archive.writestr("META-INF/MANIFEST.MF", b"Entry-Point-Type: caf\xe9:P\n")
        with pytest.raises(MetadataMalformedError, match="not UTF-8"):
            ManifestReader(log=log).read(artifact)

    @pytest.mark.parametrize("value", [None, "   "])
    def test_undeclared_entry_point(self, make_artifact, log, value: str | None) -> None:
        attributes = {"Manifest-Version": "1.0"}
        if value is not None:
            attributes["Entry-Point-Type"] = value
        artifact = make_artifact(manifest=attributes)
        with pytest.raises(EntryPointUndeclaredError) as exc_info:
            ManifestReader(log=log).read(artifact)
        assert exc_info.value.code == ErrorCode.ENTRY_POINT_UNDECLARED

    def test_nonexistent_artifact(self, tmp_path: Path, log) -> None:
        with pytest.raises(ArtifactUnreadableError, match="does not exist"):
            ManifestReader(log=log).read(tmp_path / "missing.jar")

    def test_not_an_archive(self, tmp_path: Path, log) -> None:
        artifact = tmp_path / "plain.jar"
        artifact.write_text("not a zip file")
        with pytest.raises(ArtifactUnreadableError) as exc_info:
            ManifestReader(log=log).read(artifact)
        assert exc_info.value.code == ErrorCode.ARTIFACT_UNREADABLE
