"""Shared test fixtures: plugin artifacts built in tmp_path."""

from __future__ import annotations

import io
import zipfile
from collections.abc import Callable
from pathlib import Path
from textwrap import dedent

import pytest

from pluginspect.core.config import InspectorSettings
from pluginspect.core.logging import LogSink

ArtifactFactory = Callable[..., Path]

DEFAULT_ENTRY_POINT = "sampleplugin.plugin:SamplePlugin"

SAMPLE_PLUGIN = dedent(
    """
    from pluginspect.api import Plugin, PropertyDefinition

    from sampleplugin.rules import SampleRules


    class SamplePlugin(Plugin):
        def get_extensions(self):
            return [
                PropertyDefinition.builder("foo.bar").default_value("42").build(),
                SampleRules,
                object(),
            ]
    """
)

SAMPLE_RULES = dedent(
    """
    from pluginspect.api import RulesDefinition, RulesXmlLoader, open_resource


    class SampleRules(RulesDefinition):
        LANGUAGE_KEYS = ("cs",)

        def define(self, context, language_key):
            repository = context.create_repository("repo1", language_key).set_name("Sample")
            stream = open_resource(self, "rules.xml")
            if stream is not None:
                RulesXmlLoader().load(repository, stream)
            repository.done()
    """
)

SAMPLE_RULES_XML = dedent(
    """\
    <rules>
      <rule>
        <key>ruleA</key>
        <name>Rule A</name>
        <internalKey>internal.ruleA</internalKey>
        <severity>MAJOR</severity>
      </rule>
      <rule>
        <key>ruleB</key>
        <name>Rule B</name>
        <severity>minor</severity>
      </rule>
    </rules>
    """
)


def render_manifest(attributes: dict[str, str]) -> str:
    lines = [f"{key}: {value}" for key, value in attributes.items()]
    return "\r\n".join(lines) + "\r\n\r\n"


def write_artifact(
    path: Path,
    files: dict[str, str | bytes],
    manifest: dict[str, str] | str | None = None,
) -> Path:
    """Write a zip artifact; ``manifest`` None means no manifest entry."""
    with zipfile.ZipFile(path, "w") as archive:
        if manifest is not None:
            text = manifest if isinstance(manifest, str) else render_manifest(manifest)
            archive.writestr("META-INF/MANIFEST.MF", text)
        for name, content in files.items():
            archive.writestr(name, content)
    return path


def sample_files() -> dict[str, str | bytes]:
    return {
        "sampleplugin/__init__.py": "",
        "sampleplugin/plugin.py": SAMPLE_PLUGIN,
        "sampleplugin/rules.py": SAMPLE_RULES,
        "sampleplugin/rules.xml": SAMPLE_RULES_XML,
    }


@pytest.fixture
def make_artifact(tmp_path: Path) -> ArtifactFactory:
    """Factory building artifacts under tmp_path.

    Defaults to the sample plugin: a property, a rules definition and an
    unrecognised object, in that order.
    """

    def _make(
        name: str = "plugin.jar",
        files: dict[str, str | bytes] | None = None,
        manifest: dict[str, str] | str | None = "default",
        entry_point: str = DEFAULT_ENTRY_POINT,
    ) -> Path:
        if manifest == "default":
            manifest = {
                "Manifest-Version": "1.0",
                "Plugin-Key": "sample",
                "Entry-Point-Type": entry_point,
            }
        return write_artifact(
            tmp_path / name,
            sample_files() if files is None else files,
            manifest=manifest,
        )

    return _make


@pytest.fixture
def sample_sources() -> dict[str, str | bytes]:
    return sample_files()


@pytest.fixture
def sample_artifact(make_artifact: ArtifactFactory) -> Path:
    return make_artifact()


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def log(log_stream: io.StringIO) -> LogSink:
    """A verbose sink writing to an in-memory stream."""
    return LogSink(stream=log_stream, verbose=True)


@pytest.fixture
def settings() -> InspectorSettings:
    return InspectorSettings(timeout_seconds=5.0)
