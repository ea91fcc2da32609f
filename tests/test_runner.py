"""Tests for entry-point activation."""

from __future__ import annotations

import pytest

from pluginspect.core.errors import (
    EntryPointConstructionFailedError,
    EntryPointNotConstructibleError,
    EntryPointNotFoundError,
    EntryPointTimeoutError,
    ExtensionEnumerationError,
)
from pluginspect.models.error import ErrorCode
from pluginspect.plugins.loader import build_context
from pluginspect.plugins.runner import (
    ConstructionError,
    EntryPointActivator,
    NotConstructibleError,
    create_instance,
    split_type_name,
    type_name_of,
)

COUNTING_PLUGIN = """
from pluginspect.api import Plugin

CALLS = []


class CountingPlugin(Plugin):
    def get_extensions(self):
        CALLS.append(1)
        return (item for item in ["a", "b", "c"])
"""


def _activate(make_artifact, log, source: str, type_name: str, timeout: float = 5.0):
    artifact = make_artifact(files={"plug/__init__.py": "", "plug/entry.py": source})
    with build_context(artifact, log=log) as context:
        activator = EntryPointActivator(timeout_seconds=timeout, log=log)
        return activator.activate(context, type_name), context


class TestHelpers:
    @pytest.mark.parametrize(
        "type_name, expected",
        [
            ("pkg.mod:Outer.Inner", ("pkg.mod", "Outer.Inner")),
            ("pkg.mod.Plugin", ("pkg.mod", "Plugin")),
            (" pkg.mod : Plugin ", ("pkg.mod", "Plugin")),
        ],
    )
    def test_split_type_name(self, type_name: str, expected: tuple[str, str]) -> None:
        assert split_type_name(type_name) == expected

    @pytest.mark.parametrize("type_name", ["Plugin", "pkg.mod:", ":Plugin"])
    def test_split_type_name_rejects_incomplete(self, type_name: str) -> None:
        with pytest.raises(ValueError):
            split_type_name(type_name)

    def test_type_name_of(self) -> None:
        assert type_name_of(object()) == "object"
        assert type_name_of(ConstructionError) == "pluginspect.plugins.runner.ConstructionError"
        assert type_name_of(ConstructionError(ValueError())) == "pluginspect.plugins.runner.ConstructionError"

    def test_create_instance_failure_modes(self) -> None:
        class NeedsArgs:
            def __init__(self, value):
                self.value = value

        class Raises:
            def __init__(self):
                raise ValueError("nope")

        with pytest.raises(NotConstructibleError):
            create_instance(NeedsArgs)
        with pytest.raises(NotConstructibleError):
            create_instance(42)
        with pytest.raises(ConstructionError) as exc_info:
            create_instance(Raises)
        assert isinstance(exc_info.value.cause, ValueError)


class TestActivation:
    def test_activates_and_materialises_extensions_once(self, make_artifact, log, log_stream) -> None:
        activation, context = _activate(make_artifact, log, COUNTING_PLUGIN, "plug.entry:CountingPlugin")
        assert activation.extensions == ["a", "b", "c"]
        assert type(activation.instance).__name__ == "CountingPlugin"
        assert "Extensions retrieved: 3" in log_stream.getvalue()

    def test_get_extensions_called_exactly_once(self, make_artifact, log) -> None:
        artifact = make_artifact(files={"plug/__init__.py": "", "plug/entry.py": COUNTING_PLUGIN})
        with build_context(artifact, log=log) as context:
            EntryPointActivator(log=log).activate(context, "plug.entry.CountingPlugin")
            assert context.modules["plug.entry"].CALLS == [1]

    @pytest.mark.parametrize(
        "type_name",
        ["plug.entry:Missing", "plug.missing:Plugin", "other.entry:Plugin", "noseparator"],
    )
    def test_not_found(self, make_artifact, log, type_name: str) -> None:
        with pytest.raises(EntryPointNotFoundError) as exc_info:
            _activate(make_artifact, log, COUNTING_PLUGIN, type_name)
        assert exc_info.value.code == ErrorCode.ENTRY_POINT_NOT_FOUND
        assert exc_info.value.stage == "activation"

    def test_missing_dependency_is_a_construction_failure(self, make_artifact, log) -> None:
        source = "import yaml\n" + COUNTING_PLUGIN
        with pytest.raises(EntryPointConstructionFailedError) as exc_info:
            _activate(make_artifact, log, source, "plug.entry:CountingPlugin")
        assert exc_info.value.code == ErrorCode.ENTRY_POINT_CONSTRUCTION_FAILED
        assert isinstance(exc_info.value.cause, ModuleNotFoundError)

    @pytest.mark.parametrize(
        "source, type_name",
        [
            ("from pluginspect.api import Plugin\nclass Abstract(Plugin):\n    pass\n", "plug.entry:Abstract"),
            ("class NeedsArgs:\n    def __init__(self, value):\n        pass\n", "plug.entry:NeedsArgs"),
            ("VALUE = 3\n", "plug.entry:VALUE"),
        ],
    )
    def test_not_constructible(self, make_artifact, log, source: str, type_name: str) -> None:
        with pytest.raises(EntryPointNotConstructibleError) as exc_info:
            _activate(make_artifact, log, source, type_name)
        assert exc_info.value.code == ErrorCode.ENTRY_POINT_NOT_CONSTRUCTIBLE
        assert isinstance(exc_info.value, EntryPointConstructionFailedError)

    def test_constructor_raising_captures_cause(self, make_artifact, log) -> None:
        source = "class Broken:\n    def __init__(self):\n        raise KeyError('config')\n"
        with pytest.raises(EntryPointConstructionFailedError) as exc_info:
            _activate(make_artifact, log, source, "plug.entry:Broken")
        assert isinstance(exc_info.value.cause, KeyError)
        assert "KeyError" in exc_info.value.error.context["cause"]

    @pytest.mark.parametrize(
        "body",
        [
            "    pass\n",
            "    def get_extensions(self):\n        raise RuntimeError('enumeration')\n",
            "    def get_extensions(self):\n        return None\n",
            "    def get_extensions(self):\n        return 'abc'\n",
        ],
    )
    def test_enumeration_failures(self, make_artifact, log, body: str) -> None:
        source = "class Entry:\n" + body
        with pytest.raises(ExtensionEnumerationError) as exc_info:
            _activate(make_artifact, log, source, "plug.entry:Entry")
        assert exc_info.value.code == ErrorCode.EXTENSION_ENUMERATION_FAILED

    def test_timeout(self, make_artifact, log) -> None:
        source = (
            "import threading\n"
            "\n"
            "class Slow:\n"
            "    def get_extensions(self):\n"
            "        threading.Event().wait(10)\n"
            "        return []\n"
        )
        with pytest.raises(EntryPointTimeoutError) as exc_info:
            _activate(make_artifact, log, source, "plug.entry:Slow", timeout=0.2)
        assert exc_info.value.code == ErrorCode.ENTRY_POINT_TIMEOUT
        assert exc_info.value.error.retryable is True

    def test_resources_visible_from_worker_thread(self, make_artifact, log) -> None:
        source = (
            "from pluginspect.api import read_resource\n"
            "\n"
            "class Entry:\n"
            "    def get_extensions(self):\n"
            "        return [read_resource(self, 'data.txt')]\n"
        )
        artifact = make_artifact(
            files={"plug/__init__.py": "", "plug/entry.py": source, "plug/data.txt": "payload"}
        )
        with build_context(artifact, log=log) as context:
            activation = EntryPointActivator(log=log).activate(context, "plug.entry:Entry")
        assert activation.extensions == [b"payload"]
