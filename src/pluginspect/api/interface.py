"""Plugin-facing contract types.

These are the host types an artifact's code may import. They are shared
with every isolated context, so a plugin written against them sees the same
module objects as the inspector. The inspector itself never relies on that:
it only checks the shape of what a plugin hands back.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Iterable, Protocol


class Plugin(ABC):
    """Base class for plugin entry points.

    The entry point named in the artifact manifest is constructed with no
    arguments and asked once for its extensions.

    Example:
        class MyPlugin(Plugin):
            def get_extensions(self) -> list[Any]:
                return [
                    PropertyDefinition("my.plugin.analyzerId", "MyAnalyzer"),
                    MyRulesDefinition,
                ]
    """

    @abstractmethod
    def get_extensions(self) -> Iterable[Any]:
        """Return the extension descriptors this plugin declares."""
        ...


@dataclass(frozen=True)
class PropertyDefinition:
    """A configuration property declared by a plugin."""

    key: str
    default_value: str | None = None
    name: str = ""
    description: str = ""
    hidden: bool = False

    @classmethod
    def builder(cls, key: str) -> "PropertyDefinitionBuilder":
        return PropertyDefinitionBuilder(key)


class PropertyDefinitionBuilder:
    """Fluent builder for PropertyDefinition."""

    def __init__(self, key: str) -> None:
        self._key = key
        self._default_value: str | None = None
        self._name = ""
        self._description = ""
        self._hidden = False

    def default_value(self, value: str) -> "PropertyDefinitionBuilder":
        self._default_value = value
        return self

    def name(self, name: str) -> "PropertyDefinitionBuilder":
        self._name = name
        return self

    def description(self, description: str) -> "PropertyDefinitionBuilder":
        self._description = description
        return self

    def hidden(self) -> "PropertyDefinitionBuilder":
        self._hidden = True
        return self

    def build(self) -> PropertyDefinition:
        return PropertyDefinition(
            key=self._key,
            default_value=self._default_value,
            name=self._name,
            description=self._description,
            hidden=self._hidden,
        )


class NewRule(Protocol):
    """A rule being registered in a repository."""

    def set_name(self, name: str) -> "NewRule": ...

    def set_internal_key(self, internal_key: str) -> "NewRule": ...

    def set_severity(self, severity: str) -> "NewRule": ...

    def set_html_description(self, description: str) -> "NewRule": ...

    def add_tags(self, *tags: str) -> "NewRule": ...


class NewRepository(Protocol):
    """A rule repository being registered."""

    def set_name(self, name: str) -> "NewRepository": ...

    def create_rule(self, key: str) -> NewRule: ...

    def done(self) -> None: ...


class RegistrationContext(Protocol):
    """The registration surface handed to ``RulesDefinition.define``."""

    def create_repository(self, key: str, language: str) -> NewRepository: ...


class RulesDefinition(ABC):
    """Base class for rule-registry providers.

    A plugin lists the *class* among its extensions; the host constructs it
    and calls ``define``. When ``define`` accepts a ``language_key``
    parameter the host calls it once per entry of ``LANGUAGE_KEYS``;
    otherwise it is called once and is expected to iterate the languages
    itself.
    """

    LANGUAGE_KEYS: ClassVar[tuple[str, ...]] = ()

    @abstractmethod
    def define(self, context: RegistrationContext) -> None:
        """Register repositories and rules with the host."""
        ...
