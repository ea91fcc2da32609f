"""Extension classification and rendering.

Descriptors returned by an entry point come from artifact code, so their
concrete types are unknown here. Classification is structural:

* an instance exposing ``key`` and ``default_value`` is a property
  declaration;
* a class exposing a callable ``define`` is a rule-registry provider; it is
  constructed and driven through a simulated registration context;
* anything else is reported as unknown with its runtime type name.

A failure while rendering one descriptor is recorded on an unknown node and
does not stop the others.
"""

from typing import Any

from pluginspect.core.logging import LogSink, get_sink
from pluginspect.models.report import (
    Extension,
    ExtensionKind,
    PropertyExtension,
    RulesExtension,
    UnknownExtension,
)
from pluginspect.plugins.registration import RegistrationDriver
from pluginspect.plugins.runner import ConstructionError, create_instance, type_name_of

PROPERTY_ATTRIBUTES = ("key", "default_value")
DEFINE_METHOD = "define"


def read_accessor(obj: Any, name: str) -> Any:
    """Read an attribute that may be a plain value or a zero-argument accessor."""
    value = getattr(obj, name)
    if callable(value):
        value = value()
    return value


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def is_property_declaration(descriptor: Any) -> bool:
    if isinstance(descriptor, type):
        return False
    return all(hasattr(descriptor, name) for name in PROPERTY_ATTRIBUTES)


def is_rules_definition_type(descriptor: Any) -> bool:
    return isinstance(descriptor, type) and callable(getattr(descriptor, DEFINE_METHOD, None))


def classify(descriptor: Any) -> ExtensionKind:
    """Classify a descriptor by its runtime shape."""
    if is_property_declaration(descriptor):
        return ExtensionKind.PROPERTY
    if is_rules_definition_type(descriptor):
        return ExtensionKind.RULES
    return ExtensionKind.UNKNOWN


class ExtensionDispatcher:
    """Routes each descriptor to the renderer for its shape."""

    def __init__(
        self,
        driver: RegistrationDriver | None = None,
        log: LogSink | None = None,
    ) -> None:
        self.log = log or get_sink()
        self.driver = driver or RegistrationDriver(log=self.log)

    def dispatch_all(self, descriptors: list[Any]) -> list[Extension]:
        """Render every descriptor, preserving order."""
        return [self.dispatch(descriptor) for descriptor in descriptors]

    def dispatch(self, descriptor: Any) -> Extension:
        """Render one descriptor; errors become an annotated unknown node.

        Artifact code may raise anything, including ``SystemExit``; only
        ``KeyboardInterrupt`` is allowed to stop the run.
        """
        try:
            class_name = type_name_of(descriptor)
        except KeyboardInterrupt:
            raise
        except BaseException:
            class_name = "<unnamed>"

        try:
            kind = classify(descriptor)
            self.log.info(f"extension: {class_name} ({kind.value})")
            if kind == ExtensionKind.PROPERTY:
                return self.render_property(descriptor, class_name)
            if kind == ExtensionKind.RULES:
                return self.render_rules(descriptor, class_name)
            return UnknownExtension(class_name=class_name)
        except KeyboardInterrupt:
            raise
        except BaseException as e:
            if isinstance(e, ConstructionError):
                e = e.cause
            error = f"{type(e).__name__}: {e}"
            self.log.warning(f"Failed to render extension {class_name}: {error}")
            return UnknownExtension(class_name=class_name, error=error)

    def render_property(self, descriptor: Any, class_name: str) -> PropertyExtension:
        key = _as_text(read_accessor(descriptor, "key"))
        default_value = _as_text(read_accessor(descriptor, "default_value"))
        self.log.info(f"extension=property - key: {key} default: {default_value}")
        return PropertyExtension(
            class_name=class_name,
            key=key,
            default_value=default_value,
        )

    def render_rules(self, descriptor: type, class_name: str) -> RulesExtension:
        # A fresh instance, independent of whatever the entry point holds.
        definition = create_instance(descriptor)
        repositories = self.driver.drive(definition)
        self.log.info(f"extension=rules: {class_name} ({len(repositories)} repositories)")
        return RulesExtension(class_name=class_name, repositories=repositories)
