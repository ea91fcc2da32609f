"""Host contract for plugins inspected by pluginspect.

This package is the only part of pluginspect visible to code running inside
an artifact. Everything else the artifact imports comes either from the
artifact itself or from the Python standard library.
"""

from pluginspect.api.interface import (
    NewRepository,
    NewRule,
    Plugin,
    PropertyDefinition,
    PropertyDefinitionBuilder,
    RegistrationContext,
    RulesDefinition,
)
from pluginspect.api.resources import open_resource, read_resource
from pluginspect.api.rules_xml import RulesXmlError, RulesXmlLoader

__all__ = [
    "NewRepository",
    "NewRule",
    "Plugin",
    "PropertyDefinition",
    "PropertyDefinitionBuilder",
    "RegistrationContext",
    "RulesDefinition",
    "RulesXmlError",
    "RulesXmlLoader",
    "open_resource",
    "read_resource",
]
