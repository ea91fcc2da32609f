"""Artifact introspection engine.

Provides the stages of an inspection run:
- Manifest reading (no artifact code executed)
- Isolated loading of artifact modules and resources
- Entry-point activation under a timeout
- Structural classification of extension descriptors
- Simulated rule registration

Artifact code only ever sees ``pluginspect.api`` and the standard library.
"""

from pluginspect.plugins.dispatch import ExtensionDispatcher, classify
from pluginspect.plugins.loader import IsolatedContext, IsolatedContextBuilder, build_context
from pluginspect.plugins.manifest import ArtifactManifest, ManifestReader, parse_manifest
from pluginspect.plugins.registration import (
    RegistrationDriver,
    RegistrationError,
    SimulatedRegistrationContext,
)
from pluginspect.plugins.runner import Activation, EntryPointActivator, create_instance

__all__ = [
    "Activation",
    "ArtifactManifest",
    "EntryPointActivator",
    "ExtensionDispatcher",
    "IsolatedContext",
    "IsolatedContextBuilder",
    "ManifestReader",
    "RegistrationDriver",
    "RegistrationError",
    "SimulatedRegistrationContext",
    "build_context",
    "classify",
    "create_instance",
    "parse_manifest",
]
