"""Entry-point activation.

Resolves the entry-point type declared in the manifest inside an isolated
context, constructs it and asks it once for its extensions. Resolution,
construction and enumeration run under a timeout because they execute untrusted
artifact code inside the inspector's process.
"""

import contextvars
import inspect
import threading
from dataclasses import dataclass, field
from typing import Any

from pluginspect.core.errors import (
    EntryPointConstructionFailedError,
    EntryPointNotConstructibleError,
    EntryPointNotFoundError,
    EntryPointTimeoutError,
    ExtensionEnumerationError,
    InspectorError,
)
from pluginspect.core.logging import LogSink, get_sink
from pluginspect.plugins.loader import IsolatedContext

ENUMERATE_METHOD = "get_extensions"


class NotConstructibleError(TypeError):
    """The target exists but has no zero-argument construction contract."""


class ConstructionError(Exception):
    """The target's constructor raised; the original exception is the cause."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}")


def split_type_name(type_name: str) -> tuple[str, str]:
    """Split an entry-point reference into module and qualified name.

    Accepts ``package.module:Outer.Inner`` and the dotted form
    ``package.module.ClassName``.

    Raises:
        ValueError: If either part is empty
    """
    if ":" in type_name:
        module_name, _, qualname = type_name.partition(":")
    else:
        module_name, _, qualname = type_name.rpartition(".")
    module_name, qualname = module_name.strip(), qualname.strip()
    if not module_name or not qualname:
        raise ValueError(f"expected 'module:Class' or 'module.Class', got {type_name!r}")
    return module_name, qualname


def type_name_of(obj: Any) -> str:
    """Runtime type name of a descriptor (the class itself for type references)."""
    cls = obj if isinstance(obj, type) else type(obj)
    module = getattr(cls, "__module__", None)
    qualname = getattr(cls, "__qualname__", cls.__name__)
    if module and module != "builtins":
        return f"{module}.{qualname}"
    return qualname


def create_instance(target: Any) -> Any:
    """Construct ``target`` with no arguments.

    The three failure modes are kept apart: the caller has already handled
    "not found"; this raises NotConstructibleError when the target cannot be
    called without arguments and ConstructionError when the call raised.
    """
    if not callable(target):
        raise NotConstructibleError(f"{type_name_of(target)} is not callable")
    if isinstance(target, type) and inspect.isabstract(target):
        abstract = ", ".join(sorted(target.__abstractmethods__))
        raise NotConstructibleError(f"{target.__qualname__} is abstract ({abstract})")
    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError):
        signature = None
    if signature is not None:
        try:
            signature.bind()
        except TypeError as e:
            raise NotConstructibleError(f"{type_name_of(target)} cannot be constructed without arguments: {e}")
    try:
        return target()
    except KeyboardInterrupt:
        raise
    except BaseException as e:
        raise ConstructionError(e) from e


class _EnumerationFailure(Exception):
    def __init__(self, cause: BaseException | str) -> None:
        self.cause = cause
        super().__init__(str(cause))


@dataclass
class Activation:
    """Result of activating an entry point."""

    type_name: str
    instance: Any
    extensions: list[Any] = field(default_factory=list)


class EntryPointActivator:
    """Constructs an entry point inside an isolated context."""

    def __init__(self, timeout_seconds: float = 30.0, log: LogSink | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        self.log = log or get_sink()

    def resolve(self, context: IsolatedContext, type_name: str) -> Any:
        """Resolve the entry-point type inside the context.

        Raises:
            EntryPointNotFoundError: If the module or attribute does not exist
            EntryPointConstructionFailedError: If importing the module raised
        """
        artifact = str(context.artifact_path)
        try:
            module_name, qualname = split_type_name(type_name)
        except ValueError as e:
            raise EntryPointNotFoundError(artifact, type_name, str(e))

        try:
            module = context.import_module(module_name)
        except ModuleNotFoundError as e:
            if e.name is None or module_name == e.name or module_name.startswith(e.name + "."):
                raise EntryPointNotFoundError(artifact, type_name, str(e))
            # A dependency of the entry-point module is missing.
            raise EntryPointConstructionFailedError(artifact, type_name, e)
        except BaseException as e:
            raise EntryPointConstructionFailedError(artifact, type_name, e)

        target: Any = module
        for part in qualname.split("."):
            try:
                target = getattr(target, part)
            except AttributeError:
                raise EntryPointNotFoundError(
                    artifact, type_name, f"module {module_name!r} has no attribute {qualname!r}"
                )
        return target

    def activate(self, context: IsolatedContext, type_name: str) -> Activation:
        """Resolve, construct and enumerate the entry point.

        ``get_extensions`` is invoked exactly once; its result is
        materialised into a list in the order returned.

        Raises:
            EntryPointNotFoundError: If the type cannot be resolved
            EntryPointNotConstructibleError: If it has no zero-argument constructor
            EntryPointConstructionFailedError: If construction raised
            ExtensionEnumerationError: If enumeration failed
            EntryPointTimeoutError: If activation did not finish in time
        """
        artifact = str(context.artifact_path)
        outcome: dict[str, Any] = {}

        def work() -> None:
            try:
                target = self.resolve(context, type_name)
                self.log.info(f"Creating instance of {type_name}")
                instance = create_instance(target)
                outcome["instance"] = instance
                outcome["extensions"] = self._enumerate(instance)
            except BaseException as e:
                outcome["error"] = e

        # Worker runs in a copy of the caller's context so resource lookups
        # keep seeing the active isolated context.
        run_context = contextvars.copy_context()
        worker = threading.Thread(
            target=run_context.run,
            args=(work,),
            name=f"pluginspect-activate-{type_name}",
            daemon=True,
        )
        worker.start()
        worker.join(self.timeout_seconds)

        if worker.is_alive():
            self.log.warning(
                f"Entry point {type_name} still running after {self.timeout_seconds}s; abandoning it"
            )
            raise EntryPointTimeoutError(artifact, type_name, self.timeout_seconds)

        error = outcome.get("error")
        if isinstance(error, InspectorError):
            raise error
        if isinstance(error, NotConstructibleError):
            raise EntryPointNotConstructibleError(artifact, type_name, str(error))
        if isinstance(error, ConstructionError):
            raise EntryPointConstructionFailedError(artifact, type_name, error.cause)
        if isinstance(error, _EnumerationFailure):
            raise ExtensionEnumerationError(artifact, type_name, error.cause)
        if error is not None:
            raise EntryPointConstructionFailedError(artifact, type_name, error)

        extensions = outcome["extensions"]
        self.log.info(f"Extensions retrieved: {len(extensions)}")
        return Activation(
            type_name=type_name,
            instance=outcome["instance"],
            extensions=extensions,
        )

    def _enumerate(self, instance: Any) -> list[Any]:
        method = getattr(instance, ENUMERATE_METHOD, None)
        if not callable(method):
            raise _EnumerationFailure(f"{type_name_of(instance)} has no callable {ENUMERATE_METHOD}()")
        try:
            result = method()
        except BaseException as e:
            raise _EnumerationFailure(e) from e
        if result is None or isinstance(result, (str, bytes)):
            raise _EnumerationFailure(f"{ENUMERATE_METHOD}() returned {type(result).__name__}, expected an iterable")
        try:
            return list(result)
        except BaseException as e:
            raise _EnumerationFailure(e) from e
