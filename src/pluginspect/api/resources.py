"""Resource lookup for plugin code.

``open_resource`` is the plugin-side equivalent of asking one's own class
for a bundled file. While an isolated context is active it answers for
every module that context loaded, and it answers only from the artifact:
a same-named file next to an inspector-side module is never returned.
"""

import io
import posixpath
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from importlib import resources as importlib_resources
from types import ModuleType
from typing import Any, BinaryIO, Iterator, Protocol


class ResourceScope(Protocol):
    """Something that owns modules and can read their bundled resources."""

    def owns(self, module_name: str) -> bool: ...

    def read_resource(self, module_name: str, name: str) -> bytes | None: ...


_active_scope: ContextVar[ResourceScope | None] = ContextVar(
    "pluginspect_resource_scope", default=None
)


@contextmanager
def activate_scope(scope: ResourceScope) -> Iterator[ResourceScope]:
    """Make ``scope`` answer resource lookups for the duration of the block."""
    token = _active_scope.set(scope)
    try:
        yield scope
    finally:
        _active_scope.reset(token)


def owner_module_name(owner: Any) -> str:
    """Name of the module that defines ``owner`` (a module, class or instance)."""
    if isinstance(owner, ModuleType):
        return owner.__name__
    if isinstance(owner, type):
        return owner.__module__
    return type(owner).__module__


def resolve_resource_path(module_name: str, name: str, is_package: bool = False) -> str | None:
    """Map a resource name to an archive-relative path.

    Names starting with ``/`` are relative to the archive root, other names
    to the directory of the owning module's package. Paths escaping the
    root resolve to None.
    """
    if name.startswith("/"):
        candidate = name.lstrip("/")
    else:
        parts = module_name.split(".")
        base = parts if is_package else parts[:-1]
        candidate = posixpath.join(*base, name) if base else name
    normalized = posixpath.normpath(candidate)
    if normalized in (".", "") or normalized.startswith(".."):
        return None
    return normalized


def read_resource(owner: Any, name: str) -> bytes | None:
    """Read a resource bundled next to ``owner``; None when absent."""
    module_name = owner_module_name(owner)
    scope = _active_scope.get()
    if scope is not None and scope.owns(module_name):
        return scope.read_resource(module_name, name)
    return _read_host_resource(module_name, name)


def open_resource(owner: Any, name: str) -> BinaryIO | None:
    """Open a resource bundled next to ``owner`` as a binary stream.

    Args:
        owner: Module, class or instance whose package anchors ``name``
        name: Resource name, ``/``-prefixed for archive-root paths

    Returns:
        Binary stream, or None if the resource does not exist
    """
    data = read_resource(owner, name)
    if data is None:
        return None
    return io.BytesIO(data)


def _read_host_resource(module_name: str, name: str) -> bytes | None:
    # Only modules already imported on the host side are consulted; an
    # unloaded name is never imported here.
    module = sys.modules.get(module_name)
    if module is None:
        return None
    is_package = hasattr(module, "__path__")
    package_name = module_name if is_package else module_name.rpartition(".")[0]
    if name.startswith("/") or not package_name:
        return None
    relative = resolve_resource_path("", name, is_package=True)
    if relative is None:
        return None
    try:
        target = importlib_resources.files(package_name).joinpath(relative)
        return target.read_bytes() if target.is_file() else None
    except (ModuleNotFoundError, OSError):
        return None
