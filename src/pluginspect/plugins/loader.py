"""Isolated loading of artifact code and resources.

An ``IsolatedContext`` resolves imports made by artifact code against two
tiers only:

1. the artifact's own modules, which win for any top-level package the
   artifact defines;
2. the host contract (``pluginspect.api`` by default) and the standard
   library, shared with the inspector.

Anything else importable by the inspector (site-packages, the rest of
pluginspect, the current directory) is invisible to artifact code. Modules
loaded from the artifact live in the context's own table and never enter
``sys.modules``; imports are routed by an ``__import__`` installed in each
artifact module's builtins. Discarding the context discards everything it
loaded.

This is a resolution boundary, not a sandbox: artifact code runs in the
inspector's process and can still reach host modules through shared ones
such as ``sys``.
"""

import builtins
import importlib
import importlib.util
import sys
import zipfile
from contextlib import ExitStack
from pathlib import Path
from types import ModuleType
from typing import Any

from pluginspect.api.resources import activate_scope, resolve_resource_path
from pluginspect.core.config import InspectorSettings
from pluginspect.core.errors import ArtifactUnreadableError, Stage
from pluginspect.core.logging import LogSink, get_sink
from pluginspect.plugins.manifest import open_artifact

SOURCE_SUFFIX = ".py"
PACKAGE_INIT = "__init__.py"


class ArchiveModuleLoader:
    """Executes one module's source read from the artifact archive."""

    def __init__(self, context: "IsolatedContext", entry: str | None, is_package: bool) -> None:
        self._context = context
        self.entry = entry
        self._is_package = is_package
        self._source: str | None = None

    def create_module(self, spec: Any) -> None:
        return None

    def exec_module(self, module: ModuleType) -> None:
        module.__dict__["__builtins__"] = self._context.builtins_namespace
        if self.entry is None:
            # Directory without __init__.py: namespace-style package, no code.
            return
        source = self.get_source(module.__name__)
        code = compile(source, module.__spec__.origin, "exec", dont_inherit=True)
        exec(code, module.__dict__)

    def is_package(self, fullname: str) -> bool:
        return self._is_package

    def get_source(self, fullname: str) -> str | None:
        # Kept after the archive closes: linecache asks for it when a
        # traceback through artifact code is formatted later.
        if self._source is None and self.entry is not None and not self._context.closed:
            self._source = importlib.util.decode_source(self._context.read_entry(self.entry))
        return self._source


class IsolatedContext:
    """Resolution scope for one artifact.

    Use as a context manager: while entered it also answers
    ``pluginspect.api.open_resource`` lookups for the modules it loaded, and
    on exit the archive is closed and the module table dropped.
    """

    def __init__(
        self,
        artifact_path: Path,
        archive: zipfile.ZipFile,
        host_contract_modules: tuple[str, ...] = ("pluginspect.api",),
        allow_stdlib: bool = True,
        log: LogSink | None = None,
    ) -> None:
        self.artifact_path = Path(artifact_path)
        self.host_contract_modules = tuple(host_contract_modules)
        self.allow_stdlib = allow_stdlib
        self.log = log or get_sink()
        self.modules: dict[str, ModuleType] = {}
        self.closed = False

        self._archive = archive
        self._entries = frozenset(n for n in archive.namelist() if not n.endswith("/"))
        self._dirs = _directories(archive.namelist())
        self._source_dirs = _directories([n for n in self._entries if n.endswith(SOURCE_SUFFIX)])
        self._views: dict[str, ModuleType] = {}
        self._stack: ExitStack | None = None

        self.builtins_namespace: dict[str, Any] = dict(vars(builtins))
        self.builtins_namespace["__import__"] = self._import

    @property
    def entry_count(self) -> int:
        return len(self._entries)

    def __enter__(self) -> "IsolatedContext":
        self._stack = ExitStack()
        self._stack.enter_context(activate_scope(self))
        return self

    def __exit__(self, *exc: Any) -> None:
        if self._stack is not None:
            self._stack.close()
            self._stack = None
        self.close()

    def close(self) -> None:
        """Close the archive and forget every loaded module."""
        if self.closed:
            return
        self.closed = True
        self.modules.clear()
        self._views.clear()
        self._archive.close()
        self.log.debug(f"Discarded isolated context for {self.artifact_path}")

    # -- visibility -----------------------------------------------------

    def defines(self, fullname: str) -> bool:
        """True if the artifact contains a module or package named ``fullname``."""
        return self._locate(fullname) is not None

    def shadows(self, fullname: str) -> bool:
        """True if the artifact's ``fullname`` takes precedence over a shared one.

        Modules and regular packages always do. A directory without
        ``__init__.py`` only does when it holds Python sources, so a resource
        folder such as ``xml/`` leaves the standard library's ``xml`` visible.
        """
        location = self._locate(fullname)
        if location is None:
            return False
        entry, _ = location
        return entry is not None or fullname.replace(".", "/") in self._source_dirs

    def is_shared(self, fullname: str) -> bool:
        """True if ``fullname`` is resolved from the host (tier 1)."""
        top = fullname.partition(".")[0]
        if self.allow_stdlib and (top in sys.stdlib_module_names or top in sys.builtin_module_names):
            return True
        return any(
            fullname == name or fullname.startswith(name + ".")
            for name in self.host_contract_modules
        )

    def _locate(self, fullname: str) -> tuple[str | None, bool] | None:
        base = fullname.replace(".", "/")
        init = f"{base}/{PACKAGE_INIT}"
        if init in self._entries:
            return init, True
        if base + SOURCE_SUFFIX in self._entries:
            return base + SOURCE_SUFFIX, False
        if base in self._dirs:
            return None, True
        return None

    # -- importing ------------------------------------------------------

    def import_module(self, fullname: str) -> ModuleType:
        """Import ``fullname`` as artifact code would see it.

        Raises:
            ModuleNotFoundError: If the name is neither in the artifact nor shared
        """
        if self.closed:
            raise RuntimeError(f"Isolated context for {self.artifact_path} is closed")

        module = self.modules.get(fullname)
        if module is not None:
            return module

        top = fullname.partition(".")[0]
        if self.shadows(top):
            return self._load(fullname)
        if self.is_shared(fullname):
            return importlib.import_module(fullname)
        if self.defines(top):
            return self._load(fullname)
        view = self._contract_view(fullname)
        if view is not None:
            return view
        raise ModuleNotFoundError(
            f"No module named {fullname!r} in the isolated context of {self.artifact_path}",
            name=fullname,
        )

    def _contract_view(self, fullname: str) -> ModuleType | None:
        """Stand-in for a host package that only exposes its contract modules.

        ``import pluginspect.api`` binds ``pluginspect`` in artifact code; this
        view carries ``api`` and nothing else of the host package.
        """
        view = self._views.get(fullname)
        if view is not None:
            return view
        prefix = fullname + "."
        children = sorted(
            {name[len(prefix):].partition(".")[0] for name in self.host_contract_modules if name.startswith(prefix)}
        )
        if not children:
            return None

        view = ModuleType(fullname)
        view.__path__ = []
        view.__package__ = fullname
        self._views[fullname] = view
        for child in children:
            setattr(view, child, self.import_module(f"{prefix}{child}"))
        return view

    def _load(self, fullname: str) -> ModuleType:
        parent_name, _, child_name = fullname.rpartition(".")
        parent = None
        if parent_name:
            parent = self.import_module(parent_name)
            if fullname in self.modules:
                return self.modules[fullname]

        location = self._locate(fullname)
        if location is None:
            raise ModuleNotFoundError(
                f"No module named {fullname!r} in {self.artifact_path}", name=fullname
            )
        entry, is_package = location

        loader = ArchiveModuleLoader(self, entry, is_package)
        origin = f"{self.artifact_path}/{entry}" if entry else None
        spec = importlib.util.spec_from_loader(
            fullname, loader, origin=origin, is_package=is_package
        )
        if is_package:
            spec.submodule_search_locations = [
                f"{self.artifact_path}/{fullname.replace('.', '/')}"
            ]
        module = importlib.util.module_from_spec(spec)

        # Registered before execution so circular imports see the partial module.
        self.modules[fullname] = module
        try:
            loader.exec_module(module)
        except BaseException:
            self.modules.pop(fullname, None)
            raise

        if parent is not None:
            setattr(parent, child_name, module)
        self.log.debug(f"Loaded {fullname} from {self.artifact_path}")
        return module

    def _import(
        self,
        name: str,
        globals: dict[str, Any] | None = None,
        locals: dict[str, Any] | None = None,
        fromlist: tuple[str, ...] | list[str] | None = (),
        level: int = 0,
    ) -> ModuleType:
        """``__import__`` replacement seen by artifact modules."""
        if level > 0:
            package = _calc_package(globals or {})
            absolute = importlib.util.resolve_name("." * level + name, package)
        else:
            absolute = name

        module = self.import_module(absolute)

        if fromlist:
            for item in fromlist:
                if item == "*":
                    for exported in getattr(module, "__all__", ()):
                        self._handle_fromlist_item(module, absolute, exported)
                else:
                    self._handle_fromlist_item(module, absolute, item)
            return module

        if level > 0:
            return module
        return self.import_module(absolute.partition(".")[0])

    def _handle_fromlist_item(self, module: ModuleType, absolute: str, item: str) -> None:
        if hasattr(module, item) or not hasattr(module, "__path__"):
            return
        submodule = f"{absolute}.{item}"
        try:
            self.import_module(submodule)
        except ModuleNotFoundError as e:
            # ``from pkg import name`` where name is not a submodule: the
            # attribute lookup that follows reports it.
            if e.name != submodule:
                raise

    # -- resources ------------------------------------------------------

    def read_entry(self, entry: str) -> bytes | None:
        """Raw bytes of an archive entry, None if absent or the context is closed."""
        if self.closed or entry not in self._entries:
            return None
        return self._archive.read(entry)

    def owns(self, module_name: str) -> bool:
        return module_name in self.modules

    def read_resource(self, module_name: str, name: str) -> bytes | None:
        """Read a resource relative to a module loaded by this context."""
        module = self.modules.get(module_name)
        is_package = module is not None and hasattr(module, "__path__")
        path = resolve_resource_path(module_name, name, is_package=is_package)
        if path is None:
            return None
        return self.read_entry(path)


class IsolatedContextBuilder:
    """Builds a fresh IsolatedContext per artifact."""

    def __init__(
        self,
        settings: InspectorSettings | None = None,
        log: LogSink | None = None,
    ) -> None:
        self.settings = settings or InspectorSettings()
        self.log = log or get_sink()

    def build(self, artifact_path: Path) -> IsolatedContext:
        """Open the artifact and build its resolution scope.

        Args:
            artifact_path: Path to the artifact archive

        Returns:
            A new IsolatedContext (not yet entered)

        Raises:
            ArtifactUnreadableError: If the archive cannot be opened or read
        """
        archive = open_artifact(artifact_path, stage=Stage.CONTEXT)
        try:
            bad_entry = archive.testzip()
        except (zipfile.BadZipFile, OSError, RuntimeError) as e:
            archive.close()
            raise ArtifactUnreadableError(str(artifact_path), str(e), stage=Stage.CONTEXT)
        if bad_entry is not None:
            archive.close()
            raise ArtifactUnreadableError(
                str(artifact_path), f"corrupt entry {bad_entry}", stage=Stage.CONTEXT
            )

        context = IsolatedContext(
            artifact_path,
            archive,
            host_contract_modules=self.settings.host_contract_modules,
            allow_stdlib=self.settings.allow_stdlib,
            log=self.log,
        )
        shared = ", ".join(self.settings.host_contract_modules) or "none"
        self.log.debug(
            f"Isolated context for {artifact_path}: {context.entry_count} entries, "
            f"shared: {shared}{' + stdlib' if self.settings.allow_stdlib else ''}"
        )
        return context


def build_context(
    artifact_path: Path,
    settings: InspectorSettings | None = None,
    log: LogSink | None = None,
) -> IsolatedContext:
    """Build an isolated context for an artifact."""
    return IsolatedContextBuilder(settings=settings, log=log).build(artifact_path)


def _directories(names: list[str]) -> frozenset[str]:
    dirs: set[str] = set()
    for name in names:
        parts = name.rstrip("/").split("/")
        upto = parts if name.endswith("/") else parts[:-1]
        for i in range(1, len(upto) + 1):
            dirs.add("/".join(upto[:i]))
    return frozenset(dirs)


def _calc_package(globals: dict[str, Any]) -> str:
    package = globals.get("__package__")
    if package is None:
        name = globals.get("__name__")
        if name is None:
            raise ImportError("attempted relative import with no known parent package")
        package = name if "__path__" in globals else name.rpartition(".")[0]
    if not package:
        raise ImportError("attempted relative import with no known parent package")
    return package
