# factory_kernel/modules/registry.py
"""
Module Registry
──────────────────────────────────────────────
Tracks every imported module and splits them in two append-only groups:

    application → scanned for user classes
    system      → stdlib, builtins, tooling and anything on the deny-list

Python has no "module loaded" event, so the registry offers:
    • register_module(module)   → explicit load hook (classify, append, notify)
    • refresh()                 → picks up whatever appeared in sys.modules
    • on_module_loaded(cb)      → subscription for newly seen application modules

Reads of application_modules() call refresh() whenever sys.modules grew,
which keeps dependent caches coherent without polling.
"""
from __future__ import annotations

import importlib
import importlib.util
import logging
import sys
import threading
from pathlib import Path
from types import ModuleType
from typing import Callable, Dict, Iterable, Optional, Tuple

from factory_kernel.config.base_settings import FactorySettings
from factory_kernel.errors import ModuleLoadError
from factory_kernel.snapshot import AtomicRef

logger = logging.getLogger(__name__)

ModuleCallback = Callable[[ModuleType], None]

# Prefixes ending with "_" or "." match raw; the rest match whole dotted segments.
DEFAULT_SYSTEM_MODULES: Tuple[str, ...] = (
    "__editable___",
    "_distutils_hack",
    "_virtualenv",
    "_pytest",
    "_hypothesis_",
    "pytest",
    "pluggy",
    "iniconfig",
    "py",
    "pip",
    "setuptools",
    "pkg_resources",
    "wheel",
    "packaging",
    "pydantic",
    "pydantic_core",
    "pydantic_settings",
    "typing_extensions",
    "typing_inspection",
    "annotated_types",
    "dotenv",
    "hypothesis",
    "sortedcontainers",
    "attr",
    "attrs",
    "exceptiongroup",
    "tomli",
    "coverage",
)

_ZERO_VERSION_ORIGINS = ("built-in", "frozen")


def _matches_prefix(name: str, prefix: str) -> bool:
    if prefix.endswith(("_", ".")):
        return name.startswith(prefix)
    return name == prefix or name.startswith(prefix + ".")


class ModuleRegistry:
    """Append-only, copy-on-write view of the modules loaded into the process."""

    def __init__(self, settings: Optional[FactorySettings] = None):
        self._settings = settings or FactorySettings()
        self._prefixes: Tuple[str, ...] = ()
        self._application: AtomicRef[Tuple[ModuleType, ...]] = AtomicRef(())
        self._system: AtomicRef[Tuple[ModuleType, ...]] = AtomicRef(())
        self._seen: AtomicRef[Dict[str, ModuleType]] = AtomicRef({})
        self._listeners: AtomicRef[Tuple[ModuleCallback, ...]] = AtomicRef(())
        self._sys_modules_count = -1
        self._lock = threading.RLock()
        self._collected = False
        self._imported = False
        self._importing = False

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------
    @property
    def settings(self) -> FactorySettings:
        return self._settings

    @property
    def system_prefixes(self) -> Tuple[str, ...]:
        self._ensure_collected()
        return self._prefixes

    def _build_prefixes(self) -> Tuple[str, ...]:
        configured = [p for p in self._settings.system_modules if p]
        return tuple(dict.fromkeys([*configured, *DEFAULT_SYSTEM_MODULES]))

    def is_system_module(self, module: ModuleType) -> bool:
        self._ensure_collected()
        return self._classify_system(module)

    def _classify_system(self, module: ModuleType) -> bool:
        name = getattr(module, "__name__", None) or ""
        top = name.partition(".")[0]
        if top in sys.stdlib_module_names or top in sys.builtin_module_names:
            return True
        spec = getattr(module, "__spec__", None)
        if spec is not None and getattr(spec, "origin", None) in _ZERO_VERSION_ORIGINS:
            return True
        return any(_matches_prefix(name, p) for p in self._prefixes)

    # ------------------------------------------------------------------
    # Module sets
    # ------------------------------------------------------------------
    def application_modules(self) -> Tuple[ModuleType, ...]:
        """Application modules in discovery order (configured imports included)."""
        self._ensure_collected()
        self._ensure_imported()
        if len(sys.modules) != self._sys_modules_count:
            self.refresh()
        return self._application.get()

    def system_modules(self) -> Tuple[ModuleType, ...]:
        self._ensure_collected()
        if len(sys.modules) != self._sys_modules_count:
            self.refresh()
        return self._system.get()

    def _ensure_collected(self) -> None:
        if self._collected:
            return
        with self._lock:
            if self._collected:
                return
            self._prefixes = self._build_prefixes()
            application, system, seen = [], [], {}
            self._sys_modules_count = len(sys.modules)
            for name, module in list(sys.modules.items()):
                if not isinstance(module, ModuleType):
                    continue
                seen[name] = module
                (system if self._classify_system(module) else application).append(module)
            self._seen.set(seen)
            self._application.set(tuple(application))
            self._system.set(tuple(system))
            self._collected = True
            logger.debug(
                "[factory] collected %d application and %d system modules",
                len(application), len(system),
            )

    def _ensure_imported(self) -> None:
        if self._imported:
            return
        with self._lock:
            # only the importing thread can get here while _importing is set
            if self._imported or self._importing:
                return
            self._importing = True
            try:
                self.import_configured()
            finally:
                self._importing = False
            self._imported = True

    @property
    def modules_imported(self) -> bool:
        return self._imported

    # ------------------------------------------------------------------
    # Load hook
    # ------------------------------------------------------------------
    def register_module(self, module: ModuleType) -> bool:
        """
        Classify and append a module. Returns True when it is a new application
        module, in which case every on_module_loaded subscriber is notified.
        """
        self._ensure_collected()
        name = module.__name__
        while True:
            seen = self._seen.get()
            if seen.get(name) is module:
                return False
            updated = dict(seen)
            updated[name] = module
            if self._seen.compare_and_set(seen, updated):
                break

        target = self._system if self._classify_system(module) else self._application
        while True:
            current = target.get()
            if target.compare_and_set(current, current + (module,)):
                break
        if target is self._system:
            return False

        logger.debug("[factory] application module loaded: %s", name)
        for callback in self._listeners.get():
            callback(module)
        return True

    def refresh(self) -> int:
        """Register modules imported since the last look. Returns how many were application modules."""
        self._ensure_collected()
        self._sys_modules_count = len(sys.modules)
        seen = self._seen.get()
        added = 0
        for name, module in list(sys.modules.items()):
            if not isinstance(module, ModuleType) or seen.get(name) is module:
                continue
            if self.register_module(module):
                added += 1
        return added

    def on_module_loaded(self, callback: ModuleCallback) -> Callable[[], None]:
        """Subscribe to newly loaded application modules; returns an unsubscribe function."""
        while True:
            current = self._listeners.get()
            if self._listeners.compare_and_set(current, current + (callback,)):
                break

        def unsubscribe() -> None:
            while True:
                listeners = self._listeners.get()
                if callback not in listeners:
                    return
                remaining = tuple(c for c in listeners if c is not callback)
                if self._listeners.compare_and_set(listeners, remaining):
                    return

        return unsubscribe

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def find_loaded(self, name: str) -> Optional[ModuleType]:
        """Return an already imported module by exact, then case-insensitive, name."""
        if not name:
            return None
        module = sys.modules.get(name)
        if isinstance(module, ModuleType):
            return module
        folded = name.casefold()
        for key, module in list(sys.modules.items()):
            if key.casefold() == folded and isinstance(module, ModuleType):
                return module
        for module in self._seen.get().values():
            if module.__name__.casefold() == folded:
                return module
        return None

    def _module_file(self, name: str) -> Optional[Path]:
        home = self._settings.home_directory
        if not home:
            return None
        path = Path(home).joinpath(*name.split(".")).with_suffix(".py")
        return path if path.is_file() else None

    def try_load_module(self, name: Optional[str], throw_on_error: bool = False) -> Optional[ModuleType]:
        """
        Import a module by name, preferring <home_directory>/<name>.py when present.
        Failures are always logged; they raise ModuleLoadError only on request.
        """
        if not name or not name.strip():
            if throw_on_error:
                raise ValueError("module name is required")
            return None

        name = name.strip()
        file: Optional[Path] = None
        try:
            file = self._module_file(name)
            if file is not None:
                spec = importlib.util.spec_from_file_location(name, str(file))
                if spec is None or spec.loader is None:
                    raise ImportError(f"no loader for {file}")
                module = importlib.util.module_from_spec(spec)
                sys.modules[spec.name] = module
                try:
                    spec.loader.exec_module(module)
                except BaseException:
                    sys.modules.pop(spec.name, None)
                    raise
            else:
                module = importlib.import_module(name)
        except Exception as exc:
            logger.warning(
                "[factory] failed to load module %s (file=%s)", name, file, exc_info=True,
            )
            if throw_on_error:
                raise ModuleLoadError(name, str(file) if file else None) from exc
            return None

        self.refresh()
        self.register_module(module)
        return module

    def load_module(self, name: str) -> ModuleType:
        module = self.try_load_module(name, throw_on_error=True)
        if module is None:
            raise ModuleLoadError(name, None)
        return module

    def import_configured(self, names: Optional[Iterable[str]] = None) -> None:
        """Import the must-load module list; failures are logged and skipped."""
        for name in names if names is not None else self._settings.import_modules:
            self.try_load_module(name, throw_on_error=False)

    def configure(self, settings: FactorySettings) -> None:
        """Apply new settings (configuration change): re-import the must-load list."""
        with self._lock:
            self._settings = settings
            if self._collected:
                self._prefixes = self._build_prefixes()
        self.import_configured()
        self._imported = True
