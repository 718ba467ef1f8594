# factory_kernel/autodiscover.py
"""
Type discovery over application modules
──────────────────────────────────────────────────────────────────────────────
Purpose:
    Enumerate the classes declared by application modules and answer
    "which concrete classes derive from X / implement protocol P".

Caching:
    Three query caches (predicate, subtypes, implementors) live together in
    one immutable record behind an AtomicRef. Loading an application module
    swaps in a fresh record; a query racing with the swap stores its result
    in the discarded record, so no stale answer survives invalidation.
"""
from __future__ import annotations

import inspect
import logging
from types import ModuleType
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from factory_kernel.construct.signatures import (
    MethodInfo,
    describe_method,
    inherits,
    is_interface,
)
from factory_kernel.modules.registry import ModuleRegistry
from factory_kernel.snapshot import AtomicRef, SnapshotMap

logger = logging.getLogger(__name__)

TypePredicate = Callable[[type], bool]


def declared_types(module: ModuleType) -> List[type]:
    """Classes defined by `module` itself, nested classes included."""
    found: Dict[int, type] = {}
    try:
        namespace = list(vars(module).values())
    except TypeError:
        return []
    name = getattr(module, "__name__", None)
    for obj in namespace:
        try:
            if isinstance(obj, type) and obj.__module__ == name:
                _collect(obj, found)
        except Exception:
            # broken descriptors / lazy proxies; skip what cannot be inspected
            continue
    return list(found.values())


def _collect(cls: type, found: Dict[int, type]) -> None:
    if id(cls) in found:
        return
    found[id(cls)] = cls
    prefix = cls.__qualname__ + "."
    for member in list(vars(cls).values()):
        try:
            if isinstance(member, type) and member.__qualname__.startswith(prefix):
                _collect(member, found)
        except Exception:
            continue


def is_concrete(cls: type) -> bool:
    return not is_interface(cls) and not inspect.isabstract(cls)


class _QueryCache(NamedTuple):
    predicates: SnapshotMap
    subtypes: SnapshotMap
    implementors: SnapshotMap

    @classmethod
    def empty(cls) -> "_QueryCache":
        return cls(SnapshotMap(), SnapshotMap(), SnapshotMap())


class TypeDiscovery:
    """Class queries over a ModuleRegistry's application modules."""

    def __init__(self, registry: ModuleRegistry):
        self._registry = registry
        self._cache: AtomicRef[_QueryCache] = AtomicRef(_QueryCache.empty())
        self._unsubscribe = registry.on_module_loaded(self._on_module_loaded)

    @property
    def registry(self) -> ModuleRegistry:
        return self._registry

    def _on_module_loaded(self, module: ModuleType) -> None:
        self.invalidate()

    def invalidate(self) -> None:
        self._cache.set(_QueryCache.empty())
        logger.debug("[factory] type discovery caches invalidated")

    def close(self) -> None:
        self._unsubscribe()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @staticmethod
    def _select(predicate: TypePredicate, modules: Iterable[ModuleType]) -> Tuple[type, ...]:
        return tuple(t for m in modules for t in declared_types(m) if predicate(t))

    def _query(self, kind: str, key: Any, predicate: TypePredicate, cache_results: bool) -> Tuple[type, ...]:
        if not cache_results:
            return self._select(predicate, self._registry.application_modules())
        # refresh first so a pending invalidation happens before the snapshot
        self._registry.application_modules()
        cache = self._cache.get()
        modules = self._registry.application_modules()
        table: SnapshotMap = getattr(cache, kind)
        return table.get_or_add(key, lambda _: self._select(predicate, modules))

    def types(self, predicate: Optional[TypePredicate] = None, cache_results: bool = True) -> Tuple[type, ...]:
        """
        Every application class accepted by `predicate` (all of them when None).
        Cached results are keyed by the predicate object, so pass a stable
        function rather than a fresh lambda when caching.
        """
        test = predicate or (lambda _: True)
        return self._query("predicates", predicate, test, cache_results)

    def subtypes(self, base: type, cache_results: bool = False) -> Tuple[type, ...]:
        """Concrete classes assignable to `base` (`base` itself included when concrete)."""
        if base is None:
            raise TypeError("base type is required")
        return self._query(
            "subtypes", base, lambda t: is_concrete(t) and inherits(t, base), cache_results,
        )

    def implementors(self, interface: type, cache_results: bool = False) -> Tuple[type, ...]:
        """Concrete classes deriving from `interface`, or matching it structurally when it is runtime checkable."""
        if interface is None:
            raise TypeError("interface is required")
        return self._query(
            "implementors",
            interface,
            lambda t: is_concrete(t) and inherits(t, interface, structural=True),
            cache_results,
        )

    def classes(
        self,
        type_: type,
        modules: Optional[Sequence[ModuleType]] = None,
        cache_results: bool = False,
    ) -> Tuple[type, ...]:
        """Implementors for protocols, subtypes otherwise; explicit `modules` are never cached."""
        if type_ is None:
            raise TypeError("type is required")
        if modules is not None:
            return self._select(lambda t: is_concrete(t) and inherits(t, type_), modules)
        if is_interface(type_):
            return self.implementors(type_, cache_results)
        return self.subtypes(type_, cache_results)

    # ------------------------------------------------------------------
    # Lookup by name
    # ------------------------------------------------------------------
    def find(self, name: str, modules: Sequence[ModuleType]) -> Optional[type]:
        """
        Find a class by name inside `modules`:
            "pkg.mod:Outer.Inner" → module + qualified name
            "pkg.mod.Outer"       → longest matching module prefix, then qualname
            "Outer.Inner"         → qualified name in any module
            "money"               → class name, case-insensitive
        """
        if not name:
            return None
        if ":" in name:
            module_name, _, qualname = name.partition(":")
            folded = module_name.casefold()
            for module in modules:
                if module.__name__.casefold() == folded:
                    return _walk(module, qualname)
            return None
        if "." in name:
            folded = name.casefold()
            ordered = sorted(modules, key=lambda m: len(m.__name__), reverse=True)
            for module in ordered:
                prefix = module.__name__.casefold() + "."
                if folded.startswith(prefix):
                    found = _walk(module, name[len(prefix):])
                    if found is not None:
                        return found
            return self._first(modules, lambda t: t.__qualname__.casefold() == folded)
        folded = name.casefold()
        return self._first(modules, lambda t: t.__name__.casefold() == folded and "<" not in t.__qualname__)

    @staticmethod
    def _first(modules: Iterable[ModuleType], match: TypePredicate) -> Optional[type]:
        for module in modules:
            for t in declared_types(module):
                if match(t):
                    return t
        return None

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------
    def factory_methods(self, type_: type, method_name: str, *arg_types: Any) -> List[MethodInfo]:
        """
        Static or class methods named `method_name`, declared on any concrete
        subtype of `type_`, whose positional parameter types equal `arg_types`
        and whose return annotation derives from `type_`.
        """
        if not method_name:
            raise ValueError("method name is required")
        found: List[MethodInfo] = []
        for cls in self.subtypes(type_):
            raw = inspect.getattr_static(cls, method_name, None)
            if not isinstance(raw, (staticmethod, classmethod)):
                continue
            method = describe_method(cls, method_name)
            if method.parameter_types() != tuple(arg_types):
                continue
            returns = method.return_annotation
            if isinstance(returns, type) and inherits(returns, type_):
                found.append(method)
        return found


def _walk(module: ModuleType, qualname: str) -> Optional[type]:
    obj: Any = module
    for part in qualname.split("."):
        if not part:
            return None
        nxt = getattr(obj, part, None)
        if nxt is None:
            folded = part.casefold()
            nxt = next(
                (v for k, v in vars(obj).items() if k.casefold() == folded and isinstance(v, type)),
                None,
            )
        if nxt is None:
            return None
        obj = nxt
    return obj if isinstance(obj, type) else None
