# factory_kernel/factory.py
"""
Factory
──────────────────────────────────────────────────────────────────────────────
Public entry point of the engine:

    factory.get_type("Money?")              → Optional[Money]
    factory.construct("Money", 1250, "EUR") → Money(1250, Currency.EUR)
    factory.get_constructor(Money, int, str)(args)
    factory.invoke(instance, Money.add, other)

Compiled invokers are cached for the lifetime of the factory:
    default constructors  → keyed by type
    constructors          → keyed by ConstructorKey(type, argument types)
    members               → keyed by ConstructorInfo / MethodInfo

Every cache is a SnapshotMap: reads never lock, a miss is computed outside
any lock and the first published value wins.
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from functools import lru_cache
from types import ModuleType
from typing import Any, Callable, List, Optional, Sequence, Tuple

from factory_kernel.autodiscover import TypePredicate, TypeDiscovery
from factory_kernel.config.base_settings import FactorySettings
from factory_kernel.construct.compiler import Builder, Invoker, InvokerCompiler, MemberInvoker
from factory_kernel.construct.conversions import default_value, underlying_value
from factory_kernel.construct.resolver import ConstructorResolver
from factory_kernel.construct.signatures import (
    ConstructorInfo,
    MethodInfo,
    describe_callable,
    find_method,
    is_nullable,
    unwrap_optional,
)
from factory_kernel.errors import ConstructorNotFoundError, TypeNotFoundError
from factory_kernel.modules.registry import ModuleCallback, ModuleRegistry
from factory_kernel.names.parser import TypeNameTree, parse_type_name
from factory_kernel.names.synonyms import SynonymPairs, SynonymTable
from factory_kernel.snapshot import SnapshotMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConstructorKey:
    """Cache key: target type plus argument classes (None for a None argument)."""

    declaring_type: Any
    arg_types: Tuple[Optional[type], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "arg_types", tuple(self.arg_types))


def _arg_types(args: Sequence[Any]) -> Tuple[Optional[type], ...]:
    return tuple(None if a is None else type(a) for a in args)


def _instance_bound(fn: Any) -> bool:
    return inspect.ismethod(fn) and not isinstance(fn.__self__, type)


class Factory:
    def __init__(
        self,
        settings: Optional[FactorySettings] = None,
        *,
        registry: Optional[ModuleRegistry] = None,
        discovery: Optional[TypeDiscovery] = None,
        synonyms: Optional[SynonymTable] = None,
        resolver: Optional[ConstructorResolver] = None,
        compiler: Optional[InvokerCompiler] = None,
    ):
        self._settings = settings or (registry.settings if registry else FactorySettings())
        self.modules = registry or ModuleRegistry(self._settings)
        self.discovery = discovery or TypeDiscovery(self.modules)
        self.synonyms = synonyms or SynonymTable(self.resolve_canonical, self._settings.synonyms)
        self.resolver = resolver or ConstructorResolver(strict=self._settings.strict_overloads)
        self.compiler = compiler or InvokerCompiler()
        self._default_constructors: SnapshotMap[Any, Optional[Builder]] = SnapshotMap()
        self._constructors: SnapshotMap[ConstructorKey, Optional[Invoker]] = SnapshotMap()
        self._invokers: SnapshotMap[Any, MemberInvoker] = SnapshotMap()

    @property
    def settings(self) -> FactorySettings:
        return self._settings

    def configure(self, settings: FactorySettings) -> None:
        """Apply changed configuration: re-import modules, reload synonyms, switch overload policy."""
        self._settings = settings
        self.resolver.strict = settings.strict_overloads
        self.modules.configure(settings)
        self.synonyms.configure(settings.synonyms)
        logger.info("[factory] configuration applied")

    # ------------------------------------------------------------------
    # Type names
    # ------------------------------------------------------------------
    def get_type(self, type_name: Optional[str]) -> Optional[Any]:
        """Resolve a type name (synonym, qualified or generic form); None when unknown."""
        if type_name is None:
            return None
        name = type_name.strip()
        if not name:
            return None
        found = self.synonyms.resolve(name)
        if found is not None:
            return found
        return self.resolve_canonical(name)

    def require_type(self, type_name: str) -> Any:
        found = self.get_type(type_name)
        if found is None:
            raise TypeNotFoundError(type_name)
        return found

    def resolve_canonical(self, type_name: str) -> Optional[Any]:
        tree = parse_type_name(type_name)
        if tree is None:
            return None
        return tree.make_type(self._lookup)

    def _lookup(self, name: str, module_name: Optional[str]) -> Optional[Any]:
        if module_name:
            module = self.modules.find_loaded(module_name) or self.modules.try_load_module(module_name)
            if module is None:
                return None
            return self.discovery.find(name, (module,))
        found = self.synonyms.resolve(name)
        if found is not None:
            return found
        return (
            self.discovery.find(name, self.modules.application_modules())
            or self.discovery.find(name, self.modules.system_modules())
        )

    @staticmethod
    def parse_type_name(type_name: str) -> Optional[TypeNameTree]:
        return parse_type_name(type_name)

    def set_synonym(self, name: str, type_: Optional[Any]) -> None:
        self.synonyms.set(name, type_)

    def reset_synonyms(self, synonyms: Optional[SynonymPairs] = None) -> None:
        if synonyms is None:
            self.synonyms.reset()
        else:
            self.synonyms.configure(synonyms)

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------
    def application_modules(self) -> Tuple[ModuleType, ...]:
        return self.modules.application_modules()

    def system_modules(self) -> Tuple[ModuleType, ...]:
        return self.modules.system_modules()

    def try_load_module(self, name: str, throw_on_error: bool = False) -> Optional[ModuleType]:
        return self.modules.try_load_module(name, throw_on_error)

    def load_module(self, name: str) -> ModuleType:
        return self.modules.load_module(name)

    def register_module(self, module: ModuleType) -> bool:
        return self.modules.register_module(module)

    def on_module_loaded(self, callback: ModuleCallback) -> Callable[[], None]:
        return self.modules.on_module_loaded(callback)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    def types(self, predicate: Optional[TypePredicate] = None, cache_results: bool = True) -> Tuple[type, ...]:
        return self.discovery.types(predicate, cache_results)

    def subtypes(self, base: type, cache_results: bool = False) -> Tuple[type, ...]:
        return self.discovery.subtypes(base, cache_results)

    def implementors(self, interface: type, cache_results: bool = False) -> Tuple[type, ...]:
        return self.discovery.implementors(interface, cache_results)

    def classes(
        self,
        type_: type,
        modules: Optional[Sequence[ModuleType]] = None,
        cache_results: bool = False,
    ) -> Tuple[type, ...]:
        return self.discovery.classes(type_, modules, cache_results)

    def factory_methods(self, type_: type, method_name: str, *arg_types: Any) -> List[MethodInfo]:
        return self.discovery.factory_methods(type_, method_name, *arg_types)

    def constructors(self, type_: Any) -> Tuple[ConstructorInfo, ...]:
        return self.resolver.constructors(type_)

    @staticmethod
    def find_method(cls: type, name: str, *param_types: Any) -> Optional[MethodInfo]:
        return find_method(cls, name, *param_types)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    def _type_argument(self, type_or_name: Any) -> Optional[Any]:
        if type_or_name is None:
            raise TypeError("type is required")
        if isinstance(type_or_name, str):
            if not type_or_name.strip():
                raise ValueError("type name is required")
            return self.get_type(type_or_name)
        return type_or_name

    def try_get_default_constructor(self, type_: Any) -> Optional[Builder]:
        """Cached parameterless builder for `type_`, or None."""
        if type_ is None:
            raise TypeError("type is required")
        return self._default_constructors.get_or_add(type_, self._compile_default)

    def get_default_constructor(self, type_: Any) -> Builder:
        builder = self.try_get_default_constructor(type_)
        if builder is None:
            raise ConstructorNotFoundError(type_)
        return builder

    def _compile_default(self, type_: Any) -> Optional[Builder]:
        return self.compiler.compile_default(type_, self.resolver.constructors(type_))

    def try_get_constructor(self, type_: Any, *arg_types: Optional[type]) -> Optional[Invoker]:
        """Cached invoker for the constructor of `type_` matching `arg_types`, or None."""
        if type_ is None:
            return None
        return self._constructors.get_or_add(ConstructorKey(type_, arg_types), self._compile_constructor)

    def get_constructor(self, type_: Any, *arg_types: Optional[type]) -> Invoker:
        if type_ is None:
            raise TypeError("type is required")
        invoker = self.try_get_constructor(type_, *arg_types)
        if invoker is None:
            # re-run resolution to raise the precise error (not found / ambiguous)
            self.resolver.resolve(type_, arg_types, throw_on_error=True)
            raise ConstructorNotFoundError(type_, arg_types)
        return invoker

    def _compile_constructor(self, key: ConstructorKey) -> Optional[Invoker]:
        ctor = self.resolver.resolve(key.declaring_type, key.arg_types, throw_on_error=False)
        if ctor is None:
            return None
        return self.compiler.compile_constructor(ctor, len(key.arg_types))

    def construct(self, type_or_name: Any, *args: Any) -> Any:
        """Create an instance from a type or type name; raises when no constructor fits."""
        type_ = self._type_argument(type_or_name)
        if type_ is None:
            raise TypeNotFoundError(type_or_name)
        if not args:
            return self.get_default_constructor(type_)()
        return self.get_constructor(type_, *_arg_types(args))(args)

    def try_construct(self, type_or_name: Any, *args: Any) -> Any:
        """Like construct() but returns None for an unknown type or missing constructor."""
        type_ = self._type_argument(type_or_name)
        if type_ is None:
            return None
        if not args:
            builder = self.try_get_default_constructor(type_)
            return builder() if builder is not None else None
        invoker = self.try_get_constructor(type_, *_arg_types(args))
        return invoker(args) if invoker is not None else None

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------
    def get_invoker(self, member: Any) -> MemberInvoker:
        """
        Cached invoker(instance, args) for a ConstructorInfo, MethodInfo or plain callable.
        A method bound to an instance is compiled once per function; the
        returned wrapper supplies the bound instance.
        """
        if member is None:
            raise TypeError("member is required")
        if _instance_bound(member):
            invoker = self._invokers.get_or_add(
                describe_callable(member.__func__, instance_method=True), self.compiler.compile_member,
            )
            bound_to = member.__self__
            return lambda instance, args: invoker(bound_to, args)
        if not isinstance(member, (ConstructorInfo, MethodInfo)):
            member = describe_callable(member)
        return self._invokers.get_or_add(member, self.compiler.compile_member)

    def invoke(self, instance: Any, method: Any, *args: Any) -> Any:
        """
        Call `method` with converted arguments. A plain function called with an
        instance is treated as an instance method (the instance becomes self).
        """
        if method is None:
            raise TypeError("method is required")
        if isinstance(method, (ConstructorInfo, MethodInfo)):
            member = method
        elif _instance_bound(method):
            member = describe_callable(method.__func__, instance_method=True)
            instance = method.__self__
        elif instance is not None and inspect.isfunction(method):
            member = describe_callable(method, instance_method=True)
        else:
            member = describe_callable(method)
        return self.get_invoker(member)(instance, args)

    def invoke_static(self, method: Any, *args: Any) -> Any:
        if method is None:
            raise TypeError("method is required")
        if _instance_bound(method):
            return self.get_invoker(method)(None, args)
        member = method if isinstance(method, MethodInfo) else describe_callable(method)
        if not member.is_static:
            raise ValueError(f"{member} is not a static method")
        return self.get_invoker(member)(None, args)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    default_value = staticmethod(default_value)
    is_nullable = staticmethod(is_nullable)
    nullable_base = staticmethod(unwrap_optional)
    underlying_value = staticmethod(underlying_value)


@lru_cache(maxsize=1)
def get_factory() -> Factory:
    """Process-wide factory built from FactorySettings (FACTORY_* env / .env)."""
    return Factory(FactorySettings())


def get_type(type_name: str) -> Optional[Any]:
    return get_factory().get_type(type_name)


def construct(type_or_name: Any, *args: Any) -> Any:
    return get_factory().construct(type_or_name, *args)


def try_construct(type_or_name: Any, *args: Any) -> Any:
    return get_factory().try_construct(type_or_name, *args)
