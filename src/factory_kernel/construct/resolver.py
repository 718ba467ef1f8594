# factory_kernel/construct/resolver.py
"""
Constructor resolution
──────────────────────────────────────────────────────────────────────────────
Given a class and the runtime classes of the arguments (None for a None
argument), pick one constructor in three tiers:

    1. exact       → declared positional parameter types equal the argument types
    2. assignable  → arity fits (defaults and *args count); every argument is
                     accepted by its parameter, a None argument only where
                     the parameter is optional, defaulted or not a value type
    3. copy        → a single argument of the class itself

Tier 2 is first-fit in declaration order. With strict=True more than one
tier-2 candidate raises AmbiguousMatchError instead.
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple, get_origin

from factory_kernel.construct.conversions import is_value_type
from factory_kernel.construct.signatures import (
    ConstructorInfo,
    NoneType,
    ParameterInfo,
    constructors,
    is_assignable,
    is_interface,
    is_nullable,
    strip_annotated,
    unwrap_optional,
)
from factory_kernel.errors import AmbiguousMatchError, ConstructorNotFoundError

logger = logging.getLogger(__name__)


def constructed_class(type_: Any) -> Optional[type]:
    """The class actually instantiated for `type_` (Optional and generic forms unwrapped)."""
    base = unwrap_optional(strip_annotated(type_))
    base = get_origin(base) or base
    return base if isinstance(base, type) else None


def accepts(parameter: ParameterInfo, arg_type: Optional[type]) -> bool:
    annotation = strip_annotated(parameter.annotation)
    if arg_type is None or arg_type is NoneType:
        if is_nullable(annotation) or parameter.has_default:
            return True
        return not is_value_type(annotation)
    return is_assignable(annotation, arg_type)


class ConstructorResolver:
    def __init__(self, strict: bool = False):
        self.strict = strict

    def constructors(self, type_: Any) -> Tuple[ConstructorInfo, ...]:
        """Usable constructors of `type_`; none for protocols, abstract classes and NoneType."""
        cls = constructed_class(type_)
        if cls is None or cls is NoneType or is_interface(cls) or inspect.isabstract(cls):
            return ()
        return constructors(cls)

    def resolve(
        self,
        type_: Any,
        arg_types: Iterable[Optional[type]],
        throw_on_error: bool = False,
    ) -> Optional[ConstructorInfo]:
        arg_types = tuple(arg_types)
        available = self.constructors(type_)
        try:
            ctor = self._exact(available, arg_types) or self._assignable(type_, available, arg_types)
        except AmbiguousMatchError:
            if throw_on_error:
                raise
            return None
        if ctor is None and len(arg_types) == 1 and arg_types[0] is not None:
            cls = constructed_class(type_)
            if cls is not None and arg_types[0] is cls:
                ctor = ConstructorInfo.copy_of(cls)
        if ctor is None:
            logger.debug("[factory] no constructor for %r with %r", type_, arg_types)
            if throw_on_error:
                raise ConstructorNotFoundError(type_, arg_types)
        return ctor

    @staticmethod
    def _binds(ctor: ConstructorInfo, count: int) -> Optional[List[ParameterInfo]]:
        """Parameters receiving `count` positional arguments, or None when the arity does not fit."""
        positional = ctor.positional
        if count < ctor.required_count:
            return None
        if count <= len(positional):
            return list(positional[:count])
        variadic = ctor.variadic
        if variadic is None:
            return None
        return list(positional) + [variadic] * (count - len(positional))

    @staticmethod
    def _exact(available: Sequence[ConstructorInfo], arg_types: Tuple[Optional[type], ...]) -> Optional[ConstructorInfo]:
        if any(t is None for t in arg_types):
            return None
        for ctor in available:
            if ctor.variadic is None and ctor.parameter_types() == arg_types:
                return ctor
        return None

    def _assignable(
        self,
        type_: Any,
        available: Sequence[ConstructorInfo],
        arg_types: Tuple[Optional[type], ...],
    ) -> Optional[ConstructorInfo]:
        matches: List[ConstructorInfo] = []
        for ctor in available:
            bound = self._binds(ctor, len(arg_types))
            if bound is None:
                continue
            if all(accepts(p, t) for p, t in zip(bound, arg_types)):
                if not self.strict:
                    return ctor
                matches.append(ctor)
        if len(matches) > 1:
            raise AmbiguousMatchError(type_, arg_types, matches)
        return matches[0] if matches else None
