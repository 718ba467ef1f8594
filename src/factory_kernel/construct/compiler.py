# factory_kernel/construct/compiler.py
"""
Invoker compiler
──────────────────────────────────────────────────────────────────────────────
Turns a constructor or method descriptor into a plain closure that takes an
argument sequence, converts every argument to its parameter type and calls
the target. All conversion decisions are made once, at compile time; the
returned closure only runs the prepared converter per slot.

    compile_constructor(ctor) → invoker(args)
    compile_default(type_)    → builder() or None
    compile_method(method)    → invoker(instance, args)

Null guard per parameter:
    Optional[T] / reference type → None passes through
    value type                   → None becomes the type's zero value
    str                          → None stays None
"""
from __future__ import annotations

import inspect
import logging
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Tuple, Union

from factory_kernel.construct.conversions import (
    CONVERTERS,
    DEFAULT_VALUES,
    default_value,
    enum_converter,
    is_value_type,
)
from factory_kernel.construct.resolver import constructed_class
from factory_kernel.construct.signatures import (
    EMPTY,
    ConstructorInfo,
    MethodInfo,
    ParameterInfo,
    _Signature,
    is_interface,
    is_nullable,
    strip_annotated,
    unwrap_optional,
)
from factory_kernel.errors import ConversionError, describe_type

logger = logging.getLogger(__name__)

Converter = Callable[[Any], Any]
Invoker = Callable[[Sequence[Any]], Any]
MemberInvoker = Callable[[Any, Sequence[Any]], Any]
Builder = Callable[[], Any]

_CONVERSION_FAILURES = (TypeError, ValueError, ArithmeticError)


def _identity(value: Any) -> Any:
    return value


def _checked_cast(check: Union[type, Tuple[type, ...]], target: Any) -> Converter:
    def cast(value: Any) -> Any:
        if value is None or isinstance(value, check):
            return value
        raise TypeError(f"{describe_type(type(value))} is not {describe_type(target)}")

    return cast


def _primitive(base: type, convert: Converter) -> Converter:
    def primitive(value: Any) -> Any:
        if type(value) is base:
            return value
        return convert(value)

    return primitive


def _hook(base: type, from_object: Converter) -> Converter:
    def hook(value: Any) -> Any:
        if isinstance(value, base):
            return value
        return from_object(value)

    return hook


def _base_converter(base: Any) -> Converter:
    if base is Any or base is object or base is EMPTY:
        return _identity
    if isinstance(base, type):
        if issubclass(base, Enum):
            return enum_converter(base)
        if base in CONVERTERS:
            return _primitive(base, CONVERTERS[base])
        from_object = getattr(base, "from_object", None)
        if callable(from_object):
            return _hook(base, from_object)
        if is_interface(base) and not getattr(base, "_is_runtime_protocol", False):
            return _identity
        return _checked_cast(base, base)
    check = constructed_class(base)
    if check is not None:
        return _checked_cast(check, base)
    return _identity


def parameter_converter(annotation: Any) -> Converter:
    """
    Converter for one parameter: null guard first, then the type conversion.
    Unknown annotation kinds (TypeVar, Literal, unions of several classes) pass values through.
    """
    annotation = strip_annotated(annotation)
    if annotation is Any or annotation is object or annotation is EMPTY:
        return _identity
    base = strip_annotated(unwrap_optional(annotation))
    convert = _base_converter(base)

    zero = None
    if not is_nullable(annotation) and is_value_type(base):
        zero = default_value(base)

    def guarded(value: Any) -> Any:
        if value is None:
            return zero
        return convert(value)

    return guarded


class _Slots:
    """Per-position converters for one signature."""

    def __init__(self, signature: _Signature):
        self.member = signature
        self.positional: Tuple[ParameterInfo, ...] = signature.positional
        self.variadic: Optional[ParameterInfo] = signature.variadic
        self.required = signature.required_count
        self.converters: Tuple[Converter, ...] = tuple(parameter_converter(p.annotation) for p in self.positional)
        self.rest: Optional[Converter] = parameter_converter(self.variadic.annotation) if self.variadic else None

    def convert(self, args: Sequence[Any]) -> list:
        count = len(args)
        if count < self.required or (count > len(self.positional) and self.rest is None):
            raise TypeError(f"{self.member} takes {self._arity()} positional argument(s) but {count} were given")
        values = []
        for i, value in enumerate(args):
            if i < len(self.converters):
                convert, parameter = self.converters[i], self.positional[i]
            else:
                convert, parameter = self.rest, self.variadic  # type: ignore[assignment]
            try:
                values.append(convert(value))
            except _CONVERSION_FAILURES as exc:
                raise ConversionError(value, parameter.annotation, parameter.name) from exc
        return values

    def _arity(self) -> str:
        if self.rest is not None:
            return f"at least {self.required}"
        if self.required == len(self.positional):
            return str(self.required)
        return f"{self.required} to {len(self.positional)}"


class InvokerCompiler:
    def compile_constructor(self, ctor: ConstructorInfo, arity: Optional[int] = None) -> Invoker:
        """Invoker for `ctor`; with `arity` set, any other argument count is rejected."""
        if ctor.is_copy:
            convert = parameter_converter(ctor.declaring_type)

            def copy(args: Sequence[Any]) -> Any:
                if len(args) != 1:
                    raise TypeError(f"{ctor} takes 1 positional argument but {len(args)} were given")
                return convert(args[0])

            return copy

        slots = _Slots(ctor)
        target = ctor.target

        def construct(args: Sequence[Any]) -> Any:
            if arity is not None and len(args) != arity:
                raise TypeError(f"{ctor} was compiled for {arity} argument(s), got {len(args)}")
            return target(*slots.convert(args))

        logger.debug("[factory] compiled constructor %s", ctor)
        return construct

    def compile_default(self, type_: Any, available: Sequence[ConstructorInfo]) -> Optional[Builder]:
        """
        Parameterless builder: None for nullable types, the zero value for value
        types, otherwise a constructor callable with no arguments.
        """
        if unwrap_optional(type_) is not type_:
            return lambda: None
        cls = constructed_class(type_)
        if cls is None:
            return None
        if cls in DEFAULT_VALUES or (is_value_type(cls) and issubclass(cls, Enum)):
            zero = default_value(cls)
            if zero is None:
                return None
            return lambda: zero
        for ctor in available:
            if ctor.required_count == 0 and not ctor.is_copy:
                target = ctor.target
                return lambda: target()
        return None

    def compile_method(self, method: MethodInfo) -> MemberInvoker:
        slots = _Slots(method)
        function = method.function

        if method.is_static:
            def invoke_static(instance: Any, args: Sequence[Any]) -> Any:
                return function(*slots.convert(args))

            return invoke_static

        def invoke(instance: Any, args: Sequence[Any]) -> Any:
            if instance is None:
                raise TypeError(f"{method} requires an instance")
            return function(instance, *slots.convert(args))

        return invoke

    def compile_member(self, member: Any) -> MemberInvoker:
        """Invoker for a ConstructorInfo or MethodInfo; the instance is ignored for constructors."""
        if isinstance(member, ConstructorInfo):
            construct = self.compile_constructor(member)
            return lambda instance, args: construct(args)
        if isinstance(member, MethodInfo):
            return self.compile_method(member)
        if inspect.isclass(member):
            raise TypeError(f"expected a constructor or method descriptor, got class {member.__qualname__}")
        raise TypeError(f"expected a constructor or method descriptor, got {member!r}")
