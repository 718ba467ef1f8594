# factory_kernel/construct/signatures.py
"""
Member descriptors built from type annotations
──────────────────────────────────────────────────────────────────────────────
Purpose:
    Describe constructors and methods as immutable records the resolver and
    the invoker compiler can work with, without re-reading signatures.

Mechanics:
    - Reads annotations with typing.get_type_hints (string annotations included)
    - Constructor overloads come from @typing.overload declarations of __init__
      (or __new__); without overloads the implementation signature is used
    - Only positional parameters take part; a required keyword-only parameter
      makes the member unusable for positional construction
    - Supports Optional[T] / T | None

Example:
    class Money:
        @overload
        def __init__(self, minor: int, currency: Currency) -> None: ...
        @overload
        def __init__(self, text: str) -> None: ...
        def __init__(self, *args): ...

    constructors(Money)  → (Money(minor: int, currency: Currency), Money(text: str))
"""
from __future__ import annotations

import inspect
import types
from abc import ABCMeta
from dataclasses import dataclass, field
from typing import (
    Annotated,
    Any,
    Callable,
    Dict,
    List,
    Literal,
    Optional,
    Self,
    Tuple,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_overloads,
    get_type_hints,
)

EMPTY = inspect.Parameter.empty
NoneType = type(None)

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
# numeric promotions accepted by type checkers: int → float → complex
_PROMOTIONS: Dict[type, Tuple[type, ...]] = {float: (int,), complex: (int, float)}


# ──────────────────────────────────────────────────────────────
# Optional / union helpers
# ──────────────────────────────────────────────────────────────
def _is_union(tp: Any) -> bool:
    origin = get_origin(tp)
    return origin is Union or origin is types.UnionType


def is_nullable(tp: Any) -> bool:
    """True when `tp` can hold None: NoneType, Any, object or a union with None."""
    if tp is None or tp is NoneType or tp is Any or tp is object:
        return True
    return _is_union(tp) and NoneType in get_args(tp)


def unwrap_optional(tp: Any) -> Any:
    """Optional[T] → T; any other annotation is returned unchanged."""
    if _is_union(tp):
        args = get_args(tp)
        rest = tuple(a for a in args if a is not NoneType)
        if len(rest) == 1 and len(rest) != len(args):
            return rest[0]
    return tp


def strip_annotated(tp: Any) -> Any:
    while get_origin(tp) is Annotated:
        tp = get_args(tp)[0]
    return tp


def is_interface(cls: Any) -> bool:
    """Protocol classes play the role of interfaces."""
    return isinstance(cls, type) and cls.__dict__.get("_is_protocol", False) is True


def inherits(candidate: Any, base: Any, structural: bool = False) -> bool:
    """
    Nominal subclass test that never raises.
    ABC registrations count; structural Protocol checks only when requested.
    """
    if candidate is base:
        return True
    if base in getattr(candidate, "__mro__", ()):
        return True
    if is_interface(base):
        if not (structural and getattr(base, "_is_runtime_protocol", False)):
            return False
    elif not isinstance(base, ABCMeta):
        return False
    try:
        return issubclass(candidate, base)
    except TypeError:
        return False


def is_assignable(target: Any, source: Any) -> bool:
    """Would a value of class `source` be accepted by a parameter annotated `target`?"""
    target = strip_annotated(target)
    if target is Any or target is object or target is EMPTY:
        return True
    if source is None:
        return False
    if _is_union(target):
        return any(is_assignable(arm, source) for arm in get_args(target))
    if isinstance(target, TypeVar):
        if target.__bound__ is not None:
            return is_assignable(target.__bound__, source)
        if target.__constraints__:
            return any(is_assignable(c, source) for c in target.__constraints__)
        return True
    origin = get_origin(target)
    if origin is Literal:
        return False
    if origin is not None:
        target = origin
    if not isinstance(target, type):
        return False
    if any(issubclass(source, p) for p in _PROMOTIONS.get(target, ())):
        return True
    return inherits(source, target, structural=True)


def type_hints(fn: Callable[..., Any]) -> Dict[str, Any]:
    fn = getattr(fn, "__func__", fn)
    try:
        return get_type_hints(fn)
    except Exception:
        # unresolvable forward references degrade to Any
        raw = getattr(fn, "__annotations__", None) or {}
        return {k: (Any if isinstance(v, str) else v) for k, v in raw.items()}


# ──────────────────────────────────────────────────────────────
# Descriptors
# ──────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ParameterInfo:
    name: str
    annotation: Any = Any
    default: Any = field(default=EMPTY, compare=False)
    variadic: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not EMPTY

    def __str__(self) -> str:
        text = f"{'*' if self.variadic else ''}{self.name}: {_type_name(self.annotation)}"
        return text + (" = ..." if self.has_default else "")


def _type_name(tp: Any) -> str:
    if isinstance(tp, type) and not get_args(tp):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


class _Signature:
    """Positional view over a parameter tuple."""

    parameters: Tuple[ParameterInfo, ...]

    @property
    def positional(self) -> Tuple[ParameterInfo, ...]:
        return tuple(p for p in self.parameters if not p.variadic)

    @property
    def variadic(self) -> Optional[ParameterInfo]:
        return next((p for p in self.parameters if p.variadic), None)

    @property
    def required_count(self) -> int:
        return sum(1 for p in self.positional if not p.has_default)

    def parameter_types(self) -> Tuple[Any, ...]:
        return tuple(p.annotation for p in self.positional)


@dataclass(frozen=True)
class ConstructorInfo(_Signature):
    """One way of building `declaring_type`; `index` is its declaration order."""

    declaring_type: Any
    index: int = 0
    is_copy: bool = False
    parameters: Tuple[ParameterInfo, ...] = field(default=(), compare=False)
    target: Optional[Callable[..., Any]] = field(default=None, compare=False, repr=False)

    @classmethod
    def copy_of(cls, type_: Any) -> "ConstructorInfo":
        return cls(type_, -1, True, (ParameterInfo("value", type_),), None)

    def __str__(self) -> str:
        return f"{_type_name(self.declaring_type)}({', '.join(str(p) for p in self.parameters)})"


@dataclass(frozen=True)
class MethodInfo(_Signature):
    """
    A callable member; `is_static` means no instance is passed.
    Overloads of one function differ by their parameters.
    """

    function: Callable[..., Any]
    is_static: bool = True
    name: str = field(default="", compare=False)
    declaring_type: Optional[type] = field(default=None, compare=False)
    parameters: Tuple[ParameterInfo, ...] = ()
    return_annotation: Any = field(default=Any, compare=False)

    def __str__(self) -> str:
        owner = f"{_type_name(self.declaring_type)}." if self.declaring_type else ""
        return f"{owner}{self.name}({', '.join(str(p) for p in self.parameters)})"


def _parameters(fn: Callable[..., Any], skip: int = 0) -> Tuple[Tuple[ParameterInfo, ...], bool]:
    """Positional parameters of `fn` after dropping `skip` leading ones (self/cls)."""
    signature = inspect.signature(getattr(fn, "__func__", fn))
    hints = type_hints(fn)
    params: List[ParameterInfo] = []
    needs_keywords = False
    for p in signature.parameters.values():
        if skip and p.kind in _POSITIONAL:
            skip -= 1
            continue
        if p.kind in _POSITIONAL:
            params.append(ParameterInfo(p.name, hints.get(p.name, Any), p.default))
        elif p.kind is inspect.Parameter.VAR_POSITIONAL:
            params.append(ParameterInfo(p.name, hints.get(p.name, Any), variadic=True))
        elif p.kind is inspect.Parameter.KEYWORD_ONLY and p.default is EMPTY:
            needs_keywords = True
    return tuple(params), needs_keywords


_OPAQUE = (ParameterInfo("args", Any, variadic=True),)


def constructors(cls: type) -> Tuple[ConstructorInfo, ...]:
    """Constructors of `cls` in declaration order."""
    init = cls.__init__
    if init is not object.__init__:
        source = init
    elif cls.__new__ is not object.__new__:
        source = cls.__new__
    else:
        return (ConstructorInfo(cls, 0, False, (), cls),)

    overloads = get_overloads(source) if inspect.isfunction(source) else []
    found: List[ConstructorInfo] = []
    for index, fn in enumerate(overloads or [source]):
        try:
            params, needs_keywords = _parameters(fn, skip=1)
        except (TypeError, ValueError):
            # builtins without an introspectable signature accept anything
            params, needs_keywords = _OPAQUE, False
        if needs_keywords:
            continue
        found.append(ConstructorInfo(cls, index, False, params, cls))
    return tuple(found)


def describe_method(owner: type, name: str) -> MethodInfo:
    """Describe attribute `name` of `owner` (instance, static or class method)."""
    raw = inspect.getattr_static(owner, name)
    if isinstance(raw, staticmethod):
        fn, call, static, skip = raw.__func__, raw.__func__, True, 0
    elif isinstance(raw, classmethod):
        fn, call, static, skip = raw.__func__, getattr(owner, name), True, 1
    elif callable(raw):
        fn, call, static, skip = raw, raw, False, 1
    else:
        raise TypeError(f"{owner.__qualname__}.{name} is not callable")
    params, _ = _parameters(fn, skip)
    return MethodInfo(
        call, static, name, owner, params, _return_annotation(fn, owner),
    )


def describe_callable(fn: Callable[..., Any], instance_method: bool = False) -> MethodInfo:
    """
    Describe a free callable. Bound methods are static (self already bound);
    a plain function with instance_method=True takes the instance as first argument.
    """
    if isinstance(fn, MethodInfo):
        return fn
    skip = 1 if inspect.ismethod(fn) or instance_method else 0
    try:
        params, _ = _parameters(fn, skip)
    except (TypeError, ValueError):
        params = _OPAQUE
    owner = fn.__self__ if inspect.ismethod(fn) else None
    if owner is not None and not isinstance(owner, type):
        owner = type(owner)
    return MethodInfo(
        fn,
        not instance_method,
        getattr(fn, "__name__", repr(fn)),
        owner if isinstance(owner, type) else None,
        params,
        _return_annotation(fn, owner),
    )


def _return_annotation(fn: Callable[..., Any], owner: Any) -> Any:
    ret = type_hints(fn).get("return", Any)
    if ret is Self and isinstance(owner, type):
        return owner
    return ret


def find_method(cls: type, name: str, *param_types: Any) -> Optional[MethodInfo]:
    """
    Find method `name` of `cls` whose positional parameters match `param_types`.
    Generic annotations compare by their origin (list[int] matches list).
    Overloads are checked in declaration order.
    """
    try:
        method = describe_method(cls, name)
    except AttributeError:
        return None
    impl = getattr(method.function, "__func__", method.function)
    skip = 0 if isinstance(inspect.getattr_static(cls, name), staticmethod) else 1
    candidates = [method]
    if inspect.isfunction(impl):
        for fn in get_overloads(impl):
            params, _ = _parameters(fn, skip)
            candidates.append(MethodInfo(
                method.function, method.is_static, name, cls, params, _return_annotation(fn, cls),
            ))
        if len(candidates) > 1:
            candidates = candidates[1:]
    for candidate in candidates:
        declared = candidate.parameter_types()
        if len(declared) != len(param_types):
            continue
        if all((get_origin(d) or d) is p for d, p in zip(declared, param_types)):
            return candidate
    return None
