# factory_kernel/errors.py
"""
Error taxonomy
──────────────────────────────────────────────
Every engine failure derives from FactoryError and carries:
    • code     → stable machine-readable code (NOT_FOUND, AMBIGUOUS, ...)
    • message  → human readable text
    • details  → dict with the type / signature / module involved

The extra builtin base (LookupError, ValueError, ImportError) lets callers
catch them the way they would catch the stdlib equivalent.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


def describe_type(type_: Any) -> str:
    if type_ is None:
        return "None"
    if isinstance(type_, type):
        if type_.__module__ == "builtins":
            return type_.__qualname__
        return f"{type_.__module__}.{type_.__qualname__}"
    return repr(type_)


def describe_signature(arg_types: Iterable[Any]) -> str:
    return "(" + ", ".join("?" if t is None else describe_type(t) for t in arg_types) + ")"


class FactoryError(Exception):
    code = "FACTORY_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def envelope(self) -> Dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message, "details": self.details}}


class TypeNotFoundError(FactoryError, LookupError):
    code = "NOT_FOUND"

    def __init__(self, type_name: str):
        super().__init__(f"Cannot find type {type_name!r}", {"type_name": type_name})
        self.type_name = type_name


class ConstructorNotFoundError(FactoryError, LookupError):
    code = "NOT_FOUND"

    def __init__(self, type_: Any, arg_types: Iterable[Any] = ()):
        arg_types = tuple(arg_types)
        signature = describe_signature(arg_types)
        super().__init__(
            f"Cannot find constructor {describe_type(type_)}{signature} "
            f"accepting {len(arg_types)} argument(s)",
            {"type": describe_type(type_), "signature": signature},
        )
        self.type = type_
        self.arg_types = arg_types


class AmbiguousMatchError(FactoryError, LookupError):
    code = "AMBIGUOUS"

    def __init__(self, type_: Any, arg_types: Iterable[Any], candidates: Iterable[Any]):
        arg_types = tuple(arg_types)
        candidates = [str(c) for c in candidates]
        super().__init__(
            f"Constructor call {describe_type(type_)}{describe_signature(arg_types)} "
            f"matches {len(candidates)} overloads: {'; '.join(candidates)}",
            {"type": describe_type(type_), "candidates": candidates},
        )
        self.type = type_
        self.arg_types = arg_types


class ConversionError(FactoryError, ValueError):
    code = "CONVERSION_FAILED"

    def __init__(self, value: Any, target: Any, parameter: Optional[str] = None):
        where = f" for parameter {parameter!r}" if parameter else ""
        super().__init__(
            f"Cannot convert {describe_type(type(value))} value to {describe_type(target)}{where}",
            {"source": describe_type(type(value)), "target": describe_type(target), "parameter": parameter},
        )
        self.value = value
        self.target = target
        self.parameter = parameter


class ModuleLoadError(FactoryError, ImportError):
    code = "MODULE_LOAD_FAILED"

    def __init__(self, module_name: str, file: Optional[str] = None):
        super().__init__(
            f"Cannot load module {module_name!r}",
            {"module": module_name, "file": file},
        )
        self.module_name = module_name
        self.file = file
