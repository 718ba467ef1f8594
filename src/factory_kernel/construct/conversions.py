# factory_kernel/construct/conversions.py
"""
Value types, zero values and argument conversions
──────────────────────────────────────────────────────────────────────────────
Value types are the classes listed in DEFAULT_VALUES (and their subclasses)
plus every Enum. They have a well defined zero value and cannot hold None,
so a None argument for a value-typed parameter becomes that zero value.

CONVERTERS maps each primitive value type to a function that coerces an
arbitrary input to it. Converters raise TypeError, ValueError or an
ArithmeticError on bad input; the invoker compiler wraps those.
"""
from __future__ import annotations

import math
import re
import uuid
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from factory_kernel.construct.signatures import is_nullable

DEFAULT_VALUES: Mapping[type, Any] = MappingProxyType({
    bool: False,
    int: 0,
    float: 0.0,
    complex: 0j,
    Decimal: Decimal(0),
    date: date.min,
    datetime: datetime.min,
    time: time.min,
    timedelta: timedelta(0),
    uuid.UUID: uuid.UUID(int=0),
})

_VALUE_BASES = tuple(DEFAULT_VALUES)


def underlying_value(value: Any) -> Any:
    """Enum members yield their value; anything else is returned as is."""
    if isinstance(value, Enum):
        return value.value
    return value


def is_value_type(tp: Any) -> bool:
    return isinstance(tp, type) and (issubclass(tp, Enum) or issubclass(tp, _VALUE_BASES))


def default_value(tp: Any) -> Any:
    """
    Zero value of a value type, None for everything else (nullable and
    reference types). Enums default to their member whose value is 0, if any.
    """
    if tp is None:
        raise TypeError("type is required")
    if is_nullable(tp) or not is_value_type(tp):
        return None
    if issubclass(tp, Enum):
        return next((m for m in tp if underlying_value(m) == 0), None)
    if tp in DEFAULT_VALUES:
        return DEFAULT_VALUES[tp]
    for base, zero in DEFAULT_VALUES.items():
        if issubclass(tp, base):
            try:
                return tp(zero)
            except (TypeError, ValueError):
                return zero
    return None


# ──────────────────────────────────────────────────────────────
# Converters
# ──────────────────────────────────────────────────────────────
_TRUE = frozenset({"true", "yes", "on", "1"})
_FALSE = frozenset({"false", "no", "off", "0"})


def to_bool(value: Any) -> bool:
    value = underlying_value(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().casefold()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    if isinstance(value, (int, float, Decimal, complex)):
        return value != 0
    raise TypeError(f"cannot convert {type(value).__name__} to bool")


def to_int(value: Any) -> int:
    value = underlying_value(value)
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise OverflowError(f"cannot convert {value!r} to int")
        return round(value)
    if isinstance(value, Decimal):
        return int(value.to_integral_value(rounding=ROUND_HALF_EVEN))
    if isinstance(value, str):
        return int(value.strip())
    raise TypeError(f"cannot convert {type(value).__name__} to int")


def to_float(value: Any) -> float:
    value = underlying_value(value)
    if isinstance(value, str):
        return float(value.strip())
    return float(value)


def to_complex(value: Any) -> complex:
    value = underlying_value(value)
    if isinstance(value, str):
        return complex(value.strip())
    return complex(value)


def to_decimal(value: Any) -> Decimal:
    value = underlying_value(value)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, float):
        # repr keeps the shortest round-tripping digits: 0.1 → Decimal("0.1")
        return Decimal(repr(value))
    if isinstance(value, (int, str)):
        return Decimal(value.strip() if isinstance(value, str) else value)
    raise TypeError(f"cannot convert {type(value).__name__} to Decimal")


def to_str(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    if isinstance(value, Enum):
        return value.name
    return str(value)


def to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, uuid.UUID):
        return value.bytes
    raise TypeError(f"cannot convert {type(value).__name__} to bytes")


def to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip())
    raise TypeError(f"cannot convert {type(value).__name__} to datetime")


def to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            return datetime.fromisoformat(text).date()
    raise TypeError(f"cannot convert {type(value).__name__} to date")


def to_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, str):
        return time.fromisoformat(value.strip())
    raise TypeError(f"cannot convert {type(value).__name__} to time")


_TIMESPAN = re.compile(
    r"^(?P<sign>-)?(?:(?P<days>\d+)\.)?(?P<hours>\d{1,2}):(?P<minutes>\d{1,2})"
    r"(?::(?P<seconds>\d{1,2}(?:\.\d+)?))?$"
)


def to_timedelta(value: Any) -> timedelta:
    """Numbers are seconds; strings use [-][d.]hh:mm[:ss[.fff]]."""
    value = underlying_value(value)
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return timedelta(seconds=float(value))
    if isinstance(value, str):
        m = _TIMESPAN.match(value.strip())
        if m is None:
            raise ValueError(f"not a time span: {value!r}")
        span = timedelta(
            days=int(m["days"] or 0),
            hours=int(m["hours"]),
            minutes=int(m["minutes"]),
            seconds=float(m["seconds"] or 0),
        )
        return -span if m["sign"] else span
    raise TypeError(f"cannot convert {type(value).__name__} to timedelta")


def to_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        return uuid.UUID(value.strip())
    if isinstance(value, (bytes, bytearray)):
        return uuid.UUID(bytes=bytes(value))
    if isinstance(value, int) and not isinstance(value, bool):
        return uuid.UUID(int=value)
    raise TypeError(f"cannot convert {type(value).__name__} to UUID")


CONVERTERS: Mapping[type, Callable[[Any], Any]] = MappingProxyType({
    bool: to_bool,
    int: to_int,
    float: to_float,
    complex: to_complex,
    Decimal: to_decimal,
    str: to_str,
    bytes: to_bytes,
    date: to_date,
    datetime: to_datetime,
    time: to_time,
    timedelta: to_timedelta,
    uuid.UUID: to_uuid,
})


def enum_converter(enum_cls: type) -> Callable[[Any], Any]:
    """Members pass through; names match case-insensitively; values go through the underlying converter."""
    values = [m.value for m in enum_cls]
    kinds = {type(v) for v in values}
    underlying: Optional[type] = kinds.pop() if len(kinds) == 1 else None
    convert_value = CONVERTERS.get(underlying) if underlying is not None else None
    by_name: Dict[str, Any] = {name.casefold(): m for name, m in enum_cls.__members__.items()}

    def convert(value: Any) -> Any:
        if isinstance(value, enum_cls):
            return value
        if isinstance(value, str):
            member = by_name.get(value.strip().casefold())
            if member is not None:
                return member
        if convert_value is not None:
            value = convert_value(value)
        return enum_cls(value)

    return convert
