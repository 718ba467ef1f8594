from __future__ import annotations
import logging
import threading
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from factory_kernel.construct.conversions import is_value_type
from factory_kernel.construct.signatures import NoneType
from factory_kernel.snapshot import SnapshotMap

"""
──────────────────────────────────────────────────────────────────────────────
Type Synonym Table
──────────────────────────────────────────────────────────────────────────────
Purpose:
    Map short, case-insensitive aliases to types.

Sources:
    - BUILTIN_SYNONYMS → fixed primitive aliases ("int", "string", "guid", ...)
    - configured pairs → alias → canonical type name, resolved lazily
    - set(alias, type) → runtime overrides

Rules:
    - keys are case-insensitive with all whitespace removed
    - every value-type entry "x" also gets "x?" → Optional[x]; reference types
      (str, classes) already hold None and get no second entry
    - configured pairs load on first lookup and again after reset()

Usage:
    table = SynonymTable(factory.resolve_canonical, {"money": "decimal"})
    table.resolve("Money?")   → Optional[Decimal]
"""

logger = logging.getLogger(__name__)

BUILTIN_SYNONYMS: Mapping[str, Any] = MappingProxyType({
    "bool": bool,
    "boolean": bool,
    "byte": int,
    "sbyte": int,
    "short": int,
    "ushort": int,
    "int": int,
    "integer": int,
    "id": int,
    "uint": int,
    "long": int,
    "ulong": int,
    "decimal": Decimal,
    "fixed": Decimal,
    "float": float,
    "double": float,
    "single": float,
    "complex": complex,
    "string": str,
    "str": str,
    "char": str,
    "bytes": bytes,
    "date": date,
    "datetime": datetime,
    "time": time,
    "timespan": timedelta,
    "timedelta": timedelta,
    "guid": uuid.UUID,
    "uuid": uuid.UUID,
    "type": type,
    "object": object,
    "void": NoneType,
    "none": NoneType,
})

SynonymPairs = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def normalize(name: str) -> str:
    return "".join(name.split()).casefold()


def _pairs(source: Optional[SynonymPairs]) -> Tuple[Tuple[str, str], ...]:
    if not source:
        return ()
    items = source.items() if isinstance(source, Mapping) else source
    return tuple((str(k), str(v)) for k, v in items)


def _entries(key: str, type_: Any) -> Dict[str, Any]:
    entries = {key: type_}
    if is_value_type(type_):
        entries[key + "?"] = Optional[type_]
    return entries


class SynonymTable:
    def __init__(
        self,
        resolve_canonical: Callable[[str], Optional[Any]],
        synonyms: Optional[SynonymPairs] = None,
    ):
        self._resolve_canonical = resolve_canonical
        self._configured = _pairs(synonyms)
        self._table: SnapshotMap[str, Any] = SnapshotMap()
        for alias, type_ in BUILTIN_SYNONYMS.items():
            self._table.update(_entries(alias, type_))
        self._lock = threading.RLock()
        self._loaded = False
        self._loading = False

    def resolve(self, name: Optional[str]) -> Optional[Any]:
        if not name:
            return None
        if not self._loaded:
            self._load()
        return self._table.get(normalize(name))

    def _load(self) -> None:
        # RLock: canonical names resolved during the load may call resolve() again
        with self._lock:
            if self._loaded or self._loading:
                return
            self._loading = True
            try:
                for alias, canonical in self._configured:
                    key = normalize(alias)
                    target = canonical.strip()
                    if not key or not target:
                        continue
                    type_ = self._table.get(normalize(target))
                    if type_ is None:
                        type_ = self._resolve_canonical(target)
                    if type_ is None:
                        logger.warning("[factory] synonym %r: cannot resolve type %r", alias, canonical)
                        continue
                    self._table.update(_entries(key, type_))
                self._loaded = True
            finally:
                self._loading = False

    def set(self, name: str, type_: Optional[Any]) -> None:
        """Add or replace an alias; None removes it (and its "?" form)."""
        key = normalize(name or "")
        if not key:
            return
        with self._lock:
            if type_ is None:
                self._table.discard(key, key + "?")
            else:
                self._table.update(_entries(key, type_))

    def reset(self) -> None:
        """Forget that configured pairs were loaded; the next lookup reloads them."""
        with self._lock:
            self._loaded = False

    def configure(self, synonyms: Optional[SynonymPairs]) -> None:
        with self._lock:
            self._configured = _pairs(synonyms)
            self._loaded = False

    def snapshot(self) -> Mapping[str, Any]:
        return self._table.snapshot()
