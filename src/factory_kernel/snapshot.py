# factory_kernel/snapshot.py
"""
Copy-on-write primitives
──────────────────────────────────────────────
Readers never take a lock: they read one reference and work on the
immutable object it points to. Writers build a new object and swap it in
with compare_and_set(), retrying against the newer snapshot when another
writer got there first.

    AtomicRef    → single reference with get / set / compare_and_set
    SnapshotMap  → mapping whose every version is a MappingProxyType
"""
from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Callable, Generic, Iterator, Mapping, Optional, TypeVar

K = TypeVar("K")
V = TypeVar("V")
T = TypeVar("T")

_MISSING = object()


class AtomicRef(Generic[T]):
    """Reference cell; reads are plain attribute loads, swaps are serialized."""

    def __init__(self, value: T):
        self._value = value
        self._lock = threading.Lock()

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value

    def get_and_set(self, value: T) -> T:
        with self._lock:
            old = self._value
            self._value = value
            return old

    def compare_and_set(self, expect: T, update: T) -> bool:
        """Install `update` only if the current value is still `expect` (identity)."""
        with self._lock:
            if self._value is not expect:
                return False
            self._value = update
            return True


class SnapshotMap(Generic[K, V]):
    """
    Thread-safe mapping with lock-free reads.
    Every mutation publishes a brand new read-only dict; a reader holding an
    older snapshot keeps seeing it unchanged.
    """

    def __init__(self, initial: Optional[Mapping[K, V]] = None):
        self._ref: AtomicRef[Mapping[K, V]] = AtomicRef(MappingProxyType(dict(initial or {})))

    def snapshot(self) -> Mapping[K, V]:
        return self._ref.get()

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        return self._ref.get().get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._ref.get()

    def __len__(self) -> int:
        return len(self._ref.get())

    def __iter__(self) -> Iterator[K]:
        return iter(self._ref.get())

    def get_or_add(self, key: K, factory: Callable[[K], V]) -> V:
        """
        Return the value stored under `key`, computing it with `factory` on a miss.
        Racing threads may each run the factory; only the first published value
        is kept and every caller receives that one.
        """
        value = self._ref.get().get(key, _MISSING)
        if value is not _MISSING:
            return value  # type: ignore[return-value]
        computed = factory(key)
        while True:
            current = self._ref.get()
            value = current.get(key, _MISSING)
            if value is not _MISSING:
                return value  # type: ignore[return-value]
            updated = dict(current)
            updated[key] = computed
            if self._ref.compare_and_set(current, MappingProxyType(updated)):
                return computed

    def set(self, key: K, value: V) -> None:
        while True:
            current = self._ref.get()
            updated = dict(current)
            updated[key] = value
            if self._ref.compare_and_set(current, MappingProxyType(updated)):
                return

    def update(self, items: Mapping[K, V]) -> None:
        while True:
            current = self._ref.get()
            updated = dict(current)
            updated.update(items)
            if self._ref.compare_and_set(current, MappingProxyType(updated)):
                return

    def discard(self, *keys: K) -> None:
        while True:
            current = self._ref.get()
            if not any(k in current for k in keys):
                return
            updated = {k: v for k, v in current.items() if k not in keys}
            if self._ref.compare_and_set(current, MappingProxyType(updated)):
                return

    def clear(self) -> None:
        self._ref.set(MappingProxyType({}))
