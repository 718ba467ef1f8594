# tests/test_snapshot.py
import threading

from factory_kernel.snapshot import AtomicRef, SnapshotMap


def test_compare_and_set_requires_the_expected_object():
    ref = AtomicRef(("a",))
    current = ref.get()
    assert ref.compare_and_set(("a",), ("b",)) is False  # equal but not the same object
    assert ref.compare_and_set(current, ("b",)) is True
    assert ref.get() == ("b",)


def test_get_and_set_returns_previous_value():
    ref = AtomicRef(1)
    assert ref.get_and_set(2) == 1
    assert ref.get() == 2


def test_snapshot_is_not_affected_by_later_writes():
    table = SnapshotMap({"a": 1})
    before = table.snapshot()
    table.set("b", 2)
    table.discard("a")
    assert dict(before) == {"a": 1}
    assert dict(table.snapshot()) == {"b": 2}


def test_get_or_add_computes_once_per_key():
    calls = []
    table = SnapshotMap()

    def compute(key):
        calls.append(key)
        return key * 2

    assert table.get_or_add(3, compute) == 6
    assert table.get_or_add(3, compute) == 6
    assert calls == [3]


def test_get_or_add_stores_none_results():
    table = SnapshotMap()
    assert table.get_or_add("missing", lambda _: None) is None
    assert "missing" in table
    assert table.get_or_add("missing", lambda _: "other") is None


def test_racing_get_or_add_keeps_first_published_value():
    table = SnapshotMap()
    barrier = threading.Barrier(8)
    results = []

    def worker():
        barrier.wait()
        results.append(table.get_or_add("key", lambda _: object()))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 8
    assert all(r is results[0] for r in results)
    assert len(table) == 1


def test_concurrent_updates_are_not_lost():
    table = SnapshotMap()

    def worker(offset):
        for i in range(200):
            table.set(offset + i, i)

    threads = [threading.Thread(target=worker, args=(n * 1000,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(table) == 800


def test_clear_and_update():
    table = SnapshotMap()
    table.update({"x": 1, "y": 2})
    assert table.get("y") == 2
    table.clear()
    assert len(table) == 0
    assert table.get("y", "default") == "default"
