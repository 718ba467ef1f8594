# tests/test_synonyms.py
import logging
from decimal import Decimal
from typing import Optional
from unittest.mock import MagicMock
from uuid import UUID

from hypothesis import given
from hypothesis import strategies as st

from factory_kernel.construct.conversions import is_value_type
from factory_kernel.construct.signatures import NoneType
from factory_kernel.names.synonyms import BUILTIN_SYNONYMS, SynonymTable, normalize
from tests.samples import Money


def _table(synonyms=None, resolver=None):
    return SynonymTable(resolver or (lambda name: None), synonyms)


@given(
    alias=st.sampled_from(sorted(BUILTIN_SYNONYMS)),
    flips=st.lists(st.booleans(), min_size=1, max_size=12),
)
def test_builtin_aliases_ignore_case_and_spacing(alias, flips):
    table = _table()
    mixed = "".join(c.upper() if flips[i % len(flips)] else c for i, c in enumerate(alias))
    assert table.resolve(f" {mixed} ") is BUILTIN_SYNONYMS[alias]


def test_value_type_aliases_have_an_optional_form():
    table = _table()
    for alias, type_ in BUILTIN_SYNONYMS.items():
        if not is_value_type(type_):
            assert table.resolve(alias + "?") is None
        else:
            assert table.resolve(alias + "?") == Optional[type_]
            assert table.resolve(alias.upper() + " ?") == Optional[type_]


def test_primitive_aliases():
    table = _table()
    assert table.resolve("long") is int
    assert table.resolve("double") is float
    assert table.resolve("decimal") is Decimal
    assert table.resolve("Guid") is UUID
    assert table.resolve("void") is NoneType


def test_configured_pairs_resolve_lazily():
    resolver = MagicMock(side_effect=lambda name: Money if name == "tests.samples.Money" else None)
    table = _table({"cash": " tests.samples.Money ", "price": "decimal"}, resolver)
    resolver.assert_not_called()

    assert table.resolve("CASH") is Money
    assert table.resolve("cash?") is None
    assert table.resolve("price") is Decimal
    # canonical names found in the table are not resolved again
    resolver.assert_called_once_with("tests.samples.Money")


def test_unresolvable_and_empty_pairs_are_skipped(caplog):
    table = _table([("ghost", "NoSuchThing"), ("", "int"), ("blank", "  ")])
    with caplog.at_level(logging.WARNING, logger="factory_kernel.names.synonyms"):
        assert table.resolve("ghost") is None
    assert table.resolve("blank") is None
    assert any("ghost" in r.getMessage() for r in caplog.records)


def test_set_and_remove():
    table = _table()
    table.set(" Cash ", Money)
    assert table.resolve("cash") is Money
    assert table.resolve("cash?") is None
    table.set("amount", Decimal)
    assert table.resolve("amount?") == Optional[Decimal]
    table.set("amount", None)
    assert table.resolve("amount") is None
    assert table.resolve("amount?") is None


def test_set_optional_type_adds_no_second_entry():
    table = _table()
    table.set("maybe", Optional[int])
    assert table.resolve("maybe") == Optional[int]
    assert "maybe?" not in table.snapshot()


def test_reset_reloads_configured_pairs():
    calls = []

    def resolver(name):
        calls.append(name)
        return Money

    table = _table({"cash": "Money"}, resolver)
    table.resolve("cash")
    table.resolve("cash")
    assert calls == ["Money"]
    table.reset()
    table.resolve("cash")
    assert calls == ["Money", "Money"]


def test_configure_replaces_pairs():
    table = _table({"cash": "decimal"})
    assert table.resolve("cash") is Decimal
    table.configure({"cash": "int"})
    assert table.resolve("cash") is int


def test_lookup_during_load_does_not_recurse():
    table = None

    def resolver(name):
        # canonical resolution consults the table again while it is loading
        return table.resolve("int") if name == "Number" else None

    table = _table({"num": "Number"}, resolver)
    assert table.resolve("num") is int


def test_normalize():
    assert normalize("  Dict < String , Int > ") == "dict<string,int>"
