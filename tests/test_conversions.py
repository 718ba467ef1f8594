# tests/test_conversions.py
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

import pytest
from hypothesis import given
from hypothesis import strategies as st

from factory_kernel.construct.conversions import (
    CONVERTERS,
    DEFAULT_VALUES,
    default_value,
    enum_converter,
    is_value_type,
    to_bool,
    to_decimal,
    to_int,
    to_timedelta,
    underlying_value,
)
from tests.samples import Currency, Money, Priority


def test_value_types():
    assert is_value_type(int)
    assert is_value_type(Priority)
    assert is_value_type(Currency)
    assert is_value_type(datetime)
    assert not is_value_type(str)
    assert not is_value_type(Money)
    assert not is_value_type(Optional[int])


def test_default_values():
    for type_, zero in DEFAULT_VALUES.items():
        assert default_value(type_) == zero
    assert default_value(time) == time()
    assert default_value(Priority) is Priority.NONE
    assert default_value(Currency) is None
    assert default_value(str) is None
    assert default_value(Money) is None
    assert default_value(Optional[int]) is None
    with pytest.raises(TypeError):
        default_value(None)


def test_underlying_value():
    assert underlying_value(Priority.HIGH) == 2
    assert underlying_value(Currency.EUR) == "EUR"
    assert underlying_value(5) == 5


@pytest.mark.parametrize("value,expected", [
    ("true", True), (" Off ", False), (1, True), (0.0, False), (Decimal("2"), True), (True, True),
])
def test_to_bool(value, expected):
    assert to_bool(value) is expected


def test_to_bool_rejects_other_text():
    with pytest.raises(ValueError):
        to_bool("maybe")
    with pytest.raises(TypeError):
        to_bool(object())


def test_to_int_rounds_half_to_even():
    assert to_int(2.5) == 2
    assert to_int(3.5) == 4
    assert to_int(Decimal("2.5")) == 2
    assert to_int(" 42 ") == 42
    assert to_int(Priority.HIGH) == 2
    with pytest.raises(OverflowError):
        to_int(float("inf"))
    with pytest.raises(ValueError):
        to_int("4x")


@given(st.integers(min_value=-10**18, max_value=10**18))
def test_to_int_keeps_integers(value):
    assert to_int(value) == value
    assert to_int(str(value)) == value


@given(st.floats(allow_nan=False, allow_infinity=False))
def test_to_decimal_keeps_the_shortest_float_repr(value):
    assert float(to_decimal(value)) == value


def test_to_decimal():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(" 12.50 ") == Decimal("12.50")
    assert to_decimal(True) == Decimal(1)


def test_to_timedelta():
    assert to_timedelta(90) == timedelta(seconds=90)
    assert to_timedelta("01:30") == timedelta(hours=1, minutes=30)
    assert to_timedelta("2.03:04:05.5") == timedelta(days=2, hours=3, minutes=4, seconds=5.5)
    assert to_timedelta("-00:00:10") == timedelta(seconds=-10)
    with pytest.raises(ValueError):
        to_timedelta("soon")


def test_table_converters():
    assert CONVERTERS[str](b"abc") == "abc"
    assert CONVERTERS[str](Currency.USD) == "USD"
    assert CONVERTERS[bytes]("é") == "é".encode()
    assert CONVERTERS[date]("2024-02-29") == date(2024, 2, 29)
    assert CONVERTERS[date]("2024-02-29T10:00:00") == date(2024, 2, 29)
    assert CONVERTERS[datetime](date(2024, 1, 2)) == datetime(2024, 1, 2)
    assert CONVERTERS[time]("10:15") == time(10, 15)
    assert CONVERTERS[uuid.UUID](str(uuid.UUID(int=7))) == uuid.UUID(int=7)
    assert CONVERTERS[uuid.UUID](7) == uuid.UUID(int=7)
    assert CONVERTERS[complex]("1+2j") == 1 + 2j
    assert CONVERTERS[float]("2.5") == 2.5


def test_enum_converter():
    currency = enum_converter(Currency)
    assert currency("eur") is Currency.EUR
    assert currency("USD") is Currency.USD
    assert currency(Currency.EUR) is Currency.EUR

    priority = enum_converter(Priority)
    assert priority(2) is Priority.HIGH
    assert priority("2") is Priority.HIGH
    assert priority("low") is Priority.LOW
    assert priority(1.0) is Priority.LOW
    with pytest.raises(ValueError):
        priority(7)
