# tests/test_compiler.py
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

import pytest

from factory_kernel.construct.compiler import InvokerCompiler, parameter_converter
from factory_kernel.construct.signatures import ConstructorInfo, constructors, describe_method
from factory_kernel.errors import ConversionError
from tests.samples import (
    Circle,
    Currency,
    Discount,
    Greeter,
    Invoice,
    Money,
    Percent,
    Priority,
    Shape,
    Square,
)


@pytest.fixture
def compiler():
    return InvokerCompiler()


def test_null_guard():
    assert parameter_converter(int)(None) == 0
    assert parameter_converter(Decimal)(None) == Decimal(0)
    assert parameter_converter(Priority)(None) is Priority.NONE
    assert parameter_converter(Optional[int])(None) is None
    assert parameter_converter(str)(None) is None
    assert parameter_converter(Money)(None) is None


def test_pass_through_and_conversion():
    marker = object()
    assert parameter_converter(Any)(marker) is marker
    assert parameter_converter(object)(marker) is marker
    assert parameter_converter(int)("12") == 12
    assert parameter_converter(Optional[int])("12") == 12
    assert parameter_converter(str)(12) == "12"
    assert parameter_converter(Currency)("usd") is Currency.USD
    assert parameter_converter(date)(datetime(2024, 5, 1, 8)) == date(2024, 5, 1)
    assert parameter_converter(Percent)("15%").value == 15.0


def test_cast_check_for_other_classes():
    money = Money(1, Currency.EUR)
    assert parameter_converter(Money)(money) is money
    with pytest.raises(TypeError):
        parameter_converter(Money)("1 EUR")
    with pytest.raises(TypeError):
        parameter_converter(list[int])("not a list")
    assert parameter_converter(list[int])([1]) == [1]


def test_compiled_constructor_converts_arguments(compiler):
    invoker = compiler.compile_constructor(constructors(Money)[0])
    money = invoker(("1250", "eur"))
    assert money == Money(1250, Currency.EUR)
    assert isinstance(money.amount, int)


def test_compiled_constructor_checks_arity(compiler):
    invoker = compiler.compile_constructor(constructors(Money)[0], 2)
    with pytest.raises(TypeError):
        invoker((1,))
    loose = compiler.compile_constructor(constructors(Invoice)[0])
    assert loose((7, date(2024, 1, 1))).total == Decimal(0)
    with pytest.raises(TypeError):
        loose((7,))


def test_conversion_failure_is_wrapped(compiler):
    invoker = compiler.compile_constructor(constructors(Money)[0])
    with pytest.raises(ConversionError) as exc_info:
        invoker(("lots", Currency.EUR))
    assert exc_info.value.parameter == "amount"
    assert isinstance(exc_info.value.__cause__, ValueError)


def test_from_object_hook(compiler):
    invoker = compiler.compile_constructor(constructors(Discount)[0])
    assert invoker(("20%",)).rate.value == 20.0


def test_copy_constructor_returns_the_argument(compiler):
    money = Money(5, Currency.USD)
    assert compiler.compile_constructor(ConstructorInfo.copy_of(Money))((money,)) is money


def test_compile_default(compiler):
    assert compiler.compile_default(int, ())() == 0
    assert compiler.compile_default(Priority, ())() is Priority.NONE
    assert compiler.compile_default(Optional[Money], ())() is None
    assert compiler.compile_default(Square, constructors(Square))().side == 1.0
    assert compiler.compile_default(Money, constructors(Money)) is None
    assert compiler.compile_default(Currency, ()) is None
    assert compiler.compile_default(Shape, ()) is None
    assert compiler.compile_default(Greeter, ()) is None


def test_compile_method(compiler):
    money = Money(10, Currency.EUR)
    add = compiler.compile_method(describe_method(Money, "add"))
    assert add(money, ("5",)) == Money(15, Currency.EUR)
    with pytest.raises(TypeError):
        add(None, (5,))

    create = compiler.compile_method(describe_method(Circle, "create"))
    assert create(None, (2,)).radius == 2.0


def test_compile_member_rejects_non_descriptors(compiler):
    with pytest.raises(TypeError):
        compiler.compile_member(Money)
    with pytest.raises(TypeError):
        compiler.compile_member("Money")
