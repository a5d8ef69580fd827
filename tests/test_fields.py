"""NumericField implementations and the field registry."""

from fractions import Fraction

import numpy as np
import pytest

from mandel.doubledouble import DoubleDouble
from mandel.fields import (
    FIELDS,
    DoubleDoubleField,
    Float32Field,
    Float64Field,
    NumericField,
    RationalField,
    get_field,
)


class TestRegistry:
    """get_field() and FIELDS."""

    def test_names(self) -> None:
        assert sorted(FIELDS) == ["doubledouble", "float32", "float64", "rational"]
        for name, field in FIELDS.items():
            assert field.name == name
            assert isinstance(field, NumericField)

    def test_lookup_is_case_insensitive(self) -> None:
        assert isinstance(get_field("Float64"), Float64Field)
        assert isinstance(get_field("DOUBLEDOUBLE"), DoubleDoubleField)

    def test_unknown_field(self) -> None:
        with pytest.raises(ValueError, match="Valid choices"):
            get_field("quad")

    def test_repr(self) -> None:
        assert repr(RationalField()) == "RationalField()"


@pytest.mark.parametrize("field", list(FIELDS.values()), ids=list(FIELDS))
class TestContract:
    """Every field honours the same small capability set."""

    def test_zero_and_one(self, field: NumericField) -> None:
        assert field.to_float(field.zero) == 0.0
        assert field.to_float(field.one) == 1.0
        assert field.to_float(field.add(field.one, field.one)) == 2.0

    def test_arithmetic(self, field: NumericField) -> None:
        three = field.from_int(3)
        half = field.from_rational(Fraction(1, 2))
        assert field.to_float(field.multiply(three, half)) == 1.5
        assert field.to_float(field.subtract(half, three)) == -2.5
        assert field.to_float(field.twice(three)) == 6.0

    def test_greater_than(self, field: NumericField) -> None:
        four = field.from_int(4)
        assert field.greater_than(field.from_int(5), four) is True
        assert field.greater_than(four, four) is False
        assert field.greater_than(field.from_rational(Fraction(7, 2)), four) is False


class TestPrecision:
    """Each representation rounds exactly as its name says."""

    def test_float32_rounds_every_operation(self) -> None:
        field = Float32Field()
        third = field.from_rational(Fraction(1, 3))
        assert isinstance(third, np.float32)
        assert third == np.float32(1 / 3)
        assert isinstance(field.add(third, third), np.float32)
        # 2^24 + 1 is not representable in single precision
        assert field.add(field.from_int(2 ** 24), field.one) == field.from_int(2 ** 24)

    def test_float64(self) -> None:
        field = Float64Field()
        assert field.add(field.from_int(2 ** 53), field.one) == 2.0 ** 53
        assert field.from_rational(Fraction(1, 10)) == 0.1

    def test_doubledouble_keeps_extra_bits(self) -> None:
        field = DoubleDoubleField()
        total = field.add(field.from_int(2 ** 53), field.one)
        assert isinstance(total, DoubleDouble)
        assert total.to_fraction() == 2 ** 53 + 1

    def test_rational_is_exact(self) -> None:
        field = RationalField()
        tenth = field.from_rational(Fraction(1, 10))
        total = field.zero
        for _ in range(10):
            total = field.add(total, tenth)
        assert total == field.one
