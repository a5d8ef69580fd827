"""Numeric fields the escape-time kernel can run over.

A field bundles the handful of operations the Mandelbrot iteration needs so the
kernel is written once and instantiated per representation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from fractions import Fraction
from typing import Dict, Generic, TypeVar

import numpy as np

from .doubledouble import DoubleDouble

T = TypeVar("T")


class NumericField(ABC, Generic[T]):
    """Capability set {zero, one, from_int, from_rational, +, -, *, >}."""

    name: str

    @property
    def zero(self) -> T:
        return self.from_int(0)

    @property
    def one(self) -> T:
        return self.from_int(1)

    @abstractmethod
    def from_int(self, value: int) -> T:
        ...

    @abstractmethod
    def from_rational(self, value: Fraction) -> T:
        ...

    @abstractmethod
    def add(self, a: T, b: T) -> T:
        ...

    @abstractmethod
    def subtract(self, a: T, b: T) -> T:
        ...

    @abstractmethod
    def multiply(self, a: T, b: T) -> T:
        ...

    @abstractmethod
    def greater_than(self, a: T, b: T) -> bool:
        ...

    def twice(self, a: T) -> T:
        return self.add(a, a)

    def to_float(self, a: T) -> float:
        return float(a)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Float32Field(NumericField[np.float32]):
    """Native single precision; every operation rounds to ``float32``."""

    name = "float32"

    def from_int(self, value: int) -> np.float32:
        return np.float32(value)

    def from_rational(self, value: Fraction) -> np.float32:
        return np.float32(float(value))

    def add(self, a: np.float32, b: np.float32) -> np.float32:
        return a + b

    def subtract(self, a: np.float32, b: np.float32) -> np.float32:
        return a - b

    def multiply(self, a: np.float32, b: np.float32) -> np.float32:
        return a * b

    def greater_than(self, a: np.float32, b: np.float32) -> bool:
        return bool(a > b)


class Float64Field(NumericField[float]):
    """Native double precision (Python ``float``)."""

    name = "float64"

    def from_int(self, value: int) -> float:
        return float(value)

    def from_rational(self, value: Fraction) -> float:
        return float(value)

    def add(self, a: float, b: float) -> float:
        return a + b

    def subtract(self, a: float, b: float) -> float:
        return a - b

    def multiply(self, a: float, b: float) -> float:
        return a * b

    def greater_than(self, a: float, b: float) -> bool:
        return a > b


class DoubleDoubleField(NumericField[DoubleDouble]):
    name = "doubledouble"

    def from_int(self, value: int) -> DoubleDouble:
        return DoubleDouble.from_int(value)

    def from_rational(self, value: Fraction) -> DoubleDouble:
        return DoubleDouble.from_fraction(value)

    def add(self, a: DoubleDouble, b: DoubleDouble) -> DoubleDouble:
        return a + b

    def subtract(self, a: DoubleDouble, b: DoubleDouble) -> DoubleDouble:
        return a - b

    def multiply(self, a: DoubleDouble, b: DoubleDouble) -> DoubleDouble:
        return a * b

    def greater_than(self, a: DoubleDouble, b: DoubleDouble) -> bool:
        return a > b


class RationalField(NumericField[Fraction]):
    """Exact arithmetic. Denominators grow quickly, keep iteration counts low."""

    name = "rational"

    def from_int(self, value: int) -> Fraction:
        return Fraction(value)

    def from_rational(self, value: Fraction) -> Fraction:
        return Fraction(value)

    def add(self, a: Fraction, b: Fraction) -> Fraction:
        return a + b

    def subtract(self, a: Fraction, b: Fraction) -> Fraction:
        return a - b

    def multiply(self, a: Fraction, b: Fraction) -> Fraction:
        return a * b

    def greater_than(self, a: Fraction, b: Fraction) -> bool:
        return a > b


FIELDS: Dict[str, NumericField] = {
    field.name: field
    for field in (Float32Field(), Float64Field(), DoubleDoubleField(), RationalField())
}


def get_field(name: str) -> NumericField:
    """Look up a field by name (``float32``, ``float64``, ``doubledouble``, ``rational``)."""

    try:
        return FIELDS[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown numeric field '{name}'. Valid choices: {', '.join(sorted(FIELDS))}.") from None
