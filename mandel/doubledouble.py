"""Double-double extended precision numbers.

A :class:`DoubleDouble` represents a real number as the unevaluated sum of two
``float`` values ``hi + lo`` with ``|lo| <= 0.5 * ulp(hi)``, which gives about
106 significant bits (roughly 32 decimal digits). The arithmetic relies on
error-free transformations (two-sum and Dekker's split product) and therefore
on IEEE-754 double rounding of every primitive operation, which is what Python
floats and numpy ``float64`` arrays provide.

The algorithms follow Martin Davis' ``DoubleDouble`` (JTS), itself based on
work by Knuth, Kahan, Dekker, Linnainmaa, Priest, Briggs and Bailey et al.

Two types are exposed:

* :class:`DoubleDouble` is an immutable value type.
* :class:`DoubleDoubleBuilder` is a mutable accumulator for chained operations.
  :meth:`DoubleDoubleBuilder.finalize` hands its value over as a
  :class:`DoubleDouble`; the builder rejects every later mutation.

The ``dd_*`` primitives operate on ``(hi, lo)`` components and contain no
branches, so they work unchanged on numpy arrays.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from fractions import Fraction
from numbers import Real
from typing import Any, Optional

SPLIT = 134217729.0  # 2^27 + 1
EPS = 1.23259516440783e-32  # 2^-106
MAX_PRINT_DIGITS = 32

# scalar operands outside this range are scaled by a power of two first
_LARGE = 2.0 ** 480
_SMALL = 2.0 ** -480

_EXPONENT = re.compile(r"[+-]?[0-9]+")
_DIGITS = "0123456789"


class DoubleDoubleParseError(ValueError):
    """Raised when a string is not a valid double-double literal."""

    def __init__(self, message: str, text: str, fragment: str, position: int) -> None:
        super().__init__(message)
        self.text = text
        self.fragment = fragment
        self.position = position


class BuilderFinalizedError(RuntimeError):
    """Raised when a finalized :class:`DoubleDoubleBuilder` is used again."""


# ---------------------------------------------------------------------------
# Error-free primitives on (hi, lo) components
# ---------------------------------------------------------------------------


def dd_add(hi, lo, yhi, ylo):
    """Return ``(hi, lo) + (yhi, ylo)`` as a normalized pair."""

    S = hi + yhi
    T = lo + ylo
    e = S - hi
    f = T - lo
    s = S - e
    t = T - f
    s = (yhi - e) + (hi - s)
    t = (ylo - f) + (lo - t)
    e = s + T
    H = S + e
    h = e + (S - H)
    e = t + h
    zhi = H + e
    zlo = e + (H - zhi)
    return zhi, zlo


def dd_sub(hi, lo, yhi, ylo):
    """Return ``(hi, lo) - (yhi, ylo)`` as a normalized pair."""

    return dd_add(hi, lo, -yhi, -ylo)


def dd_add_scalar(hi, lo, y):
    """Return ``(hi, lo) + y`` for a native ``y``."""

    S = hi + y
    e = S - hi
    s = S - e
    s = (y - e) + (hi - s)
    e = s + lo
    H = S + e
    e = e + (S - H)
    zhi = H + e
    zlo = e + (H - zhi)
    return zhi, zlo


def dd_mul(hi, lo, yhi, ylo):
    """Return ``(hi, lo) * (yhi, ylo)`` using Dekker's split product."""

    C = SPLIT * hi
    hx = C - hi
    c = SPLIT * yhi
    hx = C - hx
    tx = hi - hx
    hy = c - yhi
    C = hi * yhi
    hy = c - hy
    ty = yhi - hy
    c = hx * hy - C + hx * ty + tx * hy + tx * ty + (hi * ylo + lo * yhi)
    zhi = C + c
    zlo = c + (C - zhi)
    return zhi, zlo


def dd_mul_scalar(hi, lo, y):
    """Return ``(hi, lo) * y`` for a native ``y``."""

    C = SPLIT * hi
    hx = C - hi
    c = SPLIT * y
    hx = C - hx
    tx = hi - hx
    hy = c - y
    C = hi * y
    hy = c - hy
    ty = y - hy
    c = hx * hy - C + hx * ty + tx * hy + tx * ty + lo * y
    zhi = C + c
    zlo = c + (C - zhi)
    return zhi, zlo


def dd_div(hi, lo, yhi, ylo):
    """Return ``(hi, lo) / (yhi, ylo)``: native quotient plus one correction."""

    C = hi / yhi
    c = SPLIT * C
    hc = c - C
    u = SPLIT * yhi
    hc = c - hc
    tc = C - hc
    hy = u - yhi
    U = C * yhi
    hy = u - hy
    ty = yhi - hy
    u = hc * hy - U + hc * ty + tc * hy + tc * ty
    c = (hi - U - u + lo - C * ylo) / yhi
    zhi = C + c
    zlo = (C - zhi) + c
    return zhi, zlo


def dd_div_scalar(hi, lo, y):
    """Return ``(hi, lo) / y`` for a native ``y``."""

    C = hi / y
    c = SPLIT * C
    hc = c - C
    u = SPLIT * y
    hc = c - hc
    tc = C - hc
    hy = u - y
    U = C * y
    hy = u - hy
    ty = y - hy
    u = hc * hy - U + hc * ty + tc * hy + tc * ty
    c = (hi - U - u + lo) / y
    zhi = C + c
    zlo = (C - zhi) + c
    return zhi, zlo


def dd_reciprocal(hi, lo):
    """Return ``1 / (hi, lo)``."""

    C = 1.0 / hi
    c = SPLIT * C
    hc = c - C
    u = SPLIT * hi
    hc = c - hc
    tc = C - hc
    hy = u - hi
    U = C * hi
    hy = u - hy
    ty = hi - hy
    u = hc * hy - U + hc * ty + tc * hy + tc * ty
    c = (1.0 - U - u - C * lo) / hi
    zhi = C + c
    zlo = (C - zhi) + c
    return zhi, zlo


def dd_gt(hi, lo, yhi, ylo):
    """Lexicographic ``(hi, lo) > (yhi, ylo)``; False when either is NaN."""

    return (hi > yhi) | ((hi == yhi) & (lo > ylo))


# ---------------------------------------------------------------------------
# Scalar helpers (Python floats only)
# ---------------------------------------------------------------------------


def _ieee_quotient(a: float, b: float) -> float:
    # Python raises on float division by zero; IEEE-754 does not.
    if b != 0.0:
        return a / b
    if a == 0.0 or math.isnan(a):
        return math.nan
    return math.copysign(math.inf, a) * math.copysign(1.0, b)


def _floor(value: float) -> float:
    return float(math.floor(value)) if math.isfinite(value) else value


def _ceil(value: float) -> float:
    return float(math.ceil(value)) if math.isfinite(value) else value


def _renormalize(hi: float, lo: float) -> tuple[float, float]:
    s = hi + lo
    if not math.isfinite(s):
        return s, 0.0
    return s, lo - (s - hi)


def _int_pair(value: int) -> tuple[float, float]:
    hi = float(value)
    return hi, float(value - int(hi))


def _fraction_pair(value: Fraction) -> tuple[float, float]:
    hi = float(value)
    if not math.isfinite(hi):
        return hi, 0.0
    return hi, float(value - Fraction(hi))


def _operand(value: Any) -> Optional[tuple[float, Optional[float]]]:
    """Split an operand into ``(hi, lo)``; ``lo`` is None for native scalars."""

    if isinstance(value, DoubleDouble):
        return value.hi, value.lo
    if isinstance(value, DoubleDoubleBuilder):
        return value.hi, value.lo
    if isinstance(value, float):
        return value, None
    if isinstance(value, int):
        as_float = float(value)
        if as_float == value:
            return as_float, None
        return _int_pair(value)
    if isinstance(value, Fraction):
        return _fraction_pair(value)
    if isinstance(value, Real):
        return float(value), None
    return None


def _moderate(value: float) -> bool:
    # splits and products of such values cannot overflow
    return value == 0.0 or _SMALL < abs(value) < _LARGE


def _scaled(hi: float, lo: float, exponent: int) -> tuple[float, float]:
    """``(hi, lo) * 2**exponent``; exact unless the result leaves the normal range."""

    try:
        return math.ldexp(hi, exponent), math.ldexp(lo, exponent)
    except OverflowError:
        return math.copysign(math.inf, hi), 0.0


def _sum(hi, lo, yhi, ylo):
    if ylo is None:
        zhi, zlo = dd_add_scalar(hi, lo, yhi)
    else:
        zhi, zlo = dd_add(hi, lo, yhi, ylo)
    if not math.isfinite(zhi):
        return hi + yhi, 0.0
    return zhi, zlo


def _product(hi, lo, yhi, ylo):
    if not (_moderate(hi) and _moderate(yhi)):
        if not (math.isfinite(hi) and math.isfinite(yhi)):
            return hi * yhi, 0.0
        # bring both operands near 1 so the split cannot overflow
        ex = math.frexp(hi)[1]
        ey = math.frexp(yhi)[1]
        hi, lo = _scaled(hi, lo, -ex)
        yhi = math.ldexp(yhi, -ey)
        if ylo is not None:
            ylo = math.ldexp(ylo, -ey)
        return _scaled(*_product(hi, lo, yhi, ylo), ex + ey)
    if ylo is None:
        return dd_mul_scalar(hi, lo, yhi)
    return dd_mul(hi, lo, yhi, ylo)


def _quotient(hi, lo, yhi, ylo):
    if yhi == 0.0:
        return _ieee_quotient(hi, yhi), 0.0
    if not (_moderate(hi) and _moderate(yhi)):
        if not (math.isfinite(hi) and math.isfinite(yhi)):
            return hi / yhi, 0.0
        ex = math.frexp(hi)[1]
        ey = math.frexp(yhi)[1]
        hi, lo = _scaled(hi, lo, -ex)
        yhi = math.ldexp(yhi, -ey)
        if ylo is not None:
            ylo = math.ldexp(ylo, -ey)
        return _scaled(*_quotient(hi, lo, yhi, ylo), ex - ey)
    if ylo is None:
        return dd_div_scalar(hi, lo, yhi)
    return dd_div(hi, lo, yhi, ylo)


def _inverse(hi, lo):
    if hi == 0.0:
        return _ieee_quotient(1.0, hi), 0.0
    if not _moderate(hi):
        if not math.isfinite(hi):
            return 1.0 / hi, 0.0
        e = math.frexp(hi)[1]
        return _scaled(*dd_reciprocal(*_scaled(hi, lo, -e)), -e)
    return dd_reciprocal(hi, lo)


def _floor_pair(hi, lo):
    fhi = _floor(hi)
    flo = 0.0
    if fhi == hi:
        # the fractional part lives entirely in the low word
        flo = _floor(lo)
    return _renormalize(fhi, flo)


def _ceil_pair(hi, lo):
    fhi = _ceil(hi)
    flo = 0.0
    if fhi == hi:
        flo = _ceil(lo)
    return _renormalize(fhi, flo)


def _power_pair(hi, lo, exponent: int):
    if exponent == 0:
        return 1.0, 0.0
    if exponent == 1:
        return hi, lo
    if exponent == -1:
        return _inverse(hi, lo)
    base = (hi, lo)
    result = (1.0, 0.0)
    n = abs(exponent)
    while n > 0:
        if n % 2 == 1:
            result = _product(*result, *base)
        n //= 2
        if n > 0:
            base = _product(*base, *base)
    if exponent < 0:
        return _inverse(*result)
    return result


def _magnitude(value: float) -> int:
    """Exponent of the greatest power of ten not exceeding ``|value|``."""

    value = abs(value)
    mag = math.floor(math.log10(value))
    # log10 is inexact; fix an off-by-one
    if 10.0 ** mag * 10 <= value:
        mag += 1
    return mag


# ---------------------------------------------------------------------------
# Immutable value type
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class DoubleDouble:
    """Immutable double-double value ``hi + lo``."""

    hi: float
    lo: float = 0.0

    def __post_init__(self) -> None:
        hi = float(self.hi)
        lo = float(self.lo)
        if math.isfinite(hi) and math.isfinite(lo) and abs(lo) > 0.5 * math.ulp(hi):
            # two-sum; the words may arrive in either order
            s = hi + lo
            b = s - hi
            hi, lo = s, (hi - (s - b)) + (lo - b) if math.isfinite(s) else 0.0
        object.__setattr__(self, "hi", hi)
        object.__setattr__(self, "lo", lo)

    # -- construction --------------------------------------------------------

    @classmethod
    def from_float(cls, value: float) -> DoubleDouble:
        return cls(float(value), 0.0)

    @classmethod
    def from_int(cls, value: int) -> DoubleDouble:
        """Exact up to 106 bits; raises ``OverflowError`` past the float range."""

        return cls(*_int_pair(int(value)))

    @classmethod
    def from_fraction(cls, value: Fraction) -> DoubleDouble:
        """Round an exact rational to the nearest double-double."""

        return cls(*_fraction_pair(Fraction(value)))

    @classmethod
    def parse(cls, text: str) -> DoubleDouble:
        return parse(text)

    def builder(self) -> DoubleDoubleBuilder:
        """Return a fresh mutable accumulator holding this value."""

        return DoubleDoubleBuilder(self.hi, self.lo)

    # -- predicates ----------------------------------------------------------

    @property
    def is_nan(self) -> bool:
        return math.isnan(self.hi)

    @property
    def is_zero(self) -> bool:
        return self.hi == 0.0 and self.lo == 0.0

    @property
    def is_negative(self) -> bool:
        return self.hi < 0.0 or (self.hi == 0.0 and self.lo < 0.0)

    @property
    def is_positive(self) -> bool:
        return self.hi > 0.0 or (self.hi == 0.0 and self.lo > 0.0)

    def signum(self) -> int:
        """Return 1, -1 or 0 (also 0 for NaN)."""

        if self.is_positive:
            return 1
        if self.is_negative:
            return -1
        return 0

    # -- arithmetic ----------------------------------------------------------

    def __add__(self, other: Any) -> DoubleDouble:
        pair = _operand(other)
        if pair is None:
            return NotImplemented
        return DoubleDouble(*_sum(self.hi, self.lo, *pair))

    __radd__ = __add__

    def __sub__(self, other: Any) -> DoubleDouble:
        pair = _operand(other)
        if pair is None:
            return NotImplemented
        yhi, ylo = pair
        return DoubleDouble(*_sum(self.hi, self.lo, -yhi, None if ylo is None else -ylo))

    def __rsub__(self, other: Any) -> DoubleDouble:
        pair = _operand(other)
        if pair is None:
            return NotImplemented
        yhi, ylo = pair
        return DoubleDouble(*_sum(-self.hi, -self.lo, yhi, ylo))

    def __mul__(self, other: Any) -> DoubleDouble:
        pair = _operand(other)
        if pair is None:
            return NotImplemented
        return DoubleDouble(*_product(self.hi, self.lo, *pair))

    __rmul__ = __mul__

    def __truediv__(self, other: Any) -> DoubleDouble:
        pair = _operand(other)
        if pair is None:
            return NotImplemented
        return DoubleDouble(*_quotient(self.hi, self.lo, *pair))

    def __rtruediv__(self, other: Any) -> DoubleDouble:
        pair = _operand(other)
        if pair is None:
            return NotImplemented
        yhi, ylo = pair
        return DoubleDouble(*_quotient(yhi, 0.0 if ylo is None else ylo, self.hi, self.lo))

    def __pow__(self, exponent: Any) -> DoubleDouble:
        if not isinstance(exponent, int):
            return NotImplemented
        return self.power(exponent)

    def __neg__(self) -> DoubleDouble:
        return DoubleDouble(-self.hi, -self.lo)

    def __pos__(self) -> DoubleDouble:
        return self

    def __abs__(self) -> DoubleDouble:
        return -self if self.is_negative else self

    def reciprocal(self) -> DoubleDouble:
        return DoubleDouble(*_inverse(self.hi, self.lo))

    def square(self) -> DoubleDouble:
        return DoubleDouble(*_product(self.hi, self.lo, self.hi, self.lo))

    def power(self, exponent: int) -> DoubleDouble:
        """Integer power by binary exponentiation; ``x ** 0`` is exactly one."""

        if self.is_nan:
            return NAN
        return DoubleDouble(*_power_pair(self.hi, self.lo, exponent))

    def floor(self) -> DoubleDouble:
        if self.is_nan:
            return NAN
        return DoubleDouble(*_floor_pair(self.hi, self.lo))

    def ceil(self) -> DoubleDouble:
        if self.is_nan:
            return NAN
        return DoubleDouble(*_ceil_pair(self.hi, self.lo))

    def truncate(self) -> DoubleDouble:
        """Round toward zero."""

        if self.is_nan:
            return NAN
        return self.floor() if self.is_positive else self.ceil()

    def rint(self) -> DoubleDouble:
        """Round to the nearest integer as ``floor(x + 0.5)``."""

        if self.is_nan:
            return NAN
        return self.builder().add(0.5).floor().finalize()

    # -- comparison ----------------------------------------------------------

    def __eq__(self, other: Any) -> bool:
        pair = _operand(other)
        if pair is None:
            return NotImplemented
        yhi, ylo = pair
        return self.hi == yhi and self.lo == (0.0 if ylo is None else ylo)

    def __hash__(self) -> int:
        # equal Fractions and ints must hash alike
        if self.lo == 0.0 or not (math.isfinite(self.hi) and math.isfinite(self.lo)):
            return hash(self.hi)
        return hash(self.to_fraction())

    def _pair(self, other: Any) -> Optional[tuple[float, float]]:
        pair = _operand(other)
        if pair is None:
            return None
        yhi, ylo = pair
        return yhi, 0.0 if ylo is None else ylo

    def __gt__(self, other: Any) -> bool:
        pair = self._pair(other)
        if pair is None:
            return NotImplemented
        return bool(dd_gt(self.hi, self.lo, *pair))

    def __lt__(self, other: Any) -> bool:
        pair = self._pair(other)
        if pair is None:
            return NotImplemented
        yhi, ylo = pair
        return bool(dd_gt(yhi, ylo, self.hi, self.lo))

    def __ge__(self, other: Any) -> bool:
        pair = self._pair(other)
        if pair is None:
            return NotImplemented
        yhi, ylo = pair
        return self.hi > yhi or (self.hi == yhi and self.lo >= ylo)

    def __le__(self, other: Any) -> bool:
        pair = self._pair(other)
        if pair is None:
            return NotImplemented
        yhi, ylo = pair
        return self.hi < yhi or (self.hi == yhi and self.lo <= ylo)

    # -- conversion ----------------------------------------------------------

    def __float__(self) -> float:
        return self.hi + self.lo

    def __int__(self) -> int:
        truncated = self.truncate()
        return int(truncated.hi) + int(truncated.lo)

    def __floor__(self) -> int:
        return int(self.floor())

    def __ceil__(self) -> int:
        return int(self.ceil())

    def __trunc__(self) -> int:
        return int(self)

    def __round__(self, ndigits: Optional[int] = None) -> Any:
        if ndigits is None:
            return int(self.rint())
        if self.is_nan:
            return NAN
        scale = TEN.power(ndigits)
        return (self * scale).rint() / scale

    def __bool__(self) -> bool:
        return not self.is_zero

    def to_fraction(self) -> Fraction:
        """Exact rational value of ``hi + lo``."""

        return Fraction(self.hi) + Fraction(self.lo)

    # -- formatting ----------------------------------------------------------

    def __repr__(self) -> str:
        return f"DoubleDouble({self.hi!r}, {self.lo!r})"

    def __str__(self) -> str:
        special = self._special_string()
        if special is not None:
            return special
        mag = _magnitude(self.hi)
        if -3 <= mag <= 20:
            return self.to_standard_notation()
        return self.to_sci_notation()

    def _special_string(self) -> Optional[str]:
        if self.is_zero:
            return "0.0"
        if self.is_nan:
            return "NaN"
        if math.isinf(self.hi):
            return "inf" if self.hi > 0 else "-inf"
        return None

    def to_standard_notation(self) -> str:
        special = self._special_string()
        if special is not None:
            return special
        digits, mag = _significant_digits(self, insert_point=True)
        point = mag + 1
        number = digits
        if digits[0] == ".":
            number = "0" + digits
        elif point < 0:
            number = "0." + "0" * -point + digits
        elif "." not in digits:
            # fewer significant digits than the integer part has places
            number = digits + "0" * (point - len(digits)) + ".0"
        elif number.endswith("."):
            number += "0"
        return "-" + number if self.is_negative else number

    def to_sci_notation(self) -> str:
        if self.is_zero:
            return "0.0E0"
        special = self._special_string()
        if special is not None:
            return special
        digits, mag = _significant_digits(self, insert_point=False)
        number = f"{digits[0]}.{digits[1:] or '0'}E{mag}"
        return "-" + number if self.is_negative else number


def _significant_digits(value: DoubleDouble, insert_point: bool) -> tuple[str, int]:
    """Extract up to MAX_PRINT_DIGITS decimal digits of ``|value|``.

    Returns the digit string, optionally with a decimal point inserted, and the
    decimal magnitude of the value.
    """

    y = abs(value).builder()
    mag = _magnitude(y.hi)
    if abs(mag) < 280:
        y.divide(TEN.power(mag))
    else:
        # 10**mag is out of reach here; divide out a power of two first
        shift = math.frexp(y.hi)[1]
        y.set(DoubleDouble(*_scaled(y.hi, y.lo, -shift)))
        y.multiply(_decimal_scale(-mag, shift))
    # the scaled value must satisfy 1 <= y < 10
    if y >= TEN:
        y.divide(10.0)
        mag += 1
    elif y < ONE:
        y.multiply(10.0)
        mag -= 1

    point = mag + 1
    limit = MAX_PRINT_DIGITS - 1
    chars = []
    i = 0
    while i <= limit:
        if insert_point and i == point:
            chars.append(".")
        if not math.isfinite(y.hi):
            break
        digit = int(y.hi)
        if digit < 0:
            # negative remainders only come from tiny low words
            break
        rebias = digit > 9
        chars.append("9" if rebias else _DIGITS[digit])
        y.subtract(float(digit))
        y.multiply(10.0)
        if rebias:
            y.add(10.0)
        if y.hi == 0.0:
            break
        remaining = _magnitude(y.hi)
        if remaining < 0 and -remaining >= limit - i:
            break
        i += 1
    return "".join(chars), mag


def _decimal_scale(exponent: int, shift: int) -> DoubleDouble:
    """``10**exponent * 2**shift`` when the product is near one.

    Either factor alone may overflow or underflow, so each half of the power
    of ten is paired with half of the power of two.
    """

    half = exponent // 2
    twos = shift // 2
    first = _scaled(*_power_pair(10.0, 0.0, half), twos)
    second = _scaled(*_power_pair(10.0, 0.0, exponent - half), shift - twos)
    return DoubleDouble(*_product(*first, *second))


# ---------------------------------------------------------------------------
# Mutable accumulator
# ---------------------------------------------------------------------------


class DoubleDoubleBuilder:
    """In-place double-double accumulator.

    Every mutator returns the builder itself so operations chain. A builder is
    scratch space for a single expression and must not be shared between
    threads. :meth:`finalize` transfers the value to an immutable
    :class:`DoubleDouble`; afterwards every mutator raises
    :class:`BuilderFinalizedError`.
    """

    __slots__ = ("_hi", "_lo", "_finalized")

    def __init__(self, value: Any = 0.0, lo: float = 0.0) -> None:
        if isinstance(value, (DoubleDouble, DoubleDoubleBuilder)):
            self._hi, self._lo = value.hi, value.lo
        else:
            self._hi, self._lo = float(value), float(lo)
        self._finalized = False

    @property
    def hi(self) -> float:
        return self._hi

    @property
    def lo(self) -> float:
        return self._lo

    @property
    def finalized(self) -> bool:
        return self._finalized

    def __repr__(self) -> str:
        state = "finalized" if self._finalized else "open"
        return f"DoubleDoubleBuilder({self._hi!r}, {self._lo!r}, {state})"

    def _store(self, pair: tuple[float, float]) -> DoubleDoubleBuilder:
        if self._finalized:
            raise BuilderFinalizedError("cannot mutate a finalized DoubleDoubleBuilder")
        self._hi, self._lo = pair
        return self

    def _operand(self, value: Any) -> tuple[float, Optional[float]]:
        pair = _operand(value)
        if pair is None:
            raise TypeError(f"unsupported operand type: {type(value).__name__}")
        return pair

    def set(self, value: Any) -> DoubleDoubleBuilder:
        yhi, ylo = self._operand(value)
        return self._store((yhi, 0.0 if ylo is None else ylo))

    def add(self, value: Any) -> DoubleDoubleBuilder:
        return self._store(_sum(self._hi, self._lo, *self._operand(value)))

    def subtract(self, value: Any) -> DoubleDoubleBuilder:
        yhi, ylo = self._operand(value)
        return self._store(_sum(self._hi, self._lo, -yhi, None if ylo is None else -ylo))

    def multiply(self, value: Any) -> DoubleDoubleBuilder:
        return self._store(_product(self._hi, self._lo, *self._operand(value)))

    def divide(self, value: Any) -> DoubleDoubleBuilder:
        return self._store(_quotient(self._hi, self._lo, *self._operand(value)))

    def reciprocal(self) -> DoubleDoubleBuilder:
        return self._store(_inverse(self._hi, self._lo))

    def negate(self) -> DoubleDoubleBuilder:
        return self._store((-self._hi, -self._lo))

    def square(self) -> DoubleDoubleBuilder:
        return self._store(_product(self._hi, self._lo, self._hi, self._lo))

    def power(self, exponent: int) -> DoubleDoubleBuilder:
        if math.isnan(self._hi):
            return self._store((self._hi, self._lo))
        return self._store(_power_pair(self._hi, self._lo, exponent))

    def floor(self) -> DoubleDoubleBuilder:
        if math.isnan(self._hi):
            return self._store((self._hi, self._lo))
        return self._store(_floor_pair(self._hi, self._lo))

    def ceil(self) -> DoubleDoubleBuilder:
        if math.isnan(self._hi):
            return self._store((self._hi, self._lo))
        return self._store(_ceil_pair(self._hi, self._lo))

    def __iadd__(self, value: Any) -> DoubleDoubleBuilder:
        return self.add(value)

    def __isub__(self, value: Any) -> DoubleDoubleBuilder:
        return self.subtract(value)

    def __imul__(self, value: Any) -> DoubleDoubleBuilder:
        return self.multiply(value)

    def __itruediv__(self, value: Any) -> DoubleDoubleBuilder:
        return self.divide(value)

    def __ge__(self, other: Any) -> bool:
        pair = _operand(other)
        if pair is None:
            return NotImplemented
        yhi, ylo = pair
        ylo = 0.0 if ylo is None else ylo
        return self._hi > yhi or (self._hi == yhi and self._lo >= ylo)

    def __lt__(self, other: Any) -> bool:
        pair = _operand(other)
        if pair is None:
            return NotImplemented
        yhi, ylo = pair
        return bool(dd_gt(yhi, 0.0 if ylo is None else ylo, self._hi, self._lo))

    def finalize(self) -> DoubleDouble:
        """Consume the builder and return its value as a :class:`DoubleDouble`."""

        if self._finalized:
            raise BuilderFinalizedError("DoubleDoubleBuilder was already finalized")
        self._finalized = True
        return DoubleDouble(self._hi, self._lo)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse(text: str) -> DoubleDouble:
    """Parse ``[sign] digits ['.' digits] [('e'|'E') [sign] digits]``.

    Leading whitespace is skipped. The digits are accumulated exactly into a
    double-double and the result is rescaled by a power of ten.
    """

    i = 0
    length = len(text)
    while i < length and text[i].isspace():
        i += 1

    negative = False
    if i < length and text[i] in "+-":
        negative = text[i] == "-"
        i += 1

    value = DoubleDoubleBuilder(0.0)
    num_digits = 0
    num_before_point: Optional[int] = None
    exponent = 0
    while i < length:
        ch = text[i]
        if ch in _DIGITS:
            value.multiply(10.0).add(float(_DIGITS.index(ch)))
            num_digits += 1
        elif ch == "." and num_before_point is None:
            num_before_point = num_digits
        elif ch in "eE":
            exponent_text = text[i + 1:]
            if not _EXPONENT.fullmatch(exponent_text):
                raise DoubleDoubleParseError(
                    f"Invalid exponent {exponent_text!r} in string {text!r}",
                    text, exponent_text, i + 1,
                )
            exponent = int(exponent_text)
            break
        else:
            raise DoubleDoubleParseError(
                f"Unexpected character {ch!r} at position {i} in string {text!r}",
                text, ch, i,
            )
        i += 1

    if num_digits == 0:
        raise DoubleDoubleParseError(f"No digits in string {text!r}", text, text, 0)
    if num_before_point is None:
        num_before_point = num_digits

    decimal_places = num_digits - num_before_point - exponent
    # powers of ten beyond 1e300 are applied in steps so subnormal and
    # near-overflow literals keep their value
    while decimal_places > 0 and value.hi != 0.0 and math.isfinite(value.hi):
        step = min(decimal_places, 300)
        value.divide(TEN.power(step))
        decimal_places -= step
    while decimal_places < 0 and value.hi != 0.0 and math.isfinite(value.hi):
        step = min(-decimal_places, 300)
        value.multiply(TEN.power(step))
        decimal_places += step
    if negative:
        value.negate()
    return value.finalize()


def compare(x: DoubleDouble, y: DoubleDouble) -> int:
    """Three-way comparison; unordered (NaN) operands compare as 0."""

    return (x > y) - (x < y)


ZERO = DoubleDouble(0.0)
ONE = DoubleDouble(1.0)
TEN = DoubleDouble(10.0)
HALF = DoubleDouble(0.5)
NAN = DoubleDouble(math.nan, math.nan)
PI = DoubleDouble(3.141592653589793116e+00, 1.224646799147353207e-16)
TWO_PI = DoubleDouble(6.283185307179586232e+00, 2.449293598294706414e-16)
HALF_PI = DoubleDouble(1.570796326794896558e+00, 6.123233995736766036e-17)
E = DoubleDouble(2.718281828459045091e+00, 1.445646891729250158e-16)
