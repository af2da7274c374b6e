"""Checked uint256 arithmetic for reserves, shares and reward quantities.

Quantities are wrapped on entry with `S(...)`, combined with ordinary
operators and unwrapped with `.value`. Any intermediate that leaves
[0, 2^256-1] raises instead of wrapping around:

    minted = (S(amount_a) * total_shares // reserve_a).min(S(amount_b) * total_shares // reserve_b)
    return minted.value
"""

from __future__ import annotations

from functools import total_ordering
from math import isqrt

from exchange.constants import UINT256_MAX
from exchange.errors import ExchangeError


class SafeIntError(ExchangeError, ArithmeticError):
    """Quantity arithmetic left the uint256 domain."""

    pass


class DivisionByZero(SafeIntError):
    """Division by a zero quantity."""

    pass


class Underflow(SafeIntError):
    """Result would be negative."""

    pass


class ArithmeticOverflow(SafeIntError):
    """Result exceeds 2^256-1."""

    pass


def _bounded(value: int, expr: str) -> int:
    if value < 0:
        raise Underflow(f"{expr} is negative")
    if value > UINT256_MAX:
        raise ArithmeticOverflow(f"{expr} exceeds uint256")
    return value


def _raw(operand: SafeInt | int) -> int:
    return operand._value if isinstance(operand, SafeInt) else operand


@total_ordering
class SafeInt:
    """A uint256 quantity whose every operation is range-checked."""

    __slots__ = ("_value",)

    def __init__(self, value: int | SafeInt) -> None:
        """Wrap an int (or copy a SafeInt).

        Raises:
            TypeError: If value is not an int (bool is rejected)
            Underflow: If value is negative
            ArithmeticOverflow: If value exceeds 2^256-1
        """
        if isinstance(value, SafeInt):
            self._value: int = value._value
        elif isinstance(value, int) and not isinstance(value, bool):
            self._value = _bounded(value, str(value))
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"S({self._value})"

    def __add__(self, other: SafeInt | int) -> SafeInt:
        right = _raw(other)
        return SafeInt(_bounded(self._value + right, f"{self._value} + {right}"))

    __radd__ = __add__

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        right = _raw(other)
        return SafeInt(_bounded(self._value - right, f"{self._value} - {right}"))

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        right = _raw(other)
        return SafeInt(_bounded(self._value * right, f"{self._value} * {right}"))

    __rmul__ = __mul__

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Division rounding down.

        Raises:
            DivisionByZero: If other is zero
        """
        right = _raw(other)
        if right == 0:
            raise DivisionByZero(f"{self._value} // 0")
        return SafeInt(self._value // right)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (SafeInt, int)):
            return self._value == _raw(other)
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _raw(other)

    def __hash__(self) -> int:
        return hash(self._value)

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    def min(self, other: SafeInt | int) -> SafeInt:
        return self if self._value <= _raw(other) else SafeInt(other)

    def isqrt(self) -> SafeInt:
        """Square root rounded down."""
        return SafeInt(isqrt(self._value))


S = SafeInt
