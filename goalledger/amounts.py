"""Decimal money helpers shared by the derivation modules."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def total(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(high, value))


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """Return ``100 * part / whole`` clamped to [0, 100]; a zero whole yields 0."""
    if whole <= 0:
        return ZERO
    return clamp(HUNDRED * part / whole, ZERO, HUNDRED)


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
