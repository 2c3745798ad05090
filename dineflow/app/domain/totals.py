"""Money helpers for order and cart totals."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, NamedTuple

# Flat platform tax. Restaurant settings carry a currency but no tax rate.
TAX_RATE = Decimal("0.10")
CENT = Decimal("0.01")


def money(value) -> Decimal:
    """Quantize ``value`` to cents."""

    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def line_subtotal(price, quantity: int) -> Decimal:
    return money(Decimal(str(price)) * quantity)


class Totals(NamedTuple):
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def compute_totals(lines: Iterable[tuple[object, int]], rate: Decimal = TAX_RATE) -> Totals:
    """Return subtotal, tax and total for ``(price, quantity)`` pairs."""

    subtotal = sum((line_subtotal(price, qty) for price, qty in lines), Decimal("0"))
    subtotal = money(subtotal)
    tax = money(subtotal * rate)
    return Totals(subtotal, tax, money(subtotal + tax))
