"""Price normalization and money arithmetic shared by cart and discounts.

Catalog sources mix two encodings: integer cents (``350``) and currency
units (``3.5``). ``normalize_price`` must run before any arithmetic.

Known ambiguity: a whole-number price between 100 and 999 currency units
is indistinguishable from cents and is divided by 100. The heuristic is
kept as-is until product confirms how such prices are encoded upstream.
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

logger = logging.getLogger("ordering.pricing")

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")
CENTS_THRESHOLD = Decimal("1000")


def _to_decimal(raw: Any) -> Decimal:
    if isinstance(raw, bool) or raw is None:
        raise InvalidOperation(f"not a price: {raw!r}")
    if isinstance(raw, Decimal):
        return raw
    # str() keeps floats like 2.99 from dragging binary noise into totals
    return Decimal(str(raw).strip())


def normalize_price(raw: Any) -> Decimal:
    """
    Canonicalize a raw price into currency units.

    Rules:
    - non-finite or unparseable -> 0
    - raw >= 1000 -> raw / 100 (integer cents)
    - integer raw in [100, 1000) -> raw / 100 (integer cents)
    - anything else is already in currency units

    Args:
        raw: int, float, Decimal or numeric string

    Returns:
        Decimal amount in currency units
    """
    try:
        value = _to_decimal(raw)
    except (InvalidOperation, ValueError):
        logger.debug("Unparseable price %r normalized to 0", raw)
        return ZERO

    if not value.is_finite():
        logger.debug("Non-finite price %r normalized to 0", raw)
        return ZERO

    if value >= CENTS_THRESHOLD:
        return value / HUNDRED
    if value >= HUNDRED and value == value.to_integral_value():
        return value / HUNDRED
    return value


def round_money(amount: Decimal) -> Decimal:
    """Round half-up to whole cents"""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def modifier_total(modifiers: Iterable[Any]) -> Decimal:
    """Sum of normalized price adjustments for a line's modifiers"""
    return sum(
        (normalize_price(m.price_adjustment) for m in modifiers or ()), ZERO
    )


def unit_total(item: Any) -> Decimal:
    """Price of one unit of a cart line, modifiers included"""
    return normalize_price(item.unit_price) + modifier_total(item.modifiers)


def line_total(item: Any) -> Decimal:
    """(unit price + modifiers) x quantity for a cart line"""
    return unit_total(item) * item.quantity


def calculate_tax(subtotal: Decimal, discount: Decimal, tax_rate: Decimal) -> Decimal:
    """Tax on the discounted subtotal, never negative"""
    taxable = max(ZERO, subtotal - discount)
    return round_money(taxable * tax_rate)


def calculate_total(subtotal: Decimal, discount: Decimal, tax: Decimal) -> Decimal:
    return round_money((subtotal - discount) + tax)
