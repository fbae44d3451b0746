"""Tiered quantity-discount pricing engine.

Pure numeric core shared by the admin price preview, the offer validator
and the cart calculator.  No I/O, no logging, no exceptions for valid
numeric input; every function here is safe to call from any thread.

Rounding is always half-up to two decimal places on ``Decimal`` values:

    price    = round2(mrp * (1 - discount / 100))
    discount = round2(100 * (1 - price / mrp))
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

from modules.pricing.constants import MONEY_QUANTUM, PRICE_TOLERANCE
from modules.pricing.dtos import OfferTier

Number = Union[Decimal, int, float, str]

_HUNDRED = Decimal("100")


def to_decimal(value: Number) -> Decimal:
    """Convert a number to ``Decimal`` without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round2(value: Number) -> Decimal:
    """Round half-up to two decimal places."""
    return to_decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def within_tolerance(a: Number, b: Number, tolerance: Decimal = PRICE_TOLERANCE) -> bool:
    return abs(to_decimal(a) - to_decimal(b)) <= tolerance


def select_tier(offers: Iterable[OfferTier], quantity: int) -> Optional[OfferTier]:
    """Return the tier with the largest threshold not above *quantity*."""
    best: Optional[OfferTier] = None
    for tier in offers:
        if tier.quantity <= quantity and (best is None or tier.quantity > best.quantity):
            best = tier
    return best


def price_for_discount(mrp: Number, discount_percent: Number) -> Decimal:
    """Unit price implied by *discount_percent* off *mrp*."""
    mrp = to_decimal(mrp)
    discount = to_decimal(discount_percent)
    return round2(mrp * (1 - discount / _HUNDRED))


def price_for_quantity(offers: Iterable[OfferTier], mrp: Number, quantity: int) -> Decimal:
    """Unit price for buying *quantity* pieces under *offers*.

    Falls back to a zero discount when no tier applies, which only happens
    for tables missing the quantity-1 base tier.
    """
    tier = select_tier(offers, quantity)
    discount = tier.discount_percent if tier is not None else Decimal("0")
    return price_for_discount(mrp, discount)


def discount_for_price(mrp: Number, price: Number) -> Decimal:
    """Discount percent implied by selling at *price* instead of *mrp*.

    Used when an admin edits a price directly and the discount field has
    to be back-derived.  *mrp* must be positive.
    """
    mrp = to_decimal(mrp)
    price = to_decimal(price)
    return round2(_HUNDRED * (1 - price / mrp))
