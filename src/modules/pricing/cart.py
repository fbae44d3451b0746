"""Cart price calculator.

Applies the tiered pricing engine across a list of ``(product, quantity)``
pairs.  Prices are recomputed from the *current* offer table on every call:
a cart is not a frozen snapshot.  Only checkout turns the computed unit
price into a permanent ``OrderItem.price``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable, List, Protocol, Sequence, Tuple

from modules.pricing.dtos import CartLineDTO, CartTotalsDTO, OfferTier
from modules.pricing.engine import price_for_discount, round2, select_tier, to_decimal


class PricedProduct(Protocol):
    """Anything carrying an MRP and a parsed offer table."""

    id: Any
    mrp: Decimal

    @property
    def offer_tiers(self) -> Sequence[OfferTier]: ...


def price_line(product: PricedProduct, quantity: int) -> CartLineDTO:
    """Price a single cart line against the product's current offers."""
    mrp = to_decimal(product.mrp)
    tier = select_tier(product.offer_tiers, quantity)
    discount = tier.discount_percent if tier is not None else Decimal("0")
    unit_price = price_for_discount(mrp, discount)
    return CartLineDTO(
        product_id=product.id,
        quantity=quantity,
        mrp=round2(mrp),
        unit_price=unit_price,
        applied_tier=tier.quantity if tier is not None else None,
        discount_percent=round2(discount),
        line_total=round2(unit_price * quantity),
    )


def compute_totals(items: Iterable[Tuple[PricedProduct, int]]) -> CartTotalsDTO:
    """Compute ``subtotal`` (at MRP), ``total`` (at tier prices) and ``discount``."""
    lines: List[CartLineDTO] = [price_line(product, quantity) for product, quantity in items]
    subtotal = round2(sum((line.mrp * line.quantity for line in lines), Decimal("0")))
    total = round2(sum((line.line_total for line in lines), Decimal("0")))
    return CartTotalsDTO(
        subtotal=subtotal,
        discount=subtotal - total,
        total=total,
        lines=lines,
    )
