"""Pricing DTOs.

Framework-agnostic value objects using Pydantic v2 (``frozen=True``):

- ``OfferTier``: one row of a product's offer table.
- ``FieldError``: a field-scoped validation message.
- ``CartLineDTO`` / ``CartTotalsDTO``: output of the cart price calculator.

Offer tables arrive as loosely-typed JSON.  ``parse_offer_table`` is the
single boundary where they become an ordered list of ``OfferTier`` records;
everything downstream works on typed tiers only.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter

from modules.pricing.constants import MONEY_QUANTUM


class OfferTier(BaseModel):
    """A (quantity threshold, discount percent) pair.

    Range checks are deliberately absent here: an out-of-range tier must
    still be representable so the offer validator can report on it.
    """

    model_config = ConfigDict(frozen=True)

    quantity: int
    discount_percent: Decimal


class FieldError(BaseModel):
    """Validation message attached to one input field of an offer row."""

    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class CartLineDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: Any
    quantity: int
    mrp: Decimal
    unit_price: Decimal
    applied_tier: Optional[int]
    discount_percent: Decimal
    line_total: Decimal


class CartTotalsDTO(BaseModel):
    """Totals for a cart: ``discount`` is always ``subtotal - total``."""

    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    discount: Decimal
    total: Decimal
    lines: List[CartLineDTO]


_tier_list_adapter = TypeAdapter(List[OfferTier])


def parse_offer_table(raw: Any) -> list[OfferTier]:
    """Parse a stored or submitted offer table into ``OfferTier`` records.

    Accepts the canonical list form (``[{"quantity": 1, "discount_percent": 0}]``)
    and the legacy mapping form keyed by quantity (``{"1": 0, "5": 10}``).
    Order is preserved; duplicates are kept so they can be reported.

    Raises:
        pydantic.ValidationError: the payload is not a table of tiers.
    """
    if raw is None:
        return []
    if isinstance(raw, dict):
        raw = [
            {"quantity": quantity, "discount_percent": discount}
            for quantity, discount in raw.items()
        ]
    return _tier_list_adapter.validate_python(raw)


def dump_offer_table(tiers: Iterable[OfferTier]) -> list[dict[str, Any]]:
    """Serialise tiers for JSON storage, sorted ascending by quantity."""
    return [
        {
            "quantity": tier.quantity,
            "discount_percent": str(
                tier.discount_percent.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
            ),
        }
        for tier in sorted(tiers, key=lambda t: t.quantity)
    ]
