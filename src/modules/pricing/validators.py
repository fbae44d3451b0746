"""Offer table validation.

An offer table is safe to persist **iff** ``validate_all_offers`` returns
an empty mapping.  Callers must not commit any tier of a table that has
errors on any other tier.

Checks, per tier:
- quantity is a whole number, at least 1;
- discount is within [0, 100];
- price is within [0, MRP];
- price and discount agree within ``PRICE_TOLERANCE``.

Checks, across the table:
- quantities are unique;
- a base tier for quantity 1 exists;
- discounts never decrease as quantity increases.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from modules.pricing.constants import (
    BASE_TIER_QUANTITY,
    CURRENCY_SYMBOL,
    MAX_DISCOUNT,
    MIN_DISCOUNT,
)
from modules.pricing.dtos import FieldError, OfferTier
from modules.pricing.engine import (
    discount_for_price,
    price_for_discount,
    round2,
    to_decimal,
    within_tolerance,
)
from modules.pricing.exceptions import OfferValidationFailed

OfferErrors = Dict[int, List[FieldError]]


def parse_number(value: Any) -> Optional[Decimal]:
    """Parse raw form input into a finite ``Decimal``.

    Returns ``None`` for empty or non-numeric input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not number.is_finite():
        return None
    return number


def format_money(amount: Decimal) -> str:
    return f"{CURRENCY_SYMBOL}{round2(amount):.2f}"


def format_percent(percent: Decimal) -> str:
    text = f"{round2(percent):.2f}"
    return text.rstrip("0").rstrip(".")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_offer(quantity: Any, discount: Any, price: Any, mrp: Any) -> List[FieldError]:
    """Validate a single offer row as typed by an admin.

    ``quantity``, ``discount`` and ``price`` may be numbers or raw strings.
    When price and discount disagree, two errors are emitted, each citing
    the value implied by the other field, so the caller can offer both
    corrections.

    Raises:
        ValueError: *mrp* is not a positive number.
    """
    mrp_value = parse_number(mrp)
    if mrp_value is None or mrp_value <= 0:
        raise ValueError("MRP must be greater than zero.")

    errors: List[FieldError] = []

    quantity_value = parse_number(quantity)
    if quantity_value is None:
        message = (
            "Quantity is required" if _is_blank(quantity) else "Quantity must be a number"
        )
        errors.append(FieldError(field="quantity", message=message))
    elif quantity_value < 1:
        errors.append(FieldError(field="quantity", message="Quantity must be at least 1"))
    elif quantity_value != quantity_value.to_integral_value():
        errors.append(
            FieldError(field="quantity", message="Quantity must be a whole number")
        )

    discount_value = parse_number(discount)
    if discount_value is None:
        message = (
            "Discount is required" if _is_blank(discount) else "Discount must be a number"
        )
        errors.append(FieldError(field="discount", message=message))
    elif discount_value < MIN_DISCOUNT:
        errors.append(FieldError(field="discount", message="Discount cannot be negative"))
    elif discount_value > MAX_DISCOUNT:
        errors.append(FieldError(field="discount", message="Discount cannot exceed 100%"))

    price_value = parse_number(price)
    if price_value is None:
        message = "Price is required" if _is_blank(price) else "Price must be a number"
        errors.append(FieldError(field="price", message=message))
    elif price_value < 0:
        errors.append(FieldError(field="price", message="Price cannot be negative"))
    elif price_value > mrp_value:
        errors.append(FieldError(field="price", message="Price cannot exceed MRP"))

    discount_in_range = (
        discount_value is not None and MIN_DISCOUNT <= discount_value <= MAX_DISCOUNT
    )
    if discount_in_range and price_value is not None:
        expected_price = price_for_discount(mrp_value, discount_value)
        if not within_tolerance(price_value, expected_price):
            implied_discount = discount_for_price(mrp_value, price_value)
            errors.append(
                FieldError(
                    field="discount",
                    message=(
                        f"Discount should be {format_percent(implied_discount)}% "
                        f"for {format_money(price_value)} price"
                    ),
                )
            )
            errors.append(
                FieldError(
                    field="price",
                    message=(
                        f"Price should be {format_money(expected_price)} "
                        f"for {format_percent(discount_value)}% discount"
                    ),
                )
            )

    return errors


def validate_all_offers(offers: Iterable[OfferTier], mrp: Any) -> OfferErrors:
    """Validate an entire offer table.

    Returns a mapping of tier quantity to its errors; an empty mapping
    means the table may be persisted.
    """
    tiers = list(offers)
    errors: OfferErrors = {}

    for tier in tiers:
        price = price_for_discount(mrp, tier.discount_percent)
        tier_errors = validate_offer(tier.quantity, tier.discount_percent, price, mrp)
        # Price is derived from the discount here; a bad discount says it all.
        if any(error.field == "discount" for error in tier_errors):
            tier_errors = [error for error in tier_errors if error.field != "price"]
        if tier_errors:
            errors.setdefault(tier.quantity, []).extend(tier_errors)

    seen: set[int] = set()
    for tier in tiers:
        if tier.quantity in seen:
            errors.setdefault(tier.quantity, []).append(
                FieldError(field="quantity", message="Duplicate quantity")
            )
        seen.add(tier.quantity)

    if BASE_TIER_QUANTITY not in seen:
        errors.setdefault(BASE_TIER_QUANTITY, []).append(
            FieldError(
                field="quantity",
                message=f"A base offer for quantity {BASE_TIER_QUANTITY} is required",
            )
        )

    ordered = sorted(tiers, key=lambda t: t.quantity)
    for previous, current in zip(ordered, ordered[1:]):
        if current.discount_percent < previous.discount_percent:
            errors.setdefault(current.quantity, []).append(
                FieldError(
                    field="discount",
                    message=(
                        f"Discount should be at least "
                        f"{format_percent(previous.discount_percent)}% "
                        f"(same as quantity {previous.quantity})"
                    ),
                )
            )

    return errors


def ensure_valid_offers(offers: Iterable[OfferTier], mrp: Any) -> List[OfferTier]:
    """Return the tiers sorted by quantity, or raise if any tier is invalid.

    Raises:
        OfferValidationFailed: the table has at least one error.
    """
    tiers = list(offers)
    errors = validate_all_offers(tiers, mrp)
    if errors:
        raise OfferValidationFailed(errors)
    return sorted(tiers, key=lambda t: t.quantity)
