"""Pricing constants shared by the pricing engine and the offer validator."""

from decimal import Decimal

MONEY_QUANTUM = Decimal("0.01")

# Maximum drift tolerated between a price and the price implied by its discount.
PRICE_TOLERANCE = Decimal("0.01")

MIN_DISCOUNT = Decimal("0")
MAX_DISCOUNT = Decimal("100")

BASE_TIER_QUANTITY = 1

CURRENCY_SYMBOL = "₹"
