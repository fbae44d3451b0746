"""Unit tests for the tiered pricing engine.

Covers:
- select_tier / price_for_quantity: tier selection by largest threshold.
- price_for_discount / discount_for_price: half-up rounding both ways.
- Round trip between price and discount within the 0.01 tolerance.
- Offer table parsing and dumping.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from modules.pricing.dtos import OfferTier, dump_offer_table, parse_offer_table
from modules.pricing.engine import (
    discount_for_price,
    price_for_discount,
    price_for_quantity,
    round2,
    select_tier,
    within_tolerance,
)

pytestmark = pytest.mark.unit


def _tiers(pairs):
    return [
        OfferTier(quantity=q, discount_percent=Decimal(str(d))) for q, d in pairs.items()
    ]


STANDARD = _tiers({1: 0, 5: 10, 10: 20})


# ===========================================================================
# Tier selection
# ===========================================================================


class TestPriceForQuantity:
    @pytest.mark.parametrize(
        "quantity, expected",
        [
            (1, Decimal("1000.00")),
            (3, Decimal("1000.00")),
            (5, Decimal("900.00")),
            (7, Decimal("900.00")),
            (10, Decimal("800.00")),
            (12, Decimal("800.00")),
        ],
    )
    def test_largest_threshold_not_above_quantity(self, quantity, expected):
        assert price_for_quantity(STANDARD, Decimal("1000.00"), quantity) == expected

    def test_tier_order_in_table_does_not_matter(self):
        shuffled = list(reversed(STANDARD))
        assert price_for_quantity(shuffled, Decimal("1000.00"), 7) == Decimal("900.00")

    def test_no_applicable_tier_means_no_discount(self):
        offers = _tiers({5: 10})
        assert price_for_quantity(offers, Decimal("250.00"), 2) == Decimal("250.00")

    def test_empty_table_means_no_discount(self):
        assert price_for_quantity([], Decimal("99.99"), 4) == Decimal("99.99")

    def test_select_tier_returns_none_below_every_threshold(self):
        assert select_tier(_tiers({3: 5}), 2) is None

    def test_select_tier_picks_exact_threshold(self):
        tier = select_tier(STANDARD, 10)
        assert tier.quantity == 10
        assert tier.discount_percent == Decimal("20")

    def test_same_input_same_output(self):
        first = price_for_quantity(STANDARD, Decimal("1000.00"), 7)
        second = price_for_quantity(STANDARD, Decimal("1000.00"), 7)
        assert first == second


# ===========================================================================
# Price <-> discount
# ===========================================================================


class TestPriceDiscountConversion:
    def test_price_for_discount(self):
        assert price_for_discount(Decimal("1000"), Decimal("10")) == Decimal("900.00")

    def test_price_for_discount_rounds_half_up(self):
        # 199 * 0.8525 = 169.6475
        assert price_for_discount(Decimal("199"), Decimal("14.75")) == Decimal("169.65")

    def test_full_discount_is_free(self):
        assert price_for_discount(Decimal("450"), Decimal("100")) == Decimal("0.00")

    def test_discount_for_price(self):
        assert discount_for_price(Decimal("1000"), Decimal("900")) == Decimal("10.00")

    def test_discount_for_price_rounds_to_two_places(self):
        # 100 * (1 - 200/300) = 33.333...
        assert discount_for_price(Decimal("300"), Decimal("200")) == Decimal("33.33")

    def test_accepts_float_and_string_input(self):
        assert price_for_discount(199.0, "15") == Decimal("169.15")

    @pytest.mark.parametrize(
        "mrp, discount",
        [
            (Decimal("100.00"), Decimal("7.50")),
            (Decimal("149.99"), Decimal("12.34")),
            (Decimal("999.00"), Decimal("33.33")),
            (Decimal("2499.50"), Decimal("66.67")),
        ],
    )
    def test_round_trip_within_tolerance(self, mrp, discount):
        price = price_for_discount(mrp, discount)
        assert within_tolerance(discount_for_price(mrp, price), discount)

    @pytest.mark.parametrize(
        "mrp",
        ["100.00", "100.01", "149.99", "349.00", "999.00", "1000.00", "2499.50", "99999.99"],
    )
    def test_round_trip_holds_for_every_discount_step(self, mrp):
        mrp = Decimal(mrp)
        for hundredths in range(0, 10001):
            discount = Decimal(hundredths) / 100
            price = price_for_discount(mrp, discount)
            assert within_tolerance(discount_for_price(mrp, price), discount), (
                mrp,
                discount,
            )

    @pytest.mark.parametrize("mrp", ["0.50", "1.00", "99.99", "1000.00"])
    @pytest.mark.parametrize("quantity", [1, 4, 5, 9, 10, 11, 500])
    def test_price_for_quantity_is_repeatable(self, mrp, quantity):
        first = price_for_quantity(STANDARD, Decimal(mrp), quantity)
        assert price_for_quantity(STANDARD, Decimal(mrp), quantity) == first

    def test_derived_price_is_stable_under_repeated_derivation(self):
        mrp = Decimal("349.00")
        price = price_for_discount(mrp, Decimal("12.50"))
        again = price_for_discount(mrp, discount_for_price(mrp, price))
        assert within_tolerance(again, price)


class TestRounding:
    def test_round2_half_up(self):
        assert round2("2.345") == Decimal("2.35")
        assert round2("2.344") == Decimal("2.34")

    def test_round2_float_has_no_binary_artefacts(self):
        assert round2(0.125) == Decimal("0.13")

    def test_within_tolerance_is_inclusive(self):
        assert within_tolerance(Decimal("10.00"), Decimal("10.01"))
        assert not within_tolerance(Decimal("10.00"), Decimal("10.02"))


# ===========================================================================
# Offer table boundary
# ===========================================================================


class TestOfferTableParsing:
    def test_parses_list_form(self):
        tiers = parse_offer_table([{"quantity": 1, "discount_percent": "0.00"}])
        assert tiers == [OfferTier(quantity=1, discount_percent=Decimal("0"))]

    def test_parses_mapping_form(self):
        tiers = parse_offer_table({"1": 0, "5": "10"})
        assert [t.quantity for t in tiers] == [1, 5]
        assert tiers[1].discount_percent == Decimal("10")

    def test_none_is_empty_table(self):
        assert parse_offer_table(None) == []

    def test_keeps_duplicates_for_reporting(self):
        raw = [
            {"quantity": 5, "discount_percent": 10},
            {"quantity": 5, "discount_percent": 12},
        ]
        assert len(parse_offer_table(raw)) == 2

    def test_rejects_garbage(self):
        with pytest.raises(ValidationError):
            parse_offer_table([{"quantity": "many"}])

    def test_dump_sorts_and_quantizes(self):
        dumped = dump_offer_table(_tiers({10: 20, 1: 0, 5: 7.5}))
        assert dumped == [
            {"quantity": 1, "discount_percent": "0.00"},
            {"quantity": 5, "discount_percent": "7.50"},
            {"quantity": 10, "discount_percent": "20.00"},
        ]
