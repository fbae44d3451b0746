"""Unit tests for the offer validator.

Covers:
- parse_number: raw form input handling.
- validate_offer: required/range checks and the price/discount cross-check.
- validate_all_offers: duplicates, base tier, monotonic discounts.
- ensure_valid_offers: all-or-nothing gate used before persisting.
"""

from __future__ import annotations

import random
from decimal import Decimal

import pytest

from modules.pricing.dtos import FieldError, OfferTier
from modules.pricing.exceptions import OfferValidationFailed
from modules.pricing.validators import (
    ensure_valid_offers,
    format_money,
    format_percent,
    parse_number,
    validate_all_offers,
    validate_offer,
)

pytestmark = pytest.mark.unit

MRP = Decimal("1000.00")


def _tiers(pairs):
    return [
        OfferTier(quantity=q, discount_percent=Decimal(str(d))) for q, d in pairs
    ]


def _messages(errors, field):
    return [e.message for e in errors if e.field == field]


# ===========================================================================
# Parsing / formatting
# ===========================================================================


class TestParseNumber:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("12.5", Decimal("12.5")),
            ("  7 ", Decimal("7")),
            (3, Decimal("3")),
            (Decimal("0.01"), Decimal("0.01")),
        ],
    )
    def test_numbers(self, raw, expected):
        assert parse_number(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", None, "abc", "1.2.3", True, "NaN", "Infinity"])
    def test_not_numbers(self, raw):
        assert parse_number(raw) is None

    def test_formatting(self):
        assert format_money(Decimal("900")) == "₹900.00"
        assert format_percent(Decimal("15.00")) == "15"
        assert format_percent(Decimal("7.5")) == "7.5"


# ===========================================================================
# Single offer row
# ===========================================================================


class TestValidateOffer:
    def test_consistent_row_has_no_errors(self):
        assert validate_offer(1, 10, 900, MRP) == []

    def test_raw_strings_are_accepted(self):
        assert validate_offer("5", "10", "900.00", MRP) == []

    def test_difference_within_tolerance_is_accepted(self):
        assert validate_offer(1, 10, "900.01", MRP) == []

    def test_price_discount_mismatch_reports_both_fields(self):
        errors = validate_offer(1, 10, 850, MRP)
        assert _messages(errors, "discount") == ["Discount should be 15% for ₹850.00 price"]
        assert _messages(errors, "price") == ["Price should be ₹900.00 for 10% discount"]

    def test_missing_values(self):
        errors = validate_offer("", None, " ", MRP)
        assert _messages(errors, "quantity") == ["Quantity is required"]
        assert _messages(errors, "discount") == ["Discount is required"]
        assert _messages(errors, "price") == ["Price is required"]

    def test_non_numeric_values(self):
        errors = validate_offer("two", "ten", "lots", MRP)
        assert _messages(errors, "quantity") == ["Quantity must be a number"]
        assert _messages(errors, "discount") == ["Discount must be a number"]
        assert _messages(errors, "price") == ["Price must be a number"]

    def test_out_of_range_values_skip_cross_check(self):
        errors = validate_offer(0, 101, 1200, MRP)
        assert errors == [
            FieldError(field="quantity", message="Quantity must be at least 1"),
            FieldError(field="discount", message="Discount cannot exceed 100%"),
            FieldError(field="price", message="Price cannot exceed MRP"),
        ]

    def test_negative_values(self):
        errors = validate_offer(1, -5, -1, MRP)
        assert _messages(errors, "discount") == ["Discount cannot be negative"]
        assert _messages(errors, "price") == ["Price cannot be negative"]

    def test_fractional_quantity(self):
        errors = validate_offer("1.5", 0, 1000, MRP)
        assert _messages(errors, "quantity") == ["Quantity must be a whole number"]

    def test_mrp_must_be_positive(self):
        with pytest.raises(ValueError):
            validate_offer(1, 0, 0, Decimal("0"))


# ===========================================================================
# Whole offer table
# ===========================================================================


class TestValidateAllOffers:
    def test_valid_table(self):
        assert validate_all_offers(_tiers([(1, 0), (5, 10), (10, 20)]), MRP) == {}

    def test_equal_discounts_are_monotonic(self):
        assert validate_all_offers(_tiers([(1, 5), (2, 5)]), MRP) == {}

    def test_decreasing_discount_is_reported_on_the_larger_quantity(self):
        errors = validate_all_offers(_tiers([(1, 0), (2, 10), (3, 5)]), MRP)
        assert list(errors) == [3]
        assert errors[3] == [
            FieldError(
                field="discount",
                message="Discount should be at least 10% (same as quantity 2)",
            )
        ]

    def test_monotonicity_checked_after_sorting(self):
        errors = validate_all_offers(_tiers([(10, 5), (1, 0), (5, 10)]), MRP)
        assert list(errors) == [10]

    def test_duplicate_quantity(self):
        errors = validate_all_offers(_tiers([(1, 0), (5, 10), (5, 10)]), MRP)
        assert _messages(errors[5], "quantity") == ["Duplicate quantity"]

    def test_missing_base_tier(self):
        errors = validate_all_offers(_tiers([(5, 10)]), MRP)
        assert _messages(errors[1], "quantity") == [
            "A base offer for quantity 1 is required"
        ]

    def test_empty_table_needs_a_base_tier(self):
        assert 1 in validate_all_offers([], MRP)

    def test_out_of_range_discount_reports_only_the_discount(self):
        errors = validate_all_offers(_tiers([(1, 0), (2, 150)]), MRP)
        assert errors[2] == [
            FieldError(field="discount", message="Discount cannot exceed 100%")
        ]

    def test_zero_quantity_tier(self):
        errors = validate_all_offers(_tiers([(0, 0), (1, 0)]), MRP)
        assert _messages(errors[0], "quantity") == ["Quantity must be at least 1"]


def _random_table(rng, monotone):
    quantities = [1] + rng.sample(range(2, 50), k=rng.randint(0, 6))
    discounts = [Decimal(rng.randint(0, 10000)) / 100 for _ in quantities]
    if monotone:
        discounts.sort()
    rows = list(zip(quantities, discounts))
    rng.shuffle(rows)
    return [OfferTier(quantity=q, discount_percent=d) for q, d in rows]


class TestAcceptedTablesAreMonotonic:
    @pytest.mark.parametrize("seed", range(50))
    @pytest.mark.parametrize("mrp", [Decimal("100.00"), Decimal("349.00"), MRP])
    def test_every_accepted_table_is_pairwise_monotonic(self, seed, mrp):
        rng = random.Random(seed)
        for monotone in (True, False):
            tiers = _random_table(rng, monotone)
            accepted = validate_all_offers(tiers, mrp) == {}
            if monotone:
                assert accepted, tiers
            if accepted:
                for low in tiers:
                    for high in tiers:
                        if low.quantity < high.quantity:
                            assert low.discount_percent <= high.discount_percent

    @pytest.mark.parametrize("seed", range(50))
    def test_any_decrease_is_rejected(self, seed):
        rng = random.Random(seed)
        tiers = _random_table(rng, monotone=False)
        ordered = sorted(tiers, key=lambda t: t.quantity)
        has_decrease = any(
            b.discount_percent < a.discount_percent for a, b in zip(ordered, ordered[1:])
        )
        assert (validate_all_offers(tiers, MRP) != {}) == has_decrease


class TestEnsureValidOffers:
    def test_returns_sorted_tiers(self):
        tiers = ensure_valid_offers(_tiers([(10, 20), (1, 0), (5, 10)]), MRP)
        assert [t.quantity for t in tiers] == [1, 5, 10]

    def test_any_error_rejects_the_whole_table(self):
        with pytest.raises(OfferValidationFailed) as exc_info:
            ensure_valid_offers(_tiers([(1, 0), (2, 10), (3, 5)]), MRP)
        assert exc_info.value.as_dict() == {
            "3": [
                {
                    "field": "discount",
                    "message": "Discount should be at least 10% (same as quantity 2)",
                }
            ]
        }
