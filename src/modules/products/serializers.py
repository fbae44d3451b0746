"""Product DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.pricing.engine import price_for_discount
from modules.products.models import Product

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class OfferTierSerializer(serializers.Serializer):
    """One row of an offer table as submitted by an admin.

    Range checks are left to the offer validator so that every tier's
    errors are reported together.
    """

    quantity = serializers.IntegerField()
    discount_percent = serializers.DecimalField(max_digits=7, decimal_places=2)


class CreateProductSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    mrp = serializers.DecimalField(max_digits=10, decimal_places=2)
    description = serializers.CharField(required=False, default="", allow_blank=True)
    weight = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=50
    )
    offers = OfferTierSerializer(many=True, required=False)
    pieces_left = serializers.IntegerField(required=False, allow_null=True, default=None)


class UpdateOffersSerializer(serializers.Serializer):
    offers = OfferTierSerializer(many=True, allow_empty=False)


class UpdateStockSerializer(serializers.Serializer):
    pieces_left = serializers.IntegerField(allow_null=True, min_value=0)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class TierPriceSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()
    discount_percent = serializers.DecimalField(max_digits=7, decimal_places=2)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2)


class ProductSerializer(serializers.ModelSerializer):
    """Read serializer for products with their priced offer table."""

    price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    offers = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "description",
            "weight",
            "mrp",
            "price",
            "offers",
            "pieces_left",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_offers(self, obj: Product) -> list:
        tiers = [
            {
                "quantity": tier.quantity,
                "discount_percent": tier.discount_percent,
                "unit_price": price_for_discount(obj.mrp, tier.discount_percent),
            }
            for tier in obj.offer_tiers
        ]
        return TierPriceSerializer(tiers, many=True).data


class OfferPreviewSerializer(serializers.Serializer):
    """Output of the admin price preview (``OfferPreviewDTO``)."""

    mrp = serializers.DecimalField(max_digits=10, decimal_places=2)
    tiers = TierPriceSerializer(many=True)
    is_valid = serializers.BooleanField()
    errors = serializers.SerializerMethodField()

    def get_errors(self, obj) -> dict:
        return {
            str(quantity): [error.model_dump() for error in field_errors]
            for quantity, field_errors in obj.errors.items()
        }
