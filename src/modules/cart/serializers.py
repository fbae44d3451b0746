"""Cart DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.serializers import CartItemSerializer


class CartQuoteSerializer(serializers.Serializer):
    items = CartItemSerializer(many=True, allow_empty=True)


class CartLineSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField()
    mrp = serializers.DecimalField(max_digits=10, decimal_places=2)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    applied_tier = serializers.IntegerField(allow_null=True)
    discount_percent = serializers.DecimalField(max_digits=7, decimal_places=2)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2)


class CartTotalsSerializer(serializers.Serializer):
    """Output of the cart price calculator (``CartTotalsDTO``)."""

    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    lines = CartLineSerializer(many=True)
