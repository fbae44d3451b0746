"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.

The delivery OTP is only ever rendered for the customer who owns the
order; the request is read from the serializer context.
"""

from __future__ import annotations

from typing import Optional

from rest_framework import serializers

from modules.orders.constants import OTP_LENGTH, OrderStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CartItemSerializer(serializers.Serializer):
    """Validates a single cart line (checkout and cart quotes)."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the checkout request payload.

    An empty ``items`` list is let through so the service can reject it
    as an empty cart.
    """

    items = CartItemSerializer(many=True, allow_empty=True)
    phone = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=20
    )
    address = serializers.CharField(required=False, default="", allow_blank=True)
    note = serializers.CharField(required=False, default="", allow_blank=True)


class SetStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class ItemQuantitySerializer(serializers.Serializer):
    """One quantity correction; range checks belong to the order editor."""

    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField()


class EditItemsSerializer(serializers.Serializer):
    items = ItemQuantitySerializer(many=True, allow_empty=False)


class VerifyOtpSerializer(serializers.Serializer):
    otp = serializers.CharField(min_length=OTP_LENGTH, max_length=OTP_LENGTH)


class CancelOrderSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with the checkout snapshot."""

    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "name",
            "price",
            "quantity",
            "subtotal",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "notes",
            "changed_by_id",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    otp = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "status",
            "otp",
            "otp_verified",
            "total",
            "phone",
            "address",
            "note",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields

    def get_otp(self, obj: Order) -> Optional[str]:
        request = self.context.get("request")
        user = getattr(request, "user", None)
        if user is not None and user.is_authenticated and user.pk == obj.customer_id:
            return obj.otp
        return None


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "status",
            "otp_verified",
            "total",
            "created_at",
        ]
        read_only_fields = fields
