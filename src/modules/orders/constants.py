"""Order domain constants.

Defines status choices and the transitions the order state machine
accepts through ``set_status``.  ``DELIVERED`` is deliberately absent
from ``VALID_TRANSITIONS``: it is only reachable by verifying the
delivery OTP.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    SHIPPED = "SHIPPED", "Shipped"
    PARTIAL = "PARTIAL", "Partially delivered"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"
    FAILED = "FAILED", "Delivery failed"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.PARTIAL, OrderStatus.FAILED},
    OrderStatus.PARTIAL: set(),
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.FAILED: set(),
}

OTP_ELIGIBLE_STATES: set[str] = {OrderStatus.SHIPPED, OrderStatus.PARTIAL}

TERMINAL_STATES: set[str] = {
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.FAILED,
}

# Moving into one of these returns the order's pieces to stock.
STOCK_RESTORING_STATES: set[str] = {OrderStatus.CANCELLED, OrderStatus.FAILED}

OTP_LENGTH = 6

ORDER_NUMBER_MAX_RETRIES = 5
