"""Order, OrderItem, and OrderStatusHistory models.

Business rules implemented:
- Invalid status transitions rejected (enforced by the
  order state machine).
- Each status change generates a history record.
- History contains old/new status, timestamp, user, and notes.
- Delivery requires the 6-digit OTP issued at checkout.
- Idempotency keys are unique per customer, never across customers.
- Order number auto-generated as human-readable identifier.
- Customer FK uses PROTECT to preserve financial history.
- OrderItem snapshots product name and unit price at checkout (``price``).
- OrderItem subtotal is always ``quantity * price`` (calculated on save).
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

from django.conf import settings
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    OTP_ELIGIBLE_STATES,
    OTP_LENGTH,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
)
from shared.domain.events import DomainEventMixin


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references and API lookups.

    ``otp`` is generated once on first save and never changes.
    ``otp_verified`` only ever moves from ``False`` to ``True``, together
    with the move to ``DELIVERED``.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    customer: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    otp: models.CharField = models.CharField(
        max_length=OTP_LENGTH, editable=False
    )
    otp_verified: models.BooleanField = models.BooleanField(default=False)
    total: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    phone: models.CharField = models.CharField(max_length=20, blank=True, default="")
    address: models.TextField = models.TextField(blank=True, default="")
    note: models.TextField = models.TextField(blank=True, default="")
    idempotency_key: models.CharField = models.CharField(
        max_length=255,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["customer", "idempotency_key"],
                name="orders_customer_idempotency_key_uniq",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    @property
    def is_otp_eligible(self) -> bool:
        """Return ``True`` if delivery can be confirmed with the OTP now."""
        return self.status in OTP_ELIGIBLE_STATES and not self.otp_verified

    @property
    def is_editable(self) -> bool:
        """Item quantities may only change on a partial, unconfirmed delivery."""
        return self.status == OrderStatus.PARTIAL and not self.otp_verified

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether ``set_status`` may move the order to *new_status*."""
        allowed = VALID_TRANSITIONS.get(self.status, set())
        return new_status in allowed

    # ------------------------------------------------------------------
    # Generated identifiers
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    @staticmethod
    def generate_otp() -> str:
        """Generate a delivery code in ``100000``-``999999``."""
        low = 10 ** (OTP_LENGTH - 1)
        return str(low + secrets.randbelow(9 * low))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        if not self.otp:
            self.otp = self.generate_otp()
        super().save(*args, **kwargs)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item linking an Order to a Product.

    ``name`` and ``price`` are a **snapshot** of the product at checkout;
    ``price`` is the tier price for the purchased quantity and never
    changes afterwards, not even when the quantity is edited.
    ``subtotal`` is always ``quantity * price``, recalculated on every save.

    ``quantity`` may drop to zero on a partial delivery; such lines stay on
    the order.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    name: models.CharField = models.CharField(max_length=255)
    price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(default=1)
    subtotal: models.DecimalField = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name="order_items_quantity_non_negative",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.subtotal = self.quantity * self.price
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "subtotal" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["subtotal"]
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity} ({self.subtotal})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    Each record captures a single status change with the responsible user
    and optional notes (e.g. cancellation reason).  ``changed_by`` is
    nullable: ``None`` means the change was performed by the system.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    changed_by: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"
