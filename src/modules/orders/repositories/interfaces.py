"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the Order aggregate
needs: atomic checkout with frozen items, per-field-group writes for
status and item edits, status history tracking, and idempotency-key
look-up.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderItem, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``customer_id`` and ``items`` (list of dicts
        with ``product_id``, ``name``, ``price``, ``quantity``), and
        optionally ``phone``, ``address``, ``note`` and ``idempotency_key``.
        The order number and OTP are generated on save.
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched items and status history."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        """List orders with optional filters."""

    @abstractmethod
    def save_status(self, order: Order) -> Order:
        """Persist ``status`` and ``otp_verified`` plus pending events."""

    @abstractmethod
    def save_items(self, order: Order, items: Sequence[OrderItem]) -> Order:
        """Persist edited item quantities and the recomputed order total."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        changed_by_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str, customer_id: int) -> Optional[Order]:
        """Retrieve the customer's order placed with idempotency *key*."""
