"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` so the
Order aggregate (Order + OrderItems) is persisted atomically, and
database failures surface as ``PersistenceError``.

Concurrency control on status and item updates uses
``select_for_update()`` through ``get_for_update``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional, Sequence
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import QuerySet

from modules.core.exceptions import PersistenceError
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository
from shared.infrastructure.outbox import record_domain_events

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` keys:
        - ``customer_id`` (required)
        - ``items`` (required): list of dicts with ``product_id``,
          ``name``, ``price``, ``quantity``
        - ``phone``, ``address``, ``note``, ``idempotency_key`` (optional)
        """
        items = data.get("items", [])
        try:
            order = Order(
                customer_id=data["customer_id"],
                phone=data.get("phone", ""),
                address=data.get("address", ""),
                note=data.get("note", ""),
                idempotency_key=data.get("idempotency_key"),
            )
            order.save()

            total = Decimal("0.00")
            for item_data in items:
                item = OrderItem(
                    order=order,
                    product_id=item_data["product_id"],
                    name=item_data["name"],
                    price=item_data["price"],
                    quantity=item_data["quantity"],
                )
                item.save()
                total += item.subtotal

            order.total = total
            order.save(update_fields=["total"])
        except DatabaseError as exc:
            logger.error("order.create_failed", customer_id=str(data["customer_id"]))
            raise PersistenceError("Could not create the order.") from exc

        logger.info("order.persisted", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Uses ``select_related`` for the customer FK (single JOIN) and
        ``prefetch_related`` for items and status history (separate
        batched queries).  Prevents N+1.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_related("customer")
                .prefetch_related("items", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Eager-loads items so the caller can iterate over them while the
        row is locked.  Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        """List orders with optional filters and eager-loaded relations.

        Supported filter keys include:
        - ``status``
        - ``customer_id``
        - ``created_at__range``
        """
        queryset = Order.objects.select_related("customer").prefetch_related("items")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_by_idempotency_key(self, key: str, customer_id: int) -> Optional[Order]:
        """Retrieve *customer_id*'s order placed with idempotency *key*.

        Keys are scoped per customer; another customer's key never matches.
        """
        return (
            Order.objects.select_related("customer")
            .prefetch_related("items", "status_history")
            .filter(idempotency_key=key, customer_id=customer_id)
            .first()
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist (create or update) an order and its pending events."""
        try:
            entity.save()
            event_count = record_domain_events(entity, topic="orders")
        except DatabaseError as exc:
            logger.error("order.save_failed", order_id=str(entity.id))
            raise PersistenceError(f"Could not save order {entity.id}.") from exc
        logger.info("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    @transaction.atomic
    def save_status(self, order: Order) -> Order:
        try:
            order.save(update_fields=["status", "otp_verified"])
            record_domain_events(order, topic="orders")
        except DatabaseError as exc:
            logger.error("order.status_save_failed", order_id=str(order.id))
            raise PersistenceError(f"Could not update order {order.id}.") from exc
        return order

    @transaction.atomic
    def save_items(self, order: Order, items: Sequence[OrderItem]) -> Order:
        try:
            for item in items:
                item.save(update_fields=["quantity"])
            order.save(update_fields=["total"])
            record_domain_events(order, topic="orders")
        except DatabaseError as exc:
            logger.error("order.items_save_failed", order_id=str(order.id))
            raise PersistenceError(f"Could not update order {order.id}.") from exc
        logger.info("order.items_saved", order_id=str(order.id), item_count=len(items))
        return order

    @transaction.atomic
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        changed_by_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        try:
            history = OrderStatusHistory.objects.create(
                order_id=order_id,
                old_status=old_status,
                new_status=status,
                notes=notes,
                changed_by_id=changed_by_id,
            )
        except DatabaseError as exc:
            raise PersistenceError(
                f"Could not record history for order {order_id}."
            ) from exc

        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history
