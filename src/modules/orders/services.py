"""Order service layer (Use Cases).

Orchestrates checkout, status management, partial-delivery edits, OTP
delivery confirmation and customer cancellation.  All write operations
are atomic; the service defines the unit-of-work boundary.

Business rules enforced:
- Atomic stock reservation with SELECT FOR UPDATE.
- Stock released when an order is cancelled or fails.
- Partial edits return removed pieces to stock.
- Status transitions validated by ``OrderStateMachine``.
- History recorded on every status change.
- Delivery confirmed only with the order's OTP.

Products touched by one operation are always locked in primary-key
order.  Stock is only tracked for products whose ``pieces_left`` is set.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Tuple
from uuid import UUID

import structlog
from django.db import transaction

from modules.orders.constants import STOCK_RESTORING_STATES, OrderStatus
from modules.orders.editing import OrderEdit, PartialOrderEditor
from modules.orders.events import (
    OrderCreated,
    OrderDelivered,
    OrderItemsEdited,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    EmptyCart,
    InsufficientStock,
    InvalidTransitionError,
    OrderNotFound,
    OtpMismatchError,
)
from modules.orders.state_machine import OrderStateMachine
from modules.pricing.cart import compute_totals
from modules.products.exceptions import ProductNotFound

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.dtos import CreateOrderDTO, EditOrderItemsDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories via constructor injection (DIP).  Methods that
    take a ``customer_id`` restrict the operation to that customer's own
    orders; other customers' orders are reported as not found.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        state_machine: Optional[OrderStateMachine] = None,
        editor: Optional[PartialOrderEditor] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._state_machine = state_machine or OrderStateMachine()
        self._editor = editor or PartialOrderEditor()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Check out a cart, freezing each line's tier price.

        Steps:
        1. For each item (sorted by product PK to avoid deadlocks):
           - Lock product row (SELECT FOR UPDATE).
           - Validate sufficient stock when stock is tracked.
           - Deduct stock.
        2. Price every line with the cart calculator.
        3. Persist order + items atomically (order number and OTP generated).
        4. Record initial status history.

        Raises:
            EmptyCart: the cart has no items.
            ProductNotFound: a product does not exist.
            InsufficientStock: not enough stock.
        """
        log = logger.bind(customer_id=str(dto.customer_id))
        log.info("order.creation_started")

        # 0. Idempotency check
        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(
                dto.idempotency_key, dto.customer_id
            )
            if existing:
                log.info(
                    "order.idempotency_hit",
                    order_id=str(existing.id),
                    key=dto.idempotency_key,
                )
                return existing

        if not dto.items:
            raise EmptyCart("Cannot place an order without items.")

        # 1. Reserve stock, products locked in PK order
        lines = []
        for item_dto in sorted(dto.items, key=lambda i: str(i.product_id)):
            product = self._product_repo.get_for_update(str(item_dto.product_id))
            if not product:
                raise ProductNotFound(f"Product {item_dto.product_id} not found.")
            if not product.has_stock_for(item_dto.quantity):
                raise InsufficientStock(
                    f"{product.name}: requested {item_dto.quantity}, "
                    f"available {product.pieces_left}."
                )
            if product.tracks_stock:
                self._product_repo.save_stock(
                    product, product.pieces_left - item_dto.quantity
                )
                log.info(
                    "order.stock_reserved",
                    product_id=str(product.id),
                    quantity=item_dto.quantity,
                    remaining=product.pieces_left,
                )
            lines.append((product, item_dto.quantity))

        # 2. Freeze tier prices
        totals = compute_totals(lines)
        names = {product.id: product.name for product, _ in lines}

        # 3. Persist order + items
        order = self._order_repo.create(
            {
                "customer_id": dto.customer_id,
                "items": [
                    {
                        "product_id": line.product_id,
                        "name": names[line.product_id],
                        "price": line.unit_price,
                        "quantity": line.quantity,
                    }
                    for line in totals.lines
                ],
                "phone": dto.phone,
                "address": dto.address,
                "note": dto.note,
                "idempotency_key": dto.idempotency_key,
            }
        )
        order.add_domain_event(OrderCreated(aggregate_id=order.id))
        self._order_repo.save(order)

        # 4. Record initial history
        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.PENDING,
            notes="Order created",
            changed_by_id=dto.customer_id,
        )

        log.info(
            "order.created",
            order_id=str(order.id),
            total=str(order.total),
            discount=str(totals.discount),
        )
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def set_status(
        self,
        order_id: UUID,
        new_status: str,
        changed_by_id: Optional[int] = None,
        notes: str = "",
    ) -> Order:
        """Transition an order to a new status (admin).

        Acquires a row-level lock (``SELECT FOR UPDATE``) on the order
        before validating the transition, which prevents concurrent
        mutations.  Moving to CANCELLED or FAILED returns every line's
        pieces to stock.

        Raises:
            OrderNotFound: order does not exist.
            InvalidTransitionError: transition is not allowed.
        """
        order = self._locked_order(order_id)
        return self._transition(order, new_status, changed_by_id, notes)

    @transaction.atomic
    def cancel_order(self, order_id: UUID, customer_id: int, notes: str = "") -> Order:
        """Cancel a customer's own order while it is still PENDING.

        Raises:
            OrderNotFound: order does not exist or belongs to someone else.
            InvalidTransitionError: the order is no longer PENDING.
        """
        order = self._locked_order(order_id, customer_id)
        return self._transition(
            order,
            OrderStatus.CANCELLED,
            customer_id,
            notes or "Cancelled by customer",
        )

    @transaction.atomic
    def edit_items(
        self,
        order_id: UUID,
        dto: EditOrderItemsDTO,
        changed_by_id: Optional[int] = None,
    ) -> Order:
        """Correct item quantities on a partially delivered order.

        Frozen unit prices are kept; the total is recomputed.  Pieces
        removed from the order go back to stock and added pieces are
        taken from it.

        Raises:
            OrderNotFound: order does not exist.
            OrderNotEditable: the order is not PARTIAL or already verified.
            InvalidOrderEdit: a foreign item id or a negative quantity.
            NoChangesError: no quantity changed.
            InsufficientStock: an increase exceeds the tracked stock.
        """
        order = self._locked_order(order_id)
        log = logger.bind(order_id=str(order_id))

        items = list(order.items.all())
        edit = self._editor.apply_quantity_edits(order, items, dto.quantities)
        self._adjust_stock_for_edit(edit, log)

        order.add_domain_event(OrderItemsEdited(aggregate_id=order.id))
        self._order_repo.save_items(order, [change.item for change in edit.changes])

        log.info(
            "order.items_edited",
            changed_by=changed_by_id,
            item_count=len(edit.changes),
            old_total=str(edit.old_total),
            new_total=str(edit.new_total),
        )
        return self._order_repo.get_by_id(str(order_id)) or order

    @transaction.atomic
    def verify_otp(
        self,
        order_id: UUID,
        code: str,
        changed_by_id: Optional[int] = None,
        customer_id: Optional[int] = None,
    ) -> Order:
        """Confirm delivery with the customer's OTP.

        Raises:
            OrderNotFound: order does not exist (or is not the customer's).
            InvalidTransitionError: not out for delivery, or already verified.
            OtpMismatchError: wrong code; the order is unchanged.
        """
        order = self._locked_order(order_id, customer_id)
        log = logger.bind(order_id=str(order_id), current_status=order.status)

        try:
            old_status = self._state_machine.verify_otp(order, code)
        except OtpMismatchError:
            log.warning("order.otp_mismatch")
            raise

        order.add_domain_event(OrderDelivered(aggregate_id=order.id))
        self._order_repo.save_status(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.DELIVERED,
            notes="Delivery confirmed with OTP",
            old_status=old_status,
            changed_by_id=changed_by_id,
        )

        log.info("order.otp_verified")
        return self._order_repo.get_by_id(str(order_id)) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str, customer_id: Optional[int] = None) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist (or is not the
                customer's).
        """
        order = self._order_repo.get_by_id(order_id)
        if not order or (customer_id is not None and order.customer_id != customer_id):
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(
        self,
        filters: Optional[Dict[str, Any]] = None,
        customer_id: Optional[int] = None,
    ) -> QuerySet[Order]:
        """Return orders, optionally filtered and limited to one customer."""
        filters = dict(filters or {})
        if customer_id is not None:
            filters["customer_id"] = customer_id
        return self._order_repo.list(filters)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _locked_order(self, order_id: Any, customer_id: Optional[int] = None) -> Order:
        order = self._order_repo.get_for_update(str(order_id))
        if not order or (customer_id is not None and order.customer_id != customer_id):
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def _transition(
        self,
        order: Order,
        new_status: str,
        changed_by_id: Optional[int],
        notes: str,
    ) -> Order:
        log = logger.bind(
            order_id=str(order.id),
            current_status=order.status,
            new_status=new_status,
        )

        try:
            old_status = self._state_machine.set_status(order, new_status)
        except InvalidTransitionError:
            log.warning("order.invalid_transition")
            raise

        if new_status in STOCK_RESTORING_STATES:
            restocks = defaultdict(int)
            for item in order.items.all():
                restocks[item.product_id] += item.quantity
            self._apply_stock_deltas(restocks.items(), log)

        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                old_status=old_status,
                new_status=new_status,
            )
        )
        self._order_repo.save_status(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=new_status,
            notes=notes,
            old_status=old_status,
            changed_by_id=changed_by_id,
        )

        log.info("order.status_updated")
        return self._order_repo.get_by_id(str(order.id)) or order

    def _adjust_stock_for_edit(self, edit: OrderEdit, log: Any) -> None:
        returned = defaultdict(int)
        for change in edit.changes:
            returned[change.item.product_id] -= change.delta
        self._apply_stock_deltas(returned.items(), log)

    def _apply_stock_deltas(self, deltas: Iterable[Tuple[Any, int]], log: Any) -> None:
        """Add each delta to its product's stock, locking products in PK order.

        Positive deltas return pieces; negative deltas take pieces.
        Untracked and missing products are skipped.

        Raises:
            InsufficientStock: a negative delta exceeds the tracked stock.
        """
        for product_id, delta in sorted(deltas, key=lambda pair: str(pair[0])):
            if not delta:
                continue
            product: Optional[Product] = self._product_repo.get_for_update(
                str(product_id)
            )
            if not product or not product.tracks_stock:
                continue
            if product.pieces_left + delta < 0:
                raise InsufficientStock(
                    f"{product.name}: requested {-delta} more, "
                    f"available {product.pieces_left}."
                )
            self._product_repo.save_stock(product, product.pieces_left + delta)
            log.info(
                "order.stock_adjusted",
                product_id=str(product.id),
                delta=delta,
                pieces_left=product.pieces_left,
            )
