"""Partial order editor.

When a delivery is only partly accepted the admin corrects the item
quantities before the customer confirms with the OTP.  The editor
applies those corrections to in-memory items; persistence and stock
adjustment are left to ``OrderService``.

Unit prices frozen at checkout are kept; only quantities, subtotals and
the order total change.  Items edited down to zero stay on the order.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Sequence, Tuple

from modules.orders.exceptions import InvalidOrderEdit, NoChangesError, OrderNotEditable

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem


@dataclass(frozen=True)
class QuantityChange:
    item: OrderItem
    old_quantity: int
    new_quantity: int

    @property
    def delta(self) -> int:
        """Pieces taken from stock (positive) or returned to it (negative)."""
        return self.new_quantity - self.old_quantity


@dataclass(frozen=True)
class OrderEdit:
    order: Order
    changes: Tuple[QuantityChange, ...]
    old_total: Decimal
    new_total: Decimal


class PartialOrderEditor:
    """Applies quantity edits to the items of a partially delivered order."""

    def apply_quantity_edits(
        self,
        order: Order,
        items: Sequence[OrderItem],
        edits: Mapping[Any, Any],
    ) -> OrderEdit:
        """Replace item quantities and recompute ``order.total``.

        *edits* maps item ids to their new quantities; a ``UUID`` key and its
        string form name the same item.  Nothing is mutated unless every
        edit is valid and at least one quantity changes.

        Raises:
            OrderNotEditable: the order is not PARTIAL or is already verified.
            InvalidOrderEdit: an id does not belong to the order, an item is
                given two different quantities, or a quantity is not a
                non-negative integer.
            NoChangesError: every quantity equals its stored value.
        """
        if not order.is_editable:
            raise OrderNotEditable(
                f"Order {order.order_number} cannot be edited in status "
                f"{order.status}."
            )

        normalized: Dict[str, Any] = {}
        for item_id, quantity in edits.items():
            key = str(item_id)
            if key in normalized and normalized[key] != quantity:
                raise InvalidOrderEdit(f"Item {item_id} has conflicting quantities.")
            normalized[key] = quantity

        by_id: Dict[str, OrderItem] = {str(item.id): item for item in items}
        planned: List[Tuple[OrderItem, int]] = []
        for item_id, quantity in normalized.items():
            item = by_id.get(item_id)
            if item is None:
                raise InvalidOrderEdit(f"Item {item_id} does not belong to this order.")
            if isinstance(quantity, bool) or not isinstance(quantity, int):
                raise InvalidOrderEdit(f"Quantity for item {item_id} must be an integer.")
            if quantity < 0:
                raise InvalidOrderEdit(f"Quantity for item {item_id} cannot be negative.")
            if quantity != item.quantity:
                planned.append((item, quantity))

        if not planned:
            raise NoChangesError("No item quantity was changed.")

        changes = []
        for item, quantity in planned:
            changes.append(
                QuantityChange(item=item, old_quantity=item.quantity, new_quantity=quantity)
            )
            item.quantity = quantity
            item.subtotal = item.price * quantity

        old_total = order.total
        order.total = sum(
            (item.price * item.quantity for item in items), Decimal("0.00")
        )
        return OrderEdit(
            order=order,
            changes=tuple(changes),
            old_total=old_total,
            new_total=order.total,
        )
