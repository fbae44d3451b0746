"""Order state machine.

Pure transition rules applied to an in-memory ``Order``.  Nothing here
touches the database; ``OrderService`` locks, persists and records
history around these calls.

``set_status`` follows ``VALID_TRANSITIONS``.  ``verify_otp`` is the only
way into ``DELIVERED`` and sets ``status`` and ``otp_verified`` together.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import InvalidTransitionError, OtpMismatchError

if TYPE_CHECKING:
    from modules.orders.models import Order


class OrderStateMachine:
    """Validates and applies order status transitions."""

    def set_status(self, order: Order, target: str) -> str:
        """Move *order* to *target*, returning the previous status.

        Raises:
            InvalidTransitionError: *target* is not reachable from the
                current status; the order is left unchanged.
        """
        if target not in OrderStatus.values:
            raise InvalidTransitionError(f"Unknown order status {target!r}.")
        if not order.can_transition_to(target):
            raise InvalidTransitionError(
                f"Cannot transition from {order.status} to {target}."
            )
        previous = order.status
        order.status = target
        return previous

    def verify_otp(self, order: Order, code: str) -> str:
        """Confirm delivery with the customer's code, returning the previous status.

        Raises:
            InvalidTransitionError: the order is not out for delivery or
                was already verified.
            OtpMismatchError: *code* is wrong; the order is left unchanged
                and the caller may retry.
        """
        if order.otp_verified:
            raise InvalidTransitionError("Delivery was already verified.")
        if not order.is_otp_eligible:
            raise InvalidTransitionError(
                f"Cannot verify delivery of an order in status {order.status}."
            )
        if not secrets.compare_digest(str(code).strip().encode(), order.otp.encode()):
            raise OtpMismatchError("Invalid OTP.")

        previous = order.status
        order.status = OrderStatus.DELIVERED
        order.otp_verified = True
        return previous
