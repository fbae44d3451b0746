"""Order domain exceptions.

Raised by the state machine, the partial order editor and the Service
Layer when business rules are violated.  The API layer (Views) catches
these and translates them into appropriate HTTP responses.
"""

from __future__ import annotations

from modules.core.exceptions import NotFoundError


class OrderNotFound(NotFoundError):
    """The requested order does not exist."""


class InvalidTransitionError(Exception):
    """An invalid status transition was attempted."""


class OtpMismatchError(Exception):
    """The delivery code does not match; the order is unchanged."""


class OrderNotEditable(Exception):
    """Item quantities can only change on a PARTIAL, unverified order."""


class InvalidOrderEdit(Exception):
    """An edit names a foreign item or a negative/non-integer quantity."""


class NoChangesError(Exception):
    """An edit did not change any item quantity."""


class InsufficientStock(Exception):
    """Not enough stock to fulfil the order."""


class EmptyCart(Exception):
    """Checkout was attempted without any items."""
