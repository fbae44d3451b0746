"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when a customer checks out."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when ``set_status`` or a customer cancellation moves an order."""

    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderDelivered(DomainEvent):
    """Raised when the customer's OTP confirms delivery."""


@dataclass(frozen=True)
class OrderItemsEdited(DomainEvent):
    """Raised when an admin corrects item quantities on a partial delivery."""
