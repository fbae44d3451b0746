"""Domain events for the Products bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class ProductOffersUpdated(DomainEvent):
    """Raised when a product's offer table is replaced."""


@dataclass(frozen=True)
class ProductStockUpdated(DomainEvent):
    """Raised when an admin sets a product's stock level."""
