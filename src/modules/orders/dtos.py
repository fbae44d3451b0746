"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CartItemDTO``: a product and quantity, shared by checkout and cart quotes.
- ``CreateOrderDTO``: input for checkout (nested items, delivery details).
- ``EditOrderItemsDTO``: input for a partial-delivery quantity correction.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CartItemDTO(BaseModel):
    """Immutable DTO for a single cart line.

    The client sends ``product_id`` and ``quantity``; the unit price is
    always resolved from the product's current offer table.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


def ensure_unique_products(items: Iterable[CartItemDTO]) -> None:
    """Reject a cart that lists the same product on two lines.

    A product's tier is chosen from its whole quantity, held on one line.
    """
    product_ids = [item.product_id for item in items]
    if len(product_ids) != len(set(product_ids)):
        raise ValueError("Duplicate product IDs are not allowed in the same cart.")


class CreateOrderDTO(BaseModel):
    """Immutable DTO for checkout requests.

    Validates:
    - Each item quantity must be positive.
    - The same product may not appear on two lines.

    An empty item list is accepted here and rejected by the service with
    ``EmptyCart``.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: int
    items: List[CartItemDTO]
    phone: str = ""
    address: str = ""
    note: str = ""
    idempotency_key: Optional[str] = None

    @model_validator(mode="after")
    def no_duplicate_products(self):
        """Prevent duplicate product IDs in the same order."""
        ensure_unique_products(self.items)
        return self


class EditOrderItemsDTO(BaseModel):
    """Immutable DTO mapping order item ids to their corrected quantities.

    Quantity checks belong to the partial order editor so that a bad
    payload is reported as ``InvalidOrderEdit``.
    """

    model_config = ConfigDict(frozen=True)

    quantities: Dict[UUID, int]
