"""Product DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateProductDTO``: input for product creation.
- ``UpdateOffersDTO``: input for replacing a product's offer table.
- ``UpdateStockDTO``: input for setting ``pieces_left``.
- ``TierPriceDTO`` / ``OfferPreviewDTO``: output of the admin price preview.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.pricing.dtos import FieldError, OfferTier

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation requests.

    Validates:
    - ``name`` is a non-empty string.
    - ``mrp`` is a Decimal greater than zero.
    - ``pieces_left`` is non-negative when tracked.

    The offer table itself is checked by the offer validator in the
    service so that all tier errors are reported together.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    mrp: Decimal
    description: str = ""
    weight: str = ""
    offers: List[OfferTier] = Field(
        default_factory=lambda: [OfferTier(quantity=1, discount_percent=Decimal("0"))]
    )
    pieces_left: Optional[int] = None

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip()

    @field_validator("mrp")
    @classmethod
    def mrp_must_be_positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("MRP must be greater than zero.")
        return v

    @field_validator("pieces_left")
    @classmethod
    def stock_must_be_non_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Stock cannot be negative.")
        return v


class UpdateOffersDTO(BaseModel):
    """Immutable DTO carrying a complete replacement offer table."""

    model_config = ConfigDict(frozen=True)

    offers: List[OfferTier]


class UpdateStockDTO(BaseModel):
    """Immutable DTO for stock edits.  ``None`` stops tracking stock."""

    model_config = ConfigDict(frozen=True)

    pieces_left: Optional[int]

    @field_validator("pieces_left")
    @classmethod
    def stock_must_be_non_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("Stock cannot be negative.")
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class TierPriceDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    quantity: int
    discount_percent: Decimal
    unit_price: Decimal


class OfferPreviewDTO(BaseModel):
    """Live price preview of a draft offer table; nothing is persisted."""

    model_config = ConfigDict(frozen=True)

    mrp: Decimal
    tiers: List[TierPriceDTO]
    errors: Dict[int, List[FieldError]]

    @property
    def is_valid(self) -> bool:
        return not self.errors
