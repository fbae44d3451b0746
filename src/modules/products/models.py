"""Product model with tiered quantity offers and stock control.

Business rules implemented:
- MRP must be greater than zero.
- Offer table always holds a base tier for quantity 1.
- Higher quantities never get a lower discount.
- ``pieces_left`` is either untracked (NULL) or non-negative.
- Products are never deleted; offer tables are superseded.

``offers`` is stored as JSON but is only ever read through
``offer_tiers``, which parses it into ``OfferTier`` records.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.pricing.dtos import OfferTier, parse_offer_table
from modules.pricing.engine import price_for_quantity
from modules.pricing.validators import validate_all_offers
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


def default_offers() -> list[dict[str, Any]]:
    return [{"quantity": 1, "discount_percent": "0.00"}]


class Product(DomainEventMixin, BaseModel):
    """Product aggregate root.

    ``mrp`` is the immutable reference price; the selling price depends on
    the purchased quantity and is always derived from ``offers``.
    """

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    weight = models.CharField(max_length=50, blank=True, default="")
    mrp = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    offers = models.JSONField(default=default_offers, encoder=DjangoJSONEncoder)
    pieces_left = models.PositiveIntegerField(null=True, blank=True, default=None)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(mrp__gt=0),
                name="products_mrp_positive",
            ),
        ]

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    @property
    def offer_tiers(self) -> list[OfferTier]:
        """Offer table parsed into tiers, sorted ascending by quantity."""
        return sorted(parse_offer_table(self.offers), key=lambda t: t.quantity)

    @property
    def price(self) -> Decimal:
        """Unit price for a single piece (base tier)."""
        return self.price_for(1)

    def price_for(self, quantity: int) -> Decimal:
        return price_for_quantity(self.offer_tiers, self.mrp, quantity)

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    @property
    def tracks_stock(self) -> bool:
        return self.pieces_left is not None

    def has_stock_for(self, quantity: int) -> bool:
        return not self.tracks_stock or self.pieces_left >= quantity

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.mrp is not None and self.mrp <= 0:
            raise ValidationError({"mrp": "MRP must be greater than zero."})
        if self.pieces_left is not None and self.pieces_left < 0:
            raise ValidationError({"pieces_left": "Stock cannot be negative."})
        if self.mrp is not None:
            errors = validate_all_offers(self.offer_tiers, self.mrp)
            if errors:
                raise ValidationError(
                    {
                        "offers": [
                            f"Quantity {quantity}: {error.message}"
                            for quantity, field_errors in sorted(errors.items())
                            for error in field_errors
                        ]
                    }
                )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product_created",
                product_id=str(self.id),
                name=self.name,
            )

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        if self.weight:
            return f"{self.name} - {self.weight}"
        return self.name
