"""Product repository interface.

Extends ``IRepository[Product]`` with the writes the offer and stock
use-cases need.  Each write replaces one field group atomically.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.pricing.dtos import OfferTier
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Product]:
        """List products with optional filters."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Product]:
        """Retrieve a product with a row-level lock (SELECT FOR UPDATE).

        Used by offer/stock edits and by the order service for atomic
        stock reservation and release.  Returns ``None`` if the product
        does not exist.
        """

    @abstractmethod
    def save_offers(self, product: Product, offers: Sequence[OfferTier]) -> Product:
        """Replace the product's whole offer table."""

    @abstractmethod
    def save_stock(self, product: Product, pieces_left: Optional[int]) -> Product:
        """Set the product's stock level (``None`` = untracked)."""
