"""Cart service layer (Use Cases).

Quotes a cart against the products' *current* offer tables.  Carts are
not persisted; nothing here writes to the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

import structlog

from modules.orders.dtos import ensure_unique_products
from modules.pricing.cart import compute_totals
from modules.products.exceptions import ProductNotFound

if TYPE_CHECKING:
    from modules.orders.dtos import CartItemDTO
    from modules.pricing.dtos import CartTotalsDTO
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class CartService:
    """Application service for cart quotes.

    Receives an ``IProductRepository`` via constructor injection (DIP).
    """

    def __init__(self, product_repository: IProductRepository) -> None:
        self._product_repo = product_repository

    def quote(self, items: Iterable[CartItemDTO]) -> CartTotalsDTO:
        """Price every line at its tier price and total the cart.

        Raises:
            ValueError: the same product appears on two lines.
            ProductNotFound: a product in the cart does not exist.
        """
        items = list(items)
        ensure_unique_products(items)

        lines = []
        for item in items:
            product = self._product_repo.get_by_id(str(item.product_id))
            if not product:
                raise ProductNotFound(f"Product {item.product_id} not found.")
            lines.append((product, item.quantity))

        totals = compute_totals(lines)
        logger.info(
            "cart.quoted",
            line_count=len(totals.lines),
            subtotal=str(totals.subtotal),
            total=str(totals.total),
        )
        return totals
