"""Product service layer (Use Cases).

Orchestrates admin edits of the product catalog, delegating persistence
to the injected ``IProductRepository``.

Business rules enforced here:
- MRP must be greater than zero (validated by DTO).
- Offer tables are validated as a whole before any tier
  is persisted; a table with any error is rejected entirely.
- Stock cannot be negative (validated by DTO).

Offer and stock edits lock the product row first so concurrent edits of
the same product are serialised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

import structlog
from django.db import transaction

from modules.pricing.adjustments import MarkDone, OfferAdjustment, Submit, reduce
from modules.pricing.dtos import OfferTier, dump_offer_table
from modules.pricing.engine import price_for_discount
from modules.pricing.exceptions import OfferValidationFailed
from modules.pricing.validators import ensure_valid_offers, validate_all_offers
from modules.products.dtos import OfferPreviewDTO, TierPriceDTO, UpdateOffersDTO
from modules.products.events import ProductOffersUpdated, ProductStockUpdated
from modules.products.exceptions import ProductNotFound
from modules.products.models import Product

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.products.dtos import CreateProductDTO, UpdateStockDTO
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for Product use-cases.

    Receives an ``IProductRepository`` via constructor injection (DIP).
    """

    def __init__(self, repository: IProductRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Create a new product with a validated offer table.

        Raises:
            OfferValidationFailed: the initial offer table is invalid.
        """
        log = logger.bind(name=dto.name)

        tiers = self._validated(dto.offers, dto.mrp, log)
        product = Product(
            name=dto.name,
            description=dto.description,
            weight=dto.weight,
            mrp=dto.mrp,
            pieces_left=dto.pieces_left,
        )
        product.offers = dump_offer_table(tiers)
        product = self._repo.save(product)
        log.info("product.created", product_id=str(product.id))
        return product

    @transaction.atomic
    def update_offers(self, id: str, dto: UpdateOffersDTO) -> Product:
        """Replace a product's offer table after validating every tier.

        Raises:
            ProductNotFound: the product does not exist.
            OfferValidationFailed: at least one tier is invalid; nothing
                is written.
        """
        product = self._repo.get_for_update(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")

        log = logger.bind(product_id=str(id))
        tiers = self._validated(dto.offers, product.mrp, log)

        product.add_domain_event(ProductOffersUpdated(aggregate_id=product.id))
        product = self._repo.save_offers(product, tiers)
        log.info("product.offers_updated", tier_count=len(tiers))
        return product

    def commit_adjustment(self, adjustment: OfferAdjustment) -> OfferAdjustment:
        """Validate and persist an offer adjustment session.

        Returns the adjustment marked ``done``.  On validation failure the
        exception carries the same error map the adjustment would show.

        Raises:
            ProductNotFound: the product does not exist.
            OfferValidationFailed: the adjusted table is invalid.
        """
        submitted = reduce(adjustment, Submit())
        if submitted.errors:
            raise OfferValidationFailed(
                {quantity: list(errs) for quantity, errs in submitted.errors.items()}
            )
        self.update_offers(
            str(submitted.product_id), UpdateOffersDTO(offers=list(submitted.offers))
        )
        return reduce(submitted, MarkDone())

    @transaction.atomic
    def update_stock(self, id: str, dto: UpdateStockDTO) -> Product:
        """Set a product's stock level.

        Raises:
            ProductNotFound: the product does not exist.
        """
        product = self._repo.get_for_update(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")

        product.add_domain_event(ProductStockUpdated(aggregate_id=product.id))
        product = self._repo.save_stock(product, dto.pieces_left)
        logger.info(
            "product.stock_updated",
            product_id=str(id),
            pieces_left=dto.pieces_left,
        )
        return product

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def preview_offers(self, id: str, offers: Iterable[OfferTier]) -> OfferPreviewDTO:
        """Price a draft offer table without persisting it.

        Raises:
            ProductNotFound: the product does not exist.
        """
        product = self.get_product(id)
        tiers = sorted(offers, key=lambda t: t.quantity)
        return OfferPreviewDTO(
            mrp=product.mrp,
            tiers=[
                TierPriceDTO(
                    quantity=tier.quantity,
                    discount_percent=tier.discount_percent,
                    unit_price=price_for_discount(product.mrp, tier.discount_percent),
                )
                for tier in tiers
            ],
            errors=validate_all_offers(tiers, product.mrp),
        )

    def list_products(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> QuerySet[Product]:
        """Return a list of products, optionally filtered."""
        return self._repo.list(filters)

    def get_product(self, id: str) -> Product:
        """Retrieve a single product by ID.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validated(offers: Iterable[OfferTier], mrp: Any, log: Any) -> List[OfferTier]:
        try:
            return ensure_valid_offers(offers, mrp)
        except OfferValidationFailed as exc:
            log.warning("product.offers_rejected", quantities=sorted(exc.errors))
            raise
