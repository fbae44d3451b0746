"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Error handling follows the Null Object pattern for reads: methods return
``None`` instead of raising and the Service Layer decides how to translate
a missing entity.  Writes translate database failures into
``PersistenceError``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import structlog
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import QuerySet

from modules.core.exceptions import PersistenceError
from modules.pricing.dtos import OfferTier, dump_offer_table
from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository
from shared.infrastructure.outbox import record_domain_events

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a product by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Product]:
        """List products with optional Django ORM look-ups.

        Examples of valid filters::

            {"name__icontains": "rice"}
            {"pieces_left__lte": 5}
        """
        queryset = Product.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        """Persist (create or update) a product and its pending events."""
        try:
            entity.save()
            event_count = record_domain_events(entity, topic="products")
        except DatabaseError as exc:
            logger.error("product.save_failed", product_id=str(entity.id))
            raise PersistenceError(f"Could not save product {entity.id}.") from exc
        logger.info(
            "product.saved",
            product_id=str(entity.id),
            event_count=event_count,
        )
        return entity

    @transaction.atomic
    def save_offers(self, product: Product, offers: Sequence[OfferTier]) -> Product:
        product.offers = dump_offer_table(offers)
        return self._save_fields(product, ["offers"])

    @transaction.atomic
    def save_stock(self, product: Product, pieces_left: Optional[int]) -> Product:
        product.pieces_left = pieces_left
        return self._save_fields(product, ["pieces_left"])

    def _save_fields(self, product: Product, fields: List[str]) -> Product:
        try:
            product.save(update_fields=fields)
            record_domain_events(product, topic="products")
        except DatabaseError as exc:
            logger.error(
                "product.update_failed",
                product_id=str(product.id),
                fields=fields,
            )
            raise PersistenceError(f"Could not update product {product.id}.") from exc
        logger.info("product.updated", product_id=str(product.id), fields=fields)
        return product
