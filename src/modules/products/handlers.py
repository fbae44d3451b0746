"""Event handlers for Products domain events."""

from __future__ import annotations

import structlog

from modules.products.events import ProductOffersUpdated, ProductStockUpdated
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class ProductOffersUpdatedHandler(IEventHandler[ProductOffersUpdated]):
    def handle(self, event: ProductOffersUpdated) -> None:
        logger.info(
            "product.event.offers_updated",
            product_id=str(event.aggregate_id),
        )


class ProductStockUpdatedHandler(IEventHandler[ProductStockUpdated]):
    def handle(self, event: ProductStockUpdated) -> None:
        logger.info(
            "product.event.stock_updated",
            product_id=str(event.aggregate_id),
        )


product_offers_updated_handler = ProductOffersUpdatedHandler()
product_stock_updated_handler = ProductStockUpdatedHandler()
