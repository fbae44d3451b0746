from django.apps import AppConfig


class ProductsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.products"
    label = "products"

    def ready(self) -> None:
        from modules.products.events import ProductOffersUpdated, ProductStockUpdated
        from modules.products.handlers import (
            product_offers_updated_handler,
            product_stock_updated_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(ProductOffersUpdated, product_offers_updated_handler)
        event_bus.subscribe(ProductStockUpdated, product_stock_updated_handler)
