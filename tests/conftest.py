from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.orders.dtos import CartItemDTO, CreateOrderDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.pricing.dtos import OfferTier
from modules.products.dtos import CreateProductDTO
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import ProductService

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        username="shopkeeper", password="testpass123", is_staff=True
    )


@pytest.fixture()
def customer_user():
    return User.objects.create_user(username="priya", password="testpass123")


@pytest.fixture()
def other_customer():
    return User.objects.create_user(username="rahul", password="testpass123")


@pytest.fixture()
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture()
def customer_client(customer_user):
    client = APIClient()
    client.force_authenticate(user=customer_user)
    return client


@pytest.fixture()
def other_client(other_customer):
    client = APIClient()
    client.force_authenticate(user=other_customer)
    return client


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def tiers(pairs):
    """Build an offer table from ``{quantity: discount}``."""
    return [
        OfferTier(quantity=quantity, discount_percent=Decimal(str(discount)))
        for quantity, discount in pairs.items()
    ]


@pytest.fixture()
def product_service():
    return ProductService(repository=ProductDjangoRepository())


@pytest.fixture()
def make_product(product_service):
    """Factory creating products through the service (offers validated)."""

    def _make(
        name="Basmati Rice",
        mrp="1000.00",
        offers=None,
        pieces_left=None,
        weight="",
    ):
        return product_service.create_product(
            CreateProductDTO(
                name=name,
                mrp=Decimal(mrp),
                weight=weight,
                offers=tiers(offers or {1: 0}),
                pieces_left=pieces_left,
            )
        )

    return _make


@pytest.fixture()
def rice(make_product):
    """MRP 1000 with tiers {1: 0, 5: 10, 10: 20} and 50 pieces in stock."""
    return make_product(
        name="Basmati Rice", mrp="1000.00", offers={1: 0, 5: 10, 10: 20}, pieces_left=50
    )


@pytest.fixture()
def dal(make_product):
    """MRP 200, single base tier, stock untracked."""
    return make_product(name="Toor Dal", mrp="200.00", offers={1: 0})


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_service():
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


@pytest.fixture()
def place_order(order_service, customer_user):
    """Factory checking out ``[(product, quantity), ...]`` for a customer."""

    def _place(lines, customer=None, idempotency_key=None):
        return order_service.create_order(
            CreateOrderDTO(
                customer_id=(customer or customer_user).pk,
                items=[
                    CartItemDTO(product_id=product.id, quantity=quantity)
                    for product, quantity in lines
                ],
                phone="9876543210",
                address="12 MG Road, Pune",
                idempotency_key=idempotency_key,
            )
        )

    return _place
