from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.orders.constants import OrderStatus
from modules.orders.dtos import CartItemDTO, CreateOrderDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.pricing.dtos import OfferTier
from modules.products.dtos import CreateProductDTO
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import ProductService


def _tiers(*pairs: tuple[int, str]) -> list[OfferTier]:
    return [OfferTier(quantity=q, discount_percent=Decimal(d)) for q, d in pairs]


CATALOG = [
    ("Basmati Rice", "5 kg", Decimal("650.00"), _tiers((1, "0"), (2, "5"), (5, "10")), 120),
    ("Toor Dal", "1 kg", Decimal("180.00"), _tiers((1, "0"), (3, "5"), (6, "8")), 200),
    ("Cold Pressed Groundnut Oil", "1 L", Decimal("320.00"), _tiers((1, "0"), (4, "7.5")), 150),
    ("Alphonso Mangoes", "1 dozen", Decimal("900.00"), _tiers((1, "0"), (2, "10")), 100),
    ("Masala Chai Blend", "250 g", Decimal("240.00"), _tiers((1, "0"), (3, "10"), (10, "20")), None),
    ("Handloom Cotton Towel", "", Decimal("350.00"), _tiers((1, "0"), (5, "15")), 100),
    ("Clay Water Pot", "5 L", Decimal("450.00"), _tiers((1, "0")), 100),
    ("Organic Jaggery", "1 kg", Decimal("120.00"), _tiers((1, "0"), (5, "5"), (12, "12.5")), 300),
]

CUSTOMERS = ["priya", "rahul", "ananya", "vikram", "meera"]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created, customers = self._seed_users()
        products = self._seed_products()
        orders_created = self._seed_orders(customers, products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self):
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="manager").exists():
            User.objects.create_user("manager", password="manager123", is_staff=True)
            created += 1

        customers = []
        for username in CUSTOMERS:
            user, was_created = User.objects.get_or_create(username=username)
            if was_created:
                user.set_password(f"{username}123")
                user.save(update_fields=["password"])
                created += 1
            customers.append(user)
        return created, customers

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        service = ProductService(repository=ProductDjangoRepository())
        products: list[Product] = []
        for name, weight, mrp, offers, pieces_left in CATALOG:
            product = Product.objects.filter(name=name).first()
            if product is None:
                product = service.create_product(
                    CreateProductDTO(
                        name=name,
                        weight=weight,
                        mrp=mrp,
                        offers=offers,
                        pieces_left=pieces_left,
                    )
                )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, customers, products: list[Product]) -> int:
        self.stdout.write("Creating orders...")
        if not customers or not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no customers/products)."))
            return 0

        service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )
        fulfilment_paths = [
            [],
            [OrderStatus.SHIPPED],
            [OrderStatus.CANCELLED],
            [OrderStatus.SHIPPED, OrderStatus.PARTIAL],
            [OrderStatus.SHIPPED, OrderStatus.FAILED],
        ]

        orders_created = 0
        for i in range(20):
            key = f"seed-order-{i + 1}"
            customer = customers[i % len(customers)]
            if OrderDjangoRepository().get_by_idempotency_key(key, customer.pk):
                continue

            lines = random.sample(products, k=random.randint(1, 3))
            order = service.create_order(
                CreateOrderDTO(
                    customer_id=customer.pk,
                    items=[
                        CartItemDTO(product_id=p.id, quantity=random.randint(1, 4))
                        for p in lines
                    ],
                    phone=f"98{random.randint(10000000, 99999999)}",
                    address=f"{random.randint(1, 200)} MG Road, Pune",
                    idempotency_key=key,
                )
            )
            for new_status in random.choice(fulfilment_paths):
                order = service.set_status(order.id, new_status, notes="Seed data")
            if order.status == OrderStatus.SHIPPED and random.random() < 0.5:
                service.verify_otp(order.id, order.otp)
            orders_created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
