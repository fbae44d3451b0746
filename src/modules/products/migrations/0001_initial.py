from decimal import Decimal

import django.core.serializers.json
import django.core.validators
import uuid6
from django.db import migrations, models

import modules.products.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("weight", models.CharField(blank=True, default="", max_length=50)),
                (
                    "mrp",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0.01"))
                        ],
                    ),
                ),
                (
                    "offers",
                    models.JSONField(
                        default=modules.products.models.default_offers,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                    ),
                ),
                (
                    "pieces_left",
                    models.PositiveIntegerField(blank=True, default=None, null=True),
                ),
            ],
            options={
                "db_table": "products",
                "ordering": ["name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(mrp__gt=0),
                        name="products_mrp_positive",
                    ),
                ],
            },
        ),
    ]
