import django_filters

from modules.orders.constants import OrderStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    """Query-string filters for the order list.

    ``status`` accepts several values (``?status=PENDING&status=SHIPPED``);
    ``product`` keeps orders that contain at least one line of that product.
    """

    status = django_filters.MultipleChoiceFilter(choices=OrderStatus.choices)
    order_number = django_filters.CharFilter(lookup_expr="iexact")
    customer = django_filters.NumberFilter(field_name="customer_id")
    product = django_filters.UUIDFilter(field_name="items__product", distinct=True)
    placed_after = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    placed_before = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_total = django_filters.NumberFilter(field_name="total", lookup_expr="gte")

    class Meta:
        model = Order
        fields = ["status", "order_number", "customer", "product"]
