import django_filters
from django.db.models import Q

from modules.products.models import Product


class ProductFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    min_mrp = django_filters.NumberFilter(field_name="mrp", lookup_expr="gte")
    max_mrp = django_filters.NumberFilter(field_name="mrp", lookup_expr="lte")
    in_stock = django_filters.BooleanFilter(method="filter_in_stock")

    class Meta:
        model = Product
        fields = ["name", "min_mrp", "max_mrp", "in_stock"]

    def filter_in_stock(self, queryset, name, value):
        untracked_or_available = Q(pieces_left__isnull=True) | Q(pieces_left__gt=0)
        if value:
            return queryset.filter(untracked_or_available)
        return queryset.exclude(untracked_or_available)
