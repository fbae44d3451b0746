"""Cart URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.cart.views import CartTotalsView

urlpatterns = [
    path("cart/totals/", CartTotalsView.as_view(), name="cart-totals"),
]
