from django.apps import AppConfig


class CartConfig(AppConfig):
    name = "modules.cart"
    label = "cart"
