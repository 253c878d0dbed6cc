"""Cart app configuration."""

from django.apps import AppConfig


class CartConfig(AppConfig):
    """Session-held cart, favorites and search history (no models)."""

    name = 'cart'
    verbose_name = 'Cart and favorites'
