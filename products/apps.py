"""Products app configuration."""

from django.apps import AppConfig


class ProductsConfig(AppConfig):
    """Django app config for the catalog: categories and vendor products."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'products'
    verbose_name = 'Catalog'
