"""Shops app configuration."""

from django.apps import AppConfig


class ShopsConfig(AppConfig):
    """Django app config for vendor shops and onboarding."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'shops'
