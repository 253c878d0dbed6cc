"""Back-office app configuration."""

from django.apps import AppConfig


class BackofficeConfig(AppConfig):
    """Django app config for admin-only marketplace entities."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backoffice'
