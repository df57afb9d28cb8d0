"""App configuration for the partners app."""

from django.apps import AppConfig


class PartnersConfig(AppConfig):
    """Configuration for the partners app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.partners'
    label = 'partners'
