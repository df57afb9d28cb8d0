"""App configuration for the experiences app."""

from django.apps import AppConfig


class ExperiencesConfig(AppConfig):
    """Configuration for the experiences app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.experiences'
    label = 'experiences'
