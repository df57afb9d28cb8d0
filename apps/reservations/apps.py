"""App configuration for the reservations app."""

import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class ReservationsConfig(AppConfig):
    """Configuration for the reservations app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.reservations'
    label = 'reservations'

    services = None

    def ready(self):
        from .services import build_services

        self.services = build_services()
        logger.info("🧾 [RESERVATION] Lifecycle services ready")
