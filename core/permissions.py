"""Custom DRF permissions shared across the platform."""

import hmac
import logging

from django.conf import settings
from rest_framework import permissions

logger = logging.getLogger(__name__)


class CronSecretPermission(permissions.BasePermission):
    """
    Gate for scheduled-job endpoints.

    Requires ``Authorization: Bearer <CRON_SECRET>``. When no secret is
    configured the endpoint stays open, which is only acceptable in
    development; production settings make the secret mandatory.
    """

    message = 'Unauthorized'

    def has_permission(self, request, view):
        secret = getattr(settings, 'CRON_SECRET', '')
        if not secret:
            return True

        header = request.META.get('HTTP_AUTHORIZATION', '')
        expected = f'Bearer {secret}'
        allowed = hmac.compare_digest(header.encode(), expected.encode())
        if not allowed:
            logger.warning(f"🔒 [CRON] Rejected scheduled job call from {request.META.get('REMOTE_ADDR')}")
        return allowed
