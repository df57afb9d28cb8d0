"""
Hotel organization onboarding.

Creates the hotel Partner and its widget HotelConfig as two separate
writes. When the second write fails the partner row is deleted again on a
best-effort basis: a failed compensating delete is logged and tolerated,
since a partner without a config is never reachable from a widget.
"""

import logging

from django.db import IntegrityError
from django.utils.text import slugify

from apps.reservations.exceptions import ValidationFailed

from .models import HotelConfig, Partner

logger = logging.getLogger(__name__)


def onboard_hotel_organization(name, email, display_name=None, slug=None, stripe_account_id=''):
    """Create a hotel partner with its widget config. Returns ``(partner, hotel_config)``."""
    name = (name or '').strip()
    if not name:
        raise ValidationFailed("Missing required fields", fields=['name'])

    slug = slugify(slug or display_name or name)
    if not slug:
        raise ValidationFailed("A valid slug is required", fields=['slug'])
    if HotelConfig.objects.filter(slug=slug).exists():
        raise ValidationFailed("This widget address is already taken", fields=['slug'])

    partner = Partner.objects.create(
        name=name,
        email=(email or '').strip(),
        partner_type='hotel',
        stripe_account_id=stripe_account_id or '',
    )

    try:
        hotel_config = HotelConfig.objects.create(
            partner=partner,
            slug=slug,
            display_name=(display_name or name).strip(),
        )
    except Exception as e:
        logger.error(f"❌ [ONBOARDING] Hotel config for {name} failed, rolling back partner {partner.id}: {e}")
        try:
            partner.delete()
        except Exception as cleanup_error:
            logger.warning(
                f"⚠️ [ONBOARDING] Could not delete orphan partner {partner.id}: {cleanup_error}",
                exc_info=True
            )
        if isinstance(e, IntegrityError):
            raise ValidationFailed("This widget address is already taken", fields=['slug'])
        raise

    logger.info(f"🏨 [ONBOARDING] Hotel {partner.name} onboarded with widget '{hotel_config.slug}'")
    return partner, hotel_config
