"""Models for the partners app: suppliers, hotels and hotel widget configs."""

from django.db import models
from django.utils.translation import gettext_lazy as _
from core.models import BaseModel


class Partner(BaseModel):
    """An organization on the platform, either an experience supplier or a hotel."""

    TYPE_CHOICES = (
        ('supplier', _('Supplier')),
        ('hotel', _('Hotel')),
    )

    name = models.CharField(_("name"), max_length=255)
    email = models.EmailField(_("email"), blank=True)
    partner_type = models.CharField(
        _("partner type"),
        max_length=20,
        choices=TYPE_CHOICES,
        default='supplier'
    )

    # Stripe Connect
    stripe_account_id = models.CharField(_("Stripe account ID"), max_length=255, blank=True)
    stripe_onboarding_complete = models.BooleanField(
        _("Stripe onboarding complete"),
        default=False,
        help_text=_("Suppliers cannot accept requests until payouts are enabled")
    )

    class Meta:
        verbose_name = _("partner")
        verbose_name_plural = _("partners")
        ordering = ['name']
        indexes = [
            models.Index(fields=['partner_type'], name='partners_pa_partner_5f1c2e_idx'),
            models.Index(fields=['stripe_account_id'], name='partners_pa_stripe__8a3d41_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.get_partner_type_display()})"

    @property
    def can_receive_payouts(self):
        return bool(self.stripe_account_id) and self.stripe_onboarding_complete


class HotelConfig(BaseModel):
    """Booking widget configuration for a hotel partner."""

    partner = models.ForeignKey(
        Partner,
        on_delete=models.CASCADE,
        related_name='hotel_configs',
        verbose_name=_("hotel"),
        limit_choices_to={'partner_type': 'hotel'}
    )
    slug = models.SlugField(_("slug"), unique=True)
    display_name = models.CharField(_("display name"), max_length=255)
    is_active = models.BooleanField(_("is active"), default=True)

    class Meta:
        verbose_name = _("hotel config")
        verbose_name_plural = _("hotel configs")
        ordering = ['display_name']

    def __str__(self):
        return self.display_name
