"""Models for the experiences app."""

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _
from django.core.validators import MinValueValidator, MaxValueValidator
from core.models import BaseModel
from apps.partners.models import Partner


class Experience(BaseModel):
    """A bookable activity or rental offered by a supplier."""

    STATUS_CHOICES = [
        ('draft', _('Draft')),
        ('active', _('Active')),
        ('archived', _('Archived')),
    ]

    PRICING_TYPE_CHOICES = (
        ('per_person', _('Per Person')),
        ('flat_rate', _('Flat Rate')),
        ('base_plus_extra', _('Base Plus Extra')),
        ('per_day', _('Per Day')),
    )

    CANCELLATION_POLICY_CHOICES = (
        ('flexible', _('Flexible')),
        ('moderate', _('Moderate')),
        ('strict', _('Strict')),
        ('non_refundable', _('Non-refundable')),
    )

    partner = models.ForeignKey(
        Partner,
        on_delete=models.PROTECT,
        related_name='experiences',
        verbose_name=_("supplier")
    )

    title = models.CharField(_("title"), max_length=255)
    slug = models.SlugField(_("slug"), unique=True)
    description = models.TextField(_("description"), blank=True)
    meeting_point = models.CharField(_("meeting point"), max_length=500, blank=True)

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=STATUS_CHOICES,
        default='draft'
    )

    # Pricing, all amounts in integer cents
    pricing_type = models.CharField(
        _("pricing type"),
        max_length=20,
        choices=PRICING_TYPE_CHOICES,
        default='per_person'
    )
    base_price_cents = models.PositiveIntegerField(
        _("base price (cents)"),
        default=0,
        help_text=_("Flat rate, or the base covering included participants for base_plus_extra")
    )
    extra_person_cents = models.PositiveIntegerField(
        _("per person price (cents)"),
        default=0,
        help_text=_("Per person unit for per_person, extra participant unit for base_plus_extra")
    )
    price_per_day_cents = models.PositiveIntegerField(_("price per day (cents)"), default=0)
    included_participants = models.PositiveIntegerField(_("included participants"), default=1)
    currency = models.CharField(
        _("currency"),
        max_length=3,
        default='EUR',
        help_text=_("Currency code (ISO 4217)")
    )

    # Capacity rules
    min_participants = models.PositiveIntegerField(
        _("min participants"),
        default=1,
        validators=[MinValueValidator(1)]
    )
    max_participants = models.PositiveIntegerField(
        _("max participants"),
        default=10,
        validators=[MinValueValidator(1)]
    )
    min_days = models.PositiveIntegerField(_("min days"), default=1)
    max_days = models.PositiveIntegerField(_("max days"), null=True, blank=True)
    requires_minimum = models.BooleanField(
        _("requires minimum"),
        default=False,
        help_text=_("Session bookings stay conditional until min participants is reached")
    )

    cancellation_policy = models.CharField(
        _("cancellation policy"),
        max_length=20,
        choices=CANCELLATION_POLICY_CHOICES,
        default='moderate'
    )
    allows_requests = models.BooleanField(
        _("allows requests"),
        default=True,
        help_text=_("Guests may request a date/time that has no scheduled session")
    )

    class Meta:
        verbose_name = _("experience")
        verbose_name_plural = _("experiences")
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['partner', 'status'], name='experiences_partner_3b9e0a_idx'),
            models.Index(fields=['slug'], name='experiences_slug_6c2f1d_idx'),
        ]

    def __str__(self):
        return self.title

    @property
    def is_rental(self):
        return self.pricing_type == 'per_day'


class ExperienceSession(BaseModel):
    """A scheduled, capacity-bounded instance of an experience."""

    STATUS_CHOICES = (
        ('available', _('Available')),
        ('booked', _('Booked')),
        ('cancelled', _('Cancelled')),
    )

    experience = models.ForeignKey(
        Experience,
        on_delete=models.CASCADE,
        related_name='sessions',
        verbose_name=_("experience")
    )

    session_date = models.DateField(_("session date"))
    start_time = models.TimeField(_("start time"), null=True, blank=True)
    end_date = models.DateField(_("end date"), null=True, blank=True, help_text=_("Last day for rentals"))

    # Only SessionLedger writes these two
    spots_total = models.PositiveIntegerField(_("total spots"))
    spots_available = models.PositiveIntegerField(_("available spots"))

    session_status = models.CharField(
        _("status"),
        max_length=20,
        choices=STATUS_CHOICES,
        default='available'
    )

    price_override_cents = models.PositiveIntegerField(
        _("price override (cents)"),
        null=True,
        blank=True,
        help_text=_("Replaces the experience unit price for this session")
    )
    price_note = models.CharField(_("price note"), max_length=255, blank=True)

    is_private = models.BooleanField(
        _("is private"),
        default=False,
        help_text=_("Created from an accepted request; never reopened for other guests")
    )

    class Meta:
        verbose_name = _("experience session")
        verbose_name_plural = _("experience sessions")
        ordering = ['session_date', 'start_time']
        indexes = [
            models.Index(fields=['experience', 'session_date'], name='experiences_experie_4d8a2b_idx'),
            models.Index(fields=['session_status', 'session_date'], name='experiences_session_9e1c7f_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(spots_available__lte=F('spots_total')),
                name='session_available_lte_total',
            ),
        ]

    def __str__(self):
        when = self.session_date.isoformat()
        if self.start_time:
            when = f"{when} {self.start_time.strftime('%H:%M')}"
        return f"{self.experience.title} - {when}"

    @property
    def booked_count(self):
        return self.spots_total - self.spots_available


class Distribution(BaseModel):
    """Commission agreement between a supplier's experience and a hotel channel."""

    experience = models.ForeignKey(
        Experience,
        on_delete=models.CASCADE,
        related_name='distributions',
        verbose_name=_("experience")
    )
    hotel = models.ForeignKey(
        Partner,
        on_delete=models.CASCADE,
        related_name='distributions',
        verbose_name=_("hotel"),
        limit_choices_to={'partner_type': 'hotel'}
    )

    commission_supplier = models.PositiveSmallIntegerField(
        _("supplier commission %"),
        default=80,
        validators=[MaxValueValidator(100)]
    )
    commission_hotel = models.PositiveSmallIntegerField(
        _("hotel commission %"),
        default=12,
        validators=[MaxValueValidator(100)]
    )
    commission_platform = models.PositiveSmallIntegerField(
        _("platform commission %"),
        default=8,
        validators=[MaxValueValidator(100)]
    )

    is_active = models.BooleanField(_("is active"), default=True)

    class Meta:
        verbose_name = _("distribution")
        verbose_name_plural = _("distributions")
        unique_together = ['experience', 'hotel']
        indexes = [
            models.Index(fields=['hotel', 'is_active'], name='experiences_hotel_i_2a7e5c_idx'),
        ]

    def __str__(self):
        return (
            f"{self.experience.title} via {self.hotel.name} "
            f"({self.commission_supplier}/{self.commission_hotel}/{self.commission_platform})"
        )
