"""Models for the reservations app: guest reservations and paid bookings."""

from django.db import models
from django.utils.translation import gettext_lazy as _
from django.core.validators import MinValueValidator
from core.models import BaseModel
from apps.partners.models import Partner, HotelConfig
from apps.experiences.models import Experience, ExperienceSession


class Reservation(BaseModel):
    """
    A guest's claim on an experience, before payment is confirmed.

    Either points at a scheduled session or carries a requested date/time;
    an accepted request gets a private session attached.
    """

    STATUS_CHOICES = (
        ('pending', _('Pending')),
        ('pending_minimum', _('Pending minimum')),
        ('proposed', _('Alternative times proposed')),
        ('approved', _('Approved')),
        ('declined', _('Declined')),
        ('expired', _('Expired')),
        ('cancelled_minimum', _('Cancelled (minimum not reached)')),
        ('confirmed', _('Confirmed')),
        ('completed', _('Completed')),
        ('refunded', _('Refunded')),
    )

    experience = models.ForeignKey(
        Experience,
        on_delete=models.PROTECT,
        related_name='reservations',
        verbose_name=_("experience")
    )
    hotel = models.ForeignKey(
        Partner,
        on_delete=models.PROTECT,
        related_name='hotel_reservations',
        verbose_name=_("hotel")
    )
    hotel_config = models.ForeignKey(
        HotelConfig,
        on_delete=models.SET_NULL,
        related_name='reservations',
        verbose_name=_("hotel config"),
        null=True,
        blank=True
    )
    session = models.ForeignKey(
        ExperienceSession,
        on_delete=models.SET_NULL,
        related_name='reservations',
        verbose_name=_("session"),
        null=True,
        blank=True
    )

    # Guest contact (snapshot)
    guest_name = models.CharField(_("guest name"), max_length=255)
    guest_email = models.EmailField(_("guest email"))
    guest_phone = models.CharField(_("guest phone"), max_length=50, blank=True)

    participants = models.PositiveIntegerField(
        _("participants"),
        default=1,
        validators=[MinValueValidator(1)]
    )

    # Rentals
    rental_start_date = models.DateField(_("rental start date"), null=True, blank=True)
    rental_end_date = models.DateField(_("rental end date"), null=True, blank=True)
    quantity = models.PositiveIntegerField(_("quantity"), null=True, blank=True)

    # Price snapshot, later price changes on the experience do not apply
    total_cents = models.PositiveIntegerField(_("total (cents)"))

    # Requests
    is_request = models.BooleanField(_("is request"), default=False)
    requested_date = models.DateField(_("requested date"), null=True, blank=True)
    requested_time = models.TimeField(_("requested time"), null=True, blank=True)
    proposed_times = models.JSONField(
        _("proposed times"),
        default=list,
        blank=True,
        help_text=_("Alternative slots offered by the supplier: [{'date': 'YYYY-MM-DD', 'time': 'HH:MM'}]")
    )

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=STATUS_CHOICES,
        default='pending'
    )
    response_deadline = models.DateTimeField(_("response deadline"))
    payment_deadline = models.DateTimeField(_("payment deadline"), null=True, blank=True)

    spots_held = models.PositiveIntegerField(
        _("spots held"),
        default=0,
        help_text=_("Session spots currently taken by this reservation")
    )

    # Payment link
    payment_link_id = models.CharField(_("payment link ID"), max_length=255, blank=True)
    payment_link_url = models.URLField(_("payment link URL"), max_length=500, blank=True)

    supplier_message = models.TextField(_("supplier message"), blank=True)

    class Meta:
        verbose_name = _("reservation")
        verbose_name_plural = _("reservations")
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'response_deadline'], name='reservation_status_1a2b3c_idx'),
            models.Index(fields=['status', 'payment_deadline'], name='reservation_status_4d5e6f_idx'),
            models.Index(fields=['session', 'status'], name='reservation_session_7a8b9c_idx'),
            models.Index(fields=['experience', 'status'], name='reservation_experie_0d1e2f_idx'),
            models.Index(fields=['guest_email'], name='reservation_guest_e_3a4b5c_idx'),
        ]

    def __str__(self):
        return f"{self.guest_name} - {self.experience.title} ({self.status})"

    @property
    def is_rental(self):
        return self.experience.pricing_type == 'per_day'

    @property
    def experience_date(self):
        if self.session_id:
            return self.session.session_date
        return self.rental_start_date or self.requested_date

    @property
    def experience_time(self):
        if self.session_id:
            return self.session.start_time
        return self.requested_time


class Booking(BaseModel):
    """
    Financial record created exactly once when a reservation's payment succeeds.

    The one-to-one link to Reservation is the idempotency key for duplicate
    payment webhooks.
    """

    STATUS_CHOICES = (
        ('confirmed', _('Confirmed')),
        ('completed', _('Completed')),
        ('cancelled', _('Cancelled')),
    )

    reservation = models.OneToOneField(
        Reservation,
        on_delete=models.PROTECT,
        related_name='booking',
        verbose_name=_("reservation")
    )
    session = models.ForeignKey(
        ExperienceSession,
        on_delete=models.PROTECT,
        related_name='bookings',
        verbose_name=_("session"),
        null=True,
        blank=True
    )

    amount_cents = models.PositiveIntegerField(_("amount (cents)"))
    supplier_amount_cents = models.IntegerField(_("supplier amount (cents)"))
    hotel_amount_cents = models.IntegerField(_("hotel amount (cents)"))
    platform_amount_cents = models.IntegerField(_("platform amount (cents)"))

    # Stripe references
    payment_intent_id = models.CharField(_("payment intent ID"), max_length=255, blank=True, db_index=True)
    charge_id = models.CharField(_("charge ID"), max_length=255, blank=True, db_index=True)
    transfer_id = models.CharField(_("transfer ID"), max_length=255, blank=True)
    refund_id = models.CharField(_("refund ID"), max_length=255, blank=True)

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=STATUS_CHOICES,
        default='confirmed'
    )

    paid_at = models.DateTimeField(_("paid at"))
    completed_at = models.DateTimeField(_("completed at"), null=True, blank=True)
    cancelled_at = models.DateTimeField(_("cancelled at"), null=True, blank=True)
    completion_check_sent_at = models.DateTimeField(_("completion check sent at"), null=True, blank=True)

    class Meta:
        verbose_name = _("booking")
        verbose_name_plural = _("bookings")
        ordering = ['-paid_at']
        indexes = [
            models.Index(fields=['status', 'paid_at'], name='reservation_status_6d7e8f_idx'),
        ]

    def __str__(self):
        return f"Booking {self.id} - {self.amount_cents} ({self.status})"
