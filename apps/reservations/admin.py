"""Admin configuration for reservations app."""

from django.contrib import admin
from .models import Reservation, Booking


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    """
    Admin interface for Reservation model.

    Status and holds are read-only: transitions go through the state machine
    so spots and notifications stay consistent.
    """
    list_display = ('guest_name', 'experience', 'participants', 'total_cents', 'status',
                    'response_deadline', 'payment_deadline', 'created_at')
    list_filter = ('status', 'is_request', 'experience')
    search_fields = ('guest_name', 'guest_email', 'experience__title', 'payment_link_id')
    readonly_fields = ('id', 'status', 'spots_held', 'total_cents', 'payment_link_id', 'payment_link_url',
                       'proposed_times', 'created_at', 'updated_at')
    raw_id_fields = ('session',)
    date_hierarchy = 'created_at'


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Admin interface for Booking model."""
    list_display = ('id', 'reservation', 'amount_cents', 'supplier_amount_cents', 'hotel_amount_cents',
                    'platform_amount_cents', 'status', 'paid_at')
    list_filter = ('status',)
    search_fields = ('reservation__guest_email', 'payment_intent_id', 'charge_id', 'transfer_id', 'refund_id')
    readonly_fields = ('id', 'reservation', 'session', 'amount_cents', 'supplier_amount_cents',
                       'hotel_amount_cents', 'platform_amount_cents', 'payment_intent_id', 'charge_id',
                       'paid_at', 'created_at', 'updated_at')
    date_hierarchy = 'paid_at'
