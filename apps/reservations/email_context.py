"""
Email context builders for reservation notifications.

Pre-computes everything a template needs as plain strings and numbers, so
the payload survives JSON serialization when delivery goes through Celery
and templates never trigger queries.

Usage:
    from apps.reservations.email_context import build_reservation_context

    payload = build_reservation_context(reservation, payment_url=link.url)
    notifier.notify('guest_booking_approved', reservation.guest_email, payload)
"""

import logging
from typing import Any, Dict

from django.conf import settings

from apps.experiences.pricing import format_cents

logger = logging.getLogger(__name__)


def _platform_name():
    return settings.RESERVATIONS.get('PLATFORM_NAME', 'Experiences')


def build_reservation_context(reservation, **extra) -> Dict[str, Any]:
    """Context shared by every reservation email."""
    experience = reservation.experience
    supplier = experience.partner
    experience_date = reservation.experience_date
    experience_time = reservation.experience_time

    hotel_name = ''
    if reservation.hotel_config_id:
        hotel_name = reservation.hotel_config.display_name
    elif reservation.hotel_id:
        hotel_name = reservation.hotel.name

    context = {
        'platform_name': _platform_name(),
        'reservation_id': str(reservation.id),
        'experience_title': experience.title,
        'meeting_point': experience.meeting_point or '',
        'cancellation_policy': experience.get_cancellation_policy_display(),
        'supplier_name': supplier.name,
        'supplier_email': supplier.email or '',
        'guest_name': reservation.guest_name,
        'guest_email': reservation.guest_email,
        'guest_phone': reservation.guest_phone or '',
        'date': experience_date.isoformat() if experience_date else '',
        'time': experience_time.strftime('%H:%M') if experience_time else '',
        'rental_end_date': reservation.rental_end_date.isoformat() if reservation.rental_end_date else '',
        'participants': reservation.participants,
        'quantity': reservation.quantity or 1,
        'total_cents': reservation.total_cents,
        'total_display': format_cents(reservation.total_cents, experience.currency),
        'currency': experience.currency,
        'hotel_name': hotel_name,
        'is_request': reservation.is_request,
        'payment_url': reservation.payment_link_url or '',
        'payment_deadline': reservation.payment_deadline.isoformat() if reservation.payment_deadline else '',
        'response_deadline': reservation.response_deadline.isoformat() if reservation.response_deadline else '',
        'supplier_message': reservation.supplier_message or '',
    }
    context.update(extra)
    return context


def build_booking_context(booking, **extra) -> Dict[str, Any]:
    """Reservation context plus the paid amounts of its booking."""
    reservation = booking.reservation
    currency = reservation.experience.currency
    context = build_reservation_context(reservation)
    context.update({
        'booking_id': str(booking.id),
        'amount_cents': booking.amount_cents,
        'amount_display': format_cents(booking.amount_cents, currency),
        'supplier_amount_display': format_cents(booking.supplier_amount_cents, currency),
        'hotel_amount_display': format_cents(booking.hotel_amount_cents, currency),
    })
    context.update(extra)
    return context
