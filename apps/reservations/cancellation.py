"""
Booking cancellation with a full refund.

Guests cancel through the link in their confirmation email, within the
window their experience's cancellation policy allows. Suppliers cancel a
booking they cannot run through the link in theirs; the policy does not
apply to them. Both paths refund the whole charge and free the spots.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from django.utils import timezone

from . import tokens as token_actions
from .email_context import build_booking_context
from .exceptions import CancellationNotAllowed

logger = logging.getLogger(__name__)

# Minimum whole days between today and the experience date for a guest cancellation.
# Zero means guests can never cancel.
CANCELLATION_MIN_DAYS = {
    'flexible': 1,
    'moderate': 7,
    'strict': 0,
    'non_refundable': 0,
}
DEFAULT_POLICY = 'moderate'
NO_DATE_DAYS = 999


@dataclass(frozen=True)
class CancellationDecision:
    allowed: bool
    message: str


def cancellation_min_days(policy: Optional[str]) -> int:
    return CANCELLATION_MIN_DAYS.get(policy or DEFAULT_POLICY, CANCELLATION_MIN_DAYS[DEFAULT_POLICY])


def _days(count: int) -> str:
    return f"{count} {'day' if count == 1 else 'days'}"


def can_guest_cancel(policy: Optional[str], days_until: int) -> CancellationDecision:
    policy = policy or DEFAULT_POLICY
    min_days = cancellation_min_days(policy)

    if min_days == 0:
        if policy == 'strict':
            return CancellationDecision(False, "Cancellation is not available. No refunds after booking is confirmed.")
        return CancellationDecision(False, "Cancellation is not available. This booking is non-refundable.")

    if days_until < min_days:
        return CancellationDecision(
            False,
            f"Cancellation is no longer available. You can only cancel up to {_days(min_days)} "
            f"before the experience. ({_days(days_until)} remaining)",
        )

    return CancellationDecision(True, "Your booking has been cancelled and a refund has been initiated.")


class CancellationService:
    """Token-gated guest and supplier cancellations."""

    def __init__(self, state_machine):
        self.state_machine = state_machine

    def days_until(self, reservation) -> int:
        experience_date = reservation.experience_date
        if experience_date is None:
            return NO_DATE_DAYS
        today = timezone.localtime(self.state_machine.clock()).date()
        return (experience_date - today).days

    def guest_cancel(self, booking_id, token: str):
        self.state_machine.verify_token(token, booking_id, [token_actions.ACTION_CANCEL])

        def check_policy(booking):
            reservation = booking.reservation
            decision = can_guest_cancel(reservation.experience.cancellation_policy, self.days_until(reservation))
            if not decision.allowed:
                logger.info(f"🚫 [CANCELLATION] Guest cancellation refused for booking {booking.id}")
                raise CancellationNotAllowed(decision.message)

        booking, reservation = self.state_machine.refund_booking(booking_id, check=check_policy)

        logger.info(f"↩️ [CANCELLATION] Guest cancelled booking {booking.id}")
        context = build_booking_context(booking)
        self.state_machine.notify('guest_refund_processed', reservation.guest_email, context)
        self.state_machine.notify('supplier_guest_cancelled', reservation.experience.partner.email, context)
        return booking

    def supplier_cancel(self, booking_id, token: str, message: Optional[str] = None):
        self.state_machine.verify_token(token, booking_id, [token_actions.ACTION_SUPPLIER_CANCEL])
        booking, reservation = self.state_machine.refund_booking(booking_id)

        reservation.supplier_message = (message or '').strip()
        reservation.save(update_fields=['supplier_message', 'updated_at'])

        logger.info(f"↩️ [CANCELLATION] Supplier cancelled booking {booking.id}")
        self.state_machine.notify('guest_booking_cancelled', reservation.guest_email, build_booking_context(booking))
        return booking
