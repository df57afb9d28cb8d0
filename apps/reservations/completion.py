"""
Completion and payout workflow.

After the experience date the supplier receives a pair of signed links:
"it happened" releases the supplier's share through a Stripe transfer,
"it did not happen" refunds the guest. Both outcomes are terminal and
exclusive; the booking row lock and the ``confirmed`` status guard make the
second click a conflict instead of a second money movement.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from django.db import transaction

from payment_processor.services import PaymentServiceException

from . import tokens as token_actions
from .email_context import build_booking_context
from .exceptions import AlreadyProcessed, PaymentCapabilityError
from .models import Booking

logger = logging.getLogger(__name__)


class CompletionService:
    """Token-gated complete / no-experience outcomes and their scheduled helpers."""

    def __init__(self, state_machine):
        self.state_machine = state_machine
        self.payments = state_machine.payments
        self.config = state_machine.config

    def _experience_end(self, booking) -> Optional[date]:
        session = booking.session
        if session is not None:
            return session.end_date or session.session_date
        reservation = booking.reservation
        return reservation.rental_end_date or reservation.experience_date

    def complete(self, booking_id, token: str) -> Booking:
        self.state_machine.verify_token(token, booking_id, [token_actions.ACTION_COMPLETE])
        return self._complete(booking_id)

    def _complete(self, booking_id) -> Booking:
        now = self.state_machine.clock()
        with transaction.atomic():
            booking = self.state_machine.lock_booking(booking_id)
            if booking.status != 'confirmed':
                raise AlreadyProcessed.for_status(booking.status)

            reservation = booking.reservation
            supplier = reservation.experience.partner
            transfer_sent = False
            if booking.transfer_id:
                logger.info(f"💸 [COMPLETION] Booking {booking.id} already has transfer {booking.transfer_id}")
            elif supplier.stripe_account_id and booking.supplier_amount_cents > 0:
                try:
                    booking.transfer_id = self.payments.create_transfer(
                        booking.supplier_amount_cents,
                        reservation.experience.currency,
                        supplier.stripe_account_id,
                        str(booking.id),
                    )
                except PaymentServiceException as e:
                    logger.error(f"❌ [COMPLETION] Transfer for booking {booking.id} failed: {e}")
                    raise PaymentCapabilityError(booking_id=str(booking.id), reason=str(e))
                transfer_sent = True
            else:
                logger.warning(
                    f"⚠️ [COMPLETION] Supplier {supplier.id} has no connected account, "
                    f"booking {booking.id} completed without transfer"
                )

            booking.status = 'completed'
            booking.completed_at = now
            booking.save()
            reservation.status = 'completed'
            reservation.save(update_fields=['status', 'updated_at'])

        logger.info(f"✅ [COMPLETION] Booking {booking.id} completed (transfer {booking.transfer_id or 'none'})")
        if transfer_sent:
            self.state_machine.notify('supplier_payout_sent', supplier.email, build_booking_context(
                booking, transfer_id=booking.transfer_id,
            ))
        return booking

    def report_no_experience(self, booking_id, token: str) -> Booking:
        self.state_machine.verify_token(token, booking_id, [token_actions.ACTION_NO_EXPERIENCE])
        booking, reservation = self.state_machine.refund_booking(booking_id)

        logger.info(f"💸 [COMPLETION] Booking {booking.id} refunded ({booking.refund_id}), experience did not happen")
        context = build_booking_context(booking)
        self.state_machine.notify('guest_refund_processed', reservation.guest_email, context)
        self.state_machine.notify('supplier_booking_refunded', reservation.experience.partner.email, context)
        return booking

    def send_completion_checks(self, today: Optional[date] = None) -> int:
        """Mail suppliers the complete / no-experience links for bookings that took place."""
        today = today or self.state_machine.clock().date()
        yesterday = today - timedelta(days=1)
        ttl = self.config.completion_token_ttl
        sent = 0

        bookings = (
            Booking.objects.filter(status='confirmed', completion_check_sent_at__isnull=True)
            .select_related('session', 'reservation', 'reservation__experience',
                            'reservation__experience__partner', 'reservation__hotel_config')
        )
        for booking in bookings:
            end = self._experience_end(booking)
            if end is None or end > yesterday:
                continue

            supplier = booking.reservation.experience.partner
            payload = build_booking_context(
                booking,
                complete_url=self.state_machine.action_url(
                    f"bookings/{booking.id}/complete/", booking.id, token_actions.ACTION_COMPLETE, ttl),
                no_experience_url=self.state_machine.action_url(
                    f"bookings/{booking.id}/no-experience/", booking.id, token_actions.ACTION_NO_EXPERIENCE, ttl),
            )
            if self.state_machine.notify('supplier_completion_check', supplier.email, payload):
                Booking.objects.filter(pk=booking.pk).update(completion_check_sent_at=self.state_machine.clock())
                sent += 1

        logger.info(f"📬 [COMPLETION] Sent {sent} completion checks")
        return sent

    def auto_complete(self, today: Optional[date] = None) -> dict:
        """Complete bookings the supplier never answered for, once the grace period is over."""
        today = today or self.state_machine.clock().date()
        threshold = today - self.config.auto_complete_after
        completed = 0
        errors = []

        candidates = Booking.objects.filter(status='confirmed').select_related('session', 'reservation')
        for booking in candidates:
            end = self._experience_end(booking)
            if end is None or end > threshold:
                continue
            try:
                self._complete(booking.id)
                completed += 1
            except AlreadyProcessed:
                continue
            except Exception as e:
                errors.append(f"Booking {booking.id}: {getattr(e, 'user_message', str(e))}")
                logger.error(f"❌ [COMPLETION] Auto-complete failed for booking {booking.id}: {e}", exc_info=True)

        logger.info(f"✅ [COMPLETION] Auto-completed {completed} bookings, {len(errors)} errors")
        return {'completed': completed, 'errors': errors}
