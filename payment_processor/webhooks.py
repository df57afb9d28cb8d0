"""
Stripe webhook processing.

Every event is recorded in PaymentWebhook keyed by the Stripe event id, so a
redelivered event that was already processed is acknowledged without being
applied again. Failed events stay ``failed`` and are re-applied when Stripe
retries them. Reservation-level idempotency (one Booking per reservation)
is enforced by the state machine on top of this.
"""

import logging
from typing import Any, Dict

from django.db import transaction
from django.utils import timezone

from apps.partners.models import Partner
from apps.reservations.email_context import build_booking_context
from apps.reservations.exceptions import ReservationError
from apps.reservations.models import Booking

from .models import PaymentWebhook

logger = logging.getLogger(__name__)


class StripeWebhookProcessor:
    """Routes verified Stripe events to the reservation lifecycle."""

    def __init__(self, state_machine, admin_email: str = ''):
        self.state_machine = state_machine
        self.admin_email = admin_email
        self.handlers = {
            'checkout.session.completed': self.handle_checkout_completed,
            'payment_intent.succeeded': self.handle_payment_intent_succeeded,
            'payment_intent.payment_failed': self.handle_payment_failed,
            'charge.refunded': self.handle_charge_refunded,
            'transfer.created': self.handle_transfer_created,
            'account.updated': self.handle_account_updated,
        }

    def process(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """Apply one event. Returns ``{'status': ..., 'event_type': ...}``; handler errors propagate."""
        event_id = event.get('id') or ''
        event_type = event.get('type') or ''

        record, created = PaymentWebhook.objects.get_or_create(
            event_id=event_id,
            defaults={'event_type': event_type, 'payload': event},
        )
        if not created and record.status in ('processed', 'ignored'):
            logger.info(f"♻️ [WEBHOOK] Event {event_id} ({event_type}) already {record.status}")
            return {'status': 'duplicate', 'event_type': event_type}

        handler = self.handlers.get(event_type)
        if handler is None:
            self._finish(record, 'ignored')
            logger.info(f"🔕 [WEBHOOK] Ignoring unhandled event type {event_type}")
            return {'status': 'ignored', 'event_type': event_type}

        obj = (event.get('data') or {}).get('object') or {}
        try:
            result = handler(obj)
        except Exception as e:
            self._finish(record, 'failed', str(e))
            logger.error(f"❌ [WEBHOOK] {event_type} {event_id} failed: {e}", exc_info=True)
            raise

        self._finish(record, 'processed')
        logger.info(f"✅ [WEBHOOK] Processed {event_type} {event_id}")
        return {'status': 'processed', 'event_type': event_type, **(result or {})}

    def _finish(self, record, status, error_message=''):
        record.status = status
        record.error_message = error_message
        record.processed_at = timezone.now()
        record.save(update_fields=['status', 'error_message', 'processed_at', 'updated_at'])

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _record_payment(self, reservation_id, payment_intent_id, charge_id, amount_cents):
        if not reservation_id:
            logger.warning("⚠️ [WEBHOOK] Payment event without reservationId metadata, skipping")
            return {'skipped': 'missing_metadata'}
        booking, created = self.state_machine.handle_payment_success(
            reservation_id,
            payment_intent_id=payment_intent_id or '',
            charge_id=charge_id or '',
            amount_cents=amount_cents,
        )
        return {'booking_id': str(booking.id), 'created': created}

    def handle_checkout_completed(self, obj):
        if obj.get('payment_status') not in (None, 'paid'):
            logger.info(f"💳 [WEBHOOK] Checkout {obj.get('id')} completed but not paid ({obj.get('payment_status')})")
            return {'skipped': 'not_paid'}
        return self._record_payment(
            (obj.get('metadata') or {}).get('reservationId'),
            obj.get('payment_intent'),
            '',
            obj.get('amount_total'),
        )

    def handle_payment_intent_succeeded(self, obj):
        return self._record_payment(
            (obj.get('metadata') or {}).get('reservationId'),
            obj.get('id'),
            obj.get('latest_charge'),
            obj.get('amount_received') or obj.get('amount'),
        )

    def handle_payment_failed(self, obj):
        reservation_id = (obj.get('metadata') or {}).get('reservationId')
        if not reservation_id:
            return {'skipped': 'missing_metadata'}
        error = (obj.get('last_payment_error') or {}).get('message') or 'Payment was declined'
        try:
            self.state_machine.handle_payment_failure(reservation_id, error)
        except ReservationError as e:
            logger.warning(f"⚠️ [WEBHOOK] Payment failure for unknown reservation {reservation_id}: {e}")
            return {'skipped': 'unknown_reservation'}
        return {}

    def handle_charge_refunded(self, obj):
        refunds = (obj.get('refunds') or {}).get('data') or []
        refund_id = refunds[0].get('id', '') if refunds else ''
        booking = self.state_machine.handle_refund(obj.get('id') or '', refund_id)
        return {'booking_id': str(booking.id)} if booking else {'skipped': 'unknown_charge'}

    def handle_transfer_created(self, obj):
        booking_id = (obj.get('metadata') or {}).get('bookingId')
        transfer_id = obj.get('id') or ''
        if not booking_id:
            return {'skipped': 'missing_metadata'}

        with transaction.atomic():
            booking = (
                Booking.objects.select_for_update(of=('self',))
                .select_related('reservation', 'reservation__experience', 'reservation__experience__partner')
                .filter(pk=booking_id).first()
            )
            if booking is None:
                logger.warning(f"⚠️ [WEBHOOK] Transfer {transfer_id} for unknown booking {booking_id}")
                return {'skipped': 'unknown_booking'}
            newly_recorded = not booking.transfer_id
            if newly_recorded:
                booking.transfer_id = transfer_id
                booking.save(update_fields=['transfer_id', 'updated_at'])

        if newly_recorded:
            supplier = booking.reservation.experience.partner
            self.state_machine.notify('supplier_payout_sent', supplier.email, build_booking_context(
                booking, transfer_id=transfer_id,
            ))
        return {'booking_id': str(booking.id)}

    def handle_account_updated(self, obj):
        account_id = obj.get('id') or ''
        charges_enabled = bool(obj.get('charges_enabled'))
        payouts_enabled = bool(obj.get('payouts_enabled'))
        complete = charges_enabled and payouts_enabled and bool(obj.get('details_submitted'))

        with transaction.atomic():
            partner = Partner.objects.select_for_update().filter(stripe_account_id=account_id).first()
            if partner is None:
                logger.info(f"🏦 [WEBHOOK] account.updated for unknown account {account_id}")
                return {'skipped': 'unknown_account'}
            changed = partner.stripe_onboarding_complete != complete
            if changed:
                partner.stripe_onboarding_complete = complete
                partner.save(update_fields=['stripe_onboarding_complete', 'updated_at'])

        if changed:
            logger.info(f"🏦 [WEBHOOK] Partner {partner.id} onboarding complete: {complete}")
            self.state_machine.notify('admin_account_status_changed', self.admin_email, {
                'partner_name': partner.name,
                'partner_type': partner.get_partner_type_display(),
                'partner_email': partner.email,
                'stripe_account_id': account_id,
                'is_onboarding_complete': complete,
                'charges_enabled': charges_enabled,
                'payouts_enabled': payouts_enabled,
            })
        return {'partner_id': str(partner.id), 'changed': changed}
