"""
Email notification delivery for the reservation lifecycle.

EmailNotifier.notify(kind, recipient, payload) renders
``emails/reservations/<kind>.txt`` (plus the shared HTML layout) and sends
it through Django's mail framework. Delivery is best-effort: failures are
logged and reported as False, never raised into the state transition that
triggered them.
"""

import logging
import time
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)

SUBJECTS = {
    'guest_request_received': 'Booking request received - {experience_title}',
    'supplier_new_request': 'New booking request - {experience_title}',
    'guest_booking_approved': 'Your booking is approved, complete your payment - {experience_title}',
    'guest_booking_declined': 'Booking request update - {experience_title}',
    'guest_time_proposed': 'New time proposed - {experience_title}',
    'supplier_proposal_declined': 'Proposed times declined - {experience_title}',
    'guest_booking_cancelled': 'Booking cancelled by the provider - {experience_title}',
    'supplier_guest_cancelled': 'Booking cancelled by guest - {experience_title}',
    'guest_minimum_unconfirmed': 'Reservation released - {experience_title}',
    'supplier_minimum_booking': 'New conditional booking - {experience_title}',
    'guest_minimum_pending': 'Spots reserved, waiting for minimum - {experience_title}',
    'guest_minimum_reached': 'Your booking is confirmed to run - {experience_title}',
    'guest_request_expired': 'Booking request expired - {experience_title}',
    'guest_payment_expired': 'Payment window expired - {experience_title}',
    'supplier_payment_expired': 'Booking expired without payment - {experience_title}',
    'guest_minimum_cancelled': 'Experience cancelled, minimum not reached - {experience_title}',
    'supplier_minimum_cancelled': 'Session cancelled, minimum not reached - {experience_title}',
    'guest_payment_confirmed': 'Booking confirmed - {experience_title}',
    'supplier_booking_confirmed': 'New confirmed booking - {experience_title}',
    'hotel_booking_notification': 'Guest booking via your widget - {experience_title}',
    'guest_payment_failed': 'Payment failed - {experience_title}',
    'guest_refund_processed': 'Refund processed - {experience_title}',
    'supplier_completion_check': 'Did this experience take place? - {experience_title}',
    'supplier_payout_sent': 'Payout sent - {experience_title}',
    'supplier_booking_refunded': 'Booking refunded - {experience_title}',
    'admin_account_status_changed': 'Stripe account status changed - {partner_name}',
}


class EmailNotifier:
    """Renders and sends reservation emails."""

    def __init__(self, from_email: Optional[str] = None, async_delivery: bool = False):
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL
        self.async_delivery = async_delivery

    def subject_for(self, kind: str, payload: Dict[str, Any]) -> str:
        template = SUBJECTS.get(kind, '{platform_name} notification')
        try:
            return template.format(**payload)
        except (KeyError, IndexError):
            return template.split(' - ')[0]

    def notify(self, kind: str, recipient: Optional[str], payload: Dict[str, Any]) -> bool:
        if not recipient:
            logger.warning(f"📧 [EMAIL] No recipient for {kind}, skipping")
            return False

        if self.async_delivery:
            try:
                from apps.reservations.tasks import send_notification_email
                send_notification_email.apply_async(args=[kind, recipient, payload], queue='emails')
                logger.info(f"📧 [EMAIL] Queued {kind} to {recipient}")
                return True
            except Exception as e:
                logger.error(f"❌ [EMAIL] Could not queue {kind} to {recipient}: {e}", exc_info=True)
                return False

        return self.deliver(kind, recipient, payload)['status'] == 'success'

    def deliver(self, kind: str, recipient: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Render and send one email synchronously. Returns a status dict with timing."""
        start_time = time.time()
        try:
            context = dict(payload)
            context.setdefault('platform_name', settings.RESERVATIONS.get('PLATFORM_NAME', 'Experiences'))
            context['kind'] = kind

            text_message = render_to_string(f'emails/reservations/{kind}.txt', context)
            context['body'] = text_message
            html_message = render_to_string('emails/reservations/layout.html', context)

            subject = self.subject_for(kind, context)
            message = EmailMultiAlternatives(
                subject=subject,
                body=text_message,
                from_email=self.from_email,
                to=[recipient],
                reply_to=[payload['reply_to']] if payload.get('reply_to') else None,
            )
            message.attach_alternative(html_message, 'text/html')
            message.send(fail_silently=False)

            duration_ms = int((time.time() - start_time) * 1000)
            logger.info(f"✅ [EMAIL] Sent {kind} to {recipient} in {duration_ms}ms")
            return {'status': 'success', 'kind': kind, 'duration_ms': duration_ms}

        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(f"❌ [EMAIL] Failed to send {kind} to {recipient}: {e}", exc_info=True)
            return {'status': 'failed', 'kind': kind, 'error': str(e), 'duration_ms': duration_ms}
