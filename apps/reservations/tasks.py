"""
Celery tasks for the reservation lifecycle.

Scheduled by Celery Beat (see config/celery.py):
- sweep_expired_reservations: every 5 minutes, critical queue
- send_completion_checks: daily, emails queue
- auto_complete_bookings: daily, payouts queue

send_notification_email is the async delivery path of EmailNotifier.

Usage:
    from apps.reservations.tasks import send_notification_email

    send_notification_email.apply_async(
        args=['guest_booking_approved', 'guest@example.com', payload],
        queue='emails'
    )
"""

import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def send_notification_email(self, kind: str, recipient: str, payload: dict):
    """
    Deliver one reservation email, retrying with exponential backoff.

    Returns the delivery result dict of EmailNotifier.deliver.
    """
    from apps.reservations.services import get_services

    logger.info(
        f"📧 [CELERY_TASK] Sending {kind} to {recipient} "
        f"(attempt {self.request.retries + 1}/{self.max_retries + 1})"
    )
    result = get_services().notifier.deliver(kind, recipient, payload)
    if result['status'] == 'success':
        return result

    error_msg = result.get('error', 'Unknown error')
    if self.request.retries < self.max_retries:
        retry_delay = self.default_retry_delay * (2 ** self.request.retries)
        logger.info(f"🔄 [CELERY_TASK] {kind} to {recipient} failed ({error_msg}), retrying in {retry_delay}s")
        raise self.retry(exc=Exception(f"Email sending failed: {error_msg}"), countdown=retry_delay)

    logger.error(f"❌ [CELERY_TASK] Max retries reached for {kind} to {recipient}, giving up")
    return result


@shared_task(bind=True, max_retries=2, default_retry_delay=30)
def sweep_expired_reservations(self):
    """Run the expiry sweeper. Per-record failures are handled inside the sweep."""
    from apps.reservations.services import get_services

    try:
        summary = get_services().sweeper.run()
    except Exception as exc:
        logger.error(f"❌ [CELERY_TASK] Sweep failed: {exc}", exc_info=True)
        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=self.default_retry_delay * (2 ** self.request.retries))
        raise
    return summary.as_dict()


@shared_task
def send_completion_checks():
    from apps.reservations.services import get_services

    sent = get_services().completion.send_completion_checks()
    return {'sent': sent}


@shared_task
def auto_complete_bookings():
    from apps.reservations.services import get_services

    return get_services().completion.auto_complete()
