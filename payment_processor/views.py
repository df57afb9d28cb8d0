"""
Payment provider webhook endpoint.
"""

import logging

from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.reservations.exceptions import ReservationError
from apps.reservations.services import get_services

from .services import PaymentServiceException
from .webhooks import StripeWebhookProcessor

logger = logging.getLogger(__name__)


class StripeWebhookView(APIView):
    """
    Receives Stripe events.

    Answers 400 on a bad signature, 200 once the event is applied (or is a
    duplicate, or refers to something we do not know), and 500 on unexpected
    errors so Stripe redelivers the event.
    """
    permission_classes = [permissions.AllowAny]
    authentication_classes = []
    throttle_classes = []

    def post(self, request):
        services = get_services()
        signature = request.META.get('HTTP_STRIPE_SIGNATURE', '')

        try:
            event = services.payments.verify_webhook(request.body, signature)
        except PaymentServiceException as e:
            logger.warning(f"🔐 [WEBHOOK] Rejected event: {e}")
            return Response({
                'success': False,
                'error': 'invalid_signature',
                'message': str(e)
            }, status=status.HTTP_400_BAD_REQUEST)

        machine = services.state_machine
        processor = StripeWebhookProcessor(machine, admin_email=machine.config.admin_email)
        try:
            result = processor.process(event)
        except ReservationError as e:
            logger.warning(f"⚠️ [WEBHOOK] {event.get('type')} {event.get('id')} not applied: {e.user_message}")
            return Response({
                'success': False,
                'received': True,
                'error': e.code,
                'message': e.user_message
            }, status=status.HTTP_200_OK)
        except Exception as e:
            logger.error(f"💥 WEBHOOK ERROR: {str(e)}", exc_info=True)
            return Response({
                'success': False,
                'error': 'Error processing webhook'
            }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        return Response({'success': True, 'received': True, **result}, status=status.HTTP_200_OK)
