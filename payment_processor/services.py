"""
Payment services.

Stripe integration built on the official ``stripe`` SDK: payment links for
guests, Connect transfers for supplier payouts, refunds and webhook
signature verification. Every API call is logged to PaymentTransaction.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict

import stripe
from django.conf import settings

from .models import PaymentTransaction

logger = logging.getLogger(__name__)


class PaymentServiceException(Exception):
    """Custom exception for payment service errors"""
    pass


@dataclass(frozen=True)
class PaymentLinkRequest:
    reservation_id: str
    title: str
    amount_cents: int
    currency: str
    success_url: str
    cancel_url: str


@dataclass(frozen=True)
class PaymentLink:
    id: str
    url: str


def to_dict(stripe_object) -> Dict[str, Any]:
    if hasattr(stripe_object, 'to_dict'):
        return stripe_object.to_dict()
    return dict(stripe_object)


class BasePaymentService:
    """Payment capability consumed by the reservation lifecycle."""

    def create_payment_link(self, request: PaymentLinkRequest) -> PaymentLink:
        raise NotImplementedError("Subclasses must implement create_payment_link")

    def create_transfer(self, amount_cents: int, currency: str, destination: str, booking_id: str) -> str:
        raise NotImplementedError("Subclasses must implement create_transfer")

    def create_refund(self, charge_id: str, booking_id: str) -> str:
        raise NotImplementedError("Subclasses must implement create_refund")

    def verify_webhook(self, payload: bytes, signature_header: str) -> Dict[str, Any]:
        raise NotImplementedError("Subclasses must implement verify_webhook")

    def log_transaction(self, transaction_type: str, reference_id: str,
                        request_data: Dict, result: Dict[str, Any], external_id: str = ''):
        """Log transaction for audit and debugging"""
        try:
            PaymentTransaction.objects.create(
                transaction_type=transaction_type,
                reference_id=str(reference_id),
                external_id=external_id,
                request_data=request_data,
                response_data=result.get('data') if isinstance(result.get('data'), dict) else {},
                is_successful=result.get('success', False),
                status_code=result.get('status_code'),
                error_message='' if result.get('success') else str(result.get('error', '')),
                duration_ms=result.get('duration_ms'),
            )
        except Exception as e:
            logger.error(f"❌ [PAYMENT] Could not write transaction log for {transaction_type} {reference_id}: {e}")


class StripePaymentService(BasePaymentService):
    """Stripe SDK service with retries and audit logging."""

    RETRYABLE_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)

    def __init__(self, secret_key: str, webhook_secret: str = '', retry_attempts: int = 3,
                 webhook_tolerance: int = 300):
        if not secret_key:
            raise PaymentServiceException("Stripe configuration missing: secret key")
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.retry_attempts = max(1, retry_attempts)
        self.webhook_tolerance = webhook_tolerance

    @classmethod
    def from_settings(cls):
        return cls(
            secret_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            retry_attempts=settings.STRIPE_RETRY_ATTEMPTS,
            webhook_tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
        )

    def _call(self, name: str, operation: Callable, idempotency_key: str, **params) -> Dict[str, Any]:
        """SDK call with retry on connection errors, rate limits and Stripe server errors."""
        start_time = time.time()
        last_exception = None
        last_status = None

        for attempt in range(self.retry_attempts):
            try:
                logger.info(f"🌐 [STRIPE] {name} (attempt {attempt + 1})")
                stripe_object = operation(api_key=self.secret_key, idempotency_key=idempotency_key, **params)
                duration_ms = int((time.time() - start_time) * 1000)
                logger.info(f"✅ [STRIPE] {name} succeeded in {duration_ms}ms")
                return {
                    'success': True,
                    'data': to_dict(stripe_object),
                    'duration_ms': duration_ms,
                    'status_code': 200
                }

            except self.RETRYABLE_ERRORS as e:
                last_exception = e.user_message or str(e)
                last_status = e.http_status
                logger.warning(f"⏳ [STRIPE] Retryable {type(e).__name__} on {name}, attempt {attempt + 1}")

            except stripe.StripeError as e:
                duration_ms = int((time.time() - start_time) * 1000)
                logger.error(f"❌ [STRIPE] {type(e).__name__} on {name}: {e.user_message or e}")
                return {
                    'success': False,
                    'error': e.user_message or str(e),
                    'code': e.code or '',
                    'duration_ms': duration_ms,
                    'status_code': e.http_status
                }

            # Wait before retry (exponential backoff)
            if attempt < self.retry_attempts - 1:
                time.sleep(2 ** attempt)

        duration_ms = int((time.time() - start_time) * 1000)
        return {
            'success': False,
            'error': f"All {self.retry_attempts} attempts failed. Last error: {last_exception}",
            'code': '',
            'duration_ms': duration_ms,
            'status_code': last_status
        }

    def create_payment_link(self, request: PaymentLinkRequest) -> PaymentLink:
        """Create a one-off price and a payment link carrying the reservation id as metadata."""
        price_data = {
            'unit_amount': request.amount_cents,
            'currency': request.currency.lower(),
            'product_data': {'name': request.title},
        }
        price_result = self._call(
            'Price.create', stripe.Price.create,
            idempotency_key=f"price-{request.reservation_id}-{request.amount_cents}",
            **price_data,
        )
        if not price_result['success']:
            self.log_transaction('payment_link', request.reservation_id, price_data, price_result)
            raise PaymentServiceException(f"Could not create price: {price_result['error']}")

        link_data = {
            'line_items': [{'price': price_result['data']['id'], 'quantity': 1}],
            'after_completion': {
                'type': 'redirect',
                'redirect': {'url': request.success_url},
            },
            'metadata': {'reservationId': request.reservation_id},
            'payment_intent_data': {'metadata': {'reservationId': request.reservation_id}},
        }
        link_result = self._call(
            'PaymentLink.create', stripe.PaymentLink.create,
            idempotency_key=f"payment-link-{request.reservation_id}-{request.amount_cents}",
            **link_data,
        )
        external_id = link_result['data']['id'] if link_result['success'] else ''
        self.log_transaction('payment_link', request.reservation_id, link_data, link_result, external_id)

        if not link_result['success']:
            raise PaymentServiceException(f"Could not create payment link: {link_result['error']}")

        return PaymentLink(id=link_result['data']['id'], url=link_result['data']['url'])

    def create_transfer(self, amount_cents: int, currency: str, destination: str, booking_id: str) -> str:
        """Pay a supplier's connected account. Returns the transfer id."""
        data = {
            'amount': amount_cents,
            'currency': currency.lower(),
            'destination': destination,
            'metadata': {'bookingId': str(booking_id)},
        }
        result = self._call('Transfer.create', stripe.Transfer.create,
                            idempotency_key=f"transfer-{booking_id}", **data)
        external_id = result['data']['id'] if result['success'] else ''
        self.log_transaction('transfer', booking_id, data, result, external_id)

        if not result['success']:
            raise PaymentServiceException(f"Transfer failed: {result['error']}")
        return external_id

    def create_refund(self, charge_id: str, booking_id: str) -> str:
        """
        Fully refund a charge. Returns the refund id.

        A charge that Stripe reports as already refunded counts as success
        with an empty refund id; the ``charge.refunded`` webhook carries it.
        """
        data = {'charge': charge_id, 'metadata': {'bookingId': str(booking_id)}}
        result = self._call('Refund.create', stripe.Refund.create,
                            idempotency_key=f"refund-{booking_id}", **data)
        external_id = result['data']['id'] if result['success'] else ''
        self.log_transaction('refund', booking_id, data, result, external_id)

        if not result['success']:
            if result.get('code') == 'charge_already_refunded':
                logger.info(f"💸 [STRIPE] Charge {charge_id} was already refunded")
                return ''
            raise PaymentServiceException(f"Refund failed: {result['error']}")
        return external_id

    def verify_webhook(self, payload: bytes, signature_header: str) -> Dict[str, Any]:
        """
        Verify a ``Stripe-Signature`` header and return the event as a dict.

        Raises PaymentServiceException on a missing secret, a bad or stale
        signature, or a body that is not valid JSON.
        """
        if not self.webhook_secret:
            raise PaymentServiceException("Webhook secret not configured")
        if not signature_header:
            raise PaymentServiceException("Missing signature header")

        if isinstance(payload, bytes):
            payload = payload.decode('utf-8')

        try:
            event = stripe.Webhook.construct_event(
                payload=payload,
                sig_header=signature_header,
                secret=self.webhook_secret,
                tolerance=self.webhook_tolerance,
            )
        except stripe.SignatureVerificationError as e:
            raise PaymentServiceException(f"Invalid signature: {e}")
        except ValueError:
            raise PaymentServiceException("Webhook payload is not valid JSON")

        return to_dict(event)


class DisabledPaymentService(BasePaymentService):
    """Used when no Stripe key is configured: every money-moving call fails cleanly."""

    def _unavailable(self, *args, **kwargs):
        raise PaymentServiceException("Payments are not configured (STRIPE_SECRET_KEY is empty)")

    create_payment_link = _unavailable
    create_transfer = _unavailable
    create_refund = _unavailable
    verify_webhook = _unavailable


class PaymentServiceFactory:
    """Factory for creating payment services"""

    _services = {
        'stripe': StripePaymentService,
    }

    @classmethod
    def create_service(cls, provider_type: str = 'stripe') -> BasePaymentService:
        """Create payment service for provider"""
        service_class = cls._services.get(provider_type)

        if not service_class:
            raise PaymentServiceException(f"No service available for provider: {provider_type}")

        if provider_type == 'stripe' and not settings.STRIPE_SECRET_KEY:
            logger.warning("⚠️ [PAYMENT] STRIPE_SECRET_KEY is not set, payments are disabled")
            return DisabledPaymentService()

        return service_class.from_settings()
