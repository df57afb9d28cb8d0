"""
Tests for the Stripe payment service.
"""

import hashlib
import hmac
import json
import time
from unittest.mock import patch

import stripe
from django.test import TestCase, override_settings

from payment_processor.models import PaymentTransaction
from payment_processor.services import (
    DisabledPaymentService,
    PaymentLinkRequest,
    PaymentServiceException,
    PaymentServiceFactory,
    StripePaymentService,
)


def sign(payload, secret, timestamp=None):
    """Build a Stripe-Signature header the way Stripe signs webhook deliveries."""
    timestamp = int(timestamp if timestamp is not None else time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@patch('payment_processor.services.time.sleep')
class StripePaymentServiceTestCase(TestCase):

    def setUp(self):
        self.service = StripePaymentService('sk_test_123', webhook_secret='whsec_abc', retry_attempts=3)
        self.link_request = PaymentLinkRequest(
            reservation_id='res-1',
            title='Sunset Kayak Tour',
            amount_cents=4000,
            currency='EUR',
            success_url='https://widget.example.com/grand-hotel/confirmation/res-1',
            cancel_url='https://widget.example.com/grand-hotel/reservation/res-1',
        )

    @patch('payment_processor.services.stripe.PaymentLink.create')
    @patch('payment_processor.services.stripe.Price.create')
    def test_create_payment_link(self, mock_price, mock_link, mock_sleep):
        mock_price.return_value = {'id': 'price_1'}
        mock_link.return_value = {'id': 'plink_1', 'url': 'https://buy.stripe.com/abc'}

        link = self.service.create_payment_link(self.link_request)

        self.assertEqual((link.id, link.url), ('plink_1', 'https://buy.stripe.com/abc'))
        price_kwargs = mock_price.call_args.kwargs
        self.assertEqual(price_kwargs['unit_amount'], 4000)
        self.assertEqual(price_kwargs['currency'], 'eur')
        self.assertEqual(price_kwargs['api_key'], 'sk_test_123')
        link_kwargs = mock_link.call_args.kwargs
        self.assertEqual(link_kwargs['line_items'], [{'price': 'price_1', 'quantity': 1}])
        self.assertEqual(link_kwargs['metadata'], {'reservationId': 'res-1'})
        self.assertEqual(link_kwargs['payment_intent_data'], {'metadata': {'reservationId': 'res-1'}})
        self.assertEqual(link_kwargs['idempotency_key'], 'payment-link-res-1-4000')
        log = PaymentTransaction.objects.get()
        self.assertTrue(log.is_successful)
        self.assertEqual(log.external_id, 'plink_1')

    @patch('payment_processor.services.stripe.PaymentLink.create')
    @patch('payment_processor.services.stripe.Price.create')
    def test_payment_link_client_error_is_not_retried(self, mock_price, mock_link, mock_sleep):
        mock_price.side_effect = stripe.InvalidRequestError('Invalid currency', 'currency', http_status=400)

        with self.assertRaises(PaymentServiceException) as ctx:
            self.service.create_payment_link(self.link_request)

        self.assertIn('Invalid currency', str(ctx.exception))
        self.assertEqual(mock_price.call_count, 1)
        mock_link.assert_not_called()
        log = PaymentTransaction.objects.get()
        self.assertFalse(log.is_successful)
        self.assertEqual(log.status_code, 400)

    @patch('payment_processor.services.stripe.Transfer.create')
    def test_server_errors_are_retried(self, mock_transfer, mock_sleep):
        mock_transfer.side_effect = [
            stripe.APIError('Stripe is having trouble', http_status=503),
            stripe.APIConnectionError('Timed out'),
            {'id': 'tr_1'},
        ]

        transfer_id = self.service.create_transfer(3200, 'EUR', 'acct_1', 'booking-1')

        self.assertEqual(transfer_id, 'tr_1')
        self.assertEqual(mock_transfer.call_count, 3)
        self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [1, 2])
        kwargs = mock_transfer.call_args.kwargs
        self.assertEqual(kwargs['idempotency_key'], 'transfer-booking-1')
        self.assertEqual((kwargs['amount'], kwargs['currency'], kwargs['destination']), (3200, 'eur', 'acct_1'))

    @patch('payment_processor.services.stripe.Refund.create')
    def test_gives_up_after_all_attempts(self, mock_refund, mock_sleep):
        mock_refund.side_effect = stripe.APIConnectionError('Connection refused')
        with self.assertRaises(PaymentServiceException) as ctx:
            self.service.create_refund('ch_1', 'booking-1')
        self.assertIn('All 3 attempts failed', str(ctx.exception))
        self.assertEqual(mock_refund.call_count, 3)

    @patch('payment_processor.services.stripe.Refund.create')
    def test_create_refund(self, mock_refund, mock_sleep):
        mock_refund.return_value = {'id': 're_1'}
        self.assertEqual(self.service.create_refund('ch_1', 'booking-1'), 're_1')
        self.assertEqual(mock_refund.call_args.kwargs['charge'], 'ch_1')
        self.assertEqual(mock_refund.call_args.kwargs['idempotency_key'], 'refund-booking-1')

    @patch('payment_processor.services.stripe.Refund.create')
    def test_already_refunded_charge(self, mock_refund, mock_sleep):
        mock_refund.side_effect = stripe.InvalidRequestError(
            'Charge ch_1 has already been refunded.', None, code='charge_already_refunded', http_status=400,
        )
        self.assertEqual(self.service.create_refund('ch_1', 'booking-1'), '')
        self.assertEqual(mock_refund.call_count, 1)


class WebhookSignatureTestCase(TestCase):

    def setUp(self):
        self.service = StripePaymentService('sk_test_123', webhook_secret='whsec_abc')
        self.payload = json.dumps({
            'id': 'evt_1',
            'object': 'event',
            'type': 'charge.refunded',
            'data': {'object': {'id': 'ch_1', 'object': 'charge'}},
        }).encode()

    def test_valid_signature(self):
        event = self.service.verify_webhook(self.payload, sign(self.payload, 'whsec_abc'))
        self.assertEqual(event['id'], 'evt_1')
        self.assertEqual(event['type'], 'charge.refunded')
        self.assertEqual(event['data']['object']['id'], 'ch_1')

    def test_wrong_secret(self):
        with self.assertRaises(PaymentServiceException):
            self.service.verify_webhook(self.payload, sign(self.payload, 'whsec_other'))

    def test_tampered_body(self):
        header = sign(self.payload, 'whsec_abc')
        with self.assertRaises(PaymentServiceException):
            self.service.verify_webhook(self.payload + b' ', header)

    def test_stale_timestamp(self):
        header = sign(self.payload, 'whsec_abc', timestamp=time.time() - 3600)
        with self.assertRaises(PaymentServiceException):
            self.service.verify_webhook(self.payload, header)

    def test_malformed_header(self):
        for header in ('', 'v1=abc', 't=123'):
            with self.subTest(header=header), self.assertRaises(PaymentServiceException):
                self.service.verify_webhook(self.payload, header)

    def test_missing_secret(self):
        service = StripePaymentService('sk_test_123')
        with self.assertRaises(PaymentServiceException):
            service.verify_webhook(self.payload, sign(self.payload, 'whsec_abc'))


class PaymentServiceFactoryTestCase(TestCase):

    def test_creates_stripe_service(self):
        self.assertIsInstance(PaymentServiceFactory.create_service('stripe'), StripePaymentService)

    @override_settings(STRIPE_SECRET_KEY='')
    def test_disabled_without_key(self):
        service = PaymentServiceFactory.create_service('stripe')
        self.assertIsInstance(service, DisabledPaymentService)
        with self.assertRaises(PaymentServiceException):
            service.create_transfer(100, 'EUR', 'acct_1', 'b1')

    def test_unknown_provider(self):
        with self.assertRaises(PaymentServiceException):
            PaymentServiceFactory.create_service('paypal')
