"""
Tests for the completion and payout workflow.
"""

from datetime import date, timedelta

from django.test import TestCase

from apps.reservations import tokens as token_actions
from apps.reservations.exceptions import (
    AlreadyProcessed,
    InvalidToken,
    PaymentCapabilityError,
    ValidationFailed,
)
from apps.reservations.models import Booking

from .fakes import (
    FakeNotifier,
    FakePaymentService,
    FrozenClock,
    make_experience,
    make_hotel,
    make_services,
    make_session,
    make_supplier,
    reservation_input,
)


class CompletionTestCase(TestCase):

    def setUp(self):
        self.clock = FrozenClock()
        self.payments = FakePaymentService()
        self.notifier = FakeNotifier()
        self.services = make_services(self.clock, self.payments, self.notifier)
        self.machine = self.services.state_machine
        self.completion = self.services.completion
        self.supplier = make_supplier()
        self.hotel, _ = make_hotel()
        self.experience = make_experience(self.supplier, self.hotel)
        self.session = make_session(self.experience, date(2026, 3, 12), spots=6)
        self.booking = self.paid_booking()
        self.notifier.sent.clear()

    def paid_booking(self, charge_id='ch_1'):
        reservation = self.machine.create(reservation_input(self.experience, session_id=str(self.session.id)))
        booking, _ = self.machine.handle_payment_success(reservation.id, 'pi_1', charge_id)
        return booking

    def token(self, action, booking=None, ttl=timedelta(days=14)):
        booking = booking or self.booking
        return self.services.tokens.issue(booking.id, action, ttl)

    def test_complete_transfers_supplier_share(self):
        booking = self.completion.complete(self.booking.id, self.token(token_actions.ACTION_COMPLETE))

        self.assertEqual(booking.status, 'completed')
        self.assertEqual(booking.completed_at, self.clock.now)
        self.assertEqual(booking.transfer_id, 'tr_1')
        self.assertEqual(self.payments.transfers, [(3200, 'EUR', 'acct_supplier', str(booking.id))])
        booking.reservation.refresh_from_db()
        self.assertEqual(booking.reservation.status, 'completed')
        self.assertEqual(self.notifier.to('supplier_payout_sent'), ['supplier@example.com'])

    def test_second_click_conflicts(self):
        self.completion.complete(self.booking.id, self.token(token_actions.ACTION_COMPLETE))
        with self.assertRaises(AlreadyProcessed):
            self.completion.complete(self.booking.id, self.token(token_actions.ACTION_COMPLETE))
        with self.assertRaises(AlreadyProcessed):
            self.completion.report_no_experience(self.booking.id, self.token(token_actions.ACTION_NO_EXPERIENCE))
        self.assertEqual(len(self.payments.transfers), 1)
        self.assertEqual(self.payments.refunds, [])

    def test_wrong_action_token_is_rejected(self):
        with self.assertRaises(InvalidToken):
            self.completion.complete(self.booking.id, self.token(token_actions.ACTION_NO_EXPERIENCE))
        with self.assertRaises(InvalidToken):
            self.completion.complete(self.booking.id, 'garbage')
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, 'confirmed')

    def test_expired_token_is_rejected(self):
        token = self.token(token_actions.ACTION_COMPLETE)
        self.clock.advance(days=15)
        with self.assertRaises(InvalidToken):
            self.completion.complete(self.booking.id, token)

    def test_transfer_failure_leaves_booking_confirmed(self):
        self.payments.fail_transfers = True
        with self.assertRaises(PaymentCapabilityError):
            self.completion.complete(self.booking.id, self.token(token_actions.ACTION_COMPLETE))
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, 'confirmed')
        self.assertEqual(self.booking.transfer_id, '')

    def test_supplier_without_account_completes_without_transfer(self):
        self.supplier.stripe_account_id = ''
        self.supplier.save()
        booking = self.completion.complete(self.booking.id, self.token(token_actions.ACTION_COMPLETE))
        self.assertEqual(booking.status, 'completed')
        self.assertEqual(self.payments.transfers, [])
        self.assertNotIn('supplier_payout_sent', self.notifier.kinds())

    def test_no_experience_refunds_guest(self):
        booking = self.completion.report_no_experience(
            self.booking.id, self.token(token_actions.ACTION_NO_EXPERIENCE))

        self.assertEqual(booking.status, 'cancelled')
        self.assertEqual(booking.refund_id, 're_1')
        self.assertEqual(self.payments.refunds, [('ch_1', str(booking.id))])
        booking.reservation.refresh_from_db()
        self.assertEqual(booking.reservation.status, 'refunded')
        self.session.refresh_from_db()
        self.assertEqual(self.session.spots_available, 6)
        self.assertEqual(self.notifier.kinds(), ['guest_refund_processed', 'supplier_booking_refunded'])

    def test_no_experience_without_charge(self):
        self.booking.charge_id = ''
        self.booking.save()
        with self.assertRaises(ValidationFailed):
            self.completion.report_no_experience(self.booking.id, self.token(token_actions.ACTION_NO_EXPERIENCE))

    def test_refund_failure_leaves_booking_confirmed(self):
        self.payments.fail_refunds = True
        with self.assertRaises(PaymentCapabilityError):
            self.completion.report_no_experience(self.booking.id, self.token(token_actions.ACTION_NO_EXPERIENCE))
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, 'confirmed')

    def test_completion_checks_after_experience_date(self):
        self.assertEqual(self.completion.send_completion_checks(date(2026, 3, 12)), 0)
        self.assertEqual(self.completion.send_completion_checks(date(2026, 3, 13)), 1)

        payload = self.notifier.payload('supplier_completion_check')
        self.assertIn(f"/api/v1/bookings/{self.booking.id}/complete/?token=", payload['complete_url'])
        self.assertIn(f"/api/v1/bookings/{self.booking.id}/no-experience/?token=", payload['no_experience_url'])
        self.booking.refresh_from_db()
        self.assertIsNotNone(self.booking.completion_check_sent_at)

        self.assertEqual(self.completion.send_completion_checks(date(2026, 3, 14)), 0)

    def test_completion_check_retried_when_email_fails(self):
        self.notifier.succeed = False
        self.assertEqual(self.completion.send_completion_checks(date(2026, 3, 13)), 0)
        self.booking.refresh_from_db()
        self.assertIsNone(self.booking.completion_check_sent_at)

    def test_auto_complete_after_grace_period(self):
        self.assertEqual(self.completion.auto_complete(date(2026, 3, 18))['completed'], 0)

        result = self.completion.auto_complete(date(2026, 3, 19))

        self.assertEqual(result, {'completed': 1, 'errors': []})
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, 'completed')
        self.assertEqual(self.booking.transfer_id, 'tr_1')

    def test_auto_complete_keeps_failed_transfers_for_next_run(self):
        self.payments.fail_transfers = True
        result = self.completion.auto_complete(date(2026, 3, 20))
        self.assertEqual(result['completed'], 0)
        self.assertEqual(len(result['errors']), 1)
        self.assertEqual(Booking.objects.get(pk=self.booking.pk).status, 'confirmed')

        self.payments.fail_transfers = False
        self.assertEqual(self.completion.auto_complete(date(2026, 3, 21))['completed'], 1)
