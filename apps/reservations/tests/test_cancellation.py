"""
Tests for guest and supplier booking cancellation.
"""

from datetime import date, timedelta

from django.test import SimpleTestCase, TestCase

from apps.reservations.cancellation import can_guest_cancel, cancellation_min_days
from apps.reservations.exceptions import (
    AlreadyProcessed,
    CancellationNotAllowed,
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


class CanGuestCancelTestCase(SimpleTestCase):

    def test_flexible(self):
        self.assertTrue(can_guest_cancel('flexible', 1).allowed)
        decision = can_guest_cancel('flexible', 0)
        self.assertFalse(decision.allowed)
        self.assertEqual(
            decision.message,
            "Cancellation is no longer available. You can only cancel up to 1 day before the experience. "
            "(0 days remaining)",
        )

    def test_moderate(self):
        self.assertTrue(can_guest_cancel('moderate', 7).allowed)
        decision = can_guest_cancel('moderate', 6)
        self.assertFalse(decision.allowed)
        self.assertIn('up to 7 days before the experience. (6 days remaining)', decision.message)

    def test_strict_and_non_refundable_never_cancel(self):
        strict = can_guest_cancel('strict', 60)
        self.assertFalse(strict.allowed)
        self.assertEqual(strict.message, "Cancellation is not available. No refunds after booking is confirmed.")
        non_refundable = can_guest_cancel('non_refundable', 60)
        self.assertFalse(non_refundable.allowed)
        self.assertEqual(non_refundable.message, "Cancellation is not available. This booking is non-refundable.")

    def test_missing_or_unknown_policy_is_moderate(self):
        for policy in (None, '', 'whatever'):
            with self.subTest(policy=policy):
                self.assertEqual(cancellation_min_days(policy), 7)
                self.assertFalse(can_guest_cancel(policy, 6).allowed)
                self.assertTrue(can_guest_cancel(policy, 7).allowed)


class BookingCancellationTestCase(TestCase):

    def setUp(self):
        self.clock = FrozenClock()
        self.payments = FakePaymentService()
        self.notifier = FakeNotifier()
        self.services = make_services(self.clock, self.payments, self.notifier)
        self.machine = self.services.state_machine
        self.cancellation = self.services.cancellation
        self.supplier = make_supplier()
        self.hotel, _ = make_hotel()
        self.experience = make_experience(self.supplier, self.hotel)
        # ten days ahead of the frozen clock
        self.session = make_session(self.experience, date(2026, 3, 20), spots=10)
        reservation = self.machine.create(reservation_input(self.experience, session_id=str(self.session.id)))
        self.booking, _ = self.machine.handle_payment_success(reservation.id, 'pi_1', 'ch_1', 4000)
        self.guest_token = self.link_token('guest_payment_confirmed', 'cancel_url')
        self.supplier_token = self.link_token('supplier_booking_confirmed', 'supplier_cancel_url')
        self.notifier.sent.clear()

    def link_token(self, kind, key):
        return self.notifier.payload(kind)[key].split('token=')[1]

    def spots(self):
        self.session.refresh_from_db()
        return self.session.spots_available

    def test_guest_cancels_within_policy(self):
        booking = self.cancellation.guest_cancel(self.booking.id, self.guest_token)

        self.assertEqual(booking.status, 'cancelled')
        self.assertEqual(booking.cancelled_at, self.clock.now)
        self.assertEqual(booking.refund_id, 're_1')
        self.assertEqual(self.payments.refunds, [('ch_1', str(self.booking.id))])
        booking.reservation.refresh_from_db()
        self.assertEqual(booking.reservation.status, 'refunded')
        self.assertEqual(self.spots(), 10)
        self.assertEqual(self.notifier.kinds(), ['guest_refund_processed', 'supplier_guest_cancelled'])
        self.assertEqual(self.notifier.to('supplier_guest_cancelled'), ['supplier@example.com'])
        self.assertEqual(self.notifier.payload('supplier_guest_cancelled')['amount_display'], '40€')

    def test_guest_cancel_too_close_to_the_date(self):
        self.clock.advance(days=4)

        with self.assertRaises(CancellationNotAllowed) as ctx:
            self.cancellation.guest_cancel(self.booking.id, self.guest_token)

        self.assertIn('(6 days remaining)', ctx.exception.user_message)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, 'confirmed')
        self.assertEqual(self.payments.refunds, [])
        self.assertEqual(self.notifier.sent, [])

    def test_guest_cannot_cancel_strict_booking(self):
        self.experience.cancellation_policy = 'strict'
        self.experience.save()
        token = self.machine.tokens.issue(self.booking.id, 'cancel', timedelta(days=1))

        with self.assertRaises(CancellationNotAllowed):
            self.cancellation.guest_cancel(self.booking.id, token)
        self.assertEqual(self.payments.refunds, [])

    def test_guest_cancel_needs_its_own_token(self):
        with self.assertRaises(InvalidToken):
            self.cancellation.guest_cancel(self.booking.id, self.supplier_token)
        with self.assertRaises(InvalidToken):
            self.cancellation.supplier_cancel(self.booking.id, self.guest_token)

    def test_second_cancel_conflicts(self):
        self.cancellation.guest_cancel(self.booking.id, self.guest_token)
        with self.assertRaises(AlreadyProcessed):
            self.cancellation.guest_cancel(self.booking.id, self.guest_token)
        self.assertEqual(len(self.payments.refunds), 1)

    def test_refund_failure_keeps_the_booking(self):
        self.payments.fail_refunds = True

        with self.assertRaises(PaymentCapabilityError):
            self.cancellation.guest_cancel(self.booking.id, self.guest_token)

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, 'confirmed')
        self.assertEqual(self.spots(), 8)

    def test_supplier_cancels_regardless_of_policy(self):
        self.experience.cancellation_policy = 'non_refundable'
        self.experience.save()
        self.clock.advance(days=9)

        booking = self.cancellation.supplier_cancel(self.booking.id, self.supplier_token, '  Storm warning  ')

        self.assertEqual(booking.status, 'cancelled')
        self.assertEqual(self.payments.refunds, [('ch_1', str(self.booking.id))])
        booking.reservation.refresh_from_db()
        self.assertEqual(booking.reservation.status, 'refunded')
        self.assertEqual(booking.reservation.supplier_message, 'Storm warning')
        self.assertEqual(self.spots(), 10)
        self.assertEqual(self.notifier.kinds(), ['guest_booking_cancelled'])
        self.assertEqual(self.notifier.payload('guest_booking_cancelled')['supplier_message'], 'Storm warning')

    def test_cancel_after_completion_conflicts(self):
        Booking.objects.filter(pk=self.booking.pk).update(status='completed')
        with self.assertRaises(AlreadyProcessed):
            self.cancellation.supplier_cancel(self.booking.id, self.supplier_token)

    def test_guest_cancel_without_charge_is_rejected(self):
        Booking.objects.filter(pk=self.booking.pk).update(charge_id='')

        with self.assertRaises(ValidationFailed):
            self.cancellation.guest_cancel(self.booking.id, self.guest_token)

        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, 'confirmed')
        self.assertEqual(self.payments.refunds, [])
