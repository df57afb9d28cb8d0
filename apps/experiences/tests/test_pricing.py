"""
Tests for the pricing engine.
"""

from datetime import date

from django.test import SimpleTestCase

from apps.experiences.exceptions import PricingError
from apps.experiences.models import Experience, ExperienceSession
from apps.experiences.pricing import compute_price, format_cents, price_breakdown, rental_days_between


def experience(**kwargs):
    defaults = {'min_participants': 1, 'max_participants': 10, 'included_participants': 1, 'min_days': 1}
    defaults.update(kwargs)
    return Experience(**defaults)


class PerPersonPricingTestCase(SimpleTestCase):

    def test_scenario_three_participants(self):
        """2000 cents per person for 3 participants is 6000."""
        quote = compute_price(experience(pricing_type='per_person', extra_person_cents=2000), 3)
        self.assertEqual(quote.total, 6000)
        self.assertEqual(quote.base_price, 6000)
        self.assertEqual(quote.extra_fee, 0)
        self.assertEqual(quote.effective_participants, 3)

    def test_participants_raised_to_minimum(self):
        quote = compute_price(experience(pricing_type='per_person', extra_person_cents=1500, min_participants=4), 2)
        self.assertEqual(quote.effective_participants, 4)
        self.assertEqual(quote.total, 6000)

    def test_minimum_not_applied_when_disabled(self):
        quote = compute_price(
            experience(pricing_type='per_person', extra_person_cents=1500, min_participants=4), 2,
            apply_minimum=False,
        )
        self.assertEqual(quote.total, 3000)

    def test_session_override_replaces_unit(self):
        session = ExperienceSession(price_override_cents=2500)
        quote = compute_price(experience(pricing_type='per_person', extra_person_cents=2000), 2, session=session)
        self.assertEqual(quote.total, 5000)

    def test_session_without_override_does_not_change_total(self):
        exp = experience(pricing_type='per_person', extra_person_cents=2000)
        self.assertEqual(
            compute_price(exp, 2).total,
            compute_price(exp, 2, session=ExperienceSession(price_override_cents=None)).total,
        )


class BasePlusExtraPricingTestCase(SimpleTestCase):

    def setUp(self):
        self.experience = experience(
            pricing_type='base_plus_extra', base_price_cents=10000, extra_person_cents=2500,
            included_participants=2,
        )

    def test_included_participants_cost_base_only(self):
        quote = compute_price(self.experience, 2)
        self.assertEqual(quote.total, 10000)
        self.assertEqual(quote.extra_fee, 0)

    def test_extra_participants_charged(self):
        quote = compute_price(self.experience, 4)
        self.assertEqual(quote.base_price, 10000)
        self.assertEqual(quote.extra_fee, 5000)
        self.assertEqual(quote.total, 15000)

    def test_override_is_per_person_and_drops_included_discount(self):
        quote = compute_price(self.experience, 3, session=ExperienceSession(price_override_cents=3000))
        self.assertEqual(quote.total, 9000)
        self.assertEqual(quote.extra_fee, 0)


class FlatRateAndPerDayPricingTestCase(SimpleTestCase):

    def test_flat_rate_ignores_participants(self):
        exp = experience(pricing_type='flat_rate', base_price_cents=30000)
        self.assertEqual(compute_price(exp, 1).total, 30000)
        self.assertEqual(compute_price(exp, 7).total, 30000)

    def test_flat_rate_override_still_constant(self):
        exp = experience(pricing_type='flat_rate', base_price_cents=30000)
        session = ExperienceSession(price_override_cents=25000)
        self.assertEqual(compute_price(exp, 5, session=session).total, 25000)

    def test_per_day_multiplies_days_and_quantity(self):
        exp = experience(pricing_type='per_day', price_per_day_cents=4000, min_days=2)
        self.assertEqual(compute_price(exp, 1, rental_days=3, quantity=2).total, 24000)

    def test_per_day_defaults_to_minimum_days_and_one_unit(self):
        exp = experience(pricing_type='per_day', price_per_day_cents=4000, min_days=2)
        self.assertEqual(compute_price(exp, 1).total, 8000)

    def test_per_day_override_replaces_daily_unit(self):
        exp = experience(pricing_type='per_day', price_per_day_cents=4000)
        session = ExperienceSession(price_override_cents=3500)
        self.assertEqual(compute_price(exp, 1, session=session, rental_days=2, quantity=3).total, 21000)


class PricingValidationTestCase(SimpleTestCase):

    def test_negative_participants_rejected(self):
        with self.assertRaises(PricingError):
            compute_price(experience(pricing_type='per_person', extra_person_cents=100), -1)

    def test_float_input_rejected(self):
        with self.assertRaises(PricingError):
            compute_price(experience(pricing_type='per_day', price_per_day_cents=100), 1, rental_days=1.5)

    def test_unknown_pricing_type_rejected(self):
        with self.assertRaises(PricingError):
            compute_price(experience(pricing_type='per_hour'), 1)

    def test_totals_are_non_negative_integers(self):
        cases = [
            experience(pricing_type='per_person', extra_person_cents=1999),
            experience(pricing_type='base_plus_extra', base_price_cents=5000, extra_person_cents=750),
            experience(pricing_type='flat_rate', base_price_cents=0),
            experience(pricing_type='per_day', price_per_day_cents=1234),
        ]
        for exp in cases:
            for participants in (0, 1, 5):
                total = compute_price(exp, participants).total
                self.assertIsInstance(total, int)
                self.assertGreaterEqual(total, 0)


class PricingHelpersTestCase(SimpleTestCase):

    def test_rental_days_inclusive(self):
        self.assertEqual(rental_days_between(date(2026, 5, 1), date(2026, 5, 3)), 3)
        self.assertEqual(rental_days_between(date(2026, 5, 1), date(2026, 5, 1)), 1)

    def test_rental_end_before_start_rejected(self):
        with self.assertRaises(PricingError):
            rental_days_between(date(2026, 5, 3), date(2026, 5, 1))

    def test_format_cents(self):
        self.assertEqual(format_cents(6000, 'EUR'), '60€')
        self.assertEqual(format_cents(1250, 'EUR'), '12.50€')
        self.assertEqual(format_cents(999, 'CHF'), '9.99 CHF')

    def test_breakdown_mentions_minimum(self):
        exp = experience(pricing_type='per_person', extra_person_cents=2000, min_participants=3, currency='EUR')
        quote = compute_price(exp, 2)
        self.assertEqual(price_breakdown(quote, exp, 2), '20€ × 3 (minimum) = 60€')
