"""
Pricing engine for experiences.

Pure functions: no queries, no writes. Every amount is an integer number of
cents and no floating point is involved in computing a total.

Usage:
    from apps.experiences.pricing import compute_price

    quote = compute_price(experience, participants=3, session=session)
    reservation.total_cents = quote.total
"""

from dataclasses import dataclass
from typing import Optional

from .exceptions import PricingError

CURRENCY_SYMBOLS = {
    'EUR': '€',
    'USD': '$',
    'GBP': '£',
}


@dataclass(frozen=True)
class PriceQuote:
    base_price: int
    extra_fee: int
    total: int
    effective_participants: int


def _check_non_negative(name: str, value: Optional[int]):
    if value is None:
        return
    if not isinstance(value, int) or isinstance(value, bool):
        raise PricingError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise PricingError(f"{name} cannot be negative, got {value}")


def compute_price(experience, participants: int, session=None,
                  rental_days: Optional[int] = None, quantity: Optional[int] = None,
                  apply_minimum: bool = True) -> PriceQuote:
    """
    Compute the total price of a booking in cents.

    Rules by ``experience.pricing_type``:
    - per_person: unit x max(participants, min_participants)
    - base_plus_extra: base covers ``included_participants``, each extra
      effective participant costs ``extra_person_cents``
    - flat_rate: constant
    - per_day: per-day unit x rental_days x quantity, rental_days defaulting
      to ``min_days`` and quantity to 1

    A session ``price_override_cents`` replaces the unit price. For
    base_plus_extra it replaces the per-person unit and is multiplied by the
    effective participants, so the included-participants discount is not
    applied to overridden sessions.

    Participants below the experience minimum are raised to the minimum,
    unless ``apply_minimum`` is False (session-level minimums, where each
    guest pays only for their own participants).
    """
    _check_non_negative('participants', participants)
    _check_non_negative('rental_days', rental_days)
    _check_non_negative('quantity', quantity)

    effective = max(participants, experience.min_participants or 0) if apply_minimum else participants
    override = getattr(session, 'price_override_cents', None) if session is not None else None
    pricing_type = experience.pricing_type

    if pricing_type == 'per_person':
        unit = override if override is not None else experience.extra_person_cents
        base, extra = unit * effective, 0

    elif pricing_type == 'base_plus_extra':
        if override is not None:
            base, extra = override * effective, 0
        else:
            extra_people = max(0, effective - experience.included_participants)
            base = experience.base_price_cents
            extra = extra_people * experience.extra_person_cents

    elif pricing_type == 'flat_rate':
        base = override if override is not None else experience.base_price_cents
        extra = 0

    elif pricing_type == 'per_day':
        unit = override if override is not None else experience.price_per_day_cents
        days = rental_days if rental_days is not None else (experience.min_days or 1)
        units = quantity if quantity is not None else 1
        base, extra = unit * days * units, 0

    else:
        raise PricingError(f"Unknown pricing type: {pricing_type}")

    return PriceQuote(
        base_price=base,
        extra_fee=extra,
        total=base + extra,
        effective_participants=effective,
    )


def rental_days_between(start_date, end_date) -> int:
    """Inclusive number of days covered by a rental date range."""
    if end_date < start_date:
        raise PricingError("Rental end date is before its start date")
    return (end_date - start_date).days + 1


def format_cents(cents: int, currency: str = 'EUR') -> str:
    """Render cents for emails: 6000 -> '60€', 1250 -> '12.50€'."""
    amount = f"{cents // 100}.{cents % 100:02d}".replace('.00', '')
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{amount}{symbol}"
    return f"{amount} {currency.upper()}"


def price_breakdown(quote: PriceQuote, experience, participants: int) -> str:
    """Human readable one-line explanation of a quote, used in notification emails."""
    currency = experience.currency
    total = format_cents(quote.total, currency)

    if experience.pricing_type == 'per_person':
        unit = quote.total // quote.effective_participants if quote.effective_participants else 0
        if participants < quote.effective_participants:
            return f"{format_cents(unit, currency)} × {quote.effective_participants} (minimum) = {total}"
        return f"{format_cents(unit, currency)} × {participants} = {total}"

    if experience.pricing_type == 'base_plus_extra' and quote.extra_fee:
        return (
            f"{format_cents(quote.base_price, currency)} (includes {experience.included_participants}) "
            f"+ {format_cents(quote.extra_fee, currency)} extra = {total}"
        )

    if experience.pricing_type == 'per_day':
        return f"{total} rental"

    return total
