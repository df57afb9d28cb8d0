"""
Reservation lifecycle.

    pending ──accept──▶ approved ──payment──▶ confirmed ──▶ completed / refunded
       │  ├─decline──▶ declined        └─deadline──▶ expired
       │  └─propose──▶ proposed ──guest picks a slot──▶ approved
       │                  └─guest declines──▶ declined
       └─deadline──▶ expired  (pending and proposed)
    pending_minimum ──minimum reached / supplier confirms──▶ approved
                    ├─cutoff below minimum──▶ cancelled_minimum
                    └─cutoff reached but still unapproved──▶ expired

Every transition locks the reservation row, re-checks the current status
and only then mutates. Notifications are sent after the transaction has
committed and never fail the transition.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time as dt_time, timedelta
from typing import Callable, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.experiences.commission import DEFAULT_COMMISSION_RATES, split_commission
from apps.experiences.exceptions import CapacityExceeded, LedgerError, PricingError
from apps.experiences.models import Distribution, Experience, ExperienceSession
from apps.experiences.pricing import compute_price, price_breakdown, rental_days_between
from apps.partners.models import HotelConfig
from payment_processor.services import PaymentLinkRequest, PaymentServiceException

from . import tokens as token_actions
from .cancellation import cancellation_min_days
from .email_context import build_booking_context, build_reservation_context
from .exceptions import (
    AlreadyProcessed,
    CapacityUnavailable,
    InvalidToken,
    NotFound,
    OnboardingIncomplete,
    PaymentCapabilityError,
    PaymentLinkFailed,
    ValidationFailed,
)
from .models import Booking, Reservation

logger = logging.getLogger(__name__)

PRICE_TOLERANCE_CENTS = 1
MAX_PROPOSED_TIMES = 3
# Statuses whose response_deadline is still running
AWAITING_RESPONSE = ('pending', 'proposed')


@dataclass(frozen=True)
class LifecycleConfig:
    response_window: timedelta = timedelta(hours=48)
    payment_window: timedelta = timedelta(hours=24)
    minimum_cutoff: timedelta = timedelta(hours=48)
    action_token_ttl: timedelta = timedelta(hours=48)
    completion_token_ttl: timedelta = timedelta(days=14)
    auto_complete_after: timedelta = timedelta(days=7)
    app_url: str = 'http://localhost:8000'
    frontend_url: str = 'http://localhost:8080'
    admin_email: str = ''

    @classmethod
    def from_settings(cls):
        conf = settings.RESERVATIONS
        return cls(
            response_window=timedelta(hours=conf['RESPONSE_WINDOW_HOURS']),
            payment_window=timedelta(hours=conf['PAYMENT_WINDOW_HOURS']),
            minimum_cutoff=timedelta(hours=conf['MINIMUM_CUTOFF_HOURS']),
            action_token_ttl=timedelta(hours=conf['ACTION_TOKEN_HOURS']),
            completion_token_ttl=timedelta(days=conf['COMPLETION_TOKEN_DAYS']),
            auto_complete_after=timedelta(days=conf['AUTO_COMPLETE_AFTER_DAYS']),
            app_url=settings.APP_URL.rstrip('/'),
            frontend_url=settings.FRONTEND_URL.rstrip('/'),
            admin_email=getattr(settings, 'ADMIN_EMAIL', ''),
        )


@dataclass
class CreateReservationInput:
    experience_id: str
    participants: int
    guest_name: str
    guest_email: str
    hotel_slug: Optional[str] = None
    session_id: Optional[str] = None
    guest_phone: str = ''
    is_request: bool = False
    requested_date: Optional[date] = None
    requested_time: Optional[dt_time] = None
    rental_start_date: Optional[date] = None
    rental_end_date: Optional[date] = None
    quantity: Optional[int] = None
    total_cents: Optional[int] = None


@dataclass(frozen=True)
class ApprovalResult:
    approved: int
    errors: list


class ReservationStateMachine:
    """Validates and applies reservation transitions with their side effects."""

    def __init__(self, ledger, payments, notifier, tokens, config: LifecycleConfig,
                 clock: Callable = timezone.now):
        self.ledger = ledger
        self.payments = payments
        self.notifier = notifier
        self.tokens = tokens
        self.config = config
        self.clock = clock

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def lock_reservation(self, reservation_id) -> Reservation:
        try:
            return (
                Reservation.objects.select_for_update(of=('self',))
                .select_related('experience', 'experience__partner', 'hotel', 'hotel_config', 'session')
                .get(pk=reservation_id)
            )
        except (Reservation.DoesNotExist, ValueError):
            raise NotFound("Reservation not found or already processed")

    def lock_booking(self, booking_id) -> Booking:
        try:
            return (
                Booking.objects.select_for_update(of=('self',))
                .select_related('reservation', 'reservation__experience', 'reservation__experience__partner')
                .get(pk=booking_id)
            )
        except (Booking.DoesNotExist, ValueError):
            raise NotFound("Booking not found.")

    def refund_booking(self, booking_id, check: Optional[Callable] = None):
        """
        Refund a ``confirmed`` booking in full and free its spots.

        ``check(booking)`` runs under the row lock before any money moves and
        may raise to refuse the refund. Returns ``(booking, reservation)``.
        """
        now = self.clock()
        with transaction.atomic():
            booking = self.lock_booking(booking_id)
            if booking.status != 'confirmed':
                raise AlreadyProcessed.for_status(booking.status)
            if check is not None:
                check(booking)
            if not booking.charge_id:
                raise ValidationFailed("No charge is recorded for this booking, contact support to refund it.")

            try:
                booking.refund_id = self.payments.create_refund(booking.charge_id, str(booking.id))
            except PaymentServiceException as e:
                logger.error(f"❌ [PAYMENT] Refund for booking {booking.id} failed: {e}")
                raise PaymentCapabilityError(booking_id=str(booking.id), reason=str(e))

            booking.status = 'cancelled'
            booking.cancelled_at = now
            booking.save()

            reservation = self.lock_reservation(booking.reservation_id)
            self.release_hold(reservation)
            reservation.status = 'refunded'
            reservation.save()
            booking.reservation = reservation

        logger.info(f"💸 [PAYMENT] Booking {booking.id} refunded ({booking.refund_id or 'already refunded'})")
        return booking, reservation

    def notify(self, kind, recipient, payload):
        try:
            return self.notifier.notify(kind, recipient, payload)
        except Exception as e:
            logger.error(f"❌ [RESERVATION] Notification {kind} to {recipient} raised: {e}", exc_info=True)
            return False

    def _spots_needed(self, reservation) -> int:
        if reservation.is_rental:
            return reservation.quantity or 1
        return reservation.participants

    def release_hold(self, reservation):
        """Give back whatever this reservation holds; private sessions are cancelled instead."""
        if not reservation.session_id:
            return
        if reservation.spots_held:
            self.ledger.release(reservation.session_id, reservation.spots_held)
            reservation.spots_held = 0
        if reservation.session.is_private:
            self.ledger.cancel_session(reservation.session_id)

    def _hotel_slug(self, reservation) -> str:
        if reservation.hotel_config_id:
            return reservation.hotel_config.slug
        config = HotelConfig.objects.filter(partner_id=reservation.hotel_id, is_active=True).first()
        return config.slug if config else 'default'

    def _create_payment_link(self, reservation):
        slug = self._hotel_slug(reservation)
        request = PaymentLinkRequest(
            reservation_id=str(reservation.id),
            title=reservation.experience.title,
            amount_cents=reservation.total_cents,
            currency=reservation.experience.currency,
            success_url=f"{self.config.frontend_url}/{slug}/confirmation/{reservation.id}",
            cancel_url=f"{self.config.frontend_url}/{slug}/reservation/{reservation.id}",
        )
        try:
            return self.payments.create_payment_link(request)
        except PaymentServiceException as e:
            logger.error(f"💳 [RESERVATION] Payment link failed for {reservation.id}: {e}")
            raise PaymentLinkFailed(reservation_id=str(reservation.id), reason=str(e))

    def _approve(self, reservation, now):
        link = self._create_payment_link(reservation)
        reservation.payment_link_id = link.id
        reservation.payment_link_url = link.url
        reservation.payment_deadline = now + self.config.payment_window
        reservation.status = 'approved'

    def action_url(self, path: str, object_id, action: str, ttl: Optional[timedelta] = None) -> str:
        token = self.tokens.issue(object_id, action, ttl or self.config.action_token_ttl)
        return f"{self.config.app_url}/api/v1/{path}?token={token}"

    def booking_link_ttl(self, reservation, now) -> timedelta:
        """Booking links stay valid until the day after the experience, never less than the action TTL."""
        experience_date = reservation.experience_date
        if experience_date is None:
            return self.config.action_token_ttl
        until = timezone.make_aware(datetime.combine(experience_date + timedelta(days=1), dt_time.min)) - now
        return max(until, self.config.action_token_ttl)

    def verify_token(self, token, object_id, actions):
        """Raise InvalidToken unless ``token`` is valid for ``object_id`` and one of ``actions``."""
        payload = self.tokens.verify_for(token, object_id, actions)
        if payload is None:
            raise InvalidToken()
        return payload

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _validate_create(self, data: CreateReservationInput):
        missing = [
            name for name in ('experience_id', 'guest_name', 'guest_email')
            if not getattr(data, name)
        ]
        if not data.participants:
            missing.append('participants')
        if not data.hotel_slug:
            missing.append('hotel_slug')
        if missing:
            raise ValidationFailed("Missing required fields", fields=missing)

        hotel_config = (
            HotelConfig.objects.select_related('partner')
            .filter(slug=data.hotel_slug, is_active=True)
            .first()
        )
        if hotel_config is None:
            raise NotFound("Hotel not found")

        try:
            experience = Experience.objects.select_related('partner').get(pk=data.experience_id, status='active')
        except (Experience.DoesNotExist, ValueError):
            raise NotFound("Experience not found")

        if Distribution.objects.filter(experience=experience, hotel=hotel_config.partner, is_active=False).exists():
            raise ValidationFailed("This experience is not offered through this hotel")

        session = None
        if data.session_id:
            try:
                session = ExperienceSession.objects.get(pk=data.session_id, experience=experience)
            except (ExperienceSession.DoesNotExist, ValueError):
                raise NotFound("Session not found")
            if session.session_status == 'cancelled' or session.is_private:
                raise ValidationFailed("This session is no longer available")

        minimum_is_session_level = experience.requires_minimum and session is not None
        if data.participants < 1 or data.participants > experience.max_participants or (
                data.participants < experience.min_participants and not minimum_is_session_level):
            raise ValidationFailed(
                f"Participants must be between {experience.min_participants} and {experience.max_participants}"
            )

        if session is None:
            if not experience.allows_requests:
                raise ValidationFailed("Please pick one of the available sessions")
            if experience.is_rental and not data.rental_start_date:
                raise ValidationFailed("Missing rental dates", fields=['rental_start_date'])
            if not experience.is_rental and not data.requested_date:
                raise ValidationFailed("Missing requested date", fields=['requested_date'])

        return experience, hotel_config, session

    def _quote(self, data, experience, session):
        rental_days = None
        if experience.is_rental and data.rental_start_date:
            end = data.rental_end_date or data.rental_start_date
            rental_days = rental_days_between(data.rental_start_date, end)
            if rental_days < experience.min_days or (experience.max_days and rental_days > experience.max_days):
                limit = f"{experience.min_days}-{experience.max_days}" if experience.max_days else f"at least {experience.min_days}"
                raise ValidationFailed(f"Rentals must last {limit} days")

        return compute_price(
            experience,
            data.participants,
            session=session,
            rental_days=rental_days,
            quantity=data.quantity if experience.is_rental else None,
            apply_minimum=not (experience.requires_minimum and session is not None),
        )

    def create(self, data: CreateReservationInput) -> Reservation:
        """
        Create a reservation from guest input.

        - session + experience with a session-level minimum: ``pending_minimum``
          with spots held right away
        - session booked directly (not a request): ``approved`` with a payment
          link, spots held
        - anything else: ``pending`` until the supplier responds
        """
        experience, hotel_config, session = self._validate_create(data)
        try:
            quote = self._quote(data, experience, session)
        except PricingError as e:
            raise ValidationFailed(str(e))

        if data.total_cents is not None and abs(int(data.total_cents) - quote.total) > PRICE_TOLERANCE_CENTS:
            logger.warning(
                f"💶 [RESERVATION] Price mismatch for {experience.id}: client {data.total_cents}, server {quote.total}"
            )
            raise ValidationFailed("Price mismatch. Please refresh and try again.")

        now = self.clock()
        if session is not None and experience.requires_minimum:
            mode = 'minimum'
        elif session is not None and not data.is_request:
            mode = 'instant'
        else:
            mode = 'request'

        with transaction.atomic():
            reservation = Reservation(
                experience=experience,
                hotel=hotel_config.partner,
                hotel_config=hotel_config,
                session=session,
                guest_name=data.guest_name.strip(),
                guest_email=data.guest_email.strip(),
                guest_phone=(data.guest_phone or '').strip(),
                participants=data.participants,
                rental_start_date=data.rental_start_date,
                rental_end_date=data.rental_end_date,
                quantity=data.quantity if experience.is_rental else None,
                total_cents=quote.total,
                is_request=mode == 'request',
                requested_date=data.requested_date if session is None else None,
                requested_time=data.requested_time if session is None else None,
                status='pending',
                response_deadline=now + self.config.response_window,
            )

            if mode in ('minimum', 'instant'):
                count = self._spots_needed(reservation)
                try:
                    session = self.ledger.reserve(session.id, count)
                except CapacityExceeded as e:
                    raise CapacityUnavailable(
                        f"Only {e.available} spots left for this session", available=e.available
                    )
                except LedgerError:
                    raise ValidationFailed("This session is no longer available")
                reservation.session = session
                reservation.spots_held = count

            if mode == 'minimum':
                reservation.status = 'pending_minimum'
            reservation.save()

            if mode == 'instant':
                self._approve(reservation, now)
                reservation.save(update_fields=[
                    'status', 'payment_deadline', 'payment_link_id', 'payment_link_url', 'updated_at'
                ])

        logger.info(
            f"🧾 [RESERVATION] Created {reservation.id} ({reservation.status}) for {experience.title}, "
            f"{reservation.participants} participants, {reservation.total_cents} cents"
        )

        context = build_reservation_context(
            reservation, price_breakdown=price_breakdown(quote, experience, data.participants),
        )
        if mode == 'instant':
            self.notify('guest_booking_approved', reservation.guest_email, context)
        elif mode == 'minimum':
            self._after_minimum_booking(reservation, context)
        else:
            self.notify('guest_request_received', reservation.guest_email, context)
            supplier_context = dict(
                context,
                accept_url=self.action_url(f"reservations/{reservation.id}/accept/", reservation.id,
                                           token_actions.ACTION_ACCEPT),
                decline_url=self.action_url(f"reservations/{reservation.id}/decline/", reservation.id,
                                            token_actions.ACTION_DECLINE),
                reply_to=reservation.guest_email,
            )
            if not experience.is_rental:
                supplier_context['propose_url'] = self.action_url(
                    f"reservations/{reservation.id}/propose/", reservation.id, token_actions.ACTION_PROPOSE,
                )
            self.notify('supplier_new_request', experience.partner.email, supplier_context)

        return reservation

    def _after_minimum_booking(self, reservation, context):
        session = reservation.session
        session.refresh_from_db()
        experience = reservation.experience
        booked = session.booked_count

        if booked >= experience.min_participants:
            logger.info(f"👥 [RESERVATION] Session {session.id} reached its minimum ({booked}), approving")
            self.approve_pending_minimum(session.id)
            return

        minimum_context = dict(context, booked_count=booked, min_participants=experience.min_participants)
        self.notify('guest_minimum_pending', reservation.guest_email, minimum_context)
        self.notify('supplier_minimum_booking', experience.partner.email, dict(
            minimum_context,
            confirm_session_url=self.action_url(
                f"sessions/{session.id}/confirm/", session.id, token_actions.ACTION_CONFIRM_SESSION,
                ttl=self.config.completion_token_ttl,
            ),
        ))

    # ------------------------------------------------------------------
    # Supplier decisions
    # ------------------------------------------------------------------

    def accept(self, reservation_id) -> Reservation:
        now = self.clock()
        with transaction.atomic():
            reservation = self.lock_reservation(reservation_id)
            if reservation.status != 'pending':
                raise AlreadyProcessed.for_status(reservation.status)

            experience = reservation.experience
            if not experience.partner.stripe_onboarding_complete:
                raise OnboardingIncomplete()

            if reservation.session_id is None:
                if experience.is_rental:
                    if not reservation.rental_start_date:
                        raise ValidationFailed("This rental request has no dates")
                    session = self.ledger.create_private_session(
                        experience, reservation.rental_start_date,
                        end_date=reservation.rental_end_date,
                    )
                else:
                    if not reservation.requested_date or not reservation.requested_time:
                        raise ValidationFailed(
                            "This request has no date and time. Decline it and suggest alternative times instead."
                        )
                    session = self.ledger.create_private_session(
                        experience, reservation.requested_date, reservation.requested_time,
                    )
                reservation.session = session
            elif not reservation.spots_held:
                count = self._spots_needed(reservation)
                try:
                    self.ledger.reserve(reservation.session_id, count)
                except CapacityExceeded as e:
                    raise CapacityUnavailable(
                        f"The session only has {e.available} spots left", available=e.available
                    )
                except LedgerError:
                    raise ValidationFailed("This session is no longer available")
                reservation.spots_held = count

            self._approve(reservation, now)
            reservation.save()

        logger.info(f"✅ [RESERVATION] Accepted {reservation.id}, payment due {reservation.payment_deadline}")
        self.notify('guest_booking_approved', reservation.guest_email, build_reservation_context(reservation))
        return reservation

    def decline(self, reservation_id, message: Optional[str] = None) -> Reservation:
        with transaction.atomic():
            reservation = self.lock_reservation(reservation_id)
            if reservation.status != 'pending':
                raise AlreadyProcessed.for_status(reservation.status)

            self.release_hold(reservation)
            reservation.status = 'declined'
            reservation.supplier_message = (message or '').strip()
            reservation.save()

        logger.info(f"🚫 [RESERVATION] Declined {reservation.id}")
        self.notify('guest_booking_declined', reservation.guest_email, build_reservation_context(reservation))
        return reservation

    def _parse_slots(self, times, today):
        if not times or len(times) > MAX_PROPOSED_TIMES:
            raise ValidationFailed(f"Propose between 1 and {MAX_PROPOSED_TIMES} alternative times", fields=['times'])
        slots = []
        for entry in times:
            try:
                slot_date = entry['date']
                slot_time = entry['time']
                if isinstance(slot_date, str):
                    slot_date = date.fromisoformat(slot_date)
                if isinstance(slot_time, str):
                    slot_time = dt_time.fromisoformat(slot_time)
            except (KeyError, TypeError, ValueError):
                raise ValidationFailed("Every proposed time needs a date and a time", fields=['times'])
            if slot_date < today:
                raise ValidationFailed("Proposed dates cannot be in the past", fields=['times'])
            slots.append({'date': slot_date.isoformat(), 'time': slot_time.strftime('%H:%M')})
        return slots

    def propose(self, reservation_id, times, message: Optional[str] = None) -> Reservation:
        """
        Supplier cannot run the requested time and offers up to three others.

        ``times`` is a list of ``{'date', 'time'}`` (objects or ISO strings).
        The guest gets a new response window to pick one of them.
        """
        now = self.clock()
        slots = self._parse_slots(times, timezone.localtime(now).date())
        with transaction.atomic():
            reservation = self.lock_reservation(reservation_id)
            if reservation.status != 'pending':
                raise AlreadyProcessed.for_status(reservation.status)
            if reservation.is_rental:
                raise ValidationFailed("Rental requests cannot be moved to other times, decline it instead.")

            if reservation.session_id:
                reservation.requested_date = reservation.session.session_date
                reservation.requested_time = reservation.session.start_time
                self.release_hold(reservation)
                reservation.session = None
            reservation.proposed_times = slots
            reservation.status = 'proposed'
            reservation.response_deadline = now + self.config.response_window
            reservation.supplier_message = (message or '').strip()
            reservation.save()

        logger.info(f"🗓️ [RESERVATION] Proposed {len(slots)} alternative times for {reservation.id}")
        accept_path = f"reservations/{reservation.id}/accept-proposed/"
        proposed_slots = [
            dict(slot, accept_url=self.action_url(
                accept_path, reservation.id, token_actions.ACTION_ACCEPT_PROPOSED) + f"&slot={index}")
            for index, slot in enumerate(slots)
        ]
        self.notify('guest_time_proposed', reservation.guest_email, build_reservation_context(
            reservation,
            proposed_slots=proposed_slots,
            decline_proposed_url=self.action_url(
                f"reservations/{reservation.id}/decline-proposed/", reservation.id,
                token_actions.ACTION_DECLINE_PROPOSED,
            ),
            reply_to=reservation.experience.partner.email or '',
        ))
        return reservation

    def accept_proposed(self, reservation_id, slot) -> Reservation:
        """Guest picks proposed slot number ``slot``: approve on that time with a payment link."""
        now = self.clock()
        with transaction.atomic():
            reservation = self.lock_reservation(reservation_id)
            if reservation.status != 'proposed':
                raise AlreadyProcessed.for_status(reservation.status)
            try:
                index = int(slot)
                if index < 0:
                    raise IndexError(index)
                chosen = reservation.proposed_times[index]
            except (TypeError, ValueError, IndexError):
                raise ValidationFailed("This time option does not exist.", fields=['slot'])

            experience = reservation.experience
            if not experience.partner.stripe_onboarding_complete:
                raise OnboardingIncomplete(
                    "The provider cannot take payments yet, please try again later or contact them."
                )

            slot_date = date.fromisoformat(chosen['date'])
            slot_time = dt_time.fromisoformat(chosen['time'])
            if slot_date < timezone.localtime(now).date():
                raise ValidationFailed("This proposed time has already passed.")

            shared = (
                ExperienceSession.objects.filter(
                    experience=experience, session_date=slot_date, start_time=slot_time, is_private=False,
                )
                .exclude(session_status='cancelled')
                .first()
            )
            if shared is not None:
                count = self._spots_needed(reservation)
                try:
                    reservation.session = self.ledger.reserve(shared.id, count)
                except CapacityExceeded as e:
                    raise CapacityUnavailable(
                        f"This time only has {e.available} spots left", available=e.available
                    )
                except LedgerError:
                    raise ValidationFailed("This time is no longer available")
                reservation.spots_held = count
            else:
                reservation.session = self.ledger.create_private_session(experience, slot_date, slot_time)

            reservation.requested_date = slot_date
            reservation.requested_time = slot_time
            self._approve(reservation, now)
            reservation.save()

        logger.info(f"✅ [RESERVATION] Guest accepted proposed time {chosen['date']} {chosen['time']} for {reservation.id}")
        self.notify('guest_booking_approved', reservation.guest_email, build_reservation_context(reservation))
        return reservation

    def decline_proposed(self, reservation_id) -> Reservation:
        with transaction.atomic():
            reservation = self.lock_reservation(reservation_id)
            if reservation.status != 'proposed':
                raise AlreadyProcessed.for_status(reservation.status)
            reservation.status = 'declined'
            reservation.save()

        logger.info(f"🚫 [RESERVATION] Guest declined the proposed times for {reservation.id}")
        self.notify('supplier_proposal_declined', reservation.experience.partner.email,
                    build_reservation_context(reservation))
        return reservation

    def approve_pending_minimum(self, session_id) -> ApprovalResult:
        """Approve every ``pending_minimum`` reservation of a session, one at a time."""
        now = self.clock()
        approved = 0
        errors = []
        reservation_ids = list(
            Reservation.objects.filter(session_id=session_id, status='pending_minimum')
            .order_by('created_at').values_list('id', flat=True)
        )

        for reservation_id in reservation_ids:
            try:
                with transaction.atomic():
                    reservation = self.lock_reservation(reservation_id)
                    if reservation.status != 'pending_minimum':
                        continue
                    if not reservation.experience.partner.stripe_onboarding_complete:
                        raise OnboardingIncomplete("Supplier Stripe onboarding incomplete")
                    self._approve(reservation, now)
                    reservation.save()
            except Exception as e:
                message = getattr(e, 'user_message', str(e))
                errors.append(f"Reservation {reservation_id}: {message}")
                logger.error(f"❌ [RESERVATION] Auto-approve failed for {reservation_id}: {message}")
                continue

            approved += 1
            session = reservation.session
            self.notify('guest_minimum_reached', reservation.guest_email, build_reservation_context(
                reservation,
                booked_count=session.booked_count,
                min_participants=reservation.experience.min_participants,
            ))

        logger.info(f"👥 [RESERVATION] Session {session_id}: approved {approved}, {len(errors)} errors")
        return ApprovalResult(approved=approved, errors=errors)

    def confirm_session(self, session_id) -> ApprovalResult:
        """Supplier runs a session below its minimum: approve its waiting reservations."""
        if not ExperienceSession.objects.filter(pk=session_id).exists():
            raise NotFound("Session not found")
        if not Reservation.objects.filter(session_id=session_id, status='pending_minimum').exists():
            raise AlreadyProcessed("This session has no bookings waiting for confirmation.")
        return self.approve_pending_minimum(session_id)

    # ------------------------------------------------------------------
    # Payment signals
    # ------------------------------------------------------------------

    def handle_payment_success(self, reservation_id, payment_intent_id: str = '', charge_id: str = '',
                               amount_cents: Optional[int] = None):
        """
        Record a successful payment. Returns ``(booking, created)``.

        The reservation id is the idempotency key: a repeated signal for a
        reservation that already has a booking returns it untouched.
        """
        now = self.clock()
        with transaction.atomic():
            reservation = self.lock_reservation(reservation_id)

            existing = Booking.objects.filter(reservation_id=reservation.id).first()
            if existing is not None:
                logger.info(f"♻️ [PAYMENT] Booking already exists for {reservation.id}, ignoring duplicate")
                # checkout.session.completed carries no charge id; a later payment_intent event fills it in
                missing = {}
                if charge_id and not existing.charge_id:
                    missing['charge_id'] = charge_id
                if payment_intent_id and not existing.payment_intent_id:
                    missing['payment_intent_id'] = payment_intent_id
                if missing:
                    for field, value in missing.items():
                        setattr(existing, field, value)
                    existing.save(update_fields=[*missing, 'updated_at'])
                return existing, False

            if reservation.status not in ('approved', 'pending_minimum', 'pending'):
                logger.warning(
                    f"⚠️ [PAYMENT] Payment for {reservation.id} arrived in status {reservation.status}, recording anyway"
                )

            if reservation.session_id and not reservation.spots_held and not reservation.session.is_private:
                count = self._spots_needed(reservation)
                try:
                    self.ledger.reserve(reservation.session_id, count)
                    reservation.spots_held = count
                except LedgerError as e:
                    logger.error(
                        f"🚨 [PAYMENT] Paid reservation {reservation.id} could not re-take its spots: {e}. "
                        f"Session {reservation.session_id} needs manual review."
                    )

            distribution = Distribution.objects.filter(
                experience_id=reservation.experience_id, hotel_id=reservation.hotel_id, is_active=True,
            ).first()
            if distribution is None:
                logger.warning(
                    f"⚠️ [PAYMENT] No active distribution for {reservation.experience_id}/{reservation.hotel_id}, "
                    f"using default rates {DEFAULT_COMMISSION_RATES}"
                )
            amount = reservation.total_cents if amount_cents is None else amount_cents
            split = split_commission(amount, distribution)

            booking = Booking.objects.create(
                reservation=reservation,
                session_id=reservation.session_id,
                amount_cents=amount,
                supplier_amount_cents=split.supplier_amount,
                hotel_amount_cents=split.hotel_amount,
                platform_amount_cents=split.platform_amount,
                payment_intent_id=payment_intent_id or '',
                charge_id=charge_id or '',
                status='confirmed',
                paid_at=now,
            )

            reservation.status = 'confirmed'
            reservation.save(update_fields=['status', 'spots_held', 'updated_at'])
            if reservation.session_id:
                self.ledger.mark_booked(reservation.session_id)

        logger.info(
            f"💰 [PAYMENT] Booking {booking.id} for reservation {reservation.id}: "
            f"{split.supplier_amount}/{split.hotel_amount}/{split.platform_amount}"
        )

        context = build_booking_context(booking)
        ttl = self.booking_link_ttl(reservation, now)
        guest_context = dict(context)
        min_days = cancellation_min_days(reservation.experience.cancellation_policy)
        if min_days:
            guest_context.update(
                cancel_url=self.action_url(f"bookings/{booking.id}/cancel/", booking.id,
                                           token_actions.ACTION_CANCEL, ttl),
                cancel_min_days=min_days,
            )
        supplier_context = dict(
            context,
            supplier_cancel_url=self.action_url(f"bookings/{booking.id}/supplier-cancel/", booking.id,
                                                token_actions.ACTION_SUPPLIER_CANCEL, ttl),
        )
        self.notify('guest_payment_confirmed', reservation.guest_email, guest_context)
        self.notify('supplier_booking_confirmed', reservation.experience.partner.email, supplier_context)

        hotel_email = reservation.hotel.email if reservation.hotel_id else ''
        if hotel_email:
            self.notify('hotel_booking_notification', hotel_email, context)
        else:
            logger.warning(f"⚠️ [PAYMENT] No hotel email for reservation {reservation.id}, hotel not notified")

        return booking, True

    def handle_payment_failure(self, reservation_id, error_message: str = '') -> Reservation:
        """Tell the guest the payment failed; the link stays valid until the deadline."""
        try:
            reservation = Reservation.objects.select_related(
                'experience', 'experience__partner', 'hotel', 'hotel_config', 'session'
            ).get(pk=reservation_id)
        except (Reservation.DoesNotExist, ValueError):
            raise NotFound()

        logger.info(f"💳 [PAYMENT] Payment failed for {reservation.id}: {error_message}")
        self.notify('guest_payment_failed', reservation.guest_email, build_reservation_context(
            reservation, error_message=error_message or 'Payment was declined',
        ))
        return reservation

    def handle_refund(self, charge_id: str, refund_id: str = '') -> Optional[Booking]:
        """A charge was refunded at the processor: cancel its booking and free the spots."""
        now = self.clock()
        with transaction.atomic():
            booking = (
                Booking.objects.select_for_update()
                .filter(charge_id=charge_id)
                .first()
            ) if charge_id else None
            if booking is None:
                logger.info(f"💸 [PAYMENT] No booking for refunded charge {charge_id}")
                return None

            first_time = booking.status != 'cancelled'
            booking.refund_id = refund_id or booking.refund_id
            if first_time:
                booking.status = 'cancelled'
                booking.cancelled_at = now
            booking.save()

            if first_time:
                reservation = self.lock_reservation(booking.reservation_id)
                self.release_hold(reservation)
                reservation.status = 'refunded'
                reservation.save()

        if first_time:
            logger.info(f"💸 [PAYMENT] Booking {booking.id} refunded ({refund_id})")
            self.notify('guest_refund_processed', booking.reservation.guest_email, build_booking_context(booking))
        return booking

    # ------------------------------------------------------------------
    # Deadline transitions, driven by the sweeper
    # ------------------------------------------------------------------

    def expire_pending(self, reservation_id, now=None) -> bool:
        """``pending`` or ``proposed`` past its response deadline -> ``expired``. False when nothing changed."""
        now = now or self.clock()
        with transaction.atomic():
            reservation = self.lock_reservation(reservation_id)
            if reservation.status not in AWAITING_RESPONSE or reservation.response_deadline >= now:
                return False
            self.release_hold(reservation)
            reservation.status = 'expired'
            reservation.save()

        logger.info(f"⌛ [SWEEP] Request {reservation.id} expired without a response")
        self.notify('guest_request_expired', reservation.guest_email, build_reservation_context(reservation))
        return True

    def expire_unpaid(self, reservation_id, now=None) -> bool:
        """``approved`` past its payment deadline with no Booking -> ``expired``, spots released."""
        now = now or self.clock()
        with transaction.atomic():
            reservation = self.lock_reservation(reservation_id)
            if reservation.status != 'approved' or not reservation.payment_deadline:
                return False
            if reservation.payment_deadline >= now:
                return False
            if Booking.objects.filter(reservation_id=reservation.id).exists():
                return False
            self.release_hold(reservation)
            reservation.status = 'expired'
            reservation.save()

        logger.info(f"⌛ [SWEEP] Approved reservation {reservation.id} expired unpaid")
        context = build_reservation_context(reservation)
        self.notify('guest_payment_expired', reservation.guest_email, context)
        self.notify('supplier_payment_expired', reservation.experience.partner.email, context)
        return True

    def cancel_session_below_minimum(self, session_id, cutoff_date: date) -> int:
        """
        Cancel every ``pending_minimum`` reservation of a session that is due
        by ``cutoff_date`` and still below its minimum. Returns how many were
        cancelled; the supplier gets one email per session.
        """
        cancelled = []
        with transaction.atomic():
            try:
                session = (
                    ExperienceSession.objects.select_for_update(of=('self',))
                    .select_related('experience', 'experience__partner')
                    .get(pk=session_id)
                )
            except ExperienceSession.DoesNotExist:
                return 0

            experience = session.experience
            if session.session_date.isoformat() > cutoff_date.isoformat():
                return 0
            if session.booked_count >= experience.min_participants:
                return 0

            booked_before = session.booked_count
            reservation_ids = list(
                Reservation.objects.filter(session_id=session.id, status='pending_minimum')
                .order_by('created_at').values_list('id', flat=True)
            )
            for reservation_id in reservation_ids:
                reservation = self.lock_reservation(reservation_id)
                if reservation.status != 'pending_minimum':
                    continue
                self.release_hold(reservation)
                reservation.status = 'cancelled_minimum'
                reservation.save()
                cancelled.append(reservation)

        if not cancelled:
            return 0

        logger.info(
            f"👥 [SWEEP] Session {session_id} on {session.session_date} had {booked_before}/"
            f"{experience.min_participants}, cancelled {len(cancelled)} reservations"
        )
        for reservation in cancelled:
            self.notify('guest_minimum_cancelled', reservation.guest_email, build_reservation_context(
                reservation, booked_count=booked_before, min_participants=experience.min_participants,
            ))
        self.notify('supplier_minimum_cancelled', experience.partner.email, build_reservation_context(
            cancelled[0],
            booked_count=booked_before,
            min_participants=experience.min_participants,
            cancelled_count=len(cancelled),
        ))
        return len(cancelled)

    def settle_reached_minimum(self, session_id, cutoff_date: date):
        """
        Session at or above its minimum that still has ``pending_minimum``
        reservations, because approving them failed when the minimum was
        reached (typically the supplier had not finished Stripe onboarding).

        Approval is retried while the supplier can take payments. Whatever is
        still waiting once the session is due by ``cutoff_date`` expires and
        gives its spots back. Returns ``(approved, expired)``.
        """
        try:
            session = (
                ExperienceSession.objects.select_related('experience', 'experience__partner')
                .get(pk=session_id)
            )
        except ExperienceSession.DoesNotExist:
            return 0, 0

        experience = session.experience
        if session.booked_count < experience.min_participants:
            return 0, 0

        approved = 0
        if experience.partner.stripe_onboarding_complete:
            approved = self.approve_pending_minimum(session.id).approved
        if session.session_date.isoformat() > cutoff_date.isoformat():
            return approved, 0

        expired = []
        with transaction.atomic():
            reservation_ids = list(
                Reservation.objects.filter(session_id=session.id, status='pending_minimum')
                .order_by('created_at').values_list('id', flat=True)
            )
            for reservation_id in reservation_ids:
                reservation = self.lock_reservation(reservation_id)
                if reservation.status != 'pending_minimum':
                    continue
                self.release_hold(reservation)
                reservation.status = 'expired'
                reservation.save()
                expired.append(reservation)

        if expired:
            logger.warning(
                f"⌛ [SWEEP] Session {session.id} on {session.session_date} reached its minimum but "
                f"{len(expired)} reservations were never approved, expired them"
            )
        for reservation in expired:
            self.notify('guest_minimum_unconfirmed', reservation.guest_email, build_reservation_context(reservation))
        return approved, len(expired)
