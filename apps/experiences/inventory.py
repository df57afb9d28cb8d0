"""
Session inventory ledger.

All writes to ``ExperienceSession.spots_available`` and ``session_status``
go through SessionLedger. Every operation locks the session row
(``select_for_update``) inside its own atomic block, so concurrent guests
racing for the last spots are serialized by the database and callers that
already hold a transaction simply nest into it.
"""

import logging

from django.db import transaction

from .exceptions import CapacityExceeded, LedgerError, SessionInUse
from .models import ExperienceSession

logger = logging.getLogger(__name__)


class SessionLedger:
    """Atomic reserve/release of session spots."""

    def _lock(self, session_id) -> ExperienceSession:
        try:
            return ExperienceSession.objects.select_for_update().get(pk=session_id)
        except ExperienceSession.DoesNotExist:
            raise LedgerError(f"Session {session_id} not found")

    @staticmethod
    def _check_count(count):
        if not isinstance(count, int) or count <= 0:
            raise LedgerError(f"Spot count must be a positive integer, got {count!r}")

    def reserve(self, session_id, count: int) -> ExperienceSession:
        """
        Take ``count`` spots from a session.

        Raises CapacityExceeded without touching the row when fewer than
        ``count`` spots are left. A session whose last spot is taken moves
        to ``booked``.
        """
        self._check_count(count)
        with transaction.atomic():
            session = self._lock(session_id)
            if session.session_status == 'cancelled':
                raise LedgerError(f"Session {session_id} is cancelled")
            if count > session.spots_available:
                logger.warning(
                    f"🎟️ [LEDGER] Capacity exceeded on session {session_id}: "
                    f"{count} requested, {session.spots_available} available"
                )
                raise CapacityExceeded(session_id, count, session.spots_available)

            session.spots_available -= count
            if session.spots_available == 0:
                session.session_status = 'booked'
            session.save(update_fields=['spots_available', 'session_status', 'updated_at'])

        logger.info(f"🎟️ [LEDGER] Reserved {count} spots on session {session_id} ({session.spots_available} left)")
        return session

    def release(self, session_id, count: int) -> ExperienceSession:
        """
        Return ``count`` spots to a session, never above ``spots_total``.

        A booked shared session with no paid bookings becomes ``available``
        again. Cancelled and private sessions keep their status.
        """
        self._check_count(count)
        with transaction.atomic():
            session = self._lock(session_id)
            restored = min(session.spots_total, session.spots_available + count)
            if restored != session.spots_available + count:
                logger.warning(
                    f"⚠️ [LEDGER] Release of {count} on session {session_id} capped at total {session.spots_total}"
                )
            session.spots_available = restored
            if (session.session_status == 'booked' and not session.is_private and restored > 0
                    and not session.bookings.filter(status__in=('confirmed', 'completed')).exists()):
                session.session_status = 'available'
            session.save(update_fields=['spots_available', 'session_status', 'updated_at'])

        logger.info(f"🎟️ [LEDGER] Released {count} spots on session {session_id} ({session.spots_available} left)")
        return session

    def create_private_session(self, experience, session_date, start_time=None, end_date=None) -> ExperienceSession:
        """Single-use session for an accepted request: full from the start and never listed."""
        session = ExperienceSession.objects.create(
            experience=experience,
            session_date=session_date,
            start_time=start_time,
            end_date=end_date,
            spots_total=experience.max_participants,
            spots_available=0,
            session_status='booked',
            is_private=True,
        )
        logger.info(f"🎟️ [LEDGER] Created private session {session.id} for {experience.title} on {session_date}")
        return session

    def mark_booked(self, session_id) -> ExperienceSession:
        with transaction.atomic():
            session = self._lock(session_id)
            if session.session_status != 'booked':
                session.session_status = 'booked'
                session.save(update_fields=['session_status', 'updated_at'])
        return session

    def cancel_session(self, session_id) -> ExperienceSession:
        """Withdraw a session from sale. Existing bookings keep pointing at it."""
        with transaction.atomic():
            session = self._lock(session_id)
            if session.session_status != 'cancelled':
                session.session_status = 'cancelled'
                session.save(update_fields=['session_status', 'updated_at'])
        logger.info(f"🎟️ [LEDGER] Cancelled session {session_id}")
        return session

    def delete_session(self, session_id):
        """Delete a session that no booking references; otherwise raise SessionInUse."""
        with transaction.atomic():
            session = self._lock(session_id)
            if session.bookings.exists():
                raise SessionInUse(
                    f"Session {session_id} has bookings and cannot be deleted; cancel it instead"
                )
            session.delete()
        logger.info(f"🎟️ [LEDGER] Deleted session {session_id}")
