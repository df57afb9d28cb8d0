"""
Expiry sweeper.

Runs the deadline passes over reservations. Each pass selects candidate ids
with a plain query and hands every id to the state machine, which locks the
row and re-checks the status before acting, so the sweep can run
concurrently with itself and with live guest/supplier actions.
"""

import logging
from dataclasses import asdict, dataclass

from django.utils import timezone

from .models import Reservation
from .state_machine import AWAITING_RESPONSE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepSummary:
    pending_expired: int = 0
    unpaid_expired: int = 0
    minimum_cancelled: int = 0
    minimum_approved: int = 0
    minimum_expired: int = 0

    @property
    def total(self) -> int:
        return (self.pending_expired + self.unpaid_expired + self.minimum_cancelled
                + self.minimum_approved + self.minimum_expired)

    def as_dict(self):
        return asdict(self)


class ExpirySweeper:
    """Drives time-based transitions for reservations whose deadlines have passed."""

    def __init__(self, state_machine, clock=None):
        self.state_machine = state_machine
        self.clock = clock or state_machine.clock

    def run(self, dry_run: bool = False) -> SweepSummary:
        now = self.clock()
        logger.info(f"🧹 [SWEEP] Starting sweep at {now.isoformat()}{' (dry run)' if dry_run else ''}")

        minimum_approved, minimum_expired = self._run_reached_minimum_pass(now, dry_run)
        summary = SweepSummary(
            pending_expired=self._run_pass('pending', self.expired_pending_ids(now), dry_run,
                                           lambda pk: self.state_machine.expire_pending(pk, now)),
            unpaid_expired=self._run_pass('unpaid', self.expired_unpaid_ids(now), dry_run,
                                          lambda pk: self.state_machine.expire_unpaid(pk, now)),
            minimum_cancelled=self._run_minimum_pass(now, dry_run),
            minimum_approved=minimum_approved,
            minimum_expired=minimum_expired,
        )

        logger.info(
            f"🧹 [SWEEP] Done: {summary.pending_expired} pending expired, "
            f"{summary.unpaid_expired} unpaid expired, {summary.minimum_cancelled} cancelled below minimum, "
            f"{summary.minimum_approved} approved and {summary.minimum_expired} expired at minimum"
        )
        return summary

    def expired_pending_ids(self, now):
        return list(
            Reservation.objects.filter(status__in=AWAITING_RESPONSE, response_deadline__lt=now)
            .order_by('response_deadline').values_list('id', flat=True)
        )

    def expired_unpaid_ids(self, now):
        return list(
            Reservation.objects.filter(status='approved', payment_deadline__lt=now, booking__isnull=True)
            .order_by('payment_deadline').values_list('id', flat=True)
        )

    def minimum_cutoff_date(self, now):
        """Sessions on or before this calendar date must have reached their minimum."""
        return timezone.localtime(now + self.state_machine.config.minimum_cutoff).date()

    def _minimum_sessions(self, reached: bool):
        candidates = (
            Reservation.objects.filter(status='pending_minimum', session__isnull=False)
            .select_related('session', 'experience')
            .order_by('session__session_date')
        )
        sessions = {}
        for reservation in candidates:
            session = reservation.session
            if session.id in sessions:
                continue
            if (session.booked_count >= reservation.experience.min_participants) == reached:
                sessions[session.id] = session
        return list(sessions.values())

    def sessions_below_minimum(self, now):
        cutoff = self.minimum_cutoff_date(now)
        return [
            session.id for session in self._minimum_sessions(reached=False)
            if session.session_date.isoformat() <= cutoff.isoformat()
        ]

    def sessions_awaiting_approval(self, now):
        """Sessions that reached their minimum but still hold ``pending_minimum`` reservations."""
        return [session.id for session in self._minimum_sessions(reached=True)]

    def _run_pass(self, name, ids, dry_run, action) -> int:
        if dry_run:
            logger.info(f"🧹 [SWEEP] Would process {len(ids)} {name} reservations")
            return len(ids)

        processed = 0
        for pk in ids:
            try:
                if action(pk):
                    processed += 1
            except Exception as e:
                logger.error(f"❌ [SWEEP] {name} pass failed for reservation {pk}: {e}", exc_info=True)
        return processed

    def _run_minimum_pass(self, now, dry_run) -> int:
        cutoff = self.minimum_cutoff_date(now)
        session_ids = self.sessions_below_minimum(now)
        if dry_run:
            count = Reservation.objects.filter(session_id__in=session_ids, status='pending_minimum').count()
            logger.info(f"🧹 [SWEEP] Would cancel {count} reservations on {len(session_ids)} sessions")
            return count

        cancelled = 0
        for session_id in session_ids:
            try:
                cancelled += self.state_machine.cancel_session_below_minimum(session_id, cutoff)
            except Exception as e:
                logger.error(f"❌ [SWEEP] Minimum pass failed for session {session_id}: {e}", exc_info=True)
        return cancelled

    def _run_reached_minimum_pass(self, now, dry_run):
        cutoff = self.minimum_cutoff_date(now)
        session_ids = self.sessions_awaiting_approval(now)
        if dry_run:
            count = Reservation.objects.filter(session_id__in=session_ids, status='pending_minimum').count()
            logger.info(f"🧹 [SWEEP] {count} reservations on {len(session_ids)} full-minimum sessions await approval")
            return 0, 0

        approved = expired = 0
        for session_id in session_ids:
            try:
                session_approved, session_expired = self.state_machine.settle_reached_minimum(session_id, cutoff)
            except Exception as e:
                logger.error(f"❌ [SWEEP] Reached-minimum pass failed for session {session_id}: {e}", exc_info=True)
                continue
            approved += session_approved
            expired += session_expired
        return approved, expired
