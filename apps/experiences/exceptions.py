"""Errors raised by pricing and session inventory operations."""


class PricingError(ValueError):
    """Invalid input to the pricing engine (negative counts, unknown pricing type)."""


class LedgerError(Exception):
    """Base error for session inventory operations."""


class CapacityExceeded(LedgerError):
    """Requested more spots than the session has available."""

    def __init__(self, session_id, requested, available):
        self.session_id = session_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Session {session_id} has {available} spots available, {requested} requested"
        )


class SessionInUse(LedgerError):
    """Session cannot be deleted while bookings reference it; cancel it instead."""
