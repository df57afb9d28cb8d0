"""
Reservation lifecycle errors.

Each error carries a machine-readable ``code``, a guest/supplier facing
``user_message`` and the HTTP status the API layer should answer with.
"""


class ReservationError(Exception):
    code = 'reservation_error'
    http_status = 400
    default_message = 'Something went wrong with this reservation.'

    def __init__(self, user_message=None, **details):
        self.user_message = user_message or self.default_message
        self.details = details
        super().__init__(self.user_message)


class ValidationFailed(ReservationError):
    code = 'validation_failed'
    http_status = 400
    default_message = 'The reservation details are invalid.'


class NotFound(ReservationError):
    code = 'not_found'
    http_status = 404
    default_message = 'Reservation not found.'


class AlreadyProcessed(ReservationError):
    code = 'already_processed'
    http_status = 409
    default_message = 'This booking has already been handled.'

    @classmethod
    def for_status(cls, status):
        return cls(f"This booking has already been {status}.", status=status)


class InvalidToken(ReservationError):
    code = 'invalid_token'
    http_status = 400
    default_message = 'This link is invalid or has expired.'


class OnboardingIncomplete(ReservationError):
    code = 'onboarding_incomplete'
    http_status = 400
    default_message = 'Please complete your payment account setup before accepting bookings.'


class CapacityUnavailable(ReservationError):
    code = 'capacity_unavailable'
    http_status = 409
    default_message = 'Not enough spots available.'


class PaymentCapabilityError(ReservationError):
    code = 'payment_unavailable'
    http_status = 503
    default_message = 'Temporary payment failure, please try again in a moment.'


class PaymentLinkFailed(PaymentCapabilityError):
    code = 'payment_link_failed'


class CancellationNotAllowed(ReservationError):
    code = 'cancellation_not_allowed'
    http_status = 400
    default_message = 'This booking can no longer be cancelled.'
