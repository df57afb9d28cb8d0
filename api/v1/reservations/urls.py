"""URLs for reservations API."""

from django.urls import path

from .views import (
    AcceptProposedView,
    AcceptReservationView,
    AutoCompleteView,
    CompleteBookingView,
    CompletionCheckView,
    ConfirmSessionView,
    CreateReservationView,
    DeclineProposedView,
    DeclineReservationView,
    GuestCancelBookingView,
    NoExperienceView,
    ProposeTimesView,
    SupplierCancelBookingView,
    SweepView,
)

urlpatterns = [
    path('reservations/', CreateReservationView.as_view(), name='reservation-create'),
    path('reservations/<uuid:reservation_id>/accept/', AcceptReservationView.as_view(), name='reservation-accept'),
    path('reservations/<uuid:reservation_id>/decline/', DeclineReservationView.as_view(), name='reservation-decline'),
    path('reservations/<uuid:reservation_id>/propose/', ProposeTimesView.as_view(), name='reservation-propose'),
    path('reservations/<uuid:reservation_id>/accept-proposed/', AcceptProposedView.as_view(),
         name='reservation-accept-proposed'),
    path('reservations/<uuid:reservation_id>/decline-proposed/', DeclineProposedView.as_view(),
         name='reservation-decline-proposed'),
    path('sessions/<uuid:session_id>/confirm/', ConfirmSessionView.as_view(), name='session-confirm'),
    path('bookings/<uuid:booking_id>/complete/', CompleteBookingView.as_view(), name='booking-complete'),
    path('bookings/<uuid:booking_id>/no-experience/', NoExperienceView.as_view(), name='booking-no-experience'),
    path('bookings/<uuid:booking_id>/cancel/', GuestCancelBookingView.as_view(), name='booking-cancel'),
    path('bookings/<uuid:booking_id>/supplier-cancel/', SupplierCancelBookingView.as_view(),
         name='booking-supplier-cancel'),

    # Scheduled jobs
    path('cron/sweep/', SweepView.as_view(), name='cron-sweep'),
    path('cron/completion-check/', CompletionCheckView.as_view(), name='cron-completion-check'),
    path('cron/auto-complete/', AutoCompleteView.as_view(), name='cron-auto-complete'),
]
