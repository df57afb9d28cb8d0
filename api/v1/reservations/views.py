"""
Reservation lifecycle endpoints.

Guest side: create a reservation from the hotel widget, answer proposed
times and cancel a paid booking.
Supplier side: accept, decline, propose times, confirm a session, cancel a
booking and report the completion outcome.
All but create are reached through signed links from notification emails.
A GET on a one-click link performs the action and redirects to a frontend
result page. Links that need a message or a confirmation (decline, propose,
cancel) redirect to a frontend form instead. A POST answers JSON.
Scheduler side: sweep, completion checks and auto-complete triggers,
protected by the cron secret.
"""

import logging
from urllib.parse import urlencode

from django.conf import settings
from django.http import HttpResponseRedirect
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.reservations import tokens as token_actions
from apps.reservations.exceptions import ReservationError
from apps.reservations.services import get_services
from core.permissions import CronSecretPermission

from .error_handlers import ReservationErrorHandler
from .serializers import (
    BookingSerializer,
    CreateReservationSerializer,
    ProposeSerializer,
    ReservationSerializer,
    SupplierMessageSerializer,
)

logger = logging.getLogger(__name__)


def _frontend_page(path, **params):
    url = f"{settings.FRONTEND_URL.rstrip('/')}/{path}"
    query = urlencode({k: v for k, v in params.items() if v})
    return HttpResponseRedirect(f"{url}?{query}" if query else url)


def _supplier_page(path, **params):
    return _frontend_page(f"supplier/{path}", **params)


class PublicView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []


class CreateReservationView(PublicView):
    """POST /api/v1/reservations/"""

    def post(self, request):
        serializer = CreateReservationSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
            reservation = get_services().state_machine.create(serializer.to_input())
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'endpoint': 'create_reservation'})

        return Response({
            'success': True,
            'reservation': ReservationSerializer(reservation).data
        }, status=status.HTTP_201_CREATED)


class AcceptReservationView(PublicView):
    """GET|POST /api/v1/reservations/<id>/accept/?token=..."""

    def _accept(self, request, reservation_id):
        token = request.query_params.get('token') or request.data.get('token')
        machine = get_services().state_machine
        machine.verify_token(token, reservation_id, [token_actions.ACTION_ACCEPT])
        return machine.accept(reservation_id)

    def get(self, request, reservation_id):
        try:
            self._accept(request, reservation_id)
        except ReservationError as e:
            logger.info(f"🔗 [RESERVATION] Accept link for {reservation_id} failed: {e.code}")
            return _supplier_page(f"respond/{reservation_id}", error=e.code, message=e.user_message)
        except Exception as e:
            logger.error(f"❌ [RESERVATION] Accept link for {reservation_id} crashed: {e}", exc_info=True)
            return _supplier_page(f"respond/{reservation_id}", error='temporary_failure')
        return _supplier_page(f"respond/{reservation_id}", result='accepted')

    def post(self, request, reservation_id):
        try:
            reservation = self._accept(request, reservation_id)
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'reservation_id': str(reservation_id)})
        return Response({'success': True, 'reservation': ReservationSerializer(reservation).data})


class DeclineReservationView(PublicView):
    """
    GET  /api/v1/reservations/<id>/decline/?token=...  -> supplier page to write a message
    POST /api/v1/reservations/<id>/decline/  {token, message}
    """

    def get(self, request, reservation_id):
        return _supplier_page(
            f"respond/{reservation_id}",
            action='decline',
            token=request.query_params.get('token', ''),
        )

    def post(self, request, reservation_id):
        serializer = SupplierMessageSerializer(data={**request.query_params.dict(), **request.data})
        try:
            serializer.is_valid(raise_exception=True)
            machine = get_services().state_machine
            machine.verify_token(serializer.validated_data['token'], reservation_id, [token_actions.ACTION_DECLINE])
            reservation = machine.decline(reservation_id, serializer.validated_data['message'])
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'reservation_id': str(reservation_id)})
        return Response({'success': True, 'reservation': ReservationSerializer(reservation).data})


class ProposeTimesView(PublicView):
    """
    GET  /api/v1/reservations/<id>/propose/?token=...  -> supplier page to pick alternative times
    POST /api/v1/reservations/<id>/propose/  {token, times: [{date, time}], message}
    """

    def get(self, request, reservation_id):
        return _supplier_page(
            f"respond/{reservation_id}",
            action='propose',
            token=request.query_params.get('token', ''),
        )

    def post(self, request, reservation_id):
        serializer = ProposeSerializer(data={**request.query_params.dict(), **request.data})
        try:
            serializer.is_valid(raise_exception=True)
            machine = get_services().state_machine
            machine.verify_token(serializer.validated_data['token'], reservation_id, [token_actions.ACTION_PROPOSE])
            reservation = machine.propose(
                reservation_id,
                serializer.validated_data['times'],
                serializer.validated_data['message'],
            )
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'reservation_id': str(reservation_id)})
        return Response({'success': True, 'reservation': ReservationSerializer(reservation).data})


class AcceptProposedView(PublicView):
    """
    GET|POST /api/v1/reservations/<id>/accept-proposed/?token=...&slot=N

    A click from the guest email sends the guest straight to the payment link.
    """

    def _accept(self, request, reservation_id):
        token = request.query_params.get('token') or request.data.get('token')
        slot = request.query_params.get('slot', request.data.get('slot'))
        machine = get_services().state_machine
        machine.verify_token(token, reservation_id, [token_actions.ACTION_ACCEPT_PROPOSED])
        return machine.accept_proposed(reservation_id, slot)

    def get(self, request, reservation_id):
        try:
            reservation = self._accept(request, reservation_id)
        except ReservationError as e:
            logger.info(f"🔗 [RESERVATION] Accept-proposed link for {reservation_id} failed: {e.code}")
            return _frontend_page(f"reservations/{reservation_id}", error=e.code, message=e.user_message)
        except Exception as e:
            logger.error(f"❌ [RESERVATION] Accept-proposed link for {reservation_id} crashed: {e}", exc_info=True)
            return _frontend_page(f"reservations/{reservation_id}", error='temporary_failure')
        return HttpResponseRedirect(reservation.payment_link_url)

    def post(self, request, reservation_id):
        try:
            reservation = self._accept(request, reservation_id)
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'reservation_id': str(reservation_id)})
        return Response({'success': True, 'reservation': ReservationSerializer(reservation).data})


class DeclineProposedView(PublicView):
    """GET|POST /api/v1/reservations/<id>/decline-proposed/?token=..."""

    def _decline(self, request, reservation_id):
        token = request.query_params.get('token') or request.data.get('token')
        machine = get_services().state_machine
        machine.verify_token(token, reservation_id, [token_actions.ACTION_DECLINE_PROPOSED])
        return machine.decline_proposed(reservation_id)

    def get(self, request, reservation_id):
        try:
            self._decline(request, reservation_id)
        except ReservationError as e:
            return _frontend_page(f"reservations/{reservation_id}", error=e.code, message=e.user_message)
        except Exception as e:
            logger.error(f"❌ [RESERVATION] Decline-proposed link for {reservation_id} crashed: {e}", exc_info=True)
            return _frontend_page(f"reservations/{reservation_id}", error='temporary_failure')
        return _frontend_page(f"reservations/{reservation_id}", result='declined')

    def post(self, request, reservation_id):
        try:
            reservation = self._decline(request, reservation_id)
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'reservation_id': str(reservation_id)})
        return Response({'success': True, 'reservation': ReservationSerializer(reservation).data})


class ConfirmSessionView(PublicView):
    """GET|POST /api/v1/sessions/<id>/confirm/?token=..."""

    def _confirm(self, request, session_id):
        token = request.query_params.get('token') or request.data.get('token')
        machine = get_services().state_machine
        machine.verify_token(token, session_id, [token_actions.ACTION_CONFIRM_SESSION])
        return machine.confirm_session(session_id)

    def get(self, request, session_id):
        try:
            result = self._confirm(request, session_id)
        except ReservationError as e:
            return _supplier_page(f"sessions/{session_id}", error=e.code, message=e.user_message)
        except Exception as e:
            logger.error(f"❌ [RESERVATION] Confirm link for session {session_id} crashed: {e}", exc_info=True)
            return _supplier_page(f"sessions/{session_id}", error='temporary_failure')
        return _supplier_page(f"sessions/{session_id}", result='confirmed', approved=str(result.approved))

    def post(self, request, session_id):
        try:
            result = self._confirm(request, session_id)
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'session_id': str(session_id)})
        return Response({'success': True, 'approved': result.approved, 'errors': result.errors})


class BookingOutcomeView(PublicView):
    """Shared GET/POST handling for the two completion links."""

    result_label = ''

    def apply(self, booking_id, token):
        raise NotImplementedError

    def get(self, request, booking_id):
        try:
            self.apply(booking_id, request.query_params.get('token'))
        except ReservationError as e:
            return _supplier_page(f"bookings/{booking_id}", error=e.code, message=e.user_message)
        except Exception as e:
            logger.error(f"❌ [COMPLETION] Link for booking {booking_id} crashed: {e}", exc_info=True)
            return _supplier_page(f"bookings/{booking_id}", error='temporary_failure')
        return _supplier_page(f"bookings/{booking_id}", result=self.result_label)

    def post(self, request, booking_id):
        token = request.query_params.get('token') or request.data.get('token')
        try:
            booking = self.apply(booking_id, token)
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'booking_id': str(booking_id)})
        return Response({'success': True, 'booking': BookingSerializer(booking).data})


class CompleteBookingView(BookingOutcomeView):
    """GET|POST /api/v1/bookings/<id>/complete/?token=..."""

    result_label = 'completed'

    def apply(self, booking_id, token):
        return get_services().completion.complete(booking_id, token)


class NoExperienceView(BookingOutcomeView):
    """GET|POST /api/v1/bookings/<id>/no-experience/?token=..."""

    result_label = 'refunded'

    def apply(self, booking_id, token):
        return get_services().completion.report_no_experience(booking_id, token)


class GuestCancelBookingView(PublicView):
    """
    GET  /api/v1/bookings/<id>/cancel/?token=...  -> guest page asking to confirm the cancellation
    POST /api/v1/bookings/<id>/cancel/  {token}
    """

    def get(self, request, booking_id):
        return _frontend_page(f"bookings/{booking_id}", action='cancel', token=request.query_params.get('token', ''))

    def post(self, request, booking_id):
        token = request.query_params.get('token') or request.data.get('token')
        try:
            booking = get_services().cancellation.guest_cancel(booking_id, token)
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'booking_id': str(booking_id)})
        return Response({'success': True, 'booking': BookingSerializer(booking).data})


class SupplierCancelBookingView(PublicView):
    """
    GET  /api/v1/bookings/<id>/supplier-cancel/?token=...  -> supplier page to write a message
    POST /api/v1/bookings/<id>/supplier-cancel/  {token, message}
    """

    def get(self, request, booking_id):
        return _supplier_page(f"bookings/{booking_id}", action='cancel', token=request.query_params.get('token', ''))

    def post(self, request, booking_id):
        serializer = SupplierMessageSerializer(data={**request.query_params.dict(), **request.data})
        try:
            serializer.is_valid(raise_exception=True)
            booking = get_services().cancellation.supplier_cancel(
                booking_id, serializer.validated_data['token'], serializer.validated_data['message'],
            )
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'booking_id': str(booking_id)})
        return Response({'success': True, 'booking': BookingSerializer(booking).data})


class CronView(APIView):
    """Scheduled-job trigger; GET and POST both run the job."""

    permission_classes = [CronSecretPermission]
    authentication_classes = []
    throttle_classes = []

    def run(self):
        raise NotImplementedError

    def post(self, request):
        try:
            result = self.run()
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'endpoint': self.__class__.__name__})
        return Response({'success': True, **result})

    def get(self, request):
        return self.post(request)


class SweepView(CronView):
    """/api/v1/cron/sweep/"""

    def run(self):
        return get_services().sweeper.run().as_dict()


class CompletionCheckView(CronView):
    """/api/v1/cron/completion-check/"""

    def run(self):
        return {'sent': get_services().completion.send_completion_checks()}


class AutoCompleteView(CronView):
    """/api/v1/cron/auto-complete/"""

    def run(self):
        return get_services().completion.auto_complete()
