"""Partner onboarding endpoints."""

import logging

from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from api.v1.reservations.error_handlers import ReservationErrorHandler
from apps.partners.services import onboard_hotel_organization

from .serializers import HotelConfigSerializer, HotelOnboardingSerializer

logger = logging.getLogger(__name__)


class HotelOnboardingView(APIView):
    """POST /api/v1/partners/hotels/ creates a hotel organization with its widget config."""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = HotelOnboardingSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
            partner, hotel_config = onboard_hotel_organization(**serializer.validated_data)
        except Exception as e:
            return ReservationErrorHandler.handle_exception(e, {'endpoint': 'hotel_onboarding'})

        return Response({
            'success': True,
            'hotel': HotelConfigSerializer(hotel_config).data
        }, status=status.HTTP_201_CREATED)
