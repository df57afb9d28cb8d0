"""Serializers for the reservations API."""

from rest_framework import serializers

from apps.reservations.models import Booking, Reservation
from apps.reservations.state_machine import CreateReservationInput


class CreateReservationSerializer(serializers.Serializer):
    """Guest input from the hotel widget."""

    experience_id = serializers.UUIDField()
    hotel_slug = serializers.SlugField()
    session_id = serializers.UUIDField(required=False, allow_null=True)
    participants = serializers.IntegerField(min_value=1)
    guest_name = serializers.CharField(max_length=255)
    guest_email = serializers.EmailField()
    guest_phone = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    is_request = serializers.BooleanField(required=False, default=False)
    requested_date = serializers.DateField(required=False, allow_null=True)
    requested_time = serializers.TimeField(required=False, allow_null=True)
    rental_start_date = serializers.DateField(required=False, allow_null=True)
    rental_end_date = serializers.DateField(required=False, allow_null=True)
    quantity = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    total_cents = serializers.IntegerField(required=False, allow_null=True, min_value=0)

    def validate(self, attrs):
        start = attrs.get('rental_start_date')
        end = attrs.get('rental_end_date')
        if start and end and end < start:
            raise serializers.ValidationError({'rental_end_date': 'Must be on or after the start date.'})
        return attrs

    def to_input(self) -> CreateReservationInput:
        data = dict(self.validated_data)
        data['experience_id'] = str(data['experience_id'])
        if data.get('session_id'):
            data['session_id'] = str(data['session_id'])
        return CreateReservationInput(**data)


class SupplierMessageSerializer(serializers.Serializer):
    """Token plus an optional note to the guest, for decline and supplier cancellation."""

    token = serializers.CharField()
    message = serializers.CharField(required=False, allow_blank=True, max_length=2000, default='')


class ProposedTimeSerializer(serializers.Serializer):
    date = serializers.DateField()
    time = serializers.TimeField()


class ProposeSerializer(serializers.Serializer):
    token = serializers.CharField()
    times = ProposedTimeSerializer(many=True, allow_empty=False)
    message = serializers.CharField(required=False, allow_blank=True, max_length=2000, default='')


class ReservationSerializer(serializers.ModelSerializer):
    experience_title = serializers.CharField(source='experience.title', read_only=True)
    session_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Reservation
        fields = (
            'id', 'experience', 'experience_title', 'session_id', 'status', 'participants', 'quantity',
            'rental_start_date', 'rental_end_date', 'requested_date', 'requested_time', 'proposed_times',
            'is_request', 'total_cents', 'response_deadline', 'payment_deadline', 'payment_link_url', 'created_at',
        )
        read_only_fields = fields


class BookingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Booking
        fields = (
            'id', 'reservation', 'status', 'amount_cents', 'supplier_amount_cents', 'hotel_amount_cents',
            'platform_amount_cents', 'paid_at', 'completed_at', 'cancelled_at',
        )
        read_only_fields = fields
