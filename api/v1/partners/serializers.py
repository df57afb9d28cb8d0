"""Serializers for the partners API."""

from rest_framework import serializers

from apps.partners.models import HotelConfig


class HotelOnboardingSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True, default='')
    display_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    slug = serializers.SlugField(required=False, allow_blank=True)
    stripe_account_id = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class HotelConfigSerializer(serializers.ModelSerializer):
    partner_id = serializers.UUIDField(read_only=True)
    partner_name = serializers.CharField(source='partner.name', read_only=True)

    class Meta:
        model = HotelConfig
        fields = ('id', 'partner_id', 'partner_name', 'slug', 'display_name', 'is_active', 'created_at')
        read_only_fields = fields
