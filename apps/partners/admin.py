"""Admin configuration for partners app."""

from django.contrib import admin
from .models import Partner, HotelConfig


class HotelConfigInline(admin.TabularInline):
    model = HotelConfig
    extra = 0
    fields = ('slug', 'display_name', 'is_active')


@admin.register(Partner)
class PartnerAdmin(admin.ModelAdmin):
    """Admin interface for Partner model."""
    list_display = ('name', 'partner_type', 'email', 'stripe_onboarding_complete', 'created_at')
    list_filter = ('partner_type', 'stripe_onboarding_complete')
    search_fields = ('name', 'email', 'stripe_account_id')
    readonly_fields = ('id', 'created_at', 'updated_at')
    inlines = [HotelConfigInline]


@admin.register(HotelConfig)
class HotelConfigAdmin(admin.ModelAdmin):
    list_display = ('display_name', 'slug', 'partner', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('display_name', 'slug', 'partner__name')
    readonly_fields = ('id', 'created_at', 'updated_at')
