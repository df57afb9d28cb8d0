"""Admin configuration for experiences app."""

from django.contrib import admin
from .models import Experience, ExperienceSession, Distribution


@admin.register(Experience)
class ExperienceAdmin(admin.ModelAdmin):
    """Admin interface for Experience model."""
    list_display = ('title', 'partner', 'pricing_type', 'status', 'requires_minimum', 'created_at')
    list_filter = ('status', 'pricing_type', 'requires_minimum', 'allows_requests')
    search_fields = ('title', 'description', 'partner__name')
    readonly_fields = ('id', 'created_at', 'updated_at')
    prepopulated_fields = {'slug': ('title',)}
    fieldsets = (
        ('Basic Information', {
            'fields': ('title', 'slug', 'description', 'meeting_point', 'status')
        }),
        ('Supplier', {
            'fields': ('partner',)
        }),
        ('Pricing', {
            'fields': ('pricing_type', 'base_price_cents', 'extra_person_cents', 'price_per_day_cents',
                       'included_participants', 'currency')
        }),
        ('Capacity', {
            'fields': ('min_participants', 'max_participants', 'min_days', 'max_days', 'requires_minimum')
        }),
        ('Policies', {
            'fields': ('cancellation_policy', 'allows_requests')
        }),
        ('Timestamps', {
            'fields': ('id', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(ExperienceSession)
class ExperienceSessionAdmin(admin.ModelAdmin):
    """
    Admin interface for ExperienceSession model.

    Spot counts are read-only here: only the session ledger changes them.
    """
    list_display = ('experience', 'session_date', 'start_time', 'spots_available', 'spots_total',
                    'session_status', 'is_private')
    list_filter = ('session_status', 'is_private', 'experience')
    search_fields = ('experience__title', 'price_note')
    readonly_fields = ('id', 'spots_available', 'created_at', 'updated_at')
    date_hierarchy = 'session_date'


@admin.register(Distribution)
class DistributionAdmin(admin.ModelAdmin):
    list_display = ('experience', 'hotel', 'commission_supplier', 'commission_hotel',
                    'commission_platform', 'is_active')
    list_filter = ('is_active', 'hotel')
    search_fields = ('experience__title', 'hotel__name')
    readonly_fields = ('id', 'created_at', 'updated_at')
