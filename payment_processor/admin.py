"""Admin configuration for payment processor app."""

from django.contrib import admin
from .models import PaymentTransaction, PaymentWebhook


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ('transaction_type', 'reference_id', 'external_id', 'is_successful', 'status_code',
                    'duration_ms', 'created_at')
    list_filter = ('transaction_type', 'is_successful')
    search_fields = ('reference_id', 'external_id', 'error_message')
    readonly_fields = [field.name for field in PaymentTransaction._meta.fields]


@admin.register(PaymentWebhook)
class PaymentWebhookAdmin(admin.ModelAdmin):
    list_display = ('event_id', 'event_type', 'status', 'processed_at', 'created_at')
    list_filter = ('status', 'event_type')
    search_fields = ('event_id', 'error_message')
    readonly_fields = ('id', 'event_id', 'event_type', 'payload', 'processed_at', 'created_at', 'updated_at')
