"""
Payment processor models.

Audit trail of every call made to the payment provider and of every
webhook event received from it.
"""

from django.db import models
from core.models import BaseModel


class PaymentTransaction(BaseModel):
    """Individual provider API call, kept for audit and debugging."""

    TRANSACTION_TYPES = [
        ('payment_link', 'Create Payment Link'),
        ('transfer', 'Transfer'),
        ('refund', 'Refund'),
    ]

    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPES)
    reference_id = models.CharField(
        max_length=64,
        blank=True,
        db_index=True,
        help_text="Reservation or booking the call was made for"
    )
    external_id = models.CharField(max_length=255, blank=True, help_text="Provider object ID")

    # Request/Response data for debugging
    request_data = models.JSONField(default=dict)
    response_data = models.JSONField(default=dict)

    # Status
    is_successful = models.BooleanField(default=False)
    status_code = models.IntegerField(null=True, blank=True)
    error_message = models.TextField(blank=True)

    # Timing
    duration_ms = models.IntegerField(null=True, help_text="Request duration in milliseconds")

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['transaction_type', 'created_at'], name='payment_pro_transac_5b6c7d_idx'),
        ]

    def __str__(self):
        status = "✅" if self.is_successful else "❌"
        return f"{status} {self.transaction_type} - {self.reference_id}"


class PaymentWebhook(BaseModel):
    """Webhook events received from the payment provider."""

    WEBHOOK_STATUS = [
        ('received', 'Received'),
        ('processed', 'Processed'),
        ('failed', 'Failed'),
        ('ignored', 'Ignored'),
    ]

    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=100)

    payload = models.JSONField(default=dict)

    # Processing
    status = models.CharField(max_length=20, choices=WEBHOOK_STATUS, default='received')
    processed_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['event_type', 'created_at'], name='payment_pro_event_t_8e9f0a_idx'),
            models.Index(fields=['status', 'created_at'], name='payment_pro_status_1b2c3d_idx'),
        ]

    def __str__(self):
        return f"{self.event_type} {self.event_id} ({self.status})"
