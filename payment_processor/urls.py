"""
Payment provider URLs.
"""

from django.urls import path

from .views import StripeWebhookView

app_name = 'payment_processor'

urlpatterns = [
    path('api/v1/webhooks/stripe/', StripeWebhookView.as_view(), name='stripe-webhook'),
]
