"""URLs for partners API."""

from django.urls import path

from .views import HotelOnboardingView

urlpatterns = [
    path('partners/hotels/', HotelOnboardingView.as_view(), name='hotel-onboarding'),
]
