"""URL Configuration for API v1."""

from django.urls import path, include

urlpatterns = [
    path('', include('api.v1.reservations.urls')),
    path('', include('api.v1.partners.urls')),
]
