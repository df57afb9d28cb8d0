"""
Tests for the hotel onboarding endpoint.
"""

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.partners.models import HotelConfig, Partner


class HotelOnboardingViewTestCase(APITestCase):

    def test_onboard_hotel(self):
        response = self.client.post(reverse('hotel-onboarding'), {
            'name': 'Grand Hotel',
            'email': 'desk@grand.example.com',
            'display_name': 'Grand Hotel Lakeside',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['hotel']['slug'], 'grand-hotel-lakeside')
        self.assertEqual(response.data['hotel']['partner_name'], 'Grand Hotel')
        self.assertEqual(Partner.objects.get().partner_type, 'hotel')

    def test_missing_name(self):
        response = self.client.post(reverse('hotel-onboarding'), {'email': 'desk@grand.example.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data['field_errors'])

    def test_taken_slug(self):
        self.client.post(reverse('hotel-onboarding'), {'name': 'Grand Hotel'}, format='json')
        response = self.client.post(reverse('hotel-onboarding'), {'name': 'Grand Hotel'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'validation_failed')
        self.assertEqual(HotelConfig.objects.count(), 1)
