"""
Test suite for the garages module
Tests: Garage creation, listing, detail cache, search, slot availability,
verifications, reviews
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from backend.bookings.models import BookingStatus
from backend.core.model_cache import get_cached_garage
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.garages.models import Garage, Slot, Verification, Review
from backend.garages.search import free_slots, is_slot_free
from backend.parties.models import Manager


class GarageCreateTests(TestCase):
    """Test garage creation by managers"""

    def setUp(self):
        cache.clear()
        self.manager = TestDataFactory.create_manager()
        self.company = Manager.objects.get(pk=self.manager.pk).company
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)
        self.payload = {
            'display_name': 'Central Garage',
            'description': 'Near the station',
            'images': ['https://img.test/garage.png'],
            'address': {'address': '1 Main Street', 'lat': 12.9, 'lng': 77.6},
            'slots': [
                {'type': Slot.CAR, 'count': 3, 'price_per_hour': '20.00', 'length': 500, 'width': 250, 'height': 200},
                {'type': Slot.BIKE, 'count': 2, 'price_per_hour': '5.00'},
            ],
        }

    def test_create_garage(self):
        response = self.client.post('/api/v1/garages/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        garage = Garage.objects.get(pk=response.data['id'])
        self.assertEqual(garage.company, self.company)
        self.assertEqual(garage.address.address, '1 Main Street')
        self.assertEqual(garage.slots.filter(type=Slot.CAR).count(), 3)
        self.assertEqual(garage.slots.filter(type=Slot.BIKE).count(), 2)
        self.assertFalse(response.data['verified'])
        self.assertEqual(
            response.data['slot_counts'],
            [{'type': Slot.BIKE, 'count': 2}, {'type': Slot.CAR, 'count': 3}],
        )

    def test_create_garage_requires_manager(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/v1/garages/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_garage_invalid_slots_creates_nothing(self):
        self.payload['slots'] = [{'type': Slot.CAR, 'count': 0, 'price_per_hour': '20.00'}]
        response = self.client.post('/api/v1/garages/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Garage.objects.count(), 0)

    def test_create_garage_without_slots(self):
        self.payload['slots'] = []
        response = self.client.post('/api/v1/garages/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class GarageListTests(TestCase):
    """Test garage listing, filters and detail"""

    def setUp(self):
        cache.clear()
        self.company = TestDataFactory.create_company()
        self.verified = TestDataFactory.create_garage(company=self.company, display_name='Alpha Park')
        self.unverified = TestDataFactory.create_garage(display_name='Beta Lot', verified=False)
        self.client = AuthenticatedAPIClient()

    def test_list_garages(self):
        response = self.client.get('/api/v1/garages/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_filter_verified(self):
        response = self.client.get('/api/v1/garages/?verified=true')
        self.assertEqual([g['id'] for g in response.data], [self.verified.pk])
        response = self.client.get('/api/v1/garages/?verified=false')
        self.assertEqual([g['id'] for g in response.data], [self.unverified.pk])

    def test_filter_company(self):
        response = self.client.get(f'/api/v1/garages/?company={self.company.pk}')
        self.assertEqual([g['id'] for g in response.data], [self.verified.pk])

    def test_search_by_name(self):
        response = self.client.get('/api/v1/garages/?search=beta')
        self.assertEqual([g['id'] for g in response.data], [self.unverified.pk])

    def test_count(self):
        response = self.client.get('/api/v1/garages/count/?verified=true')
        self.assertEqual(response.data, {'count': 1})

    def test_detail_is_cached_and_invalidated(self):
        response = self.client.get(f'/api/v1/garages/{self.verified.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['verified'])
        self.assertIsNotNone(get_cached_garage(self.verified.pk))

        Slot.objects.create(garage=self.verified, type=Slot.HEAVY, price_per_hour=Decimal('50.00'))
        self.assertIsNone(get_cached_garage(self.verified.pk))

    def test_detail_reflects_company_rename(self):
        self.client.get(f'/api/v1/garages/{self.verified.pk}/')
        manager = TestDataFactory.create_manager(company=self.company)
        self.client.authenticate_user(manager)
        response = self.client.patch(f'/api/v1/companies/{self.company.pk}/', {'display_name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(get_cached_garage(self.verified.pk))

        response = self.client.get(f'/api/v1/garages/{self.verified.pk}/')
        self.assertEqual(response.data['company_name'], 'Renamed')

    def test_detail_not_found(self):
        response = self.client.get('/api/v1/garages/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_by_company_manager(self):
        manager = TestDataFactory.create_manager(company=self.company)
        self.client.authenticate_user(manager)
        response = self.client.patch(f'/api/v1/garages/{self.verified.pk}/', {
            'display_name': 'Alpha Park East',
            'address': {'address': '2 Side Street', 'lat': 13.0, 'lng': 77.7},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['display_name'], 'Alpha Park East')
        self.assertEqual(response.data['address']['address'], '2 Side Street')

    def test_update_by_other_manager_forbidden(self):
        self.client.authenticate_user(TestDataFactory.create_manager())
        response = self.client.patch(f'/api/v1/garages/{self.verified.pk}/', {'display_name': 'Taken'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_by_admin(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.delete(f'/api/v1/garages/{self.unverified.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Garage.objects.filter(pk=self.unverified.pk).exists())


class AvailabilityTests(TestCase):
    """Test slot availability against existing bookings"""

    def setUp(self):
        cache.clear()
        self.garage = TestDataFactory.create_garage(slots=((Slot.CAR, 1, Decimal('10.00')),))
        self.slot = self.garage.slots.get()
        self.start, self.end = TestDataFactory.future_window(hours=2)

    def test_overlapping_booking_blocks_slot(self):
        TestDataFactory.create_booking(self.slot, start_time=self.start, end_time=self.end)
        self.assertFalse(is_slot_free(self.slot.pk, self.start + timedelta(hours=1), self.end + timedelta(hours=1)))

    def test_adjacent_windows_do_not_overlap(self):
        TestDataFactory.create_booking(self.slot, start_time=self.start, end_time=self.end)
        self.assertTrue(is_slot_free(self.slot.pk, self.end, self.end + timedelta(hours=1)))
        self.assertTrue(is_slot_free(self.slot.pk, self.start - timedelta(hours=1), self.start))

    def test_checked_out_booking_releases_slot(self):
        TestDataFactory.create_booking(
            self.slot, start_time=self.start, end_time=self.end, status=BookingStatus.CHECKED_OUT,
        )
        self.assertTrue(is_slot_free(self.slot.pk, self.start, self.end))

    def test_available_slots_endpoint(self):
        other = Slot.objects.create(garage=self.garage, type=Slot.BIKE, price_per_hour=Decimal('2.00'))
        TestDataFactory.create_booking(self.slot, start_time=self.start, end_time=self.end)
        client = AuthenticatedAPIClient()
        response = client.post(f'/api/v1/garages/{self.garage.pk}/slots/available/', {
            'start_time': self.start.isoformat(),
            'end_time': self.end.isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s['id'] for s in response.data], [other.pk])

    def test_free_slots_queryset(self):
        TestDataFactory.create_booking(self.slot, start_time=self.start, end_time=self.end)
        self.assertEqual(free_slots(Slot.objects.all(), self.start, self.end).count(), 0)


class SearchTests(TestCase):
    """Test garage search"""

    def setUp(self):
        cache.clear()
        self.inside = TestDataFactory.create_garage(
            display_name='Inside', lat=12.95, lng=77.60,
            slots=((Slot.CAR, 2, Decimal('30.00')), (Slot.BIKE, 1, Decimal('5.00'))),
        )
        self.outside = TestDataFactory.create_garage(display_name='Outside', lat=20.0, lng=80.0)
        self.unverified = TestDataFactory.create_garage(display_name='Unverified', lat=12.96, lng=77.61, verified=False)
        self.start, self.end = TestDataFactory.future_window(hours=3)
        self.client = AuthenticatedAPIClient()
        self.payload = {
            'start_time': self.start.isoformat(),
            'end_time': self.end.isoformat(),
            'ne': {'lat': 13.1, 'lng': 77.8},
            'sw': {'lat': 12.8, 'lng': 77.4},
        }

    def test_search_returns_verified_garages_in_bounds(self):
        response = self.client.post('/api/v1/garages/search/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        garage = response.data['garages'][0]
        self.assertEqual(garage['id'], self.inside.pk)
        self.assertEqual(garage['lowest_price'], Decimal('5.00'))
        counts = {entry['type']: entry['count'] for entry in garage['available_slots']}
        self.assertEqual(counts, {Slot.BIKE: 1, Slot.CAR: 2})

    def test_search_filters_by_type(self):
        self.payload['type'] = Slot.CAR
        response = self.client.post('/api/v1/garages/search/', self.payload, format='json')
        garage = response.data['garages'][0]
        self.assertEqual(garage['lowest_price'], Decimal('30.00'))
        self.assertEqual([entry['type'] for entry in garage['available_slots']], [Slot.CAR])

    def test_search_filters_by_price(self):
        self.payload['price_per_hour_max'] = '1.00'
        response = self.client.post('/api/v1/garages/search/', self.payload, format='json')
        self.assertEqual(response.data['count'], 0)

    def test_search_excludes_fully_booked(self):
        for slot in self.inside.slots.all():
            TestDataFactory.create_booking(slot, start_time=self.start, end_time=self.end)
        response = self.client.post('/api/v1/garages/search/', self.payload, format='json')
        self.assertEqual(response.data['count'], 0)

    def test_search_counts_only_free_slots(self):
        car = self.inside.slots.filter(type=Slot.CAR).first()
        TestDataFactory.create_booking(car, start_time=self.start, end_time=self.end)
        response = self.client.post('/api/v1/garages/search/', self.payload, format='json')
        counts = {entry['type']: entry['count'] for entry in response.data['garages'][0]['available_slots']}
        self.assertEqual(counts[Slot.CAR], 1)

    def test_search_rejects_inverted_window(self):
        self.payload['start_time'], self.payload['end_time'] = self.payload['end_time'], self.payload['start_time']
        response = self.client.post('/api/v1/garages/search/', self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_minimum_dimensions(self):
        self.payload['height'] = 300
        response = self.client.post('/api/v1/garages/search/', self.payload, format='json')
        self.assertEqual(response.data['count'], 0)


class VerificationTests(TestCase):
    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.garage = TestDataFactory.create_garage(verified=False)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_verify_garage(self):
        response = self.client.post('/api/v1/verifications/', {'garage': self.garage.pk, 'verified': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        verification = Verification.objects.get(pk=self.garage.pk)
        self.assertTrue(verification.verified)
        self.assertEqual(verification.admin_id, self.admin.pk)

    def test_verification_is_upserted(self):
        self.client.post('/api/v1/verifications/', {'garage': self.garage.pk, 'verified': True}, format='json')
        response = self.client.post('/api/v1/verifications/', {'garage': self.garage.pk, 'verified': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Verification.objects.count(), 1)
        self.assertFalse(Verification.objects.get(pk=self.garage.pk).verified)

    def test_non_admin_cannot_verify(self):
        self.client.authenticate_user(TestDataFactory.create_manager())
        response = self.client.post('/api/v1/verifications/', {'garage': self.garage.pk, 'verified': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_verifications(self):
        self.client.post('/api/v1/verifications/', {'garage': self.garage.pk, 'verified': True}, format='json')
        response = self.client.get('/api/v1/verifications/?verified=true')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)


class ReviewTests(TestCase):
    def setUp(self):
        cache.clear()
        self.garage = TestDataFactory.create_garage()
        self.user = TestDataFactory.create_user(name='Reviewer')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_review_creates_customer(self):
        response = self.client.post('/api/v1/reviews/', {
            'garage': self.garage.pk, 'rating': 4, 'comment': 'Tidy place',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['customer'], self.user.pk)
        self.assertEqual(response.data['customer_name'], 'Reviewer')

    def test_reposting_updates_review(self):
        self.client.post('/api/v1/reviews/', {'garage': self.garage.pk, 'rating': 2}, format='json')
        response = self.client.post('/api/v1/reviews/', {'garage': self.garage.pk, 'rating': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Review.objects.count(), 1)
        self.assertEqual(Review.objects.get().rating, 5)

    def test_rating_out_of_range(self):
        response = self.client.post('/api/v1/reviews/', {'garage': self.garage.pk, 'rating': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_reviews_for_garage(self):
        self.client.post('/api/v1/reviews/', {'garage': self.garage.pk, 'rating': 3}, format='json')
        self.client.logout()
        response = self.client.get(f'/api/v1/reviews/?garage={self.garage.pk}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_delete_review_by_author(self):
        created = self.client.post('/api/v1/reviews/', {'garage': self.garage.pk, 'rating': 3}, format='json')
        response = self.client.delete(f"/api/v1/reviews/{created.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_delete_review_by_stranger(self):
        created = self.client.post('/api/v1/reviews/', {'garage': self.garage.pk, 'rating': 3}, format='json')
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.delete(f"/api/v1/reviews/{created.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
