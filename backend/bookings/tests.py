"""
Test suite for the bookings module
Tests: Price calculation, booking creation and overlap, visibility, valet
assignment, status lifecycle, valet trips
"""
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.core.cache import cache
from django.test import TestCase, override_settings
from django.utils import timezone
from geopy.distance import geodesic
from rest_framework import status

from backend.bookings.models import Booking, BookingStatus, BookingTimeline, ValetAssignment
from backend.bookings.pricing import billable_hours, calculate_price
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.garages.models import Slot
from backend.parties.models import Customer, Manager


@override_settings(VALET_CHARGE_PER_KM=10)
class PricingTests(TestCase):
    """Test booking price calculation"""

    def setUp(self):
        self.garage = TestDataFactory.create_garage(lat=12.97, lng=77.59, slots=((Slot.CAR, 1, Decimal('10.00')),))
        self.slot = self.garage.slots.get()
        self.start, _ = TestDataFactory.future_window()

    def test_started_hours_are_billed(self):
        self.assertEqual(billable_hours(self.start, self.start + timedelta(hours=2, minutes=30)), 3)
        self.assertEqual(billable_hours(self.start, self.start + timedelta(hours=2)), 2)

    def test_parking_only(self):
        price = calculate_price(self.slot, self.start, self.start + timedelta(hours=2, minutes=1))
        self.assertEqual(price['parking_charge'], Decimal('30.00'))
        self.assertEqual(price['valet_pickup_charge'], Decimal('0.00'))
        self.assertEqual(price['total_price'], Decimal('30.00'))

    def test_valet_charges_use_geodesic_distance(self):
        pickup = {'lat': 13.00, 'lng': 77.60}
        drop = {'lat': 12.90, 'lng': 77.50}
        price = calculate_price(self.slot, self.start, self.start + timedelta(hours=1), pickup=pickup, drop=drop)

        def expected(point):
            km = geodesic((12.97, 77.59), (point['lat'], point['lng'])).km
            return (Decimal('10') * Decimal(str(km))).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

        self.assertEqual(price['valet_pickup_charge'], expected(pickup))
        self.assertEqual(price['valet_drop_charge'], expected(drop))
        self.assertEqual(price['total_price'], Decimal('10.00') + expected(pickup) + expected(drop))

    def test_price_endpoint(self):
        client = AuthenticatedAPIClient()
        response = client.post('/api/v1/bookings/price/', {
            'slot': self.slot.pk,
            'start_time': self.start.isoformat(),
            'end_time': (self.start + timedelta(hours=4)).isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['hours'], 4)
        self.assertEqual(response.data['total_price'], Decimal('40.00'))


class CreateBookingTests(TestCase):
    """Test booking creation"""

    def setUp(self):
        cache.clear()
        self.garage = TestDataFactory.create_garage(slots=((Slot.CAR, 1, Decimal('10.00')),))
        self.slot = self.garage.slots.get()
        self.user = TestDataFactory.create_user(name='Driver')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.start, self.end = TestDataFactory.future_window(hours=2)

    def _payload(self, **overrides):
        payload = {
            'slot': self.slot.pk,
            'start_time': self.start.isoformat(),
            'end_time': self.end.isoformat(),
            'vehicle_number': 'KA01AB1234',
            'phone_number': '9999999999',
        }
        payload.update(overrides)
        return payload

    def test_create_booking(self):
        response = self.client.post('/api/v1/bookings/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        booking = Booking.objects.get(pk=response.data['id'])
        self.assertEqual(booking.status, BookingStatus.BOOKED)
        self.assertEqual(booking.total_price, Decimal('20.00'))
        self.assertEqual(booking.price_per_hour, Decimal('10.00'))
        self.assertEqual(len(booking.passcode), 6)
        self.assertTrue(booking.passcode.isdigit())
        self.assertTrue(Customer.objects.filter(pk=self.user.pk).exists())
        self.assertEqual(list(booking.timelines.values_list('status', flat=True)), [BookingStatus.BOOKED])
        self.assertIsNone(response.data['valet_assignment'])

    def test_overlapping_booking_rejected(self):
        TestDataFactory.create_booking(self.slot, start_time=self.start, end_time=self.end)
        response = self.client.post('/api/v1/bookings/', self._payload(
            start_time=(self.start + timedelta(hours=1)).isoformat(),
            end_time=(self.end + timedelta(hours=1)).isoformat(),
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Slot is not available for the selected time.')

    def test_back_to_back_booking_allowed(self):
        TestDataFactory.create_booking(self.slot, start_time=self.start, end_time=self.end)
        response = self.client.post('/api/v1/bookings/', self._payload(
            start_time=self.end.isoformat(),
            end_time=(self.end + timedelta(hours=1)).isoformat(),
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_inverted_window_rejected(self):
        response = self.client.post('/api/v1/bookings/', self._payload(
            start_time=self.end.isoformat(), end_time=self.start.isoformat(),
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_past_window_rejected(self):
        start = timezone.now() - timedelta(days=1)
        response = self.client.post('/api/v1/bookings/', self._payload(
            start_time=start.isoformat(), end_time=(start + timedelta(hours=1)).isoformat(),
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_booking_with_valet_points(self):
        response = self.client.post('/api/v1/bookings/', self._payload(
            pickup={'lat': 12.98, 'lng': 77.60},
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        assignment = ValetAssignment.objects.get(pk=response.data['id'])
        self.assertEqual(assignment.pickup_lat, 12.98)
        self.assertIsNone(assignment.return_lat)
        self.assertGreater(Decimal(str(response.data['total_price'])), Decimal('20.00'))

    def test_requires_token(self):
        self.client.logout()
        response = self.client.post('/api/v1/bookings/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_my_bookings(self):
        self.client.post('/api/v1/bookings/', self._payload(), format='json')
        TestDataFactory.create_booking(self.slot, start_time=self.end, end_time=self.end + timedelta(hours=1))
        response = self.client.get('/api/v1/bookings/my/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(f'/api/v1/bookings/my/?status={BookingStatus.CHECKED_IN.value}')
        self.assertEqual(response.data['count'], 0)

    def test_list_all_bookings_requires_admin(self):
        response = self.client.get('/api/v1/bookings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class BookingVisibilityTests(TestCase):
    def setUp(self):
        cache.clear()
        self.manager = TestDataFactory.create_manager()
        self.company = Manager.objects.get(pk=self.manager.pk).company
        self.garage = TestDataFactory.create_garage(company=self.company)
        self.slot = self.garage.slots.first()
        self.customer = TestDataFactory.create_user()
        self.booking = TestDataFactory.create_booking(self.slot, customer_user=self.customer)
        self.client = AuthenticatedAPIClient()

    def test_customer_sees_booking(self):
        self.client.authenticate_user(self.customer)
        response = self.client.get(f'/api/v1/bookings/{self.booking.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['garage'], self.garage.pk)

    def test_company_valet_sees_booking(self):
        self.client.authenticate_user(TestDataFactory.create_valet(self.company))
        response = self.client.get(f'/api/v1/bookings/{self.booking.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_stranger_cannot_see_booking(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/bookings/{self.booking.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_timeline(self):
        self.client.authenticate_user(self.manager)
        response = self.client.get(f'/api/v1/bookings/{self.booking.pk}/timeline/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([entry['status'] for entry in response.data], [BookingStatus.BOOKED])

    def test_garage_bookings_for_manager(self):
        self.client.authenticate_user(self.manager)
        response = self.client.get(f'/api/v1/garages/{self.garage.pk}/bookings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_garage_bookings_forbidden_for_other_manager(self):
        self.client.authenticate_user(TestDataFactory.create_manager())
        response = self.client.get(f'/api/v1/garages/{self.garage.pk}/bookings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class BookingLifecycleTests(TestCase):
    """Test valet assignment and status transitions"""

    def setUp(self):
        cache.clear()
        self.manager = TestDataFactory.create_manager()
        self.company = Manager.objects.get(pk=self.manager.pk).company
        self.valet = TestDataFactory.create_valet(self.company)
        self.garage = TestDataFactory.create_garage(company=self.company)
        self.slot = self.garage.slots.first()
        self.booking = TestDataFactory.create_booking(self.slot, pickup=(12.98, 77.60), drop=(12.99, 77.61))
        self.client = AuthenticatedAPIClient()

    def test_assign_pickup_valet(self):
        self.client.authenticate_user(self.manager)
        response = self.client.post(
            f'/api/v1/bookings/{self.booking.pk}/assign-valet/', {'pickup_valet': self.valet.pk}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, BookingStatus.VALET_ASSIGNED_FOR_CHECK_IN)
        self.assertEqual(ValetAssignment.objects.get(pk=self.booking.pk).pickup_valet_id, self.valet.pk)
        entry = self.booking.timelines.last()
        self.assertEqual(entry.manager_id, self.manager.pk)

    def test_assign_valet_from_other_company(self):
        outsider = TestDataFactory.create_valet(TestDataFactory.create_company())
        self.client.authenticate_user(self.manager)
        response = self.client.post(
            f'/api/v1/bookings/{self.booking.pk}/assign-valet/', {'pickup_valet': outsider.pk}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_assign_pickup_valet_without_pickup_point(self):
        booking = TestDataFactory.create_booking(
            self.slot, start_time=self.booking.end_time, end_time=self.booking.end_time + timedelta(hours=1),
        )
        self.client.authenticate_user(self.manager)
        response = self.client.post(
            f'/api/v1/bookings/{booking.pk}/assign-valet/', {'pickup_valet': self.valet.pk}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Booking has no pickup point.')
        booking.refresh_from_db()
        self.assertEqual(booking.status, BookingStatus.BOOKED)
        self.assertFalse(ValetAssignment.objects.filter(pk=booking.pk).exists())

    def test_assign_return_valet_without_drop_point(self):
        booking = TestDataFactory.create_booking(
            self.slot, start_time=self.booking.end_time, end_time=self.booking.end_time + timedelta(hours=1),
            status=BookingStatus.CHECKED_IN, pickup=(12.98, 77.60),
        )
        self.client.authenticate_user(self.manager)
        response = self.client.post(
            f'/api/v1/bookings/{booking.pk}/assign-valet/', {'return_valet': self.valet.pk}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIsNone(ValetAssignment.objects.get(pk=booking.pk).return_valet_id)

    def test_assigned_valet_sees_own_pickup(self):
        self.client.authenticate_user(self.manager)
        self.client.post(
            f'/api/v1/bookings/{self.booking.pk}/assign-valet/', {'pickup_valet': self.valet.pk}, format='json',
        )
        self.client.authenticate_user(self.valet)
        response = self.client.get('/api/v1/trips/pickups/?mine=true')
        self.assertEqual([b['id'] for b in response.data['bookings']], [self.booking.pk])

    def test_valet_cannot_assign(self):
        self.client.authenticate_user(self.valet)
        response = self.client.post(
            f'/api/v1/bookings/{self.booking.pk}/assign-valet/', {'pickup_valet': self.valet.pk}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_valet_moves_status_forward(self):
        self.client.authenticate_user(self.valet)
        response = self.client.post(
            f'/api/v1/bookings/{self.booking.pk}/status/', {'status': BookingStatus.VALET_PICKED_UP}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        entry = BookingTimeline.objects.filter(booking=self.booking).last()
        self.assertEqual(entry.status, BookingStatus.VALET_PICKED_UP)
        self.assertEqual(entry.valet_id, self.valet.pk)

    def test_status_never_moves_backwards(self):
        Booking.objects.filter(pk=self.booking.pk).update(status=BookingStatus.CHECKED_IN)
        self.client.authenticate_user(self.manager)
        response = self.client.post(
            f'/api/v1/bookings/{self.booking.pk}/status/', {'status': BookingStatus.BOOKED}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stranger_cannot_update_status(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post(
            f'/api/v1/bookings/{self.booking.pk}/status/', {'status': BookingStatus.CHECKED_IN}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_valet_pickups_and_drops(self):
        self.client.authenticate_user(self.valet)
        response = self.client.get('/api/v1/trips/pickups/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b['id'] for b in response.data['bookings']], [self.booking.pk])

        response = self.client.get('/api/v1/trips/drops/')
        self.assertEqual(response.data['count'], 0)

        Booking.objects.filter(pk=self.booking.pk).update(status=BookingStatus.CHECKED_IN)
        response = self.client.get('/api/v1/trips/drops/')
        self.assertEqual(response.data['count'], 1)

    def test_pickups_assigned_to_other_valet_hidden(self):
        other = TestDataFactory.create_valet(self.company)
        ValetAssignment.objects.filter(pk=self.booking.pk).update(pickup_valet_id=other.pk)
        self.client.authenticate_user(self.valet)
        response = self.client.get('/api/v1/trips/pickups/')
        self.assertEqual(response.data['count'], 0)

    def test_trips_require_valet(self):
        self.client.authenticate_user(self.manager)
        response = self.client.get('/api/v1/trips/pickups/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
