"""
Test utilities and factories for creating test data
"""
from datetime import timedelta
from decimal import Decimal
import random
import string

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from backend.core.authentication import issue_tokens
from backend.core.models import AuthProvider
from backend.parties.models import Company, Admin, Manager, Valet, Customer
from backend.garages.models import Garage, Address, Slot, Verification
from backend.bookings.models import Booking, BookingStatus, BookingTimeline, ValetAssignment

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(name=None, email=None, password='testpass123', is_active=True):
        """Create a test user with a credentials provider"""
        if not name:
            name = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{name.lower()}@test.com'
        user = User.objects.create_user(email=email, password=password, name=name, is_active=is_active)
        AuthProvider.objects.create(user=user, type=AuthProvider.CREDENTIALS)
        return user

    @staticmethod
    def create_admin(user=None):
        """Create a user holding the admin role"""
        user = user or TestDataFactory.create_user()
        Admin.objects.create(user=user)
        return user

    @staticmethod
    def create_company(display_name=None, manager=None):
        """Create a company, optionally managed by ``manager`` (a user)"""
        if not display_name:
            display_name = f'Company_{TestDataFactory.random_string(6)}'
        company = Company.objects.create(display_name=display_name, description=f'Test company {display_name}')
        if manager is not None:
            Manager.objects.update_or_create(user=manager, defaults={'company': company, 'display_name': manager.name})
        return company

    @staticmethod
    def create_manager(company=None, user=None):
        """Create a user managing ``company`` (a new company when omitted)"""
        user = user or TestDataFactory.create_user()
        company = company or TestDataFactory.create_company()
        Manager.objects.create(user=user, company=company, display_name=user.name)
        return user

    @staticmethod
    def create_valet(company, user=None):
        """Create a user working as a valet for ``company``"""
        user = user or TestDataFactory.create_user()
        Valet.objects.create(user=user, company=company, display_name=user.name, licence_id=TestDataFactory.random_string(8))
        return user

    @staticmethod
    def create_customer(user=None):
        user = user or TestDataFactory.create_user()
        Customer.objects.create(user=user, display_name=user.name)
        return user

    @staticmethod
    def create_garage(company=None, display_name=None, lat=12.97, lng=77.59, verified=True,
                      slots=((Slot.CAR, 2, Decimal('10.00')),)):
        """
        Create a garage with an address and slots.

        ``slots`` is a sequence of (type, count, price_per_hour) tuples.
        """
        company = company or TestDataFactory.create_company()
        if not display_name:
            display_name = f'Garage_{TestDataFactory.random_string(6)}'
        garage = Garage.objects.create(display_name=display_name, company=company)
        Address.objects.create(garage=garage, address=f'{display_name} street', lat=lat, lng=lng)
        for slot_type, count, price in slots:
            for index in range(count):
                Slot.objects.create(
                    garage=garage, type=slot_type, price_per_hour=price,
                    display_name=f'{slot_type} {index + 1}', length=500, width=250, height=200,
                )
        if verified:
            Verification.objects.create(garage=garage, verified=True)
        return garage

    @staticmethod
    def future_window(hours=2, starts_in=timedelta(days=1)):
        start = (timezone.now() + starts_in).replace(minute=0, second=0, microsecond=0)
        return start, start + timedelta(hours=hours)

    @staticmethod
    def create_booking(slot, customer_user=None, start_time=None, end_time=None,
                       status=BookingStatus.BOOKED, pickup=None, drop=None):
        """Create a booking directly, bypassing availability checks"""
        customer_user = customer_user or TestDataFactory.create_user()
        customer, _ = Customer.objects.get_or_create(user=customer_user, defaults={'display_name': customer_user.name})
        if start_time is None or end_time is None:
            start_time, end_time = TestDataFactory.future_window()
        booking = Booking.objects.create(
            slot=slot,
            customer=customer,
            start_time=start_time,
            end_time=end_time,
            vehicle_number=f'KA01{random.randint(1000, 9999)}',
            price_per_hour=slot.price_per_hour,
            total_price=slot.price_per_hour * 2,
            passcode='123456',
            status=status,
        )
        if pickup or drop:
            ValetAssignment.objects.create(
                booking=booking,
                pickup_lat=pickup[0] if pickup else None,
                pickup_lng=pickup[1] if pickup else None,
                return_lat=drop[0] if drop else None,
                return_lng=drop[1] if drop else None,
            )
        BookingTimeline.objects.create(booking=booking, status=status)
        return booking


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        access, _ = issue_tokens(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
