"""
Test suite for the parties module
Tests: Admins, Managers, Valets, Customers, Companies
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.exceptions import ValidationError

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.parties.models import Company, Admin, Manager, Valet, Customer
from backend.parties.utils import valid_valet, get_or_create_customer


class AdminTests(TestCase):
    """Test admin endpoints"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_grant_admin(self):
        user = TestDataFactory.create_user()
        response = self.client.post('/api/v1/admins/', {'id': user.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Admin.objects.filter(pk=user.pk).exists())

    def test_grant_admin_twice(self):
        response = self.client.post('/api/v1/admins/', {'id': self.admin.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_admin_cannot_grant(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.post('/api/v1/admins/', {'id': user.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_me(self):
        response = self.client.get('/api/v1/admins/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], self.admin.pk)
        self.assertEqual(response.data['verifications_count'], 0)

    def test_admin_count(self):
        response = self.client.get('/api/v1/admins/count/')
        self.assertEqual(response.data, {'count': 1})

    def test_revoke_admin(self):
        other = TestDataFactory.create_admin()
        response = self.client.delete(f'/api/v1/admins/{other.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Admin.objects.filter(pk=other.pk).exists())


class CompanyTests(TestCase):
    """Test company endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(name='Founder')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_company_makes_caller_manager(self):
        response = self.client.post('/api/v1/companies/', {
            'display_name': 'Park Co',
            'description': 'Parking everywhere',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        manager = Manager.objects.get(pk=self.user.pk)
        self.assertEqual(manager.company.display_name, 'Park Co')
        self.assertEqual(manager.display_name, 'Founder')

    def test_create_second_company_rejected(self):
        TestDataFactory.create_company(manager=self.user)
        response = self.client.post('/api/v1/companies/', {'display_name': 'Another'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'You already manage a company.')

    def test_create_company_requires_token(self):
        self.client.logout()
        response = self.client.post('/api/v1/companies/', {'display_name': 'Anon'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_my_company(self):
        company = TestDataFactory.create_company(manager=self.user)
        TestDataFactory.create_garage(company=company)
        response = self.client.get('/api/v1/companies/my/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], company.pk)
        self.assertEqual(response.data['garages_count'], 1)

    def test_my_company_without_company(self):
        response = self.client.get('/api/v1/companies/my/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_companies_public(self):
        TestDataFactory.create_company()
        self.client.logout()
        response = self.client.get('/api/v1/companies/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_update_company_by_manager(self):
        company = TestDataFactory.create_company(manager=self.user)
        response = self.client.patch(f'/api/v1/companies/{company.pk}/', {'display_name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        company.refresh_from_db()
        self.assertEqual(company.display_name, 'Renamed')

    def test_update_company_by_stranger(self):
        company = TestDataFactory.create_company()
        response = self.client.patch(f'/api/v1/companies/{company.pk}/', {'display_name': 'Mine'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ManagerTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_list_managers_filtered_by_company(self):
        company = TestDataFactory.create_company()
        TestDataFactory.create_manager(company=company)
        TestDataFactory.create_manager()
        response = self.client.get(f'/api/v1/managers/?company={company.pk}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_create_own_manager_row(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.post('/api/v1/managers/', {'id': user.pk, 'display_name': 'Me'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_create_manager_row_for_someone_else(self):
        user = TestDataFactory.create_user()
        other = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.post('/api/v1/managers/', {'id': other.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Manager.objects.filter(pk=other.pk).exists())

    def test_manager_me(self):
        manager = TestDataFactory.create_manager()
        self.client.authenticate_user(manager)
        response = self.client.get('/api/v1/managers/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], manager.pk)


class ValetTests(TestCase):
    def setUp(self):
        cache.clear()
        self.manager = TestDataFactory.create_manager()
        self.company = Manager.objects.get(pk=self.manager.pk).company
        self.client = AuthenticatedAPIClient()

    def test_manager_adds_valet(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/valets/', {
            'id': user.pk,
            'display_name': 'Valet Vic',
            'licence_id': 'DL-001',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        valet = Valet.objects.get(pk=user.pk)
        self.assertEqual(valet.company, self.company)

    def test_non_manager_cannot_add_valet(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.post('/api/v1/valets/', {'id': user.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Only managers can add valets')

    def test_company_valets(self):
        TestDataFactory.create_valet(self.company)
        TestDataFactory.create_valet(TestDataFactory.create_company())
        self.client.authenticate_user(self.manager)
        response = self.client.get('/api/v1/valets/company/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_manager_removes_company_valet(self):
        valet = TestDataFactory.create_valet(self.company)
        self.client.authenticate_user(self.manager)
        response = self.client.delete(f'/api/v1/valets/{valet.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_other_manager_cannot_remove_valet(self):
        valet = TestDataFactory.create_valet(self.company)
        self.client.authenticate_user(TestDataFactory.create_manager())
        response = self.client.delete(f'/api/v1/valets/{valet.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_valid_valet(self):
        valet = TestDataFactory.create_valet(self.company)
        self.assertEqual(valid_valet(valet.pk).company, self.company)
        with self.assertRaises(ValidationError):
            valid_valet(self.manager.pk)


class CustomerTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_get_or_create_customer(self):
        user = TestDataFactory.create_user(name='Shopper')
        customer = get_or_create_customer(user)
        self.assertEqual(customer.display_name, 'Shopper')
        self.assertEqual(get_or_create_customer(user).pk, customer.pk)
        self.assertEqual(Customer.objects.count(), 1)

    def test_customer_me_not_found(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/customers/me/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_own_customer(self):
        user = TestDataFactory.create_customer()
        self.client.authenticate_user(user)
        response = self.client.patch(f'/api/v1/customers/{user.pk}/', {'display_name': 'New'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['display_name'], 'New')

    def test_customer_count(self):
        TestDataFactory.create_customer()
        response = self.client.get('/api/v1/customers/count/')
        self.assertEqual(response.data, {'count': 1})

    def test_company_deleted_with_valets(self):
        company = TestDataFactory.create_company()
        valet = TestDataFactory.create_valet(company)
        company.delete()
        self.assertFalse(Valet.objects.filter(pk=valet.pk).exists())
        self.assertFalse(Company.objects.filter(pk=company.pk).exists())
