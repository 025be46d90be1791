"""
Test suite for the core module
Tests: Bearer authentication, role aggregation and caching, row level
permissions, registration, login, token refresh, users, create_admin
"""
from io import StringIO
from types import SimpleNamespace

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from backend.core.models import User, AuthProvider
from backend.core.model_cache import get_cached_user_roles
from backend.core.permissions import (
    ROLE_ADMIN, ROLE_MANAGER, ROLE_VALET, allow_authenticated, check_row_level_permission, get_user_roles,
)
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import apply_list_query
from backend.parties.models import Admin, Manager


class BearerAuthenticationTests(TestCase):
    """Test the guard chain on a route requiring authentication"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(name='Alice')
        self.client = AuthenticatedAPIClient()

    def test_missing_token(self):
        """No Authorization header yields 401 'No token provided.'"""
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(str(response.data['detail']), 'No token provided.')

    def test_valid_token(self):
        """A valid token resolves the user and the roles"""
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], self.user.pk)
        self.assertEqual(response.data['roles'], [])

    def test_malformed_token(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-jwt')
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_token_without_id_claim(self):
        token = AccessToken()
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(str(response.data['detail']), 'Invalid token. No id present in the token.')

    def test_token_for_deleted_user(self):
        self.client.authenticate_user(self.user)
        self.user.delete()
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(str(response.data['detail']), 'Invalid token. No user present with the id.')

    def test_token_for_disabled_user(self):
        self.client.authenticate_user(self.user)
        User.objects.filter(pk=self.user.pk).update(is_active=False)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(str(response.data['detail']), 'User account is disabled.')

    def test_non_bearer_scheme_is_anonymous(self):
        self.client.credentials(HTTP_AUTHORIZATION='Basic abc')
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(str(response.data['detail']), 'No token provided.')

    def test_bearer_without_token_is_anonymous(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer')
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(str(response.data['detail']), 'No token provided.')

    def test_role_requirement_forbidden(self):
        """Authenticated callers without the required role get 403"""
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/admins/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_role_requirement_allowed(self):
        TestDataFactory.create_admin(self.user)
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/admins/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class RoleTests(TestCase):
    """Test role aggregation and the roles cache"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()

    def test_roles_in_fixed_order(self):
        company = TestDataFactory.create_company()
        TestDataFactory.create_valet(company, user=self.user)
        TestDataFactory.create_admin(self.user)
        self.assertEqual(get_user_roles(self.user.pk), [ROLE_ADMIN, ROLE_VALET])

    def test_roles_are_cached(self):
        get_user_roles(self.user.pk)
        self.assertEqual(get_cached_user_roles(self.user.pk), [])

    def test_cache_invalidated_when_role_granted(self):
        self.assertEqual(get_user_roles(self.user.pk), [])
        Admin.objects.create(user=self.user)
        self.assertIsNone(get_cached_user_roles(self.user.pk))
        self.assertEqual(get_user_roles(self.user.pk), [ROLE_ADMIN])

    def test_cache_invalidated_when_role_revoked(self):
        Manager.objects.create(user=self.user)
        self.assertEqual(get_user_roles(self.user.pk), [ROLE_MANAGER])
        Manager.objects.filter(pk=self.user.pk).first().delete()
        self.assertEqual(get_user_roles(self.user.pk), [])

    def test_allow_authenticated_any_of_roles(self):
        """Holding one of several required roles is enough"""
        permission = allow_authenticated(ROLE_ADMIN, ROLE_MANAGER)()
        Manager.objects.create(user=self.user)
        self.assertTrue(permission.has_permission(SimpleNamespace(user=self.user), None))

        valet_user = TestDataFactory.create_valet(TestDataFactory.create_company())
        self.assertFalse(permission.has_permission(SimpleNamespace(user=valet_user), None))

    def test_allow_authenticated_rejects_unknown_roles(self):
        with self.assertRaises(ValueError):
            allow_authenticated('superhero')


class RowLevelPermissionTests(TestCase):
    def setUp(self):
        cache.clear()
        self.owner = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()

    def test_owner_passes(self):
        self.assertTrue(check_row_level_permission(self.owner, self.owner.pk))

    def test_owner_among_co_owners_passes(self):
        self.assertTrue(check_row_level_permission(self.owner, [self.other.pk, self.owner.pk]))

    def test_stranger_denied(self):
        with self.assertRaises(PermissionDenied):
            check_row_level_permission(self.other, self.owner.pk)

    def test_admin_passes(self):
        TestDataFactory.create_admin(self.other)
        self.assertTrue(check_row_level_permission(self.other, self.owner.pk))

    def test_missing_owner_denied(self):
        with self.assertRaises(PermissionDenied):
            check_row_level_permission(self.owner, None)


class RegistrationAndLoginTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def test_register_with_credentials(self):
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'new@test.com',
            'password': 'secret123',
            'name': 'New User',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('token', response.data)
        self.assertIn('refresh', response.data)
        user = User.objects.get(email='new@test.com')
        self.assertEqual(user.auth_provider.type, AuthProvider.CREDENTIALS)
        self.assertTrue(user.check_password('secret123'))

    def test_register_duplicate_email(self):
        TestDataFactory.create_user(email='taken@test.com')
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'taken@test.com',
            'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('User already exists with this email.', [str(e) for e in response.data['email']])

    def test_register_with_provider(self):
        response = self.client.post('/api/v1/auth/register-with-provider/', {
            'id': 'google-uid-1',
            'name': 'Google User',
            'type': AuthProvider.GOOGLE,
            'provider_account_id': '1234',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['id'], 'google-uid-1')
        provider = self.client.get('/api/v1/auth/providers/google-uid-1/')
        self.assertEqual(provider.data['type'], AuthProvider.GOOGLE)

    def test_register_with_provider_existing_id(self):
        user = TestDataFactory.create_user()
        response = self.client.post('/api/v1/auth/register-with-provider/', {
            'id': user.pk,
            'name': 'Someone Else',
            'type': AuthProvider.GOOGLE,
            'provider_account_id': '5678',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('User already exists with this id.', [str(e) for e in response.data['id']])
        self.assertEqual(User.objects.get(pk=user.pk).name, user.name)

    def test_login(self):
        user = TestDataFactory.create_user(email='login@test.com', password='secret123')
        response = self.client.post('/api/v1/auth/login/', {
            'email': 'login@test.com',
            'password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['id'], user.pk)

        me = AuthenticatedAPIClient()
        me.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['token']}")
        self.assertEqual(me.get('/api/v1/auth/me/').status_code, status.HTTP_200_OK)

    def test_login_wrong_password(self):
        TestDataFactory.create_user(email='login@test.com', password='secret123')
        response = self.client.post('/api/v1/auth/login/', {
            'email': 'login@test.com',
            'password': 'wrong-password',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(str(response.data['detail']), 'Invalid email or password.')

    def test_refresh(self):
        TestDataFactory.create_user(email='login@test.com', password='secret123')
        login = self.client.post('/api/v1/auth/login/', {
            'email': 'login@test.com',
            'password': 'secret123',
        }, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_for_deleted_user(self):
        user = TestDataFactory.create_user(email='login@test.com', password='secret123')
        login = self.client.post('/api/v1/auth/login/', {
            'email': 'login@test.com',
            'password': 'secret123',
        }, format='json')
        user.delete()
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(name='Owner')
        self.client = AuthenticatedAPIClient()

    def test_list_users_paginated(self):
        for _ in range(3):
            TestDataFactory.create_user()
        response = self.client.get('/api/v1/users/?skip=1&take=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_count_users(self):
        response = self.client.get('/api/v1/users/count/')
        self.assertEqual(response.data, {'count': 1})

    def test_update_own_user(self):
        self.client.authenticate_user(self.user)
        response = self.client.patch(f'/api/v1/users/{self.user.pk}/', {'name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Renamed')

    def test_update_other_user_forbidden(self):
        other = TestDataFactory.create_user()
        self.client.authenticate_user(other)
        response = self.client.patch(f'/api/v1/users/{self.user.pk}/', {'name': 'Hacked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_requires_token(self):
        response = self.client.patch(f'/api/v1/users/{self.user.pk}/', {'name': 'Anon'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_deletes_user(self):
        admin = TestDataFactory.create_admin()
        self.client.authenticate_user(admin)
        response = self.client.delete(f'/api/v1/users/{self.user.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())

    def test_missing_user_is_404(self):
        self.client.authenticate_user(self.user)
        response = self.client.patch('/api/v1/users/does-not-exist/', {'name': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ListQueryTests(TestCase):
    def setUp(self):
        for name in ('carol', 'alice', 'bob'):
            TestDataFactory.create_user(name=name)

    def test_sort_by_whitelisted_field(self):
        users = apply_list_query(User.objects.all(), {'sort_by': 'name', 'order': 'desc'}, ('name',))
        self.assertEqual([u.name for u in users], ['carol', 'bob', 'alice'])

    def test_unknown_sort_field_ignored(self):
        users = apply_list_query(User.objects.all(), {'sort_by': 'password'}, ('name',))
        self.assertEqual(len(list(users)), 3)

    def test_invalid_take_ignored(self):
        users = apply_list_query(User.objects.all(), {'take': 'abc', 'skip': '-1'}, ())
        self.assertEqual(len(list(users)), 3)

    def test_take_zero_means_no_limit(self):
        users = apply_list_query(User.objects.all(), {'take': '0', 'skip': '1'}, ())
        self.assertEqual(len(list(users)), 2)


class CreateAdminCommandTests(TestCase):
    def setUp(self):
        cache.clear()

    def test_create_admin_by_id(self):
        user = TestDataFactory.create_user()
        out = StringIO()
        call_command('create_admin', user.pk, stdout=out)
        self.assertTrue(Admin.objects.filter(pk=user.pk).exists())
        self.assertIn('Granted admin role', out.getvalue())

    def test_create_admin_by_email(self):
        user = TestDataFactory.create_user(email='boss@test.com')
        call_command('create_admin', email='boss@test.com', stdout=StringIO())
        self.assertEqual(get_user_roles(user.pk), [ROLE_ADMIN])

    def test_unknown_user(self):
        with self.assertRaises(CommandError):
            call_command('create_admin', 'missing', stdout=StringIO())
