"""
Test suite for the Core module
Tests: authentication, audit logs and cache namespaces
"""
from django.contrib.auth.models import AnonymousUser
from django.core.cache import cache
from django.test import TestCase, RequestFactory
from rest_framework import status
from rest_framework.test import APIClient

from keychains.core.cache_signals import suspend_cache_signals
from keychains.core.cache_utils import (
    ORDER_GROUPS_NAMESPACE, get_namespace_version, make_cache_key, invalidate_namespace,
)
from keychains.core.models import AuditLog
from keychains.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from keychains.core.utils import create_audit_log, get_client_ip


class AuthenticationTests(TestCase):
    """Test JWT login, refresh and current user"""

    def setUp(self):
        self.client = APIClient()
        self.user = TestDataFactory.create_user(username='maker', password='secret123')

    def test_login_returns_tokens(self):
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'maker', 'password': 'secret123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_login_wrong_password(self):
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'maker', 'password': 'nope'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token(self):
        login = self.client.post(
            '/api/v1/auth/login/', {'username': 'maker', 'password': 'secret123'}, format='json'
        )
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_invalid_token(self):
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'garbage'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'maker')
        self.assertFalse(response.data['is_admin'])

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AuditLogTests(TestCase):
    """Test audit log creation and visibility"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.staff = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient().authenticate_user(self.user)

        self.own_log = create_audit_log(
            action='create', model_name='OrderGroup', object_id=1, user=self.user, object_name='Week 1'
        )
        self.other_log = create_audit_log(
            action='delete', model_name='Order', object_id=7, user=self.other, object_name='Anna'
        )

    def test_create_audit_log(self):
        self.assertEqual(self.own_log.object_id, '1')
        self.assertEqual(self.own_log.changes, {})
        self.assertEqual(self.own_log.user, self.user)

    def test_create_audit_log_missing_fields(self):
        self.assertIsNone(create_audit_log(action='create', model_name='Order'))

    def test_create_audit_log_unknown_action(self):
        self.assertIsNone(create_audit_log(action='archive', model_name='Order', object_id=3, user=self.user))
        self.assertFalse(AuditLog.objects.filter(object_id='3').exists())

    def test_create_audit_log_anonymous_request(self):
        request = RequestFactory().post('/', REMOTE_ADDR='192.168.1.5')
        request.user = AnonymousUser()
        log = create_audit_log(request=request, action='delete', model_name='Order', object_id=9)
        self.assertIsNone(log.user)
        self.assertEqual(log.ip_address, '192.168.1.5')

    def test_client_ip_prefers_forwarded_header(self):
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='10.0.0.1, 10.0.0.2')
        self.assertEqual(get_client_ip(request), '10.0.0.1')

    def test_user_sees_only_own_entries(self):
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([log['id'] for log in response.data], [self.own_log.id])
        self.assertEqual(response.data[0]['username'], self.user.username)

    def test_staff_sees_all_entries_with_filters(self):
        client = AuthenticatedAPIClient().authenticate_user(self.staff)
        response = client.get('/api/v1/audit-logs/')
        self.assertEqual(len(response.data), 2)

        response = client.get('/api/v1/audit-logs/?action=delete&model=Order')
        self.assertEqual([log['id'] for log in response.data], [self.other_log.id])

    def test_detail_permission(self):
        response = self.client.get(f'/api/v1/audit-logs/{self.own_log.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(f'/api/v1/audit-logs/{self.other_log.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_detail_not_found(self):
        response = self.client.get('/api/v1/audit-logs/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mutations_are_logged_by_user(self):
        response = self.client.post('/api/v1/order-groups/', {'name': 'Logged'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        log = AuditLog.objects.get(model_name='OrderGroup', object_id=str(response.data['id']))
        self.assertEqual(log.user, self.user)
        self.assertEqual(log.object_name, 'Logged')


class CacheNamespaceTests(TestCase):
    """Test versioned cache keys and signal-driven invalidation"""

    def setUp(self):
        cache.clear()

    def test_invalidate_changes_keys(self):
        before = make_cache_key(ORDER_GROUPS_NAMESPACE, 'list', status='active')
        self.assertEqual(before, make_cache_key(ORDER_GROUPS_NAMESPACE, 'list', status='active'))
        invalidate_namespace(ORDER_GROUPS_NAMESPACE)
        self.assertNotEqual(before, make_cache_key(ORDER_GROUPS_NAMESPACE, 'list', status='active'))

    def test_invalidate_without_version_key(self):
        invalidate_namespace('fresh_namespace')
        self.assertEqual(get_namespace_version('fresh_namespace'), 2)

    def test_saving_an_order_bumps_version(self):
        version = get_namespace_version(ORDER_GROUPS_NAMESPACE)
        TestDataFactory.create_order()
        self.assertGreater(get_namespace_version(ORDER_GROUPS_NAMESPACE), version)

    def test_suspended_signals_leave_version_alone(self):
        version = get_namespace_version(ORDER_GROUPS_NAMESPACE)
        with suspend_cache_signals():
            TestDataFactory.create_order()
        self.assertEqual(get_namespace_version(ORDER_GROUPS_NAMESPACE), version)
