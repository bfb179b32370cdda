"""
Accounts Views Tests
====================

Test Coverage:
1. Login (valid, invalid, remember me, next), logout
2. Profile auto-creation and update
3. User management: list, create, edit, delete, toggle status (admin only)
4. Role permissions and the password validator driven by CRM settings

Run tests:
    docker compose exec web python manage.py test apps.accounts.tests.test_views
"""

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase, Client
from django.urls import reverse

from apps.accounts.models import UserProfile
from apps.accounts.permissions import permissions_for_role, role_has_permission
from apps.accounts.validators import SecurePasswordValidator
from apps.core.services import settings_service

User = get_user_model()


class LoginViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(email='sales@test.com', password='testpass123', first_name='Alice',
                                             last_name='Martin', role='sales')

    def test_login_page(self):
        response = self.client.get(reverse('accounts:login'))
        self.assertEqual(response.status_code, 200)

    def test_login_success(self):
        response = self.client.post(reverse('accounts:login'), {'email': 'sales@test.com', 'password': 'testpass123'})

        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)
        self.user.refresh_from_db()
        self.assertEqual(self.user.login_count, 1)
        self.assertEqual(self.user.last_login_ip, '127.0.0.1')

    def test_login_follows_next(self):
        response = self.client.post(
            reverse('accounts:login') + '?next=/contacts/',
            {'email': 'sales@test.com', 'password': 'testpass123'},
        )
        self.assertRedirects(response, '/contacts/', fetch_redirect_response=False)

    def test_login_ignores_external_next(self):
        response = self.client.post(
            reverse('accounts:login') + '?next=https://evil.example.com/',
            {'email': 'sales@test.com', 'password': 'testpass123'},
        )
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_remember_me(self):
        self.client.post(reverse('accounts:login'),
                         {'email': 'sales@test.com', 'password': 'testpass123', 'remember': 'on'})

        self.assertTrue(self.client.session['remember'])
        self.assertEqual(self.client.session.get_expiry_age(), 30 * 24 * 60 * 60)

    def test_login_failure(self):
        response = self.client.post(reverse('accounts:login'), {'email': 'sales@test.com', 'password': 'wrong'})

        self.assertEqual(response.status_code, 200)
        self.assertNotIn('_auth_user_id', self.client.session)

    def test_logout(self):
        self.client.login(email='sales@test.com', password='testpass123')

        response = self.client.get(reverse('accounts:logout'))

        self.assertRedirects(response, reverse('accounts:login'), fetch_redirect_response=False)
        self.assertNotIn('_auth_user_id', self.client.session)


class ProfileViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.user = User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')
        self.client.login(email='sales@test.com', password='testpass123')

    def test_profile_created_with_user(self):
        self.assertTrue(UserProfile.objects.filter(user=self.user).exists())

    def test_profile_update(self):
        response = self.client.post(reverse('accounts:profile'), {
            'first_name': 'Alice',
            'last_name': 'Martin',
            'phone': '+33123456789',
            'job_title': 'Account executive',
            'language': 'fr',
            'theme': 'dark',
            'signature': 'Alice',
        })

        self.assertRedirects(response, reverse('accounts:profile'), fetch_redirect_response=False)
        self.user.refresh_from_db()
        self.assertEqual(self.user.get_full_name(), 'Alice Martin')
        self.assertEqual(self.user.profile.theme, 'dark')
        self.assertFalse(self.user.profile.email_notifications)


class UserManagementTest(TestCase):

    def setUp(self):
        settings_service.clear_cache()
        self.client = Client()
        self.admin = User.objects.create_user(email='admin@test.com', password='testpass123', role='admin')
        self.sales = User.objects.create_user(email='sales@test.com', password='testpass123', role='sales')
        self.client.login(email='admin@test.com', password='testpass123')

    def test_list_filters_by_role(self):
        response = self.client.get(reverse('accounts:user_list'), {'role': 'sales'})

        self.assertEqual([user.email for user in response.context['users']], ['sales@test.com'])

    def test_sales_cannot_manage_users(self):
        self.client.login(email='sales@test.com', password='testpass123')

        response = self.client.get(reverse('accounts:user_list'))

        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_create_user(self):
        response = self.client.post(reverse('accounts:user_create'), {
            'email': 'new@test.com',
            'first_name': 'New',
            'last_name': 'Rep',
            'role': 'manager',
            'password1': 'Str0ngPassword',
            'password2': 'Str0ngPassword',
            'usable_password': 'true',
        })

        self.assertRedirects(response, reverse('accounts:user_list'), fetch_redirect_response=False)
        self.assertEqual(User.objects.get(email='new@test.com').role, 'manager')

    def test_admin_cannot_delete_self(self):
        self.client.post(reverse('accounts:user_delete', args=[self.admin.pk]))
        self.assertTrue(User.objects.filter(pk=self.admin.pk).exists())

    def test_delete_user(self):
        self.client.post(reverse('accounts:user_delete', args=[self.sales.pk]))
        self.assertFalse(User.objects.filter(pk=self.sales.pk).exists())

    def test_toggle_status(self):
        response = self.client.post(reverse('accounts:user_toggle_status', args=[self.sales.pk]))

        self.assertFalse(response.json()['is_active'])
        self.sales.refresh_from_db()
        self.assertFalse(self.sales.is_active)

    def test_cannot_deactivate_self(self):
        response = self.client.post(reverse('accounts:user_toggle_status', args=[self.admin.pk]))
        self.assertEqual(response.status_code, 400)

    def test_role_list(self):
        roles = {role['name']: role for role in self.client.get(reverse('accounts:role_list')).json()['roles']}

        self.assertEqual(roles['sales']['users_count'], 1)
        self.assertIn('manage crm settings', roles['admin']['permissions'])


class PermissionsTest(TestCase):

    def test_role_permissions(self):
        self.assertTrue(role_has_permission('admin', 'manage crm settings'))
        self.assertTrue(role_has_permission('manager', 'view all stats'))
        self.assertFalse(role_has_permission('manager', 'view crm settings'))
        self.assertFalse(role_has_permission('sales', 'delete contacts'))
        self.assertFalse(role_has_permission('unknown', 'view dashboard'))
        self.assertEqual(permissions_for_role('sales'), sorted(permissions_for_role('sales')))

    def test_superuser_has_every_permission(self):
        user = User.objects.create_superuser(email='root@test.com', password='testpass123')
        self.assertTrue(user.has_crm_perm('anything at all'))


class SecurePasswordValidatorTest(TestCase):

    def setUp(self):
        settings_service.clear_cache()
        self.addCleanup(settings_service.clear_cache)
        self.validator = SecurePasswordValidator()

    def test_default_rules(self):
        self.validator.validate('Str0ngPassword')

        with self.assertRaises(ValidationError) as context:
            self.validator.validate('weak')
        codes = {error.code for error in context.exception.error_list}
        self.assertEqual(codes, {'password_too_short', 'password_no_upper', 'password_no_number'})

    def test_rules_follow_settings(self):
        settings_service.set('password_require_special_chars', True, 'security')

        with self.assertRaises(ValidationError):
            self.validator.validate('Str0ngPassword')
        self.validator.validate('Str0ng-Password')
