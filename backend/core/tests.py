"""
Test suite for the core module
Tests: authentication, user management, self-service profile, audit logs and shared helpers
"""
from datetime import date, datetime
from decimal import Decimal

from django.core import mail
from django.http import QueryDict
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework import serializers
from rest_framework.exceptions import ValidationError

from backend.core import roles
from backend.core.models import User, AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import (
    parse_bool, parse_int, parse_id_list, parse_date, convert_to_slug, unique_array, find_duplicates_in_array,
    find_unique_elements_in_array, week_bounds, month_bounds, shift_months, diff_changes, remove_accents,
    capitalize, create_random_code, generate_random_password, generate_random_token
)
from backend.core.validators import compare, add_offset, Comparison, IsBetweenRange, UniqueFieldInArray


class RoleTests(TestCase):
    """Test role helpers"""

    def test_generate_code(self):
        """Test profile code prefix and padding"""
        self.assertEqual(roles.generate_code(roles.CUSTOMER, 7), 'KH-0007')
        self.assertEqual(roles.generate_code(roles.HUMAN_RESOURCES, 12), 'HR-0012')

    def test_superuser_acts_as_administrator(self):
        """Test superuser effective role"""
        user = TestDataFactory.create_user(is_superuser=True)
        self.assertEqual(roles.user_role(user), roles.ADMINISTRATOR)
        self.assertTrue(roles.is_management(user))

    def test_employee_is_not_management(self):
        user = TestDataFactory.create_employee()
        self.assertFalse(roles.is_management(user))


class AuthTests(TestCase):
    """Test registration, login, refresh, logout and password reset"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_creates_customer(self):
        """Test self registration issues tokens and a customer account"""
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'New.User@Test.com',
            'username': 'newuser',
            'password': 'secret123',
            'confirm_password': 'secret123',
            'full_name': 'New User',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        user = User.objects.get(username='newuser')
        self.assertEqual(user.role, roles.CUSTOMER)
        self.assertEqual(user.email, 'new.user@test.com')
        self.assertEqual(user.profile.code, roles.generate_code(roles.CUSTOMER, user.id))

    def test_register_password_mismatch(self):
        """Test registration rejects different confirmation"""
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'x@test.com',
            'username': 'xuser',
            'password': 'secret123',
            'confirm_password': 'secret999',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_duplicate_email(self):
        """Test registration rejects an existing email, even soft-deleted"""
        TestDataFactory.create_user(username='taken', email='taken@test.com')
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'TAKEN@test.com',
            'username': 'another',
            'password': 'secret123',
            'confirm_password': 'secret123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)

    def test_login_success(self):
        """Test login returns a token pair"""
        TestDataFactory.create_user(username='loginuser')
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'LoginUser',
            'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_login_wrong_password(self):
        """Test wrong password is rejected with 401"""
        TestDataFactory.create_user(username='loginuser')
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'loginuser',
            'password': 'wrong-password',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_suspended_account(self):
        """Test correct credentials on a suspended account give 403"""
        TestDataFactory.create_user(username='suspended', status='SUSPENDED')
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'suspended',
            'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_logout_blacklists_refresh_token(self):
        """Test refresh token cannot be reused after logout"""
        user = TestDataFactory.create_user()
        refresh = self.client.authenticate_user(user)
        response = self.client.post('/api/v1/auth/logout/', {'refresh': str(refresh)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post('/api/v1/auth/refresh/', {'refresh': str(refresh)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @override_settings(EMAIL_BACKEND='django.core.mail.backends.locmem.EmailBackend')
    def test_forgot_password_sends_new_password(self):
        """Test forgot password resets and emails a new password"""
        user = TestDataFactory.create_user(email='forgot@test.com')
        response = self.client.post('/api/v1/auth/forgot-password/', {'email': 'forgot@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)
        user.refresh_from_db()
        self.assertFalse(user.check_password('testpass123'))
        self.assertTrue(AuditLog.objects.filter(action='password_reset', object_id=str(user.id)).exists())

    def test_forgot_password_unknown_email(self):
        response = self.client.post('/api/v1/auth/forgot-password/', {'email': 'nobody@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_returns_effective_role(self):
        """Test current user endpoint"""
        user = TestDataFactory.create_hr()
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['effective_role'], roles.HUMAN_RESOURCES)
        self.assertTrue(response.data['is_management'])


class UserManagementTests(TestCase):
    """Test user management endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.hr = TestDataFactory.create_hr()
        self.customer = TestDataFactory.create_customer()

    def test_customer_cannot_list_users(self):
        self.client.authenticate_user(self.customer)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_users_filter_by_role(self):
        """Test role filter on user list"""
        self.client.authenticate_user(self.hr)
        response = self.client.get('/api/v1/users/', {'role': roles.CUSTOMER})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['data'][0]['id'], self.customer.id)

    def test_issue_employee_account(self):
        """Test management issues an employee account with profile code"""
        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/users/', {
            'email': 'staff@test.com',
            'username': 'staff1',
            'password': 'secret123',
            'confirm_password': 'secret123',
            'full_name': 'Staff One',
            'role': roles.EMPLOYEE,
            'position': 'STAFF',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(username='staff1')
        self.assertEqual(user.registration_type, User.ACCOUNT_ISSUED)
        self.assertTrue(user.profile.code.startswith('NV-'))
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='User', object_id=str(user.id)).exists())

    def test_hr_cannot_issue_administrator(self):
        """Test only administrators may create administrators"""
        self.client.authenticate_user(self.hr)
        response = self.client.post('/api/v1/users/', {
            'email': 'boss@test.com',
            'username': 'boss',
            'password': 'secret123',
            'confirm_password': 'secret123',
            'full_name': 'Boss',
            'role': roles.ADMINISTRATOR,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_soft_delete_and_restore(self):
        """Test soft delete hides the user and restore brings it back"""
        self.client.authenticate_user(self.hr)
        response = self.client.delete(f'/api/v1/users/{self.customer.id}/soft-delete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(User.objects.filter(pk=self.customer.pk).exists())

        response = self.client.patch(f'/api/v1/users/{self.customer.id}/restore/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(User.objects.get(pk=self.customer.pk).is_active)

    def test_cannot_soft_delete_self(self):
        self.client.authenticate_user(self.hr)
        response = self.client.delete(f'/api/v1/users/{self.hr.id}/soft-delete/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_hard_delete_requires_administrator(self):
        """Test HR cannot permanently delete users"""
        self.client.authenticate_user(self.hr)
        response = self.client.delete(f'/api/v1/users/{self.customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/users/{self.customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.all_objects.filter(pk=self.customer.pk).exists())

    def test_update_role_regenerates_code(self):
        """Test role change updates the profile code"""
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/v1/users/{self.customer.id}/', {'role': roles.CUSTOMER_VIP1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.profile.code, roles.generate_code(roles.CUSTOMER_VIP1, self.customer.id))

    def test_set_password(self):
        self.client.authenticate_user(self.hr)
        response = self.client.patch(f'/api/v1/users/{self.customer.id}/set-password/',
                                     {'new_password': 'another1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.customer.refresh_from_db()
        self.assertTrue(self.customer.check_password('another1'))


class SelfServiceTests(TestCase):
    """Test profile, password and email changes by the account owner"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_customer(email='owner@test.com')
        self.client.authenticate_user(self.user)

    def test_update_profile(self):
        response = self.client.patch('/api/v1/users/me/profile/', {'phone': '0900000000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['profile']['phone'], '0900000000')

    def test_change_password_wrong_current(self):
        """Test current password must match"""
        response = self.client.patch('/api/v1/users/me/change-password/', {
            'current_password': 'nope',
            'new_password': 'another1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_change_password_same_as_current(self):
        response = self.client.patch('/api/v1/users/me/change-password/', {
            'current_password': 'testpass123',
            'new_password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_change_password(self):
        response = self.client.patch('/api/v1/users/me/change-password/', {
            'current_password': 'testpass123',
            'new_password': 'another1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('another1'))

    def test_change_email(self):
        """Test email change with password confirmation"""
        response = self.client.patch('/api/v1/users/me/change-email/', {
            'password': 'testpass123',
            'current_email': 'owner@test.com',
            'new_email': 'Changed@Test.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.email, 'changed@test.com')
        self.assertTrue(AuditLog.objects.filter(action='email_change', user=self.user).exists())

    def test_audit_logs_limited_to_own(self):
        """Test non-management users only see their own audit entries"""
        other = TestDataFactory.create_customer()
        AuditLog.objects.create(user=other, action='update', model_name='User', object_id=str(other.id))
        AuditLog.objects.create(user=self.user, action='update', model_name='User', object_id=str(self.user.id))
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)


class UtilsTests(TestCase):
    """Test shared parsing, array and date helpers"""

    def test_parse_bool(self):
        self.assertTrue(parse_bool('true'))
        self.assertFalse(parse_bool('0'))
        self.assertIsNone(parse_bool('maybe'))

    def test_parse_int(self):
        self.assertEqual(parse_int('3', 1), 3)
        self.assertEqual(parse_int('abc', 1), 1)
        self.assertEqual(parse_int('', 10), 10)
        self.assertEqual(parse_int('-5', 1, minimum=1), 1)

    def test_parse_id_list(self):
        """Test repeated and comma separated ids"""
        params = QueryDict('inIds[]=1&inIds[]=2,3')
        self.assertEqual(parse_id_list(params, 'inIds'), [1, 2, 3])
        with self.assertRaises(ValidationError):
            parse_id_list(QueryDict('inIds=a'), 'inIds')

    def test_parse_date(self):
        self.assertEqual(parse_date('2024-02-29'), date(2024, 2, 29))
        with self.assertRaises(ValidationError):
            parse_date('29/02/2024')

    def test_convert_to_slug(self):
        self.assertEqual(convert_to_slug('Cà Phê Sữa Đá'), 'ca-phe-sua-da')

    def test_text_helpers(self):
        self.assertEqual(remove_accents('Điện thoại'), 'Dien thoai')
        self.assertEqual(capitalize('hELLO'), 'Hello')
        self.assertEqual(capitalize(''), '')

    def test_random_helpers(self):
        self.assertEqual(len(create_random_code(6)), 6)
        self.assertEqual(len(generate_random_password()), 7)
        self.assertNotEqual(generate_random_token(), generate_random_token())

    def test_array_helpers(self):
        """Test unique, duplicate and single-occurrence helpers"""
        self.assertEqual(unique_array([1, 2, 2, 3, 1]), [1, 2, 3])
        self.assertEqual(find_duplicates_in_array([1, 2, 2, 3, 3, 3]), [2, 3])
        self.assertEqual(find_unique_elements_in_array([1, 2, 2, 3]), [1, 3])

    def test_date_bounds(self):
        self.assertEqual(week_bounds(date(2024, 5, 15)), (date(2024, 5, 13), date(2024, 5, 19)))
        self.assertEqual(month_bounds(date(2024, 2, 10)), (date(2024, 2, 1), date(2024, 2, 29)))
        self.assertEqual(shift_months(date(2024, 3, 31), -1), date(2024, 2, 29))

    def test_diff_changes(self):
        changes = diff_changes({'a': 1, 'b': 2}, {'a': 1, 'b': 3})
        self.assertEqual(list(changes), ['b'])


class ValidatorTests(TestCase):
    """Test comparison validators"""

    def test_compare_numbers_and_dates(self):
        self.assertTrue(compare(Decimal('2'), 1, 'gt'))
        self.assertTrue(compare(date(2024, 1, 1), date(2024, 1, 2), 'lt'))
        self.assertTrue(compare(2, [1, 2], 'in'))

    def test_compare_rejects_mixed_types(self):
        with self.assertRaises(TypeError):
            compare('1', 1, 'gt')

    def test_comparison_validator(self):
        """Test field-to-field comparison"""
        validator = Comparison('start', 'end', 'lt', message='start must be before end')
        validator({'start': datetime(2024, 1, 1), 'end': datetime(2024, 1, 2)})
        with self.assertRaises(serializers.ValidationError):
            validator({'start': datetime(2024, 1, 3), 'end': datetime(2024, 1, 2)})

    def test_add_offset_months(self):
        self.assertEqual(add_offset(date(2024, 1, 31), 1, 'month'), date(2024, 2, 29))
        self.assertEqual(add_offset(date(2024, 2, 29), -1, 'year'), date(2023, 2, 28))

    def test_is_between_range(self):
        """Test offset and field-to-field ranges"""
        validator = IsBetweenRange('due', 'start', 7, unit='day')
        validator({'due': date(2024, 1, 8), 'start': date(2024, 1, 1)})
        with self.assertRaises(serializers.ValidationError):
            validator({'due': date(2024, 1, 9), 'start': date(2024, 1, 1)})

        between = IsBetweenRange('due', 'end', 'start')
        between({'due': date(2024, 1, 5), 'start': date(2024, 1, 1), 'end': date(2024, 1, 10)})
        between({'due': date(2024, 1, 5), 'start': date(2024, 1, 1)})
        with self.assertRaises(serializers.ValidationError):
            between({'due': date(2024, 2, 1), 'start': date(2024, 1, 1), 'end': date(2024, 1, 10)})

    def test_unique_field_in_array(self):
        validator = UniqueFieldInArray('product_id')
        validator([{'product_id': 1}, {'product_id': 2}])
        with self.assertRaises(serializers.ValidationError):
            validator([{'product_id': 1}, {'product_id': 1}])
