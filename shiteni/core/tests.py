"""
Test suite for the core module
Tests: registration, login, e-mail verification, password reset, profile, staff, roles, uploads, commands
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core import mail
from django.core.management import call_command, CommandError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import transaction
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status

from shiteni.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import User, AuditLog
from .roles import has_permission, get_allowed_modules, can_access_module, check_pharmacy_access
from .utils import create_audit_log, format_currency, paginate


class RegistrationTests(TestCase):
    """Test account registration and e-mail verification"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_customer(self):
        data = {'email': 'Chanda@Test.com', 'password': 'secret123', 'first_name': 'Chanda'}
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='chanda@test.com')
        self.assertEqual(user.role, 'customer')
        self.assertFalse(user.email_verified)
        self.assertIsNotNone(user.email_verification_token)
        self.assertEqual(len(mail.outbox), 1)
        self.assertTrue(AuditLog.objects.filter(action='register', object_id=str(user.id)).exists())

    def test_register_vendor_is_pending(self):
        data = {
            'email': 'lodge@test.com',
            'password': 'secret123',
            'role': 'manager',
            'business_name': 'Lodge',
            'business_address': 'Great East Road',
            'license_number': 'L-1',
            'service_type': 'hotel',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(User.objects.get(email='lodge@test.com').status, 'pending')

    def test_register_vendor_missing_business_fields(self):
        data = {'email': 'v@test.com', 'password': 'secret123', 'role': 'manager', 'service_type': 'store'}
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('business_name', response.data)

    def test_customer_cannot_send_service_type(self):
        data = {'email': 'c@test.com', 'password': 'secret123', 'service_type': 'bus'}
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_email(self):
        TestDataFactory.create_user(email='dup@test.com')
        data = {'email': 'DUP@test.com', 'password': 'secret123'}
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['email'][0], 'User already exists')

    def test_verify_email(self):
        user = TestDataFactory.create_user(email_verified=False)
        user.email_verification_token = 'tok123'
        user.email_verification_expires = timezone.now() + timedelta(hours=1)
        user.save()
        response = self.client.get('/api/v1/auth/verify-email/?token=tok123')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertTrue(user.email_verified)

    def test_verify_email_expired(self):
        user = TestDataFactory.create_user(email_verified=False)
        user.email_verification_token = 'old'
        user.email_verification_expires = timezone.now() - timedelta(hours=1)
        user.save()
        response = self.client.get('/api/v1/auth/verify-email/?token=old')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_verify_email_invalid_token(self):
        response = self.client.post('/api/v1/auth/verify-email/', {'token': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class LoginTests(TestCase):
    """Test JWT login and refresh"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_login(self):
        TestDataFactory.create_user(email='login@test.com', password='secret123')
        response = self.client.post('/api/v1/auth/login/', {'email': 'login@test.com', 'password': 'secret123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['email'], 'login@test.com')

    def test_login_unverified(self):
        TestDataFactory.create_user(email='new@test.com', password='secret123', email_verified=False)
        response = self.client.post('/api/v1/auth/login/', {'email': 'new@test.com', 'password': 'secret123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_inactive(self):
        TestDataFactory.create_user(email='off@test.com', password='secret123', status='inactive')
        response = self.client.post('/api/v1/auth/login/', {'email': 'off@test.com', 'password': 'secret123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_wrong_password(self):
        TestDataFactory.create_user(email='x@test.com', password='secret123')
        response = self.client.post('/api/v1/auth/login/', {'email': 'x@test.com', 'password': 'wrong'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh(self):
        TestDataFactory.create_user(email='r@test.com', password='secret123')
        login = self.client.post('/api/v1/auth/login/', {'email': 'r@test.com', 'password': 'secret123'},
                                 format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)


class PasswordResetTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user(email='reset@test.com')

    def test_request_reset_always_succeeds(self):
        response = self.client.post('/api/v1/auth/reset-password/', {'email': 'unknown@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 0)

        response = self.client.post('/api/v1/auth/reset-password/', {'email': 'reset@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)
        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.password_reset_token)

    def test_reset_with_token(self):
        self.user.password_reset_token = 'reset-token'
        self.user.password_reset_expires = timezone.now() + timedelta(minutes=30)
        self.user.save()
        response = self.client.post('/api/v1/auth/reset-password/',
                                    {'token': 'reset-token', 'password': 'newpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('newpass123'))
        self.assertIsNone(self.user.password_reset_token)

    def test_reset_with_expired_token(self):
        self.user.password_reset_token = 'stale'
        self.user.password_reset_expires = timezone.now() - timedelta(minutes=1)
        self.user.save()
        response = self.client.post('/api/v1/auth/reset-password/',
                                    {'token': 'stale', 'password': 'newpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProfileTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user(password='secret123')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_me_includes_modules(self):
        vendor = TestDataFactory.create_vendor('hotel')
        staff = TestDataFactory.create_staff(vendor, 'receptionist')
        self.client.authenticate_user(staff)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['allowed_modules'], ['bookings', 'customers', 'in-house'])
        self.assertEqual(response.data['dashboard_path'], '/dashboard/vendor/hotel')
        self.assertEqual(response.data['vendor']['id'], vendor.id)

    def test_update_profile_keeps_role(self):
        response = self.client.put('/api/v1/user/profile/', {'first_name': 'Bwalya', 'role': 'super_admin'},
                                   format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.first_name, 'Bwalya')
        self.assertEqual(self.user.role, 'customer')

    def test_change_password(self):
        response = self.client.put('/api/v1/user/password/',
                                   {'current_password': 'secret123', 'new_password': 'another123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('another123'))

    def test_change_password_wrong_current(self):
        response = self.client.put('/api/v1/user/password/',
                                   {'current_password': 'bad', 'new_password': 'another123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_approval_status(self):
        response = self.client.get('/api/v1/vendor/approval-status/')
        self.assertEqual(response.data['status'], 'customer')
        self.assertTrue(response.data['approved'])

        self.client.authenticate_user(TestDataFactory.create_vendor('store', status='inactive'))
        response = self.client.get('/api/v1/vendor/approval-status/')
        self.assertEqual(response.data['status'], 'rejected')
        self.assertFalse(response.data['approved'])

    def test_vendor_settings_merge(self):
        vendor = TestDataFactory.create_vendor('hotel')
        vendor.settings = {'check_in_time': '14:00'}
        vendor.save()
        self.client.authenticate_user(vendor)
        response = self.client.put('/api/v1/vendor/settings/', {'settings': {'currency': 'ZMW'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        vendor.refresh_from_db()
        self.assertEqual(vendor.settings, {'check_in_time': '14:00', 'currency': 'ZMW'})

    def test_staff_cannot_update_vendor_settings(self):
        vendor = TestDataFactory.create_vendor('hotel')
        self.client.authenticate_user(TestDataFactory.create_staff(vendor, 'receptionist'))
        response = self.client.get('/api/v1/vendor/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.put('/api/v1/vendor/settings/', {'business_name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class StaffTests(TestCase):
    """Test staff management by vendor owners"""

    def setUp(self):
        self.vendor = TestDataFactory.create_vendor('pharmacy')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)

    def test_create_staff(self):
        data = {'email': 'pharm@test.com', 'first_name': 'Mutale', 'role': 'pharmacist', 'password': 'secret123'}
        response = self.client.post('/api/v1/staff/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        staff = User.objects.get(email='pharm@test.com')
        self.assertEqual(staff.institution, self.vendor)
        self.assertEqual(staff.service_type, 'pharmacy')
        self.assertTrue(staff.email_verified)
        self.assertEqual(len(mail.outbox), 1)

    def test_create_staff_with_role_of_other_service(self):
        data = {'email': 'driver@test.com', 'role': 'driver'}
        response = self.client.post('/api/v1/staff/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_only_own_staff(self):
        TestDataFactory.create_staff(self.vendor, 'technician')
        TestDataFactory.create_staff(TestDataFactory.create_vendor('pharmacy'), 'technician')
        response = self.client.get('/api/v1/staff/')
        self.assertEqual(len(response.data['staff']), 1)
        self.assertEqual(response.data['roles'], ['pharmacist', 'technician', 'cashier'])

    def test_staff_status(self):
        staff = TestDataFactory.create_staff(self.vendor, 'cashier')
        response = self.client.patch(f'/api/v1/staff/{staff.id}/status/', {'status': 'inactive'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        staff.refresh_from_db()
        self.assertEqual(staff.status, 'inactive')
        self.assertEqual(staff.deactivated_by, self.vendor)
        self.assertIsNotNone(staff.deactivated_at)

    def test_staff_cannot_manage_staff(self):
        staff = TestDataFactory.create_staff(self.vendor, 'pharmacist')
        self.client.authenticate_user(staff)
        response = self.client.get('/api/v1/staff/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pending_vendor_cannot_manage_staff(self):
        self.client.authenticate_user(TestDataFactory.create_vendor('pharmacy', status='pending'))
        response = self.client.get('/api/v1/staff/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_staff(self):
        staff = TestDataFactory.create_staff(self.vendor, 'cashier')
        response = self.client.delete(f'/api/v1/staff/{staff.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(pk=staff.id).exists())


@override_settings(MEDIA_ROOT='/tmp/shiteni-test-media')
class UploadTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def test_upload_image(self):
        upload = SimpleUploadedFile('logo.png', b'\x89PNG\r\n\x1a\nfake', content_type='image/png')
        response = self.client.post('/api/v1/upload/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category'], 'image')
        self.assertIn('/media/', response.data['url'])

    def test_upload_rejects_type(self):
        upload = SimpleUploadedFile('run.sh', b'echo hi', content_type='text/x-shellscript')
        response = self.client.post('/api/v1/upload/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_without_file(self):
        response = self.client.post('/api/v1/upload/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class RoleHelperTests(TestCase):
    """Path and module permission helpers"""

    def test_has_permission(self):
        self.assertTrue(has_permission('super_admin', '/dashboard/vendor/bus/fleet'))
        self.assertTrue(has_permission('admin', '/dashboard/admin/users'))
        self.assertTrue(has_permission('manager', '/dashboard/vendor/hotel/bookings', 'hotel'))
        self.assertFalse(has_permission('manager', '/dashboard/vendor/store/orders', 'hotel'))
        self.assertTrue(has_permission('customer', '/dashboard/customer/orders'))
        self.assertTrue(has_permission('housekeeping', '/dashboard/vendor/hotel/room-management', 'hotel'))
        self.assertFalse(has_permission('housekeeping', '/dashboard/vendor/hotel/bookings', 'hotel'))

    def test_allowed_modules(self):
        self.assertIn('schedule-trip', get_allowed_modules('manager', 'bus'))
        self.assertEqual(get_allowed_modules('maintenance', 'bus'), ['fleet'])
        self.assertTrue(can_access_module('cashier', 'payments', 'store'))
        self.assertFalse(can_access_module('cashier', 'compliance', 'pharmacy'))

    def test_pharmacy_groups(self):
        self.assertTrue(check_pharmacy_access('pharmacist', 'pharmacy', 'COMPLIANCE_MANAGEMENT'))
        self.assertFalse(check_pharmacy_access('technician', 'pharmacy', 'COMPLIANCE_MANAGEMENT'))
        self.assertFalse(check_pharmacy_access('manager', 'hotel', 'FULL_ACCESS'))


class UtilityTests(TestCase):

    def test_format_currency(self):
        self.assertEqual(format_currency(1250), 'K1,250.00')
        self.assertEqual(format_currency('9.5', 'USD'), '$9.50')
        self.assertEqual(format_currency(3, 'XYZ'), 'XYZ3.00')

    def test_email_is_lowercased(self):
        user = TestDataFactory.create_user(email='MiXeD@Test.com')
        self.assertEqual(user.email, 'mixed@test.com')

    def test_paginate(self):
        for _ in range(3):
            TestDataFactory.create_user()

        class FakeRequest:
            query_params = {'page': '2', 'limit': '2'}

        items, pagination = paginate(User.objects.order_by('id'), FakeRequest())
        self.assertEqual(len(list(items)), 1)
        self.assertEqual(pagination, {'page': 2, 'limit': 2, 'total': 3, 'pages': 2})

    def test_audit_log_stores_dates_and_decimals(self):
        user = TestDataFactory.create_user()
        end_date = timezone.now() + timedelta(days=30)
        with transaction.atomic():
            entry = create_audit_log(user=user, action='update', model_name='Subscription', object_id=7,
                                     changes={'end_date': end_date, 'amount': Decimal('250.00')})
            User.objects.filter(pk=user.pk).update(name='Still Writable')
        self.assertIsNotNone(entry)
        entry.refresh_from_db()
        self.assertEqual(entry.changes['amount'], '250.00')
        self.assertTrue(entry.changes['end_date'].startswith(end_date.date().isoformat()))
        self.assertEqual(User.objects.get(pk=user.pk).name, 'Still Writable')


class CreateSuperAdminCommandTests(TestCase):

    def test_create(self):
        call_command('create_super_admin', email='Root@Shiteni.com', password='Str0ng-Passw0rd!', name='Root')
        admin = User.objects.get(email='root@shiteni.com')
        self.assertEqual(admin.role, 'super_admin')
        self.assertTrue(admin.email_verified)
        self.assertTrue(admin.is_superuser)
        self.assertTrue(admin.check_password('Str0ng-Passw0rd!'))

    def test_existing_email_needs_promote(self):
        user = TestDataFactory.create_customer(email='owner@test.com')
        with self.assertRaises(CommandError):
            call_command('create_super_admin', email='owner@test.com', password='Str0ng-Passw0rd!')
        call_command('create_super_admin', email='owner@test.com', promote=True)
        user.refresh_from_db()
        self.assertEqual(user.role, 'super_admin')

    def test_weak_password(self):
        with self.assertRaises(CommandError):
            call_command('create_super_admin', email='weak@test.com', password='123')
        self.assertFalse(User.objects.filter(email='weak@test.com').exists())


class MigrationTests(TestCase):
    """Test that the committed migrations match the models"""

    def test_no_missing_migrations(self):
        out = StringIO()
        try:
            call_command('makemigrations', '--check', '--dry-run', stdout=out)
        except SystemExit:
            self.fail(f"Models have changes without a migration:\n{out.getvalue()}")
