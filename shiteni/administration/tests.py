"""
Test suite for the administration module
Tests: access control, dashboard, statistics, compliance, accounts, plans, settings, promotions, health
"""
from datetime import date, timedelta
from decimal import Decimal

from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from shiteni.core.models import AuditLog, Setting
from shiteni.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shiteni.messaging.models import Message
from shiteni.subscriptions.models import SubscriptionPlan, BillingHistory
from . import services


class AdminTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)


class AccessTests(AdminTestCase):

    def test_vendor_is_refused(self):
        self.client.authenticate_user(TestDataFactory.create_subscribed_vendor('store'))
        for url in ['/api/v1/admin/dashboard/', '/api/v1/admin/vendors/', '/api/v1/admin/system-health/']:
            response = self.client.get(url)
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, url)

    def test_anonymous_is_refused(self):
        self.client.logout()
        response = self.client.get('/api/v1/admin/statistics/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_role_is_accepted(self):
        self.client.authenticate_user(TestDataFactory.create_admin(role='admin'))
        response = self.client.get('/api/v1/admin/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class DashboardTests(AdminTestCase):

    def test_counts_and_revenue(self):
        hotel = TestDataFactory.create_subscribed_vendor('hotel')
        TestDataFactory.create_vendor('bus', status='pending')
        TestDataFactory.create_customer()
        subscription = hotel.subscriptions.get()
        BillingHistory.objects.create(
            subscription=subscription, user=hotel, invoice_number='INV-1', amount=Decimal('250.00'),
            status='paid', billing_date=timezone.now(), due_date=timezone.now(), payment_date=timezone.now(),
            plan_type='basic', billing_cycle='monthly',
        )
        BillingHistory.objects.create(
            subscription=subscription, user=hotel, invoice_number='INV-2', amount=Decimal('99.00'),
            status='pending', billing_date=timezone.now(), due_date=timezone.now(),
            plan_type='basic', billing_cycle='monthly',
        )

        response = self.client.get('/api/v1/admin/dashboard/')
        data = response.data
        self.assertEqual(data['users']['by_role']['customer'], 1)
        self.assertEqual(data['vendors']['total'], 2)
        self.assertEqual(data['vendors']['by_service_type']['bus'], 1)
        self.assertEqual(data['vendors']['pending_approval'], 1)
        self.assertEqual(data['subscriptions']['active'], 1)
        self.assertEqual(data['revenue']['total'], 250.0)
        self.assertEqual(len(data['recent_users']), 4)


class StatisticsTests(AdminTestCase):

    def test_overview_and_top_products(self):
        store = TestDataFactory.create_subscribed_vendor('store')
        radio = TestDataFactory.create_product(store, name='Radio', price=Decimal('50.00'))
        kettle = TestDataFactory.create_product(store, name='Kettle', price=Decimal('200.00'))
        TestDataFactory.create_store_order(store, radio, quantity=3, status='confirmed')
        TestDataFactory.create_store_order(store, radio, quantity=2, status='delivered')
        TestDataFactory.create_store_order(store, kettle, quantity=1, status='confirmed')
        TestDataFactory.create_store_order(store, kettle, quantity=9, status='cancelled')

        response = self.client.get('/api/v1/admin/statistics/?range=7d')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data
        self.assertEqual(data['range'], '7d')
        self.assertEqual(data['overview']['total_vendors'], 1)
        self.assertEqual(data['overview']['orders'], 4)
        self.assertEqual(data['overview']['revenue'], 450.0)
        self.assertEqual(data['top_products'][0], {'name': 'Radio', 'sales': 5, 'revenue': 250.0})
        self.assertEqual(data['top_products'][1]['name'], 'Kettle')
        self.assertEqual(len(data['user_growth']), 6)
        self.assertEqual(data['revenue_data'][-1]['revenue'], 450.0)
        self.assertEqual(data['business_stats']['store']['active'], 1)
        self.assertEqual(len(data['recent_activity']), 5)

    def test_growth_without_history(self):
        TestDataFactory.create_customer()
        overview = services.overview('30d')
        self.assertEqual(overview['user_growth'], 100.0)
        self.assertEqual(overview['revenue_growth'], 0.0)

    def test_unknown_range_falls_back(self):
        response = self.client.get('/api/v1/admin/statistics/?range=5y')
        self.assertEqual(response.data['range'], '30d')


class ComplianceTests(AdminTestCase):

    def setUp(self):
        super().setUp()
        self.active = TestDataFactory.create_vendor('pharmacy', business_name='Kafue Pharmacy')
        self.pending = TestDataFactory.create_vendor('hotel', status='pending')
        self.suspended = TestDataFactory.create_vendor('bus', status='suspended')

    def test_score_bands(self):
        response = self.client.get('/api/v1/admin/compliance/')
        reports = {r['id']: r for r in response.data['reports']}

        active = reports[self.active.id]
        self.assertTrue(85 <= active['score'] <= 100)
        self.assertEqual(active['violations'], 0)
        self.assertEqual(active['status'], 'approved')
        self.assertEqual(active['institution'], 'Kafue Pharmacy')

        for vendor in (self.pending, self.suspended):
            report = reports[vendor.id]
            self.assertTrue(60 <= report['score'] <= 80)
            self.assertTrue(1 <= report['violations'] <= 3)
        self.assertEqual(reports[self.pending.id]['status'], 'under_review')
        self.assertEqual(reports[self.suspended.id]['status'], 'rejected')

        metrics = response.data['metrics']
        self.assertEqual(metrics['total_vendors'], 3)
        self.assertEqual(metrics['approved_reports'], 1)

    def test_scores_are_stable(self):
        first = self.client.get('/api/v1/admin/compliance/?range=last_quarter').data
        second = self.client.get('/api/v1/admin/compliance/?range=last_quarter').data
        self.assertEqual([r['score'] for r in first['reports']], [r['score'] for r in second['reports']])

    def test_rating_thresholds(self):
        self.assertEqual(services.compliance_rating(90), 'Excellent')
        self.assertEqual(services.compliance_rating(89), 'Good')
        self.assertEqual(services.compliance_rating(70), 'Fair')
        self.assertEqual(services.compliance_rating(69), 'Poor')

    def test_period_labels(self):
        day = date(2025, 2, 10)
        self.assertEqual(services.period_label('current', day), 'Q1 2025')
        self.assertEqual(services.period_label('last_quarter', day), 'Q4 2024')
        self.assertEqual(services.period_label('last_year', day), '2024')

    def test_export(self):
        response = self.client.post('/api/v1/admin/compliance/', {'format': 'csv'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_records'], 3)
        self.assertTrue(response.data['filename'].endswith('.csv'))
        self.assertIn('Compliance Score', response.data['data'][0])


class AccountTests(AdminTestCase):

    def test_approve_vendor(self):
        vendor = TestDataFactory.create_vendor('store', status='pending')
        response = self.client.patch(f'/api/v1/admin/vendors/{vendor.id}/status/', {'status': 'active'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        vendor.refresh_from_db()
        self.assertEqual(vendor.status, 'active')
        self.assertEqual(vendor.activated_by, self.admin)
        self.assertIsNotNone(vendor.activated_at)
        self.assertTrue(AuditLog.objects.filter(action='status_change', object_id=str(vendor.id)).exists())

    def test_suspend_vendor_blocks_login(self):
        vendor = TestDataFactory.create_vendor('store')
        self.client.patch(f'/api/v1/admin/vendors/{vendor.id}/status/', {'status': 'suspended'}, format='json')
        vendor.refresh_from_db()
        self.assertFalse(vendor.is_active)
        self.assertEqual(vendor.deactivated_by, self.admin)

    def test_invalid_status(self):
        vendor = TestDataFactory.create_vendor('store')
        response = self.client.patch(f'/api/v1/admin/vendors/{vendor.id}/status/', {'status': 'deleted'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_customer_is_not_a_vendor(self):
        customer = TestDataFactory.create_customer()
        response = self.client.patch(f'/api/v1/admin/vendors/{customer.id}/status/', {'status': 'active'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_vendor_filters(self):
        TestDataFactory.create_vendor('store', business_name='Mansa Hardware')
        TestDataFactory.create_vendor('hotel', status='pending')
        response = self.client.get('/api/v1/admin/vendors/?service_type=store')
        self.assertEqual(response.data['pagination']['total'], 1)
        response = self.client.get('/api/v1/admin/vendors/?status=pending')
        self.assertEqual(response.data['vendors'][0]['service_type'], 'hotel')
        response = self.client.get('/api/v1/admin/vendors/?search=mansa')
        self.assertEqual(response.data['vendors'][0]['business_name'], 'Mansa Hardware')

    def test_cannot_change_own_status(self):
        response = self.client.patch(f'/api/v1/admin/users/{self.admin.id}/status/', {'status': 'inactive'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_user_status_and_staff_list(self):
        vendor = TestDataFactory.create_vendor('hotel', business_name='Chobe Lodge')
        receptionist = TestDataFactory.create_staff(vendor, 'receptionist')
        response = self.client.patch(f'/api/v1/admin/users/{receptionist.id}/status/', {'status': 'inactive'},
                                     format='json')
        self.assertEqual(response.data['status'], 'inactive')

        response = self.client.get('/api/v1/admin/staff/')
        self.assertEqual(response.data['staff'][0]['vendor_name'], 'Chobe Lodge')
        response = self.client.get('/api/v1/admin/users/?role=receptionist')
        self.assertEqual(response.data['pagination']['total'], 1)


class PlanSubscriptionTests(AdminTestCase):

    def test_plan_crud(self):
        response = self.client.post('/api/v1/admin/subscription-plans/', {
            'name': 'Fleet Premium', 'vendor_type': 'bus', 'plan_type': 'premium', 'price': '750.00',
            'billing_cycle': 'monthly', 'features': ['Unlimited routes'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        plan_id = response.data['id']

        response = self.client.patch(f'/api/v1/admin/subscription-plans/{plan_id}/', {'is_popular': True},
                                     format='json')
        self.assertTrue(response.data['is_popular'])
        response = self.client.get('/api/v1/admin/subscription-plans/?vendor_type=bus')
        self.assertEqual(len(response.data), 1)

        response = self.client.delete(f'/api/v1/admin/subscription-plans/{plan_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(SubscriptionPlan.objects.filter(pk=plan_id).exists())

    def test_plan_in_use_cannot_be_deleted(self):
        vendor = TestDataFactory.create_subscribed_vendor('store')
        plan = vendor.subscriptions.get().plan
        response = self.client.delete(f'/api/v1/admin/subscription-plans/{plan.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_extend_subscription(self):
        vendor = TestDataFactory.create_vendor('hotel')
        subscription = TestDataFactory.create_subscription(vendor, status='expired', days=-2)
        new_end = (timezone.now() + timedelta(days=60)).isoformat()
        response = self.client.patch(f'/api/v1/admin/subscriptions/{subscription.id}/',
                                     {'status': 'active', 'end_date': new_end}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        subscription.refresh_from_db()
        self.assertEqual(subscription.status, 'active')
        self.assertGreater(subscription.end_date, timezone.now())
        entry = AuditLog.objects.get(model_name='Subscription', object_id=str(subscription.id))
        self.assertEqual(entry.changes['status'], 'active')
        self.assertIn('end_date', entry.changes)

        response = self.client.get('/api/v1/admin/subscriptions/?status=active&service_type=hotel')
        self.assertEqual(response.data['pagination']['total'], 1)


class SettingsMessagesTests(AdminTestCase):

    def test_upsert_settings(self):
        response = self.client.put('/api/v1/admin/settings/', {
            'key': 'support_email', 'value': 'help@shiteni.com', 'description': 'Support inbox',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client.put('/api/v1/admin/settings/', {'settings': [
            {'key': 'support_email', 'value': 'support@shiteni.com'},
            {'key': 'maintenance_mode', 'value': 'false'},
        ]}, format='json')
        self.assertEqual(Setting.objects.get(key='support_email').value, 'support@shiteni.com')
        self.assertEqual(Setting.objects.get(key='support_email').description, 'Support inbox')
        response = self.client.get('/api/v1/admin/settings/')
        self.assertEqual([s['key'] for s in response.data['settings']], ['maintenance_mode', 'support_email'])

    def test_messages_by_conversation(self):
        customer = TestDataFactory.create_customer()
        for conversation in ('7', '7', '9'):
            Message.objects.create(sender=customer, sender_email=customer.email, recipient_email='v@test.com',
                                   conversation_id=conversation, content='Hello')
        response = self.client.get('/api/v1/admin/messages/?conversation_id=7')
        self.assertEqual(response.data['pagination']['total'], 2)


class PromotionTests(AdminTestCase):

    def setUp(self):
        super().setUp()
        TestDataFactory.create_customer(email='one@test.com')
        TestDataFactory.create_customer(email='two@test.com')
        self.store = TestDataFactory.create_vendor('store')
        TestDataFactory.create_vendor('hotel')

    def test_counts_by_audience(self):
        def count(query):
            return self.client.get(f'/api/v1/admin/promotions/count/?{query}').data['count']

        self.assertEqual(count('audience=customers'), 2)
        self.assertEqual(count('audience=vendors'), 2)
        self.assertEqual(count('audience=all'), 4)
        self.assertEqual(count('audience=specific_vendor_type&vendor_type=store'), 1)
        self.assertEqual(count(f'audience=specific_vendor&vendor_id={self.store.id}'), 1)

    def test_send_to_customers(self):
        response = self.client.post('/api/v1/admin/promotions/send/', {
            'subject': 'Weekend deals', 'message': '20% off', 'audience': 'customers',
        }, format='json')
        self.assertEqual(response.data['sent'], 2)
        self.assertEqual(response.data['failed'], 0)
        self.assertEqual(sorted(m.to[0] for m in mail.outbox), ['one@test.com', 'two@test.com'])
        self.assertTrue(AuditLog.objects.filter(action='promotion_send').exists())

    def test_specific_vendor_needs_id(self):
        response = self.client.post('/api/v1/admin/promotions/send/', {
            'subject': 'Hi', 'message': 'x', 'audience': 'specific_vendor',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SystemHealthTests(AdminTestCase):

    def test_healthy(self):
        response = self.client.get('/api/v1/admin/system-health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'healthy')
        self.assertEqual(response.data['checks']['database']['status'], 'ok')
        self.assertIn('latency_ms', response.data['checks']['cache'])
        self.assertEqual(response.data['counts']['users'], 1)
        self.assertTrue(response.data['version'])
