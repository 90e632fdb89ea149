"""
Test suite for subscriptions
Tests: plans, status, upgrade through Lipila, payment polling, webhook, Lipila client, commands
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch, MagicMock

import requests
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from shiteni.core.cache_signals import suspend_cache_signals
from shiteni.core.cache_utils import invalidate_plans_cache
from shiteni.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .lipila import LipilaClient, LipilaError, normalize_phone, validate_amount
from .models import SubscriptionPlan, Subscription, BillingHistory
from .services import add_months, calculate_end_date, has_active_subscription


class PlanTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_plans_are_public_and_ordered(self):
        TestDataFactory.create_subscription_plan('bus', 'premium', price=Decimal('500'))
        TestDataFactory.create_subscription_plan('bus', 'basic', price=Decimal('250'))
        TestDataFactory.create_subscription_plan('bus', 'enterprise', is_active=False)
        TestDataFactory.create_subscription_plan('hotel', 'basic')
        response = self.client.get('/api/v1/subscriptions/bus/plans/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['plan_type'] for p in response.data['plans']], ['basic', 'premium'])

    def test_unknown_service_type(self):
        response = self.client.get('/api/v1/subscriptions/laundry/plans/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_plan_cache_invalidated_on_change(self):
        plan = TestDataFactory.create_subscription_plan('store')
        self.client.get('/api/v1/subscriptions/store/plans/')
        plan.is_active = False
        plan.save()
        response = self.client.get('/api/v1/subscriptions/store/plans/')
        self.assertEqual(response.data['plans'], [])

    def test_seed_command(self):
        out = StringIO()
        call_command('seed_subscription_plans', stdout=out)
        self.assertEqual(SubscriptionPlan.objects.count(), 12)

    def test_seed_command_refreshes_cached_plans(self):
        self.client.get('/api/v1/subscriptions/hotel/plans/')
        call_command('seed_subscription_plans', stdout=StringIO())
        response = self.client.get('/api/v1/subscriptions/hotel/plans/')
        self.assertEqual(len(response.data['plans']), 3)

    def test_suspended_signals_keep_cache_until_invalidated(self):
        plan = TestDataFactory.create_subscription_plan('store')
        self.client.get('/api/v1/subscriptions/store/plans/')
        with suspend_cache_signals():
            plan.is_active = False
            plan.save()
        response = self.client.get('/api/v1/subscriptions/store/plans/')
        self.assertEqual(len(response.data['plans']), 1)
        invalidate_plans_cache('store')
        response = self.client.get('/api/v1/subscriptions/store/plans/')
        self.assertEqual(response.data['plans'], [])
        self.assertEqual(
            SubscriptionPlan.objects.get(vendor_type='pharmacy', plan_type='premium').price, Decimal('500.00')
        )
        call_command('seed_subscription_plans', stdout=out)
        self.assertEqual(SubscriptionPlan.objects.count(), 12)


class SubscriptionStatusTests(TestCase):

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_vendor('store')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)

    def test_status_without_subscription(self):
        response = self.client.get('/api/v1/subscriptions/store/status/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['has_active_subscription'])
        self.assertEqual(response.data['days_remaining'], 0)

    def test_status_with_subscription(self):
        TestDataFactory.create_subscription(self.vendor, days=10)
        response = self.client.get('/api/v1/subscriptions/store/status/')
        self.assertTrue(response.data['has_active_subscription'])
        self.assertIn(response.data['days_remaining'], (9, 10))

    def test_detail_without_subscription(self):
        response = self.client.get('/api/v1/subscriptions/store/')
        self.assertIsNone(response.data['subscription'])

    def test_staff_see_vendor_subscription(self):
        TestDataFactory.create_subscription(self.vendor)
        staff = TestDataFactory.create_staff(self.vendor, 'cashier')
        self.client.authenticate_user(staff)
        response = self.client.get('/api/v1/subscriptions/store/status/')
        self.assertTrue(response.data['has_active_subscription'])

    def test_wrong_service_type(self):
        response = self.client.get('/api/v1/subscriptions/hotel/status/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_expire_command(self):
        subscription = TestDataFactory.create_subscription(self.vendor, days=-2)
        self.assertFalse(has_active_subscription(self.vendor, 'store'))
        call_command('expire_subscriptions', stdout=StringIO())
        subscription.refresh_from_db()
        self.assertEqual(subscription.status, 'expired')


@patch('shiteni.subscriptions.views.get_lipila_client')
class UpgradeTests(TestCase):
    """Test plan upgrade and Lipila payment handling"""

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_vendor('hotel')
        self.plan = TestDataFactory.create_subscription_plan('hotel', 'premium', price=Decimal('500.00'),
                                                             billing_cycle='quarterly')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)

    def _payload(self, **overrides):
        data = {
            'plan_id': self.plan.id,
            'payment_type': 'mobile-money',
            'customer_info': {'phone_number': '0971234567', 'first_name': 'Natasha', 'last_name': 'Phiri'},
        }
        data.update(overrides)
        return data

    def _client_returning(self, mock_get_client, result=None, error=None):
        lipila = MagicMock()
        if error:
            lipila.process_subscription_payment.side_effect = error
        else:
            lipila.process_subscription_payment.return_value = result
        mock_get_client.return_value = lipila
        return lipila

    def test_successful_upgrade_creates_subscription(self, mock_get_client):
        lipila = self._client_returning(mock_get_client, {'status': 'Successful', 'transactionId': 'TX1',
                                                          'externalId': 'SUB-1'})
        response = self.client.post('/api/v1/subscriptions/hotel/upgrade/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        subscription = Subscription.objects.get(user=self.vendor, service_type='hotel')
        self.assertEqual(subscription.status, 'active')
        self.assertEqual(subscription.payment_status, 'paid')
        self.assertEqual(subscription.lipila_transaction_id, 'TX1')
        self.assertEqual(subscription.end_date.date(), calculate_end_date(subscription.start_date, 'quarterly').date())
        bill = BillingHistory.objects.get(subscription=subscription)
        self.assertEqual(bill.status, 'paid')
        self.assertIsNotNone(bill.payment_date)
        self.assertTrue(bill.invoice_number.startswith('INV-'))

        args = lipila.process_subscription_payment.call_args
        self.assertEqual(args[0][2], 'mobile_money')

    def test_second_upgrade_updates_existing(self, mock_get_client):
        TestDataFactory.create_subscription(self.vendor)
        self._client_returning(mock_get_client, {'status': 'Successful', 'transactionId': 'TX2'})
        response = self.client.post('/api/v1/subscriptions/hotel/upgrade/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Subscription.objects.filter(user=self.vendor).count(), 1)
        self.assertEqual(Subscription.objects.get(user=self.vendor).plan, self.plan)

    def test_pending_mobile_money_activates(self, mock_get_client):
        self._client_returning(mock_get_client, {'status': 'Pending', 'transactionId': 'TX3'})
        response = self.client.post('/api/v1/subscriptions/hotel/upgrade/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        subscription = Subscription.objects.get(user=self.vendor)
        self.assertEqual(subscription.status, 'active')
        self.assertEqual(subscription.payment_status, 'pending')
        self.assertEqual(BillingHistory.objects.get(subscription=subscription).status, 'pending')

    def test_failed_gateway_status(self, mock_get_client):
        self._client_returning(mock_get_client, {'status': 'Failed', 'message': 'Insufficient funds'})
        response = self.client.post('/api/v1/subscriptions/hotel/upgrade/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Subscription.objects.get(user=self.vendor).status, 'pending')

    def test_gateway_auth_error_is_503(self, mock_get_client):
        self._client_returning(mock_get_client, error=LipilaError('Unauthorized', status_code=401))
        response = self.client.post('/api/v1/subscriptions/hotel/upgrade/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    def test_gateway_error_is_400(self, mock_get_client):
        self._client_returning(mock_get_client, error=LipilaError('Invalid payment data', status_code=422))
        response = self.client.post('/api/v1/subscriptions/hotel/upgrade/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Subscription.objects.get(user=self.vendor).payment_status, 'failed')

    def test_missing_phone(self, mock_get_client):
        response = self.client.post('/api/v1/subscriptions/hotel/upgrade/',
                                    self._payload(customer_info={'first_name': 'A'}), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        mock_get_client.assert_not_called()

    def test_invalid_payment_type(self, mock_get_client):
        response = self.client.post('/api/v1/subscriptions/hotel/upgrade/',
                                    self._payload(payment_type='cheque'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_card_requires_redirect(self, mock_get_client):
        response = self.client.post('/api/v1/subscriptions/hotel/upgrade/',
                                    self._payload(payment_type='card'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_plan_of_other_vendor_type(self, mock_get_client):
        plan = TestDataFactory.create_subscription_plan('bus')
        response = self.client.post('/api/v1/subscriptions/hotel/upgrade/',
                                    self._payload(plan_id=plan.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_staff_cannot_upgrade(self, mock_get_client):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'receptionist'))
        response = self.client.post('/api/v1/subscriptions/hotel/upgrade/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_upgrade_lifts_gate(self, mock_get_client):
        self.assertEqual(self.client.get('/api/v1/hotel/rooms/').status_code, status.HTTP_402_PAYMENT_REQUIRED)
        self._client_returning(mock_get_client, {'status': 'Successful', 'transactionId': 'TX4'})
        self.client.post('/api/v1/subscriptions/hotel/upgrade/', self._payload(), format='json')
        self.assertEqual(self.client.get('/api/v1/hotel/rooms/').status_code, status.HTTP_200_OK)


class PaymentStatusTests(TestCase):

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_vendor('bus')
        self.subscription = TestDataFactory.create_subscription(self.vendor, status='pending')
        self.subscription.lipila_transaction_id = 'TX-POLL'
        self.subscription.save()
        self.bill = BillingHistory.objects.create(
            subscription=self.subscription, user=self.vendor, invoice_number='INV-TEST-1',
            amount=Decimal('250.00'), billing_date=timezone.now(), due_date=timezone.now() + timedelta(days=7),
            plan_type='basic', billing_cycle='monthly', lipila_transaction_id='TX-POLL',
        )
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)

    @patch('shiteni.subscriptions.views.get_lipila_client')
    def test_poll_successful(self, mock_get_client):
        mock_get_client.return_value.check_transaction_status.return_value = {'status': 'Successful'}
        response = self.client.get('/api/v1/subscriptions/bus/payment-status/?transaction_id=TX-POLL')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.subscription.refresh_from_db()
        self.bill.refresh_from_db()
        self.assertEqual(self.subscription.status, 'active')
        self.assertEqual(self.bill.status, 'paid')

    @patch('shiteni.subscriptions.views.get_lipila_client')
    def test_poll_failed(self, mock_get_client):
        mock_get_client.return_value.check_transaction_status.return_value = {'status': 'Failed'}
        self.client.get('/api/v1/subscriptions/bus/payment-status/')
        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.status, 'inactive')
        self.assertEqual(self.subscription.payment_status, 'failed')

    @patch('shiteni.subscriptions.views.get_lipila_client')
    def test_poll_gateway_down_returns_stored_state(self, mock_get_client):
        mock_get_client.return_value.check_transaction_status.side_effect = LipilaError('timeout')
        response = self.client.get('/api/v1/subscriptions/bus/payment-status/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'pending')


class WebhookTests(TestCase):

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_vendor('pharmacy')
        self.subscription = TestDataFactory.create_subscription(self.vendor, status='active')
        self.bill = BillingHistory.objects.create(
            subscription=self.subscription, user=self.vendor, invoice_number='INV-HOOK-1',
            amount=Decimal('250.00'), billing_date=timezone.now(), due_date=timezone.now(),
            plan_type='basic', billing_cycle='monthly', lipila_transaction_id='TX-HOOK',
        )
        self.client = AuthenticatedAPIClient()

    def test_get_is_alive(self):
        response = self.client.get('/api/v1/webhooks/lipila/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Lipila webhook endpoint is active')

    def test_missing_fields(self):
        response = self.client.post('/api/v1/webhooks/lipila/', {'status': 'Successful'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_transaction(self):
        response = self.client.post('/api/v1/webhooks/lipila/',
                                    {'transactionId': 'nope', 'status': 'Successful'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_successful_marks_paid(self):
        response = self.client.post('/api/v1/webhooks/lipila/',
                                    {'transactionId': 'TX-HOOK', 'status': 'Successful'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.bill.refresh_from_db()
        self.subscription.refresh_from_db()
        self.assertEqual(self.bill.status, 'paid')
        self.assertIsNotNone(self.bill.payment_date)
        self.assertEqual(self.subscription.last_payment_date, self.bill.payment_date)

    def test_failed_reverts_active_subscription(self):
        self.client.post('/api/v1/webhooks/lipila/',
                         {'transactionId': 'TX-HOOK', 'status': 'Failed'}, format='json')
        self.subscription.refresh_from_db()
        self.assertEqual(self.subscription.status, 'pending')
        self.assertEqual(self.subscription.payment_status, 'failed')

    def test_cancelled(self):
        self.client.post('/api/v1/webhooks/lipila/',
                         {'transactionId': 'TX-HOOK', 'status': 'Cancelled'}, format='json')
        self.bill.refresh_from_db()
        self.assertEqual(self.bill.status, 'cancelled')


class LipilaClientTests(TestCase):
    """Lipila client without network access"""

    def test_normalize_phone(self):
        self.assertEqual(normalize_phone('0971234567'), '260971234567')
        self.assertEqual(normalize_phone('+260 97 123 4567'), '260971234567')
        self.assertEqual(normalize_phone('971234567'), '260971234567')
        with self.assertRaises(LipilaError):
            normalize_phone('12345')

    def test_validate_amount(self):
        self.assertEqual(validate_amount('10.50'), Decimal('10.50'))
        with self.assertRaises(LipilaError):
            validate_amount(0)
        with self.assertRaises(LipilaError):
            validate_amount('abc')

    def test_mock_mode(self):
        client = LipilaClient(secret_key='', mock_mode=True)
        result = client.process_mobile_money_payment('0971234567', 100)
        self.assertEqual(result['status'], 'Successful')
        self.assertTrue(result['transactionId'].startswith('MOCK-'))
        self.assertEqual(result['paymentType'], 'mock')
        self.assertTrue(client.verify_payment(result['transactionId']))

    def test_subscription_external_id(self):
        client = LipilaClient(secret_key='', mock_mode=True)
        result = client.process_subscription_payment(42, 250, 'mobile_money', '0971234567')
        self.assertTrue(result['externalId'].startswith('SUB-42-'))

    def test_card_requires_redirect(self):
        client = LipilaClient(secret_key='key', mock_mode=True)
        with self.assertRaises(LipilaError):
            client.process_card_payment('0971234567', 100, redirect_url='')

    def test_request_sends_bearer_and_payload(self):
        session = MagicMock()
        session.request.return_value = MagicMock(status_code=200, json=lambda: {'status': 'Pending'})
        client = LipilaClient(secret_key='secret', base_url='https://lipila.test', mock_mode=False, session=session)
        result = client.process_mobile_money_payment('0971234567', 75, external_id='EXT-1')
        self.assertEqual(result['status'], 'Pending')
        method, url = session.request.call_args[0]
        kwargs = session.request.call_args[1]
        self.assertEqual((method, url), ('POST', 'https://lipila.test/transactions/mobile-money'))
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer secret')
        self.assertEqual(kwargs['json']['accountNumber'], '260971234567')
        self.assertEqual(kwargs['timeout'], 45)

    def test_unauthorized_raises(self):
        session = MagicMock()
        session.request.return_value = MagicMock(status_code=401, json=lambda: {})
        client = LipilaClient(secret_key='bad', mock_mode=False, session=session)
        with self.assertRaises(LipilaError) as ctx:
            client.check_transaction_status('TX')
        self.assertTrue(ctx.exception.is_auth_error)

    @patch('shiteni.subscriptions.lipila.time.sleep')
    def test_retries_on_timeout(self, mock_sleep):
        session = MagicMock()
        session.request.side_effect = [
            requests.Timeout(),
            MagicMock(status_code=200, json=lambda: {'status': 'Successful'}),
        ]
        client = LipilaClient(secret_key='secret', mock_mode=False, session=session)
        result = client.process_mobile_money_payment('0971234567', 10)
        self.assertEqual(result['status'], 'Successful')
        self.assertEqual(session.request.call_count, 2)
        mock_sleep.assert_called_once_with(2)

    @patch('shiteni.subscriptions.lipila.time.sleep')
    def test_gives_up_after_retries(self, mock_sleep):
        session = MagicMock()
        session.request.return_value = MagicMock(status_code=503, json=lambda: {})
        client = LipilaClient(secret_key='secret', mock_mode=False, session=session)
        with self.assertRaises(LipilaError):
            client.process_mobile_money_payment('0971234567', 10)
        self.assertEqual(session.request.call_count, 3)


class DateHelperTests(TestCase):

    def test_add_months_clamps_day(self):
        start = timezone.now().replace(year=2025, month=1, day=31)
        self.assertEqual(add_months(start, 1).day, 28)
        self.assertEqual(add_months(start, 12).year, 2026)

    def test_calculate_end_date(self):
        start = timezone.now().replace(year=2025, month=3, day=15)
        self.assertEqual(calculate_end_date(start, 'monthly').month, 4)
        self.assertEqual(calculate_end_date(start, 'quarterly').month, 6)
        self.assertEqual(calculate_end_date(start, 'yearly').year, 2026)
