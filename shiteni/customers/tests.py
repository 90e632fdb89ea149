"""
Test suite for the customer self-service endpoints
Tests: dashboard totals, bookings, orders, payments, settings
"""
from django.test import TestCase
from rest_framework import status

from shiteni.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shiteni.messaging.models import Message


class CustomerTestCase(TestCase):

    def setUp(self):
        self.customer = TestDataFactory.create_customer(email='me@test.com', name='Natasha Zulu')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.customer)

        self.hotel = TestDataFactory.create_vendor('hotel')
        self.store = TestDataFactory.create_vendor('store')
        self.pharmacy = TestDataFactory.create_vendor('pharmacy')
        self.bus = TestDataFactory.create_vendor('bus')
        TestDataFactory.create_booking(self.hotel, customer=self.customer)
        TestDataFactory.create_store_order(self.store, customer_email='me@test.com', payment_status='paid')
        TestDataFactory.create_pharmacy_order(self.pharmacy, customer_email='me@test.com')
        TestDataFactory.create_bus_booking(TestDataFactory.create_trip(self.bus), passenger_email='me@test.com')
        # Someone else's order
        TestDataFactory.create_store_order(self.store, customer_email='else@test.com')


class CustomerDashboardTests(CustomerTestCase):

    def test_dashboard_totals(self):
        Message.objects.create(sender=self.store, sender_email=self.store.email, recipient=self.customer,
                               recipient_email=self.customer.email, conversation_id=str(self.store.id),
                               content='Your order is ready')
        response = self.client.get('/api/v1/customer/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        overview = response.data['overview']
        self.assertEqual(overview['hotel_bookings'], 1)
        self.assertEqual(overview['bus_bookings'], 1)
        self.assertEqual(overview['store_orders'], 1)
        self.assertEqual(overview['pharmacy_orders'], 1)
        self.assertEqual(overview['total_spent'], 1355.0)
        self.assertEqual(len(response.data['recent_activity']), 4)
        self.assertEqual(response.data['unread_messages'], 1)

    def test_vendors_are_refused(self):
        self.client.authenticate_user(self.store)
        response = self.client.get('/api/v1/customer/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CustomerListTests(CustomerTestCase):

    def test_bookings_by_type(self):
        response = self.client.get('/api/v1/customer/bookings/')
        self.assertEqual({b['type'] for b in response.data['bookings']}, {'hotel', 'bus'})
        response = self.client.get('/api/v1/customer/bookings/?type=bus')
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['bookings'][0]['title'], 'Lusaka to Ndola')

    def test_orders_match_email(self):
        response = self.client.get('/api/v1/customer/orders/')
        self.assertEqual(response.data['total'], 2)
        self.assertEqual({o['type'] for o in response.data['orders']}, {'store', 'pharmacy'})

    def test_payments_summary(self):
        response = self.client.get('/api/v1/customer/payments/')
        self.assertEqual(response.data['total'], 4)
        self.assertEqual(response.data['summary']['total_paid'], 100.0)
        self.assertEqual(response.data['summary']['total_pending'], 1255.0)
        store_row = next(p for p in response.data['payments'] if p['service_type'] == 'store')
        self.assertEqual(store_row['status'], 'completed')
        self.assertEqual(store_row['payment_type'], 'purchase')


class CustomerSettingsTests(CustomerTestCase):

    def test_defaults(self):
        response = self.client.get('/api/v1/customer/settings/')
        self.assertTrue(response.data['profile']['preferences']['email_notifications'])
        self.assertEqual(response.data['profile']['preferences']['currency'], 'ZMW')

    def test_update_preferences(self):
        response = self.client.put('/api/v1/customer/settings/', {
            'phone': '0977123456',
            'preferences': {'marketing_emails': True, 'language': 'bem'},
            'security': {'two_factor_enabled': True},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.phone, '0977123456')
        self.assertTrue(self.customer.settings['preferences']['marketing_emails'])
        self.assertTrue(response.data['profile']['security']['two_factor_enabled'])
        self.assertTrue(response.data['profile']['preferences']['sms_notifications'])

    def test_invalid_currency(self):
        response = self.client.put('/api/v1/customer/settings/', {'preferences': {'currency': 'EUR'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
