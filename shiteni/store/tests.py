"""
Test suite for the store module
Tests: products, orders and stock, customer loyalty, capture, payments, inventory, analytics
"""
from decimal import Decimal

from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from shiteni.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import StoreProduct, StoreOrder, StoreCustomer
from .services import generate_sku


class ProductTests(TestCase):
    """Test product endpoints"""

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_subscribed_vendor('store')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)

    def test_create_product_generates_sku(self):
        data = {'name': 'Solar Lamp', 'category': 'Electronics', 'price': '250.00', 'stock': 10}
        response = self.client.post('/api/v1/store/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sku'], f'SOL-{self.vendor.id}-0001')

    def test_duplicate_sku_rejected(self):
        TestDataFactory.create_product(self.vendor, sku='DUP-1')
        data = {'name': 'Other', 'category': 'Misc', 'price': '10', 'sku': 'DUP-1'}
        response = self.client.post('/api/v1/store/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('sku', response.data)

    def test_invalid_price(self):
        data = {'name': 'Free thing', 'category': 'Misc', 'price': '0'}
        response = self.client.post('/api/v1/store/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_zero_stock_marks_out_of_stock(self):
        product = TestDataFactory.create_product(self.vendor, stock=5)
        response = self.client.patch(f'/api/v1/store/products/{product.id}/', {'stock': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'out_of_stock')
        response = self.client.patch(f'/api/v1/store/products/{product.id}/', {'stock': 3}, format='json')
        self.assertEqual(response.data['status'], 'active')

    def test_filters(self):
        TestDataFactory.create_product(self.vendor, name='Phone', category='Electronics', stock=2, min_stock=5)
        TestDataFactory.create_product(self.vendor, name='Shirt', category='Clothing', stock=50)
        response = self.client.get('/api/v1/store/products/?category=clothing')
        self.assertEqual([p['name'] for p in response.data['products']], ['Shirt'])
        response = self.client.get('/api/v1/store/products/?low_stock=true')
        self.assertEqual([p['name'] for p in response.data['products']], ['Phone'])
        response = self.client.get('/api/v1/store/products/?search=pho')
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_sales_associate_reads_but_cannot_create(self):
        staff = TestDataFactory.create_staff(self.vendor, 'sales_associate')
        self.client.authenticate_user(staff)
        self.assertEqual(self.client.get('/api/v1/store/products/').status_code, status.HTTP_200_OK)
        data = {'name': 'X', 'category': 'Misc', 'price': '10'}
        response = self.client.post('/api/v1/store/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_inventory_manager_creates_product(self):
        staff = TestDataFactory.create_staff(self.vendor, 'inventory_manager')
        self.client.authenticate_user(staff)
        data = {'name': 'Kettle', 'category': 'Home', 'price': '180'}
        response = self.client.post('/api/v1/store/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(StoreProduct.objects.get(pk=response.data['id']).vendor, self.vendor)

    def test_cashier_cannot_open_products(self):
        staff = TestDataFactory.create_staff(self.vendor, 'cashier')
        self.client.authenticate_user(staff)
        response = self.client.get('/api/v1/store/products/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_products_isolated_per_vendor(self):
        other = TestDataFactory.create_vendor('store')
        product = TestDataFactory.create_product(other)
        response = self.client.delete(f'/api/v1/store/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_generate_sku_skips_taken_values(self):
        TestDataFactory.create_product(self.vendor, sku=f'TEA-{self.vendor.id}-0002')
        self.assertEqual(generate_sku(self.vendor, 'tea'), f'TEA-{self.vendor.id}-0003')


class OrderTests(TestCase):
    """Test order placement, stock and customer records"""

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_subscribed_vendor('store')
        self.product = TestDataFactory.create_product(self.vendor, price=Decimal('100.00'), stock=10)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)

    def _order(self, quantity=2, **extra):
        data = {
            'items': [{'product': self.product.id, 'quantity': quantity}],
            'customer_name': 'Mwila Banda',
            'customer_email': 'Mwila@Example.com',
            'tax': '16.00',
            'shipping': '20.00',
            'discount': '6.00',
        }
        data.update(extra)
        return self.client.post('/api/v1/store/orders/', data, format='json')

    def test_create_order_totals_and_stock(self):
        response = self._order()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['subtotal']), Decimal('200.00'))
        self.assertEqual(Decimal(response.data['total']), Decimal('230.00'))
        self.assertTrue(response.data['order_number'].startswith('ORD-'))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 8)

    def test_order_updates_customer_loyalty(self):
        self._order()
        self._order(quantity=1)
        customer = StoreCustomer.objects.get(vendor=self.vendor, email='mwila@example.com')
        self.assertEqual(customer.total_orders, 2)
        self.assertEqual(customer.total_spent, Decimal('360.00'))
        # floor(230 * 0.1) + floor(130 * 0.1)
        self.assertEqual(customer.loyalty_points, 36)

    def test_insufficient_stock(self):
        response = self._order(quantity=11)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', response.data['error'])
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertFalse(StoreOrder.objects.exists())

    def test_selling_last_units_marks_out_of_stock(self):
        self._order(quantity=10, discount='0')
        self.product.refresh_from_db()
        self.assertEqual(self.product.status, 'out_of_stock')

    def test_discount_never_makes_total_negative(self):
        response = self._order(quantity=1, tax='0', shipping='0', discount='500')
        self.assertEqual(Decimal(response.data['total']), Decimal('0.00'))

    def test_cancel_restocks(self):
        order_id = self._order(quantity=3).data['id']
        response = self.client.patch(f'/api/v1/store/orders/{order_id}/', {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_list_filters_and_pagination(self):
        TestDataFactory.create_store_order(self.vendor, self.product, status='delivered')
        TestDataFactory.create_store_order(self.vendor, self.product, status='pending')
        response = self.client.get('/api/v1/store/orders/?status=delivered')
        self.assertEqual(response.data['pagination']['total'], 1)
        response = self.client.get('/api/v1/store/orders/?limit=1')
        self.assertEqual(len(response.data['orders']), 1)
        self.assertEqual(response.data['pagination']['pages'], 2)

    def test_cashier_can_take_orders(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'cashier'))
        self.assertEqual(self._order().status_code, status.HTTP_201_CREATED)

    def test_inventory_manager_cannot_take_orders(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'inventory_manager'))
        self.assertEqual(self._order().status_code, status.HTTP_403_FORBIDDEN)


class OrderCaptureTests(TestCase):
    """Customer-facing order capture"""

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_subscribed_vendor('store')
        self.product = TestDataFactory.create_product(self.vendor, stock=5)
        self.customer = TestDataFactory.create_customer(email='shopper@test.com')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.customer)

    def test_capture_creates_order_and_sends_email(self):
        data = {'vendor_id': self.vendor.id, 'items': [{'product': self.product.id, 'quantity': 2}]}
        response = self.client.post('/api/v1/store/orders/capture/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = StoreOrder.objects.get(pk=response.data['order']['id'])
        self.assertEqual(order.customer, self.customer)
        self.assertEqual(order.customer_email, 'shopper@test.com')
        self.assertEqual(order.payment_method, 'online')
        self.assertEqual(order.status, 'pending')
        self.assertTrue(response.data['email_sent'])
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(StoreCustomer.objects.get(vendor=self.vendor).user, self.customer)

    def test_capture_ignores_client_status(self):
        data = {'vendor_id': self.vendor.id, 'status': 'delivered', 'payment_status': 'paid',
                'items': [{'product': self.product.id, 'quantity': 1}]}
        response = self.client.post('/api/v1/store/orders/capture/', data, format='json')
        self.assertEqual(response.data['order']['status'], 'pending')
        self.assertEqual(response.data['order']['payment_status'], 'pending')

    def test_capture_unknown_store(self):
        hotel = TestDataFactory.create_vendor('hotel')
        data = {'vendor_id': hotel.id, 'items': [{'product': self.product.id, 'quantity': 1}]}
        response = self.client.post('/api/v1/store/orders/capture/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_capture_requires_items(self):
        response = self.client.post('/api/v1/store/orders/capture/', {'vendor_id': self.vendor.id, 'items': []},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_capture_requires_login(self):
        self.client.logout()
        response = self.client.post('/api/v1/store/orders/capture/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class CustomerTests(TestCase):

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_subscribed_vendor('store')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)

    def test_create_and_search_customers(self):
        response = self.client.post('/api/v1/store/customers/', {'name': 'Chanda', 'email': 'Chanda@test.com'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['email'], 'chanda@test.com')
        response = self.client.get('/api/v1/store/customers/?search=chan')
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_email_unique_per_vendor(self):
        StoreCustomer.objects.create(vendor=self.vendor, name='A', email='a@test.com')
        response = self.client.post('/api/v1/store/customers/', {'name': 'B', 'email': 'a@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        other = TestDataFactory.create_subscribed_vendor('store')
        self.client.authenticate_user(other)
        response = self.client.post('/api/v1/store/customers/', {'name': 'B', 'email': 'a@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)


class StoreReportTests(TestCase):
    """Payments, inventory, analytics and dashboard"""

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_subscribed_vendor('store')
        self.product = TestDataFactory.create_product(self.vendor, name='Radio', price=Decimal('50.00'))
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)

    def test_payment_totals(self):
        TestDataFactory.create_store_order(self.vendor, self.product, quantity=2, payment_status='paid')
        TestDataFactory.create_store_order(self.vendor, self.product, quantity=1)
        TestDataFactory.create_store_order(self.vendor, self.product, quantity=4, status='cancelled')
        response = self.client.get('/api/v1/store/payments/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['paid'], 100.0)
        self.assertEqual(response.data['summary']['pending'], 50.0)
        self.assertEqual(response.data['summary']['total'], 150.0)
        self.assertEqual(len(response.data['payments']), 2)

    def test_inventory_lists(self):
        TestDataFactory.create_product(self.vendor, name='Low', stock=2, min_stock=5)
        TestDataFactory.create_product(self.vendor, name='Gone', stock=0)
        response = self.client.get('/api/v1/store/inventory/')
        self.assertEqual([p['name'] for p in response.data['low_stock']], ['Low'])
        self.assertEqual([p['name'] for p in response.data['out_of_stock']], ['Gone'])
        self.assertEqual(response.data['summary']['total_products'], 3)

    def test_analytics_counts_earned_orders_only(self):
        TestDataFactory.create_store_order(self.vendor, self.product, quantity=2, status='delivered')
        TestDataFactory.create_store_order(self.vendor, self.product, quantity=1, status='confirmed')
        TestDataFactory.create_store_order(self.vendor, self.product, quantity=5, status='pending')
        response = self.client.get('/api/v1/store/analytics/?days=7')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        metrics = response.data['metrics']
        self.assertEqual(metrics['total_revenue'], 150.0)
        self.assertEqual(metrics['order_count'], 2)
        self.assertEqual(metrics['average_order_value'], 75.0)
        self.assertEqual(len(response.data['daily_revenue']), 7)
        self.assertEqual(response.data['top_products'][0]['quantity'], 3)

    def test_analytics_days_capped_at_a_year(self):
        response = self.client.get('/api/v1/store/analytics/?days=100000000')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['period_days'], 365)
        self.assertEqual(len(response.data['daily_revenue']), 365)

    def test_analytics_owner_only(self):
        for role in ('cashier', 'inventory_manager', 'sales_associate'):
            staff = TestDataFactory.create_staff(self.vendor, role)
            self.client.authenticate_user(staff)
            response = self.client.get('/api/v1/store/analytics/')
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, role)

    def test_cashier_sees_payments(self):
        cashier = TestDataFactory.create_staff(self.vendor, 'cashier')
        self.client.authenticate_user(cashier)
        response = self.client.get('/api/v1/store/payments/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_dashboard_is_cached_and_invalidated(self):
        response = self.client.get('/api/v1/store/dashboard/')
        self.assertEqual(response.data['stats']['total_orders'], 0)
        TestDataFactory.create_store_order(self.vendor, self.product)
        response = self.client.get('/api/v1/store/dashboard/')
        self.assertEqual(response.data['stats']['total_orders'], 1)
        self.assertEqual(response.data['stats']['total_revenue'], 50.0)


class PublicProductTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_only_subscribed_active_products(self):
        vendor = TestDataFactory.create_subscribed_vendor('store')
        TestDataFactory.create_product(vendor, name='Visible', price=Decimal('20'))
        TestDataFactory.create_product(vendor, name='Hidden', status='inactive')
        unsubscribed = TestDataFactory.create_vendor('store')
        TestDataFactory.create_product(unsubscribed, name='NoPlan')
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data['products']], ['Visible'])

    def test_sort_by_price(self):
        vendor = TestDataFactory.create_subscribed_vendor('store')
        TestDataFactory.create_product(vendor, name='Cheap', price=Decimal('5'))
        TestDataFactory.create_product(vendor, name='Dear', price=Decimal('500'))
        response = self.client.get('/api/v1/products/?sort=price-high')
        self.assertEqual(response.data['products'][0]['name'], 'Dear')
        response = self.client.get(f'/api/v1/products/?sort=price-low&vendor={vendor.id}')
        self.assertEqual(response.data['products'][0]['name'], 'Cheap')
