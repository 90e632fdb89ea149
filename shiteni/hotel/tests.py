"""
Test suite for the hotel module
Tests: rooms, bookings and room status, in-house guests, payments, dashboard, public booking
"""
from datetime import timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from shiteni.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Room, Booking


class HotelAccessTests(TestCase):
    """Tenancy, approval and subscription gating on hotel endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_vendor_without_subscription_gets_402(self):
        vendor = TestDataFactory.create_vendor('hotel')
        self.client.authenticate_user(vendor)
        response = self.client.get('/api/v1/hotel/rooms/')
        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)
        self.assertTrue(response.data['subscription_required'])

    def test_expired_subscription_gets_402(self):
        vendor = TestDataFactory.create_vendor('hotel')
        TestDataFactory.create_subscription(vendor, days=-1)
        self.client.authenticate_user(vendor)
        response = self.client.get('/api/v1/hotel/rooms/')
        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)

    def test_pending_vendor_is_refused(self):
        vendor = TestDataFactory.create_vendor('hotel', status='pending')
        TestDataFactory.create_subscription(vendor)
        self.client.authenticate_user(vendor)
        response = self.client.get('/api/v1/hotel/rooms/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('approval', response.data['error'])

    def test_other_service_vendor_is_refused(self):
        vendor = TestDataFactory.create_subscribed_vendor('store')
        self.client.authenticate_user(vendor)
        response = self.client.get('/api/v1/hotel/rooms/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'Access denied. Hotel staff only.')

    def test_customer_is_refused(self):
        self.client.authenticate_user(TestDataFactory.create_customer())
        response = self.client.get('/api/v1/hotel/bookings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated(self):
        response = self.client.get('/api/v1/hotel/rooms/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_super_admin_acts_for_vendor(self):
        vendor = TestDataFactory.create_subscribed_vendor('hotel')
        TestDataFactory.create_room(vendor, number='101')
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get(f'/api/v1/hotel/rooms/?vendor={vendor.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_super_admin_needs_vendor_param(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/v1/hotel/rooms/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class RoomTests(TestCase):
    """Test room endpoints"""

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_subscribed_vendor('hotel')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)

    def test_create_room(self):
        data = {'number': '201', 'room_type': 'Deluxe', 'floor': 2, 'price': '850.00', 'max_guests': 3}
        response = self.client.post('/api/v1/hotel/rooms/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'available')
        self.assertTrue(Room.objects.filter(vendor=self.vendor, number='201').exists())

    def test_duplicate_room_number(self):
        TestDataFactory.create_room(self.vendor, number='201')
        data = {'number': '201', 'price': '850.00'}
        response = self.client.post('/api/v1/hotel/rooms/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_same_number_for_another_hotel(self):
        other = TestDataFactory.create_vendor('hotel')
        TestDataFactory.create_room(other, number='201')
        response = self.client.post('/api/v1/hotel/rooms/', {'number': '201', 'price': '300'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_list_rooms_with_filters(self):
        TestDataFactory.create_room(self.vendor, number='101')
        TestDataFactory.create_room(self.vendor, number='102', status='maintenance', room_type='Suite')
        response = self.client.get('/api/v1/hotel/rooms/?status=maintenance')
        self.assertEqual([r['number'] for r in response.data], ['102'])
        response = self.client.get('/api/v1/hotel/rooms/?type=suite')
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/hotel/rooms/?search=10')
        self.assertEqual(len(response.data), 2)

    def test_rooms_are_isolated_per_vendor(self):
        other = TestDataFactory.create_vendor('hotel')
        room = TestDataFactory.create_room(other)
        response = self.client.get(f'/api/v1/hotel/rooms/{room.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_housekeeping_updates_room_but_cannot_create(self):
        room = TestDataFactory.create_room(self.vendor)
        staff = TestDataFactory.create_staff(self.vendor, 'housekeeping')
        self.client.authenticate_user(staff)
        response = self.client.patch(f'/api/v1/hotel/rooms/{room.id}/', {'status': 'maintenance'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.post('/api/v1/hotel/rooms/', {'number': '9', 'price': '100'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_room_with_active_booking(self):
        booking = TestDataFactory.create_booking(self.vendor, status='confirmed')
        response = self.client.delete(f'/api/v1/hotel/rooms/{booking.room_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_room(self):
        room = TestDataFactory.create_room(self.vendor)
        response = self.client.delete(f'/api/v1/hotel/rooms/{room.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Room.objects.filter(pk=room.id).exists())

    def test_delete_room_keeps_past_bookings(self):
        booking = TestDataFactory.create_booking(self.vendor, status='checked-out')
        response = self.client.delete(f'/api/v1/hotel/rooms/{booking.room_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        booking.refresh_from_db()
        self.assertIsNone(booking.room)
        self.assertEqual(booking.status, 'checked-out')
        self.assertTrue(booking.room_number)


class BookingTests(TestCase):
    """Test booking endpoints and room status changes"""

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_subscribed_vendor('hotel')
        self.room = TestDataFactory.create_room(self.vendor, number='301', price=Decimal('400.00'))
        self.receptionist = TestDataFactory.create_staff(self.vendor, 'receptionist')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.receptionist)

    def _booking_data(self, **overrides):
        today = timezone.localdate()
        data = {
            'room': self.room.id,
            'guest_name': 'Mwila Banda',
            'guest_email': 'mwila@test.com',
            'check_in': str(today),
            'check_out': str(today + timedelta(days=3)),
            'guests': 2,
        }
        data.update(overrides)
        return data

    def test_create_walk_in_booking(self):
        response = self.client.post('/api/v1/hotel/bookings/', self._booking_data(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['booking_source'], 'hotel')
        self.assertTrue(response.data['booking_number'].startswith('BK'))
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('1200.00'))
        self.assertEqual(response.data['room_number'], '301')

    def test_booking_unavailable_room(self):
        self.room.status = 'occupied'
        self.room.save()
        response = self.client.post('/api/v1/hotel/bookings/', self._booking_data(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_check_out_before_check_in(self):
        today = timezone.localdate()
        data = self._booking_data(check_out=str(today - timedelta(days=1)))
        response = self.client.post('/api/v1/hotel/bookings/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_room_of_other_vendor(self):
        other_room = TestDataFactory.create_room(TestDataFactory.create_vendor('hotel'))
        response = self.client.post('/api/v1/hotel/bookings/', self._booking_data(room=other_room.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_check_in_and_check_out_update_room(self):
        booking = TestDataFactory.create_booking(self.vendor, room=self.room)
        response = self.client.patch(f'/api/v1/hotel/bookings/{booking.id}/', {'status': 'checked-in'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.room.refresh_from_db()
        self.assertEqual(self.room.status, 'occupied')

        response = self.client.patch(f'/api/v1/hotel/bookings/{booking.id}/', {'status': 'checked-out'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.room.refresh_from_db()
        self.assertEqual(self.room.status, 'available')

    def test_cancel_frees_room(self):
        self.room.status = 'occupied'
        self.room.save()
        booking = TestDataFactory.create_booking(self.vendor, room=self.room, status='checked-in')
        self.client.patch(f'/api/v1/hotel/bookings/{booking.id}/', {'status': 'cancelled'}, format='json')
        self.room.refresh_from_db()
        self.assertEqual(self.room.status, 'available')

    def test_list_bookings_filters(self):
        TestDataFactory.create_booking(self.vendor, room=self.room, status='confirmed')
        TestDataFactory.create_booking(self.vendor, room=self.room, status='cancelled')
        response = self.client.get('/api/v1/hotel/bookings/?status=cancelled')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)
        self.assertEqual(response.data['bookings'][0]['status'], 'cancelled')

    def test_in_house(self):
        TestDataFactory.create_booking(self.vendor, room=self.room, status='checked-in')
        TestDataFactory.create_booking(self.vendor, room=self.room, status='confirmed')
        response = self.client.get('/api/v1/hotel/in-house/')
        self.assertEqual(response.data['count'], 1)

    def test_housekeeping_cannot_see_bookings(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'housekeeping'))
        response = self.client.get('/api/v1/hotel/bookings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_inactive_staff_is_refused(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'receptionist', status='inactive'))
        response = self.client.get('/api/v1/hotel/bookings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_payments_and_update(self):
        booking = TestDataFactory.create_booking(self.vendor, room=self.room, nights=2)
        response = self.client.get('/api/v1/hotel/payments/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['pending'], 800.0)

        response = self.client.patch(f'/api/v1/hotel/payments/{booking.id}/',
                                     {'payment_status': 'paid', 'payment_method': 'cash'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        booking.refresh_from_db()
        self.assertEqual(booking.payment_status, 'paid')


class HotelDashboardTests(TestCase):

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_subscribed_vendor('hotel')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)

    def test_dashboard_stats(self):
        room = TestDataFactory.create_room(self.vendor, status='occupied')
        TestDataFactory.create_room(self.vendor)
        TestDataFactory.create_booking(self.vendor, room=room, status='checked-in', nights=2)
        response = self.client.get('/api/v1/hotel/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        stats = response.data['stats']
        self.assertEqual(stats['total_rooms'], 2)
        self.assertEqual(stats['occupied_rooms'], 1)
        self.assertEqual(stats['checked_in_bookings'], 1)
        self.assertEqual(stats['total_revenue'], 1000.0)
        self.assertEqual(len(response.data['charts']['revenue_by_month']), 6)
        self.assertEqual(len(response.data['charts']['bookings_by_day']), 7)

    def test_dashboard_cache_invalidated_by_new_booking(self):
        self.client.get('/api/v1/hotel/dashboard/')
        TestDataFactory.create_booking(self.vendor)
        response = self.client.get('/api/v1/hotel/dashboard/')
        self.assertEqual(response.data['stats']['total_bookings'], 1)

    def test_average_stay(self):
        room = TestDataFactory.create_room(self.vendor)
        TestDataFactory.create_booking(self.vendor, room=room, status='checked-out', nights=2)
        TestDataFactory.create_booking(self.vendor, room=room, status='checked-out', nights=4)
        response = self.client.get('/api/v1/hotel/dashboard/')
        self.assertEqual(response.data['stats']['average_stay_duration'], 3)


class PublicHotelTests(TestCase):
    """Test public listing and online booking"""

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_vendor('hotel', business_name='Lusaka Lodge')
        self.room = TestDataFactory.create_room(self.vendor, price=Decimal('300.00'), max_guests=2)
        self.customer = TestDataFactory.create_customer()
        self.client = AuthenticatedAPIClient()

    def test_hotel_list_is_public(self):
        TestDataFactory.create_vendor('hotel', status='pending')
        response = self.client.get('/api/v1/hotels/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['hotels']), 1)
        hotel = response.data['hotels'][0]
        self.assertEqual(hotel['name'], 'Lusaka Lodge')
        self.assertEqual(hotel['available_rooms'], 1)
        self.assertEqual(hotel['starting_price'], 300.0)

    def test_hotel_rooms(self):
        TestDataFactory.create_room(self.vendor, status='occupied')
        response = self.client.get(f'/api/v1/hotels/{self.vendor.id}/rooms/')
        self.assertEqual(len(response.data['rooms']), 1)

    def test_book_room(self):
        self.client.authenticate_user(self.customer)
        today = timezone.localdate()
        data = {
            'room_id': self.room.id,
            'check_in': str(today + timedelta(days=1)),
            'check_out': str(today + timedelta(days=4)),
            'guests': 2,
        }
        response = self.client.post('/api/v1/hotels/book/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        booking = Booking.objects.get(pk=response.data['booking']['id'])
        self.assertEqual(booking.total_amount, Decimal('900.00'))
        self.assertEqual(booking.payment_status, 'pending')
        self.assertEqual(booking.booking_source, 'online')
        self.assertEqual(booking.customer, self.customer)

    def test_book_room_paid_online(self):
        self.client.authenticate_user(self.customer)
        today = timezone.localdate()
        data = {
            'room_id': self.room.id,
            'check_in': str(today),
            'check_out': str(today + timedelta(days=1)),
            'payment_method': 'mobile_money',
        }
        response = self.client.post('/api/v1/hotels/book/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['booking']['payment_status'], 'paid')

    def test_book_room_too_many_guests(self):
        self.client.authenticate_user(self.customer)
        today = timezone.localdate()
        data = {
            'room_id': self.room.id,
            'check_in': str(today),
            'check_out': str(today + timedelta(days=1)),
            'guests': 5,
        }
        response = self.client.post('/api/v1/hotels/book/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_book_room_of_unapproved_hotel(self):
        for hotel_status in ('pending', 'suspended'):
            hotel = TestDataFactory.create_vendor('hotel', status=hotel_status)
            room = TestDataFactory.create_room(hotel)
            self.client.authenticate_user(self.customer)
            today = timezone.localdate()
            data = {
                'room_id': room.id,
                'check_in': str(today),
                'check_out': str(today + timedelta(days=1)),
                'guests': 1,
            }
            response = self.client.post('/api/v1/hotels/book/', data, format='json')
            self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, hotel_status)
        self.assertFalse(Booking.objects.exists())

    def test_rooms_of_unapproved_hotel_are_hidden(self):
        hotel = TestDataFactory.create_vendor('hotel', status='suspended')
        TestDataFactory.create_room(hotel)
        response = self.client.get(f'/api/v1/hotels/{hotel.id}/rooms/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_book_room_requires_login(self):
        response = self.client.post('/api/v1/hotels/book/', {'room_id': self.room.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
