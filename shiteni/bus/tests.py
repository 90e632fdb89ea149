"""
Test suite for the bus module
Tests: fleet roles, routes, trips, schedule generation, public timetable, bookings, tickets, reports
"""
from datetime import date, timedelta
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from shiteni.core.models import AuditLog
from shiteni.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import BusRoute, BusSchedule, BusBooking
from .services import generate_schedules


class BusTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.vendor = TestDataFactory.create_subscribed_vendor('bus')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.vendor)


class RouteModelTests(BusTestCase):

    def test_fares_and_estimates(self):
        route = TestDataFactory.create_route(self.vendor)
        self.assertEqual(route.total_fare(), Decimal('180'))
        self.assertEqual(route.segment_fare(2, 4), Decimal('100'))
        self.assertEqual(route.segment_fare(1, 2), Decimal('80'))
        self.assertEqual(route.estimated_distance(), 150)
        self.assertEqual(route.estimated_duration(), 3)

    def test_route_without_segments_uses_defaults(self):
        route = TestDataFactory.create_route(self.vendor, segment_fares=())
        self.assertEqual(route.total_fare(), Decimal('100.00'))
        self.assertEqual(route.estimated_distance(), 200)
        self.assertEqual(route.estimated_duration(), 4)

    def test_trip_weekdays_count_from_sunday(self):
        trip = TestDataFactory.create_trip(self.vendor, days_of_week=[0])
        self.assertTrue(trip.runs_on(date(2030, 1, 6)))  # Sunday
        self.assertFalse(trip.runs_on(date(2030, 1, 7)))


class FleetTests(BusTestCase):

    def test_create_bus_uppercases_plate(self):
        response = self.client.post('/api/v1/bus/fleet/', {
            'bus_name': 'Mazhandu 1', 'number_plate': 'bae 1234', 'number_of_seats': 60,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['number_plate'], 'BAE 1234')

    def test_duplicate_plate_rejected(self):
        TestDataFactory.create_bus(self.vendor, number_plate='BAE 1234')
        response = self.client.post('/api/v1/bus/fleet/', {
            'bus_name': 'Copy', 'number_plate': 'BAE 1234',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_driver_reads_but_cannot_write(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'driver'))
        self.assertEqual(self.client.get('/api/v1/bus/fleet/').status_code, status.HTTP_200_OK)
        response = self.client.post('/api/v1/bus/fleet/', {'bus_name': 'X', 'number_plate': 'X1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_maintenance_updates_fleet(self):
        bus = TestDataFactory.create_bus(self.vendor)
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'maintenance'))
        response = self.client.patch(f'/api/v1/bus/fleet/{bus.id}/', {'status': 'maintenance'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'maintenance')

    def test_conductor_has_no_fleet_access(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'conductor'))
        response = self.client.get('/api/v1/bus/fleet/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unsubscribed_company_gets_402(self):
        vendor = TestDataFactory.create_vendor('bus')
        self.client.authenticate_user(vendor)
        response = self.client.get('/api/v1/bus/fleet/')
        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)
        self.assertTrue(response.data['subscription_required'])

    def test_other_company_bus_not_found(self):
        other = TestDataFactory.create_subscribed_vendor('bus')
        bus = TestDataFactory.create_bus(other)
        response = self.client.get(f'/api/v1/bus/fleet/{bus.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class RouteTripTests(BusTestCase):

    def test_route_needs_two_stops(self):
        response = self.client.post('/api/v1/bus/routes/', {
            'route_name': 'Nowhere', 'stops': [{'stop_name': 'Lusaka', 'order': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('A route needs at least 2 stops', response.data['stops'])

    def test_route_rejects_non_numeric_stop_order(self):
        response = self.client.post('/api/v1/bus/routes/', {
            'route_name': 'Lusaka - Ndola',
            'stops': [{'stop_name': 'Lusaka', 'order': 'first'}, {'stop_name': 'Ndola', 'order': 'second'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Stop order must be a number', response.data['stops'])

    def test_route_stops_are_sorted(self):
        response = self.client.post('/api/v1/bus/routes/', {
            'route_name': 'Lusaka - Livingstone',
            'stops': [{'stop_name': 'Livingstone', 'order': 2}, {'stop_name': 'Lusaka', 'order': 1}],
            'fare_segments': [{'from': 'Lusaka', 'to': 'Livingstone', 'fare': 250, 'amount': 250}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['origin'], 'Lusaka')
        self.assertEqual(response.data['total_fare'], 250.0)

    def test_trip_rejects_other_company_bus(self):
        other_bus = TestDataFactory.create_bus(TestDataFactory.create_subscribed_vendor('bus'))
        route = TestDataFactory.create_route(self.vendor)
        response = self.client.post('/api/v1/bus/trips/', {
            'trip_name': 'Morning', 'bus': other_bus.id, 'route': route.id,
            'departure_times_to': ['06:00'], 'days_of_week': [1, 3, 5],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('bus', response.data)

    def test_trip_validates_times_and_days(self):
        bus = TestDataFactory.create_bus(self.vendor)
        route = TestDataFactory.create_route(self.vendor)
        response = self.client.post('/api/v1/bus/trips/', {
            'trip_name': 'Bad', 'bus': bus.id, 'route': route.id,
            'departure_times_to': ['25:00'], 'days_of_week': [7],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('departure_times_to', response.data)
        self.assertIn('days_of_week', response.data)


class ScheduleGenerationTests(BusTestCase):

    def setUp(self):
        super().setUp()
        bus = TestDataFactory.create_bus(self.vendor, seats=30)
        # Mondays only
        self.trip = TestDataFactory.create_trip(self.vendor, bus=bus, days_of_week=[1])

    def _generate(self, start='2030-01-01', end='2030-01-14'):
        return self.client.post('/api/v1/bus/generate-schedules/', {
            'trip_id': self.trip.id, 'start_date': start, 'end_date': end,
        }, format='json')

    def test_generates_matching_weekdays(self):
        response = self._generate()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['count'], 2)
        dates = [s['date'] for s in response.data['schedules']]
        self.assertEqual(dates, ['2030-01-07', '2030-01-14'])
        schedule = BusSchedule.objects.get(trip=self.trip, date=date(2030, 1, 7))
        self.assertEqual(schedule.total_seats, 30)
        self.assertEqual(schedule.available_seats, 30)
        self.assertEqual(schedule.fare, Decimal('180.00'))
        self.assertEqual(schedule.departure_time, '06:00')
        self.assertEqual(schedule.arrival_time, '10:00')
        self.assertTrue(AuditLog.objects.filter(action='schedule_generate', object_id=str(self.trip.id)).exists())

    def test_existing_dates_are_skipped(self):
        self._generate()
        response = self._generate(end='2030-01-21')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(BusSchedule.objects.filter(trip=self.trip).count(), 3)

    def test_start_after_end_rejected(self):
        response = self._generate(start='2030-02-01', end='2030-01-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_company_trip_not_found(self):
        other = TestDataFactory.create_subscribed_vendor('bus')
        self.client.authenticate_user(other)
        response = self._generate()
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_dispatcher_generates_driver_cannot(self):
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'driver'))
        self.assertEqual(self._generate().status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'dispatcher'))
        self.assertEqual(self._generate().status_code, status.HTTP_201_CREATED)


class PublicScheduleTests(BusTestCase):

    def setUp(self):
        super().setUp()
        self.trip = TestDataFactory.create_trip(self.vendor)
        self.client.logout()

    def test_lists_next_thirty_days(self):
        response = self.client.get('/api/v1/bus/schedules/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['schedules']), 31)
        first = response.data['schedules'][0]
        today = timezone.localdate()
        self.assertEqual(first['id'], f'{self.trip.id}_{today.isoformat()}')
        self.assertEqual(first['total_fare'], 180.0)
        self.assertEqual(first['distance'], 150)
        self.assertEqual(first['duration'], 3)
        self.assertEqual(first['available_seats'], 50)
        self.assertEqual(len(response.data['routes']), 1)

    def test_filters_by_stop_direction_and_date(self):
        tomorrow = (timezone.localdate() + timedelta(days=1)).isoformat()
        response = self.client.get(f'/api/v1/bus/schedules/?departure=kabwe&arrival=ndola&date={tomorrow}')
        self.assertEqual([s['id'] for s in response.data['schedules']], [f'{self.trip.id}_{tomorrow}'])
        response = self.client.get('/api/v1/bus/schedules/?departure=ndola&arrival=lusaka')
        self.assertEqual(response.data['schedules'], [])

    def test_booked_passengers_reduce_seats(self):
        tomorrow = timezone.localdate() + timedelta(days=1)
        TestDataFactory.create_bus_booking(self.trip, travel_date=tomorrow, passengers=3)
        TestDataFactory.create_bus_booking(self.trip, travel_date=tomorrow, passengers=2, status='cancelled')
        response = self.client.get(f'/api/v1/bus/schedules/?date={tomorrow.isoformat()}')
        self.assertEqual(response.data['schedules'][0]['available_seats'], 47)

    def test_inactive_company_hidden(self):
        self.vendor.status = 'suspended'
        self.vendor.save()
        response = self.client.get('/api/v1/bus/schedules/')
        self.assertEqual(response.data['schedules'], [])


class BookingTests(BusTestCase):

    def setUp(self):
        super().setUp()
        self.trip = TestDataFactory.create_trip(self.vendor)
        self.customer = TestDataFactory.create_customer(email='rider@test.com')
        self.tomorrow = timezone.localdate() + timedelta(days=1)
        self.client.authenticate_user(self.customer)

    def _book(self, boarding='Kabwe', alighting='Ndola', passengers=1, day=None):
        return self.client.post('/api/v1/bus/bookings/', {
            'schedule_id': f'{self.trip.id}_{(day or self.tomorrow).isoformat()}',
            'boarding_stop': boarding,
            'alighting_stop': alighting,
            'passenger_name': 'Mwila Banda',
            'passenger_email': 'rider@test.com',
            'passenger_phone': '0977111222',
            'passengers': passengers,
        }, format='json')

    def test_fare_is_sum_of_segments_between_stops(self):
        response = self._book(passengers=2)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        booking = response.data['booking']
        self.assertTrue(booking['booking_number'].startswith('BUS-'))
        self.assertEqual(Decimal(booking['fare']), Decimal('100'))
        self.assertEqual(Decimal(booking['total_amount']), Decimal('200'))
        self.assertEqual(booking['boarding_order'], 2)
        self.assertEqual(booking['alighting_order'], 4)

    def test_alighting_must_follow_boarding(self):
        response = self._book(boarding='Ndola', alighting='Kabwe')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Alighting stop must come after boarding stop')

    def test_unknown_stop_rejected(self):
        response = self._book(boarding='Chipata')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_day_the_trip_does_not_run(self):
        self.trip.days_of_week = [(self.tomorrow.weekday() + 2) % 7]
        self.trip.save()
        response = self._book()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_seats_are_limited(self):
        self.trip.bus.number_of_seats = 2
        self.trip.bus.save()
        response = self._book(passengers=3)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('seats available', response.data['error'])

    def test_invalid_schedule_id(self):
        response = self.client.post('/api/v1/bus/bookings/', {
            'schedule_id': 'nonsense', 'boarding_stop': 'Lusaka', 'alighting_stop': 'Ndola',
            'passenger_name': 'A', 'passenger_email': 'a@test.com', 'passenger_phone': '1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_customer_sees_only_own_bookings(self):
        self._book()
        TestDataFactory.create_bus_booking(self.trip, passenger_email='someone@test.com')
        response = self.client.get('/api/v1/bus/bookings/')
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_conductor_sees_company_bookings(self):
        self._book()
        self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, 'conductor'))
        response = self.client.get('/api/v1/bus/bookings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_cancel_restores_schedule_seats(self):
        generate_schedules(self.trip, self.tomorrow, self.tomorrow)
        booking_id = self._book(passengers=2).data['booking']['id']
        schedule = BusSchedule.objects.get(trip=self.trip, date=self.tomorrow)
        self.assertEqual(schedule.available_seats, 48)

        response = self.client.patch(f'/api/v1/bus/bookings/{booking_id}/', {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        schedule.refresh_from_db()
        self.assertEqual(schedule.available_seats, 50)

    def test_customer_cannot_confirm(self):
        booking_id = self._book().data['booking']['id']
        response = self.client.patch(f'/api/v1/bus/bookings/{booking_id}/', {'status': 'confirmed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_vendor_confirms_payment(self):
        booking_id = self._book().data['booking']['id']
        self.client.authenticate_user(self.vendor)
        response = self.client.patch(f'/api/v1/bus/bookings/{booking_id}/', {
            'status': 'confirmed', 'payment_status': 'paid',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(BusBooking.objects.get(pk=booking_id).payment_status, 'paid')


class TicketDispatchTests(BusTestCase):

    def test_ticket_seller_sells_ticket(self):
        trip = TestDataFactory.create_trip(self.vendor)
        seller = TestDataFactory.create_staff(self.vendor, 'ticket_seller')
        self.client.authenticate_user(seller)
        response = self.client.post('/api/v1/bus/tickets/', {
            'passenger_name': 'Chanda Mulenga', 'passenger_phone': '0977000111', 'id_type': 'passport',
            'trip': trip.id, 'boarding_point': 'Lusaka', 'dropping_point': 'Kabwe', 'fare': '80.00',
            'payment_method': 'mobile_money', 'departure_date': timezone.localdate().isoformat(),
            'departure_time': '06:00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertRegex(response.data['ticket_number'], r'^BT\d{9}$')
        self.assertEqual(response.data['sold_by'], seller.id)
        self.assertEqual(response.data['route_name'], trip.route.route_name)
        self.assertEqual(response.data['bus'], trip.bus.id)

    def test_ticket_filters(self):
        TestDataFactory.create_bus_ticket(self.vendor)
        TestDataFactory.create_bus_ticket(self.vendor, status='used')
        response = self.client.get('/api/v1/bus/tickets/?status=used')
        self.assertEqual(response.data['pagination']['total'], 1)

    def test_dispatch_gets_daily_id(self):
        response = self.client.post('/api/v1/bus/sending/', {
            'departure_date': timezone.localdate().isoformat(), 'dispatch_stop': 'Lusaka',
            'sender_name': 'Bwalya', 'sender_contact': '0977', 'receiver_name': 'Mutale',
            'receiver_contact': '0966', 'parcel_description': 'Box of books', 'price': '35.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['dispatch_id'],
                         f"DSP{timezone.localdate().strftime('%y%m%d')}001")


class BusReportTests(BusTestCase):

    def setUp(self):
        super().setUp()
        self.trip = TestDataFactory.create_trip(self.vendor)
        TestDataFactory.create_bus_booking(self.trip)
        TestDataFactory.create_bus_ticket(self.vendor, trip=self.trip)

    def test_payments_combine_bookings_and_tickets(self):
        response = self.client.get('/api/v1/bus/payments/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pagination']['total'], 2)
        self.assertEqual(response.data['summary']['total'], 360.0)
        self.assertEqual(response.data['summary']['paid'], 180.0)
        self.assertEqual(response.data['summary']['pending'], 180.0)

    def test_analytics(self):
        response = self.client.get('/api/v1/bus/analytics/?days=7')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['metrics']['total_revenue'], 360.0)
        self.assertEqual(response.data['metrics']['total_passengers'], 2)
        self.assertEqual(len(response.data['daily_revenue']), 7)
        self.assertEqual(response.data['top_routes'][0]['route_name'], self.trip.route.route_name)
        self.assertGreater(response.data['fleet_utilisation']['overall'], 0)

    def test_analytics_owner_only(self):
        for role in ('driver', 'conductor', 'ticket_seller', 'dispatcher', 'maintenance'):
            self.client.authenticate_user(TestDataFactory.create_staff(self.vendor, role))
            response = self.client.get('/api/v1/bus/analytics/')
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, role)

    def test_analytics_days_capped_at_a_year(self):
        response = self.client.get('/api/v1/bus/analytics/?days=100000000')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['period_days'], 365)
        self.assertEqual(len(response.data['daily_revenue']), 365)

    def test_dashboard_is_cached(self):
        response = self.client.get('/api/v1/bus/dashboard/')
        self.assertEqual(response.data['stats']['total_buses'], 1)
        self.assertEqual(response.data['stats']['total_revenue'], 360.0)
        BusRoute.objects.filter(vendor=self.vendor).update(route_name='Renamed')
        self.assertEqual(self.client.get('/api/v1/bus/dashboard/').data, response.data)
