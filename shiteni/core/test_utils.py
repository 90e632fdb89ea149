"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from shiteni.subscriptions.models import SubscriptionPlan, Subscription
from shiteni.hotel.models import Room, Booking
from shiteni.store.models import StoreProduct, StoreOrder
from shiteni.pharmacy.models import Medicine, Patient, Prescription, PharmacyOrder
from shiteni.bus.models import Bus, BusRoute, BusTrip, BusBooking, BusTicket
from decimal import Decimal
from datetime import timedelta
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(email=None, password='testpass123', role='customer', service_type=None,
                    status='active', email_verified=True, **extra):
        """Create a verified test user"""
        if not email:
            email = f'user_{TestDataFactory.random_string(6).lower()}@test.com'
        return User.objects.create_user(
            email=email,
            password=password,
            role=role,
            service_type=service_type,
            status=status,
            email_verified=email_verified,
            name=extra.pop('name', f'User {TestDataFactory.random_string(4)}'),
            **extra
        )

    @staticmethod
    def create_customer(email=None, **extra):
        return TestDataFactory.create_user(email=email, role='customer', **extra)

    @staticmethod
    def create_vendor(service_type='hotel', status='active', business_name=None, email=None):
        """Create a vendor owner (manager) for a service type"""
        return TestDataFactory.create_user(
            email=email,
            role='manager',
            service_type=service_type,
            status=status,
            business_name=business_name or f'{service_type.title()} {TestDataFactory.random_string(6)}',
            business_address='Cairo Road, Lusaka',
            license_number=f'LIC-{TestDataFactory.random_string(6).upper()}',
        )

    @staticmethod
    def create_staff(vendor, role, status='active', email=None):
        """Create a staff member working for a vendor"""
        return TestDataFactory.create_user(
            email=email,
            role=role,
            service_type=vendor.service_type,
            status=status,
            institution=vendor,
            created_by=vendor,
        )

    @staticmethod
    def create_admin(role='super_admin'):
        return TestDataFactory.create_user(role=role)

    @staticmethod
    def create_subscription_plan(vendor_type='hotel', plan_type='basic', price=None, billing_cycle='monthly',
                                 is_active=True, name=None):
        """Create a test subscription plan"""
        return SubscriptionPlan.objects.create(
            name=name or f'{plan_type.title()} {vendor_type} {TestDataFactory.random_string(4)}',
            description='Test plan',
            vendor_type=vendor_type,
            plan_type=plan_type,
            price=price if price is not None else Decimal('250.00'),
            billing_cycle=billing_cycle,
            features=['Feature A', 'Feature B'],
            is_active=is_active,
        )

    @staticmethod
    def create_subscription(vendor, service_type=None, status='active', plan=None, days=30):
        """Create a subscription ending `days` from now (negative for an expired one)"""
        service_type = service_type or vendor.service_type
        plan = plan or TestDataFactory.create_subscription_plan(vendor_type=service_type)
        now = timezone.now()
        return Subscription.objects.create(
            user=vendor,
            plan=plan,
            plan_type=plan.plan_type,
            service_type=service_type,
            status=status,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=days),
            billing_cycle=plan.billing_cycle,
            amount=plan.price,
            currency=plan.currency,
            payment_status='paid' if status == 'active' else 'pending',
        )

    @staticmethod
    def create_subscribed_vendor(service_type='hotel'):
        """Create an approved vendor with an active subscription"""
        vendor = TestDataFactory.create_vendor(service_type=service_type)
        TestDataFactory.create_subscription(vendor)
        return vendor

    @staticmethod
    def create_room(vendor, number=None, price=None, status='available', room_type='Standard', max_guests=2):
        """Create a test hotel room"""
        return Room.objects.create(
            vendor=vendor,
            number=number or f'R{TestDataFactory.random_string(5).upper()}',
            room_type=room_type,
            price=price if price is not None else Decimal('500.00'),
            status=status,
            max_guests=max_guests,
        )

    @staticmethod
    def create_booking(vendor, room=None, customer=None, status='confirmed', nights=2, check_in=None):
        """Create a test hotel booking"""
        room = room or TestDataFactory.create_room(vendor)
        check_in = check_in or timezone.localdate()
        return Booking.objects.create(
            vendor=vendor,
            booking_number=Booking.next_booking_number(),
            customer=customer,
            guest_name='Test Guest',
            guest_email=customer.email if customer else 'guest@test.com',
            room=room,
            room_number=room.number,
            room_type=room.room_type,
            check_in=check_in,
            check_out=check_in + timedelta(days=nights),
            total_amount=room.price * nights,
            status=status,
        )

    @staticmethod
    def create_product(vendor, name=None, price=None, stock=20, min_stock=5, category='Electronics',
                       status='active', featured=False, sku=None):
        """Create a test store product"""
        return StoreProduct.objects.create(
            vendor=vendor,
            name=name or f'Product {TestDataFactory.random_string(5)}',
            category=category,
            sku=sku or f'SKU-{TestDataFactory.random_string(8).upper()}',
            price=price if price is not None else Decimal('100.00'),
            cost=Decimal('60.00'),
            stock=stock,
            min_stock=min_stock,
            status=status,
            featured=featured,
        )

    @staticmethod
    def create_store_order(vendor, product=None, quantity=1, status='pending', payment_status='pending',
                           customer_email='buyer@test.com'):
        """Create a store order without touching stock"""
        product = product or TestDataFactory.create_product(vendor)
        total = product.price * quantity
        return StoreOrder.objects.create(
            vendor=vendor,
            order_number=StoreOrder.next_order_number(),
            customer_name='Test Buyer',
            customer_email=customer_email,
            items=[{'product': product.id, 'name': product.name, 'sku': product.sku,
                    'price': float(product.price), 'quantity': quantity, 'total': float(total)}],
            subtotal=total,
            total=total,
            status=status,
            payment_status=payment_status,
        )

    @staticmethod
    def create_medicine(vendor, name=None, price=None, stock=100, min_stock=10, category='painkillers',
                        expiry_days=365):
        """Create a test medicine expiring `expiry_days` from today"""
        return Medicine.objects.create(
            vendor=vendor,
            name=name or f'Medicine {TestDataFactory.random_string(5)}',
            category=category,
            form='tablet',
            strength='500mg',
            price=price if price is not None else Decimal('25.00'),
            stock=stock,
            min_stock=min_stock,
            expiry_date=timezone.localdate() + timedelta(days=expiry_days),
            batch_number=f'B{TestDataFactory.random_string(6).upper()}',
        )

    @staticmethod
    def create_patient(vendor, first_name='Test', last_name='Patient', email=None):
        return Patient.objects.create(
            vendor=vendor,
            patient_id=Patient.next_patient_id(),
            first_name=first_name,
            last_name=last_name,
            email=email or f'patient_{TestDataFactory.random_string(6).lower()}@test.com',
            phone='0977000000',
        )

    @staticmethod
    def create_prescription(vendor, medicine=None, quantity=2, status='pending', expiry_date=None):
        """Create a prescription for one medicine line"""
        medicine = medicine or TestDataFactory.create_medicine(vendor)
        return Prescription.objects.create(
            vendor=vendor,
            prescription_number=f'RX{TestDataFactory.random_string(8).upper()}',
            patient_name='Test Patient',
            doctor_name='Dr. Phiri',
            medicines=[{'medicine': medicine.id, 'name': medicine.name, 'dosage': '1 tablet',
                        'frequency': 'twice daily', 'duration': '5 days', 'quantity': quantity}],
            status=status,
            expiry_date=expiry_date,
        )

    @staticmethod
    def create_pharmacy_order(vendor, status='pending', total=None, customer_email='patient@test.com',
                              customer_name='Test Customer'):
        total = total if total is not None else Decimal('75.00')
        return PharmacyOrder.objects.create(
            vendor=vendor,
            order_number=f'PH{TestDataFactory.random_string(8).upper()}',
            customer_name=customer_name,
            customer_email=customer_email,
            items=[{'name': 'Paracetamol', 'quantity': 3, 'price': float(total) / 3, 'total': float(total)}],
            subtotal=total,
            total_amount=total,
            status=status,
        )

    @staticmethod
    def create_bus(vendor, seats=50, number_plate=None, status='active'):
        return Bus.objects.create(
            vendor=vendor,
            bus_name=f'Coach {TestDataFactory.random_string(4)}',
            number_plate=number_plate or f'ABC {random.randint(1000, 9999)}{TestDataFactory.random_string(2)}',
            number_of_seats=seats,
            bus_type='Luxury',
            has_ac=True,
            status=status,
        )

    @staticmethod
    def create_route(vendor, stops=('Lusaka', 'Kabwe', 'Kapiri Mposhi', 'Ndola'), segment_fares=(80, 40, 60)):
        """Create a route over `stops` with one fare segment between consecutive stops"""
        return BusRoute.objects.create(
            vendor=vendor,
            route_name=f'{stops[0]} - {stops[-1]}',
            stops=[{'stop': None, 'stop_name': name, 'order': i} for i, name in enumerate(stops, start=1)],
            fare_segments=[
                {'from': stops[i], 'to': stops[i + 1], 'fare': fare, 'amount': fare}
                for i, fare in enumerate(segment_fares)
            ],
        )

    @staticmethod
    def create_trip(vendor, bus=None, route=None, days_of_week=None, times_to=('06:00', '14:00'),
                    times_from=('10:00',)):
        """Create a trip running every day unless `days_of_week` is given (0=Sunday)"""
        bus = bus or TestDataFactory.create_bus(vendor)
        route = route or TestDataFactory.create_route(vendor)
        return BusTrip.objects.create(
            vendor=vendor,
            trip_name=f'{route.route_name} Express',
            bus=bus,
            route=route,
            departure_times_to=list(times_to),
            departure_times_from=list(times_from),
            days_of_week=days_of_week if days_of_week is not None else [0, 1, 2, 3, 4, 5, 6],
        )

    @staticmethod
    def create_bus_booking(trip, travel_date=None, passengers=1, status='confirmed', customer=None,
                           passenger_email='rider@test.com'):
        """Create a Lusaka to Ndola booking without checking seats"""
        travel_date = travel_date or timezone.localdate() + timedelta(days=1)
        fare = trip.route.total_fare()
        return BusBooking.objects.create(
            vendor=trip.vendor,
            booking_number=BusBooking.next_booking_number(),
            customer=customer,
            passenger_name='Test Rider',
            passenger_email=passenger_email,
            passenger_phone='0966000000',
            trip=trip,
            schedule_key=trip.schedule_key(travel_date),
            travel_date=travel_date,
            boarding_stop=trip.route.origin,
            boarding_order=1,
            alighting_stop=trip.route.destination,
            alighting_order=len(trip.route.stops),
            passengers=passengers,
            fare=fare,
            total_amount=fare * passengers,
            status=status,
        )

    @staticmethod
    def create_bus_ticket(vendor, trip=None, fare=None, status='active', payment_status='paid'):
        return BusTicket.objects.create(
            vendor=vendor,
            ticket_number=BusTicket.next_ticket_number(),
            passenger_name='Counter Rider',
            passenger_phone='0955000000',
            trip=trip,
            bus=trip.bus if trip else None,
            route_name=trip.route.route_name if trip else 'Lusaka - Ndola',
            boarding_point='Lusaka',
            dropping_point='Ndola',
            fare=fare if fare is not None else Decimal('180.00'),
            departure_date=timezone.localdate(),
            departure_time='06:00',
            status=status,
            payment_status=payment_status,
        )


class AuthenticatedAPIClient(APIClient):
    """API client with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate user and set JWT token"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')

    def logout(self):
        """Clear authentication"""
        self.credentials()
