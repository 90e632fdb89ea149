import random
import string
import time

from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from decimal import Decimal

from shiteni.core.models import User

DEFAULT_SEATS = 50
DEFAULT_FARE = Decimal('100.00')
KM_PER_SEGMENT = 50
HOURS_PER_SEGMENT = 1
DEFAULT_DISTANCE_KM = 200
DEFAULT_DURATION_HOURS = 4


class Bus(models.Model):
    """A bus in a company's fleet"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('maintenance', 'Maintenance'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='buses')
    bus_name = models.CharField(max_length=100)
    number_plate = models.CharField(max_length=20, unique=True)
    number_of_seats = models.PositiveIntegerField(default=DEFAULT_SEATS)
    bus_type = models.CharField(max_length=50, blank=True)
    has_ac = models.BooleanField(default=False)
    image = models.CharField(max_length=500, blank=True)
    amenities = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.bus_name} ({self.number_plate})"

    class Meta:
        db_table = 'bus_fleet'
        ordering = ['bus_name']

    def save(self, *args, **kwargs):
        self.number_plate = (self.number_plate or '').strip().upper()
        super().save(*args, **kwargs)


class BusStop(models.Model):
    TYPE_CHOICES = [
        ('stop', 'Stop'),
        ('terminal', 'Terminal'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bus_stops')
    stop_name = models.CharField(max_length=100)
    stop_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='stop')
    district = models.CharField(max_length=100, blank=True)
    province = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.stop_name

    class Meta:
        db_table = 'bus_stops'
        ordering = ['stop_name']
        unique_together = [['vendor', 'stop_name']]


class BusFare(models.Model):
    CURRENCY_CHOICES = [
        ('ZMW', 'Zambian Kwacha'),
        ('USD', 'US Dollar'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('seasonal', 'Seasonal'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bus_fares')
    route_name = models.CharField(max_length=200)
    origin = models.CharField(max_length=100)
    destination = models.CharField(max_length=100)
    fare_amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, choices=CURRENCY_CHOICES, default='ZMW')
    discount = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'),
                                   validators=[MinValueValidator(0), MaxValueValidator(100)])
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    valid_from = models.DateField(null=True, blank=True)
    valid_until = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.origin} - {self.destination}"

    class Meta:
        db_table = 'bus_fares'
        ordering = ['route_name']

    @property
    def discounted_amount(self):
        return (self.fare_amount * (Decimal('100') - self.discount) / Decimal('100')).quantize(Decimal('0.01'))


class BusRoute(models.Model):
    """
    An ordered list of stops with the fare of each segment between them.

    stops: [{stop, stop_name, order}] sorted by order
    fare_segments: [{from, to, fare, amount}] where from/to are stop names
    """
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bus_routes')
    route_name = models.CharField(max_length=200)
    stops = models.JSONField(default=list)
    fare_segments = models.JSONField(default=list, blank=True)
    total_distance = models.DecimalField(max_digits=8, decimal_places=1, null=True, blank=True)
    is_bidirectional = models.BooleanField(default=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.route_name

    class Meta:
        db_table = 'bus_routes'
        ordering = ['route_name']

    @property
    def origin(self):
        return self.stops[0]['stop_name'] if self.stops else 'Unknown'

    @property
    def destination(self):
        return self.stops[-1]['stop_name'] if self.stops else 'Unknown'

    def stop_order(self, stop_name):
        """Order of a stop by name (case-insensitive), None when the route does not serve it"""
        wanted = (stop_name or '').strip().lower()
        for stop in self.stops:
            if stop.get('stop_name', '').lower() == wanted:
                return stop.get('order')
        return None

    @staticmethod
    def segment_amount(segment):
        return Decimal(str(segment.get('amount', segment.get('fare', 0)) or 0))

    def total_fare(self):
        if not self.fare_segments:
            return DEFAULT_FARE
        return sum((self.segment_amount(s) for s in self.fare_segments), Decimal('0.00'))

    def segment_fare(self, boarding_order, alighting_order):
        """Sum of the segments between two stop orders, the route total when none match"""
        orders = {s.get('stop_name', '').lower(): s.get('order') for s in self.stops}
        fare = Decimal('0.00')
        for segment in self.fare_segments:
            start = orders.get(str(segment.get('from', '')).lower())
            end = orders.get(str(segment.get('to', '')).lower())
            if start is None or end is None:
                continue
            if start >= boarding_order and end <= alighting_order:
                fare += self.segment_amount(segment)
        return fare or self.total_fare()

    def estimated_distance(self):
        if self.total_distance:
            return float(self.total_distance)
        return len(self.fare_segments) * KM_PER_SEGMENT if self.fare_segments else DEFAULT_DISTANCE_KM

    def estimated_duration(self):
        return len(self.fare_segments) * HOURS_PER_SEGMENT if self.fare_segments else DEFAULT_DURATION_HOURS


class BusTrip(models.Model):
    """A recurring departure of a bus on a route"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('cancelled', 'Cancelled'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bus_trips')
    trip_name = models.CharField(max_length=200)
    bus = models.ForeignKey(Bus, on_delete=models.CASCADE, related_name='trips')
    route = models.ForeignKey(BusRoute, on_delete=models.CASCADE, related_name='trips')
    # ["HH:MM", ...]
    departure_times_to = models.JSONField(default=list)
    departure_times_from = models.JSONField(default=list, blank=True)
    # 0=Sunday ... 6=Saturday
    days_of_week = models.JSONField(default=list)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.trip_name

    class Meta:
        db_table = 'bus_trips'
        ordering = ['trip_name']

    def runs_on(self, day):
        # date.weekday() is Monday=0; trips count from Sunday=0
        return (day.weekday() + 1) % 7 in self.days_of_week

    @property
    def first_departure(self):
        return self.departure_times_to[0] if self.departure_times_to else ''

    @property
    def first_return(self):
        return self.departure_times_from[0] if self.departure_times_from else ''

    def schedule_key(self, day):
        return f"{self.id}_{day.isoformat()}"


class BusSchedule(models.Model):
    STATUS_CHOICES = [
        ('scheduled', 'Scheduled'),
        ('boarding', 'Boarding'),
        ('departed', 'Departed'),
        ('arrived', 'Arrived'),
        ('cancelled', 'Cancelled'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bus_schedules')
    trip = models.ForeignKey(BusTrip, on_delete=models.CASCADE, related_name='schedules')
    route = models.ForeignKey(BusRoute, on_delete=models.CASCADE, related_name='schedules')
    bus = models.ForeignKey(Bus, on_delete=models.CASCADE, related_name='schedules')
    departure_time = models.CharField(max_length=5)
    arrival_time = models.CharField(max_length=5, blank=True)
    date = models.DateField()
    total_seats = models.PositiveIntegerField(default=DEFAULT_SEATS)
    available_seats = models.PositiveIntegerField(default=DEFAULT_SEATS)
    fare = models.DecimalField(max_digits=10, decimal_places=2, default=DEFAULT_FARE)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='scheduled')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.trip} {self.date}"

    class Meta:
        db_table = 'bus_schedules'
        ordering = ['date', 'departure_time']
        unique_together = [['trip', 'date']]


def _timestamp_ms():
    return str(int(time.time() * 1000))


class BusBooking(models.Model):
    """A seat booked online by a customer on a trip's departure"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('cancelled', 'Cancelled'),
        ('completed', 'Completed'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]
    REVENUE_STATUSES = ['confirmed', 'completed']

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bus_bookings')
    booking_number = models.CharField(max_length=40, unique=True)
    customer = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='placed_bus_bookings')
    passenger_name = models.CharField(max_length=200)
    passenger_email = models.EmailField()
    passenger_phone = models.CharField(max_length=20)
    trip = models.ForeignKey(BusTrip, on_delete=models.SET_NULL, null=True, related_name='bookings')
    schedule_key = models.CharField(max_length=50, db_index=True)
    travel_date = models.DateField()
    boarding_stop = models.CharField(max_length=100)
    boarding_order = models.PositiveIntegerField()
    alighting_stop = models.CharField(max_length=100)
    alighting_order = models.PositiveIntegerField()
    seat_numbers = models.JSONField(default=list, blank=True)
    passengers = models.PositiveIntegerField(default=1)
    fare = models.DecimalField(max_digits=10, decimal_places=2)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_method = models.CharField(max_length=30, blank=True)
    special_requests = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.booking_number

    class Meta:
        db_table = 'bus_bookings'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['vendor', 'status']),
            models.Index(fields=['travel_date']),
        ]

    @staticmethod
    def next_booking_number():
        alphabet = string.ascii_uppercase + string.digits
        while True:
            number = f"BUS-{_timestamp_ms()}-{''.join(random.choices(alphabet, k=9))}"
            if not BusBooking.objects.filter(booking_number=number).exists():
                return number


class BusTicket(models.Model):
    """A ticket sold at the counter"""
    ID_TYPE_CHOICES = [
        ('national_id', 'National ID'),
        ('passport', 'Passport'),
        ('drivers_license', 'Drivers License'),
        ('other', 'Other'),
    ]
    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('card', 'Card'),
        ('mobile_money', 'Mobile Money'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('refunded', 'Refunded'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('used', 'Used'),
        ('cancelled', 'Cancelled'),
        ('refunded', 'Refunded'),
    ]
    REVENUE_STATUSES = ['active', 'used']

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bus_tickets')
    ticket_number = models.CharField(max_length=20, unique=True)
    passenger_name = models.CharField(max_length=200)
    passenger_phone = models.CharField(max_length=20)
    passenger_email = models.EmailField(blank=True)
    id_type = models.CharField(max_length=20, choices=ID_TYPE_CHOICES, default='national_id')
    id_number = models.CharField(max_length=50, blank=True)
    trip = models.ForeignKey(BusTrip, on_delete=models.SET_NULL, null=True, blank=True, related_name='tickets')
    bus = models.ForeignKey(Bus, on_delete=models.SET_NULL, null=True, blank=True, related_name='tickets')
    route_name = models.CharField(max_length=200, blank=True)
    boarding_point = models.CharField(max_length=100)
    dropping_point = models.CharField(max_length=100)
    seat_number = models.CharField(max_length=10, blank=True)
    fare = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='ZMW')
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='paid')
    departure_date = models.DateField()
    departure_time = models.CharField(max_length=5, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    sold_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    sold_by_name = models.CharField(max_length=200, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.ticket_number

    class Meta:
        db_table = 'bus_tickets'
        ordering = ['-created_at']

    @staticmethod
    def next_ticket_number():
        while True:
            number = f"BT{_timestamp_ms()[-6:]}{random.randint(0, 999):03d}"
            if not BusTicket.objects.filter(ticket_number=number).exists():
                return number


class BusDispatch(models.Model):
    """A parcel sent on a departure"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('in_transit', 'In Transit'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bus_dispatches')
    dispatch_id = models.CharField(max_length=20)
    trip = models.ForeignKey(BusTrip, on_delete=models.SET_NULL, null=True, blank=True, related_name='dispatches')
    bus = models.ForeignKey(Bus, on_delete=models.SET_NULL, null=True, blank=True, related_name='dispatches')
    departure_date = models.DateField()
    dispatch_stop = models.CharField(max_length=100)
    destination_stop = models.CharField(max_length=100, blank=True)
    sender_name = models.CharField(max_length=200)
    sender_contact = models.CharField(max_length=50)
    receiver_name = models.CharField(max_length=200)
    receiver_contact = models.CharField(max_length=50)
    parcel_description = models.TextField()
    parcel_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.dispatch_id

    class Meta:
        db_table = 'bus_dispatches'
        ordering = ['-created_at']
        unique_together = [['vendor', 'dispatch_id']]
