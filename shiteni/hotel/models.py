from django.db import models
from decimal import Decimal

from shiteni.core.models import User


class Room(models.Model):
    """Hotel rooms"""
    STATUS_CHOICES = [
        ('available', 'Available'),
        ('occupied', 'Occupied'),
        ('maintenance', 'Maintenance'),
        ('out-of-order', 'Out of Order'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='rooms')
    number = models.CharField(max_length=20)
    room_type = models.CharField(max_length=50, default='Standard')
    floor = models.IntegerField(default=1)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='available')
    amenities = models.JSONField(default=list, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    max_guests = models.PositiveIntegerField(default=2)
    description = models.TextField(blank=True)
    last_cleaned = models.DateTimeField(null=True, blank=True)
    next_maintenance = models.DateTimeField(null=True, blank=True)
    images = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Room {self.number}"

    class Meta:
        db_table = 'hotel_rooms'
        ordering = ['number']
        unique_together = [['vendor', 'number']]


class Booking(models.Model):
    """Room bookings, online or at the front desk"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('checked-in', 'Checked In'),
        ('checked-out', 'Checked Out'),
        ('cancelled', 'Cancelled'),
        ('no-show', 'No Show'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('partial', 'Partial'),
        ('refunded', 'Refunded'),
    ]
    SOURCE_CHOICES = [
        ('online', 'Online'),
        ('hotel', 'Hotel'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='hotel_bookings')
    booking_number = models.CharField(max_length=20, unique=True)
    customer = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='room_bookings')
    guest_name = models.CharField(max_length=200)
    guest_email = models.EmailField(blank=True)
    guest_phone = models.CharField(max_length=20, blank=True)
    room = models.ForeignKey(Room, on_delete=models.SET_NULL, null=True, blank=True, related_name='bookings')
    room_number = models.CharField(max_length=20)
    room_type = models.CharField(max_length=50)
    check_in = models.DateField()
    check_out = models.DateField()
    guests = models.PositiveIntegerField(default=1)
    adults = models.PositiveIntegerField(default=1)
    children = models.PositiveIntegerField(default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_method = models.CharField(max_length=30, blank=True)
    booking_source = models.CharField(max_length=10, choices=SOURCE_CHOICES, default='hotel')
    special_requests = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.booking_number

    class Meta:
        db_table = 'hotel_bookings'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['vendor', 'status']),
            models.Index(fields=['check_in']),
        ]

    @property
    def nights(self):
        return max((self.check_out - self.check_in).days, 1)

    @staticmethod
    def next_booking_number():
        count = Booking.objects.count() + 1
        number = f"BK{count:06d}"
        while Booking.objects.filter(booking_number=number).exists():
            count += 1
            number = f"BK{count:06d}"
        return number
