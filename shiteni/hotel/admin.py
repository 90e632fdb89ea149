from django.contrib import admin
from .models import Room, Booking


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ['number', 'vendor', 'room_type', 'floor', 'status', 'price', 'max_guests']
    list_filter = ['status', 'room_type']
    search_fields = ['number', 'vendor__business_name']


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['booking_number', 'vendor', 'guest_name', 'room_number', 'check_in', 'check_out',
                    'status', 'payment_status', 'total_amount']
    list_filter = ['status', 'payment_status', 'booking_source']
    search_fields = ['booking_number', 'guest_name', 'guest_email']
    date_hierarchy = 'check_in'
