from django.contrib import admin
from .models import Bus, BusStop, BusFare, BusRoute, BusTrip, BusSchedule, BusBooking, BusTicket, BusDispatch


@admin.register(Bus)
class BusAdmin(admin.ModelAdmin):
    list_display = ['bus_name', 'number_plate', 'vendor', 'number_of_seats', 'bus_type', 'has_ac', 'status']
    list_filter = ['status', 'has_ac']
    search_fields = ['bus_name', 'number_plate', 'vendor__business_name']


@admin.register(BusStop)
class BusStopAdmin(admin.ModelAdmin):
    list_display = ['stop_name', 'vendor', 'stop_type', 'district', 'province', 'status']
    list_filter = ['stop_type', 'status', 'province']
    search_fields = ['stop_name', 'district']


@admin.register(BusFare)
class BusFareAdmin(admin.ModelAdmin):
    list_display = ['route_name', 'vendor', 'origin', 'destination', 'fare_amount', 'currency', 'discount', 'status']
    list_filter = ['status', 'currency']
    search_fields = ['route_name', 'origin', 'destination']


@admin.register(BusRoute)
class BusRouteAdmin(admin.ModelAdmin):
    list_display = ['route_name', 'vendor', 'total_distance', 'is_bidirectional', 'status']
    list_filter = ['status', 'is_bidirectional']
    search_fields = ['route_name']


@admin.register(BusTrip)
class BusTripAdmin(admin.ModelAdmin):
    list_display = ['trip_name', 'vendor', 'bus', 'route', 'status']
    list_filter = ['status']
    search_fields = ['trip_name']


@admin.register(BusSchedule)
class BusScheduleAdmin(admin.ModelAdmin):
    list_display = ['trip', 'date', 'departure_time', 'available_seats', 'total_seats', 'fare', 'status']
    list_filter = ['status']
    date_hierarchy = 'date'


@admin.register(BusBooking)
class BusBookingAdmin(admin.ModelAdmin):
    list_display = ['booking_number', 'vendor', 'passenger_name', 'travel_date', 'passengers', 'total_amount',
                    'status', 'payment_status']
    list_filter = ['status', 'payment_status']
    search_fields = ['booking_number', 'passenger_name', 'passenger_email']
    date_hierarchy = 'travel_date'


@admin.register(BusTicket)
class BusTicketAdmin(admin.ModelAdmin):
    list_display = ['ticket_number', 'vendor', 'passenger_name', 'departure_date', 'fare', 'payment_method',
                    'status', 'sold_by_name']
    list_filter = ['status', 'payment_method', 'payment_status']
    search_fields = ['ticket_number', 'passenger_name', 'passenger_phone']


@admin.register(BusDispatch)
class BusDispatchAdmin(admin.ModelAdmin):
    list_display = ['dispatch_id', 'vendor', 'sender_name', 'receiver_name', 'departure_date', 'price', 'status']
    list_filter = ['status']
    search_fields = ['dispatch_id', 'sender_name', 'receiver_name']
