import re

from rest_framework import serializers

from .models import Bus, BusStop, BusFare, BusRoute, BusTrip, BusSchedule, BusBooking, BusTicket, BusDispatch

TIME_RE = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


class VendorScopedMixin:
    """Reject related objects that belong to another bus company"""

    def _own(self, obj, label):
        if obj is not None and obj.vendor_id != self.context['vendor'].id:
            raise serializers.ValidationError(f'{label} not found')
        return obj


class BusSerializer(serializers.ModelSerializer):
    class Meta:
        model = Bus
        fields = ['id', 'bus_name', 'number_plate', 'number_of_seats', 'bus_type', 'has_ac', 'image',
                  'amenities', 'status', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_number_plate(self, value):
        value = value.strip().upper()
        buses = Bus.objects.filter(number_plate=value)
        if self.instance:
            buses = buses.exclude(pk=self.instance.pk)
        if buses.exists():
            raise serializers.ValidationError('A bus with this number plate already exists')
        return value

    def validate_number_of_seats(self, value):
        if value < 1:
            raise serializers.ValidationError('A bus needs at least one seat')
        return value


class BusStopSerializer(serializers.ModelSerializer):
    class Meta:
        model = BusStop
        fields = ['id', 'stop_name', 'stop_type', 'district', 'province', 'status', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_stop_name(self, value):
        value = value.strip()
        stops = BusStop.objects.filter(vendor=self.context['vendor'], stop_name__iexact=value)
        if self.instance:
            stops = stops.exclude(pk=self.instance.pk)
        if stops.exists():
            raise serializers.ValidationError('A stop with this name already exists')
        return value


class BusFareSerializer(serializers.ModelSerializer):
    discounted_amount = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = BusFare
        fields = ['id', 'route_name', 'origin', 'destination', 'fare_amount', 'currency', 'discount',
                  'discounted_amount', 'status', 'valid_from', 'valid_until', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_fare_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError('Fare must be greater than zero')
        return value

    def validate(self, attrs):
        valid_from = attrs.get('valid_from', getattr(self.instance, 'valid_from', None))
        valid_until = attrs.get('valid_until', getattr(self.instance, 'valid_until', None))
        if valid_from and valid_until and valid_until < valid_from:
            raise serializers.ValidationError({'valid_until': 'Must be on or after valid_from'})
        return attrs


class BusRouteSerializer(serializers.ModelSerializer):
    origin = serializers.CharField(read_only=True)
    destination = serializers.CharField(read_only=True)
    total_fare = serializers.SerializerMethodField()

    class Meta:
        model = BusRoute
        fields = ['id', 'route_name', 'stops', 'fare_segments', 'total_distance', 'is_bidirectional',
                  'origin', 'destination', 'total_fare', 'status', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_total_fare(self, obj):
        return float(obj.total_fare())

    def validate_stops(self, value):
        if not isinstance(value, list) or len(value) < 2:
            raise serializers.ValidationError('A route needs at least 2 stops')
        stops = []
        for position, stop in enumerate(value, start=1):
            if not isinstance(stop, dict) or not str(stop.get('stop_name', '')).strip():
                raise serializers.ValidationError('Each stop needs a stop_name')
            try:
                order = int(stop.get('order') or position)
            except (TypeError, ValueError):
                raise serializers.ValidationError('Stop order must be a number')
            stops.append({
                'stop': stop.get('stop'),
                'stop_name': str(stop['stop_name']).strip(),
                'order': order,
            })
        stops.sort(key=lambda s: s['order'])
        if len({s['order'] for s in stops}) != len(stops):
            raise serializers.ValidationError('Stop orders must be unique')
        return stops

    def validate_fare_segments(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError('Fare segments must be a list')
        for segment in value:
            if not isinstance(segment, dict) or not segment.get('from') or not segment.get('to'):
                raise serializers.ValidationError('Each fare segment needs from and to stops')
            try:
                if BusRoute.segment_amount(segment) < 0:
                    raise serializers.ValidationError('Segment fares cannot be negative')
            except ArithmeticError:
                raise serializers.ValidationError('Segment fares must be numbers')
        return value


def _validate_times(value):
    if not isinstance(value, list):
        raise serializers.ValidationError('Expected a list of HH:MM times')
    for item in value:
        if not isinstance(item, str) or not TIME_RE.match(item):
            raise serializers.ValidationError(f'Invalid time {item!r}, expected HH:MM')
    return sorted(value)


class BusTripSerializer(VendorScopedMixin, serializers.ModelSerializer):
    bus_name = serializers.CharField(source='bus.bus_name', read_only=True)
    route_name = serializers.CharField(source='route.route_name', read_only=True)

    class Meta:
        model = BusTrip
        fields = ['id', 'trip_name', 'bus', 'bus_name', 'route', 'route_name', 'departure_times_to',
                  'departure_times_from', 'days_of_week', 'status', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_bus(self, value):
        return self._own(value, 'Bus')

    def validate_route(self, value):
        return self._own(value, 'Route')

    def validate_departure_times_to(self, value):
        value = _validate_times(value)
        if not value:
            raise serializers.ValidationError('At least one departure time is required')
        return value

    def validate_departure_times_from(self, value):
        return _validate_times(value)

    def validate_days_of_week(self, value):
        if not isinstance(value, list) or not value:
            raise serializers.ValidationError('At least one day of the week is required')
        try:
            days = sorted({int(d) for d in value})
        except (TypeError, ValueError):
            raise serializers.ValidationError('Days must be numbers 0 (Sunday) to 6 (Saturday)')
        if days[0] < 0 or days[-1] > 6:
            raise serializers.ValidationError('Days must be numbers 0 (Sunday) to 6 (Saturday)')
        return days


class BusScheduleSerializer(serializers.ModelSerializer):
    trip_name = serializers.CharField(source='trip.trip_name', read_only=True)
    route_name = serializers.CharField(source='route.route_name', read_only=True)
    bus_name = serializers.CharField(source='bus.bus_name', read_only=True)

    class Meta:
        model = BusSchedule
        fields = ['id', 'trip', 'trip_name', 'route', 'route_name', 'bus', 'bus_name', 'departure_time',
                  'arrival_time', 'date', 'total_seats', 'available_seats', 'fare', 'status', 'notes',
                  'created_at']


class GenerateSchedulesSerializer(serializers.Serializer):
    trip_id = serializers.IntegerField()
    start_date = serializers.DateField()
    end_date = serializers.DateField()

    def validate(self, attrs):
        if attrs['start_date'] > attrs['end_date']:
            raise serializers.ValidationError('start_date must be on or before end_date')
        return attrs


class BusBookingSerializer(serializers.ModelSerializer):
    trip_name = serializers.CharField(source='trip.trip_name', read_only=True, default=None)
    route_name = serializers.CharField(source='trip.route.route_name', read_only=True, default=None)
    company_name = serializers.SerializerMethodField()

    class Meta:
        model = BusBooking
        fields = ['id', 'booking_number', 'customer', 'passenger_name', 'passenger_email', 'passenger_phone',
                  'trip', 'trip_name', 'route_name', 'company_name', 'schedule_key', 'travel_date',
                  'boarding_stop', 'boarding_order', 'alighting_stop', 'alighting_order', 'seat_numbers',
                  'passengers', 'fare', 'total_amount', 'status', 'payment_status', 'payment_method',
                  'special_requests', 'notes', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_company_name(self, obj):
        return obj.vendor.business_name or obj.vendor.display_name


class BookingCreateSerializer(serializers.Serializer):
    schedule_id = serializers.CharField()
    boarding_stop = serializers.CharField()
    alighting_stop = serializers.CharField()
    passenger_name = serializers.CharField(max_length=200)
    passenger_email = serializers.EmailField()
    passenger_phone = serializers.CharField(max_length=20)
    passengers = serializers.IntegerField(min_value=1, max_value=20, default=1)
    seat_numbers = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    payment_method = serializers.CharField(required=False, allow_blank=True, default='')
    special_requests = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['seat_numbers'] and len(attrs['seat_numbers']) != attrs['passengers']:
            raise serializers.ValidationError('Provide one seat number per passenger')
        return attrs


class BookingUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = BusBooking
        fields = ['status', 'payment_status', 'payment_method', 'seat_numbers', 'notes']


class BusTicketSerializer(VendorScopedMixin, serializers.ModelSerializer):
    trip_name = serializers.CharField(source='trip.trip_name', read_only=True, default=None)
    bus_name = serializers.CharField(source='bus.bus_name', read_only=True, default=None)

    class Meta:
        model = BusTicket
        fields = ['id', 'ticket_number', 'passenger_name', 'passenger_phone', 'passenger_email', 'id_type',
                  'id_number', 'trip', 'trip_name', 'bus', 'bus_name', 'route_name', 'boarding_point',
                  'dropping_point', 'seat_number', 'fare', 'currency', 'payment_method', 'payment_status',
                  'departure_date', 'departure_time', 'status', 'sold_by', 'sold_by_name',
                  'created_at', 'updated_at']
        read_only_fields = ['ticket_number', 'sold_by', 'sold_by_name', 'created_at', 'updated_at']

    def validate_trip(self, value):
        return self._own(value, 'Trip')

    def validate_bus(self, value):
        return self._own(value, 'Bus')

    def validate_fare(self, value):
        if value < 0:
            raise serializers.ValidationError('Fare cannot be negative')
        return value

    def validate_departure_time(self, value):
        if value and not TIME_RE.match(value):
            raise serializers.ValidationError('Expected HH:MM')
        return value


class BusDispatchSerializer(VendorScopedMixin, serializers.ModelSerializer):
    trip_name = serializers.CharField(source='trip.trip_name', read_only=True, default=None)
    bus_name = serializers.CharField(source='bus.bus_name', read_only=True, default=None)

    class Meta:
        model = BusDispatch
        fields = ['id', 'dispatch_id', 'trip', 'trip_name', 'bus', 'bus_name', 'departure_date',
                  'dispatch_stop', 'destination_stop', 'sender_name', 'sender_contact', 'receiver_name',
                  'receiver_contact', 'parcel_description', 'parcel_value', 'price', 'status',
                  'created_at', 'updated_at']
        read_only_fields = ['dispatch_id', 'created_at', 'updated_at']

    def validate_trip(self, value):
        return self._own(value, 'Trip')

    def validate_bus(self, value):
        return self._own(value, 'Bus')
