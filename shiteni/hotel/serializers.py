from rest_framework import serializers
from .models import Room, Booking


class RoomSerializer(serializers.ModelSerializer):
    class Meta:
        model = Room
        fields = ['id', 'number', 'room_type', 'floor', 'status', 'amenities', 'price', 'max_guests',
                  'description', 'last_cleaned', 'next_maintenance', 'images', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_number(self, value):
        vendor = self.context['vendor']
        rooms = Room.objects.filter(vendor=vendor, number=value)
        if self.instance:
            rooms = rooms.exclude(pk=self.instance.pk)
        if rooms.exists():
            raise serializers.ValidationError('A room with this number already exists')
        return value

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError('Price must be greater than zero')
        return value


class BookingSerializer(serializers.ModelSerializer):
    nights = serializers.IntegerField(read_only=True)

    class Meta:
        model = Booking
        fields = ['id', 'booking_number', 'customer', 'guest_name', 'guest_email', 'guest_phone', 'room',
                  'room_number', 'room_type', 'check_in', 'check_out', 'nights', 'guests', 'adults',
                  'children', 'total_amount', 'status', 'payment_status', 'payment_method',
                  'booking_source', 'special_requests', 'created_at', 'updated_at']
        read_only_fields = ['booking_number', 'customer', 'room_number', 'room_type', 'booking_source',
                            'created_at', 'updated_at']
        extra_kwargs = {'total_amount': {'required': False}, 'room': {'required': True, 'allow_null': False}}

    def validate_room(self, value):
        if value.vendor_id != self.context['vendor'].id:
            raise serializers.ValidationError('Room not found')
        return value

    def validate(self, attrs):
        check_in = attrs.get('check_in', getattr(self.instance, 'check_in', None))
        check_out = attrs.get('check_out', getattr(self.instance, 'check_out', None))
        if check_in and check_out and check_out <= check_in:
            raise serializers.ValidationError({'check_out': 'Check-out must be after check-in'})
        return attrs


class PublicBookingSerializer(serializers.Serializer):
    room_id = serializers.IntegerField()
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    guests = serializers.IntegerField(min_value=1, default=1)
    adults = serializers.IntegerField(min_value=1, required=False)
    children = serializers.IntegerField(min_value=0, default=0)
    guest_name = serializers.CharField(required=False, allow_blank=True)
    guest_email = serializers.EmailField(required=False, allow_blank=True)
    guest_phone = serializers.CharField(required=False, allow_blank=True)
    payment_method = serializers.CharField(default='check_in')
    special_requests = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['check_out'] <= attrs['check_in']:
            raise serializers.ValidationError({'check_out': 'Check-out must be after check-in'})
        return attrs


class PaymentUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Booking
        fields = ['payment_status', 'payment_method']
