import logging
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Sum, Count, Min, Q, DecimalField
from django.db.models.functions import TruncMonth
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from shiteni.core.cache_utils import get_cached_dashboard, cache_dashboard
from shiteni.core.utils import create_audit_log, paginate, parse_date
from shiteni.subscriptions.gating import vendor_view
from .models import Room, Booking
from .serializers import RoomSerializer, BookingSerializer, PublicBookingSerializer, PaymentUpdateSerializer

logger = logging.getLogger('shiteni.hotel')

User = get_user_model()

FRONT_DESK = ['receptionist']
ROOM_STAFF = ['housekeeping', 'receptionist']

# Room status after a booking moves to a status
ROOM_STATUS_FOR_BOOKING = {
    'checked-in': 'occupied',
    'checked-out': 'available',
    'cancelled': 'available',
    'no-show': 'available',
}


def _sync_room_status(booking):
    room_status = ROOM_STATUS_FOR_BOOKING.get(booking.status)
    if room_status and booking.room and booking.room.status != room_status:
        booking.room.status = room_status
        booking.room.save(update_fields=['status', 'updated_at'])


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('hotel', roles=ROOM_STAFF)
def room_list_create(request):
    """List rooms or add a room"""
    vendor = request.vendor
    if request.method == 'GET':
        rooms = Room.objects.filter(vendor=vendor)
        room_status = request.query_params.get('status')
        if room_status and room_status != 'all':
            rooms = rooms.filter(status=room_status)
        room_type = request.query_params.get('type')
        if room_type:
            rooms = rooms.filter(room_type__iexact=room_type)
        search = request.query_params.get('search')
        if search:
            rooms = rooms.filter(Q(number__icontains=search) | Q(room_type__icontains=search))
        return Response(RoomSerializer(rooms, many=True).data)

    if request.user.pk != vendor.pk:
        return Response({'error': 'Only managers can add rooms'}, status=status.HTTP_403_FORBIDDEN)
    serializer = RoomSerializer(data=request.data, context={'vendor': vendor})
    if serializer.is_valid():
        room = serializer.save(vendor=vendor)
        create_audit_log(request, action='create', model_name='Room', object_id=room.id, object_name=room.number)
        return Response(RoomSerializer(room).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('hotel', roles=ROOM_STAFF)
def room_detail(request, pk):
    """Retrieve, update or delete a room"""
    room = get_object_or_404(Room, pk=pk, vendor=request.vendor)

    if request.method == 'GET':
        return Response(RoomSerializer(room).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = RoomSerializer(room, data=request.data, partial=request.method == 'PATCH',
                                    context={'vendor': request.vendor})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if request.user.pk != request.vendor.pk:
            return Response({'error': 'Only managers can delete rooms'}, status=status.HTTP_403_FORBIDDEN)
        if room.bookings.filter(status__in=['pending', 'confirmed', 'checked-in']).exists():
            return Response({'error': 'Cannot delete a room with active bookings'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request, action='delete', model_name='Room', object_id=room.id, object_name=room.number)
        # past bookings keep their room_number and room_type
        room.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('hotel', roles=FRONT_DESK)
def booking_list_create(request):
    """List bookings or record a front-desk booking"""
    vendor = request.vendor
    if request.method == 'GET':
        bookings = Booking.objects.filter(vendor=vendor).select_related('room')
        booking_status = request.query_params.get('status')
        if booking_status and booking_status != 'all':
            bookings = bookings.filter(status=booking_status)
        payment_status = request.query_params.get('payment_status')
        if payment_status:
            bookings = bookings.filter(payment_status=payment_status)
        date_from = parse_date(request.query_params.get('date_from'))
        if date_from:
            bookings = bookings.filter(check_in__gte=date_from)
        date_to = parse_date(request.query_params.get('date_to'))
        if date_to:
            bookings = bookings.filter(check_in__lte=date_to)
        search = request.query_params.get('search')
        if search:
            bookings = bookings.filter(
                Q(booking_number__icontains=search) | Q(guest_name__icontains=search) | Q(guest_email__icontains=search)
            )
        items, pagination = paginate(bookings, request, default_limit=20)
        return Response({'bookings': BookingSerializer(items, many=True).data, 'pagination': pagination})

    serializer = BookingSerializer(data=request.data, context={'vendor': vendor})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    room = serializer.validated_data['room']
    if room.status != 'available':
        return Response({'error': f'Room {room.number} is not available'}, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        nights = (serializer.validated_data['check_out'] - serializer.validated_data['check_in']).days
        total = serializer.validated_data.get('total_amount') or room.price * nights
        booking = serializer.save(
            vendor=vendor,
            booking_number=Booking.next_booking_number(),
            room_number=room.number,
            room_type=room.room_type,
            total_amount=total,
            booking_source='hotel',
        )
        _sync_room_status(booking)

    create_audit_log(request, action='booking_create', model_name='Booking', object_id=booking.id,
                     object_reference=booking.booking_number)
    logger.info(f"Hotel {vendor.id} booking {booking.booking_number} for room {room.number}")
    return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('hotel', roles=FRONT_DESK)
def booking_detail(request, pk):
    """Retrieve, update (check-in/out, cancel) or delete a booking"""
    booking = get_object_or_404(Booking.objects.select_related('room'), pk=pk, vendor=request.vendor)

    if request.method == 'GET':
        return Response(BookingSerializer(booking).data)
    elif request.method in ('PUT', 'PATCH'):
        previous_status = booking.status
        serializer = BookingSerializer(booking, data=request.data, partial=request.method == 'PATCH',
                                       context={'vendor': request.vendor})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        with transaction.atomic():
            booking = serializer.save()
            if booking.status != previous_status:
                _sync_room_status(booking)
                create_audit_log(request, action='status_change', model_name='Booking', object_id=booking.id,
                                 object_reference=booking.booking_number,
                                 changes={'status': [previous_status, booking.status]})
        return Response(BookingSerializer(booking).data)
    else:  # DELETE
        if booking.status == 'checked-in' and booking.room:
            booking.room.status = 'available'
            booking.room.save(update_fields=['status', 'updated_at'])
        create_audit_log(request, action='delete', model_name='Booking', object_id=booking.id,
                         object_reference=booking.booking_number)
        booking.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('hotel', roles=FRONT_DESK)
def in_house(request):
    """Guests currently checked in"""
    bookings = Booking.objects.filter(vendor=request.vendor, status='checked-in').select_related('room').order_by('check_out')
    return Response({
        'count': bookings.count(),
        'guests': BookingSerializer(bookings, many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('hotel', roles=FRONT_DESK)
def payment_list(request):
    bookings = Booking.objects.filter(vendor=request.vendor).exclude(status='cancelled')
    payment_status = request.query_params.get('payment_status')
    if payment_status:
        bookings = bookings.filter(payment_status=payment_status)

    totals = bookings.aggregate(
        total=Sum('total_amount', output_field=DecimalField()),
        paid=Sum('total_amount', filter=Q(payment_status='paid'), output_field=DecimalField()),
        pending=Sum('total_amount', filter=Q(payment_status__in=['pending', 'partial']), output_field=DecimalField()),
    )
    items, pagination = paginate(bookings, request, default_limit=20)
    return Response({
        'payments': [
            {
                'id': b.id,
                'booking_number': b.booking_number,
                'guest_name': b.guest_name,
                'amount': b.total_amount,
                'payment_status': b.payment_status,
                'payment_method': b.payment_method,
                'date': b.created_at,
            }
            for b in items
        ],
        'summary': {key: float(value or 0) for key, value in totals.items()},
        'pagination': pagination,
    })


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
@vendor_view('hotel', roles=FRONT_DESK)
def payment_update(request, pk):
    booking = get_object_or_404(Booking, pk=pk, vendor=request.vendor)
    serializer = PaymentUpdateSerializer(booking, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        create_audit_log(request, action='payment_update', model_name='Booking', object_id=booking.id,
                         object_reference=booking.booking_number, changes=serializer.validated_data)
        return Response(BookingSerializer(booking).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _month_starts(count=6):
    today = timezone.localdate().replace(day=1)
    months = []
    for offset in range(count - 1, -1, -1):
        month_index = today.month - 1 - offset
        year = today.year + month_index // 12
        months.append(today.replace(year=year, month=month_index % 12 + 1))
    return months


def _next_month(day):
    return day.replace(year=day.year + 1, month=1) if day.month == 12 else day.replace(month=day.month + 1)


def build_hotel_dashboard(vendor):
    today = timezone.localdate()
    rooms = Room.objects.filter(vendor=vendor)
    bookings = Booking.objects.filter(vendor=vendor)

    room_counts = dict(rooms.values_list('status').annotate(c=Count('id')))
    booking_counts = dict(bookings.values_list('status').annotate(c=Count('id')))
    total_rooms = rooms.count()
    money = DecimalField()

    revenue = bookings.aggregate(
        total=Sum('total_amount', output_field=money),
        today=Sum('total_amount', filter=Q(created_at__date=today), output_field=money),
        paid=Sum('total_amount', filter=Q(payment_status='paid'), output_field=money),
    )

    monthly = {
        row['month'].date() if hasattr(row['month'], 'date') else row['month']: row['total']
        for row in bookings.annotate(month=TruncMonth('created_at')).values('month').annotate(
            total=Sum('total_amount', output_field=money))
    }
    revenue_by_month = []
    occupancy_by_month = []
    for month_start in _month_starts():
        month_end = _next_month(month_start)
        revenue_by_month.append({
            'month': month_start.strftime('%b'),
            'revenue': float(monthly.get(month_start) or 0),
        })
        occupied_nights = 0
        for check_in, check_out in bookings.filter(
            check_in__lt=month_end, check_out__gt=month_start
        ).exclude(status__in=['cancelled', 'no-show']).values_list('check_in', 'check_out'):
            occupied_nights += (min(check_out, month_end) - max(check_in, month_start)).days
        room_nights = total_rooms * (month_end - month_start).days
        occupancy_by_month.append({
            'month': month_start.strftime('%b'),
            'occupancy_rate': round(occupied_nights / room_nights * 100) if room_nights else 0,
        })

    bookings_by_day = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        bookings_by_day.append({
            'day': day.strftime('%a'),
            'bookings': bookings.filter(created_at__date=day).count(),
        })

    stays = [(b.check_out - b.check_in).days for b in bookings.filter(status='checked-out').only('check_in', 'check_out')]

    return {
        'stats': {
            'total_rooms': total_rooms,
            'available_rooms': room_counts.get('available', 0),
            'occupied_rooms': room_counts.get('occupied', 0),
            'maintenance_rooms': room_counts.get('maintenance', 0),
            'total_bookings': bookings.count(),
            'today_bookings': bookings.filter(created_at__date=today).count(),
            'pending_bookings': booking_counts.get('pending', 0),
            'confirmed_bookings': booking_counts.get('confirmed', 0),
            'checked_in_bookings': booking_counts.get('checked-in', 0),
            'checked_out_bookings': booking_counts.get('checked-out', 0),
            'current_guests': bookings.filter(status='checked-in').aggregate(n=Sum('guests'))['n'] or 0,
            'total_revenue': float(revenue['total'] or 0),
            'today_revenue': float(revenue['today'] or 0),
            'paid_revenue': float(revenue['paid'] or 0),
            'average_stay_duration': round(sum(stays) / len(stays)) if stays else 0,
        },
        'charts': {
            'room_status': [{'name': k, 'value': v} for k, v in room_counts.items()],
            'booking_status': [{'name': k, 'value': v} for k, v in booking_counts.items()],
            'revenue_by_month': revenue_by_month,
            'bookings_by_day': bookings_by_day,
            'room_types': list(rooms.values('room_type').annotate(value=Count('id')).order_by('-value')),
            'occupancy_rate_by_month': occupancy_by_month,
        },
        'recent_bookings': BookingSerializer(bookings.select_related('room')[:5], many=True).data,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('hotel', roles=FRONT_DESK + ['housekeeping'])
def dashboard(request):
    cached, cache_key = get_cached_dashboard('hotel', request.vendor.id)
    if cached is not None:
        return Response(cached)
    data = build_hotel_dashboard(request.vendor)
    cache_dashboard(cache_key, data)
    return Response(data)


# Public endpoints

@api_view(['GET'])
@permission_classes([AllowAny])
def hotel_list(request):
    """Approved hotels with available rooms and their starting price"""
    hotels = User.objects.filter(
        service_type='hotel', role='manager', status='active', institution__isnull=True
    ).annotate(
        available_rooms=Count('rooms', filter=Q(rooms__status='available')),
        starting_price=Min('rooms__price', filter=Q(rooms__status='available')),
    )
    search = request.query_params.get('search')
    if search:
        hotels = hotels.filter(Q(business_name__icontains=search) | Q(business_address__icontains=search))
    return Response({
        'hotels': [
            {
                'id': hotel.id,
                'name': hotel.display_name,
                'address': hotel.business_address,
                'phone': hotel.phone,
                'available_rooms': hotel.available_rooms,
                'starting_price': float(hotel.starting_price) if hotel.starting_price is not None else None,
                'amenities': (hotel.settings or {}).get('amenities', []),
            }
            for hotel in hotels
        ]
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def hotel_rooms(request, vendor_id):
    vendor = get_object_or_404(User, pk=vendor_id, service_type='hotel', status='active', institution__isnull=True)
    rooms = Room.objects.filter(vendor=vendor, status='available')
    guests = request.query_params.get('guests')
    if guests and guests.isdigit():
        rooms = rooms.filter(max_guests__gte=int(guests))
    return Response({'hotel': {'id': vendor.id, 'name': vendor.display_name},
                     'rooms': RoomSerializer(rooms, many=True).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def book_room(request):
    """Online booking by a signed-in customer"""
    serializer = PublicBookingSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    room = Room.objects.select_related('vendor').filter(pk=data['room_id'], vendor__status='active').first()
    if not room:
        return Response({'error': 'Room not found'}, status=status.HTTP_404_NOT_FOUND)
    if room.status != 'available':
        return Response({'error': 'Room is not available'}, status=status.HTTP_400_BAD_REQUEST)
    if data['guests'] > room.max_guests:
        return Response({'error': f'Room accommodates at most {room.max_guests} guests'},
                        status=status.HTTP_400_BAD_REQUEST)

    overlapping = room.bookings.filter(
        check_in__lt=data['check_out'], check_out__gt=data['check_in'],
        status__in=['pending', 'confirmed', 'checked-in'],
    ).exists()
    if overlapping:
        return Response({'error': 'Room is already booked for these dates'}, status=status.HTTP_400_BAD_REQUEST)

    nights = max((data['check_out'] - data['check_in']).days, 1)
    user = request.user
    booking = Booking.objects.create(
        vendor=room.vendor,
        booking_number=Booking.next_booking_number(),
        customer=user,
        guest_name=data.get('guest_name') or user.name or user.email,
        guest_email=data.get('guest_email') or user.email,
        guest_phone=data.get('guest_phone') or user.phone or '',
        room=room,
        room_number=room.number,
        room_type=room.room_type,
        check_in=data['check_in'],
        check_out=data['check_out'],
        guests=data['guests'],
        adults=data.get('adults') or data['guests'],
        children=data['children'],
        total_amount=room.price * Decimal(nights),
        status='pending',
        payment_status='pending' if data['payment_method'] == 'check_in' else 'paid',
        payment_method=data['payment_method'],
        booking_source='online',
        special_requests=data.get('special_requests', ''),
    )
    create_audit_log(request, action='booking_create', model_name='Booking', object_id=booking.id,
                     object_reference=booking.booking_number)
    logger.info(f"Online booking {booking.booking_number} by {user.email} ({nights} nights)")
    return Response({
        'message': 'Booking created successfully',
        'booking': BookingSerializer(booking).data,
    }, status=status.HTTP_201_CREATED)
