"""Customer self-service: dashboard, bookings, orders, payments and preferences"""
import logging

from django.db.models import Q, Sum, DecimalField
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from shiteni.bus.models import BusBooking
from shiteni.core.permissions import IsCustomer
from shiteni.hotel.models import Booking
from shiteni.messaging.models import Message
from shiteni.pharmacy.models import PharmacyOrder
from shiteni.store.models import StoreOrder
from .serializers import PreferencesSerializer, SecuritySerializer

logger = logging.getLogger('shiteni.customers')

MONEY = DecimalField(max_digits=14, decimal_places=2)

DEFAULT_PREFERENCES = {
    'email_notifications': True,
    'sms_notifications': True,
    'marketing_emails': False,
    'language': 'en',
    'timezone': 'Africa/Lusaka',
    'currency': 'ZMW',
}
DEFAULT_SECURITY = {
    'two_factor_enabled': False,
    'login_notifications': True,
}


def hotel_bookings(user):
    return Booking.objects.filter(Q(customer=user) | Q(guest_email__iexact=user.email)).select_related('vendor')


def bus_bookings(user):
    return BusBooking.objects.filter(
        Q(customer=user) | Q(passenger_email__iexact=user.email)
    ).select_related('vendor', 'trip__route')


def store_orders(user):
    return StoreOrder.objects.filter(Q(customer=user) | Q(customer_email__iexact=user.email)).select_related('vendor')


def pharmacy_orders(user):
    return PharmacyOrder.objects.filter(
        Q(customer=user) | Q(customer_email__iexact=user.email)
    ).select_related('vendor')


def _payment_state(payment_status):
    if payment_status == 'paid':
        return 'completed'
    if payment_status == 'refunded':
        return 'refunded'
    return 'pending'


def _hotel_row(booking):
    return {
        'id': booking.id,
        'type': 'hotel',
        'reference': booking.booking_number,
        'vendor_name': booking.vendor.display_name,
        'title': f"Room {booking.room_number} ({booking.room_type})",
        'start_date': booking.check_in,
        'end_date': booking.check_out,
        'guests': booking.guests,
        'amount': float(booking.total_amount),
        'status': booking.status,
        'payment_status': booking.payment_status,
        'payment_method': booking.payment_method,
        'created_at': booking.created_at,
    }


def _bus_row(booking):
    return {
        'id': booking.id,
        'type': 'bus',
        'reference': booking.booking_number,
        'vendor_name': booking.vendor.display_name,
        'title': f"{booking.boarding_stop} to {booking.alighting_stop}",
        'start_date': booking.travel_date,
        'end_date': booking.travel_date,
        'guests': booking.passengers,
        'amount': float(booking.total_amount),
        'status': booking.status,
        'payment_status': booking.payment_status,
        'payment_method': booking.payment_method,
        'created_at': booking.created_at,
    }


def _store_row(order):
    return {
        'id': order.id,
        'type': 'store',
        'reference': order.order_number,
        'vendor_name': order.vendor.display_name,
        'items': order.items,
        'item_count': len(order.items),
        'amount': float(order.total),
        'status': order.status,
        'payment_status': order.payment_status,
        'payment_method': order.payment_method,
        'created_at': order.created_at,
    }


def _pharmacy_row(order):
    return {
        'id': order.id,
        'type': 'pharmacy',
        'reference': order.order_number,
        'vendor_name': order.vendor.display_name,
        'items': order.items,
        'item_count': len(order.items),
        'amount': float(order.total_amount),
        'status': order.status,
        'payment_status': order.payment_status,
        'payment_method': '',
        'created_at': order.created_at,
    }


def _newest_first(rows):
    return sorted(rows, key=lambda r: r['created_at'], reverse=True)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCustomer])
def dashboard(request):
    user = request.user
    hotel = hotel_bookings(user)
    bus = bus_bookings(user)
    store = store_orders(user)
    pharmacy = pharmacy_orders(user)

    def total(queryset, field):
        return float(queryset.exclude(status='cancelled').aggregate(
            amount=Sum(field, output_field=MONEY))['amount'] or 0)

    totals = {
        'hotel': total(hotel, 'total_amount'),
        'bus': total(bus, 'total_amount'),
        'store': total(store, 'total'),
        'pharmacy': total(pharmacy, 'total_amount'),
    }
    recent = _newest_first(
        [_hotel_row(b) for b in hotel.order_by('-created_at')[:5]]
        + [_bus_row(b) for b in bus.order_by('-created_at')[:5]]
        + [_store_row(o) for o in store.order_by('-created_at')[:5]]
        + [_pharmacy_row(o) for o in pharmacy.order_by('-created_at')[:5]]
    )[:5]

    return Response({
        'overview': {
            'customer_name': user.name or user.email,
            'hotel_bookings': hotel.count(),
            'bus_bookings': bus.count(),
            'store_orders': store.count(),
            'pharmacy_orders': pharmacy.count(),
            'upcoming_trips': bus.filter(status__in=['pending', 'confirmed']).count(),
            'active_orders': store.exclude(status__in=['delivered', 'cancelled']).count()
            + pharmacy.exclude(status__in=['completed', 'cancelled']).count(),
            'total_spent': round(sum(totals.values()), 2),
            'spent_by_service': totals,
        },
        'recent_activity': recent,
        'unread_messages': Message.objects.filter(recipient=user, is_read=False).count(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCustomer])
def bookings(request):
    """Hotel and bus bookings (?type=hotel|bus, ?status=)"""
    user = request.user
    booking_type = request.query_params.get('type')
    booking_status = request.query_params.get('status')
    rows = []
    if booking_type in (None, '', 'all', 'hotel'):
        rows += [_hotel_row(b) for b in hotel_bookings(user)]
    if booking_type in (None, '', 'all', 'bus'):
        rows += [_bus_row(b) for b in bus_bookings(user)]
    if booking_status and booking_status != 'all':
        rows = [r for r in rows if r['status'] == booking_status]
    return Response({'bookings': _newest_first(rows), 'total': len(rows)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCustomer])
def orders(request):
    """Store and pharmacy orders placed with the customer's e-mail (?type=store|pharmacy)"""
    user = request.user
    order_type = request.query_params.get('type')
    rows = []
    if order_type in (None, '', 'all', 'store'):
        rows += [_store_row(o) for o in store_orders(user)]
    if order_type in (None, '', 'all', 'pharmacy'):
        rows += [_pharmacy_row(o) for o in pharmacy_orders(user)]
    return Response({'orders': _newest_first(rows), 'total': len(rows)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCustomer])
def payments(request):
    """Payment rows derived from bookings and orders, newest first"""
    user = request.user
    rows = (
        [dict(_store_row(o), payment_type='purchase') for o in store_orders(user)]
        + [dict(_pharmacy_row(o), payment_type='purchase') for o in pharmacy_orders(user)]
        + [dict(_hotel_row(b), payment_type='booking') for b in hotel_bookings(user)]
        + [dict(_bus_row(b), payment_type='booking') for b in bus_bookings(user)]
    )
    result = []
    for row in _newest_first(rows):
        result.append({
            'id': f"{row['type']}-{row['id']}",
            'payment_type': row['payment_type'],
            'service_type': row['type'],
            'reference': row['reference'],
            'vendor_name': row['vendor_name'],
            'amount': row['amount'],
            'currency': 'ZMW',
            'status': _payment_state(row['payment_status']),
            'payment_method': row['payment_method'] or 'cash',
            'created_at': row['created_at'],
        })

    summary = {'total_paid': 0.0, 'total_pending': 0.0, 'total_refunded': 0.0}
    for row in result:
        if row['status'] == 'completed':
            summary['total_paid'] += row['amount']
        elif row['status'] == 'refunded':
            summary['total_refunded'] += row['amount']
        else:
            summary['total_pending'] += row['amount']
    return Response({'payments': result, 'summary': summary, 'total': len(result)})


def _settings_payload(user):
    stored = user.settings or {}
    return {
        'name': user.name,
        'email': user.email,
        'phone': user.phone or '',
        'address': user.address or {},
        'preferences': {**DEFAULT_PREFERENCES, **stored.get('preferences', {})},
        'security': {**DEFAULT_SECURITY, **stored.get('security', {})},
    }


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsCustomer])
def customer_settings(request):
    """Contact details plus notification preferences kept in the user's settings JSON"""
    user = request.user
    if request.method == 'GET':
        return Response({'success': True, 'profile': _settings_payload(user)})

    preferences = PreferencesSerializer(data=request.data.get('preferences', {}), partial=True)
    security = SecuritySerializer(data=request.data.get('security', {}), partial=True)
    if not preferences.is_valid():
        return Response({'preferences': preferences.errors}, status=status.HTTP_400_BAD_REQUEST)
    if not security.is_valid():
        return Response({'security': security.errors}, status=status.HTTP_400_BAD_REQUEST)

    stored = dict(user.settings or {})
    stored['preferences'] = {**stored.get('preferences', {}), **preferences.validated_data}
    stored['security'] = {**stored.get('security', {}), **security.validated_data}
    user.settings = stored
    for field in ('name', 'phone'):
        if field in request.data:
            setattr(user, field, request.data[field] or '')
    if isinstance(request.data.get('address'), dict):
        user.address = request.data['address']
    user.save()
    logger.info(f"Customer {user.email} updated settings")
    return Response({'success': True, 'profile': _settings_payload(user)})
