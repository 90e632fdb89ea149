import logging
from collections import defaultdict
from datetime import timedelta

from django.db.models import Sum, Count, Q, DecimalField
from django.db.models.functions import TruncDate
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from shiteni.core.cache_utils import get_cached_dashboard, cache_dashboard
from shiteni.core.roles import STAFF_ROLES
from shiteni.core.utils import create_audit_log, daily_number, paginate, parse_date
from shiteni.subscriptions.gating import vendor_view, check_vendor_access
from .models import Bus, BusStop, BusFare, BusRoute, BusTrip, BusSchedule, BusBooking, BusTicket, BusDispatch
from .serializers import (
    BusSerializer, BusStopSerializer, BusFareSerializer, BusRouteSerializer, BusTripSerializer,
    BusScheduleSerializer, GenerateSchedulesSerializer, BusBookingSerializer, BookingCreateSerializer,
    BookingUpdateSerializer, BusTicketSerializer, BusDispatchSerializer,
)
from .services import (
    ScheduleError, BookingError, generate_schedules as build_schedules, public_schedules,
    create_booking, release_seats,
)

logger = logging.getLogger('shiteni.bus')

MONEY = DecimalField(max_digits=14, decimal_places=2)
MAX_ANALYTICS_DAYS = 365

ALL_STAFF = STAFF_ROLES['bus']
FLEET_STAFF = ['driver', 'dispatcher', 'maintenance']
FLEET_WRITERS = ['dispatcher', 'maintenance']
ROUTE_STAFF = ['dispatcher', 'driver', 'conductor', 'ticket_seller']
TRIP_STAFF = ['driver', 'dispatcher']
FARE_STAFF = ['dispatcher', 'ticket_seller']
BOOKING_STAFF = ['conductor', 'ticket_seller']


def _can_write(request, roles=()):
    """Owners (and super admins) always write; staff only with one of `roles`"""
    user = request.user
    return user.role == 'super_admin' or user.pk == request.vendor.pk or user.role in roles


def _forbidden():
    return Response({'error': 'Insufficient permissions'}, status=status.HTTP_403_FORBIDDEN)


def _search(queryset, request, *fields):
    search = request.query_params.get('search')
    if search:
        query = Q()
        for field in fields:
            query |= Q(**{f'{field}__icontains': search})
        queryset = queryset.filter(query)
    item_status = request.query_params.get('status')
    if item_status and item_status != 'all':
        queryset = queryset.filter(status=item_status)
    return queryset


def _list_create(request, model, serializer_class, key, search_fields, writers, label, name_field):
    vendor = request.vendor
    if request.method == 'GET':
        queryset = _search(model.objects.filter(vendor=vendor), request, *search_fields)
        items, pagination = paginate(queryset, request, default_limit=50)
        return Response({key: serializer_class(items, many=True).data, 'pagination': pagination})

    if not _can_write(request, writers):
        return _forbidden()
    serializer = serializer_class(data=request.data, context={'vendor': vendor})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    obj = serializer.save(vendor=vendor)
    create_audit_log(request, action='create', model_name=label, object_id=obj.id,
                     object_name=getattr(obj, name_field))
    return Response(serializer_class(obj).data, status=status.HTTP_201_CREATED)


def _detail(request, obj, serializer_class, writers, label):
    if request.method == 'GET':
        return Response(serializer_class(obj).data)
    if not _can_write(request, writers):
        return _forbidden()

    if request.method in ('PUT', 'PATCH'):
        serializer = serializer_class(obj, data=request.data, partial=request.method == 'PATCH',
                                      context={'vendor': request.vendor})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request, action='delete', model_name=label, object_id=obj.id, object_name=str(obj))
        obj.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Fleet

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=FLEET_STAFF)
def fleet_list_create(request):
    return _list_create(request, Bus, BusSerializer, 'buses', ('bus_name', 'number_plate', 'bus_type'),
                        FLEET_WRITERS, 'Bus', 'number_plate')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=FLEET_STAFF)
def fleet_detail(request, pk):
    bus = get_object_or_404(Bus, pk=pk, vendor=request.vendor)
    return _detail(request, bus, BusSerializer, FLEET_WRITERS, 'Bus')


# Stops

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=['dispatcher'])
def stop_list_create(request):
    return _list_create(request, BusStop, BusStopSerializer, 'stops', ('stop_name', 'district', 'province'),
                        ['dispatcher'], 'BusStop', 'stop_name')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=['dispatcher'])
def stop_detail(request, pk):
    stop = get_object_or_404(BusStop, pk=pk, vendor=request.vendor)
    return _detail(request, stop, BusStopSerializer, ['dispatcher'], 'BusStop')


# Fares

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=FARE_STAFF)
def fare_list_create(request):
    return _list_create(request, BusFare, BusFareSerializer, 'fares', ('route_name', 'origin', 'destination'),
                        (), 'BusFare', 'route_name')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=FARE_STAFF)
def fare_detail(request, pk):
    fare = get_object_or_404(BusFare, pk=pk, vendor=request.vendor)
    return _detail(request, fare, BusFareSerializer, (), 'BusFare')


# Routes

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=ROUTE_STAFF)
def route_list_create(request):
    return _list_create(request, BusRoute, BusRouteSerializer, 'routes', ('route_name',),
                        ['dispatcher'], 'BusRoute', 'route_name')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=ROUTE_STAFF)
def route_detail(request, pk):
    route = get_object_or_404(BusRoute, pk=pk, vendor=request.vendor)
    return _detail(request, route, BusRouteSerializer, ['dispatcher'], 'BusRoute')


# Trips and schedules

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=TRIP_STAFF)
def trip_list_create(request):
    return _list_create(request, BusTrip, BusTripSerializer, 'trips', ('trip_name', 'route__route_name'),
                        ['dispatcher'], 'BusTrip', 'trip_name')


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=TRIP_STAFF)
def trip_detail(request, pk):
    trip = get_object_or_404(BusTrip, pk=pk, vendor=request.vendor)
    return _detail(request, trip, BusTripSerializer, ['dispatcher'], 'BusTrip')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=['dispatcher'])
def generate_schedules(request):
    """Materialise a trip's departures between start_date and end_date"""
    serializer = GenerateSchedulesSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    trip = BusTrip.objects.select_related('bus', 'route').filter(pk=data['trip_id'], vendor=request.vendor).first()
    if trip is None:
        return Response({'error': 'Trip not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        schedules = build_schedules(trip, data['start_date'], data['end_date'])
    except ScheduleError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request, action='schedule_generate', model_name='BusTrip', object_id=trip.id,
                     object_name=trip.trip_name,
                     changes={'start_date': data['start_date'].isoformat(),
                              'end_date': data['end_date'].isoformat(), 'created': len(schedules)})
    return Response({
        'message': f'{len(schedules)} schedules generated',
        'count': len(schedules),
        'schedules': BusScheduleSerializer(schedules, many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def schedules(request):
    """Public timetable for the next 30 days (filters: departure, arrival, date)"""
    results, routes = public_schedules(
        departure=request.query_params.get('departure'),
        arrival=request.query_params.get('arrival'),
        date=request.query_params.get('date'),
    )
    return Response({'schedules': results, 'routes': routes})


# Bookings

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def booking_list_create(request):
    """Customers book and see their own bookings; bus companies see every booking on their trips"""
    user = request.user
    if request.method == 'POST':
        serializer = BookingCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            booking = create_booking(user if user.role == 'customer' else None, serializer.validated_data)
        except BookingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request, action='booking_create', model_name='BusBooking', object_id=booking.id,
                         object_reference=booking.booking_number,
                         changes={'total_amount': str(booking.total_amount)})
        return Response({'message': 'Booking created successfully',
                         'booking': BusBookingSerializer(booking).data}, status=status.HTTP_201_CREATED)

    if user.role == 'customer':
        bookings = BusBooking.objects.filter(Q(customer=user) | Q(passenger_email__iexact=user.email))
    else:
        vendor, error = check_vendor_access(request, 'bus', roles=BOOKING_STAFF)
        if error is not None:
            return error
        bookings = BusBooking.objects.filter(vendor=vendor)

    bookings = _search(bookings.select_related('trip__route', 'vendor'), request,
                       'booking_number', 'passenger_name', 'passenger_email', 'passenger_phone')
    travel_date = parse_date(request.query_params.get('date'))
    if travel_date:
        bookings = bookings.filter(travel_date=travel_date)
    items, pagination = paginate(bookings, request, default_limit=20)
    return Response({'bookings': BusBookingSerializer(items, many=True).data, 'pagination': pagination})


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def booking_detail(request, pk):
    user = request.user
    booking = get_object_or_404(BusBooking.objects.select_related('trip__route', 'vendor'), pk=pk)

    if user.role == 'customer':
        if booking.customer_id != user.pk and booking.passenger_email.lower() != user.email.lower():
            return Response({'error': 'Booking not found'}, status=status.HTTP_404_NOT_FOUND)
        if request.method == 'GET':
            return Response(BusBookingSerializer(booking).data)
        if request.method == 'DELETE' or request.data.get('status') != 'cancelled':
            return Response({'error': 'Customers can only cancel their bookings'},
                            status=status.HTTP_403_FORBIDDEN)
    else:
        vendor, error = check_vendor_access(request, 'bus', roles=BOOKING_STAFF)
        if error is not None:
            return error
        if booking.vendor_id != vendor.pk:
            return Response({'error': 'Booking not found'}, status=status.HTTP_404_NOT_FOUND)
        if request.method == 'GET':
            return Response(BusBookingSerializer(booking).data)

    if request.method == 'DELETE':
        if booking.status not in ('cancelled', 'completed'):
            release_seats(booking)
        create_audit_log(request, action='delete', model_name='BusBooking', object_id=booking.id,
                         object_reference=booking.booking_number)
        booking.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    previous_status = booking.status
    if previous_status == 'cancelled' and request.data.get('status', previous_status) != 'cancelled':
        return Response({'error': 'Cancelled bookings cannot be reopened'}, status=status.HTTP_400_BAD_REQUEST)
    payload = {'status': 'cancelled'} if user.role == 'customer' else request.data
    serializer = BookingUpdateSerializer(booking, data=payload, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    booking = serializer.save()
    if booking.status != previous_status:
        if booking.status == 'cancelled':
            release_seats(booking)
        create_audit_log(request, action='status_change', model_name='BusBooking', object_id=booking.id,
                         object_reference=booking.booking_number,
                         changes={'status': [previous_status, booking.status]})
    return Response(BusBookingSerializer(booking).data)


# Tickets

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=BOOKING_STAFF)
def ticket_list_create(request):
    vendor = request.vendor
    if request.method == 'GET':
        tickets = _search(BusTicket.objects.filter(vendor=vendor).select_related('trip', 'bus'), request,
                          'ticket_number', 'passenger_name', 'passenger_phone')
        departure_date = parse_date(request.query_params.get('date'))
        if departure_date:
            tickets = tickets.filter(departure_date=departure_date)
        items, pagination = paginate(tickets, request, default_limit=20)
        return Response({'tickets': BusTicketSerializer(items, many=True).data, 'pagination': pagination})

    serializer = BusTicketSerializer(data=request.data, context={'vendor': vendor})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    trip = data.get('trip')
    ticket = serializer.save(
        vendor=vendor,
        ticket_number=BusTicket.next_ticket_number(),
        bus=data.get('bus') or (trip.bus if trip else None),
        route_name=data.get('route_name') or (trip.route.route_name if trip else ''),
        sold_by=request.user,
        sold_by_name=request.user.name or request.user.email,
    )
    create_audit_log(request, action='create', model_name='BusTicket', object_id=ticket.id,
                     object_reference=ticket.ticket_number, changes={'fare': str(ticket.fare)})
    logger.info(f"Ticket {ticket.ticket_number} sold by {request.user.email}")
    return Response(BusTicketSerializer(ticket).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=BOOKING_STAFF)
def ticket_detail(request, pk):
    ticket = get_object_or_404(BusTicket, pk=pk, vendor=request.vendor)
    return _detail(request, ticket, BusTicketSerializer, BOOKING_STAFF, 'BusTicket')


# Sending (parcels)

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=['dispatcher'])
def dispatch_list_create(request):
    vendor = request.vendor
    if request.method == 'GET':
        dispatches = _search(BusDispatch.objects.filter(vendor=vendor).select_related('trip', 'bus'), request,
                             'dispatch_id', 'sender_name', 'receiver_name', 'receiver_contact')
        items, pagination = paginate(dispatches, request, default_limit=20)
        return Response({'dispatches': BusDispatchSerializer(items, many=True).data, 'pagination': pagination})

    serializer = BusDispatchSerializer(data=request.data, context={'vendor': vendor})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    dispatch = serializer.save(vendor=vendor, dispatch_id=daily_number(BusDispatch, vendor, 'DSP', 'dispatch_id'))
    create_audit_log(request, action='create', model_name='BusDispatch', object_id=dispatch.id,
                     object_reference=dispatch.dispatch_id)
    return Response(BusDispatchSerializer(dispatch).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=['dispatcher'])
def dispatch_detail(request, pk):
    dispatch = get_object_or_404(BusDispatch, pk=pk, vendor=request.vendor)
    return _detail(request, dispatch, BusDispatchSerializer, ['dispatcher'], 'BusDispatch')


# Payments, analytics and dashboard

@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=['ticket_seller'])
def payment_list(request):
    """Online bookings and counter tickets as one payment list, newest first"""
    vendor = request.vendor
    bookings = BusBooking.objects.filter(vendor=vendor)
    tickets = BusTicket.objects.filter(vendor=vendor)
    payment_status = request.query_params.get('payment_status')
    if payment_status:
        bookings = bookings.filter(payment_status=payment_status)
        tickets = tickets.filter(payment_status=payment_status)

    rows = [
        {
            'id': f'booking-{booking.id}',
            'source': 'booking',
            'reference': booking.booking_number,
            'passenger_name': booking.passenger_name,
            'amount': float(booking.total_amount),
            'payment_status': booking.payment_status,
            'payment_method': booking.payment_method,
            'date': booking.created_at,
        }
        for booking in bookings
    ] + [
        {
            'id': f'ticket-{ticket.id}',
            'source': 'ticket',
            'reference': ticket.ticket_number,
            'passenger_name': ticket.passenger_name,
            'amount': float(ticket.fare),
            'payment_status': ticket.payment_status,
            'payment_method': ticket.payment_method,
            'date': ticket.created_at,
        }
        for ticket in tickets
    ]
    rows.sort(key=lambda r: r['date'], reverse=True)

    summary = defaultdict(float)
    for row in rows:
        summary['total'] += row['amount']
        summary[row['payment_status']] += row['amount']

    try:
        page = max(int(request.query_params.get('page', 1)), 1)
        limit = min(max(int(request.query_params.get('limit', 20)), 1), 100)
    except (TypeError, ValueError):
        page, limit = 1, 20
    start = (page - 1) * limit
    return Response({
        'payments': rows[start:start + limit],
        'summary': {
            'total': round(summary['total'], 2),
            'paid': round(summary['paid'], 2),
            'pending': round(summary['pending'], 2),
            'refunded': round(summary['refunded'], 2),
            'bookings': bookings.count(),
            'tickets': tickets.count(),
        },
        'pagination': {'page': page, 'limit': limit, 'total': len(rows), 'pages': -(-len(rows) // limit)},
    })


def _top_routes(bookings, tickets, limit=5):
    routes = defaultdict(lambda: {'bookings': 0, 'tickets': 0, 'revenue': 0.0})
    for row in bookings.values('trip__route__route_name').annotate(
            count=Count('id'), revenue=Sum('total_amount', output_field=MONEY)):
        entry = routes[row['trip__route__route_name'] or 'Unknown']
        entry['bookings'] += row['count']
        entry['revenue'] += float(row['revenue'] or 0)
    for row in tickets.values('route_name').annotate(count=Count('id'), revenue=Sum('fare', output_field=MONEY)):
        entry = routes[row['route_name'] or 'Unknown']
        entry['tickets'] += row['count']
        entry['revenue'] += float(row['revenue'] or 0)
    ranked = sorted(routes.items(), key=lambda item: item[1]['revenue'], reverse=True)[:limit]
    return [{'route_name': name, **values} for name, values in ranked]


def _fleet_utilisation(vendor, start, end, bookings, tickets):
    """Seats sold over seats offered by every departure in the period, per bus"""
    buses = Bus.objects.filter(vendor=vendor)
    trips = list(BusTrip.objects.filter(vendor=vendor, status='active').select_related('bus'))
    seats_offered = defaultdict(int)
    day = start
    while day <= end:
        for trip in trips:
            if trip.runs_on(day):
                seats_offered[trip.bus_id] += trip.bus.number_of_seats * max(len(trip.departure_times_to), 1)
        day += timedelta(days=1)

    seats_sold = defaultdict(int)
    for row in bookings.values('trip__bus').annotate(seats=Sum('passengers')):
        seats_sold[row['trip__bus']] += row['seats'] or 0
    for row in tickets.values('bus').annotate(seats=Count('id')):
        seats_sold[row['bus']] += row['seats']

    result = []
    for bus in buses:
        offered = seats_offered.get(bus.id, 0)
        sold = seats_sold.get(bus.id, 0)
        result.append({
            'bus_id': bus.id,
            'bus_name': bus.bus_name,
            'number_plate': bus.number_plate,
            'seats_offered': offered,
            'seats_sold': sold,
            'utilisation': round(sold / offered * 100, 1) if offered else 0.0,
        })
    total_offered = sum(seats_offered.values())
    total_sold = sum(r['seats_sold'] for r in result)
    return {
        'overall': round(total_sold / total_offered * 100, 1) if total_offered else 0.0,
        'buses': result,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=[])
def analytics(request):
    """Bookings and ticket revenue over the last `days` days (default 30)"""
    try:
        days = min(max(int(request.query_params.get('days', 30)), 1), MAX_ANALYTICS_DAYS)
    except (TypeError, ValueError):
        days = 30
    vendor = request.vendor
    today = timezone.localdate()
    start = today - timedelta(days=days - 1)

    bookings = BusBooking.objects.filter(vendor=vendor, created_at__date__gte=start,
                                         status__in=BusBooking.REVENUE_STATUSES)
    tickets = BusTicket.objects.filter(vendor=vendor, created_at__date__gte=start,
                                       status__in=BusTicket.REVENUE_STATUSES)
    booking_revenue = float(bookings.aggregate(total=Sum('total_amount', output_field=MONEY))['total'] or 0)
    ticket_revenue = float(tickets.aggregate(total=Sum('fare', output_field=MONEY))['total'] or 0)

    daily = defaultdict(lambda: {'bookings': 0.0, 'tickets': 0.0})
    for row in bookings.annotate(day=TruncDate('created_at')).values('day').annotate(
            revenue=Sum('total_amount', output_field=MONEY)):
        daily[row['day']]['bookings'] = float(row['revenue'] or 0)
    for row in tickets.annotate(day=TruncDate('created_at')).values('day').annotate(
            revenue=Sum('fare', output_field=MONEY)):
        daily[row['day']]['tickets'] = float(row['revenue'] or 0)
    series = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        values = daily.get(day, {'bookings': 0.0, 'tickets': 0.0})
        series.append({
            'date': day.isoformat(),
            'label': day.strftime('%b %d'),
            'bookings': values['bookings'],
            'tickets': values['tickets'],
            'revenue': values['bookings'] + values['tickets'],
        })

    passengers = (bookings.aggregate(total=Sum('passengers'))['total'] or 0) + tickets.count()
    return Response({
        'period_days': days,
        'metrics': {
            'total_revenue': booking_revenue + ticket_revenue,
            'booking_revenue': booking_revenue,
            'ticket_revenue': ticket_revenue,
            'total_bookings': bookings.count(),
            'total_tickets': tickets.count(),
            'total_passengers': passengers,
            'cancelled_bookings': BusBooking.objects.filter(vendor=vendor, created_at__date__gte=start,
                                                            status='cancelled').count(),
        },
        'daily_revenue': series,
        'top_routes': _top_routes(bookings, tickets),
        'fleet_utilisation': _fleet_utilisation(vendor, start, today, bookings, tickets),
    })


def build_bus_dashboard(vendor):
    today = timezone.localdate()
    buses = Bus.objects.filter(vendor=vendor)
    bookings = BusBooking.objects.filter(vendor=vendor)
    tickets = BusTicket.objects.filter(vendor=vendor)
    booking_revenue = bookings.filter(status__in=BusBooking.REVENUE_STATUSES).aggregate(
        total=Sum('total_amount', output_field=MONEY),
        today=Sum('total_amount', filter=Q(created_at__date=today), output_field=MONEY),
    )
    ticket_revenue = tickets.filter(status__in=BusTicket.REVENUE_STATUSES).aggregate(
        total=Sum('fare', output_field=MONEY),
        today=Sum('fare', filter=Q(created_at__date=today), output_field=MONEY),
    )
    return {
        'stats': {
            'total_buses': buses.count(),
            'active_buses': buses.filter(status='active').count(),
            'buses_in_maintenance': buses.filter(status='maintenance').count(),
            'total_routes': BusRoute.objects.filter(vendor=vendor).count(),
            'active_trips': BusTrip.objects.filter(vendor=vendor, status='active').count(),
            'total_stops': BusStop.objects.filter(vendor=vendor).count(),
            'upcoming_departures': BusSchedule.objects.filter(
                vendor=vendor, date__gte=today, status='scheduled').count(),
            'total_bookings': bookings.count(),
            'today_bookings': bookings.filter(created_at__date=today).count(),
            'pending_bookings': bookings.filter(status='pending').count(),
            'tickets_sold': tickets.exclude(status__in=['cancelled', 'refunded']).count(),
            'tickets_today': tickets.filter(created_at__date=today).count(),
            'parcels_in_transit': BusDispatch.objects.filter(vendor=vendor, status='in_transit').count(),
            'total_revenue': float(booking_revenue['total'] or 0) + float(ticket_revenue['total'] or 0),
            'today_revenue': float(booking_revenue['today'] or 0) + float(ticket_revenue['today'] or 0),
        },
        'charts': {
            'booking_status': list(bookings.values('status').annotate(count=Count('id')).order_by('status')),
            'fleet_status': list(buses.values('status').annotate(count=Count('id')).order_by('status')),
        },
        'recent_bookings': BusBookingSerializer(bookings.select_related('trip__route', 'vendor')[:5], many=True).data,
        'recent_tickets': BusTicketSerializer(tickets.select_related('trip', 'bus')[:5], many=True).data,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('bus', roles=ALL_STAFF)
def dashboard(request):
    cached, cache_key = get_cached_dashboard('bus', request.vendor.id)
    if cached is not None:
        return Response(cached)
    data = build_bus_dashboard(request.vendor)
    cache_dashboard(cache_key, data)
    return Response(data)
