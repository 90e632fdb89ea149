"""Schedule generation, public timetable and seat booking for bus companies"""
import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from shiteni.core.utils import parse_date
from .models import BusTrip, BusSchedule, BusBooking, DEFAULT_SEATS

logger = logging.getLogger(__name__)

PUBLIC_WINDOW_DAYS = 30
MAX_GENERATE_DAYS = 366


class ScheduleError(Exception):
    """Raised when schedules cannot be generated for the requested range"""


class BookingError(Exception):
    """Raised when a seat cannot be booked"""


def _days(start, end):
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def generate_schedules(trip, start_date, end_date):
    """
    Materialise one BusSchedule per running day of a trip between two dates (inclusive).

    Days that already have a schedule for the trip are skipped. Returns the created schedules.
    """
    if start_date > end_date:
        raise ScheduleError('start_date must be on or before end_date')
    if (end_date - start_date).days >= MAX_GENERATE_DAYS:
        raise ScheduleError(f'Cannot generate more than {MAX_GENERATE_DAYS} days at once')

    existing = set(
        BusSchedule.objects.filter(trip=trip, date__range=(start_date, end_date)).values_list('date', flat=True)
    )
    seats = trip.bus.number_of_seats if trip.bus_id else DEFAULT_SEATS
    fare = trip.route.total_fare()
    days = [day for day in _days(start_date, end_date) if trip.runs_on(day) and day not in existing]
    booked = booked_seats([trip.schedule_key(day) for day in days])

    new = [
        BusSchedule(
            vendor=trip.vendor,
            trip=trip,
            route=trip.route,
            bus=trip.bus,
            departure_time=trip.first_departure,
            arrival_time=trip.first_return,
            date=day,
            total_seats=seats,
            available_seats=max(seats - booked.get(trip.schedule_key(day), 0), 0),
            fare=fare,
        )
        for day in days
    ]
    created = BusSchedule.objects.bulk_create(new)
    logger.info(f"Generated {len(created)} schedules for trip {trip.id} ({start_date} to {end_date})")
    return created


def booked_seats(schedule_keys):
    """Passengers booked per schedule key, cancelled bookings excluded"""
    rows = (
        BusBooking.objects.filter(schedule_key__in=schedule_keys)
        .exclude(status='cancelled')
        .values('schedule_key')
        .annotate(total=Sum('passengers'))
    )
    return {row['schedule_key']: row['total'] or 0 for row in rows}


def _matches(route, wanted, after=None):
    """Order of the first stop whose name contains `wanted`, optionally after a given order"""
    wanted = wanted.strip().lower()
    for stop in route.stops:
        if wanted in stop.get('stop_name', '').lower() and (after is None or stop.get('order') > after):
            return stop.get('order')
    return None


def public_schedules(departure=None, arrival=None, date=None):
    """
    Virtual timetable for the next 30 days of every active trip of an active bus company.

    Returns (schedules, routes) where routes lists the distinct routes involved.
    """
    today = timezone.localdate()
    days = list(_days(today, today + timedelta(days=PUBLIC_WINDOW_DAYS)))
    wanted_day = parse_date(date) if date else None
    if date:
        days = [d for d in days if d == wanted_day]

    trips = BusTrip.objects.filter(
        status='active', vendor__status='active', vendor__service_type='bus'
    ).select_related('bus', 'route', 'vendor')

    candidates = []
    for trip in trips:
        route = trip.route
        if route.status != 'active':
            continue
        start_order = _matches(route, departure) if departure else None
        if departure and start_order is None:
            continue
        if arrival and _matches(route, arrival, after=start_order) is None:
            continue
        for day in days:
            if trip.runs_on(day):
                candidates.append((trip, day))

    booked = booked_seats([trip.schedule_key(day) for trip, day in candidates])

    schedules = []
    routes = {}
    for trip, day in candidates:
        route = trip.route
        seats = trip.bus.number_of_seats if trip.bus_id else DEFAULT_SEATS
        key = trip.schedule_key(day)
        schedules.append({
            'id': key,
            'trip_id': trip.id,
            'trip_name': trip.trip_name,
            'date': day.isoformat(),
            'departure_time': trip.first_departure,
            'return_time': trip.first_return,
            'departure_times': trip.departure_times_to,
            'route_id': route.id,
            'route_name': route.route_name,
            'origin': route.origin,
            'destination': route.destination,
            'stops': route.stops,
            'fare_segments': route.fare_segments,
            'total_fare': float(route.total_fare()),
            'distance': route.estimated_distance(),
            'duration': route.estimated_duration(),
            'bus_name': trip.bus.bus_name,
            'bus_type': trip.bus.bus_type,
            'has_ac': trip.bus.has_ac,
            'amenities': trip.bus.amenities,
            'total_seats': seats,
            'available_seats': max(seats - booked.get(key, 0), 0),
            'company_id': trip.vendor_id,
            'company_name': trip.vendor.display_name,
        })
        routes[route.id] = {
            'id': route.id,
            'route_name': route.route_name,
            'origin': route.origin,
            'destination': route.destination,
            'company_name': trip.vendor.display_name,
        }
    schedules.sort(key=lambda s: (s['date'], s['departure_time']))
    return schedules, list(routes.values())


def _parse_schedule_key(schedule_id):
    trip_id, _, day = (schedule_id or '').partition('_')
    travel_date = parse_date(day)
    if not trip_id.isdigit() or travel_date is None:
        raise BookingError('Invalid schedule id')
    return int(trip_id), travel_date


def create_booking(customer, data):
    """
    Book seats on a trip's departure identified by `{trip_id}_{YYYY-MM-DD}`.

    The fare is the sum of the route segments between the boarding and alighting stops.
    """
    trip_id, travel_date = _parse_schedule_key(data['schedule_id'])
    if travel_date < timezone.localdate():
        raise BookingError('Cannot book a departure in the past')

    with transaction.atomic():
        trip = (
            BusTrip.objects.select_for_update()
            .select_related('bus', 'route', 'vendor')
            .filter(pk=trip_id, status='active').first()
        )
        if trip is None:
            raise BookingError('Trip not found')
        if not trip.runs_on(travel_date):
            raise BookingError('This trip does not run on the selected date')

        route = trip.route
        boarding_order = route.stop_order(data['boarding_stop'])
        alighting_order = route.stop_order(data['alighting_stop'])
        if boarding_order is None or alighting_order is None:
            raise BookingError('Boarding and alighting stops must be on the route')
        if boarding_order >= alighting_order:
            raise BookingError('Alighting stop must come after boarding stop')

        key = trip.schedule_key(travel_date)
        seats = trip.bus.number_of_seats if trip.bus_id else DEFAULT_SEATS
        available = seats - booked_seats([key]).get(key, 0)
        passengers = data['passengers']
        if passengers > available:
            raise BookingError(f'Only {max(available, 0)} seats available')

        fare = route.segment_fare(boarding_order, alighting_order)
        booking = BusBooking.objects.create(
            vendor=trip.vendor,
            booking_number=BusBooking.next_booking_number(),
            customer=customer,
            passenger_name=data['passenger_name'],
            passenger_email=data['passenger_email'].lower(),
            passenger_phone=data['passenger_phone'],
            trip=trip,
            schedule_key=key,
            travel_date=travel_date,
            boarding_stop=data['boarding_stop'].strip(),
            boarding_order=boarding_order,
            alighting_stop=data['alighting_stop'].strip(),
            alighting_order=alighting_order,
            seat_numbers=data.get('seat_numbers') or [],
            passengers=passengers,
            fare=fare,
            total_amount=fare * passengers,
            payment_method=data.get('payment_method', ''),
            special_requests=data.get('special_requests', ''),
        )
        BusSchedule.objects.filter(trip=trip, date=travel_date, available_seats__gte=passengers).update(
            available_seats=F('available_seats') - passengers
        )

    logger.info(f"Bus booking {booking.booking_number} created for {booking.passenger_email}")
    return booking


def release_seats(booking):
    """Give a cancelled booking's seats back to its materialised schedule"""
    if booking.trip_id:
        BusSchedule.objects.filter(
            trip_id=booking.trip_id, date=booking.travel_date,
            available_seats__lte=F('total_seats') - booking.passengers,
        ).update(available_seats=F('available_seats') + booking.passengers)
