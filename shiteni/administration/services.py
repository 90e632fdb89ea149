"""
Platform-wide reporting for administrators.

Compliance scores are generated, not measured: every vendor gets a score drawn from a
band that depends on its account status. The draw is seeded with the vendor id and the
reporting period so the same report is returned on every request and in exports.
"""
import logging
import random
from collections import defaultdict
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db.models import Q, Sum, Count, DecimalField
from django.db.models.functions import TruncMonth
from django.utils import timezone

from shiteni.bus.models import BusBooking
from shiteni.core.permissions import SERVICE_LABELS
from shiteni.core.roles import SERVICE_TYPES, VENDOR_ROLES
from shiteni.hotel.models import Booking
from shiteni.pharmacy.models import PharmacyOrder
from shiteni.store.models import StoreOrder

logger = logging.getLogger(__name__)

User = get_user_model()

MONEY = DecimalField(max_digits=14, decimal_places=2)

RANGE_DAYS = {
    '7d': 7,
    '30d': 30,
    '90d': 90,
    '1y': 365,
}

COMPLIANCE_PERIODS = ['current', 'last_quarter', 'last_year']


def vendors():
    """Vendor owner accounts"""
    return User.objects.filter(role__in=VENDOR_ROLES, service_type__isnull=False, institution__isnull=True)


def range_start(range_key):
    days = RANGE_DAYS.get(range_key, 30)
    return timezone.now() - timedelta(days=days), days


def _pct_change(current, previous):
    if not previous:
        return 100.0 if current else 0.0
    return round((current - previous) / previous * 100, 1)


# Revenue sources: (model, amount field, statuses that count as earned)
REVENUE_SOURCES = [
    (StoreOrder, 'total', StoreOrder.REVENUE_STATUSES),
    (PharmacyOrder, 'total_amount', PharmacyOrder.REVENUE_STATUSES),
    (Booking, 'total_amount', ['confirmed', 'checked-in', 'checked-out']),
    (BusBooking, 'total_amount', BusBooking.REVENUE_STATUSES),
]


def revenue_between(start, end):
    total = 0.0
    for model, field, statuses in REVENUE_SOURCES:
        value = model.objects.filter(status__in=statuses, created_at__gte=start, created_at__lt=end).aggregate(
            amount=Sum(field, output_field=MONEY))['amount']
        total += float(value or 0)
    return total


def orders_between(start, end):
    return (StoreOrder.objects.filter(created_at__gte=start, created_at__lt=end).count()
            + PharmacyOrder.objects.filter(created_at__gte=start, created_at__lt=end).count())


def overview(range_key):
    """Users, vendors, orders and revenue in the range, with growth against the previous range"""
    now = timezone.now()
    start, days = range_start(range_key)
    previous_start = start - timedelta(days=days)

    def counts(begin, end):
        return {
            'users': User.objects.filter(created_at__gte=begin, created_at__lt=end).count(),
            'vendors': vendors().filter(created_at__gte=begin, created_at__lt=end).count(),
            'orders': orders_between(begin, end),
            'revenue': revenue_between(begin, end),
        }

    current = counts(start, now)
    previous = counts(previous_start, start)
    return {
        'total_users': User.objects.count(),
        'total_vendors': vendors().count(),
        'total_orders': StoreOrder.objects.count() + PharmacyOrder.objects.count(),
        'total_bookings': Booking.objects.count() + BusBooking.objects.count(),
        'new_users': current['users'],
        'new_vendors': current['vendors'],
        'orders': current['orders'],
        'revenue': round(current['revenue'], 2),
        'user_growth': _pct_change(current['users'], previous['users']),
        'vendor_growth': _pct_change(current['vendors'], previous['vendors']),
        'order_growth': _pct_change(current['orders'], previous['orders']),
        'revenue_growth': _pct_change(current['revenue'], previous['revenue']),
    }


def _month_starts(months):
    today = timezone.localdate().replace(day=1)
    starts = []
    for _ in range(months):
        starts.append(today)
        today = (today - timedelta(days=1)).replace(day=1)
    return list(reversed(starts))


def monthly_series(months=6):
    """(user_growth, revenue_data) for the last `months` calendar months"""
    starts = _month_starts(months)
    first = starts[0]

    users = defaultdict(int)
    for row in User.objects.filter(created_at__date__gte=first).annotate(
            month=TruncMonth('created_at')).values('month').annotate(count=Count('id')):
        users[row['month'].date() if hasattr(row['month'], 'date') else row['month']] = row['count']
    new_vendors = defaultdict(int)
    for row in vendors().filter(created_at__date__gte=first).annotate(
            month=TruncMonth('created_at')).values('month').annotate(count=Count('id')):
        new_vendors[row['month'].date() if hasattr(row['month'], 'date') else row['month']] = row['count']

    revenue = defaultdict(float)
    volume = defaultdict(int)
    for model, field, statuses in REVENUE_SOURCES:
        for row in model.objects.filter(status__in=statuses, created_at__date__gte=first).annotate(
                month=TruncMonth('created_at')).values('month').annotate(
                total=Sum(field, output_field=MONEY), count=Count('id')):
            month = row['month'].date() if hasattr(row['month'], 'date') else row['month']
            revenue[month] += float(row['total'] or 0)
            volume[month] += row['count']

    user_growth = [
        {'month': start.strftime('%b'), 'year': start.year, 'users': users[start], 'vendors': new_vendors[start]}
        for start in starts
    ]
    revenue_data = [
        {'month': start.strftime('%b'), 'year': start.year, 'revenue': round(revenue[start], 2),
         'orders': volume[start]}
        for start in starts
    ]
    return user_growth, revenue_data


def business_stats():
    rows = {
        row['service_type']: row
        for row in vendors().values('service_type').annotate(total=Count('id'))
    }
    active = {
        row['service_type']: row['total']
        for row in vendors().filter(status='active').values('service_type').annotate(total=Count('id'))
    }
    return {
        service_type: {
            'label': SERVICE_LABELS[service_type],
            'total': rows.get(service_type, {}).get('total', 0),
            'active': active.get(service_type, 0),
        }
        for service_type in SERVICE_TYPES
    }


def top_store_products(limit=5):
    """Store products ranked by ordered quantity across all stores"""
    products = defaultdict(lambda: {'sales': 0, 'revenue': 0.0})
    for items in StoreOrder.objects.exclude(status='cancelled').values_list('items', flat=True):
        for item in items or []:
            entry = products[item.get('name') or 'Unknown Product']
            quantity = int(item.get('quantity') or 1)
            entry['sales'] += quantity
            entry['revenue'] += float(item.get('total') or float(item.get('price') or 0) * quantity)
    ranked = sorted(products.items(), key=lambda p: (p[1]['sales'], p[1]['revenue']), reverse=True)[:limit]
    return [{'name': name, 'sales': data['sales'], 'revenue': round(data['revenue'], 2)} for name, data in ranked]


def recent_activity(limit=5):
    activity = []
    for order in StoreOrder.objects.order_by('-created_at')[:limit]:
        activity.append({'type': 'order', 'description': f"New store order {order.order_number}",
                         'amount': float(order.total), 'timestamp': order.created_at})
    for order in PharmacyOrder.objects.order_by('-created_at')[:limit]:
        activity.append({'type': 'order', 'description': f"New pharmacy order {order.order_number}",
                         'amount': float(order.total_amount), 'timestamp': order.created_at})
    for booking in Booking.objects.order_by('-created_at')[:limit]:
        activity.append({'type': 'booking', 'description': f"New hotel booking {booking.booking_number}",
                         'amount': float(booking.total_amount), 'timestamp': booking.created_at})
    for booking in BusBooking.objects.order_by('-created_at')[:limit]:
        activity.append({'type': 'booking', 'description': f"New bus booking {booking.booking_number}",
                         'amount': float(booking.total_amount), 'timestamp': booking.created_at})
    for user in User.objects.order_by('-created_at')[:limit]:
        activity.append({'type': 'user', 'description': f"New {user.role} registered",
                         'timestamp': user.created_at})
    activity.sort(key=lambda a: a['timestamp'], reverse=True)
    return activity[:limit]


def platform_statistics(range_key):
    user_growth, revenue_data = monthly_series()
    return {
        'range': range_key if range_key in RANGE_DAYS else '30d',
        'overview': overview(range_key),
        'user_growth': user_growth,
        'revenue_data': revenue_data,
        'business_stats': business_stats(),
        'top_products': top_store_products(),
        'recent_activity': recent_activity(),
    }


# Compliance

def period_label(period, today=None):
    today = today or timezone.localdate()
    quarter = (today.month - 1) // 3 + 1
    if period == 'last_quarter':
        year, quarter = (today.year - 1, 4) if quarter == 1 else (today.year, quarter - 1)
        return f"Q{quarter} {year}"
    if period == 'last_year':
        return str(today.year - 1)
    return f"Q{quarter} {today.year}"


def compliance_rating(score):
    if score >= 90:
        return 'Excellent'
    if score >= 80:
        return 'Good'
    if score >= 70:
        return 'Fair'
    return 'Poor'


def compliance_score(vendor, period):
    """Return (score, violations, recommendations) for a vendor in a period"""
    rng = random.Random(f"{vendor.pk}:{period}")
    if vendor.status == 'active':
        return rng.randint(85, 100), 0, rng.randint(1, 5)
    return rng.randint(60, 80), rng.randint(1, 3), rng.randint(1, 5)


def compliance_report(period='current', service_type=None):
    period = period if period in COMPLIANCE_PERIODS else 'current'
    label = period_label(period)
    queryset = vendors().order_by('-created_at')
    if service_type:
        queryset = queryset.filter(service_type=service_type)

    reports = []
    for vendor in queryset:
        score, violations, recommendations = compliance_score(vendor, period)
        submitted = vendor.created_at.date()
        reports.append({
            'id': vendor.id,
            'institution': vendor.display_name,
            'institution_type': vendor.service_type,
            'report_type': f"{SERVICE_LABELS.get(vendor.service_type, 'General')} Compliance",
            'period': label,
            'status': {'active': 'approved', 'pending': 'under_review'}.get(vendor.status, 'rejected'),
            'vendor_status': vendor.status,
            'score': score,
            'rating': compliance_rating(score),
            'violations': violations,
            'recommendations': recommendations,
            'submitted_date': submitted,
            'next_due': submitted + timedelta(days=90),
            'registration_date': vendor.created_at,
        })

    total = len(reports)
    metrics = {
        'total_vendors': total,
        'approved_reports': sum(1 for r in reports if r['status'] == 'approved'),
        'under_review_reports': sum(1 for r in reports if r['status'] == 'under_review'),
        'rejected_reports': sum(1 for r in reports if r['status'] == 'rejected'),
        'average_score': round(sum(r['score'] for r in reports) / total) if total else 0,
        'total_violations': sum(r['violations'] for r in reports),
        'total_recommendations': sum(r['recommendations'] for r in reports),
    }
    return {'period': label, 'reports': reports, 'metrics': metrics}


def compliance_export_rows(period='current'):
    """Flat rows for a spreadsheet export of the compliance report"""
    report = compliance_report(period)
    rows = [
        {
            'Vendor': r['institution'],
            'Service Type': r['institution_type'],
            'Status': r['vendor_status'],
            'Compliance Score': r['score'],
            'Compliance Rating': r['rating'],
            'Violations': r['violations'],
            'Recommendations': r['recommendations'],
            'Registration Date': r['registration_date'].date().isoformat(),
            'Next Due': r['next_due'].isoformat(),
        }
        for r in report['reports']
    ]
    return report['period'], rows


# Promotions

def promotion_recipients(audience, vendor_type=None, vendor_id=None):
    """Active accounts addressed by a promotion audience"""
    users = User.objects.filter(is_active=True).exclude(email='')
    if audience == 'customers':
        return users.filter(role='customer')
    if audience in ('vendors', 'all_vendors'):
        return users.filter(pk__in=vendors())
    if audience == 'specific_vendor_type':
        return users.filter(pk__in=vendors().filter(service_type=vendor_type))
    if audience == 'specific_vendor':
        return users.filter(pk__in=vendors().filter(pk=vendor_id))
    return users.filter(Q(role='customer') | Q(pk__in=vendors()))
