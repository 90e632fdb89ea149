"""Utility functions for audit logging, pagination and formatting"""
import logging
import math
import secrets
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from .models import AuditLog

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    'ZMW': 'K',
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
    'ZAR': 'R',
}


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, booking_create, dispense, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., room number, medicine name)
        object_reference: Reference identifier (e.g., booking number, invoice number)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        with transaction.atomic():
            return AuditLog.objects.create(
                user=audit_user if audit_user and audit_user.is_authenticated else None,
                action=action,
                model_name=model_name,
                object_id=str(object_id),
                object_name=object_name,
                object_reference=object_reference,
                changes=changes or {},
                ip_address=ip_address
            )
    except Exception as e:
        # Audit failures never break the calling operation
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def paginate(queryset, request, default_limit=10, max_limit=100):
    """Slice a queryset using ?page=&limit= and return (items, pagination)"""
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(max(int(request.query_params.get('limit', default_limit)), 1), max_limit)
    except (TypeError, ValueError):
        limit = default_limit

    total = queryset.count()
    start = (page - 1) * limit
    items = queryset[start:start + limit]
    return items, {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': math.ceil(total / limit) if total else 0,
    }


def parse_date(value):
    """Parse YYYY-MM-DD (or a full ISO timestamp) into a date, None when invalid"""
    if not value:
        return None
    try:
        return datetime.strptime(value[:10], '%Y-%m-%d').date()
    except (TypeError, ValueError):
        return None


def to_decimal(value, default=Decimal('0.00')):
    if value in (None, ''):
        return default
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def format_currency(amount, currency='ZMW'):
    """Format an amount with its currency symbol, e.g. K1,250.00"""
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    return f"{symbol}{Decimal(str(amount or 0)):,.2f}"


def generate_token(nbytes=32):
    return secrets.token_hex(nbytes)


def today():
    return timezone.localdate()


def daily_number(model, vendor, prefix, field):
    """Per-vendor daily sequence such as PH250314001 (prefix, yymmdd, 3-digit counter)"""
    today = timezone.localdate()
    stamp = today.strftime('%y%m%d')
    count = model.objects.filter(vendor=vendor, created_at__date=today).count() + 1
    number = f"{prefix}{stamp}{count:03d}"
    while model.objects.filter(vendor=vendor, **{field: number}).exists():
        count += 1
        number = f"{prefix}{stamp}{count:03d}"
    return number
