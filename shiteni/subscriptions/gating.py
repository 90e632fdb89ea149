"""
Access gate for vendor endpoints.

`vendor_view` resolves the vendor the caller acts for, enforces vendor approval and
staff roles, and refuses access without an active subscription (HTTP 402).
"""
import logging
from functools import wraps

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.response import Response

from shiteni.core.permissions import resolve_vendor, vendor_access_error
from shiteni.core.roles import check_pharmacy_access
from .services import has_active_subscription

logger = logging.getLogger(__name__)

User = get_user_model()

SUBSCRIPTION_REQUIRED = {
    'error': 'Subscription required',
    'message': 'You need an active subscription to access this feature',
    'subscription_required': True,
}


def subscription_required_response():
    return Response(dict(SUBSCRIPTION_REQUIRED), status=status.HTTP_402_PAYMENT_REQUIRED)


def _super_admin_vendor(request, service_type):
    vendor_id = request.query_params.get('vendor')
    if not vendor_id:
        return None
    return User.objects.filter(pk=vendor_id, service_type=service_type, institution__isnull=True).first()


def check_vendor_access(request, service_type, roles=None, pharmacy_group=None, subscription=True):
    """Return (vendor, None) when the caller may act for a vendor, else (None, error Response)"""
    user = request.user
    if user.role == 'super_admin':
        vendor = _super_admin_vendor(request, service_type)
        if vendor is None:
            return None, Response({'error': 'vendor query parameter is required'},
                                  status=status.HTTP_400_BAD_REQUEST)
        return vendor, None

    vendor = resolve_vendor(user, service_type)
    error = vendor_access_error(user, vendor, service_type)
    if error:
        return None, Response({'error': error[0]}, status=error[1])

    is_owner = user.pk == vendor.pk
    if roles is not None and not is_owner and user.role not in roles:
        return None, Response({'error': 'Insufficient permissions'}, status=status.HTTP_403_FORBIDDEN)
    if pharmacy_group and not check_pharmacy_access(user.role, user.service_type, pharmacy_group):
        return None, Response({'error': 'Insufficient permissions'}, status=status.HTTP_403_FORBIDDEN)

    if subscription and not has_active_subscription(vendor, service_type):
        logger.info(f"Blocked {user.email}: no active {service_type} subscription for vendor {vendor.id}")
        return None, subscription_required_response()
    return vendor, None


def vendor_view(service_type, roles=None, pharmacy_group=None, subscription=True):
    """
    Decorate a DRF function view (below @api_view) so it runs with `request.vendor` set.

    roles: staff roles allowed in addition to the vendor owner; [] admits the owner only
    and None skips the role check.
    pharmacy_group: PHARMACY_PERMISSIONS group the caller's role must belong to.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(request, *args, **kwargs):
            vendor, error = check_vendor_access(request, service_type, roles=roles,
                                                pharmacy_group=pharmacy_group, subscription=subscription)
            if error is not None:
                return error
            request.vendor = vendor
            return func(request, *args, **kwargs)
        return wrapper
    return decorator
