"""Tenancy and role checks shared by the vertical apps"""
from rest_framework.permissions import BasePermission

from .roles import ADMIN_ROLES, VENDOR_ROLES, is_staff_role

SERVICE_LABELS = {
    'hotel': 'Hotel',
    'store': 'Store',
    'pharmacy': 'Pharmacy',
    'bus': 'Bus',
}

VENDOR_APPROVAL_MESSAGE = (
    'Vendor approval required. Your account is pending approval by an administrator.'
)


class IsPlatformAdmin(BasePermission):
    """super_admin and admin accounts (and Django superusers)"""
    message = 'Admin access required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and (user.is_superuser or user.role in ADMIN_ROLES))


class IsCustomer(BasePermission):
    message = 'Customer access required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.role == 'customer')


def resolve_vendor(user, service_type=None):
    """
    Return the vendor account a user acts for.

    Vendor owners (manager/admin with a service type) act for themselves, staff act for
    their institution. Returns None when the user has no vendor for the service type.
    """
    if not user or not user.is_authenticated:
        return None
    if service_type and user.service_type != service_type:
        return None
    if user.is_vendor_owner:
        return user
    if user.institution_id and is_staff_role(user.role, user.service_type):
        return user.institution
    return None


def vendor_access_error(user, vendor, service_type=None):
    """Return (message, status) when the user may not act for the vendor, else None"""
    if vendor is None:
        label = SERVICE_LABELS.get(service_type, 'Vendor')
        return f'Access denied. {label} staff only.', 403
    if vendor.role == 'manager' and vendor.status != 'active':
        return VENDOR_APPROVAL_MESSAGE, 403
    if user.pk != vendor.pk and user.status != 'active':
        return 'Your staff account is not active', 403
    return None


def is_vendor_manager(user, vendor):
    """Owners manage their business; staff never do"""
    return user.pk == vendor.pk and user.role in VENDOR_ROLES
