"""
Roles, service types and dashboard module access.

Path based checks mirror the dashboard layout `/dashboard/vendor/<service>/<module>`,
so the same rules drive the API (`auth/me/` allowed modules) and the frontend menus.
"""

SERVICE_TYPE_CHOICES = [
    ('hotel', 'Hotel'),
    ('store', 'Store'),
    ('pharmacy', 'Pharmacy'),
    ('bus', 'Bus'),
]
SERVICE_TYPES = [value for value, _ in SERVICE_TYPE_CHOICES]

ROLE_CHOICES = [
    ('customer', 'Customer'),
    ('super_admin', 'Super Administrator'),
    ('admin', 'Administrator'),
    ('manager', 'Manager'),
    ('receptionist', 'Receptionist'),
    ('housekeeping', 'Housekeeping'),
    ('cashier', 'Cashier'),
    ('inventory_manager', 'Inventory Manager'),
    ('sales_associate', 'Sales Associate'),
    ('pharmacist', 'Pharmacist'),
    ('technician', 'Pharmacy Technician'),
    ('driver', 'Driver'),
    ('conductor', 'Conductor'),
    ('ticket_seller', 'Ticket Seller'),
    ('dispatcher', 'Dispatcher'),
    ('maintenance', 'Maintenance'),
]

VENDOR_ROLES = ('manager', 'admin')
ADMIN_ROLES = ('super_admin', 'admin')

STAFF_ROLES = {
    'hotel': ['receptionist', 'housekeeping'],
    'store': ['cashier', 'inventory_manager', 'sales_associate'],
    'pharmacy': ['pharmacist', 'technician', 'cashier'],
    'bus': ['driver', 'conductor', 'ticket_seller', 'dispatcher', 'maintenance'],
}

BUSINESS_CONFIGS = {
    'hotel': {
        'name': 'Hotel',
        'modules': ['bookings', 'room-management', 'in-house', 'staff', 'customers', 'payments',
                    'inbox', 'analytics', 'reports', 'subscription', 'settings'],
    },
    'store': {
        'name': 'Store',
        'modules': ['products', 'orders', 'customers', 'inventory', 'inbox', 'payments', 'staffs',
                    'subscription', 'analytics', 'settings'],
    },
    'pharmacy': {
        'name': 'Pharmacy',
        'modules': ['medicines', 'orders', 'patients', 'inbox', 'insurance', 'compliance', 'staffs',
                    'subscription', 'settings'],
    },
    'bus': {
        'name': 'Bus Company',
        'modules': ['routes', 'stops', 'fares', 'schedule-trip', 'bookings', 'ticketing', 'inbox',
                    'fleet', 'staffs', 'passengers', 'sending', 'payments', 'analytics',
                    'subscription', 'settings'],
    },
}

# Module prefixes per (service type, staff role)
STAFF_ROLE_MODULES = {
    ('hotel', 'receptionist'): ['bookings', 'customers', 'in-house'],
    ('hotel', 'housekeeping'): ['room-management'],
    ('store', 'cashier'): ['orders', 'customers', 'payments'],
    ('store', 'inventory_manager'): ['products', 'inventory'],
    ('store', 'sales_associate'): ['products', 'orders', 'customers'],
    ('pharmacy', 'pharmacist'): ['medicines', 'orders', 'patients', 'insurance', 'compliance', 'inbox'],
    ('pharmacy', 'technician'): ['medicines', 'orders', 'patients', 'insurance', 'inbox'],
    ('pharmacy', 'cashier'): ['orders', 'patients', 'inbox'],
    ('bus', 'driver'): ['schedule-trip', 'fleet'],
    ('bus', 'conductor'): ['bookings', 'ticketing', 'passengers'],
    ('bus', 'ticket_seller'): ['bookings', 'ticketing', 'passengers', 'payments'],
    ('bus', 'dispatcher'): ['schedule-trip', 'routes', 'sending', 'fleet'],
    ('bus', 'maintenance'): ['fleet'],
}

ADMIN_MODULES = ['admin', 'vendors', 'users', 'staffs', 'subscription', 'statistics', 'settings', 'inbox']


def role_paths(role, service_type):
    return [f'/dashboard/vendor/{service_type}/{module}'
            for module in STAFF_ROLE_MODULES.get((service_type, role), [])]


def has_permission(role, path, service_type=None):
    """Whether a role may open a dashboard path"""
    if role == 'super_admin':
        return True
    if role == 'admin' and path.startswith('/dashboard/admin'):
        return True
    if role in VENDOR_ROLES:
        parts = path.split('/')
        if len(parts) >= 4 and parts[1] == 'dashboard' and parts[2] == 'vendor':
            if service_type and parts[3] != service_type:
                return False
            return path.startswith(f'/dashboard/vendor/{parts[3]}')
    if role == 'customer':
        return path.startswith('/dashboard/customer')
    if service_type:
        return any(path.startswith(prefix) for prefix in role_paths(role, service_type))
    return any(
        path.startswith(prefix)
        for svc in SERVICE_TYPES
        for prefix in role_paths(role, svc)
    )


def get_allowed_modules(role, service_type=None):
    if role == 'super_admin':
        return list(ADMIN_MODULES)
    if role == 'admin' and not service_type:
        return list(ADMIN_MODULES)
    if role in VENDOR_ROLES and service_type:
        return list(BUSINESS_CONFIGS.get(service_type, {}).get('modules', []))
    if service_type:
        return list(STAFF_ROLE_MODULES.get((service_type, role), []))
    return []


def can_access_module(role, module, service_type=None):
    return module in get_allowed_modules(role, service_type)


def is_staff_role(role, service_type):
    return role in STAFF_ROLES.get(service_type, [])


def dashboard_path(role, service_type=None):
    if role in ADMIN_ROLES and not service_type:
        return '/dashboard/admin'
    if role == 'customer':
        return '/dashboard/customer'
    if service_type:
        return f'/dashboard/vendor/{service_type}'
    return '/dashboard'


# Pharmacy access groups
ALL_PHARMACY_ROLES = ['manager', 'admin', 'pharmacist', 'technician', 'cashier']

PHARMACY_PERMISSIONS = {
    'FULL_ACCESS': ['manager', 'admin'],
    'CLINICAL_ACCESS': ['pharmacist', 'technician'],
    'SALES_ACCESS': ['cashier'],
    'MEDICINE_MANAGEMENT': ['pharmacist', 'technician', 'manager', 'admin'],
    'ORDER_MANAGEMENT': ALL_PHARMACY_ROLES,
    'PATIENT_MANAGEMENT': ALL_PHARMACY_ROLES,
    'INSURANCE_MANAGEMENT': ['pharmacist', 'technician', 'manager', 'admin'],
    'COMPLIANCE_MANAGEMENT': ['pharmacist', 'manager', 'admin'],
    'STAFF_MANAGEMENT': ['manager', 'admin'],
    'INBOX_ACCESS': ALL_PHARMACY_ROLES,
}


def check_pharmacy_access(role, service_type, group):
    if service_type != 'pharmacy':
        return False
    return role in PHARMACY_PERMISSIONS[group]
