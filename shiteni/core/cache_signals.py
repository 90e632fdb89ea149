"""
Cache invalidation signals
Automatically invalidate cached dashboards and subscription lookups when data changes
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_dashboard_cache, invalidate_subscription_cache, invalidate_plans_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

# Model name -> service type whose vendor dashboard it feeds
DASHBOARD_MODELS = {
    'Room': 'hotel',
    'Booking': 'hotel',
    'StoreProduct': 'store',
    'StoreOrder': 'store',
    'StoreCustomer': 'store',
    'Medicine': 'pharmacy',
    'Prescription': 'pharmacy',
    'PharmacyOrder': 'pharmacy',
    'Patient': 'pharmacy',
    'Bus': 'bus',
    'BusRoute': 'bus',
    'BusTrip': 'bus',
    'BusBooking': 'bus',
    'BusTicket': 'bus',
    'BusStop': 'bus',
    'BusSchedule': 'bus',
    'BusDispatch': 'bus',
}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_vendor_dashboard(sender, instance, **kwargs):
    """Drop a vendor's cached dashboard when its bookings, orders, stock or fleet change"""
    if is_suspended():
        return

    service_type = DASHBOARD_MODELS.get(sender.__name__)
    if not service_type:
        return
    vendor_id = getattr(instance, 'vendor_id', None)
    if vendor_id:
        invalidate_dashboard_cache(service_type, vendor_id)


@receiver([post_save, post_delete])
def invalidate_subscription_status(sender, instance, **kwargs):
    """Drop the cached active-subscription lookup when a subscription changes"""
    if is_suspended() or sender.__name__ != 'Subscription':
        return
    invalidate_subscription_cache(instance.user_id, instance.service_type)


@receiver([post_save, post_delete])
def invalidate_plan_list(sender, instance, **kwargs):
    if is_suspended() or sender.__name__ != 'SubscriptionPlan':
        return
    invalidate_plans_cache(instance.vendor_type)
    logger.debug(f"Invalidated plans cache for {instance.vendor_type}")
