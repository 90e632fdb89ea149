"""Subscription lifecycle: lookups, activation and payment-status syncing"""
import calendar
import logging
import uuid

from django.core.cache import cache
from django.utils import timezone

from shiteni.core.cache_utils import subscription_cache_key, SUBSCRIPTION_STATUS_CACHE_TTL
from .models import Subscription, BillingHistory, BILLING_CYCLE_MONTHS
from . import lipila

logger = logging.getLogger(__name__)

# Gateway status -> (subscription status, payment status)
POLL_STATUS_MAP = {
    lipila.SUCCESSFUL: ('active', 'paid'),
    lipila.FAILED: ('inactive', 'failed'),
    lipila.CANCELLED: ('inactive', 'failed'),
    lipila.PENDING: ('pending', 'pending'),
}

# Gateway status -> billing status (webhook)
WEBHOOK_STATUS_MAP = {
    lipila.SUCCESSFUL: 'paid',
    lipila.FAILED: 'failed',
    lipila.PENDING: 'pending',
    lipila.CANCELLED: 'cancelled',
}


def add_months(value, months):
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def calculate_end_date(start, billing_cycle):
    return add_months(start, BILLING_CYCLE_MONTHS.get(billing_cycle, 1))


def generate_invoice_number():
    return f"INV-{timezone.now().strftime('%Y%m%d')}-{uuid.uuid4().hex[:8].upper()}"


def get_active_subscription(user, service_type):
    """Active, unexpired subscription of a vendor for a service type (cached)"""
    cache_key = subscription_cache_key(user.pk, service_type)
    subscription_id = cache.get(cache_key)
    if subscription_id:
        subscription = Subscription.objects.select_related('plan').filter(
            pk=subscription_id, user=user, service_type=service_type, status='active',
            end_date__gt=timezone.now()
        ).first()
        if subscription:
            return subscription

    subscription = Subscription.objects.select_related('plan').filter(
        user=user, service_type=service_type, status='active', end_date__gt=timezone.now()
    ).order_by('-end_date').first()
    if subscription:
        cache.set(cache_key, subscription.pk, SUBSCRIPTION_STATUS_CACHE_TTL)
    return subscription


def has_active_subscription(user, service_type):
    return get_active_subscription(user, service_type) is not None


def days_remaining(subscription):
    if not subscription:
        return 0
    delta = subscription.end_date - timezone.now()
    return max(delta.days, 0)


def activate_subscription(subscription, payment_date=None):
    """Mark a subscription active/paid and restart its period"""
    now = payment_date or timezone.now()
    subscription.status = 'active'
    subscription.payment_status = 'paid'
    subscription.last_payment_date = now
    subscription.start_date = now
    subscription.end_date = calculate_end_date(now, subscription.billing_cycle)
    subscription.next_billing_date = subscription.end_date
    subscription.save()
    return subscription


def sync_payment_status(subscription, gateway_status):
    """Apply a polled gateway status to the subscription and its billing rows"""
    mapped = POLL_STATUS_MAP.get(gateway_status)
    if not mapped:
        logger.warning(f"Unknown Lipila status {gateway_status} for subscription {subscription.id}")
        return subscription
    sub_status, payment_status = mapped

    if sub_status == 'active' and subscription.status != 'active':
        activate_subscription(subscription)
    else:
        subscription.status = sub_status
        subscription.payment_status = payment_status
        subscription.save(update_fields=['status', 'payment_status', 'updated_at'])

    billing_status = 'paid' if payment_status == 'paid' else payment_status
    bills = BillingHistory.objects.filter(
        subscription=subscription, lipila_transaction_id=subscription.lipila_transaction_id
    )
    for bill in bills:
        bill.status = billing_status
        if billing_status == 'paid' and not bill.payment_date:
            bill.payment_date = timezone.now()
        bill.save(update_fields=['status', 'payment_date', 'updated_at'])
    return subscription


def apply_webhook(bill, gateway_status):
    """Apply a webhook notification to a billing row and its subscription"""
    billing_status = WEBHOOK_STATUS_MAP.get(gateway_status, 'pending')
    bill.status = billing_status
    if billing_status == 'paid':
        bill.payment_date = timezone.now()
    bill.save(update_fields=['status', 'payment_date', 'updated_at'])

    subscription = bill.subscription
    if billing_status == 'paid':
        activate_subscription(subscription, payment_date=bill.payment_date)
    elif billing_status in ('failed', 'cancelled') and subscription.status == 'active':
        subscription.status = 'pending'
        subscription.payment_status = 'failed'
        subscription.save(update_fields=['status', 'payment_status', 'updated_at'])
    return bill
