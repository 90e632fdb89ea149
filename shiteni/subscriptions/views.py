import logging
from datetime import timedelta

from django.core.cache import cache
from django.http import Http404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from shiteni.core.cache_utils import plans_cache_key, PLANS_LIST_CACHE_TTL
from shiteni.core.permissions import is_vendor_manager
from shiteni.core.roles import SERVICE_TYPES
from shiteni.core.utils import create_audit_log
from .gating import check_vendor_access
from .lipila import LipilaError, get_lipila_client, SUCCESSFUL, PENDING
from .models import SubscriptionPlan, Subscription, BillingHistory
from .serializers import (
    SubscriptionPlanSerializer, SubscriptionSerializer, BillingHistorySerializer, UpgradeSerializer,
)
from .services import (
    get_active_subscription, days_remaining, activate_subscription, calculate_end_date,
    generate_invoice_number, sync_payment_status, apply_webhook,
)

logger = logging.getLogger('shiteni.subscriptions')


def _check_service_type(service_type):
    if service_type not in SERVICE_TYPES:
        raise Http404('Unknown service type')


def _latest_subscription(vendor, service_type):
    return Subscription.objects.select_related('plan').filter(
        user=vendor, service_type=service_type
    ).order_by('-created_at').first()


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def subscription_detail(request, service_type):
    """Current subscription with plan and billing history"""
    _check_service_type(service_type)
    vendor, error = check_vendor_access(request, service_type, subscription=False)
    if error:
        return error

    subscription = _latest_subscription(vendor, service_type)
    if not subscription:
        return Response({'subscription': None, 'billing_history': []})
    history = BillingHistory.objects.filter(subscription__user=vendor, subscription__service_type=service_type)
    return Response({
        'subscription': SubscriptionSerializer(subscription).data,
        'billing_history': BillingHistorySerializer(history[:20], many=True).data,
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def plan_list(request, service_type):
    """Active plans for a vendor type"""
    _check_service_type(service_type)
    cache_key = plans_cache_key(service_type)
    data = cache.get(cache_key)
    if data is None:
        plans = SubscriptionPlan.objects.filter(vendor_type=service_type, is_active=True).order_by('sort_order', 'price')
        data = SubscriptionPlanSerializer(plans, many=True).data
        cache.set(cache_key, data, PLANS_LIST_CACHE_TTL)
    return Response({'plans': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def subscription_status(request, service_type):
    _check_service_type(service_type)
    vendor, error = check_vendor_access(request, service_type, subscription=False)
    if error:
        return error

    subscription = get_active_subscription(vendor, service_type)
    return Response({
        'has_active_subscription': subscription is not None,
        'subscription': SubscriptionSerializer(subscription).data if subscription else None,
        'days_remaining': days_remaining(subscription),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def billing_history(request, service_type):
    _check_service_type(service_type)
    vendor, error = check_vendor_access(request, service_type, subscription=False)
    if error:
        return error
    history = BillingHistory.objects.filter(user=vendor, subscription__service_type=service_type)
    return Response({'billing_history': BillingHistorySerializer(history, many=True).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def upgrade(request, service_type):
    """Subscribe to (or switch to) a plan and charge it through Lipila"""
    _check_service_type(service_type)
    vendor, error = check_vendor_access(request, service_type, subscription=False)
    if error:
        return error
    if not is_vendor_manager(request.user, vendor) and request.user.role != 'super_admin':
        return Response({'error': 'Only the business owner can change the subscription'},
                        status=status.HTTP_403_FORBIDDEN)

    serializer = UpgradeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    plan = SubscriptionPlan.objects.filter(pk=data['plan_id'], vendor_type=service_type, is_active=True).first()
    if not plan:
        return Response({'error': 'Plan not found or inactive'}, status=status.HTTP_404_NOT_FOUND)

    now = timezone.now()
    subscription = _latest_subscription(vendor, service_type)
    created = subscription is None
    if created:
        subscription = Subscription(user=vendor, service_type=service_type, start_date=now, status='pending')
    subscription.plan = plan
    subscription.plan_type = plan.plan_type
    subscription.billing_cycle = plan.billing_cycle
    subscription.amount = plan.price
    subscription.currency = plan.currency
    subscription.payment_method = data['payment_type']
    if created or subscription.status != 'active':
        subscription.start_date = now
        subscription.end_date = calculate_end_date(now, plan.billing_cycle)
    subscription.save()

    bill = BillingHistory.objects.create(
        subscription=subscription,
        user=vendor,
        invoice_number=generate_invoice_number(),
        amount=plan.price,
        currency=plan.currency,
        status='pending',
        billing_date=now,
        due_date=now + timedelta(days=7),
        payment_method=data['payment_type'],
        description=f"{plan.name} subscription ({plan.billing_cycle})",
        plan_type=plan.plan_type,
        billing_cycle=plan.billing_cycle,
    )

    customer = data['customer_info']
    full_name = ' '.join(filter(None, [customer.get('first_name'), customer.get('last_name')])) or vendor.display_name
    try:
        payment = get_lipila_client().process_subscription_payment(
            subscription.id,
            plan.price,
            data['payment_type'],
            customer['phone_number'],
            full_name=full_name,
            email=customer.get('email') or vendor.email,
            redirect_url=data.get('redirect_url'),
            customer=customer,
        )
    except LipilaError as e:
        subscription.status = 'pending'
        subscription.payment_status = 'failed'
        subscription.save(update_fields=['status', 'payment_status', 'updated_at'])
        bill.status = 'failed'
        bill.save(update_fields=['status', 'updated_at'])
        if e.is_auth_error:
            logger.error(f"Lipila rejected platform credentials during upgrade for vendor {vendor.id}")
            return Response({
                'error': 'Payment service unavailable',
                'message': 'Payment service configuration error. Please contact support.',
            }, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        logger.warning(f"Subscription payment failed for vendor {vendor.id}: {e.message}")
        return Response({
            'error': 'Payment failed',
            'message': e.message,
            'subscription': SubscriptionSerializer(subscription).data,
        }, status=status.HTTP_400_BAD_REQUEST)

    gateway_status = payment.get('status')
    subscription.lipila_transaction_id = payment.get('transactionId')
    subscription.lipila_external_id = payment.get('externalId')
    bill.lipila_transaction_id = subscription.lipila_transaction_id
    bill.lipila_external_id = subscription.lipila_external_id

    accepted = gateway_status == SUCCESSFUL or (gateway_status == PENDING and data['payment_type'] == 'mobile_money')
    if not accepted:
        subscription.status = 'pending'
        subscription.payment_status = 'failed'
        subscription.save()
        bill.status = 'failed'
        bill.save()
        return Response({
            'error': 'Payment failed',
            'message': payment.get('message') or 'Payment was not accepted',
            'subscription': SubscriptionSerializer(subscription).data,
        }, status=status.HTTP_400_BAD_REQUEST)

    activate_subscription(subscription)
    if gateway_status == SUCCESSFUL:
        bill.status = 'paid'
        bill.payment_date = timezone.now()
    else:
        # Mobile money prompt sent; the webhook or status poll settles the bill
        subscription.payment_status = 'pending'
        subscription.save(update_fields=['payment_status', 'updated_at'])
    bill.save()

    create_audit_log(request, action='subscription_upgrade', model_name='Subscription',
                     object_id=subscription.id, object_reference=bill.invoice_number,
                     changes={'plan': plan.name, 'payment_status': gateway_status})
    logger.info(f"Vendor {vendor.id} subscribed to {plan.name} ({gateway_status})")

    return Response({
        'message': 'Subscription updated successfully' if not created else 'Subscription created successfully',
        'subscription': SubscriptionSerializer(subscription).data,
        'payment': {
            'status': gateway_status,
            'transaction_id': subscription.lipila_transaction_id,
            'redirect_url': payment.get('redirectUrl') or payment.get('clientRedirectUrl'),
            'invoice_number': bill.invoice_number,
        },
    }, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_status(request, service_type):
    """Poll Lipila for the subscription's latest transaction and sync local state"""
    _check_service_type(service_type)
    vendor, error = check_vendor_access(request, service_type, subscription=False)
    if error:
        return error

    transaction_id = request.query_params.get('transaction_id')
    subscriptions = Subscription.objects.select_related('plan').filter(user=vendor, service_type=service_type)
    if transaction_id:
        subscription = subscriptions.filter(lipila_transaction_id=transaction_id).first()
    else:
        subscription = subscriptions.order_by('-created_at').first()
    if not subscription:
        return Response({'error': 'Subscription not found'}, status=status.HTTP_404_NOT_FOUND)

    transaction_id = transaction_id or subscription.lipila_transaction_id
    if not transaction_id:
        return Response({'subscription': SubscriptionSerializer(subscription).data, 'payment_status': subscription.payment_status})

    try:
        result = get_lipila_client().check_transaction_status(transaction_id)
    except LipilaError as e:
        logger.warning(f"Could not poll Lipila transaction {transaction_id}: {e.message}")
        return Response({
            'subscription': SubscriptionSerializer(subscription).data,
            'payment_status': subscription.payment_status,
            'message': 'Could not reach the payment provider; showing the last known status',
        })

    sync_payment_status(subscription, result.get('status'))
    subscription.refresh_from_db()
    return Response({
        'subscription': SubscriptionSerializer(subscription).data,
        'payment_status': subscription.payment_status,
        'gateway_status': result.get('status'),
    })


@api_view(['GET', 'POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def lipila_webhook(request):
    """Payment notifications from Lipila"""
    if request.method == 'GET':
        return Response({
            'message': 'Lipila webhook endpoint is active',
            'timestamp': timezone.now().isoformat(),
        })

    transaction_id = request.data.get('transactionId')
    gateway_status = request.data.get('status')
    if not transaction_id or not gateway_status:
        return Response({'error': 'Missing required fields: transactionId, status'}, status=status.HTTP_400_BAD_REQUEST)

    bill = BillingHistory.objects.select_related('subscription').filter(lipila_transaction_id=transaction_id).first()
    if not bill:
        logger.warning(f"Lipila webhook for unknown transaction {transaction_id}")
        return Response({'error': 'Billing record not found'}, status=status.HTTP_404_NOT_FOUND)

    apply_webhook(bill, gateway_status)
    logger.info(f"Lipila webhook: {transaction_id} -> {gateway_status}")
    return Response({
        'success': True,
        'message': 'Webhook processed successfully',
        'billing_status': bill.status,
        'subscription_status': bill.subscription.status,
    })
