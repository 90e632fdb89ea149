import logging
import time

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import connection, DatabaseError
from django.db.models import Q, Sum, Count, ProtectedError
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from shiteni.core.emails import send_promotion_email
from shiteni.core.models import Setting
from shiteni.core.permissions import IsPlatformAdmin
from shiteni.core.roles import SERVICE_TYPES, ROLE_CHOICES
from shiteni.core.serializers import UserSerializer, SettingSerializer
from shiteni.core.utils import create_audit_log, paginate
from shiteni.core.views import apply_status_change
from shiteni.messaging.models import Message
from shiteni.messaging.serializers import MessageSerializer
from shiteni.subscriptions.models import SubscriptionPlan, Subscription, BillingHistory
from shiteni.subscriptions.serializers import (
    SubscriptionPlanSerializer, SubscriptionSerializer, SubscriptionAdminUpdateSerializer,
)
from . import services
from .serializers import (
    VendorSerializer, AdminStaffSerializer, AccountStatusSerializer, SettingValueSerializer,
    PromotionSerializer, ComplianceExportSerializer,
)

logger = logging.getLogger('shiteni.administration')

User = get_user_model()

ADMIN_PERMISSIONS = [IsAuthenticated, IsPlatformAdmin]


@api_view(['GET'])
@permission_classes(ADMIN_PERMISSIONS)
def dashboard(request):
    users_by_role = {role: 0 for role, _ in ROLE_CHOICES}
    for row in User.objects.values('role').annotate(total=Count('id')):
        users_by_role[row['role']] = row['total']

    vendors = services.vendors()
    vendors_by_type = {service_type: 0 for service_type in SERVICE_TYPES}
    for row in vendors.values('service_type').annotate(total=Count('id')):
        vendors_by_type[row['service_type']] = row['total']
    vendors_by_status = {row['status']: row['total'] for row in vendors.values('status').annotate(total=Count('id'))}

    subscriptions = {row['status']: row['total']
                     for row in Subscription.objects.values('status').annotate(total=Count('id'))}
    paid = BillingHistory.objects.filter(status='paid')
    month_start = timezone.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    return Response({
        'users': {
            'total': User.objects.count(),
            'by_role': users_by_role,
        },
        'vendors': {
            'total': vendors.count(),
            'pending_approval': vendors_by_status.get('pending', 0),
            'by_service_type': vendors_by_type,
            'by_status': vendors_by_status,
        },
        'subscriptions': {
            'total': sum(subscriptions.values()),
            'active': subscriptions.get('active', 0),
            'by_status': subscriptions,
        },
        'revenue': {
            'total': float(paid.aggregate(total=Sum('amount'))['total'] or 0),
            'this_month': float(paid.filter(payment_date__gte=month_start).aggregate(
                total=Sum('amount'))['total'] or 0),
            'currency': 'ZMW',
        },
        'recent_users': UserSerializer(User.objects.order_by('-created_at')[:5], many=True).data,
    })


@api_view(['GET'])
@permission_classes(ADMIN_PERMISSIONS)
def statistics(request):
    """Platform statistics for ?range=7d|30d|90d|1y (default 30d)"""
    return Response(services.platform_statistics(request.query_params.get('range', '30d')))


@api_view(['GET', 'POST'])
@permission_classes(ADMIN_PERMISSIONS)
def compliance(request):
    """GET the compliance report (?range=current|last_quarter|last_year); POST to export it"""
    if request.method == 'GET':
        report = services.compliance_report(request.query_params.get('range', 'current'),
                                            request.query_params.get('service_type'))
        return Response(report)

    serializer = ComplianceExportSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    export_format = serializer.validated_data['format']
    period, rows = services.compliance_export_rows(serializer.validated_data['range'])
    filename = f"compliance_report_{period.replace(' ', '_').lower()}_{timezone.localdate().isoformat()}.{export_format}"
    logger.info(f"{request.user.email} exported compliance report ({len(rows)} rows)")
    return Response({
        'success': True,
        'format': export_format,
        'filename': filename,
        'period': period,
        'data': rows,
        'total_records': len(rows),
    })


# Accounts

def _change_status(request, account, model_name):
    serializer = AccountStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_status = serializer.validated_data['status']
    previous = account.status
    apply_status_change(account, new_status, request.user)
    create_audit_log(request, action='status_change', model_name=model_name, object_id=account.id,
                     object_name=account.email, changes={'status': [previous, new_status],
                                                         'reason': serializer.validated_data.get('reason', '')})
    logger.info(f"{request.user.email} set {account.email} to {new_status}")
    return None


def _search(queryset, request):
    search = request.query_params.get('search')
    if search:
        queryset = queryset.filter(Q(email__icontains=search) | Q(name__icontains=search)
                                   | Q(business_name__icontains=search))
    account_status = request.query_params.get('status')
    if account_status:
        queryset = queryset.filter(status=account_status)
    return queryset


@api_view(['GET'])
@permission_classes(ADMIN_PERMISSIONS)
def vendor_list(request):
    vendors = _search(services.vendors(), request).order_by('-created_at')
    service_type = request.query_params.get('service_type')
    if service_type:
        vendors = vendors.filter(service_type=service_type)
    items, pagination = paginate(vendors.prefetch_related('subscriptions'), request, default_limit=20)
    return Response({'vendors': VendorSerializer(items, many=True).data, 'pagination': pagination})


@api_view(['PATCH'])
@permission_classes(ADMIN_PERMISSIONS)
def vendor_status(request, pk):
    """Approve, deactivate or suspend a vendor"""
    vendor = get_object_or_404(services.vendors(), pk=pk)
    error = _change_status(request, vendor, 'Vendor')
    if error:
        return error
    return Response(VendorSerializer(vendor).data)


@api_view(['GET'])
@permission_classes(ADMIN_PERMISSIONS)
def user_list(request):
    users = _search(User.objects.all(), request).order_by('-created_at')
    role = request.query_params.get('role')
    if role:
        users = users.filter(role=role)
    items, pagination = paginate(users, request, default_limit=20)
    return Response({'users': UserSerializer(items, many=True).data, 'pagination': pagination})


@api_view(['PATCH'])
@permission_classes(ADMIN_PERMISSIONS)
def user_status(request, pk):
    user = get_object_or_404(User, pk=pk)
    if user.pk == request.user.pk:
        return Response({'error': 'You cannot change your own status'}, status=status.HTTP_400_BAD_REQUEST)
    if user.role == 'super_admin' and request.user.role != 'super_admin':
        return Response({'error': 'Only a super admin can change a super admin'},
                        status=status.HTTP_403_FORBIDDEN)
    error = _change_status(request, user, 'User')
    if error:
        return error
    return Response(UserSerializer(user).data)


@api_view(['GET'])
@permission_classes(ADMIN_PERMISSIONS)
def staff_list(request):
    """Staff accounts of every vendor (?service_type=, ?vendor=)"""
    staff = _search(User.objects.filter(institution__isnull=False), request).select_related('institution')
    service_type = request.query_params.get('service_type')
    if service_type:
        staff = staff.filter(service_type=service_type)
    vendor_id = request.query_params.get('vendor')
    if vendor_id:
        staff = staff.filter(institution_id=vendor_id)
    items, pagination = paginate(staff.order_by('-created_at'), request, default_limit=20)
    return Response({'staff': AdminStaffSerializer(items, many=True).data, 'pagination': pagination})


# Plans and subscriptions

@api_view(['GET', 'POST'])
@permission_classes(ADMIN_PERMISSIONS)
def plan_list_create(request):
    if request.method == 'GET':
        plans = SubscriptionPlan.objects.all()
        vendor_type = request.query_params.get('vendor_type')
        if vendor_type:
            plans = plans.filter(vendor_type=vendor_type)
        return Response(SubscriptionPlanSerializer(plans, many=True).data)

    serializer = SubscriptionPlanSerializer(data=request.data)
    if serializer.is_valid():
        plan = serializer.save()
        create_audit_log(request, action='create', model_name='SubscriptionPlan', object_id=plan.id,
                         object_name=plan.name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes(ADMIN_PERMISSIONS)
def plan_detail(request, pk):
    plan = get_object_or_404(SubscriptionPlan, pk=pk)

    if request.method == 'GET':
        return Response(SubscriptionPlanSerializer(plan).data)
    elif request.method in ['PUT', 'PATCH']:
        serializer = SubscriptionPlanSerializer(plan, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request, action='update', model_name='SubscriptionPlan', object_id=plan.id,
                             object_name=plan.name, changes=request.data)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            plan.delete()
        except ProtectedError:
            return Response({'error': 'Plan has subscriptions. Deactivate it instead.'},
                            status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request, action='delete', model_name='SubscriptionPlan', object_id=pk,
                         object_name=plan.name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes(ADMIN_PERMISSIONS)
def subscription_list(request):
    subscriptions = Subscription.objects.select_related('user', 'plan')
    subscription_status = request.query_params.get('status')
    if subscription_status:
        subscriptions = subscriptions.filter(status=subscription_status)
    service_type = request.query_params.get('service_type')
    if service_type:
        subscriptions = subscriptions.filter(service_type=service_type)
    items, pagination = paginate(subscriptions, request, default_limit=20)
    return Response({'subscriptions': SubscriptionSerializer(items, many=True).data, 'pagination': pagination})


@api_view(['GET', 'PATCH'])
@permission_classes(ADMIN_PERMISSIONS)
def subscription_detail(request, pk):
    subscription = get_object_or_404(Subscription.objects.select_related('user', 'plan'), pk=pk)
    if request.method == 'GET':
        return Response(SubscriptionSerializer(subscription).data)

    serializer = SubscriptionAdminUpdateSerializer(subscription, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    serializer.save()
    create_audit_log(request, action='update', model_name='Subscription', object_id=subscription.id,
                     object_name=subscription.user.email, changes=serializer.validated_data)
    return Response(SubscriptionSerializer(subscription).data)


# Settings and messages

@api_view(['GET', 'PUT'])
@permission_classes(ADMIN_PERMISSIONS)
def platform_settings(request):
    """
    Read or upsert platform settings.

    PUT accepts one `{key, value, description}` object or `{"settings": [...]}`.
    """
    if request.method == 'GET':
        return Response({'settings': SettingSerializer(Setting.objects.order_by('key'), many=True).data})

    payload = request.data.get('settings', request.data)
    serializer = SettingValueSerializer(data=payload, many=isinstance(payload, list))
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    entries = serializer.validated_data if isinstance(payload, list) else [serializer.validated_data]

    for entry in entries:
        defaults = {'value': entry['value']}
        if 'description' in entry:
            defaults['description'] = entry['description']
        Setting.objects.update_or_create(key=entry['key'], defaults=defaults)
    create_audit_log(request, action='update', model_name='Setting', object_id='settings',
                     changes={entry['key']: entry['value'] for entry in entries})
    return Response({'success': True,
                     'settings': SettingSerializer(Setting.objects.order_by('key'), many=True).data})


@api_view(['GET'])
@permission_classes(ADMIN_PERMISSIONS)
def message_list(request):
    messages = Message.objects.order_by('-created_at')
    conversation_id = request.query_params.get('conversation_id')
    if conversation_id:
        messages = messages.filter(conversation_id=conversation_id)
    items, pagination = paginate(messages, request, default_limit=50, max_limit=500)
    return Response({'messages': MessageSerializer(items, many=True).data, 'pagination': pagination})


# Promotions

@api_view(['GET'])
@permission_classes(ADMIN_PERMISSIONS)
def promotion_count(request):
    params = request.query_params
    audience = params.get('audience', 'all')
    recipients = services.promotion_recipients(audience, params.get('vendor_type'), params.get('vendor_id'))
    return Response({'audience': audience, 'count': recipients.count()})


@api_view(['POST'])
@permission_classes(ADMIN_PERMISSIONS)
def promotion_send(request):
    serializer = PromotionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    recipients = services.promotion_recipients(data['audience'], data.get('vendor_type'), data.get('vendor_id'))

    sent = failed = 0
    for email in recipients.values_list('email', flat=True):
        if send_promotion_email(email, data['subject'], data['message']):
            sent += 1
        else:
            failed += 1

    create_audit_log(request, action='promotion_send', model_name='Promotion', object_id=data['audience'],
                     object_name=data['subject'], changes={'sent': sent, 'failed': failed})
    logger.info(f"Promotion '{data['subject']}' to {data['audience']}: {sent} sent, {failed} failed")
    return Response({'success': True, 'sent': sent, 'failed': failed, 'total': sent + failed})


@api_view(['GET'])
@permission_classes(ADMIN_PERMISSIONS)
def system_health(request):
    checks = {}

    started = time.perf_counter()
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchone()
        checks['database'] = {'status': 'ok'}
    except DatabaseError as e:
        logger.error(f"Health check: database unreachable: {e}")
        checks['database'] = {'status': 'error', 'error': str(e)}
    checks['database']['latency_ms'] = round((time.perf_counter() - started) * 1000, 2)

    started = time.perf_counter()
    check_key = f"health_check_{time.time_ns()}"
    try:
        cache.set(check_key, 'ok', 10)
        reachable = cache.get(check_key) == 'ok'
        cache.delete(check_key)
        checks['cache'] = {'status': 'ok' if reachable else 'error', 'backend': settings.CACHES['default']['BACKEND']}
    except Exception as e:
        # Cache backends raise their own client errors (redis, memcached)
        logger.error(f"Health check: cache unreachable: {e}")
        checks['cache'] = {'status': 'error', 'error': str(e)}
    checks['cache']['latency_ms'] = round((time.perf_counter() - started) * 1000, 2)

    healthy = all(check['status'] == 'ok' for check in checks.values())
    counts = {}
    if checks['database']['status'] == 'ok':
        counts = {
            'users': User.objects.count(),
            'vendors': services.vendors().count(),
            'subscriptions': Subscription.objects.count(),
            'messages': Message.objects.count(),
        }
    return Response({
        'status': 'healthy' if healthy else 'degraded',
        'version': settings.APP_VERSION,
        'timestamp': timezone.now(),
        'checks': checks,
        'counts': counts,
    }, status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE)
