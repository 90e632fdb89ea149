import logging
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db.models import Sum, Count, Avg, Q, F, DecimalField
from django.db.models.functions import TruncDate
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from shiteni.core.cache_utils import get_cached_dashboard, cache_dashboard
from shiteni.core.emails import send_order_confirmation_email
from shiteni.core.utils import create_audit_log, paginate
from shiteni.subscriptions.models import Subscription
from shiteni.subscriptions.gating import vendor_view
from .filters import StoreProductFilter, StoreOrderFilter
from .models import StoreProduct, StoreOrder, StoreCustomer
from .serializers import (
    StoreProductSerializer, StoreOrderSerializer, OrderCreateSerializer, OrderCaptureSerializer,
    StoreCustomerSerializer,
)
from .services import OrderError, generate_sku, place_order, restock_order

logger = logging.getLogger('shiteni.store')

User = get_user_model()

ALL_STAFF = ['cashier', 'inventory_manager', 'sales_associate']
PRODUCT_STAFF = ['inventory_manager', 'sales_associate']
ORDER_STAFF = ['cashier', 'sales_associate']

MONEY = DecimalField(max_digits=14, decimal_places=2)
MAX_ANALYTICS_DAYS = 365


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('store', roles=PRODUCT_STAFF)
def product_list_create(request):
    """List the store's products or add a product"""
    vendor = request.vendor
    if request.method == 'GET':
        queryset = StoreProduct.objects.filter(vendor=vendor).select_related('vendor')
        queryset = StoreProductFilter(request.query_params, queryset=queryset).qs
        items, pagination = paginate(queryset, request, default_limit=20)
        return Response({'products': StoreProductSerializer(items, many=True).data, 'pagination': pagination})

    if request.user.pk != vendor.pk and request.user.role != 'inventory_manager':
        return Response({'error': 'Access denied'}, status=status.HTTP_403_FORBIDDEN)
    serializer = StoreProductSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    sku = serializer.validated_data.get('sku') or generate_sku(vendor, serializer.validated_data['name'])
    product = serializer.save(vendor=vendor, sku=sku)
    create_audit_log(request, action='create', model_name='StoreProduct', object_id=product.id,
                     object_name=product.name, object_reference=product.sku)
    return Response(StoreProductSerializer(product).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('store', roles=PRODUCT_STAFF)
def product_detail(request, pk):
    product = get_object_or_404(StoreProduct, pk=pk, vendor=request.vendor)

    if request.method == 'GET':
        return Response(StoreProductSerializer(product).data)

    if request.user.pk != request.vendor.pk and request.user.role != 'inventory_manager':
        return Response({'error': 'Access denied'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = StoreProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request, action='delete', model_name='StoreProduct', object_id=product.id,
                         object_name=product.name, object_reference=product.sku)
        product.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('store', roles=ORDER_STAFF)
def order_list_create(request):
    """List orders or record an in-store order"""
    vendor = request.vendor
    if request.method == 'GET':
        queryset = StoreOrderFilter(request.query_params, queryset=StoreOrder.objects.filter(vendor=vendor)).qs
        items, pagination = paginate(queryset, request, default_limit=20)
        return Response({'orders': StoreOrderSerializer(items, many=True).data, 'pagination': pagination})

    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        order = place_order(vendor, serializer.validated_data)
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(request, action='order_create', model_name='StoreOrder', object_id=order.id,
                     object_reference=order.order_number, changes={'total': str(order.total)})
    return Response(StoreOrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('store', roles=ORDER_STAFF)
def order_detail(request, pk):
    """Retrieve, update (status, payment) or delete an order"""
    order = get_object_or_404(StoreOrder, pk=pk, vendor=request.vendor)

    if request.method == 'GET':
        return Response(StoreOrderSerializer(order).data)
    elif request.method in ('PUT', 'PATCH'):
        previous_status = order.status
        serializer = StoreOrderSerializer(order, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        order = serializer.save()
        if order.status != previous_status:
            if order.status == 'cancelled':
                restock_order(order)
                action = 'order_cancel'
            else:
                action = 'status_change'
            create_audit_log(request, action=action, model_name='StoreOrder', object_id=order.id,
                             object_reference=order.order_number,
                             changes={'status': [previous_status, order.status]})
        return Response(StoreOrderSerializer(order).data)
    else:  # DELETE
        if order.status not in ('cancelled', 'delivered'):
            restock_order(order)
        create_audit_log(request, action='delete', model_name='StoreOrder', object_id=order.id,
                         object_reference=order.order_number)
        order.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_capture(request):
    """Online order placed by a signed-in customer with a store"""
    serializer = OrderCaptureSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    vendor = User.objects.filter(
        pk=data['vendor_id'], service_type='store', status='active', institution__isnull=True
    ).first()
    if not vendor:
        return Response({'error': 'Store not found'}, status=status.HTTP_404_NOT_FOUND)

    if not data.get('payment_method'):
        data['payment_method'] = 'online'
    if not data.get('notes'):
        data['notes'] = 'Captured from online order'
    try:
        order = place_order(vendor, data, user=request.user)
    except OrderError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    email_sent = send_order_confirmation_email(order, vendor) if order.customer_email else False
    create_audit_log(request, action='order_create', model_name='StoreOrder', object_id=order.id,
                     object_reference=order.order_number, changes={'source': 'online'})
    return Response({
        'message': 'Online order captured successfully',
        'order': StoreOrderSerializer(order).data,
        'email_sent': email_sent,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@vendor_view('store', roles=ORDER_STAFF)
def customer_list_create(request):
    vendor = request.vendor
    if request.method == 'GET':
        customers = StoreCustomer.objects.filter(vendor=vendor)
        search = request.query_params.get('search')
        if search:
            customers = customers.filter(
                Q(name__icontains=search) | Q(email__icontains=search) | Q(phone__icontains=search)
            )
        customer_status = request.query_params.get('status')
        if customer_status:
            customers = customers.filter(status=customer_status)
        items, pagination = paginate(customers, request, default_limit=20)
        return Response({'customers': StoreCustomerSerializer(items, many=True).data, 'pagination': pagination})

    serializer = StoreCustomerSerializer(data=request.data, context={'vendor': vendor})
    if serializer.is_valid():
        customer = serializer.save(vendor=vendor)
        return Response(StoreCustomerSerializer(customer).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
@vendor_view('store', roles=ORDER_STAFF)
def customer_detail(request, pk):
    customer = get_object_or_404(StoreCustomer, pk=pk, vendor=request.vendor)

    if request.method == 'GET':
        data = StoreCustomerSerializer(customer).data
        data['recent_orders'] = StoreOrderSerializer(customer.orders.all()[:10], many=True).data
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = StoreCustomerSerializer(customer, data=request.data, partial=True,
                                             context={'vendor': request.vendor})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        customer.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('store', roles=['cashier'])
def payment_list(request):
    """Orders seen as payments, with paid and pending totals"""
    orders = StoreOrder.objects.filter(vendor=request.vendor).exclude(status='cancelled')
    payment_status = request.query_params.get('payment_status')
    if payment_status:
        orders = orders.filter(payment_status=payment_status)
    method = request.query_params.get('payment_method')
    if method:
        orders = orders.filter(payment_method=method)

    totals = orders.aggregate(
        amount=Sum('total', output_field=MONEY),
        paid=Sum('total', filter=Q(payment_status='paid'), output_field=MONEY),
        pending=Sum('total', filter=Q(payment_status='pending'), output_field=MONEY),
        refunded=Sum('total', filter=Q(payment_status='refunded'), output_field=MONEY),
    )
    items, pagination = paginate(orders, request, default_limit=20)
    return Response({
        'payments': [
            {
                'id': order.id,
                'order_number': order.order_number,
                'customer_name': order.customer_name,
                'amount': order.total,
                'payment_status': order.payment_status,
                'payment_method': order.payment_method,
                'date': order.created_at,
            }
            for order in items
        ],
        'summary': {
            'total': float(totals['amount'] or 0),
            'paid': float(totals['paid'] or 0),
            'pending': float(totals['pending'] or 0),
            'refunded': float(totals['refunded'] or 0),
        },
        'pagination': pagination,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('store', roles=['inventory_manager'])
def inventory(request):
    """Stock levels with low-stock and out-of-stock lists"""
    products = StoreProduct.objects.filter(vendor=request.vendor)
    low_stock = products.filter(stock__gt=0, stock__lte=F('min_stock'))
    out_of_stock = products.filter(stock__lte=0)
    stock_value = products.aggregate(
        cost=Sum(F('stock') * F('cost'), output_field=MONEY),
        retail=Sum(F('stock') * F('price'), output_field=MONEY),
    )
    return Response({
        'summary': {
            'total_products': products.count(),
            'total_units': products.aggregate(n=Sum('stock'))['n'] or 0,
            'low_stock_count': low_stock.count(),
            'out_of_stock_count': out_of_stock.count(),
            'stock_value_cost': float(stock_value['cost'] or 0),
            'stock_value_retail': float(stock_value['retail'] or 0),
        },
        'low_stock': StoreProductSerializer(low_stock, many=True).data,
        'out_of_stock': StoreProductSerializer(out_of_stock, many=True).data,
        'by_category': list(products.values('category').annotate(products=Count('id'), units=Sum('stock')).order_by('category')),
    })


def _top_products(orders, limit=5):
    totals = {}
    for items in orders.values_list('items', flat=True):
        for line in items or []:
            key = line.get('product')
            entry = totals.setdefault(key, {'product': key, 'name': line.get('name'), 'quantity': 0, 'revenue': 0.0})
            entry['quantity'] += int(line.get('quantity') or 0)
            entry['revenue'] += float(line.get('total') or 0)
    return sorted(totals.values(), key=lambda e: e['quantity'], reverse=True)[:limit]


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('store', roles=[])
def analytics(request):
    """Revenue analytics over the last `days` days (default 30)"""
    try:
        days = min(max(int(request.query_params.get('days', 30)), 1), MAX_ANALYTICS_DAYS)
    except (TypeError, ValueError):
        days = 30
    vendor = request.vendor
    today = timezone.localdate()
    start = today - timedelta(days=days - 1)

    period_orders = StoreOrder.objects.filter(vendor=vendor, created_at__date__gte=start)
    earned = period_orders.filter(status__in=StoreOrder.REVENUE_STATUSES)
    revenue = earned.aggregate(amount=Sum('total', output_field=MONEY), average=Avg('total'), count=Count('id'))

    daily = {
        row['day']: row
        for row in earned.annotate(day=TruncDate('created_at')).values('day').annotate(
            revenue=Sum('total', output_field=MONEY), orders=Count('id'))
    }
    series = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        row = daily.get(day)
        series.append({
            'date': day.isoformat(),
            'label': day.strftime('%b %d'),
            'revenue': float(row['revenue']) if row else 0.0,
            'orders': row['orders'] if row else 0,
        })

    return Response({
        'period_days': days,
        'metrics': {
            'total_revenue': float(revenue['amount'] or 0),
            'average_order_value': round(float(revenue['average'] or 0), 2),
            'order_count': revenue['count'],
            'orders_in_period': period_orders.count(),
            'total_orders': StoreOrder.objects.filter(vendor=vendor).count(),
            'total_customers': StoreCustomer.objects.filter(vendor=vendor).count(),
            'new_customers': StoreCustomer.objects.filter(vendor=vendor, created_at__date__gte=start).count(),
            'active_products': StoreProduct.objects.filter(vendor=vendor, status='active').count(),
        },
        'daily_revenue': series,
        'top_products': _top_products(earned),
        'status_breakdown': list(period_orders.values('status').annotate(count=Count('id')).order_by('status')),
    })


def build_store_dashboard(vendor):
    today = timezone.localdate()
    orders = StoreOrder.objects.filter(vendor=vendor)
    products = StoreProduct.objects.filter(vendor=vendor)
    revenue = orders.exclude(status='cancelled').aggregate(
        amount=Sum('total', output_field=MONEY),
        today=Sum('total', filter=Q(created_at__date=today), output_field=MONEY),
        paid=Sum('total', filter=Q(payment_status='paid'), output_field=MONEY),
    )
    return {
        'stats': {
            'total_products': products.count(),
            'active_products': products.filter(status='active').count(),
            'low_stock_products': products.filter(stock__gt=0, stock__lte=F('min_stock')).count(),
            'out_of_stock_products': products.filter(stock__lte=0).count(),
            'total_orders': orders.count(),
            'pending_orders': orders.filter(status='pending').count(),
            'today_orders': orders.filter(created_at__date=today).count(),
            'total_customers': StoreCustomer.objects.filter(vendor=vendor).count(),
            'total_revenue': float(revenue['amount'] or 0),
            'today_revenue': float(revenue['today'] or 0),
            'paid_revenue': float(revenue['paid'] or 0),
        },
        'order_status': list(orders.values('status').annotate(count=Count('id')).order_by('status')),
        'recent_orders': StoreOrderSerializer(orders[:5], many=True).data,
        'top_products': _top_products(orders.exclude(status='cancelled')),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@vendor_view('store', roles=ALL_STAFF)
def dashboard(request):
    cached, cache_key = get_cached_dashboard('store', request.vendor.id)
    if cached is not None:
        return Response(cached)
    data = build_store_dashboard(request.vendor)
    cache_dashboard(cache_key, data)
    return Response(data)


@api_view(['GET'])
@permission_classes([AllowAny])
def public_products(request):
    """Active products of approved stores with a live subscription"""
    subscribed = Subscription.objects.filter(
        service_type='store', status='active', end_date__gt=timezone.now()
    ).values('user_id')
    queryset = StoreProduct.objects.filter(
        status='active', vendor__status='active', vendor__in=subscribed
    ).select_related('vendor')
    queryset = StoreProductFilter(request.query_params, queryset=queryset).qs

    sort = request.query_params.get('sort')
    ordering = {
        'price-low': ['price'],
        'price-high': ['-price'],
        'rating': ['-rating'],
        'featured': ['-featured', '-created_at'],
    }.get(sort, ['-created_at'])
    items, pagination = paginate(queryset.order_by(*ordering), request, default_limit=20)
    return Response({'products': StoreProductSerializer(items, many=True).data, 'pagination': pagination})
