"""Order placement and stock bookkeeping for stores"""
import logging
import math
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .models import StoreProduct, StoreOrder, StoreCustomer

logger = logging.getLogger(__name__)

LOYALTY_RATE = Decimal('0.1')


class OrderError(Exception):
    """Raised when an order cannot be placed (unknown product, insufficient stock)"""


def generate_sku(vendor, name):
    prefix = ''.join(ch for ch in (name or 'PRD').upper() if ch.isalnum())[:3] or 'PRD'
    count = StoreProduct.objects.filter(vendor=vendor).count() + 1
    sku = f"{prefix}-{vendor.id}-{count:04d}"
    while StoreProduct.objects.filter(sku=sku).exists():
        count += 1
        sku = f"{prefix}-{vendor.id}-{count:04d}"
    return sku


def build_order_items(vendor, items):
    """Lock the ordered products and return (line items, subtotal)"""
    lines = []
    subtotal = Decimal('0.00')
    product_ids = [item['product'] for item in items]
    products = {p.id: p for p in StoreProduct.objects.select_for_update().filter(vendor=vendor, id__in=product_ids)}

    for item in items:
        product = products.get(item['product'])
        if product is None:
            raise OrderError(f"Product {item['product']} not found")
        if product.status == 'inactive':
            raise OrderError(f"{product.name} is not available")
        quantity = item['quantity']
        if product.stock < quantity:
            raise OrderError(f"Insufficient stock for {product.name}. Available: {product.stock}, Requested: {quantity}")
        line_total = product.price * quantity
        subtotal += line_total
        lines.append({
            'product': product.id,
            'name': product.name,
            'sku': product.sku,
            'price': float(product.price),
            'quantity': quantity,
            'total': float(line_total),
        })
    return lines, subtotal


def _adjust_stock(product_id, delta):
    StoreProduct.objects.filter(pk=product_id).update(stock=F('stock') + delta)
    # Re-save so the out_of_stock status follows the new stock level
    product = StoreProduct.objects.get(pk=product_id)
    product.save(update_fields=['stock', 'status', 'updated_at'])


def record_customer_order(vendor, order, user=None):
    """Create or update the store's customer record and credit loyalty points"""
    email = (order.customer_email or '').lower()
    if not email:
        return None
    customer, _ = StoreCustomer.objects.get_or_create(
        vendor=vendor,
        email=email,
        defaults={
            'name': order.customer_name,
            'phone': order.customer_phone,
            'address': order.shipping_address or {},
            'user': user,
        },
    )
    customer.total_orders += 1
    customer.total_spent += order.total
    customer.loyalty_points += math.floor(order.total * LOYALTY_RATE)
    customer.last_order_date = timezone.now()
    if user and not customer.user_id:
        customer.user = user
    customer.save()
    return customer


def place_order(vendor, data, user=None):
    """
    Create an order from validated input: price the lines, decrement stock and
    update the customer record. Raises OrderError when an item cannot be supplied.
    """
    with transaction.atomic():
        lines, subtotal = build_order_items(vendor, data['items'])
        tax = data.get('tax') or Decimal('0.00')
        shipping = data.get('shipping') or Decimal('0.00')
        discount = data.get('discount') or Decimal('0.00')
        total = max(subtotal + tax + shipping - discount, Decimal('0.00'))

        order = StoreOrder.objects.create(
            vendor=vendor,
            order_number=StoreOrder.next_order_number(),
            customer=user,
            customer_name=data.get('customer_name') or (user.name if user else '') or 'Walk-in customer',
            customer_email=(data.get('customer_email') or (user.email if user else '')).lower(),
            customer_phone=data.get('customer_phone') or (user.phone if user else '') or '',
            items=lines,
            subtotal=subtotal,
            tax=tax,
            shipping=shipping,
            discount=discount,
            total=total,
            status=data.get('status', 'pending'),
            payment_status=data.get('payment_status', 'pending'),
            payment_method=data.get('payment_method') or '',
            shipping_address=data.get('shipping_address') or {},
            billing_address=data.get('billing_address') or data.get('shipping_address') or {},
            notes=data.get('notes', ''),
        )
        for line in lines:
            _adjust_stock(line['product'], -line['quantity'])

        store_customer = record_customer_order(vendor, order, user=user)
        if store_customer:
            order.store_customer = store_customer
            order.save(update_fields=['store_customer'])

    logger.info(f"Store {vendor.id} order {order.order_number} total {order.total}")
    return order


def restock_order(order):
    """Return a cancelled order's items to stock"""
    with transaction.atomic():
        for line in order.items:
            if StoreProduct.objects.filter(pk=line.get('product'), vendor=order.vendor).exists():
                _adjust_stock(line['product'], line.get('quantity', 0))
    logger.info(f"Restocked items of cancelled order {order.order_number}")
