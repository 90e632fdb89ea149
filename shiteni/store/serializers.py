from rest_framework import serializers
from .models import StoreProduct, StoreOrder, StoreCustomer


class StoreProductSerializer(serializers.ModelSerializer):
    is_low_stock = serializers.BooleanField(read_only=True)
    vendor_name = serializers.CharField(source='vendor.display_name', read_only=True)

    class Meta:
        model = StoreProduct
        fields = ['id', 'vendor', 'vendor_name', 'name', 'description', 'category', 'subcategory', 'sku',
                  'price', 'original_price', 'cost', 'stock', 'min_stock', 'max_stock', 'images',
                  'specifications', 'tags', 'status', 'featured', 'rating', 'review_count',
                  'is_low_stock', 'created_at', 'updated_at']
        read_only_fields = ['vendor', 'rating', 'review_count', 'created_at', 'updated_at']
        extra_kwargs = {'sku': {'required': False}}

    def validate_sku(self, value):
        products = StoreProduct.objects.filter(sku=value)
        if self.instance:
            products = products.exclude(pk=self.instance.pk)
        if products.exists():
            raise serializers.ValidationError('SKU already exists')
        return value

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError('Price must be greater than zero')
        return value

    def validate_stock(self, value):
        if value < 0:
            raise serializers.ValidationError('Stock cannot be negative')
        return value


class StoreOrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = StoreOrder
        fields = ['id', 'order_number', 'customer', 'store_customer', 'customer_name', 'customer_email',
                  'customer_phone', 'items', 'subtotal', 'tax', 'shipping', 'discount', 'total', 'status',
                  'payment_status', 'payment_method', 'shipping_address', 'billing_address', 'notes',
                  'created_at', 'updated_at']
        read_only_fields = ['order_number', 'customer', 'store_customer', 'items', 'subtotal', 'total',
                            'created_at', 'updated_at']


class OrderItemSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class OrderCreateSerializer(serializers.Serializer):
    """Input for staff-entered and captured orders; totals are computed server side"""
    items = OrderItemSerializer(many=True)
    customer_name = serializers.CharField(required=False, allow_blank=True)
    customer_email = serializers.EmailField(required=False, allow_blank=True)
    customer_phone = serializers.CharField(required=False, allow_blank=True)
    tax = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)
    shipping = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)
    discount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, default=0)
    payment_method = serializers.CharField(required=False, allow_blank=True, default='cash')
    payment_status = serializers.ChoiceField(choices=StoreOrder.PAYMENT_STATUS_CHOICES, default='pending')
    status = serializers.ChoiceField(choices=StoreOrder.STATUS_CHOICES, default='pending')
    shipping_address = serializers.DictField(required=False, default=dict)
    billing_address = serializers.DictField(required=False, default=dict)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        return value


class OrderCaptureSerializer(OrderCreateSerializer):
    vendor_id = serializers.IntegerField()
    payment_method = serializers.CharField(required=False, allow_blank=True, default='online')
    status = serializers.HiddenField(default='pending')
    payment_status = serializers.HiddenField(default='pending')


class StoreCustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = StoreCustomer
        fields = ['id', 'user', 'name', 'email', 'phone', 'address', 'total_orders', 'total_spent',
                  'loyalty_points', 'last_order_date', 'status', 'created_at', 'updated_at']
        read_only_fields = ['user', 'total_orders', 'total_spent', 'loyalty_points', 'last_order_date',
                            'created_at', 'updated_at']

    def validate_email(self, value):
        value = value.strip().lower()
        customers = StoreCustomer.objects.filter(vendor=self.context['vendor'], email=value)
        if self.instance:
            customers = customers.exclude(pk=self.instance.pk)
        if customers.exists():
            raise serializers.ValidationError('A customer with this email already exists')
        return value
