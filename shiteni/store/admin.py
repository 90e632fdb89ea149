from django.contrib import admin
from .models import StoreProduct, StoreOrder, StoreCustomer


@admin.register(StoreProduct)
class StoreProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'vendor', 'category', 'price', 'stock', 'min_stock', 'status', 'featured']
    list_filter = ['status', 'category', 'featured']
    search_fields = ['name', 'sku', 'vendor__business_name']


@admin.register(StoreOrder)
class StoreOrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'vendor', 'customer_name', 'total', 'status', 'payment_status', 'created_at']
    list_filter = ['status', 'payment_status', 'payment_method']
    search_fields = ['order_number', 'customer_name', 'customer_email']
    date_hierarchy = 'created_at'


@admin.register(StoreCustomer)
class StoreCustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'vendor', 'total_orders', 'total_spent', 'loyalty_points', 'status']
    list_filter = ['status']
    search_fields = ['name', 'email', 'phone']
