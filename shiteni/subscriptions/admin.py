from django.contrib import admin
from .models import SubscriptionPlan, Subscription, BillingHistory


@admin.register(SubscriptionPlan)
class SubscriptionPlanAdmin(admin.ModelAdmin):
    list_display = ['name', 'vendor_type', 'plan_type', 'price', 'billing_cycle', 'is_active', 'is_popular', 'sort_order']
    list_filter = ['vendor_type', 'plan_type', 'billing_cycle', 'is_active']
    search_fields = ['name', 'description']
    ordering = ['vendor_type', 'sort_order']


class BillingHistoryInline(admin.TabularInline):
    model = BillingHistory
    extra = 0
    readonly_fields = ['invoice_number', 'amount', 'status', 'billing_date', 'payment_date', 'lipila_transaction_id']


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ['user', 'plan', 'service_type', 'status', 'payment_status', 'start_date', 'end_date']
    list_filter = ['service_type', 'status', 'payment_status', 'plan_type']
    search_fields = ['user__email', 'user__business_name', 'lipila_transaction_id']
    raw_id_fields = ['user']
    inlines = [BillingHistoryInline]


@admin.register(BillingHistory)
class BillingHistoryAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'user', 'amount', 'status', 'billing_date', 'payment_date']
    list_filter = ['status', 'plan_type']
    search_fields = ['invoice_number', 'user__email', 'lipila_transaction_id']
    raw_id_fields = ['user', 'subscription']
