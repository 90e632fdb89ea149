from django.db import models
from decimal import Decimal

from shiteni.core.models import User
from shiteni.core.roles import SERVICE_TYPE_CHOICES

PLAN_TYPE_CHOICES = [
    ('basic', 'Basic'),
    ('premium', 'Premium'),
    ('enterprise', 'Enterprise'),
]

BILLING_CYCLE_CHOICES = [
    ('monthly', 'Monthly'),
    ('quarterly', 'Quarterly'),
    ('yearly', 'Yearly'),
]

# Months added to the start date per billing cycle
BILLING_CYCLE_MONTHS = {
    'monthly': 1,
    'quarterly': 3,
    'yearly': 12,
}


class SubscriptionPlan(models.Model):
    """Plans offered to vendors of one service type"""
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    vendor_type = models.CharField(max_length=20, choices=SERVICE_TYPE_CHOICES)
    plan_type = models.CharField(max_length=20, choices=PLAN_TYPE_CHOICES)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='ZMW')
    billing_cycle = models.CharField(max_length=20, choices=BILLING_CYCLE_CHOICES, default='monthly')
    features = models.JSONField(default=list, blank=True)
    max_users = models.PositiveIntegerField(null=True, blank=True)
    max_storage = models.PositiveIntegerField(null=True, blank=True, help_text="Storage limit in MB")
    max_staff_accounts = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    is_popular = models.BooleanField(default=False)
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.vendor_type})"

    class Meta:
        db_table = 'subscription_plans'
        ordering = ['sort_order', 'price']
        indexes = [
            models.Index(fields=['vendor_type', 'is_active']),
        ]


class Subscription(models.Model):
    """A vendor's subscription to a plan"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('suspended', 'Suspended'),
        ('cancelled', 'Cancelled'),
        ('expired', 'Expired'),
        ('pending', 'Pending'),
    ]
    PAYMENT_METHOD_CHOICES = [
        ('card', 'Card'),
        ('bank_transfer', 'Bank Transfer'),
        ('cash', 'Cash'),
        ('mobile_money', 'Mobile Money'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='subscriptions')
    plan = models.ForeignKey(SubscriptionPlan, on_delete=models.PROTECT, related_name='subscriptions')
    plan_type = models.CharField(max_length=20, choices=PLAN_TYPE_CHOICES)
    service_type = models.CharField(max_length=20, choices=SERVICE_TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    next_billing_date = models.DateTimeField(null=True, blank=True)
    billing_cycle = models.CharField(max_length=20, choices=BILLING_CYCLE_CHOICES, default='monthly')
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    currency = models.CharField(max_length=3, default='ZMW')
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='mobile_money')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    last_payment_date = models.DateTimeField(null=True, blank=True)
    auto_renew = models.BooleanField(default=True)
    lipila_transaction_id = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    lipila_external_id = models.CharField(max_length=100, blank=True, null=True)
    usage = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.email} - {self.plan.name} ({self.status})"

    class Meta:
        db_table = 'subscriptions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'service_type', 'status']),
            models.Index(fields=['end_date']),
        ]


class BillingHistory(models.Model):
    """Invoices raised for subscription payments"""
    STATUS_CHOICES = [
        ('paid', 'Paid'),
        ('pending', 'Pending'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
        ('cancelled', 'Cancelled'),
    ]

    subscription = models.ForeignKey(Subscription, on_delete=models.CASCADE, related_name='billing_history')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='billing_history')
    invoice_number = models.CharField(max_length=50, unique=True)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default='ZMW')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    billing_date = models.DateTimeField()
    due_date = models.DateTimeField()
    payment_date = models.DateTimeField(null=True, blank=True)
    payment_method = models.CharField(max_length=20, blank=True)
    description = models.CharField(max_length=255, blank=True)
    plan_type = models.CharField(max_length=20, choices=PLAN_TYPE_CHOICES)
    billing_cycle = models.CharField(max_length=20, choices=BILLING_CYCLE_CHOICES)
    lipila_transaction_id = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    lipila_external_id = models.CharField(max_length=100, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.invoice_number

    class Meta:
        db_table = 'billing_history'
        ordering = ['-billing_date']
        verbose_name_plural = 'billing history'
