from django.contrib.auth.models import AbstractUser, UserManager as DjangoUserManager
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from decimal import Decimal

from .roles import ROLE_CHOICES, SERVICE_TYPE_CHOICES


class UserManager(DjangoUserManager):
    """Creates users keyed by e-mail; the username mirrors the e-mail"""

    def create_user(self, email, password=None, **extra_fields):
        username = extra_fields.pop('username', None) or email
        return super().create_user(username, email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('role', 'super_admin')
        extra_fields.setdefault('email_verified', True)
        username = extra_fields.pop('username', None) or email
        return super().create_superuser(username, email, password, **extra_fields)


class User(AbstractUser):
    """Platform user: customer, vendor owner, vendor staff or administrator"""
    KYC_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('verified', 'Verified'),
        ('rejected', 'Rejected'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('pending', 'Pending'),
        ('suspended', 'Suspended'),
    ]

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=200, blank=True)
    business_name = models.CharField(max_length=200, blank=True)
    business_address = models.TextField(blank=True)
    role = models.CharField(max_length=30, choices=ROLE_CHOICES, default='customer')
    phone = models.CharField(max_length=20, blank=True, null=True)
    address = models.JSONField(default=dict, blank=True)
    profile_picture = models.CharField(max_length=500, blank=True)
    kyc_status = models.CharField(max_length=20, choices=KYC_STATUS_CHOICES, default='pending')
    email_verified = models.BooleanField(default=False)
    email_verification_token = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    email_verification_expires = models.DateTimeField(null=True, blank=True)
    password_reset_token = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    password_reset_expires = models.DateTimeField(null=True, blank=True)
    department = models.CharField(max_length=100, blank=True)
    permissions = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    license_number = models.CharField(max_length=100, blank=True)
    salary = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    shift = models.CharField(max_length=50, blank=True)
    service_type = models.CharField(max_length=20, choices=SERVICE_TYPE_CHOICES, blank=True, null=True)
    institution = models.ForeignKey('self', on_delete=models.CASCADE, null=True, blank=True, related_name='staff_members')
    created_by = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    activated_at = models.DateTimeField(null=True, blank=True)
    activated_by = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    deactivated_at = models.DateTimeField(null=True, blank=True)
    deactivated_by = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    # Per-vertical vendor settings (hotel policies, bus branding, store hours, notification preferences)
    settings = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['role']),
            models.Index(fields=['service_type', 'status']),
        ]

    def __str__(self):
        return self.email

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
        if not self.username:
            self.username = self.email
        if not self.name:
            self.name = f'{self.first_name} {self.last_name}'.strip()
        super().save(*args, **kwargs)

    @property
    def display_name(self):
        return self.business_name or self.name or self.email

    @property
    def is_vendor_owner(self):
        return self.role in ('manager', 'admin') and bool(self.service_type) and self.institution_id is None


class Setting(models.Model):
    """Platform settings"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Change'),
        ('register', 'Register'),
        ('password_reset', 'Password Reset'),
        ('booking_create', 'Booking Created'),
        ('order_create', 'Order Created'),
        ('order_cancel', 'Order Cancelled'),
        ('dispense', 'Prescription Dispensed'),
        ('schedule_generate', 'Schedules Generated'),
        ('subscription_upgrade', 'Subscription Upgrade'),
        ('payment_update', 'Payment Updated'),
        ('promotion_send', 'Promotion Sent'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., room number, order number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., booking number, invoice number)")
    changes = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at']),
            models.Index(fields=['action']),
            models.Index(fields=['model_name']),
            models.Index(fields=['object_reference']),
        ]


class Upload(models.Model):
    """Files uploaded by users (room images, compliance documents, attachments)"""
    CATEGORY_CHOICES = [
        ('image', 'Image'),
        ('document', 'Document'),
    ]

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='uploads')
    file = models.FileField(upload_to='uploads/%Y/%m/')
    original_name = models.CharField(max_length=255)
    content_type = models.CharField(max_length=100)
    size = models.PositiveIntegerField(default=0)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='image')
    purpose = models.CharField(max_length=50, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.original_name

    class Meta:
        db_table = 'uploads'
        ordering = ['-created_at']
