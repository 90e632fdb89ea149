import time

from django.db import models
from django.utils import timezone
from decimal import Decimal

from shiteni.core.models import User


class Medicine(models.Model):
    """Medicines stocked by a pharmacy"""
    CATEGORY_CHOICES = [
        ('antibiotics', 'Antibiotics'),
        ('painkillers', 'Painkillers'),
        ('vitamins', 'Vitamins'),
        ('cardiovascular', 'Cardiovascular'),
        ('diabetes', 'Diabetes'),
        ('respiratory', 'Respiratory'),
        ('dermatology', 'Dermatology'),
        ('gastrointestinal', 'Gastrointestinal'),
        ('other', 'Other'),
    ]
    FORM_CHOICES = [
        ('tablet', 'Tablet'),
        ('capsule', 'Capsule'),
        ('syrup', 'Syrup'),
        ('injection', 'Injection'),
        ('cream', 'Cream'),
        ('drops', 'Drops'),
        ('inhaler', 'Inhaler'),
        ('other', 'Other'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('expired', 'Expired'),
        ('low_stock', 'Low Stock'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='medicines')
    name = models.CharField(max_length=200)
    generic_name = models.CharField(max_length=200, blank=True)
    manufacturer = models.CharField(max_length=200, blank=True)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, default='other')
    form = models.CharField(max_length=20, choices=FORM_CHOICES, default='tablet')
    strength = models.CharField(max_length=50, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    stock = models.IntegerField(default=0)
    min_stock = models.IntegerField(default=10)
    expiry_date = models.DateField()
    batch_number = models.CharField(max_length=50, blank=True)
    prescription_required = models.BooleanField(default=False)
    description = models.TextField(blank=True)
    side_effects = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} {self.strength}".strip()

    class Meta:
        db_table = 'pharmacy_medicines'
        ordering = ['name']
        indexes = [
            models.Index(fields=['vendor', 'status']),
            models.Index(fields=['expiry_date']),
        ]

    def save(self, *args, **kwargs):
        if self.expiry_date and self.expiry_date < timezone.localdate():
            self.status = 'expired'
        elif self.stock <= self.min_stock:
            self.status = 'low_stock'
        elif self.status in ('expired', 'low_stock'):
            self.status = 'active'
        super().save(*args, **kwargs)


class Patient(models.Model):
    """Patient records kept by a pharmacy"""
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='patients')
    patient_id = models.CharField(max_length=20, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    address = models.JSONField(default=dict, blank=True)
    allergies = models.JSONField(default=list, blank=True)
    medical_history = models.JSONField(default=list, blank=True)
    current_medications = models.JSONField(default=list, blank=True)
    insurance_provider = models.CharField(max_length=100, blank=True)
    insurance_number = models.CharField(max_length=100, blank=True)
    emergency_contact = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.patient_id} {self.full_name}"

    class Meta:
        db_table = 'pharmacy_patients'
        ordering = ['-created_at']

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @staticmethod
    def next_patient_id():
        count = Patient.objects.count() + 1
        patient_id = f"PAT{count:06d}"
        while Patient.objects.filter(patient_id=patient_id).exists():
            count += 1
            patient_id = f"PAT{count:06d}"
        return patient_id


class Prescription(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('dispensed', 'Dispensed'),
        ('cancelled', 'Cancelled'),
        ('expired', 'Expired'),
    ]
    TYPE_CHOICES = [
        ('online', 'Online'),
        ('physical', 'Physical'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='prescriptions')
    prescription_number = models.CharField(max_length=30)
    patient = models.ForeignKey(Patient, on_delete=models.SET_NULL, null=True, blank=True, related_name='prescriptions')
    patient_name = models.CharField(max_length=200)
    doctor_name = models.CharField(max_length=200)
    doctor_license = models.CharField(max_length=100, blank=True)
    # [{medicine, name, dosage, frequency, duration, quantity, instructions}]
    medicines = models.JSONField(default=list)
    diagnosis = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    prescription_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='physical')
    prescribed_date = models.DateField(default=timezone.localdate)
    expiry_date = models.DateField(null=True, blank=True)
    dispensed_date = models.DateTimeField(null=True, blank=True)
    dispensed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.prescription_number

    class Meta:
        db_table = 'pharmacy_prescriptions'
        ordering = ['-created_at']
        unique_together = [['vendor', 'prescription_number']]

    @property
    def is_expired(self):
        if self.status == 'expired':
            return True
        return bool(self.expiry_date and self.expiry_date < timezone.localdate())


class PharmacyOrder(models.Model):
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('processing', 'Processing'),
        ('ready', 'Ready'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]
    ORDER_TYPE_CHOICES = [
        ('online', 'Online'),
        ('walk-in', 'Walk-in'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]
    # Status -> timestamp field stamped on transition
    STATUS_DATES = {
        'confirmed': 'confirmed_date',
        'ready': 'ready_date',
        'completed': 'completed_date',
        'cancelled': 'cancelled_date',
    }
    REVENUE_STATUSES = ['confirmed', 'processing', 'ready', 'completed']

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='pharmacy_orders')
    order_number = models.CharField(max_length=30)
    customer = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='placed_pharmacy_orders')
    patient = models.ForeignKey(Patient, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField(blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    customer_address = models.JSONField(default=dict, blank=True)
    # [{medicine, name, quantity, price, total}]
    items = models.JSONField(default=list)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    shipping_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    order_type = models.CharField(max_length=20, choices=ORDER_TYPE_CHOICES, default='walk-in')
    payment_method = models.CharField(max_length=30, blank=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    prescription = models.ForeignKey(Prescription, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    notes = models.TextField(blank=True)
    order_date = models.DateTimeField(default=timezone.now)
    confirmed_date = models.DateTimeField(null=True, blank=True)
    ready_date = models.DateTimeField(null=True, blank=True)
    completed_date = models.DateTimeField(null=True, blank=True)
    cancelled_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.order_number

    class Meta:
        db_table = 'pharmacy_orders'
        ordering = ['-created_at']
        unique_together = [['vendor', 'order_number']]
        indexes = [
            models.Index(fields=['vendor', 'status']),
        ]

    def stamp_status(self):
        """Set the timestamp belonging to the current status if it is still empty"""
        field = self.STATUS_DATES.get(self.status)
        if field and getattr(self, field) is None:
            setattr(self, field, timezone.now())


class InsuranceClaim(models.Model):
    PROVIDER_CHOICES = [
        ('nhima', 'NHIMA'),
        ('medlife', 'Medlife'),
        ('zambia_national', 'Zambia National'),
        ('other', 'Other'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('processing', 'Processing'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='insurance_claims')
    claim_number = models.CharField(max_length=30)
    patient = models.ForeignKey(Patient, on_delete=models.SET_NULL, null=True, blank=True, related_name='claims')
    patient_name = models.CharField(max_length=200)
    order = models.ForeignKey(PharmacyOrder, on_delete=models.SET_NULL, null=True, blank=True, related_name='claims')
    insurance_provider = models.CharField(max_length=30, choices=PROVIDER_CHOICES)
    policy_number = models.CharField(max_length=100)
    claim_amount = models.DecimalField(max_digits=12, decimal_places=2)
    approved_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    submission_date = models.DateTimeField(default=timezone.now)
    processed_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    attachments = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.claim_number

    class Meta:
        db_table = 'pharmacy_insurance_claims'
        ordering = ['-submission_date']
        unique_together = [['vendor', 'claim_number']]

    def save(self, *args, **kwargs):
        if self.status in ('approved', 'rejected') and not self.processed_date:
            self.processed_date = timezone.now()
        super().save(*args, **kwargs)


class ComplianceRecord(models.Model):
    """Licences, inspections, audits and trainings a pharmacy must keep up with"""
    TYPE_CHOICES = [
        ('license_renewal', 'License Renewal'),
        ('inspection', 'Inspection'),
        ('audit', 'Audit'),
        ('training', 'Training'),
        ('certification', 'Certification'),
        ('other', 'Other'),
    ]
    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('overdue', 'Overdue'),
        ('cancelled', 'Cancelled'),
    ]

    vendor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='compliance_records')
    record_id = models.CharField(max_length=20, unique=True)
    title = models.CharField(max_length=200)
    record_type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    due_date = models.DateField()
    completed_date = models.DateField(null=True, blank=True)
    assigned_to = models.CharField(max_length=200, blank=True)
    responsible_person = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    documents = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.record_id} {self.title}"

    class Meta:
        db_table = 'pharmacy_compliance_records'
        ordering = ['due_date']

    @property
    def is_overdue(self):
        if self.status == 'overdue':
            return True
        return self.status == 'pending' and self.due_date < timezone.localdate()

    @property
    def current_status(self):
        return 'overdue' if self.is_overdue else self.status

    @staticmethod
    def next_record_id():
        stamp = timezone.localdate().strftime('%y%m%d')
        suffix = int(str(int(time.time() * 1000))[-6:])
        record_id = f"CR{stamp}{suffix:06d}"
        while ComplianceRecord.objects.filter(record_id=record_id).exists():
            suffix = (suffix + 1) % 1000000
            record_id = f"CR{stamp}{suffix:06d}"
        return record_id

    def save(self, *args, **kwargs):
        if not self.record_id:
            self.record_id = self.next_record_id()
        if self.status == 'completed' and not self.completed_date:
            self.completed_date = timezone.localdate()
        super().save(*args, **kwargs)
