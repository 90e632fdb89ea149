from django.contrib import admin
from .models import Medicine, Patient, Prescription, PharmacyOrder, InsuranceClaim, ComplianceRecord


@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    list_display = ['name', 'strength', 'vendor', 'category', 'form', 'price', 'stock', 'expiry_date', 'status']
    list_filter = ['status', 'category', 'form', 'prescription_required']
    search_fields = ['name', 'generic_name', 'batch_number']


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ['patient_id', 'first_name', 'last_name', 'vendor', 'phone', 'is_active']
    search_fields = ['patient_id', 'first_name', 'last_name', 'email']


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ['prescription_number', 'vendor', 'patient_name', 'doctor_name', 'status', 'prescribed_date']
    list_filter = ['status', 'prescription_type']
    search_fields = ['prescription_number', 'patient_name', 'doctor_name']


@admin.register(PharmacyOrder)
class PharmacyOrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'vendor', 'customer_name', 'order_type', 'total_amount', 'status',
                    'payment_status', 'created_at']
    list_filter = ['status', 'order_type', 'payment_status']
    search_fields = ['order_number', 'customer_name', 'customer_email']


@admin.register(InsuranceClaim)
class InsuranceClaimAdmin(admin.ModelAdmin):
    list_display = ['claim_number', 'vendor', 'patient_name', 'insurance_provider', 'claim_amount', 'status']
    list_filter = ['status', 'insurance_provider']


@admin.register(ComplianceRecord)
class ComplianceRecordAdmin(admin.ModelAdmin):
    list_display = ['record_id', 'title', 'vendor', 'record_type', 'priority', 'status', 'due_date']
    list_filter = ['status', 'record_type', 'priority']
    search_fields = ['record_id', 'title']
