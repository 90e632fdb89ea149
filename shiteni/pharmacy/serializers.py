from decimal import Decimal, InvalidOperation

from rest_framework import serializers

from .models import Medicine, Patient, Prescription, PharmacyOrder, InsuranceClaim, ComplianceRecord


class MedicineSerializer(serializers.ModelSerializer):
    class Meta:
        model = Medicine
        fields = ['id', 'name', 'generic_name', 'manufacturer', 'category', 'form', 'strength', 'price',
                  'stock', 'min_stock', 'expiry_date', 'batch_number', 'prescription_required',
                  'description', 'side_effects', 'status', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError('Price must be greater than zero')
        return value

    def validate_stock(self, value):
        if value < 0:
            raise serializers.ValidationError('Stock cannot be negative')
        return value


class PatientSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = Patient
        fields = ['id', 'patient_id', 'first_name', 'last_name', 'full_name', 'date_of_birth', 'gender',
                  'phone', 'email', 'address', 'allergies', 'medical_history', 'current_medications',
                  'insurance_provider', 'insurance_number', 'emergency_contact', 'is_active',
                  'created_at', 'updated_at']
        read_only_fields = ['patient_id', 'created_at', 'updated_at']

    def validate_email(self, value):
        value = (value or '').strip().lower()
        if not value:
            return value
        patients = Patient.objects.filter(vendor=self.context['vendor'], email=value)
        if self.instance:
            patients = patients.exclude(pk=self.instance.pk)
        if patients.exists():
            raise serializers.ValidationError('A patient with this email already exists')
        return value


class VendorScopedMixin:
    """Reject related objects that belong to another pharmacy"""

    def _own(self, obj, label):
        if obj is not None and obj.vendor_id != self.context['vendor'].id:
            raise serializers.ValidationError(f'{label} not found')
        return obj


class PrescriptionSerializer(VendorScopedMixin, serializers.ModelSerializer):
    type = serializers.ChoiceField(source='prescription_type', choices=Prescription.TYPE_CHOICES,
                                   required=False)
    dispensed_by_name = serializers.CharField(source='dispensed_by.name', read_only=True, default=None)

    class Meta:
        model = Prescription
        fields = ['id', 'prescription_number', 'patient', 'patient_name', 'doctor_name', 'doctor_license',
                  'medicines', 'diagnosis', 'notes', 'status', 'type', 'prescribed_date', 'expiry_date',
                  'dispensed_date', 'dispensed_by', 'dispensed_by_name', 'total_amount',
                  'created_at', 'updated_at']
        read_only_fields = ['prescription_number', 'status', 'dispensed_date', 'dispensed_by',
                            'created_at', 'updated_at']
        extra_kwargs = {'patient_name': {'required': False}}

    def validate_patient(self, value):
        return self._own(value, 'Patient')

    def validate_medicines(self, value):
        if not isinstance(value, list) or not value:
            raise serializers.ValidationError('At least one medicine is required')
        vendor = self.context['vendor']
        for line in value:
            if not isinstance(line, dict) or not line.get('name'):
                raise serializers.ValidationError('Each medicine needs a name')
            medicine_id = line.get('medicine')
            if medicine_id:
                try:
                    medicine_id = int(medicine_id)
                except (TypeError, ValueError):
                    raise serializers.ValidationError('Medicine id must be a number')
                line['medicine'] = medicine_id
            if medicine_id and not Medicine.objects.filter(pk=medicine_id, vendor=vendor).exists():
                raise serializers.ValidationError(f"Medicine {medicine_id} not found")
            try:
                quantity = int(line.get('quantity', 1))
            except (TypeError, ValueError):
                raise serializers.ValidationError('Quantity must be a number')
            if quantity < 1:
                raise serializers.ValidationError('Quantity must be at least 1')
            line['quantity'] = quantity
        return value

    def validate(self, attrs):
        patient = attrs.get('patient')
        if not attrs.get('patient_name') and not getattr(self.instance, 'patient_name', ''):
            if patient is None:
                raise serializers.ValidationError({'patient_name': 'Patient name is required'})
            attrs['patient_name'] = patient.full_name
        return attrs


class PharmacyOrderSerializer(VendorScopedMixin, serializers.ModelSerializer):
    class Meta:
        model = PharmacyOrder
        fields = ['id', 'order_number', 'customer', 'patient', 'customer_name', 'customer_email',
                  'customer_phone', 'customer_address', 'items', 'subtotal', 'tax', 'shipping_fee',
                  'total_amount', 'order_type', 'payment_method', 'payment_status', 'status',
                  'prescription', 'notes', 'order_date', 'confirmed_date', 'ready_date',
                  'completed_date', 'cancelled_date', 'created_at', 'updated_at']
        read_only_fields = ['order_number', 'customer', 'subtotal', 'total_amount', 'confirmed_date',
                            'ready_date', 'completed_date', 'cancelled_date', 'created_at', 'updated_at']

    def validate_patient(self, value):
        return self._own(value, 'Patient')

    def validate_prescription(self, value):
        return self._own(value, 'Prescription')

    def validate_items(self, value):
        if not isinstance(value, list) or not value:
            raise serializers.ValidationError('At least one item is required')
        lines = []
        for line in value:
            if not isinstance(line, dict) or not line.get('name'):
                raise serializers.ValidationError('Each item needs a name')
            try:
                quantity = int(line.get('quantity', 1))
                price = Decimal(str(line.get('price', 0)))
            except (TypeError, ValueError, InvalidOperation):
                raise serializers.ValidationError('Item quantity and price must be numbers')
            if quantity < 1 or price < 0:
                raise serializers.ValidationError('Item quantity must be at least 1 and price not negative')
            lines.append({
                'medicine': line.get('medicine'),
                'name': line['name'],
                'quantity': quantity,
                'price': float(price),
                'total': float(price * quantity),
            })
        return lines


class InsuranceClaimSerializer(VendorScopedMixin, serializers.ModelSerializer):
    class Meta:
        model = InsuranceClaim
        fields = ['id', 'claim_number', 'patient', 'patient_name', 'order', 'insurance_provider',
                  'policy_number', 'claim_amount', 'approved_amount', 'status', 'submission_date',
                  'processed_date', 'notes', 'attachments', 'created_at', 'updated_at']
        read_only_fields = ['claim_number', 'processed_date', 'created_at', 'updated_at']
        extra_kwargs = {'patient_name': {'required': False}}

    def validate_patient(self, value):
        return self._own(value, 'Patient')

    def validate_order(self, value):
        return self._own(value, 'Order')

    def validate_claim_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError('Claim amount must be greater than zero')
        return value

    def validate(self, attrs):
        claim_amount = attrs.get('claim_amount', getattr(self.instance, 'claim_amount', None))
        approved = attrs.get('approved_amount')
        if approved is not None and claim_amount is not None and approved > claim_amount:
            raise serializers.ValidationError({'approved_amount': 'Approved amount cannot exceed the claim'})
        if not attrs.get('patient_name') and not getattr(self.instance, 'patient_name', ''):
            patient = attrs.get('patient')
            if patient is None:
                raise serializers.ValidationError({'patient_name': 'Patient name is required'})
            attrs['patient_name'] = patient.full_name
        return attrs


class ComplianceRecordSerializer(serializers.ModelSerializer):
    type = serializers.ChoiceField(source='record_type', choices=ComplianceRecord.TYPE_CHOICES)
    is_overdue = serializers.BooleanField(read_only=True)
    current_status = serializers.CharField(read_only=True)

    class Meta:
        model = ComplianceRecord
        fields = ['id', 'record_id', 'title', 'type', 'priority', 'status', 'current_status', 'is_overdue',
                  'due_date', 'completed_date', 'assigned_to', 'responsible_person', 'description',
                  'documents', 'notes', 'created_at', 'updated_at']
        read_only_fields = ['record_id', 'completed_date', 'created_at', 'updated_at']
