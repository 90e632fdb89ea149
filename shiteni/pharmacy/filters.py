import django_filters
from datetime import timedelta
from django.db.models import Q
from django.utils import timezone

from .models import Medicine, PharmacyOrder, Patient, InsuranceClaim, ComplianceRecord


class AllAwareFilterSet(django_filters.FilterSet):
    """FilterSet whose choice-like filters treat 'all' as no filter"""

    def filter_exact(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(**{name: value})


class MedicineFilter(AllAwareFilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.CharFilter(field_name='category', method='filter_exact')
    status = django_filters.CharFilter(field_name='status', method='filter_exact')
    form = django_filters.CharFilter(field_name='form', method='filter_exact')
    prescription_required = django_filters.BooleanFilter(field_name='prescription_required')
    expiring_within = django_filters.NumberFilter(method='filter_expiring', label='Expiring within (days)')

    class Meta:
        model = Medicine
        fields = ['search', 'category', 'status', 'form', 'prescription_required', 'expiring_within']

    def filter_search(self, queryset, name, value):
        """Search name, generic name, manufacturer and batch number"""
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) | Q(generic_name__icontains=value) |
            Q(manufacturer__icontains=value) | Q(batch_number__icontains=value)
        )

    def filter_expiring(self, queryset, name, value):
        today = timezone.localdate()
        return queryset.filter(expiry_date__gte=today, expiry_date__lte=today + timedelta(days=int(value)))


class PharmacyOrderFilter(AllAwareFilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status', method='filter_exact')
    order_type = django_filters.CharFilter(field_name='order_type', method='filter_exact')
    payment_status = django_filters.CharFilter(field_name='payment_status', method='filter_exact')

    class Meta:
        model = PharmacyOrder
        fields = ['search', 'status', 'order_type', 'payment_status']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=value) | Q(customer_name__icontains=value) |
            Q(customer_email__icontains=value)
        )


class PatientFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(method='filter_status')

    class Meta:
        model = Patient
        fields = ['search', 'status']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(patient_id__icontains=value) | Q(first_name__icontains=value) | Q(last_name__icontains=value) |
            Q(email__icontains=value) | Q(phone__icontains=value)
        )

    def filter_status(self, queryset, name, value):
        if value == 'active':
            return queryset.filter(is_active=True)
        if value == 'inactive':
            return queryset.filter(is_active=False)
        return queryset


class InsuranceClaimFilter(AllAwareFilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(field_name='status', method='filter_exact')
    provider = django_filters.CharFilter(field_name='insurance_provider', method='filter_exact')

    class Meta:
        model = InsuranceClaim
        fields = ['search', 'status', 'provider']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(claim_number__icontains=value) | Q(patient_name__icontains=value) |
            Q(policy_number__icontains=value)
        )


class ComplianceRecordFilter(AllAwareFilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(method='filter_status')
    type = django_filters.CharFilter(field_name='record_type', method='filter_exact')
    priority = django_filters.CharFilter(field_name='priority', method='filter_exact')

    class Meta:
        model = ComplianceRecord
        fields = ['search', 'status', 'type', 'priority']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(title__icontains=value) | Q(description__icontains=value) |
            Q(responsible_person__icontains=value) | Q(record_id__icontains=value)
        )

    def filter_status(self, queryset, name, value):
        """Overdue covers pending records past their due date"""
        today = timezone.localdate()
        if not value or value == 'all':
            return queryset
        if value == 'overdue':
            return queryset.filter(Q(status='overdue') | Q(status='pending', due_date__lt=today))
        if value == 'pending':
            return queryset.filter(status='pending', due_date__gte=today)
        return queryset.filter(status=value)
