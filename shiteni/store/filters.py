import django_filters
from django.db.models import Q, F

from .models import StoreProduct, StoreOrder


class StoreProductFilter(django_filters.FilterSet):
    """Filter for store products using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    status = django_filters.CharFilter(method='filter_status')
    featured = django_filters.BooleanFilter(field_name='featured')
    vendor = django_filters.NumberFilter(field_name='vendor_id')
    low_stock = django_filters.CharFilter(method='filter_low_stock', label='Low Stock')
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')

    class Meta:
        model = StoreProduct
        fields = ['search', 'category', 'status', 'featured', 'vendor', 'low_stock', 'min_price', 'max_price']

    def filter_search(self, queryset, name, value):
        """Search names, descriptions, categories, SKUs and tags"""
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) | Q(description__icontains=value) | Q(category__icontains=value) |
            Q(sku__icontains=value) | Q(tags__icontains=value)
        )

    def filter_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(status=value)

    def filter_low_stock(self, queryset, name, value):
        if value != 'true':
            return queryset
        return queryset.filter(stock__lte=F('min_stock'))


class StoreOrderFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.CharFilter(method='filter_status')
    payment_status = django_filters.CharFilter(field_name='payment_status')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = StoreOrder
        fields = ['search', 'status', 'payment_status', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(order_number__icontains=value) | Q(customer_name__icontains=value) |
            Q(customer_email__icontains=value) | Q(customer_phone__icontains=value)
        )

    def filter_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        return queryset.filter(status=value)
