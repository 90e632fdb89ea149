from rest_framework import serializers

from shiteni.core.roles import SERVICE_TYPE_CHOICES
from shiteni.core.serializers import UserSerializer

ACCOUNT_STATUSES = ['active', 'inactive', 'suspended', 'pending']

AUDIENCE_CHOICES = [
    ('all', 'Everyone'),
    ('customers', 'Customers'),
    ('vendors', 'All vendors'),
    ('all_vendors', 'All vendors'),
    ('specific_vendor_type', 'Vendors of one service type'),
    ('specific_vendor', 'One vendor'),
]


class VendorSerializer(UserSerializer):
    """Vendor account with its staff head-count and current subscription state"""
    staff_count = serializers.SerializerMethodField()
    subscription_status = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['activated_at', 'deactivated_at', 'staff_count',
                                               'subscription_status']
        read_only_fields = fields

    def get_staff_count(self, obj):
        return obj.staff_members.count()

    def get_subscription_status(self, obj):
        subscription = obj.subscriptions.filter(service_type=obj.service_type).order_by('-created_at').first()
        return subscription.status if subscription else None


class AdminStaffSerializer(UserSerializer):
    vendor_name = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['vendor_name']
        read_only_fields = fields

    def get_vendor_name(self, obj):
        return obj.institution.display_name if obj.institution_id else None


class AccountStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ACCOUNT_STATUSES)
    reason = serializers.CharField(required=False, allow_blank=True)


class SettingValueSerializer(serializers.Serializer):
    key = serializers.CharField(max_length=100)
    value = serializers.CharField(allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)


class PromotionSerializer(serializers.Serializer):
    subject = serializers.CharField(max_length=200)
    message = serializers.CharField()
    audience = serializers.ChoiceField(choices=AUDIENCE_CHOICES, default='all')
    vendor_type = serializers.ChoiceField(choices=SERVICE_TYPE_CHOICES, required=False)
    vendor_id = serializers.IntegerField(required=False)

    def validate(self, attrs):
        if attrs['audience'] == 'specific_vendor_type' and not attrs.get('vendor_type'):
            raise serializers.ValidationError({'vendor_type': 'Required for specific_vendor_type'})
        if attrs['audience'] == 'specific_vendor' and not attrs.get('vendor_id'):
            raise serializers.ValidationError({'vendor_id': 'Required for specific_vendor'})
        return attrs


class ComplianceExportSerializer(serializers.Serializer):
    format = serializers.ChoiceField(choices=['csv', 'xlsx', 'json'], default='csv')
    range = serializers.ChoiceField(choices=['current', 'last_quarter', 'last_year'], default='current')
