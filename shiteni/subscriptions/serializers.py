from rest_framework import serializers
from .models import SubscriptionPlan, Subscription, BillingHistory


class SubscriptionPlanSerializer(serializers.ModelSerializer):
    class Meta:
        model = SubscriptionPlan
        fields = ['id', 'name', 'description', 'vendor_type', 'plan_type', 'price', 'currency',
                  'billing_cycle', 'features', 'max_users', 'max_storage', 'max_staff_accounts',
                  'is_active', 'is_popular', 'sort_order', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError('Price cannot be negative')
        return value


class BillingHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = BillingHistory
        fields = ['id', 'invoice_number', 'amount', 'currency', 'status', 'billing_date', 'due_date',
                  'payment_date', 'payment_method', 'description', 'plan_type', 'billing_cycle',
                  'lipila_transaction_id', 'created_at']


class SubscriptionSerializer(serializers.ModelSerializer):
    plan = SubscriptionPlanSerializer(read_only=True)
    user_email = serializers.EmailField(source='user.email', read_only=True)
    business_name = serializers.CharField(source='user.business_name', read_only=True)

    class Meta:
        model = Subscription
        fields = ['id', 'user', 'user_email', 'business_name', 'plan', 'plan_type', 'service_type',
                  'status', 'start_date', 'end_date', 'next_billing_date', 'billing_cycle', 'amount',
                  'currency', 'payment_method', 'payment_status', 'last_payment_date', 'auto_renew',
                  'lipila_transaction_id', 'usage', 'created_at', 'updated_at']
        read_only_fields = fields


class SubscriptionAdminUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subscription
        fields = ['status', 'end_date', 'auto_renew', 'payment_status']


class UpgradeSerializer(serializers.Serializer):
    PAYMENT_TYPES = ['mobile_money', 'mobile-money', 'card']

    plan_id = serializers.IntegerField()
    payment_type = serializers.ChoiceField(choices=PAYMENT_TYPES)
    customer_info = serializers.DictField()
    redirect_url = serializers.URLField(required=False, allow_blank=True)

    def validate_customer_info(self, value):
        if not value.get('phone_number'):
            raise serializers.ValidationError('Phone number is required')
        return value

    def validate(self, attrs):
        if attrs['payment_type'] == 'card' and not attrs.get('redirect_url'):
            raise serializers.ValidationError({'redirect_url': 'Redirect URL is required for card payments'})
        attrs['payment_type'] = 'card' if attrs['payment_type'] == 'card' else 'mobile_money'
        return attrs
