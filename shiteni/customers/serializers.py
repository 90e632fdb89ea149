from rest_framework import serializers


class PreferencesSerializer(serializers.Serializer):
    email_notifications = serializers.BooleanField(required=False)
    sms_notifications = serializers.BooleanField(required=False)
    marketing_emails = serializers.BooleanField(required=False)
    language = serializers.ChoiceField(choices=['en', 'bem', 'nya', 'toi'], required=False)
    timezone = serializers.CharField(max_length=50, required=False)
    currency = serializers.ChoiceField(choices=['ZMW', 'USD'], required=False)


class SecuritySerializer(serializers.Serializer):
    two_factor_enabled = serializers.BooleanField(required=False)
    login_notifications = serializers.BooleanField(required=False)
