from rest_framework import serializers

from .models import Message, Notification


class MessageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Message
        fields = ['id', 'sender', 'sender_email', 'sender_name', 'sender_role', 'recipient', 'recipient_email',
                  'recipient_name', 'recipient_role', 'conversation_id', 'content', 'message_type', 'file_url',
                  'file_name', 'file_size', 'product_name', 'is_read', 'created_at']
        read_only_fields = fields


class SendMessageSerializer(serializers.Serializer):
    vendor_id = serializers.CharField(required=False, allow_blank=True)
    recipient_id = serializers.CharField(required=False, allow_blank=True)
    content = serializers.CharField(required=False, allow_blank=True)
    product_name = serializers.CharField(required=False, allow_blank=True, default='')
    message_type = serializers.ChoiceField(choices=Message.TYPE_CHOICES, default='text')
    file_url = serializers.CharField(required=False, allow_blank=True, default='')
    file_name = serializers.CharField(required=False, allow_blank=True, default='')
    file_size = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class NotificationSerializer(serializers.ModelSerializer):
    type = serializers.ChoiceField(source='notification_type', choices=Notification.TYPE_CHOICES, required=False)

    class Meta:
        model = Notification
        fields = ['id', 'title', 'message', 'type', 'link', 'is_read', 'created_at']
        read_only_fields = ['is_read', 'created_at']


class SendNotificationSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(required=False)
    role = serializers.CharField(required=False)
    title = serializers.CharField(max_length=200)
    message = serializers.CharField()
    type = serializers.ChoiceField(choices=Notification.TYPE_CHOICES, default='info')
    link = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if not attrs.get('user_id') and not attrs.get('role'):
            raise serializers.ValidationError('Either user_id or role is required')
        return attrs
