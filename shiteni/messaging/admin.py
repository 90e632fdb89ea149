from django.contrib import admin
from .models import Message, Notification


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['sender_email', 'recipient_email', 'conversation_id', 'message_type', 'is_read', 'created_at']
    list_filter = ['message_type', 'is_read', 'sender_role']
    search_fields = ['sender_email', 'recipient_email', 'content']
    date_hierarchy = 'created_at'


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'title', 'notification_type', 'is_read', 'created_at']
    list_filter = ['notification_type', 'is_read']
    search_fields = ['title', 'user__email']
