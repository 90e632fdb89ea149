from django.urls import path
from . import views

urlpatterns = [
    path('messages/', views.message_list, name='message-list'),
    path('messages/send/', views.send_message, name='message-send'),
    path('messages/mark-read/', views.mark_read, name='message-mark-read'),
    path('messages/conversations/', views.conversations, name='message-conversations'),
    path('notifications/', views.notification_list, name='notification-list'),
    path('notifications/send/', views.notification_send, name='notification-send'),
    path('notifications/mark-all-read/', views.notification_mark_all_read, name='notification-mark-all-read'),
    path('notifications/<int:pk>/read/', views.notification_read, name='notification-read'),
]
