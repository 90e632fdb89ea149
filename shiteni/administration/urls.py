from django.urls import path
from . import views

urlpatterns = [
    path('admin/dashboard/', views.dashboard, name='admin-dashboard'),
    path('admin/statistics/', views.statistics, name='admin-statistics'),
    path('admin/compliance/', views.compliance, name='admin-compliance'),
    path('admin/system-health/', views.system_health, name='admin-system-health'),

    # Accounts
    path('admin/vendors/', views.vendor_list, name='admin-vendor-list'),
    path('admin/vendors/<int:pk>/status/', views.vendor_status, name='admin-vendor-status'),
    path('admin/users/', views.user_list, name='admin-user-list'),
    path('admin/users/<int:pk>/status/', views.user_status, name='admin-user-status'),
    path('admin/staff/', views.staff_list, name='admin-staff-list'),

    # Plans and subscriptions
    path('admin/subscription-plans/', views.plan_list_create, name='admin-plan-list-create'),
    path('admin/subscription-plans/<int:pk>/', views.plan_detail, name='admin-plan-detail'),
    path('admin/subscriptions/', views.subscription_list, name='admin-subscription-list'),
    path('admin/subscriptions/<int:pk>/', views.subscription_detail, name='admin-subscription-detail'),

    path('admin/settings/', views.platform_settings, name='admin-settings'),
    path('admin/messages/', views.message_list, name='admin-message-list'),
    path('admin/promotions/count/', views.promotion_count, name='admin-promotion-count'),
    path('admin/promotions/send/', views.promotion_send, name='admin-promotion-send'),
]
