from django.urls import path
from . import views

urlpatterns = [
    path('subscriptions/<str:service_type>/', views.subscription_detail, name='subscription-detail'),
    path('subscriptions/<str:service_type>/plans/', views.plan_list, name='subscription-plan-list'),
    path('subscriptions/<str:service_type>/status/', views.subscription_status, name='subscription-status'),
    path('subscriptions/<str:service_type>/billing-history/', views.billing_history, name='subscription-billing-history'),
    path('subscriptions/<str:service_type>/upgrade/', views.upgrade, name='subscription-upgrade'),
    path('subscriptions/<str:service_type>/payment-status/', views.payment_status, name='subscription-payment-status'),
    path('webhooks/lipila/', views.lipila_webhook, name='lipila-webhook'),
]
