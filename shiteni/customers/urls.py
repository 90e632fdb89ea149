from django.urls import path
from . import views

urlpatterns = [
    path('customer/dashboard/', views.dashboard, name='customer-dashboard'),
    path('customer/bookings/', views.bookings, name='customer-bookings'),
    path('customer/orders/', views.orders, name='customer-orders'),
    path('customer/payments/', views.payments, name='customer-payments'),
    path('customer/settings/', views.customer_settings, name='customer-settings'),
]
