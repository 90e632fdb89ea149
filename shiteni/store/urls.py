from django.urls import path
from . import views

urlpatterns = [
    path('store/products/', views.product_list_create, name='store-product-list'),
    path('store/products/<int:pk>/', views.product_detail, name='store-product-detail'),
    path('store/orders/', views.order_list_create, name='store-order-list'),
    path('store/orders/capture/', views.order_capture, name='store-order-capture'),
    path('store/orders/<int:pk>/', views.order_detail, name='store-order-detail'),
    path('store/customers/', views.customer_list_create, name='store-customer-list'),
    path('store/customers/<int:pk>/', views.customer_detail, name='store-customer-detail'),
    path('store/payments/', views.payment_list, name='store-payment-list'),
    path('store/inventory/', views.inventory, name='store-inventory'),
    path('store/analytics/', views.analytics, name='store-analytics'),
    path('store/dashboard/', views.dashboard, name='store-dashboard'),
    # Public
    path('products/', views.public_products, name='store-public-products'),
]
