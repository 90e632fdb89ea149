from django.urls import path
from . import views

urlpatterns = [
    path('bus/fleet/', views.fleet_list_create, name='bus-fleet-list'),
    path('bus/fleet/<int:pk>/', views.fleet_detail, name='bus-fleet-detail'),
    path('bus/stops/', views.stop_list_create, name='bus-stop-list'),
    path('bus/stops/<int:pk>/', views.stop_detail, name='bus-stop-detail'),
    path('bus/fares/', views.fare_list_create, name='bus-fare-list'),
    path('bus/fares/<int:pk>/', views.fare_detail, name='bus-fare-detail'),
    path('bus/routes/', views.route_list_create, name='bus-route-list'),
    path('bus/routes/<int:pk>/', views.route_detail, name='bus-route-detail'),
    path('bus/trips/', views.trip_list_create, name='bus-trip-list'),
    path('bus/trips/<int:pk>/', views.trip_detail, name='bus-trip-detail'),
    path('bus/generate-schedules/', views.generate_schedules, name='bus-generate-schedules'),
    path('bus/bookings/', views.booking_list_create, name='bus-booking-list'),
    path('bus/bookings/<int:pk>/', views.booking_detail, name='bus-booking-detail'),
    path('bus/tickets/', views.ticket_list_create, name='bus-ticket-list'),
    path('bus/tickets/<int:pk>/', views.ticket_detail, name='bus-ticket-detail'),
    path('bus/sending/', views.dispatch_list_create, name='bus-sending-list'),
    path('bus/sending/<int:pk>/', views.dispatch_detail, name='bus-sending-detail'),
    path('bus/payments/', views.payment_list, name='bus-payment-list'),
    path('bus/analytics/', views.analytics, name='bus-analytics'),
    path('bus/dashboard/', views.dashboard, name='bus-dashboard'),
    # Public
    path('bus/schedules/', views.schedules, name='bus-schedules'),
]
