from django.urls import path
from . import views

urlpatterns = [
    path('hotel/rooms/', views.room_list_create, name='hotel-room-list'),
    path('hotel/rooms/<int:pk>/', views.room_detail, name='hotel-room-detail'),
    path('hotel/bookings/', views.booking_list_create, name='hotel-booking-list'),
    path('hotel/bookings/<int:pk>/', views.booking_detail, name='hotel-booking-detail'),
    path('hotel/in-house/', views.in_house, name='hotel-in-house'),
    path('hotel/payments/', views.payment_list, name='hotel-payment-list'),
    path('hotel/payments/<int:pk>/', views.payment_update, name='hotel-payment-update'),
    path('hotel/dashboard/', views.dashboard, name='hotel-dashboard'),
    # Public
    path('hotels/', views.hotel_list, name='hotel-public-list'),
    path('hotels/book/', views.book_room, name='hotel-book'),
    path('hotels/<int:vendor_id>/rooms/', views.hotel_rooms, name='hotel-public-rooms'),
]
