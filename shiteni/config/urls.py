"""
URL configuration for the Shiteni platform.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Shiteni Admin Panel"
admin.site.site_title = "Shiteni Admin Portal"
admin.site.index_title = "Welcome to the Shiteni Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('shiteni.core.urls')),
    path('api/v1/', include('shiteni.subscriptions.urls')),
    path('api/v1/', include('shiteni.hotel.urls')),
    path('api/v1/', include('shiteni.store.urls')),
    path('api/v1/', include('shiteni.pharmacy.urls')),
    path('api/v1/', include('shiteni.bus.urls')),
    path('api/v1/', include('shiteni.messaging.urls')),
    path('api/v1/', include('shiteni.customers.urls')),
    path('api/v1/', include('shiteni.administration.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
