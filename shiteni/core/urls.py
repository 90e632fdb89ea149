from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, register, verify_email,
    resend_verification, reset_password, user_me, user_profile, change_password,
    vendor_approval_status, vendor_settings,
    staff_list_create, staff_detail, staff_status,
    upload_file, audit_log_list,
)

urlpatterns = [
    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/verify-email/', verify_email, name='verify-email'),
    path('auth/resend-verification/', resend_verification, name='resend-verification'),
    path('auth/reset-password/', reset_password, name='reset-password'),
    path('auth/me/', user_me, name='user-me'),

    # Profile endpoints
    path('user/profile/', user_profile, name='user-profile'),
    path('user/password/', change_password, name='user-password'),

    # Vendor endpoints
    path('vendor/approval-status/', vendor_approval_status, name='vendor-approval-status'),
    path('vendor/settings/', vendor_settings, name='vendor-settings'),

    # Staff endpoints
    path('staff/', staff_list_create, name='staff-list-create'),
    path('staff/<int:pk>/', staff_detail, name='staff-detail'),
    path('staff/<int:pk>/status/', staff_status, name='staff-status'),

    path('upload/', upload_file, name='upload'),
    path('audit-logs/', audit_log_list, name='audit-log-list'),
]
