from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Setting, AuditLog, Upload


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'first_name', 'last_name', 'role', 'service_type', 'status', 'email_verified', 'date_joined']
    list_filter = ['role', 'service_type', 'status', 'email_verified', 'is_staff']
    search_fields = ['email', 'first_name', 'last_name', 'business_name']
    ordering = ['email']
    raw_id_fields = ['institution', 'created_by', 'activated_by', 'deactivated_by']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Platform', {'fields': ('role', 'status', 'service_type', 'institution', 'business_name',
                                 'business_address', 'license_number', 'phone', 'email_verified',
                                 'kyc_status', 'settings')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Platform', {'fields': ('email', 'role', 'service_type')}),
    )


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'updated_at']
    search_fields = ['key', 'description']
    ordering = ['key']
    readonly_fields = ['updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action', 'model_name', 'object_id', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__email', 'model_name', 'object_id', 'object_reference']
    ordering = ['-created_at']
    readonly_fields = ['user', 'action', 'model_name', 'object_id', 'changes', 'ip_address', 'created_at']


@admin.register(Upload)
class UploadAdmin(admin.ModelAdmin):
    list_display = ['original_name', 'owner', 'category', 'size', 'created_at']
    list_filter = ['category']
    search_fields = ['original_name', 'owner__email']
