from rest_framework import serializers
from django.conf import settings
from django.contrib.auth.password_validation import validate_password

from .models import User, Setting, AuditLog, Upload
from .roles import STAFF_ROLES


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'name', 'business_name', 'business_address',
                  'role', 'phone', 'address', 'profile_picture', 'kyc_status', 'email_verified', 'status',
                  'service_type', 'institution', 'department', 'license_number', 'last_login',
                  'created_at', 'updated_at']
        read_only_fields = fields


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    role = serializers.ChoiceField(choices=['customer', 'manager', 'admin'], default='customer')

    class Meta:
        model = User
        fields = ['email', 'password', 'first_name', 'last_name', 'phone', 'role', 'business_name',
                  'business_address', 'license_number', 'service_type', 'address']

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('User already exists')
        return value

    def validate(self, attrs):
        role = attrs.get('role', 'customer')
        service_type = attrs.get('service_type')
        if role == 'manager':
            missing = [field for field in ('business_name', 'service_type', 'business_address', 'license_number')
                       if not attrs.get(field)]
            if missing:
                raise serializers.ValidationError(
                    {field: 'This field is required for vendor registration.' for field in missing}
                )
        elif role == 'admin':
            if not service_type:
                raise serializers.ValidationError({'service_type': 'Service type is required for admin accounts.'})
        elif service_type:
            raise serializers.ValidationError({'service_type': 'Customers cannot register with a service type.'})
        return attrs

    def create(self, validated_data):
        password = validated_data.pop('password')
        if validated_data.get('role') == 'manager':
            validated_data['status'] = 'pending'
        user = User.objects.create_user(password=password, **validated_data)
        return user


class ProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'name', 'business_name', 'business_address',
                  'phone', 'address', 'profile_picture', 'role', 'status', 'service_type', 'kyc_status',
                  'email_verified', 'created_at']
        read_only_fields = ['id', 'email', 'role', 'status', 'service_type', 'kyc_status',
                            'email_verified', 'created_at']


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField()
    new_password = serializers.CharField(validators=[validate_password])

    def validate_current_password(self, value):
        if not self.context['request'].user.check_password(value):
            raise serializers.ValidationError('Current password is incorrect')
        return value


class StaffSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'name', 'phone', 'role', 'department',
                  'permissions', 'status', 'salary', 'shift', 'license_number', 'service_type',
                  'institution', 'activated_at', 'deactivated_at', 'last_login', 'created_at']
        read_only_fields = ['id', 'email', 'service_type', 'institution', 'activated_at',
                            'deactivated_at', 'last_login', 'created_at']

    def validate_role(self, value):
        vendor = self.context['vendor']
        if value not in STAFF_ROLES.get(vendor.service_type, []):
            raise serializers.ValidationError(f'Invalid role for a {vendor.service_type} business')
        return value


class StaffCreateSerializer(StaffSerializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, required=False, validators=[validate_password])

    class Meta(StaffSerializer.Meta):
        fields = StaffSerializer.Meta.fields + ['password']
        read_only_fields = ['id', 'service_type', 'institution', 'activated_at',
                            'deactivated_at', 'last_login', 'created_at']

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('A user with this email already exists')
        return value


class VendorSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['business_name', 'business_address', 'phone', 'address', 'settings']


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']


class UploadSerializer(serializers.ModelSerializer):
    IMAGE_TYPES = ['image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp']
    DOCUMENT_TYPES = [
        'application/pdf',
        'application/msword',
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    ]

    url = serializers.SerializerMethodField()

    class Meta:
        model = Upload
        fields = ['id', 'file', 'url', 'original_name', 'content_type', 'size', 'category', 'purpose', 'created_at']
        read_only_fields = ['id', 'url', 'original_name', 'content_type', 'size', 'category', 'created_at']

    def get_url(self, obj):
        request = self.context.get('request')
        url = obj.file.url
        return request.build_absolute_uri(url) if request else url

    def validate_file(self, value):
        content_type = getattr(value, 'content_type', '')
        if content_type not in self.IMAGE_TYPES + self.DOCUMENT_TYPES:
            raise serializers.ValidationError(
                'Invalid file type. Allowed: JPEG, PNG, GIF, WebP, PDF, DOC, DOCX'
            )
        if value.size > settings.MAX_UPLOAD_SIZE:
            raise serializers.ValidationError('File too large. Maximum size is 10MB')
        return value

    def create(self, validated_data):
        upload = validated_data['file']
        validated_data['original_name'] = upload.name
        validated_data['content_type'] = upload.content_type
        validated_data['size'] = upload.size
        validated_data['category'] = 'image' if upload.content_type in self.IMAGE_TYPES else 'document'
        return super().create(validated_data)
