import logging
import secrets
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from django.db.models import Q
from django.utils import timezone

from .models import AuditLog
from .serializers import (
    UserSerializer, RegisterSerializer, ProfileSerializer, PasswordChangeSerializer,
    StaffSerializer, StaffCreateSerializer, VendorSettingsSerializer,
    AuditLogSerializer, UploadSerializer,
)
from .emails import send_verification_email, send_password_reset_email, send_staff_welcome_email
from .permissions import IsPlatformAdmin, resolve_vendor, vendor_access_error, is_vendor_manager
from .roles import get_allowed_modules, dashboard_path, STAFF_ROLES
from .utils import create_audit_log, generate_token, paginate

logger = logging.getLogger('shiteni.core')

User = get_user_model()

EMAIL_VERIFICATION_TTL = timedelta(hours=24)
PASSWORD_RESET_TTL = timedelta(hours=1)


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.email_verified:
            raise AuthenticationFailed('Please verify your email address before signing in.')
        if self.user.status in ('inactive', 'suspended'):
            raise AuthenticationFailed(f'Your account is {self.user.status}.')
        self.user.last_login = timezone.now()
        self.user.save(update_fields=['last_login'])
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['role'] = user.role
        token['service_type'] = user.service_type
        token['institution_id'] = user.institution_id
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Custom token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


def _issue_verification_token(user):
    user.email_verification_token = generate_token()
    user.email_verification_expires = timezone.now() + EMAIL_VERIFICATION_TTL
    user.save(update_fields=['email_verification_token', 'email_verification_expires'])
    return user.email_verification_token


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Register a customer, vendor (manager) or admin account"""
    serializer = RegisterSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = serializer.save()
    token = _issue_verification_token(user)
    email_sent = send_verification_email(user, token)
    create_audit_log(request, action='register', model_name='User', object_id=user.id,
                     user=user, object_name=user.email, changes={'role': user.role})
    logger.info(f"Registered {user.role} {user.email} (service_type={user.service_type})")

    return Response({
        'message': 'Registration successful. Please check your email to verify your account.',
        'user': UserSerializer(user).data,
        'email_sent': email_sent,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def verify_email(request):
    token = request.query_params.get('token') or request.data.get('token')
    if not token:
        return Response({'error': 'Verification token is required'}, status=status.HTTP_400_BAD_REQUEST)

    user = User.objects.filter(email_verification_token=token).first()
    if not user:
        return Response({'error': 'Invalid verification token'}, status=status.HTTP_400_BAD_REQUEST)
    if user.email_verified:
        return Response({'message': 'Email already verified'})
    if not user.email_verification_expires or user.email_verification_expires < timezone.now():
        return Response({'error': 'Verification token has expired'}, status=status.HTTP_400_BAD_REQUEST)

    user.email_verified = True
    user.email_verification_token = None
    user.email_verification_expires = None
    user.save(update_fields=['email_verified', 'email_verification_token', 'email_verification_expires'])
    return Response({'message': 'Email verified successfully. You can now sign in.'})


@api_view(['POST'])
@permission_classes([AllowAny])
def resend_verification(request):
    email = (request.data.get('email') or '').strip().lower()
    if not email:
        return Response({'error': 'Email is required'}, status=status.HTTP_400_BAD_REQUEST)

    user = User.objects.filter(email=email).first()
    if user and not user.email_verified:
        send_verification_email(user, _issue_verification_token(user))
    return Response({'message': 'If the account exists and is unverified, a new link has been sent.'})


@api_view(['POST'])
@permission_classes([AllowAny])
def reset_password(request):
    """Request a reset link with {email}, or set a new password with {token, password}"""
    token = request.data.get('token')
    if token:
        password = request.data.get('password') or ''
        if len(password) < 6:
            return Response({'error': 'Password must be at least 6 characters'}, status=status.HTTP_400_BAD_REQUEST)
        user = User.objects.filter(password_reset_token=token).first()
        if not user or not user.password_reset_expires or user.password_reset_expires < timezone.now():
            return Response({'error': 'Invalid or expired reset token'}, status=status.HTTP_400_BAD_REQUEST)
        user.set_password(password)
        user.password_reset_token = None
        user.password_reset_expires = None
        user.save()
        create_audit_log(request, action='password_reset', model_name='User', object_id=user.id,
                         user=user, object_name=user.email)
        return Response({'message': 'Password has been reset successfully'})

    email = (request.data.get('email') or '').strip().lower()
    if not email:
        return Response({'error': 'Email is required'}, status=status.HTTP_400_BAD_REQUEST)
    user = User.objects.filter(email=email).first()
    if user:
        user.password_reset_token = generate_token()
        user.password_reset_expires = timezone.now() + PASSWORD_RESET_TTL
        user.save(update_fields=['password_reset_token', 'password_reset_expires'])
        send_password_reset_email(user, user.password_reset_token)
    return Response({'message': 'If an account with that email exists, a reset link has been sent.'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with allowed dashboard modules"""
    user = request.user
    data = UserSerializer(user).data
    data['allowed_modules'] = get_allowed_modules(user.role, user.service_type)
    data['dashboard_path'] = dashboard_path(user.role, user.service_type)
    vendor = resolve_vendor(user)
    if vendor and vendor.pk != user.pk:
        data['vendor'] = {'id': vendor.id, 'name': vendor.display_name}
    return Response(data)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def user_profile(request):
    user = request.user
    if request.method == 'GET':
        return Response(ProfileSerializer(user).data)
    serializer = ProfileSerializer(user, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def change_password(request):
    serializer = PasswordChangeSerializer(data=request.data, context={'request': request})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    request.user.set_password(serializer.validated_data['new_password'])
    request.user.save()
    return Response({'message': 'Password updated successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def vendor_approval_status(request):
    user = request.user
    if not (user.role == 'manager' or user.service_type):
        return Response({
            'approved': True,
            'status': 'customer',
            'message': 'Customer account - no approval needed',
        })

    status_map = {
        'active': 'approved',
        'pending': 'pending',
        'suspended': 'suspended',
        'inactive': 'rejected',
    }
    approval = status_map.get(user.status, 'pending')
    approved = approval == 'approved'
    return Response({
        'approved': approved,
        'status': approval,
        'message': 'Vendor account is approved and active' if approved else f'Vendor account is {approval}',
    })


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def vendor_settings(request):
    """Business profile and per-vertical settings of the caller's vendor"""
    vendor = resolve_vendor(request.user)
    if vendor is None:
        return Response({'error': 'Vendor account required'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        return Response(VendorSettingsSerializer(vendor).data)

    if not is_vendor_manager(request.user, vendor):
        return Response({'error': 'Only the business owner can update settings'}, status=status.HTTP_403_FORBIDDEN)

    data = request.data.copy() if hasattr(request.data, 'copy') else dict(request.data)
    if 'settings' in data and isinstance(data['settings'], dict):
        merged = dict(vendor.settings or {})
        merged.update(data['settings'])
        data['settings'] = merged
    serializer = VendorSettingsSerializer(vendor, data=data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _staff_vendor(request):
    """The vendor whose staff the caller manages, or an error Response"""
    vendor = resolve_vendor(request.user)
    error = vendor_access_error(request.user, vendor)
    if error:
        return None, Response({'error': error[0]}, status=error[1])
    if not is_vendor_manager(request.user, vendor):
        return None, Response({'error': 'Only managers can manage staff'}, status=status.HTTP_403_FORBIDDEN)
    return vendor, None


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def staff_list_create(request):
    """List or create staff members of the caller's business"""
    vendor, error = _staff_vendor(request)
    if error:
        return error

    if request.method == 'GET':
        staff = User.objects.filter(institution=vendor).order_by('-created_at')
        role = request.query_params.get('role')
        if role:
            staff = staff.filter(role=role)
        staff_status = request.query_params.get('status')
        if staff_status:
            staff = staff.filter(status=staff_status)
        search = request.query_params.get('search')
        if search:
            staff = staff.filter(
                Q(first_name__icontains=search) | Q(last_name__icontains=search) | Q(email__icontains=search)
            )
        return Response({
            'staff': StaffSerializer(staff, many=True).data,
            'roles': STAFF_ROLES.get(vendor.service_type, []),
        })

    serializer = StaffCreateSerializer(data=request.data, context={'vendor': vendor})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = dict(serializer.validated_data)
    password = data.pop('password', None) or secrets.token_urlsafe(9)
    staff = User.objects.create_user(
        password=password,
        service_type=vendor.service_type,
        institution=vendor,
        created_by=request.user,
        email_verified=True,
        activated_at=timezone.now(),
        activated_by=request.user,
        **data
    )
    send_staff_welcome_email(staff, vendor, password)
    create_audit_log(request, action='create', model_name='Staff', object_id=staff.id,
                     object_name=staff.email, changes={'role': staff.role})
    logger.info(f"Vendor {vendor.id} added staff {staff.email} as {staff.role}")
    return Response(StaffSerializer(staff).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def staff_detail(request, pk):
    """Retrieve, update or delete a staff member"""
    vendor, error = _staff_vendor(request)
    if error:
        return error
    staff = get_object_or_404(User, pk=pk, institution=vendor)

    if request.method == 'GET':
        return Response(StaffSerializer(staff).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = StaffSerializer(staff, data=request.data, partial=request.method == 'PATCH',
                                     context={'vendor': vendor})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request, action='delete', model_name='Staff', object_id=staff.id, object_name=staff.email)
        staff.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


def apply_status_change(user, new_status, actor):
    """Set an account status and stamp who (de)activated it"""
    user.status = new_status
    user.is_active = new_status != 'suspended'
    if new_status == 'active':
        user.activated_at = timezone.now()
        user.activated_by = actor
    elif new_status in ('inactive', 'suspended'):
        user.deactivated_at = timezone.now()
        user.deactivated_by = actor
    user.save()


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def staff_status(request, pk):
    vendor, error = _staff_vendor(request)
    if error:
        return error
    staff = get_object_or_404(User, pk=pk, institution=vendor)

    new_status = request.data.get('status')
    if new_status not in ('active', 'inactive'):
        return Response({'error': 'Status must be active or inactive'}, status=status.HTTP_400_BAD_REQUEST)

    previous = staff.status
    apply_status_change(staff, new_status, request.user)
    create_audit_log(request, action='status_change', model_name='Staff', object_id=staff.id,
                     object_name=staff.email, changes={'status': [previous, new_status]})
    return Response(StaffSerializer(staff).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def upload_file(request):
    """Store an image or document and return its URL"""
    if 'file' not in request.data:
        return Response({'error': 'No file provided'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = UploadSerializer(data=request.data, context={'request': request})
    if serializer.is_valid():
        serializer.save(owner=request.user)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def audit_log_list(request):
    logs = AuditLog.objects.select_related('user')
    action = request.query_params.get('action')
    if action:
        logs = logs.filter(action=action)
    model_name = request.query_params.get('model_name')
    if model_name:
        logs = logs.filter(model_name=model_name)
    items, pagination = paginate(logs, request, default_limit=50)
    return Response({'results': AuditLogSerializer(items, many=True).data, 'pagination': pagination})
