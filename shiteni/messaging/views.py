import logging

from django.contrib.auth import get_user_model
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from shiteni.core.permissions import IsPlatformAdmin, resolve_vendor
from shiteni.core.roles import ADMIN_ROLES
from shiteni.core.utils import paginate
from .models import Message, Notification
from .serializers import (
    MessageSerializer, SendMessageSerializer, NotificationSerializer, SendNotificationSerializer,
)

logger = logging.getLogger('shiteni.messaging')

User = get_user_model()


def _display(user):
    return user.business_name or user.name or user.email.split('@')[0]


def _find_user(identifier, **filters):
    """Look a user up by primary key or e-mail"""
    identifier = str(identifier).strip()
    users = User.objects.filter(**filters)
    if identifier.isdigit():
        return users.filter(pk=int(identifier)).first()
    return users.filter(email=identifier.lower()).first()


def _vendor_inbox(vendor):
    """Messages addressed to a vendor or one of its staff"""
    return Q(recipient=vendor) | Q(recipient__institution=vendor)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def send_message(request):
    """
    Send a message inside a vendor conversation.

    Customers write to `vendor_id`; vendor owners and staff reply to `recipient_id`
    (a customer id or e-mail). The conversation id is always the vendor's id.
    """
    serializer = SendMessageSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    sender = request.user
    content = (data.get('content') or '').strip()
    vendor = resolve_vendor(sender)

    if vendor is None:
        if not data.get('vendor_id') or not content:
            return Response({'error': 'Missing required fields: vendor_id, content'},
                            status=status.HTTP_400_BAD_REQUEST)
        vendor = _find_user(data['vendor_id'], role__in=['manager', 'admin'], service_type__isnull=False,
                            institution__isnull=True)
        if vendor is None:
            return Response({'error': 'Vendor not found'}, status=status.HTTP_404_NOT_FOUND)
        recipient = vendor
    else:
        if not data.get('recipient_id') or not content:
            return Response({'error': 'Missing required fields: recipient_id, content'},
                            status=status.HTTP_400_BAD_REQUEST)
        recipient = _find_user(data['recipient_id'], role='customer')
        if recipient is None:
            return Response({'error': 'Customer not found'}, status=status.HTTP_404_NOT_FOUND)

    product_name = data.get('product_name', '')
    if product_name:
        content = f"Product: {product_name}\n\n{content}"

    message = Message.objects.create(
        sender=sender,
        sender_email=sender.email,
        sender_name=_display(sender),
        sender_role=sender.role,
        recipient=recipient,
        recipient_email=recipient.email,
        recipient_name=_display(recipient),
        recipient_role=recipient.role,
        conversation_id=str(vendor.id),
        content=content,
        message_type=data['message_type'],
        file_url=data.get('file_url', ''),
        file_name=data.get('file_name', ''),
        file_size=data.get('file_size'),
        product_name=product_name,
    )
    logger.info(f"Message {message.id} sent from {sender.email} to {recipient.email}")
    return Response({'success': True, 'message': MessageSerializer(message).data},
                    status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def message_list(request):
    """Messages of the caller's conversations (?conversation_id=, ?customer= for vendors)"""
    user = request.user
    conversation_id = request.query_params.get('conversation_id')
    vendor = resolve_vendor(user)

    if user.role in ADMIN_ROLES and vendor is None:
        messages = Message.objects.all()
    elif vendor is not None:
        if conversation_id and conversation_id != str(vendor.id):
            return Response({'error': 'Access denied'}, status=status.HTTP_403_FORBIDDEN)
        messages = Message.objects.filter(conversation_id=str(vendor.id))
        customer = request.query_params.get('customer')
        if customer:
            messages = messages.filter(Q(sender_email__iexact=customer) | Q(recipient_email__iexact=customer))
    else:
        messages = Message.objects.filter(Q(sender=user) | Q(recipient=user))

    if conversation_id:
        messages = messages.filter(conversation_id=conversation_id)
    items, pagination = paginate(messages, request, default_limit=100, max_limit=500)
    return Response({'success': True, 'messages': MessageSerializer(items, many=True).data,
                     'pagination': pagination})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_read(request):
    """Mark a whole conversation (`conversation_id`) or specific `message_ids` read for the caller"""
    user = request.user
    vendor = resolve_vendor(user)
    inbox = _vendor_inbox(vendor) if vendor is not None else Q(recipient=user)
    messages = Message.objects.filter(inbox, is_read=False)

    conversation_id = request.data.get('conversation_id')
    message_ids = request.data.get('message_ids')
    if conversation_id:
        messages = messages.filter(conversation_id=str(conversation_id))
    elif isinstance(message_ids, list) and message_ids:
        messages = messages.filter(pk__in=message_ids)
    else:
        return Response({'error': 'conversation_id or message_ids is required'},
                        status=status.HTTP_400_BAD_REQUEST)

    updated = messages.update(is_read=True)
    return Response({'success': True, 'updated': updated})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def conversations(request):
    """One entry per counterpart with the last message and the unread count"""
    user = request.user
    vendor = resolve_vendor(user)
    threads = {}

    if vendor is not None:
        messages = Message.objects.filter(conversation_id=str(vendor.id)).order_by('created_at')
        for message in messages:
            from_customer = message.sender_role == 'customer'
            email = message.sender_email if from_customer else message.recipient_email
            thread = threads.setdefault(email, {
                'conversation_id': message.conversation_id,
                'customer_email': email,
                'customer_name': '',
                'unread_count': 0,
            })
            if from_customer:
                thread['customer_name'] = message.sender_name
                if not message.is_read:
                    thread['unread_count'] += 1
            elif not thread['customer_name']:
                thread['customer_name'] = message.recipient_name
            thread['last_message'] = MessageSerializer(message).data
    else:
        messages = Message.objects.filter(Q(sender=user) | Q(recipient=user)).order_by('created_at')
        vendors = {
            str(v.id): v for v in User.objects.filter(
                pk__in={int(m) for m in messages.values_list('conversation_id', flat=True) if m.isdigit()})
        }
        for message in messages:
            thread = threads.setdefault(message.conversation_id, {
                'conversation_id': message.conversation_id,
                'vendor_id': message.conversation_id,
                'vendor_name': _display(vendors[message.conversation_id])
                if message.conversation_id in vendors else message.recipient_name,
                'service_type': getattr(vendors.get(message.conversation_id), 'service_type', None),
                'unread_count': 0,
            })
            if message.recipient_id == user.pk and not message.is_read:
                thread['unread_count'] += 1
            thread['last_message'] = MessageSerializer(message).data

    result = sorted(threads.values(), key=lambda t: t['last_message']['created_at'], reverse=True)
    return Response({
        'success': True,
        'conversations': result,
        'total_unread': sum(t['unread_count'] for t in result),
    })


# Notifications

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def notification_list(request):
    notifications = Notification.objects.filter(user=request.user)
    if request.query_params.get('unread') == 'true':
        notifications = notifications.filter(is_read=False)
    items, pagination = paginate(notifications, request, default_limit=20)
    return Response({
        'notifications': NotificationSerializer(items, many=True).data,
        'unread_count': Notification.objects.filter(user=request.user, is_read=False).count(),
        'pagination': pagination,
    })


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def notification_read(request, pk):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    notification.is_read = True
    notification.save(update_fields=['is_read'])
    return Response(NotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def notification_mark_all_read(request):
    updated = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
    return Response({'success': True, 'updated': updated})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPlatformAdmin])
def notification_send(request):
    """Notify one user (`user_id`) or every active user with a `role`"""
    serializer = SendNotificationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    if data.get('user_id'):
        users = User.objects.filter(pk=data['user_id'])
        if not users.exists():
            return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)
    else:
        users = User.objects.filter(role=data['role'], status='active')

    created = Notification.objects.bulk_create([
        Notification(user=user, title=data['title'], message=data['message'],
                     notification_type=data['type'], link=data.get('link', ''))
        for user in users
    ])
    logger.info(f"{request.user.email} sent notification '{data['title']}' to {len(created)} users")
    return Response({'success': True, 'sent': len(created)}, status=status.HTTP_201_CREATED)
