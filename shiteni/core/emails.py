"""
Transactional e-mails.

Every sender returns True/False and logs failures instead of raising, so a broken
SMTP relay never fails the request that triggered the message.
"""
import logging

from django.conf import settings
from django.core.mail import send_mail

from .utils import format_currency

logger = logging.getLogger(__name__)


def _send(subject, text, html, recipients):
    try:
        send_mail(
            subject,
            text,
            settings.DEFAULT_FROM_EMAIL,
            recipients,
            html_message=html,
            fail_silently=False,
        )
        logger.info(f"Email '{subject}' sent to {', '.join(recipients)}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email '{subject}' to {', '.join(recipients)}: {str(e)}")
        return False


def send_verification_email(user, token):
    url = f"{settings.FRONTEND_URL}/auth/verify-email?token={token}"
    name = user.first_name or user.email
    text = (
        f"Hi {name},\n\n"
        f"Welcome to Shiteni. Please verify your e-mail address by opening the link below:\n\n"
        f"{url}\n\nThe link expires in 24 hours."
    )
    html = (
        f"<h2>Welcome to Shiteni</h2><p>Hi {name},</p>"
        f"<p>Please verify your e-mail address.</p>"
        f"<p><a href=\"{url}\">Verify e-mail</a></p><p>The link expires in 24 hours.</p>"
    )
    return _send('Verify your Shiteni account', text, html, [user.email])


def send_password_reset_email(user, token):
    url = f"{settings.FRONTEND_URL}/auth/reset-password?token={token}"
    text = (
        f"Hi {user.first_name or user.email},\n\n"
        f"Use the link below to choose a new password:\n\n{url}\n\n"
        f"The link expires in 1 hour. Ignore this message if you did not ask for a reset."
    )
    html = (
        f"<p>Hi {user.first_name or user.email},</p>"
        f"<p><a href=\"{url}\">Reset your password</a></p>"
        f"<p>The link expires in 1 hour.</p>"
    )
    return _send('Reset your Shiteni password', text, html, [user.email])


def send_staff_welcome_email(staff, vendor, temporary_password):
    business = vendor.display_name
    text = (
        f"Hi {staff.first_name},\n\n"
        f"{business} added you as {staff.get_role_display()} on Shiteni.\n\n"
        f"E-mail: {staff.email}\nTemporary password: {temporary_password}\n\n"
        f"Sign in at {settings.FRONTEND_URL}/auth/signin and change your password."
    )
    html = (
        f"<p>Hi {staff.first_name},</p>"
        f"<p><strong>{business}</strong> added you as {staff.get_role_display()} on Shiteni.</p>"
        f"<p>E-mail: {staff.email}<br>Temporary password: {temporary_password}</p>"
    )
    return _send(f'Welcome to {business} on Shiteni', text, html, [staff.email])


def send_order_confirmation_email(order, vendor):
    lines = '\n'.join(
        f"- {item.get('name')} x{item.get('quantity')}: {format_currency(item.get('total', 0))}"
        for item in order.items
    )
    text = (
        f"Hi {order.customer_name},\n\n"
        f"Thank you for your order {order.order_number} at {vendor.display_name}.\n\n"
        f"{lines}\n\nTotal: {format_currency(order.total)}"
    )
    html = (
        f"<p>Hi {order.customer_name},</p>"
        f"<p>Thank you for your order <strong>{order.order_number}</strong>.</p>"
        f"<p>Total: {format_currency(order.total)}</p>"
    )
    return _send(f'Order {order.order_number} confirmed', text, html, [order.customer_email])


def send_promotion_email(recipient, subject, message):
    html = f"<div>{message}</div><p>The Shiteni team</p>"
    return _send(subject, message, html, [recipient])
