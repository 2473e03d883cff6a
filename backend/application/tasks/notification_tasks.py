"""
Notification Tasks.

Celery tasks for sending notifications by email.
"""

from celery import shared_task
from django.core.mail import send_mail
from django.conf import settings
from django.contrib.auth import get_user_model
import logging

logger = logging.getLogger(__name__)


@shared_task
def send_email_notification(to_emails: list, subject: str, message: str):
    """
    Send a plain text email.

    Args:
        to_emails: List of recipient emails
        subject: Email subject
        message: Body text
    """
    if not to_emails:
        return {'success': False, 'error': 'no recipients'}

    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=to_emails,
            fail_silently=False,
        )
        logger.info(f"Sent email to {to_emails}: {subject}")
        return {'success': True, 'recipients': len(to_emails)}

    except Exception as e:
        logger.error(f"Failed to send email: {e}")
        return {'success': False, 'error': str(e)}


def role_emails(*roles):
    """Emails of active users holding any of the roles."""
    User = get_user_model()
    return list(
        User.objects.filter(role__in=roles, is_active=True)
        .exclude(email='')
        .values_list('email', flat=True)
    )


def email_roles(roles, subject, lines):
    """Queue one email to every active user of the roles. Returns recipient count."""
    recipients = role_emails(*roles)
    if not recipients:
        logger.info(f"No recipients for '{subject}' (roles: {', '.join(roles)})")
        return 0
    send_email_notification.delay(
        to_emails=recipients,
        subject=f"[{settings.COMPANY['name']}] {subject}",
        message='\n'.join(lines),
    )
    return len(recipients)
