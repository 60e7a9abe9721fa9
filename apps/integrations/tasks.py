"""
Celery tasks that notify downstream services about account events.

Every task is fire-and-forget: it is queued after the surrounding
transaction commits, runs once, and logs instead of raising when the
downstream service is unreachable. Nothing is retried.
"""
import logging
from celery import shared_task
from django.conf import settings

from apps.core.tasks import LoggedTask
from apps.integrations.services import CommsService, EngagementService

logger = logging.getLogger(__name__)


def _load_user(user_id):
    from apps.rbac.models import User

    user = User.objects.filter(pk=user_id).first()
    if user is None:
        logger.warning("Notification skipped, user no longer exists", extra={'user_id': user_id})
    return user


def user_payload(user, include_code=False):
    """Serialize the fields downstream services need about a user."""
    data = {
        'user_id': user.id,
        'username': user.username,
        'email': user.email,
        'first_name': user.first_name,
        'last_name': user.last_name,
    }
    if include_code:
        data['verification_code'] = user.email_verification_code
        data['expires_at'] = (
            user.email_verification_code_expires_at.isoformat()
            if user.email_verification_code_expires_at else None
        )
    return data


def verification_url(token):
    return f"{settings.APP_URL.rstrip('/')}/api/auth/verify-email?token={token}"


@shared_task(base=LoggedTask, bind=True, ignore_result=True)
def send_verification_email(self, user_id):
    """Deliver the current verification challenge (link and code)."""
    user = _load_user(user_id)
    if user is None or user.email_verified or not user.email_verification_token:
        return None

    return CommsService().send_verification_email(
        user_payload(user, include_code=True),
        verification_url(user.email_verification_token),
    )


@shared_task(base=LoggedTask, bind=True, ignore_result=True)
def send_welcome_email(self, user_id):
    user = _load_user(user_id)
    if user is None:
        return None
    return CommsService().send_welcome_email(user_payload(user))


@shared_task(base=LoggedTask, bind=True, ignore_result=True)
def delete_verification_notification(self, user_id):
    return CommsService().delete_email_verification_notification(user_id)


@shared_task(base=LoggedTask, bind=True, ignore_result=True)
def notify_user_registration(self, user_id):
    user = _load_user(user_id)
    if user is None:
        return None
    return EngagementService().notify_user_registration(user_payload(user))


@shared_task(base=LoggedTask, bind=True, ignore_result=True)
def notify_email_verification(self, user_id):
    return EngagementService().notify_email_verification(user_id)


@shared_task(base=LoggedTask, bind=True, ignore_result=True)
def track_user_login(self, user_id):
    return EngagementService().track_user_login(user_id)
