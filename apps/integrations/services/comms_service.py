"""
Client for the comms service (transactional email and notifications).
"""
import logging
from typing import Any, Dict, Optional

from .base import ServiceClient

logger = logging.getLogger(__name__)


class CommsService(ServiceClient):
    """Sends verification and welcome emails through the comms service."""

    base_url_setting = 'COMMS_SERVICE_URL'
    default_base_url = 'http://fitnease-comms'
    label = 'Comms'

    @staticmethod
    def _recipient(user_data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'to_email': user_data['email'],
            'to_name': f"{user_data.get('first_name', '')} {user_data.get('last_name', '')}".strip(),
        }

    def send_verification_email(self, user_data: Dict[str, Any],
                                verification_url: str) -> Optional[Dict[str, Any]]:
        """
        Ask comms to deliver the verification email.

        Args:
            user_data: Serialized user including ``user_id``, ``email`` and
                ``verification_code``
            verification_url: Link that verifies the account when followed
        """
        logger.info(
            "Sending verification email via comms service",
            extra={'user_id': user_data.get('user_id'), 'comms_service_url': self.base_url}
        )
        payload = dict(
            self._recipient(user_data),
            email_type='email_verification',
            verification_url=verification_url,
            user_data=user_data,
        )
        result = self.request(
            'POST', '/api/comms/send-verification', payload,
            context={'user_id': user_data.get('user_id')}
        )
        if result is not None:
            logger.info("Verification email sent", extra={'user_id': user_data.get('user_id')})
        return result

    def send_welcome_email(self, user_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        logger.info(
            "Sending welcome email via comms service",
            extra={'user_id': user_data.get('user_id'), 'comms_service_url': self.base_url}
        )
        payload = dict(
            self._recipient(user_data),
            email_type='welcome',
            user_data=user_data,
        )
        return self.request(
            'POST', '/api/comms/send-welcome-email', payload,
            context={'user_id': user_data.get('user_id')}
        )

    def delete_email_verification_notification(self, user_id: int) -> Optional[Dict[str, Any]]:
        """Remove the pending "verify your email" notification for a user."""
        return self.request(
            'DELETE', f'/api/comms/notifications/email-verification/{user_id}',
            context={'user_id': user_id}
        )
