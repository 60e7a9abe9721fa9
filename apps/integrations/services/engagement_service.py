"""
Client for the engagement service (activity and achievement events).
"""
from typing import Any, Dict, Optional

from .base import ServiceClient


class EngagementService(ServiceClient):
    """Reports account lifecycle events to the engagement service."""

    base_url_setting = 'ENGAGEMENT_SERVICE_URL'
    default_base_url = 'http://fitnease-engagement'
    label = 'Engagement'

    def notify_user_registration(self, user_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        now = self.timestamp()
        payload = {
            'user_id': user_data['user_id'],
            'event_type': 'user_registration',
            'user_data': user_data,
            'registration_date': now,
            'timestamp': now,
        }
        return self.request(
            'POST', '/api/engagement/user-registration', payload,
            context={'user_id': user_data['user_id']}
        )

    def notify_email_verification(self, user_id: int) -> Optional[Dict[str, Any]]:
        now = self.timestamp()
        payload = {
            'user_id': user_id,
            'event_type': 'email_verified',
            'verified_at': now,
            'timestamp': now,
        }
        return self.request(
            'POST', '/api/engagement/email-verification', payload,
            context={'user_id': user_id}
        )

    def track_user_login(self, user_id: int) -> Optional[Dict[str, Any]]:
        """Report a successful login (feeds streaks and active-day achievements)."""
        now = self.timestamp()
        payload = {
            'user_id': user_id,
            'event_type': 'user_login',
            'login_time': now,
            'timestamp': now,
        }
        return self.request(
            'POST', '/api/engagement/user-login', payload,
            context={'user_id': user_id}
        )
